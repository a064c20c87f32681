# src/microsim/entity.py

"""
The unit of work that flows through a trajectory (one API request).

An `Entity` carries only per-request progress: where it is in its
trajectory, what it holds, and the timestamps of every resource it
touched. Trajectories themselves are shared and never store
per-entity state.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from .constants import EntityState

if TYPE_CHECKING:
    from .trajectory import Trajectory


@dataclass
class ResourceUsage:
    """Timestamps of one seize of one resource by one entity."""

    resource: str
    amount: int
    requested_at: float
    granted_at: Optional[float] = None
    released_at: Optional[float] = None


@dataclass(eq=False)
class Entity:
    """
    One simulated request.

    Entities compare and hash by identity, so they can be stored in
    sets and used as dictionary keys by the resources.

    Attributes:
        id (int): Unique within a simulation, in creation order.
        name (str): `<generator name><index>`.
        start_time (float): Arrival time in the system.
        trajectory (Trajectory): The shared path this entity follows.
        priority (int): Lower numbers are served first by priority
                        resources.
        position (int): Index of the next trajectory step to apply.
        activity_time (float): Sum of all completed and scheduled
                               timeouts.
        end_time (Optional[float]): Set when a terminal state is reached.
        held (Dict[str, int]): Amount currently held, per resource.
        usages (List[ResourceUsage]): One record per seize, in order.
    """

    id: int
    name: str
    start_time: float
    trajectory: "Trajectory"
    priority: int = 0
    position: int = 0
    state: EntityState = EntityState.IDLE
    activity_time: float = 0.0
    end_time: Optional[float] = None
    held: Dict[str, int] = field(default_factory=dict)
    usages: List[ResourceUsage] = field(default_factory=list)

    def __repr__(self):
        return f"Entity(name='{self.name}', state={self.state.name})"

    @property
    def is_terminal(self) -> bool:
        return self.state in (EntityState.FINISHED, EntityState.REJECTED)

    def open_usage(self, resource: str) -> Optional[ResourceUsage]:
        """Returns the latest not-yet-released usage of `resource`."""
        for usage in reversed(self.usages):
            if usage.resource == resource and usage.released_at is None:
                return usage
        return None
