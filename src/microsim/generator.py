# src/microsim/generator.py

"""
Sources of new entities.

A `Generator` is a self-rescheduling event: every activation creates one
entity, hands it to the engine, and books the next activation one
sampled inter-arrival gap later. The resulting stream of arrivals is
lazy and unbounded; it ends only when the engine stops (or when an
optional `limit` of entities has been created).
"""

import logging
from functools import partial
from typing import TYPE_CHECKING, Optional

from .distributions import Distribution, DistributionLike, as_distribution
from .exceptions import ConfigurationError
from .trajectory import Trajectory

if TYPE_CHECKING:
    from .engine import Simulation

log = logging.getLogger(__name__)


class Generator:
    """
    Creates entities following `trajectory` at sampled intervals.

    Args:
        name (str): Prefix for entity names (`api0`, `api1`, ...).
        trajectory (Trajectory): The path every new entity follows.
        interarrival (DistributionLike): Gap between two arrivals.
        priority (int, optional): Copied to every entity. Lower is more
                                  urgent. Defaults to 0.
        limit (Optional[int]): Stop after this many entities.
                               `None` (the default) never stops.
    """

    def __init__(self, name: str, trajectory: Trajectory,
                 interarrival: DistributionLike, priority: int = 0,
                 limit: Optional[int] = None):
        if not name:
            raise ConfigurationError("Generator name must be non-empty.")
        if not isinstance(trajectory, Trajectory):
            raise ConfigurationError(
                f"Generator '{name}': expected a Trajectory, "
                f"got {trajectory!r}.")
        if limit is not None and (isinstance(limit, bool)
                                  or not isinstance(limit, int) or limit < 0):
            raise ConfigurationError(
                f"Generator '{name}': limit must be a non-negative "
                f"integer or None, got {limit!r}.")

        self.name: str = name
        self.trajectory: Trajectory = trajectory
        self.interarrival: Distribution = as_distribution(interarrival)
        self.priority: int = priority
        self.limit: Optional[int] = limit
        self.count: int = 0

    def __repr__(self):
        return (f"Generator(name='{self.name}', "
                f"trajectory='{self.trajectory.name}', count={self.count})")

    @property
    def active(self) -> bool:
        """True while the generator may still create entities."""
        return self.limit is None or self.count < self.limit

    def reset(self):
        self.count = 0

    def start(self, sim: "Simulation"):
        """Books the first activation, one gap after the current time."""
        if not self.active:
            log.debug(f"Generator '{self.name}' has nothing to generate.")
            return
        gap = sim.random.sample(self.interarrival)
        sim.schedule(gap, None, partial(self.activate, sim))

    def activate(self, sim: "Simulation"):
        """Creates one entity and books the next activation."""
        entity = sim.create_entity(self)
        self.count += 1
        log.debug(f"T={sim.now:.2f}: Generator '{self.name}' created "
                  f"{entity.name}.")
        sim.resume(entity)

        if self.active:
            gap = sim.random.sample(self.interarrival)
            sim.schedule(gap, None, partial(self.activate, sim))
        else:
            log.info(f"T={sim.now:.2f}: Generator '{self.name}' reached its "
                     f"limit of {self.limit} entities.")
