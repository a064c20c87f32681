# src/microsim/trajectory.py

"""
Trajectories: the shared, read-only paths that entities follow.

A `Trajectory` is an ordered tuple of steps:

- `Seize(resource, amount)`: acquire capacity, possibly waiting for it.
- `Timeout(duration)`: hold whatever is held for a sampled duration.
- `Release(resource, amount)`: give capacity back.

Each step knows how to apply itself to one entity and reports back to
the engine with a `StepOutcome`. Progress is stored on the entity
(`entity.position`), never on the trajectory, so a single trajectory is
shared by every entity a generator creates.
"""

import abc
import logging
from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, Iterator, Mapping, Tuple

from .constants import RequestResult, StepOutcome
from .distributions import Distribution, DistributionLike, as_distribution
from .entity import Entity
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .base_resource import BaseResource
    from .engine import Simulation

log = logging.getLogger(__name__)


class Step(abc.ABC):
    """One activity of a trajectory."""

    @abc.abstractmethod
    def apply(self, sim: "Simulation", entity: Entity) -> StepOutcome:
        raise NotImplementedError


@dataclass(frozen=True)
class Seize(Step):
    """Acquire `amount` units of `resource`."""

    resource: str
    amount: int = 1

    def apply(self, sim: "Simulation", entity: Entity) -> StepOutcome:
        result = sim.resources[self.resource].seize(entity, sim.now,
                                                    self.amount)
        if result is RequestResult.SERVED_IMMEDIATELY:
            return StepOutcome.CONTINUE
        if result is RequestResult.QUEUED:
            # The resource hands the entity back to the engine on release.
            return StepOutcome.SUSPEND
        return StepOutcome.REJECT


@dataclass(frozen=True)
class Timeout(Step):
    """Hold for a duration drawn from `duration` on every visit."""

    duration: Distribution

    def __init__(self, duration: DistributionLike):
        object.__setattr__(self, "duration", as_distribution(duration))

    def apply(self, sim: "Simulation", entity: Entity) -> StepOutcome:
        delay = sim.random.sample(self.duration)
        entity.activity_time += delay
        sim.resume(entity, delay)
        return StepOutcome.SUSPEND


@dataclass(frozen=True)
class Release(Step):
    """Give back `amount` units of `resource`."""

    resource: str
    amount: int = 1

    def apply(self, sim: "Simulation", entity: Entity) -> StepOutcome:
        granted = sim.resources[self.resource].release(entity, sim.now,
                                                       self.amount)
        for waiting in granted:
            sim.resume(waiting)
        return StepOutcome.CONTINUE


class Trajectory:
    """
    An immutable, named sequence of steps.

    Example:
        >>> Trajectory("api", [
        ...     Seize("app"),
        ...     Timeout(Normal(10)),
        ...     Release("app"),
        ... ])
    """

    def __init__(self, name: str, steps: Iterable[Step]):
        self.name = name
        self.steps: Tuple[Step, ...] = tuple(steps)
        for step in self.steps:
            if not isinstance(step, Step):
                raise ConfigurationError(
                    f"Trajectory '{name}': {step!r} is not a step.")

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self) -> Iterator[Step]:
        return iter(self.steps)

    def __getitem__(self, index: int) -> Step:
        return self.steps[index]

    def __add__(self, other: "Trajectory") -> "Trajectory":
        if not isinstance(other, Trajectory):
            return NotImplemented
        return Trajectory(f"{self.name}+{other.name}",
                          self.steps + other.steps)

    def __repr__(self):
        return f"Trajectory(name='{self.name}', steps={len(self.steps)})"

    @property
    def resources(self) -> Tuple[str, ...]:
        """Names of all resources this trajectory touches, in order."""
        names = []
        for step in self.steps:
            name = getattr(step, "resource", None)
            if name is not None and name not in names:
                names.append(name)
        return tuple(names)

    def validate(self, resources: Mapping[str, "BaseResource"]):
        """
        Checks the trajectory against the registered resources.

        Raises:
            ConfigurationError: If the trajectory is empty, names an
                unknown resource, asks for more than a resource's
                capacity, or releases more than it has seized.
        """
        if not self.steps:
            raise ConfigurationError(f"Trajectory '{self.name}' is empty.")

        held: Counter = Counter()
        for index, step in enumerate(self.steps):
            if not isinstance(step, (Seize, Release)):
                continue
            if step.resource not in resources:
                raise ConfigurationError(
                    f"Trajectory '{self.name}', step {index}: unknown "
                    f"resource '{step.resource}'.")
            if isinstance(step.amount, bool) or not isinstance(step.amount, int) \
                    or step.amount < 1:
                raise ConfigurationError(
                    f"Trajectory '{self.name}', step {index}: amount must "
                    f"be a positive integer, got {step.amount!r}.")

            capacity = resources[step.resource].capacity
            if isinstance(step, Seize):
                held[step.resource] += step.amount
                if held[step.resource] > capacity:
                    raise ConfigurationError(
                        f"Trajectory '{self.name}', step {index}: holds "
                        f"{held[step.resource]} unit(s) of "
                        f"'{step.resource}' (capacity {capacity}).")
            else:
                if step.amount > held[step.resource]:
                    raise ConfigurationError(
                        f"Trajectory '{self.name}', step {index}: releases "
                        f"{step.amount} unit(s) of '{step.resource}' but "
                        f"only {held[step.resource]} seized.")
                held[step.resource] -= step.amount

        leftover = {name: amount for name, amount in held.items() if amount}
        if leftover:
            log.warning(f"Trajectory '{self.name}' ends while holding "
                        f"{leftover}; they will be released automatically.")
