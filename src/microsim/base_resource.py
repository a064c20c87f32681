# src/microsim/base_resource.py

"""
Defines the Abstract Base Class (ABC) for all simulated resources.

This module provides `BaseResource`, a finite-capacity server with a
bounded wait queue. It implements the parts every resource shares:
capacity accounting, balking when the wait queue is full, releasing,
and handing freed capacity to waiting entities. Concrete subclasses
only decide the ORDER in which waiting entities are served (FIFO,
priority, ...).

Every state transition (granted, queued, rejected, released) is
reported to the bound `Monitor` as an occupancy sample, and every
seize attempt as a request record.
"""

import abc
import logging
import math
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

# Local package imports
from .constants import EntityState, RequestResult
from .entity import Entity, ResourceUsage
from .exceptions import ConfigurationError

if TYPE_CHECKING:
    from .monitor import Monitor

log = logging.getLogger(__name__)


class BaseResource(abc.ABC):
    """
    Abstract Base Class for resource implementations.

    This class defines the standard public API:
    - `seize(entity, current_time, amount)`: An entity asks for capacity.
    - `release(entity, current_time, amount)`: An entity gives it back.

    A concrete implementation (e.g., `Resource`) must implement the
    three wait-queue hooks: `_enqueue`, `_waiting` and `_remove_waiting`.

    Invariants, held after every transition:
        0 <= in_service <= capacity
        0 <= queue_length <= queue_size
    """

    def __init__(self, name: str, capacity: int = 1,
                 queue_size: float = math.inf,
                 monitor: Optional["Monitor"] = None):
        """
        Initializes the attributes common to all resources.

        Args:
            name (str): Unique name within a simulation (e.g. "app").
            capacity (int, optional): Units that can be held at once.
                                      Defaults to 1.
            queue_size (float, optional): Maximum number of waiting
                                          entities. `math.inf` (the
                                          default) means unbounded.
            monitor (Optional[Monitor]): Where occupancy samples go.
                                         Bound by the engine when the
                                         resource is registered.

        Raises:
            ConfigurationError: If capacity < 1 or queue_size < 0.
        """
        if not name:
            raise ConfigurationError("Resource name must be non-empty.")
        if isinstance(capacity, bool) or not isinstance(capacity, int) \
                or capacity < 1:
            raise ConfigurationError(
                f"Resource '{name}': capacity must be an integer >= 1, "
                f"got {capacity!r}.")
        if queue_size is None:
            queue_size = math.inf
        if queue_size < 0 or (math.isfinite(queue_size)
                              and int(queue_size) != queue_size):
            raise ConfigurationError(
                f"Resource '{name}': queue_size must be a non-negative "
                f"integer or infinity, got {queue_size!r}.")

        self.name: str = name
        self.capacity: int = capacity
        self.queue_size: float = queue_size
        self.monitor: Optional["Monitor"] = monitor

        self.in_service: int = 0
        self.users: Dict[Entity, int] = {}

        # Counters
        self.total_arrivals: int = 0
        self.total_served: int = 0
        self.total_rejections: int = 0

    # -- Wait-queue discipline hooks ------------------------------------

    @abc.abstractmethod
    def _enqueue(self, entity: Entity, amount: int, current_time: float):
        """Adds `entity` to the wait queue."""
        raise NotImplementedError

    @abc.abstractmethod
    def _waiting(self) -> Iterator[Tuple[Entity, int]]:
        """Yields (entity, amount) pairs in the order they are served."""
        raise NotImplementedError

    @abc.abstractmethod
    def _remove_waiting(self, entity: Entity):
        """Removes `entity` from the wait queue."""
        raise NotImplementedError

    @property
    @abc.abstractmethod
    def queue_length(self) -> int:
        raise NotImplementedError

    # -- Public API -----------------------------------------------------

    def seize(self, entity: Entity, current_time: float,
              amount: int = 1) -> RequestResult:
        """
        Handles an entity's request for `amount` units of capacity.

        Args:
            entity (Entity): The requesting entity.
            current_time (float): The current simulation time.
            amount (int, optional): Units requested. Defaults to 1.

        Returns:
            RequestResult: SERVED_IMMEDIATELY, QUEUED or
                           REJECTED_QUEUE_FULL.

        Raises:
            ValueError: If `amount` is not in [1, capacity]; such a
                        request could never be served.
        """
        self._check_amount(amount)
        log.debug(f"T={current_time:.2f}: [{self.name}] Seize of {amount} "
                  f"by {entity}...")
        self.total_arrivals += 1

        usage = ResourceUsage(self.name, amount, requested_at=current_time)
        entity.usages.append(usage)

        if self.in_service + amount <= self.capacity:
            log.debug(f"T={current_time:.2f}: [{self.name}] Capacity "
                      f"available for {entity}.")
            self._grant(entity, amount, usage, current_time)
            self._sample(current_time)
            self._log_request(current_time, rejected=False)
            return RequestResult.SERVED_IMMEDIATELY

        if self.queue_length < self.queue_size:
            log.debug(f"T={current_time:.2f}: [{self.name}] Busy. Queue has "
                      f"space ({self.queue_length}/{self.queue_size}). "
                      f"Queuing {entity}.")
            self._enqueue(entity, amount, current_time)
            entity.state = EntityState.WAITING_FOR_RESOURCE
            self._sample(current_time)
            self._log_request(current_time, rejected=False)
            return RequestResult.QUEUED

        log.debug(f"T={current_time:.2f}: [{self.name}] Busy. Queue is FULL "
                  f"({self.queue_length}/{self.queue_size}). "
                  f"REJECTING {entity}.")
        self.total_rejections += 1
        self._sample(current_time)
        self._log_request(current_time, rejected=True)
        return RequestResult.REJECTED_QUEUE_FULL

    def release(self, entity: Entity, current_time: float,
                amount: int = 1) -> List[Entity]:
        """
        Handles an entity giving back `amount` units.

        Freed capacity is handed to waiting entities, in queue
        discipline order, for as long as their requests fit.

        Args:
            entity (Entity): The releasing entity.
            current_time (float): The current simulation time.
            amount (int, optional): Units released. Defaults to 1.

        Returns:
            List[Entity]: The waiting entities that were just granted
                          capacity, in grant order. Empty if none.

        Raises:
            ValueError: If the entity holds fewer than `amount` units.
        """
        log.debug(f"T={current_time:.2f}: [{self.name}] Release of {amount} "
                  f"by {entity}...")

        held = self.users.get(entity, 0)
        if held < amount:
            log.error(f"T={current_time:.2f}: [{self.name}] Entity {entity} "
                      f"tried to release {amount} unit(s) but holds {held}.")
            raise ValueError(
                f"Entity {entity} holds {held} unit(s) of '{self.name}', "
                f"cannot release {amount}.")

        self.in_service -= amount
        if held == amount:
            del self.users[entity]
            del entity.held[self.name]
            for usage in entity.usages:
                if usage.resource == self.name and usage.granted_at is not None \
                        and usage.released_at is None:
                    usage.released_at = current_time
            self.total_served += 1
        else:
            self.users[entity] = held - amount
            entity.held[self.name] = held - amount

        if not entity.held:
            entity.state = EntityState.IDLE
        self._sample(current_time)

        granted = []
        for next_entity, next_amount in list(self._waiting()):
            if self.in_service >= self.capacity:
                break
            if self.in_service + next_amount > self.capacity:
                continue
            log.debug(f"T={current_time:.2f}: [{self.name}] Serving waiting "
                      f"entity {next_entity}.")
            self._remove_waiting(next_entity)
            self._grant(next_entity, next_amount,
                        next_entity.open_usage(self.name), current_time)
            self._sample(current_time)
            granted.append(next_entity)

        if not granted:
            log.debug(f"T={current_time:.2f}: [{self.name}] Capacity freed. "
                      f"No waiting entity was served.")
        return granted

    def reset(self):
        """Forgets all holders, waiters and counters."""
        self.in_service = 0
        self.users.clear()
        self.total_arrivals = 0
        self.total_served = 0
        self.total_rejections = 0
        self._clear_queue()

    # -- Internals ------------------------------------------------------

    def _clear_queue(self):
        for entity, _ in list(self._waiting()):
            self._remove_waiting(entity)

    def _check_amount(self, amount: int):
        if isinstance(amount, bool) or not isinstance(amount, int) \
                or not 1 <= amount <= self.capacity:
            raise ValueError(
                f"Resource '{self.name}': amount must be an integer in "
                f"[1, {self.capacity}], got {amount!r}.")

    def _grant(self, entity: Entity, amount: int,
               usage: Optional[ResourceUsage], current_time: float):
        """Internal helper to move an entity into the IN_SERVICE state."""
        self.in_service += amount
        self.users[entity] = self.users.get(entity, 0) + amount
        entity.held[self.name] = entity.held.get(self.name, 0) + amount
        entity.state = EntityState.IN_SERVICE
        if usage is not None:
            usage.granted_at = current_time

    def _sample(self, current_time: float):
        if self.monitor is not None:
            self.monitor.record_resource(
                resource=self.name,
                time=current_time,
                server=self.in_service,
                queue=self.queue_length,
                capacity=self.capacity,
                queue_size=self.queue_size,
            )

    def _log_request(self, current_time: float, rejected: bool):
        if self.monitor is not None:
            self.monitor.record_request(self.name, current_time, rejected)

    def __repr__(self):
        return (f"{type(self).__name__}(name='{self.name}', "
                f"capacity={self.capacity}, queue_size={self.queue_size}, "
                f"in_service={self.in_service}, "
                f"queue_length={self.queue_length})")
