# src/microsim/resources/fifo_resource.py

"""
Implements the FIFO (First-In, First-Out) resource.

This is the resource used by the microservice models: a G/G/c/K
server where K = capacity + queue_size. Entities that find all
capacity in use wait in a `collections.deque`; when the queue is
full, new arrivals are rejected (balking).
"""

import logging
import math
from collections import deque
from typing import TYPE_CHECKING, Deque, Iterator, Optional, Tuple

# Local package imports
from ..base_resource import BaseResource
from ..entity import Entity

if TYPE_CHECKING:
    from ..monitor import Monitor

# Set up the module-level logger
log = logging.getLogger(__name__)


class Resource(BaseResource):
    """
    A finite-capacity resource with a bounded FIFO wait queue.

    Waiting entities are served in arrival order. When a release frees
    capacity, the longest-waiting entities whose requested amount fits
    are granted first.
    """

    def __init__(self, name: str, capacity: int = 1,
                 queue_size: float = math.inf,
                 monitor: Optional["Monitor"] = None):
        super().__init__(name, capacity, queue_size, monitor)

        # Use a deque for O(1) FIFO operations.
        # Entries are (entity, amount, enqueue_time).
        self.queue: Deque[Tuple[Entity, int, float]] = deque()

        log.info(f"Resource '{self.name}' initialized: "
                 f"Capacity={self.capacity}, QueueSize={self.queue_size}")

    @property
    def queue_length(self) -> int:
        return len(self.queue)

    def _enqueue(self, entity: Entity, amount: int, current_time: float):
        # FIFO logic: append to the right
        self.queue.append((entity, amount, current_time))

    def _waiting(self) -> Iterator[Tuple[Entity, int]]:
        for entity, amount, _ in self.queue:
            yield entity, amount

    def _remove_waiting(self, entity: Entity):
        # The head is by far the common case.
        if self.queue and self.queue[0][0] is entity:
            self.queue.popleft()
            return
        for entry in self.queue:
            if entry[0] is entity:
                self.queue.remove(entry)
                return
        raise ValueError(f"Entity {entity} is not waiting for "
                         f"'{self.name}'.")
