# src/microsim/event_queue.py

"""
The simulation timeline: a binary-heap priority queue of pending events.

Events are ordered by (time, sequence). The sequence number is a
monotonically increasing insertion counter, so events scheduled for the
same instant are popped in the order they were pushed. This keeps a run
fully deterministic for a fixed seed and avoids ever comparing the
entities or actions themselves.
"""

import heapq
import itertools
import math
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from .exceptions import EmptyQueue, SimulationError


@dataclass(order=True, frozen=True)
class ScheduledEvent:
    """
    One pending action on the timeline.

    Only `time` and `sequence` take part in ordering.
    """

    time: float
    sequence: int
    entity: Optional[Any] = field(compare=False, default=None)
    action: Optional[Callable[[], None]] = field(compare=False, default=None)


class EventQueue:
    """A min-heap of `ScheduledEvent` with FIFO tie-breaking."""

    def __init__(self):
        self._heap: List[ScheduledEvent] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def push(self, time: float, entity: Optional[Any],
             action: Callable[[], None]) -> ScheduledEvent:
        """
        Schedules `action` at simulated `time`.

        Raises:
            SimulationError: If `time` is NaN.
        """
        if math.isnan(time):
            raise SimulationError("Cannot schedule an event at time NaN.")

        event = ScheduledEvent(time, next(self._counter), entity, action)
        heapq.heappush(self._heap, event)
        return event

    def pop_min(self) -> ScheduledEvent:
        """
        Removes and returns the earliest event.

        Raises:
            EmptyQueue: If no events are pending.
        """
        if not self._heap:
            raise EmptyQueue("No pending events.")
        return heapq.heappop(self._heap)

    def peek(self) -> ScheduledEvent:
        """Returns the earliest event without removing it."""
        if not self._heap:
            raise EmptyQueue("No pending events.")
        return self._heap[0]

    def clear(self):
        """Drops all pending events and restarts the sequence counter."""
        self._heap.clear()
        self._counter = itertools.count()
