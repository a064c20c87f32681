# src/microsim/constants.py

"""
Defines core enumerations used across the simulation core.

These enums describe the lifecycle of an entity, the outcome of a
resource request, the outcome of a single trajectory step and the
state machine of the simulation engine.
"""

from enum import Enum, auto


class EntityState(Enum):
    """
    Represents the standardized states an entity can be in
    while it traverses a trajectory.

    The resources and the engine manage and assign these states.
    """

    # Created by a generator, not holding or waiting for anything.
    IDLE = auto()

    # Has requested a resource but must wait as all capacity is in use.
    WAITING_FOR_RESOURCE = auto()

    # Holds at least one unit of some resource.
    IN_SERVICE = auto()

    # Reached the end of its trajectory.
    FINISHED = auto()

    # Abandoned its trajectory because a wait queue was full (balking).
    REJECTED = auto()


class RequestResult(Enum):
    """
    Represents the possible outcomes of an entity's `seize` of a resource.

    The trajectory uses it to decide whether the entity proceeds,
    suspends, or leaves the system.
    """

    # Enough free capacity; the entity holds the resource right away.
    SERVED_IMMEDIATELY = auto()

    # Not enough capacity; the entity has been placed in the wait queue.
    QUEUED = auto()

    # Not enough capacity and the wait queue was also full.
    # The entity was rejected and has left the system (balking).
    REJECTED_QUEUE_FULL = auto()


class StepOutcome(Enum):
    """What the engine does after applying one trajectory step."""

    CONTINUE = auto()
    SUSPEND = auto()
    REJECT = auto()


class EngineState(Enum):
    """Lifecycle of a `Simulation`: IDLE -> RUNNING -> STOPPED."""

    IDLE = auto()
    RUNNING = auto()
    STOPPED = auto()
