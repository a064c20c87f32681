# src/microsim/exceptions.py

"""
Exception hierarchy for the simulation core.

Configuration problems are detected before the engine starts running
and are raised as `ConfigurationError` (a `ValueError`), so callers that
already guard against bad arguments with `except ValueError` keep
working. Runtime misuse is a `SimulationError`.
"""


class MicrosimError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(MicrosimError, ValueError):
    """A resource, distribution, trajectory or generator is malformed."""


class SimulationError(MicrosimError, RuntimeError):
    """The engine was used in a way its current state does not allow."""


class EmptyQueue(MicrosimError, LookupError):
    """
    Raised by the event queue when there are no pending events.

    The engine treats this as "no more work" rather than a failure.
    """
