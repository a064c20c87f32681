# src/microsim/__init__.py

"""
Initializes the 'microsim' package.

This file sets up the package-level logger and "lifts" the
most important classes and enums to the top-level namespace.
This allows users to import core components directly, e.g.:

from microsim import Simulation, Trajectory, Seize, Timeout, Release, Normal
"""

import logging

# Setup Package-Level Logger
# A NullHandler keeps the library silent unless the application
# configures logging itself.
logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


# Lift constants and errors
from .constants import EngineState, EntityState, RequestResult, StepOutcome
from .exceptions import (
    ConfigurationError,
    EmptyQueue,
    MicrosimError,
    SimulationError
)

# Lift the building blocks
from .distributions import Constant, Exponential, Normal, RandomSource
from .event_queue import EventQueue, ScheduledEvent
from .entity import Entity
from .base_resource import BaseResource
from .resources import PriorityResource, Resource
from .trajectory import Release, Seize, Timeout, Trajectory
from .generator import Generator
from .monitor import Monitor
from .measure import Measure
from .engine import Simulation

# Lift the experiment helpers
from .experiment import Experiment, replicate, sweep
from .scenarios import microservice


# Define Public API with __all__
__all__ = [
    # Constants
    "EngineState",
    "EntityState",
    "RequestResult",
    "StepOutcome",

    # Errors
    "ConfigurationError",
    "EmptyQueue",
    "MicrosimError",
    "SimulationError",

    # Core Classes
    "Constant",
    "Exponential",
    "Normal",
    "RandomSource",
    "EventQueue",
    "ScheduledEvent",
    "Entity",
    "BaseResource",
    "Resource",
    "PriorityResource",
    "Seize",
    "Timeout",
    "Release",
    "Trajectory",
    "Generator",
    "Monitor",
    "Measure",
    "Simulation",

    # Experiments
    "Experiment",
    "replicate",
    "sweep",
    "microservice"
]
