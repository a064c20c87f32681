# src/microsim/config/__init__.py

"""Declarative scenario configuration (pydantic schemas + YAML loader)."""

from .loader import load_config
from .schemas import (
    ConstantDistribution,
    ExponentialDistribution,
    GeneratorConfig,
    NormalDistribution,
    ReleaseStep,
    ResourceConfig,
    SeizeStep,
    SimulationConfig,
    TimeoutStep,
)

__all__ = [
    "load_config",
    "ConstantDistribution",
    "ExponentialDistribution",
    "GeneratorConfig",
    "NormalDistribution",
    "ReleaseStep",
    "ResourceConfig",
    "SeizeStep",
    "SimulationConfig",
    "TimeoutStep",
]
