# src/microsim/config/schemas.py

"""
Pydantic schemas for declarative simulation scenarios.

A scenario names its resources, its trajectories (lists of steps) and
its generators. Durations are tagged distributions; a plain number is
shorthand for a Constant. `SimulationConfig.build()` turns a validated
scenario into an IDLE `Simulation`.
"""

import logging
import math
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator
)

from ..distributions import Constant, Distribution, Exponential, Normal
from ..engine import Simulation
from ..exceptions import ConfigurationError
from ..trajectory import Release, Seize, Step, Timeout, Trajectory

log = logging.getLogger(__name__)

# -- Distributions --------------------------------------------------

class NormalDistribution(BaseModel):
    """Normal (Gaussian) durations, resampled when non-positive."""
    type: Literal["Normal"] = "Normal"
    mean: float = Field(..., description="Mean duration", gt=0)
    sd: float = Field(1.0, description="Standard deviation", ge=0)

    def to_distribution(self) -> Distribution:
        return Normal(self.mean, self.sd)


class ExponentialDistribution(BaseModel):
    """Exponential durations."""
    type: Literal["Exponential"] = "Exponential"
    mean: float = Field(..., description="Mean duration (1 / rate)", gt=0)

    def to_distribution(self) -> Distribution:
        return Exponential(self.mean)


class ConstantDistribution(BaseModel):
    """A fixed duration."""
    type: Literal["Constant"] = "Constant"
    value: float = Field(..., description="Duration", gt=0)

    def to_distribution(self) -> Distribution:
        return Constant(self.value)


DistributionConfig = Annotated[
    Union[NormalDistribution, ExponentialDistribution, ConstantDistribution],
    Field(discriminator="type"),
]


def _number_to_constant(value: Any) -> Any:
    """Allows `duration: 5` as shorthand for a Constant distribution."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return {"type": "Constant", "value": value}
    return value


# -- Resources and trajectories -------------------------------------

class ResourceConfig(BaseModel):
    """A finite-capacity resource."""
    capacity: int = Field(1, description="Concurrent holders", ge=1)
    queue_size: Optional[int] = Field(
        None, description="Wait queue bound; null means unbounded", ge=0)
    priority: bool = Field(False, description="Order the queue by priority")


class SeizeStep(BaseModel):
    type: Literal["seize"] = "seize"
    resource: str = Field(..., min_length=1)
    amount: int = Field(1, ge=1)

    def to_step(self) -> Step:
        return Seize(self.resource, self.amount)


class TimeoutStep(BaseModel):
    type: Literal["timeout"] = "timeout"
    duration: DistributionConfig

    @field_validator("duration", mode="before")
    @classmethod
    def allow_plain_number(cls, v: Any) -> Any:
        return _number_to_constant(v)

    def to_step(self) -> Step:
        return Timeout(self.duration.to_distribution())


class ReleaseStep(BaseModel):
    type: Literal["release"] = "release"
    resource: str = Field(..., min_length=1)
    amount: int = Field(1, ge=1)

    def to_step(self) -> Step:
        return Release(self.resource, self.amount)


StepConfig = Annotated[
    Union[SeizeStep, TimeoutStep, ReleaseStep],
    Field(discriminator="type"),
]


class GeneratorConfig(BaseModel):
    """A source of entities."""
    name: str = Field(..., min_length=1)
    trajectory: str = Field(..., description="Name of a trajectory")
    interarrival: DistributionConfig
    priority: int = Field(0, description="Lower is served first")
    limit: Optional[int] = Field(None, description="Max entities", ge=0)

    @field_validator("interarrival", mode="before")
    @classmethod
    def allow_plain_number(cls, v: Any) -> Any:
        return _number_to_constant(v)


# -- Scenario ---------------------------------------------------------

class SimulationConfig(BaseModel):
    """
    A complete scenario: resources, trajectories, generators and the
    stop condition.
    """
    name: str = "sim"
    seed: Optional[int] = Field(None, description="Random seed")
    until: float = Field(math.inf, description="Simulated stop time", ge=0)
    max_events: Optional[int] = Field(None, ge=0)
    resources: Dict[str, ResourceConfig] = Field(..., min_length=1)
    trajectories: Dict[str, List[StepConfig]] = Field(..., min_length=1)
    generators: List[GeneratorConfig] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_references(self) -> "SimulationConfig":
        """Validate every name refers to something that exists."""
        for name, steps in self.trajectories.items():
            if not steps:
                raise ValueError(f"Trajectory '{name}' has no steps")
            for index, step in enumerate(steps):
                resource = getattr(step, "resource", None)
                if resource is not None and resource not in self.resources:
                    raise ValueError(
                        f"Trajectory '{name}', step {index}: unknown "
                        f"resource '{resource}'")

        seen = set()
        for generator in self.generators:
            if generator.name in seen:
                raise ValueError(
                    f"Duplicate generator name '{generator.name}'")
            seen.add(generator.name)
            if generator.trajectory not in self.trajectories:
                raise ValueError(
                    f"Generator '{generator.name}' refers to unknown "
                    f"trajectory '{generator.trajectory}'")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        """
        Validate a plain dictionary (e.g. parsed YAML).

        Raises:
            ConfigurationError: If the data does not describe a valid
                                scenario.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            log.error(f"Scenario validation failed with "
                      f"{e.error_count()} error(s).")
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def build_trajectories(self) -> Dict[str, Trajectory]:
        return {
            name: Trajectory(name, [step.to_step() for step in steps])
            for name, steps in self.trajectories.items()
        }

    def build(self, seed: Optional[int] = None,
              replication: int = 0) -> Simulation:
        """
        Create an IDLE, validated Simulation for this scenario.

        Args:
            seed: Overrides the configured seed.
            replication: Replication index stamped on every record.
        """
        sim = Simulation(seed=self.seed if seed is None else seed,
                         name=self.name, replication=replication)
        for name, resource in self.resources.items():
            sim.add_resource(
                name,
                capacity=resource.capacity,
                queue_size=math.inf if resource.queue_size is None
                else resource.queue_size,
                priority=resource.priority,
            )

        trajectories = self.build_trajectories()
        for generator in self.generators:
            sim.add_generator(
                generator.name,
                trajectories[generator.trajectory],
                generator.interarrival.to_distribution(),
                priority=generator.priority,
                limit=generator.limit,
            )

        sim.validate()
        return sim

    def run(self, seed: Optional[int] = None,
            replication: int = 0) -> Simulation:
        """Build and run to the configured stop condition."""
        return self.build(seed, replication).run(self.until, self.max_events)
