# src/microsim/distributions.py

"""
Random variate generation for inter-arrival gaps and hold times.

This module provides small, immutable distribution descriptions
(`Normal`, `Exponential`, `Constant`) and the `RandomSource` that
draws from them. A `RandomSource` wraps a seeded
`numpy.random.Generator`; each simulation owns exactly one, so two
simulations never share random state.

Every value drawn through `RandomSource.sample` is a duration and is
strictly positive. Distributions that cannot produce positive values
are rejected when they are constructed, and a non-positive draw from
an otherwise valid distribution (e.g. the left tail of a Gaussian) is
resampled. The Gaussian is therefore effectively truncated at zero.
"""

import logging
import math
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np

from .exceptions import ConfigurationError, SimulationError

log = logging.getLogger(__name__)

# Upper bound on consecutive non-positive draws before giving up.
MAX_RESAMPLES = 1000


class Distribution:
    """Base class for duration distributions."""

    def draw(self, rng: np.random.Generator) -> float:
        raise NotImplementedError


@dataclass(frozen=True)
class Normal(Distribution):
    """
    Gaussian durations, bounded below at zero.

    Args:
        mean (float): Location of the distribution. Must be > 0.
        sd (float): Standard deviation. Defaults to 1.0, as in the
                    microservice experiments. Must be >= 0.
    """

    mean: float
    sd: float = 1.0

    def __post_init__(self):
        if not math.isfinite(self.mean) or self.mean <= 0:
            raise ConfigurationError(
                f"Normal mean must be a finite number > 0, got {self.mean}.")
        if not math.isfinite(self.sd) or self.sd < 0:
            raise ConfigurationError(
                f"Normal sd must be a finite number >= 0, got {self.sd}.")

    def draw(self, rng: np.random.Generator) -> float:
        return float(rng.normal(self.mean, self.sd))


@dataclass(frozen=True)
class Exponential(Distribution):
    """Exponential durations with the given mean (1 / rate)."""

    mean: float

    def __post_init__(self):
        if not math.isfinite(self.mean) or self.mean <= 0:
            raise ConfigurationError(
                f"Exponential mean must be a finite number > 0, "
                f"got {self.mean}.")

    def draw(self, rng: np.random.Generator) -> float:
        return float(rng.exponential(self.mean))


@dataclass(frozen=True)
class Constant(Distribution):
    """A fixed duration. Consumes no random numbers."""

    value: float

    def __post_init__(self):
        if not math.isfinite(self.value) or self.value <= 0:
            raise ConfigurationError(
                f"Constant duration must be a finite number > 0, "
                f"got {self.value}.")

    @property
    def mean(self) -> float:
        return self.value

    def draw(self, rng: np.random.Generator) -> float:
        return self.value


DistributionLike = Union[Distribution, float, int]


def as_distribution(value: DistributionLike) -> Distribution:
    """
    Coerces a bare number into a `Constant`; passes distributions through.

    Raises:
        ConfigurationError: If `value` is neither a number nor a
                            `Distribution`.
    """
    if isinstance(value, Distribution):
        return value
    # bool is an int subclass but never a meaningful duration
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Constant(float(value))
    raise ConfigurationError(
        f"Expected a Distribution or a positive number, got {value!r}.")


class RandomSource:
    """
    The single source of randomness for one simulation.

    Attributes:
        seed (Optional[int]): The seed the generator was created with.
                              `None` draws fresh OS entropy.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed: Optional[int] = seed
        self.rng: np.random.Generator = np.random.default_rng(seed)
        self.total_resamples: int = 0
        log.debug(f"RandomSource initialized (seed={seed})")

    def reseed(self, seed: Optional[int] = None):
        """Restarts the stream. Without an argument, reuses `self.seed`."""
        if seed is not None:
            self.seed = seed
        self.rng = np.random.default_rng(self.seed)
        self.total_resamples = 0

    def sample(self, distribution: DistributionLike) -> float:
        """
        Draws one strictly positive duration.

        Args:
            distribution (DistributionLike): A `Distribution` or a
                                             positive number.

        Returns:
            float: The sampled value.

        Raises:
            SimulationError: If `MAX_RESAMPLES` consecutive draws were
                             all non-positive.
        """
        dist = as_distribution(distribution)
        for _ in range(MAX_RESAMPLES):
            value = dist.draw(self.rng)
            if value > 0:
                return value
            self.total_resamples += 1
            log.debug(f"Non-positive draw {value:.4f} from {dist}; "
                      f"resampling.")

        log.error(f"{dist} produced {MAX_RESAMPLES} non-positive draws "
                  f"in a row.")
        raise SimulationError(
            f"Could not draw a positive duration from {dist} after "
            f"{MAX_RESAMPLES} attempts.")
