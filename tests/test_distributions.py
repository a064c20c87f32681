# tests/test_distributions.py

"""
Unit tests for distributions and the RandomSource.

It verifies that:
1. Distributions that cannot produce positive durations are rejected.
2. Samples are always strictly positive (non-positive draws resampled).
3. Identical seeds give identical streams.
"""

import numpy as np
import pytest
from pytest import approx

from microsim import (
    ConfigurationError,
    Constant,
    Exponential,
    Normal,
    RandomSource,
    SimulationError
)
from microsim.distributions import MAX_RESAMPLES, Distribution, as_distribution


@pytest.mark.parametrize("mean, sd", [(0, 1), (-5, 1), (5, -1),
                                      (float("nan"), 1), (5, float("inf"))])
def test_invalid_normal(mean, sd):
    with pytest.raises(ConfigurationError):
        Normal(mean, sd)


def test_normal_default_sd():
    assert Normal(5).sd == 1.0


@pytest.mark.parametrize("factory", [lambda: Exponential(0),
                                     lambda: Constant(0),
                                     lambda: Constant(-1)])
def test_invalid_other_distributions(factory):
    with pytest.raises(ConfigurationError):
        factory()


def test_as_distribution():
    assert as_distribution(3) == Constant(3.0)
    assert as_distribution(Normal(2)) == Normal(2)
    with pytest.raises(ConfigurationError):
        as_distribution("ten")
    with pytest.raises(ConfigurationError):
        as_distribution(True)


def test_same_seed_same_stream():
    a = RandomSource(seed=7)
    b = RandomSource(seed=7)
    dist = Normal(10, 2)

    assert [a.sample(dist) for _ in range(50)] == \
        [b.sample(dist) for _ in range(50)]


def test_different_seed_different_stream():
    a = RandomSource(seed=1)
    b = RandomSource(seed=2)
    assert a.sample(Normal(10, 2)) != b.sample(Normal(10, 2))


def test_reseed_restarts_stream():
    source = RandomSource(seed=3)
    first = [source.sample(Exponential(1)) for _ in range(5)]
    source.reseed()
    assert [source.sample(Exponential(1)) for _ in range(5)] == first


def test_gaussian_left_tail_is_resampled():
    """
    Normal(1, 1) draws a non-positive value about 16% of the time;
    none of them may come out of the source.
    """
    source = RandomSource(seed=11)
    samples = [source.sample(Normal(1, 1)) for _ in range(2000)]

    assert min(samples) > 0
    assert source.total_resamples > 0


def test_sample_means_match():
    source = RandomSource(seed=5)
    samples = np.array([source.sample(Normal(10, 1)) for _ in range(5000)])
    assert samples.mean() == approx(10.0, abs=0.1)


def test_constant_consumes_no_randomness():
    a = RandomSource(seed=9)
    b = RandomSource(seed=9)
    a.sample(Constant(4))
    assert a.sample(Normal(10)) == b.sample(Normal(10))
    assert a.sample(4) == 4.0


class _AlwaysZero(Distribution):
    def draw(self, rng):
        return 0.0


def test_resample_exhaustion_raises():
    source = RandomSource(seed=0)
    with pytest.raises(SimulationError):
        source.sample(_AlwaysZero())
    assert source.total_resamples == MAX_RESAMPLES
