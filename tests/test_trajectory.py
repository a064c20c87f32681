# tests/test_trajectory.py

"""
Unit tests for Trajectory construction and validation.

Trajectories are shared, immutable step sequences; validation runs
against the registered resources before a simulation starts.
"""

import logging

import pytest

from microsim import (
    ConfigurationError,
    Constant,
    Normal,
    Release,
    Resource,
    Seize,
    Timeout,
    Trajectory
)


@pytest.fixture
def resources():
    return {
        "app": Resource("app", capacity=1),
        "database": Resource("database", capacity=2),
    }


@pytest.fixture
def api() -> Trajectory:
    return Trajectory("api", [Seize("app"), Timeout(Normal(10)),
                              Release("app")])


def test_steps_are_an_immutable_sequence(api: Trajectory):
    assert len(api) == 3
    assert isinstance(api.steps, tuple)
    assert api[0] == Seize("app")
    assert list(api) == list(api.steps)


def test_timeout_accepts_plain_number():
    assert Timeout(5).duration == Constant(5.0)


def test_non_step_rejected():
    with pytest.raises(ConfigurationError):
        Trajectory("bad", [Seize("app"), "timeout"])


def test_join_returns_new_trajectory(api: Trajectory):
    db = Trajectory("db", [Seize("database"), Timeout(3),
                           Release("database")])
    joined = api + db

    assert len(joined) == 6
    assert joined.name == "api+db"
    assert joined.resources == ("app", "database")
    assert len(api) == 3


def test_valid_trajectory_passes(api: Trajectory, resources):
    api.validate(resources)


def test_empty_trajectory_rejected(resources):
    with pytest.raises(ConfigurationError):
        Trajectory("empty", []).validate(resources)


def test_unknown_resource_rejected(resources):
    trajectory = Trajectory("t", [Seize("cache"), Timeout(1),
                                  Release("cache")])
    with pytest.raises(ConfigurationError, match="unknown resource 'cache'"):
        trajectory.validate(resources)


def test_amount_above_capacity_rejected(resources):
    trajectory = Trajectory("t", [Seize("database", amount=3), Timeout(1),
                                  Release("database", amount=3)])
    with pytest.raises(ConfigurationError):
        trajectory.validate(resources)


def test_nested_seize_above_capacity_rejected(resources):
    trajectory = Trajectory("t", [Seize("app"), Seize("app"), Timeout(1),
                                  Release("app"), Release("app")])
    with pytest.raises(ConfigurationError):
        trajectory.validate(resources)


def test_release_without_seize_rejected(resources):
    trajectory = Trajectory("t", [Timeout(1), Release("app")])
    with pytest.raises(ConfigurationError, match="only 0 seized"):
        trajectory.validate(resources)


def test_non_positive_amount_rejected(resources):
    trajectory = Trajectory("t", [Seize("app", amount=0)])
    with pytest.raises(ConfigurationError):
        trajectory.validate(resources)


def test_unreleased_resource_warns(resources, caplog):
    caplog.set_level(logging.WARNING, logger="microsim")
    Trajectory("t", [Seize("app"), Timeout(1)]).validate(resources)
    assert "released automatically" in caplog.text
