# tests/test_resource.py

"""
Unit tests for the FIFO Resource class.

This file tests the core state logic of the Resource in isolation
(no engine). It verifies that:
1. Entities are served immediately while capacity allows.
2. Entities queue in FIFO order when capacity is exhausted.
3. Arrivals are REJECTED when the wait queue is full (balking).
4. Releasing hands capacity to waiting entities whose request fits.
5. Every transition is sampled into the bound Monitor, and every
   seize attempt is logged as a request.
6. Malformed resources fail at construction.
"""

import math

import pytest

# Import the classes we are testing and the constants
from microsim import (
    ConfigurationError,
    Entity,
    EntityState,
    Monitor,
    RequestResult,
    Resource
)


def make_entity(name: str = "", priority: int = 0) -> Entity:
    """A stand-alone entity; resources never look at its trajectory."""
    return Entity(id=hash(name), name=name, start_time=0.0,
                  trajectory=None, priority=priority)


@pytest.fixture
def resource_1_1() -> Resource:
    """
    Returns a resource with:
    - 1 server (capacity=1)
    - 1 queue slot (queue_size=1)
    """
    return Resource("app", capacity=1, queue_size=1, monitor=Monitor())


@pytest.fixture
def resource_2_2() -> Resource:
    """
    Returns a resource with:
    - 2 servers (capacity=2)
    - 2 queue slots (queue_size=2)
    """
    return Resource("app", capacity=2, queue_size=2, monitor=Monitor())


def test_initialization():
    """Test that the resource initializes with both size args."""
    resource = Resource("db", capacity=5, queue_size=10)

    assert resource.name == "db"
    assert resource.capacity == 5
    assert resource.queue_size == 10
    assert resource.queue_length == 0
    assert resource.in_service == 0


def test_default_queue_is_unbounded():
    resource = Resource("app")
    assert resource.capacity == 1
    assert resource.queue_size == math.inf

    resource.seize(make_entity("e0"), 0.0)
    for i in range(100):
        result = resource.seize(make_entity(f"e{i + 1}"), float(i))
        assert result == RequestResult.QUEUED
    assert resource.queue_length == 100


@pytest.mark.parametrize("capacity", [0, -1, 1.5, True])
def test_invalid_capacity(capacity):
    with pytest.raises(ConfigurationError):
        Resource("app", capacity=capacity)


@pytest.mark.parametrize("queue_size", [-1, 2.5])
def test_invalid_queue_size(queue_size):
    with pytest.raises(ConfigurationError):
        Resource("app", capacity=1, queue_size=queue_size)


def test_configuration_error_is_a_value_error():
    with pytest.raises(ValueError):
        Resource("app", capacity=0)


def test_zero_queue_rejects_immediately():
    """Test that a resource with a zero-size queue is valid (G/G/c/c)."""
    resource = Resource("app", capacity=1, queue_size=0)
    e1 = make_entity("e1")
    e2 = make_entity("e2")

    assert resource.seize(e1, 0.0) == RequestResult.SERVED_IMMEDIATELY
    assert resource.seize(e2, 1.0) == RequestResult.REJECTED_QUEUE_FULL
    assert resource.total_rejections == 1


def test_seize_server_free(resource_1_1: Resource):
    """Test 'seize' when a server is free."""
    entity = make_entity("e1")
    result = resource_1_1.seize(entity, current_time=10.0)

    assert result == RequestResult.SERVED_IMMEDIATELY
    assert entity.state == EntityState.IN_SERVICE
    assert entity.held == {"app": 1}
    assert resource_1_1.in_service == 1
    assert resource_1_1.queue_length == 0

    usage = entity.usages[0]
    assert usage.requested_at == 10.0
    assert usage.granted_at == 10.0
    assert usage.released_at is None


def test_seize_server_busy_queue_available(resource_1_1: Resource):
    """The server is busy but the queue has space: entity is QUEUED."""
    e1 = make_entity("e1_server")
    e2 = make_entity("e2_queue")

    resource_1_1.seize(e1, current_time=10.0)
    result = resource_1_1.seize(e2, current_time=11.0)

    assert result == RequestResult.QUEUED
    assert e2.state == EntityState.WAITING_FOR_RESOURCE
    assert resource_1_1.in_service == 1
    assert resource_1_1.queue_length == 1
    assert resource_1_1.queue[0][0] is e2
    assert e2.usages[0].granted_at is None


def test_seize_reject_on_full_queue(resource_1_1: Resource):
    """
    Test the core "balking" (rejection) logic.
    - e1 takes the server, e2 the queue slot, e3 is REJECTED.
    """
    e1 = make_entity("e1_server")
    e2 = make_entity("e2_queue")
    e3 = make_entity("e3_rejected")

    resource_1_1.seize(e1, current_time=10.0)
    resource_1_1.seize(e2, current_time=11.0)
    result = resource_1_1.seize(e3, current_time=12.0)

    assert result == RequestResult.REJECTED_QUEUE_FULL
    # The resource never touches the rejected entity's state
    assert e3.state == EntityState.IDLE
    assert e3.held == {}

    # Resource state is unchanged
    assert resource_1_1.in_service == 1
    assert resource_1_1.queue_length == 1
    assert resource_1_1.queue[0][0] is e2
    assert resource_1_1.total_arrivals == 3
    assert resource_1_1.total_rejections == 1


def test_release_queue_empty(resource_1_1: Resource):
    """Test 'release' when nobody is waiting."""
    entity = make_entity("e1")
    resource_1_1.seize(entity, current_time=10.0)

    granted = resource_1_1.release(entity, current_time=15.0)

    assert granted == []
    assert entity.state == EntityState.IDLE
    assert entity.held == {}
    assert entity.usages[0].released_at == 15.0
    assert resource_1_1.in_service == 0
    assert resource_1_1.total_served == 1


def test_release_serves_next_in_fifo_order(resource_2_2: Resource):
    """
    - e1, e2 fill the servers; e3, e4 fill the queue (e3 first).
    - When e1 releases, e3 is served (not e4).
    """
    e1, e2, e3, e4 = (make_entity(f"e{i}") for i in range(1, 5))

    resource_2_2.seize(e1, current_time=10.0)
    resource_2_2.seize(e2, current_time=11.0)
    resource_2_2.seize(e3, current_time=12.0)
    resource_2_2.seize(e4, current_time=13.0)
    assert resource_2_2.queue[0][0] is e3

    granted = resource_2_2.release(e1, current_time=15.0)

    assert granted == [e3]
    assert e1.state == EntityState.IDLE
    assert e3.state == EntityState.IN_SERVICE
    assert e4.state == EntityState.WAITING_FOR_RESOURCE
    assert e3.usages[0].granted_at == 15.0
    assert resource_2_2.in_service == 2
    assert resource_2_2.queue_length == 1
    assert resource_2_2.queue[0][0] is e4


def test_release_by_non_holder_raises(resource_1_1: Resource):
    """An entity can never release what it does not hold."""
    with pytest.raises(ValueError):
        resource_1_1.release(make_entity("stranger"), current_time=1.0)


def test_amount_must_fit_capacity(resource_2_2: Resource):
    with pytest.raises(ValueError):
        resource_2_2.seize(make_entity("big"), 0.0, amount=3)
    with pytest.raises(ValueError):
        resource_2_2.seize(make_entity("none"), 0.0, amount=0)


def test_release_grants_every_waiter_that_fits():
    """Freed capacity goes to the longest-waiting entities that fit."""
    resource = Resource("pool", capacity=3)
    big = make_entity("big")
    needs_two = make_entity("needs_two")
    one_a = make_entity("one_a")
    one_b = make_entity("one_b")

    resource.seize(big, 0.0, amount=3)
    resource.seize(needs_two, 1.0, amount=2)
    resource.seize(one_a, 2.0, amount=1)
    resource.seize(one_b, 3.0, amount=1)

    # Free 2 units: needs_two fits first and takes both.
    granted = resource.release(big, 5.0, amount=2)
    assert granted == [needs_two]
    assert resource.in_service == 3

    # Free the last unit of big: one_a (longest waiting that fits).
    granted = resource.release(big, 6.0, amount=1)
    assert granted == [one_a]
    assert big.held == {}
    assert big.state == EntityState.IDLE
    assert resource.queue_length == 1


def test_partial_release_keeps_usage_open():
    resource = Resource("pool", capacity=2)
    entity = make_entity("e")
    resource.seize(entity, 0.0, amount=2)

    resource.release(entity, 1.0, amount=1)
    assert entity.held == {"pool": 1}
    assert entity.state == EntityState.IN_SERVICE
    assert entity.usages[0].released_at is None

    resource.release(entity, 2.0, amount=1)
    assert entity.usages[0].released_at == 2.0
    assert resource.total_served == 1


def test_every_transition_is_sampled(resource_1_1: Resource):
    monitor = resource_1_1.monitor
    e1, e2, e3 = (make_entity(f"e{i}") for i in range(1, 4))

    resource_1_1.seize(e1, 1.0)    # granted
    resource_1_1.seize(e2, 2.0)    # queued
    resource_1_1.seize(e3, 3.0)    # rejected
    resource_1_1.release(e1, 4.0)  # release + grant of e2

    states = [(s.time, s.server, s.queue) for s in monitor.samples]
    assert states == [
        (1.0, 1, 0),
        (2.0, 1, 1),
        (3.0, 1, 1),
        (4.0, 0, 1),
        (4.0, 1, 0),
    ]
    for sample in monitor.samples:
        assert 0 <= sample.server <= sample.capacity
        assert 0 <= sample.queue <= sample.queue_size

    requests = [(r.time, r.rejected) for r in monitor.requests]
    assert requests == [(1.0, False), (2.0, False), (3.0, True)]


def test_reset(resource_1_1: Resource):
    resource_1_1.seize(make_entity("a"), 0.0)
    resource_1_1.seize(make_entity("b"), 0.0)
    resource_1_1.reset()

    assert resource_1_1.in_service == 0
    assert resource_1_1.queue_length == 0
    assert resource_1_1.users == {}
    assert resource_1_1.total_arrivals == 0


def test_waiter_that_does_not_fit_is_skipped():
    """A large waiting request does not block a smaller one behind it."""
    resource = Resource("pool", capacity=3)
    holder_a = make_entity("holder_a")
    holder_b = make_entity("holder_b")
    needs_three = make_entity("needs_three")
    needs_one = make_entity("needs_one")

    resource.seize(holder_a, 0.0, amount=2)
    resource.seize(holder_b, 0.0, amount=1)
    resource.seize(needs_three, 1.0, amount=3)
    resource.seize(needs_one, 2.0, amount=1)

    granted = resource.release(holder_b, 3.0)

    assert granted == [needs_one]
    assert needs_three.state == EntityState.WAITING_FOR_RESOURCE
    assert resource.queue[0][0] is needs_three
