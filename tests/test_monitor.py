# tests/test_monitor.py

"""
Unit tests for the Monitor (src/microsim/monitor.py).

The Monitor is fed by hand here, without an engine, to check the
shape and contents of the DataFrames it exposes.
"""

import math

import pytest
from pytest import approx

from microsim import Entity, Monitor
from microsim.entity import ResourceUsage
from microsim.monitor import ArrivalRecord


def make_entity(name: str, start_time: float) -> Entity:
    return Entity(id=hash(name), name=name, start_time=start_time,
                  trajectory=None)


@pytest.fixture
def monitor() -> Monitor:
    """
    One finished request that waited 2 for the app and held it 5, and
    one rejected request.
    """
    monitor = Monitor(replication=3)

    served = make_entity("request0", 1.0)
    monitor.record_start(served)
    served.usages.append(ResourceUsage("app", 1, requested_at=1.0,
                                       granted_at=3.0, released_at=8.0))
    served.activity_time = 5.0
    served.end_time = 8.0
    monitor.record_arrival(served, finished=True)

    rejected = make_entity("request1", 2.0)
    monitor.record_start(rejected)
    rejected.usages.append(ResourceUsage("app", 1, requested_at=2.0))
    rejected.end_time = 2.0
    monitor.record_arrival(rejected, finished=False)

    monitor.record_resource("app", 1.0, server=1, queue=0, capacity=1,
                            queue_size=20)
    monitor.record_request("app", 1.0, rejected=False)
    monitor.record_request("app", 2.0, rejected=True)
    return monitor


def test_arrival_frame(monitor: Monitor):
    arrivals = monitor.get_arrivals()

    assert list(arrivals.columns) == [
        "name", "start_time", "end_time", "activity_time", "waiting_time",
        "finished", "replication"]
    assert list(arrivals["name"]) == ["request0", "request1"]
    assert list(arrivals["waiting_time"]) == [2.0, 0.0]
    assert list(arrivals["finished"]) == [True, False]
    assert (arrivals["replication"] == 3).all()


def test_per_resource_frame_skips_unserved_usages(monitor: Monitor):
    usage = monitor.get_arrivals(per_resource=True)

    assert list(usage.columns) == ["name", "resource", "start_time",
                                   "end_time", "activity_time", "replication"]
    assert len(usage) == 1
    row = usage.iloc[0]
    assert row["name"] == "request0"
    assert row["start_time"] == 1.0
    assert row["end_time"] == 8.0
    assert row["activity_time"] == 5.0


def test_resource_frame(monitor: Monitor):
    resources = monitor.get_resources()

    assert len(resources) == 1
    row = resources.iloc[0]
    assert row["resource"] == "app"
    assert row["system"] == 1
    assert row["limit"] == 21
    assert row["replication"] == 3


def test_request_frame(monitor: Monitor):
    requests = monitor.get_requests()

    assert list(requests.columns) == ["resource", "time", "rejected",
                                      "replication"]
    assert list(requests["time"]) == [1.0, 2.0]
    assert list(requests["rejected"]) == [False, True]
    assert (requests["replication"] == 3).all()


def test_ongoing_entities(monitor: Monitor):
    in_flight = make_entity("request2", 9.0)
    in_flight.activity_time = 4.0
    monitor.record_start(in_flight)

    assert len(monitor.get_arrivals()) == 2
    ongoing = monitor.get_arrivals(ongoing=True)
    assert len(ongoing) == 3
    row = ongoing.iloc[-1]
    assert row["name"] == "request2"
    assert math.isnan(row["end_time"])
    assert not row["finished"]


def test_leaving_entity_is_no_longer_active(monitor: Monitor):
    assert monitor.active == {}


def test_waiting_time_never_negative():
    record = ArrivalRecord(name="r", start_time=0.1, end_time=0.3,
                           activity_time=0.2 + 1e-12, finished=True)
    assert record.waiting_time == 0.0

    record = ArrivalRecord(name="r", start_time=1.0, end_time=10.0,
                           activity_time=4.0, finished=True)
    assert record.waiting_time == approx(5.0)


def test_empty_frames_keep_their_columns():
    monitor = Monitor()
    assert monitor.get_arrivals().empty
    assert "waiting_time" in monitor.get_arrivals().columns
    assert "resource" in monitor.get_arrivals(per_resource=True).columns
    assert "queue" in monitor.get_resources().columns
    assert "rejected" in monitor.get_requests().columns


def test_clear(monitor: Monitor):
    monitor.record_start(make_entity("request2", 9.0))
    monitor.clear()

    assert monitor.get_arrivals(ongoing=True).empty
    assert monitor.get_arrivals(per_resource=True).empty
    assert monitor.get_resources().empty
    assert monitor.get_requests().empty
