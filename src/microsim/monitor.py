# src/microsim/monitor.py

"""
Provides the Monitor, the append-only log of a simulation run.

The Monitor is a passive component: it only records data when the
engine (arrivals) or a resource (occupancy samples) reports to it. It
never feeds anything back into the simulation. After a run, the logs
are exposed as `pandas.DataFrame` objects for downstream analysis:

- arrivals: one row per entity that left the system (finished or
  rejected), optionally also the ones still in flight.
- per-resource arrivals: one row per completed resource usage.
- resources: one row per resource state transition.
- requests: one row per seize attempt, rejected or not.
"""

import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Dict, List

import pandas as pd

from .entity import Entity

# Set up the module-level logger
log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrivalRecord:
    """The life of one entity, written once when it leaves the system."""

    name: str
    start_time: float
    end_time: float
    activity_time: float
    finished: bool
    replication: int = 0

    @property
    def waiting_time(self) -> float:
        # Clamp float round-off when no time was spent waiting.
        return max(0.0, (self.end_time - self.start_time) - self.activity_time)


@dataclass(frozen=True)
class UsageRecord:
    """One completed seize/release of one resource by one entity."""

    name: str
    resource: str
    start_time: float
    end_time: float
    activity_time: float
    replication: int = 0


@dataclass(frozen=True)
class OccupancySample:
    """The state of a resource right after a transition."""

    resource: str
    time: float
    server: int
    queue: int
    capacity: int
    queue_size: float
    replication: int = 0

    @property
    def system(self) -> int:
        return self.server + self.queue

    @property
    def limit(self) -> float:
        return self.capacity + self.queue_size


@dataclass(frozen=True)
class RequestRecord:
    """One seize of a resource: when it was made and whether it balked."""

    resource: str
    time: float
    rejected: bool
    replication: int = 0


ARRIVAL_COLUMNS = [f.name for f in fields(ArrivalRecord)]
ARRIVAL_COLUMNS.insert(ARRIVAL_COLUMNS.index("finished"), "waiting_time")
USAGE_COLUMNS = [f.name for f in fields(UsageRecord)]
RESOURCE_COLUMNS = ["resource", "time", "server", "queue", "capacity",
                    "queue_size", "system", "limit", "replication"]
REQUEST_COLUMNS = [f.name for f in fields(RequestRecord)]


class Monitor:
    """
    Collects arrival and occupancy records for one simulation.

    Attributes:
        replication (int): Copied into every record so that logs from
                           several runs can be concatenated.
        arrivals (List[ArrivalRecord]): In the order entities left.
        usages (List[UsageRecord]): In the order entities left.
        samples (List[OccupancySample]): In simulation order.
        requests (List[RequestRecord]): In simulation order.
    """

    def __init__(self, replication: int = 0):
        self.replication: int = replication
        self.arrivals: List[ArrivalRecord] = []
        self.usages: List[UsageRecord] = []
        self.samples: List[OccupancySample] = []
        self.requests: List[RequestRecord] = []

        # Entities that entered the system and have not left yet.
        self.active: Dict[int, Entity] = {}

    def clear(self):
        self.arrivals.clear()
        self.usages.clear()
        self.samples.clear()
        self.requests.clear()
        self.active.clear()

    # -- Recording ------------------------------------------------------

    def record_start(self, entity: Entity):
        """Registers an entity that has just entered the system."""
        self.active[entity.id] = entity

    def record_arrival(self, entity: Entity, finished: bool):
        """
        Writes the final record of an entity leaving the system.

        Args:
            entity (Entity): A finished or rejected entity; its
                             `end_time` must be set.
            finished (bool): False for a rejected (dropped) request.
        """
        self.active.pop(entity.id, None)
        record = ArrivalRecord(
            name=entity.name,
            start_time=entity.start_time,
            end_time=entity.end_time,
            activity_time=entity.activity_time,
            finished=finished,
            replication=self.replication,
        )
        self.arrivals.append(record)

        for usage in entity.usages:
            if usage.granted_at is None or usage.released_at is None:
                continue
            self.usages.append(UsageRecord(
                name=entity.name,
                resource=usage.resource,
                start_time=usage.requested_at,
                end_time=usage.released_at,
                activity_time=usage.released_at - usage.granted_at,
                replication=self.replication,
            ))

        log.debug(f"T={entity.end_time:.2f}: {entity.name} left the system "
                  f"(finished={finished}, "
                  f"waiting={record.waiting_time:.2f})")

    def record_resource(self, resource: str, time: float, server: int,
                        queue: int, capacity: int, queue_size: float):
        """Appends one occupancy sample."""
        self.samples.append(OccupancySample(
            resource=resource,
            time=time,
            server=server,
            queue=queue,
            capacity=capacity,
            queue_size=queue_size,
            replication=self.replication,
        ))

    def record_request(self, resource: str, time: float, rejected: bool):
        """Appends one seize attempt."""
        self.requests.append(RequestRecord(
            resource=resource,
            time=time,
            rejected=rejected,
            replication=self.replication,
        ))

    # -- Output ---------------------------------------------------------

    def get_arrivals(self, per_resource: bool = False,
                     ongoing: bool = False) -> pd.DataFrame:
        """
        Returns the arrival log as a DataFrame.

        Args:
            per_resource (bool): One row per resource usage instead of
                                 one row per entity.
            ongoing (bool): Also include entities still in the system,
                            with NaN `end_time`. Ignored when
                            `per_resource` is set.

        Returns:
            pd.DataFrame: Columns `name, start_time, end_time,
            activity_time, waiting_time, finished, replication`, or
            `name, resource, start_time, end_time, activity_time,
            replication` for the per-resource view.
        """
        if per_resource:
            return pd.DataFrame([asdict(u) for u in self.usages],
                                columns=USAGE_COLUMNS)

        rows = []
        for record in self.arrivals:
            row = asdict(record)
            row["waiting_time"] = record.waiting_time
            rows.append(row)

        if ongoing:
            for entity in self.active.values():
                rows.append({
                    "name": entity.name,
                    "start_time": entity.start_time,
                    "end_time": math.nan,
                    "activity_time": entity.activity_time,
                    "waiting_time": math.nan,
                    "finished": False,
                    "replication": self.replication,
                })

        return pd.DataFrame(rows, columns=ARRIVAL_COLUMNS)

    def get_resources(self) -> pd.DataFrame:
        """
        Returns the occupancy time series of every resource.

        Returns:
            pd.DataFrame: Columns `resource, time, server, queue,
            capacity, queue_size, system, limit, replication`.
        """
        rows = [
            {
                "resource": s.resource,
                "time": s.time,
                "server": s.server,
                "queue": s.queue,
                "capacity": s.capacity,
                "queue_size": s.queue_size,
                "system": s.system,
                "limit": s.limit,
                "replication": s.replication,
            }
            for s in self.samples
        ]
        return pd.DataFrame(rows, columns=RESOURCE_COLUMNS)

    def get_requests(self) -> pd.DataFrame:
        """
        Returns every seize attempt, including the rejected ones.

        Returns:
            pd.DataFrame: Columns `resource, time, rejected, replication`.
        """
        return pd.DataFrame([asdict(r) for r in self.requests],
                            columns=REQUEST_COLUMNS)
