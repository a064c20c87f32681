# src/microsim/measure.py

"""
KPIs of one resource, computed from a finished run.

The Monitor only keeps raw records. A `Measure` selects the records of
a single resource and reduces them to the usual queueing figures:

- flow: arrivals, served, rejected, probability of rejection, throughput
- per-usage times: waiting, holding and response, each as a `Summary`
  with a normal-approximation 95% confidence interval
- time averages of the occupancy samples: queue length, busy units,
  utilization

Building a Measure never changes the simulation.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .base_resource import BaseResource
from .monitor import Monitor

log = logging.getLogger(__name__)

# Two-sided 95% quantile of the standard normal distribution.
Z_95 = 1.96


@dataclass(frozen=True)
class Summary:
    """Count, mean, sample standard deviation and a confidence interval."""

    count: int
    mean: float
    std_dev: float
    ci_low: float
    ci_high: float

    @classmethod
    def of(cls, values: Sequence[float], z: float = Z_95) -> "Summary":
        data = np.asarray(values, dtype=float)
        if data.size == 0:
            return cls(0, 0.0, 0.0, 0.0, 0.0)

        mean = float(data.mean())
        std_dev = float(data.std(ddof=1)) if data.size > 1 else 0.0
        half_width = z * std_dev / math.sqrt(data.size)
        return cls(int(data.size), mean, std_dev,
                   mean - half_width, mean + half_width)

    @property
    def confidence_interval(self) -> Tuple[float, float]:
        return self.ci_low, self.ci_high


def time_average(times: Sequence[float], values: Sequence[float],
                 start: float, end: float) -> float:
    """
    Mean of a step function over [start, end].

    Each value holds from its timestamp until the next one, the last
    one until `end`. The function is 0 before the first timestamp, and
    timestamps outside the window are clipped to it.
    """
    if end <= start:
        return 0.0
    edges = np.append(np.clip(np.asarray(times, dtype=float), start, end),
                      end)
    weights = np.diff(edges)
    return float(np.dot(np.asarray(values, dtype=float), weights)
                 / (end - start))


class Measure:
    """
    Read-only KPI view of one resource after a run.

    Every figure covers the observation window (start_time, end_time]:
    a usage counts when it ends inside the window, a seize attempt when
    it is made inside it.

    Args:
        monitor (Monitor): The run's monitor.
        resource (BaseResource): The resource to summarize.
        start_time (float, optional): Start of the observation window,
                                      e.g. the end of a warm-up period.
                                      Defaults to 0.

    Attributes:
        usage (pd.DataFrame): Completed usages of the resource.
        occupancy (pd.DataFrame): Occupancy samples of the resource.
        requests (pd.DataFrame): Seize attempts on the resource.
    """

    def __init__(self, monitor: Monitor, resource: BaseResource,
                 start_time: float = 0.0):
        self.resource = resource
        self.start_time = start_time

        usage = monitor.get_arrivals(per_resource=True)
        self.usage: pd.DataFrame = usage[
            usage["resource"] == resource.name].reset_index(drop=True)
        samples = monitor.get_resources()
        self.occupancy: pd.DataFrame = samples[
            samples["resource"] == resource.name].reset_index(drop=True)
        requests = monitor.get_requests()
        self.requests: pd.DataFrame = requests[
            requests["resource"] == resource.name].reset_index(drop=True)

        log.debug(f"Measure for '{resource.name}': {len(self.usage)} "
                  f"usages, {len(self.occupancy)} samples, "
                  f"{len(self.requests)} requests")

    @property
    def holding_times(self) -> np.ndarray:
        return self.usage["activity_time"].to_numpy(dtype=float)

    @property
    def response_times(self) -> np.ndarray:
        return (self.usage["end_time"] - self.usage["start_time"]) \
            .to_numpy(dtype=float)

    @property
    def waiting_times(self) -> np.ndarray:
        return np.maximum(self.response_times - self.holding_times, 0.0)

    @property
    def last_sample_time(self) -> float:
        if self.occupancy.empty:
            return self.start_time
        return max(self.start_time, float(self.occupancy["time"].max()))

    def in_window(self, times: pd.Series, end_time: float) -> pd.Series:
        """Mask of the timestamps in (start_time, end_time]."""
        return (times > self.start_time) & (times <= end_time)

    def time_average(self, column: str, end_time: float) -> float:
        """Time average of an occupancy column ("server" or "queue")."""
        return time_average(self.occupancy["time"], self.occupancy[column],
                            self.start_time, end_time)

    def max_queue(self, end_time: float) -> int:
        """Longest wait queue in the window, counting its opening state."""
        times = self.occupancy["time"]
        before = self.occupancy[times <= self.start_time]
        during = self.occupancy[self.in_window(times, end_time)]
        queues = list(during["queue"])
        if not before.empty:
            queues.append(before["queue"].iloc[-1])
        return int(max(queues)) if queues else 0

    def report(self, end_time: Optional[float] = None) -> Dict[str, Any]:
        """
        Computes every KPI over (start_time, end_time].

        Args:
            end_time (Optional[float]): End of the observation window,
                usually `sim.now`. Defaults to the last occupancy
                sample, which under-counts a final idle period.

        Returns:
            Dict[str, Any]: KPI name to value; the per-usage times are
            `Summary` objects. `{"error": ...}` if the window is empty.
        """
        if end_time is None:
            end_time = self.last_sample_time
            log.warning(f"No end_time given for '{self.resource.name}'; "
                        f"using the last sample at T={end_time:.2f}.")

        duration = end_time - self.start_time
        if duration <= 0:
            log.warning(f"Empty observation window for "
                        f"'{self.resource.name}'.")
            return {"error": "empty observation window"}

        done = self.usage[self.in_window(self.usage["end_time"], end_time)]
        holding = done["activity_time"].to_numpy(dtype=float)
        response = (done["end_time"] - done["start_time"]) \
            .to_numpy(dtype=float)
        waiting = np.maximum(response - holding, 0.0)

        requests = self.requests[self.in_window(self.requests["time"],
                                                end_time)]
        arrivals = len(requests)
        rejected = int(requests["rejected"].sum())
        served = len(done)
        mean_busy = self.time_average("server", end_time)

        log.info(f"KPIs for '{self.resource.name}' over "
                 f"T={self.start_time:.2f}..{end_time:.2f}")
        return {
            "resource": self.resource.name,
            "window": (self.start_time, end_time),
            "capacity": self.resource.capacity,
            "queue_size": self.resource.queue_size,
            "arrivals": arrivals,
            "served": served,
            "rejected": rejected,
            "rejection_probability": rejected / arrivals if arrivals else 0.0,
            "throughput": served / duration,
            "waiting": Summary.of(waiting),
            "holding": Summary.of(holding),
            "response": Summary.of(response),
            "mean_queue": self.time_average("queue", end_time),
            "max_queue": self.max_queue(end_time),
            "mean_busy": mean_busy,
            "utilization": mean_busy / self.resource.capacity,
        }
