# src/microsim/analysis/transient.py

"""
Warm-up (transient phase) detection on an arrival log.

The log is ordered by arrival, cut into equal batches, and each batch
is compared with the mean of everything after it. Once those tail
means stay within a relative `threshold` of the overall mean for
`patience` batches in a row, the run is considered settled.

An overloaded service never settles: its waiting times keep growing
until the queue saturates (or forever, with an unbounded queue), so
no settling batch is found. `is_stationary` wraps that check.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchMeans:
    """
    Attributes:
        means (np.ndarray): Mean of each batch, in arrival order.
        overall (float): Mean of the batch means.
        tail_means (np.ndarray): `tail_means[k]` is the mean of
                                 `means[k:]`.
        drift (np.ndarray): Relative distance of each tail mean from
                            `overall`.
    """

    means: np.ndarray
    overall: float
    tail_means: np.ndarray
    drift: np.ndarray

    def __len__(self) -> int:
        return len(self.means)


def calculate_transient_data(
    arrivals: pd.DataFrame,
    column: str = "waiting_time",
    num_batches: int = 100,
    finished_only: bool = True
) -> Optional[BatchMeans]:
    """
    Batches one column of an arrival log.

    Args:
        arrivals (pd.DataFrame): From `Simulation.get_mon_arrivals()`.
        column (str): "waiting_time", "activity_time", ...
        num_batches (int): Number of batches.
        finished_only (bool): Ignore rejected and in-flight entities.

    Returns:
        Optional[BatchMeans]: None if the column is missing or there
        are fewer rows than batches.
    """
    rows = arrivals
    if finished_only and "finished" in rows.columns:
        rows = rows[rows["finished"].astype(bool)]
    if column not in rows.columns:
        log.warning(f"Arrival log has no '{column}' column.")
        return None

    values = rows.sort_values("start_time", kind="stable")[column] \
        .to_numpy(dtype=float)
    if num_batches < 1 or values.size < num_batches:
        log.warning(f"{values.size} observations of '{column}' cannot "
                    f"fill {num_batches} batches.")
        return None

    means = np.array([chunk.mean()
                      for chunk in np.array_split(values, num_batches)])
    overall = float(means.mean())
    tail_means = np.cumsum(means[::-1])[::-1] / np.arange(means.size, 0, -1)
    if overall == 0:
        drift = np.zeros_like(tail_means)
    else:
        drift = (tail_means - overall) / overall

    log.debug(f"Batched {values.size} values of '{column}' into "
              f"{means.size} batches (overall mean {overall:.3f})")
    return BatchMeans(means, overall, tail_means, drift)


def find_transient_end(
    data: Optional[BatchMeans],
    threshold: float = 0.05,
    patience: int = 5
) -> Optional[int]:
    """
    Index of the first batch from which |drift| stays below `threshold`
    for `patience` consecutive batches, or None.
    """
    if data is None:
        return None

    last_start = len(data) - patience
    if last_start <= 0:
        log.warning(f"{len(data)} batches are too few for "
                    f"patience={patience}.")
        return None

    settled = np.abs(data.drift) < threshold
    for k in range(last_start):
        if settled[k:k + patience].all():
            log.debug(f"Settled from batch {k} (threshold={threshold}, "
                      f"patience={patience})")
            return k

    log.warning("Output never settles; the service may be overloaded or "
                "the run too short.")
    return None


def is_stationary(
    arrivals: pd.DataFrame,
    column: str = "waiting_time",
    num_batches: int = 20,
    threshold: float = 0.05,
    patience: int = 5,
    max_transient_fraction: float = 0.5
) -> bool:
    """
    Tells whether `column` settles before `max_transient_fraction` of
    the run has elapsed.
    """
    data = calculate_transient_data(arrivals, column, num_batches)
    k_star = find_transient_end(data, threshold, patience)
    if k_star is None:
        return False
    return k_star <= max_transient_fraction * len(data)
