# src/microsim/experiment.py

"""
Running many independent simulations.

Each run gets its own `Simulation` (and therefore its own random source)
so runs never influence each other. Seeds are explicit: with a base
seed, replication `i` is seeded with `seed + i`; without one, every
run draws fresh entropy.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

import pandas as pd

from .engine import Simulation

log = logging.getLogger(__name__)

# build(seed=..., replication=...) -> Simulation
SimulationFactory = Callable[..., Simulation]


@dataclass
class Experiment:
    """
    The finished simulations of one experiment.

    Attributes:
        simulations (List[Simulation]): In run order.
        labels (List[Any]): One label per simulation (the replication
                            index, or the swept parameter value).
        parameter (str): Column name used for `labels` in the output.
    """

    parameter: str = "replication"
    simulations: List[Simulation] = field(default_factory=list)
    labels: List[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.simulations)

    def add(self, label: Any, sim: Simulation):
        self.labels.append(label)
        self.simulations.append(sim)

    def get_mon_arrivals(self, per_resource: bool = False,
                         ongoing: bool = False) -> pd.DataFrame:
        """All arrival logs, concatenated."""
        return self._concat(
            [s.get_mon_arrivals(per_resource, ongoing)
             for s in self.simulations])

    def get_mon_resources(self) -> pd.DataFrame:
        """All resource logs, concatenated."""
        return self._concat([s.get_mon_resources() for s in self.simulations])

    def _concat(self, frames: List[pd.DataFrame]) -> pd.DataFrame:
        labelled = []
        for label, frame in zip(self.labels, frames):
            if self.parameter != "replication":
                frame = frame.assign(**{self.parameter: label})
            labelled.append(frame)
        if not labelled:
            return pd.DataFrame()
        return pd.concat(labelled, ignore_index=True)


def replicate(build: SimulationFactory, n: int, until: float = math.inf,
              seed: Optional[int] = None,
              max_events: Optional[int] = None) -> Experiment:
    """
    Runs `n` independent replications of the same model.

    Args:
        build (SimulationFactory): Called as
            `build(seed=..., replication=i)`; must return a new IDLE
            simulation every time.
        n (int): Number of replications.
        until (float): Horizon of every run.
        seed (Optional[int]): Base seed; replication i uses `seed + i`.
        max_events (Optional[int]): Per-run event bound.

    Returns:
        Experiment: The finished runs, labelled 0..n-1.
    """
    if n < 0:
        raise ValueError(f"Number of replications must be >= 0, got {n}.")

    experiment = Experiment(parameter="replication")
    for i in range(n):
        run_seed = None if seed is None else seed + i
        log.info(f"Replication {i + 1}/{n} (seed={run_seed})")
        sim = build(seed=run_seed, replication=i)
        experiment.add(i, sim.run(until=until, max_events=max_events))
    return experiment


def sweep(build: Callable[..., Simulation], values: Iterable[Any],
          until: float = math.inf, seed: Optional[int] = None,
          parameter: str = "value",
          max_events: Optional[int] = None) -> Experiment:
    """
    Runs one simulation per parameter value.

    Args:
        build: Called as `build(value, seed=..., replication=i)`.
        values: The parameter values to sweep over.
        until: Horizon of every run.
        seed: Base seed; run i uses `seed + i`. With a fixed `seed` and
              a `build` that ignores `value`, every run is identical.
        parameter: Name of the label column added to the output.
        max_events: Per-run event bound.

    Returns:
        Experiment: The finished runs, labelled by parameter value.
    """
    experiment = Experiment(parameter=parameter)
    for i, value in enumerate(values):
        run_seed = None if seed is None else seed + i
        log.info(f"Sweep {parameter}={value} (seed={run_seed})")
        sim = build(value, seed=run_seed, replication=i)
        experiment.add(value, sim.run(until=until, max_events=max_events))
    return experiment
