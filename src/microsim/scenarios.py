# src/microsim/scenarios.py

"""
Ready-made models.

`microservice` builds the toy API service used throughout the
experiments: requests arrive with Gaussian gaps, are processed by an
`app` server and, optionally, by a `database` server afterwards. The
app is released before the database is requested, so a busy database
never keeps the app occupied.
"""

import math
from typing import Optional

from .distributions import DistributionLike, Normal
from .engine import Simulation
from .trajectory import Release, Seize, Timeout, Trajectory


def api_trajectory(app_service: DistributionLike,
                   database_service: Optional[DistributionLike] = None
                   ) -> Trajectory:
    """The path of one request: app, then (optionally) database."""
    steps = [Seize("app"), Timeout(app_service), Release("app")]
    if database_service is not None:
        steps += [Seize("database"), Timeout(database_service),
                  Release("database")]
    return Trajectory("api", steps)


def microservice(interarrival: DistributionLike = Normal(10, 2),
                 app_service: DistributionLike = Normal(10),
                 database_service: Optional[DistributionLike] = None,
                 app_capacity: int = 1,
                 database_capacity: int = 1,
                 queue_size: float = 20,
                 database_queue_size: float = math.inf,
                 seed: Optional[int] = None,
                 replication: int = 0) -> Simulation:
    """
    Builds an IDLE simulation of the microservice.

    Args:
        interarrival (DistributionLike): Gap between two requests.
        app_service (DistributionLike): Time a request holds the app.
        database_service (Optional[DistributionLike]): Time a request
            holds the database. `None` (the default) leaves the
            database out of the model.
        app_capacity (int): Parallel app workers.
        database_capacity (int): Parallel database connections.
        queue_size (float): Requests allowed to wait for the app.
        database_queue_size (float): Requests allowed to wait for the
            database.
        seed (Optional[int]): Seed of the run.
        replication (int): Replication index stamped on every record.

    Returns:
        Simulation: Ready to `run(until=...)`.
    """
    sim = Simulation(seed=seed, name="microservice", replication=replication)
    sim.add_resource("app", capacity=app_capacity, queue_size=queue_size)
    if database_service is not None:
        sim.add_resource("database", capacity=database_capacity,
                         queue_size=database_queue_size)

    sim.add_generator("request",
                      api_trajectory(app_service, database_service),
                      interarrival)
    return sim
