# src/microsim/engine.py

"""
The discrete-event simulation engine.

A `Simulation` exclusively owns everything a run needs: the event
queue, the resources, the generators, the monitor and the random
source. Nothing is shared between two `Simulation` instances, so
several can be built and run side by side (e.g. a parameter sweep).

The engine is a single-threaded loop over the event queue:

    IDLE --run()/step()--> RUNNING --horizon, exhaustion--> STOPPED

Each iteration pops the earliest event, advances the clock to it and
calls its action. Actions are generator activations or "resume this
entity" requests; resuming an entity applies trajectory steps until one
of them suspends it (a timeout or a queued seize), rejects it, or the
trajectory ends.
"""

import itertools
import logging
import math
from functools import partial
from typing import Dict, Optional

import pandas as pd

from .base_resource import BaseResource
from .constants import EngineState, EntityState, StepOutcome
from .distributions import DistributionLike, RandomSource
from .entity import Entity
from .event_queue import EventQueue
from .exceptions import ConfigurationError, EmptyQueue, SimulationError
from .generator import Generator
from .monitor import Monitor
from .resources import PriorityResource, Resource
from .trajectory import Trajectory

log = logging.getLogger(__name__)


class Simulation:
    """
    One independent simulation run.

    Args:
        seed (Optional[int]): Seed of the run's random source. Two
                              simulations built the same way with the
                              same seed produce identical logs.
        name (str, optional): Used in log messages. Defaults to "sim".
        replication (int, optional): Copied into every monitor record.
                                     Defaults to 0.
        random_source (Optional[RandomSource]): Injects a prepared
                                                source; `seed` is then
                                                ignored.

    Example:
        >>> sim = Simulation(seed=42)
        >>> sim.add_resource("app", capacity=1, queue_size=20)
        >>> api = Trajectory("api", [Seize("app"), Timeout(Normal(10)),
        ...                          Release("app")])
        >>> sim.add_generator("request", api, Normal(10, 2))
        >>> arrivals = sim.run(until=4000).get_mon_arrivals()
    """

    def __init__(self, seed: Optional[int] = None, name: str = "sim",
                 replication: int = 0,
                 random_source: Optional[RandomSource] = None):
        self.name: str = name
        self.state: EngineState = EngineState.IDLE
        self.now: float = 0.0

        self.queue: EventQueue = EventQueue()
        self.resources: Dict[str, BaseResource] = {}
        self.generators: Dict[str, Generator] = {}
        self.monitor: Monitor = Monitor(replication=replication)
        self.random: RandomSource = random_source or RandomSource(seed)

        self.events_processed: int = 0
        self._entity_ids = itertools.count()

        log.info(f"Simulation '{self.name}' initialized "
                 f"(seed={self.random.seed}, replication={replication})")

    def __repr__(self):
        return (f"Simulation(name='{self.name}', state={self.state.name}, "
                f"now={self.now})")

    # -- Setup ----------------------------------------------------------

    def add_resource(self, name: str, capacity: int = 1,
                     queue_size: float = math.inf,
                     priority: bool = False) -> BaseResource:
        """
        Registers a resource.

        Args:
            name (str): Unique resource name.
            capacity (int, optional): Concurrent holders. Defaults to 1.
            queue_size (float, optional): Wait queue bound. Defaults to
                                          unbounded.
            priority (bool, optional): Order the wait queue by entity
                                       priority instead of FIFO.

        Returns:
            BaseResource: The new resource, bound to this monitor.

        Raises:
            ConfigurationError: On a duplicate name or invalid sizes.
        """
        self._require_idle("add a resource")
        if name in self.resources:
            raise ConfigurationError(f"Duplicate resource name '{name}'.")

        cls = PriorityResource if priority else Resource
        resource = cls(name, capacity, queue_size, monitor=self.monitor)
        self.resources[name] = resource
        return resource

    def add_generator(self, name: str, trajectory: Trajectory,
                      interarrival: DistributionLike, priority: int = 0,
                      limit: Optional[int] = None) -> Generator:
        """
        Registers a source of entities.

        Raises:
            ConfigurationError: On a duplicate name or invalid arguments.
        """
        self._require_idle("add a generator")
        if name in self.generators:
            raise ConfigurationError(f"Duplicate generator name '{name}'.")

        generator = Generator(name, trajectory, interarrival,
                              priority=priority, limit=limit)
        self.generators[name] = generator
        return generator

    def validate(self):
        """
        Checks every generator's trajectory against the resources.

        Raises:
            ConfigurationError: If any trajectory is invalid.
        """
        for generator in self.generators.values():
            generator.trajectory.validate(self.resources)

    # -- Running --------------------------------------------------------

    def run(self, until: float = math.inf,
            max_events: Optional[int] = None) -> "Simulation":
        """
        Runs the simulation until the horizon or until no work is left.

        Events scheduled after `until` are discarded, not executed.
        Events scheduled exactly at `until` are executed.

        Args:
            until (float, optional): Simulated stop time. Defaults to
                                     infinity.
            max_events (Optional[int]): Stop after dispatching this many
                                        events.

        Returns:
            Simulation: `self`, so that output accessors can be chained.

        Raises:
            ConfigurationError: For a negative/NaN horizon, a negative
                                `max_events`, an invalid trajectory, or
                                a run that could never end.
            SimulationError: If the simulation has already stopped.
        """
        if math.isnan(until) or until < 0:
            raise ConfigurationError(f"until must be >= 0, got {until}.")
        if max_events is not None and max_events < 0:
            raise ConfigurationError(
                f"max_events must be >= 0, got {max_events}.")
        if math.isinf(until) and max_events is None and any(
                g.limit is None for g in self.generators.values()):
            raise ConfigurationError(
                "Unbounded run: give a finite 'until', 'max_events', or a "
                "limit on every generator.")

        self._start()
        log.info(f"Simulation '{self.name}': running from "
                 f"T={self.now:.2f} until T={until}")

        dispatched = 0
        reached_horizon = True
        while max_events is None or dispatched < max_events:
            try:
                event = self.queue.pop_min()
            except EmptyQueue:
                if self._rearm_generators():
                    continue
                log.debug(f"T={self.now:.2f}: No pending events and no "
                          f"eligible generators.")
                break

            if event.time > until:
                log.debug(f"T={event.time:.2f}: Beyond horizon {until}; "
                          f"event discarded.")
                break

            self._dispatch(event)
            dispatched += 1
        else:
            reached_horizon = False

        if reached_horizon and math.isfinite(until):
            self.now = max(self.now, until)

        self.state = EngineState.STOPPED
        log.info(f"Simulation '{self.name}' stopped at T={self.now:.2f} "
                 f"after {self.events_processed} events "
                 f"({len(self.monitor.arrivals)} arrivals recorded, "
                 f"{len(self.monitor.active)} in flight)")
        return self

    def step(self) -> bool:
        """
        Dispatches exactly one event, starting the run if needed.

        Returns:
            bool: False if there was nothing left to dispatch; the
                  simulation is then STOPPED.
        """
        self._start()
        try:
            event = self.queue.pop_min()
        except EmptyQueue:
            if not self._rearm_generators():
                self.state = EngineState.STOPPED
                log.info(f"Simulation '{self.name}' stopped at "
                         f"T={self.now:.2f}: no work left.")
                return False
            event = self.queue.pop_min()
        self._dispatch(event)
        return True

    def peek(self) -> float:
        """Time of the next pending event, or infinity if none."""
        try:
            return self.queue.peek().time
        except EmptyQueue:
            return math.inf

    def reset(self, seed: Optional[int] = None) -> "Simulation":
        """
        Returns to the IDLE state, keeping the configuration.

        The clock, event queue, monitor, resources and generator
        counters are cleared and the random source is reseeded
        (with `seed` if given, otherwise with the original seed).
        """
        self.state = EngineState.IDLE
        self.now = 0.0
        self.events_processed = 0
        self._entity_ids = itertools.count()
        self.queue.clear()
        self.monitor.clear()
        for resource in self.resources.values():
            resource.reset()
        for generator in self.generators.values():
            generator.reset()
        self.random.reseed(seed)
        log.info(f"Simulation '{self.name}' reset (seed={self.random.seed})")
        return self

    # -- Services used by steps and generators --------------------------

    def schedule(self, delay: float, entity: Optional[Entity], action):
        """Books `action` to run `delay` time units from now."""
        if delay < 0:
            raise SimulationError(f"Cannot schedule into the past "
                                  f"(delay={delay}).")
        self.queue.push(self.now + delay, entity, action)

    def resume(self, entity: Entity, delay: float = 0.0):
        """Continues `entity` along its trajectory after `delay`."""
        self.schedule(delay, entity, partial(self._advance, entity))

    def create_entity(self, generator: Generator) -> Entity:
        """Creates and registers a new entity arriving now."""
        entity = Entity(
            id=next(self._entity_ids),
            name=f"{generator.name}{generator.count}",
            start_time=self.now,
            trajectory=generator.trajectory,
            priority=generator.priority,
        )
        self.monitor.record_start(entity)
        return entity

    # -- Output ---------------------------------------------------------

    def get_mon_arrivals(self, per_resource: bool = False,
                         ongoing: bool = False) -> pd.DataFrame:
        """See `Monitor.get_arrivals`."""
        return self.monitor.get_arrivals(per_resource=per_resource,
                                         ongoing=ongoing)

    def get_mon_resources(self) -> pd.DataFrame:
        """See `Monitor.get_resources`."""
        return self.monitor.get_resources()

    # -- Internals ------------------------------------------------------

    def _require_idle(self, what: str):
        if self.state is not EngineState.IDLE:
            raise SimulationError(
                f"Cannot {what} while the simulation is {self.state.name}.")

    def _start(self):
        if self.state is EngineState.RUNNING:
            return
        if self.state is EngineState.STOPPED:
            log.error(f"Simulation '{self.name}' has already stopped.")
            raise SimulationError(
                "The simulation has stopped; call reset() to run it again.")

        self.validate()
        self.state = EngineState.RUNNING
        for generator in self.generators.values():
            generator.start(self)

    def _rearm_generators(self) -> bool:
        """Books a new activation for every generator that lost its own."""
        eligible = [g for g in self.generators.values() if g.active]
        for generator in eligible:
            log.warning(f"T={self.now:.2f}: Generator '{generator.name}' is "
                        f"still eligible but had no pending activation; "
                        f"restarting it.")
            generator.start(self)
        return bool(eligible)

    def _dispatch(self, event):
        self.now = event.time
        self.events_processed += 1
        event.action()

    def _advance(self, entity: Entity):
        """Applies steps until the entity suspends, leaves, or finishes."""
        if entity.is_terminal:
            log.error(f"T={self.now:.2f}: {entity.name} resumed after "
                      f"leaving the system ({entity.state.name}).")
            raise SimulationError(f"{entity.name} has already left.")

        steps = entity.trajectory.steps
        while entity.position < len(steps):
            step = steps[entity.position]
            entity.position += 1
            outcome = step.apply(self, entity)

            if outcome is StepOutcome.SUSPEND:
                return
            if outcome is StepOutcome.REJECT:
                self._leave(entity, EntityState.REJECTED)
                return

        self._leave(entity, EntityState.FINISHED)

    def _leave(self, entity: Entity, state: EntityState):
        """Releases anything still held and writes the final record."""
        for name, amount in list(entity.held.items()):
            if state is EntityState.FINISHED:
                log.warning(f"T={self.now:.2f}: {entity.name} finished "
                            f"while holding {amount} unit(s) of '{name}'; "
                            f"releasing.")
            for waiting in self.resources[name].release(entity, self.now,
                                                        amount):
                self.resume(waiting)

        entity.state = state
        entity.end_time = self.now
        self.monitor.record_arrival(entity,
                                    finished=state is EntityState.FINISHED)
