"""
Ocean Simulation Service

``OceanSimulation`` owns one ocean surface, one height-field cache and the
buoyant bodies that sample it, and advances them in fixed ticks through the
phases SIMULATE_WAVES -> UPDATE_HEIGHT_CACHE -> RUN_PHYSICS.

The cache is an explicitly owned service: consumers receive it from the
simulation instead of looking up a global instance.

Example:
    >>> sim = OceanSimulation(OceanPresets.calm_sea(texture_size=64))
    >>> body = sim.add_body(BuoyantBody.box_floaters(RigidBody(mass=500.0), (2.0, 0.5, 4.0)))
    >>> sim.advance(1.0 / 30.0)
    >>> sim.height_cache.get_height(10.0, 5.0)
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ocean_utilities.buoyancy import BuoyancySampler, BuoyantBody
from ocean_utilities.compute_backend import ComputeBackend
from ocean_utilities.config import SimulationConfig
from ocean_utilities.evolution import TimeState
from ocean_utilities.height_cache import HeightFieldCache
from ocean_utilities.ocean import OceanSurface
from ocean_utilities.scheduler import FixedTimestep, PhaseScheduler, SimulationPhase

logger = logging.getLogger(__name__)


class OceanSimulation:
    def __init__(self, config: Optional[SimulationConfig] = None,
                 backend: Optional[ComputeBackend] = None,
                 height_cache: Optional[HeightFieldCache] = None):
        self.surface = OceanSurface(config, backend)
        self.config = self.surface.config
        self.time_state = TimeState()
        self.timestep = FixedTimestep(self.config.tick_duration, self.config.max_ticks_per_frame)
        self.bodies: List[BuoyantBody] = []

        self._height_cache: Optional[HeightFieldCache] = None
        self.attach_height_cache(height_cache or HeightFieldCache.for_surface(self.surface))
        self.sampler = BuoyancySampler(self._height_cache)

        self.scheduler = PhaseScheduler()
        self.scheduler.register(SimulationPhase.SIMULATE_WAVES, self._simulate_waves, "simulate_waves")
        self.scheduler.register(SimulationPhase.UPDATE_HEIGHT_CACHE, self._update_height_cache,
                                "update_height_cache")
        self.scheduler.register(SimulationPhase.RUN_PHYSICS, self._run_physics, "run_physics")
        self.closed = False

    def __enter__(self) -> "OceanSimulation":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()

    # height cache ---------------------------------------------------------------
    @property
    def height_cache(self) -> HeightFieldCache:
        return self._height_cache

    def attach_height_cache(self, cache: HeightFieldCache) -> HeightFieldCache:
        """Register ``cache`` as this simulation's height cache.

        The first registered cache wins; a later one is deactivated and the
        existing cache is returned.
        """
        if self._height_cache is None:
            self._height_cache = cache
            return cache
        if cache is not self._height_cache:
            cache.active = False
            logger.debug("duplicate height cache deactivated, keeping the first registered one")
        return self._height_cache

    # bodies -----------------------------------------------------------------------
    def add_body(self, body: BuoyantBody) -> BuoyantBody:
        self.bodies.append(body)
        return body

    def remove_body(self, body: BuoyantBody) -> None:
        self.bodies.remove(body)

    # phases -----------------------------------------------------------------------
    def _simulate_waves(self, time_state: TimeState) -> None:
        self.surface.step(time_state)

    def _update_height_cache(self, time_state: TimeState) -> None:
        self._height_cache.update(time_state.tick)

    def _run_physics(self, time_state: TimeState) -> None:
        for body in self.bodies:
            self.sampler.apply(body)
            body.rigid_body.integrate(self.config.tick_duration, (0.0, -self.config.gravity, 0.0))

    # driving --------------------------------------------------------------------
    def step(self) -> TimeState:
        """Run exactly one fixed tick."""
        self.time_state = self.time_state.advance(self.config.tick_duration, self.config.speed)
        self.scheduler.run_tick(self.time_state)
        return self.time_state

    def advance(self, frame_time: float) -> int:
        """Run as many fixed ticks as ``frame_time`` covers; returns the count."""
        ticks = self.timestep.consume(frame_time)
        for _ in range(ticks):
            self.step()
        return ticks

    def shutdown(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._height_cache.shutdown()
        self.surface.close()
        logger.info("ocean simulation shut down after %d ticks", self.time_state.tick)
