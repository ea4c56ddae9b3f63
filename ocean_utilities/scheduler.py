"""
Tick Scheduling

Named execution phases and a fixed-timestep driver. Every tick runs the
phases in the order they are declared in ``SimulationPhase``; inside a phase,
callbacks run in registration order. This is what guarantees the height cache
is refreshed before any buoyancy sampler of the same tick reads it.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Callable, Dict, List, Optional, Tuple

from ocean_utilities.evolution import TimeState

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[TimeState], None]


class SimulationPhase(IntEnum):
    SIMULATE_WAVES = 0
    UPDATE_HEIGHT_CACHE = 1
    RUN_PHYSICS = 2


class PhaseScheduler:
    def __init__(self):
        self._callbacks: Dict[SimulationPhase, List[Tuple[str, PhaseCallback]]] = {
            phase: [] for phase in SimulationPhase
        }

    def register(self, phase: SimulationPhase, callback: PhaseCallback, name: Optional[str] = None) -> None:
        phase = SimulationPhase(phase)
        self._callbacks[phase].append((name or getattr(callback, "__name__", "callback"), callback))

    def unregister(self, phase: SimulationPhase, callback: PhaseCallback) -> None:
        entries = self._callbacks[SimulationPhase(phase)]
        entries[:] = [(n, cb) for n, cb in entries if cb is not callback]

    def callbacks(self, phase: SimulationPhase) -> List[str]:
        return [name for name, _ in self._callbacks[SimulationPhase(phase)]]

    def run_tick(self, time_state: TimeState) -> None:
        for phase in SimulationPhase:
            for _, callback in self._callbacks[phase]:
                callback(time_state)


class FixedTimestep:
    """Turns variable frame times into a whole number of fixed ticks.

    Leftover time carries over to the next frame. At most
    ``max_ticks_per_frame`` ticks run per frame; any excess is dropped so a
    slow frame cannot snowball into ever longer catch-up work.
    """

    def __init__(self, tick_duration: float, max_ticks_per_frame: int = 8):
        if tick_duration <= 0:
            raise ValueError(f"tick_duration must be > 0, got {tick_duration}")
        self.tick_duration = float(tick_duration)
        self.max_ticks_per_frame = int(max_ticks_per_frame)
        self.accumulator = 0.0

    def consume(self, frame_time: float) -> int:
        if frame_time < 0:
            raise ValueError(f"frame_time must be >= 0, got {frame_time}")
        self.accumulator += float(frame_time)
        ticks = int(self.accumulator // self.tick_duration)
        if ticks > self.max_ticks_per_frame:
            logger.warning("frame needs %d ticks, running %d and dropping the rest",
                           ticks, self.max_ticks_per_frame)
            self.accumulator = 0.0
            return self.max_ticks_per_frame
        self.accumulator -= ticks * self.tick_duration
        return ticks
