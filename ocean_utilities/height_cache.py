"""
Height Field Cache

CPU-side cache of the composite height grid, shared by every buoyancy
sampler of a simulation.

Each ``update(tick)`` polls the compute back-end, publishes the newest
completed readback (at most one per tick) and issues one new readback
request. Until a request completes, queries answer from the previous
snapshot: stale but always consistent. Snapshots are immutable and are
replaced by a single reference swap, so a reader never sees a partially
written grid. A failed readback is logged and the stale snapshot kept.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

WORLD_UP = np.array([0.0, 1.0, 0.0])


@dataclass(frozen=True)
class HeightFieldSnapshot:
    """Read-only height grid indexed ``[z_texel, x_texel]``."""

    heights: np.ndarray
    tick: int = -1

    def __post_init__(self):
        heights = np.array(self.heights, dtype=np.float32, copy=True)
        heights.setflags(write=False)
        object.__setattr__(self, "heights", heights)

    @classmethod
    def flat(cls, texture_size: int, level: float = 0.0) -> "HeightFieldSnapshot":
        return cls(np.full((texture_size, texture_size), level, dtype=np.float32), tick=-1)

    @property
    def resolution(self) -> int:
        return self.heights.shape[0]


def sample_bilinear(heights: np.ndarray, u, v):
    """Bilinear sample of a periodic grid at fractional texel coords ``u, v`` in [0, 1)."""
    n = heights.shape[0]
    fx = np.asarray(u, dtype=np.float64) * n
    fy = np.asarray(v, dtype=np.float64) * n
    x0f = np.floor(fx)
    y0f = np.floor(fy)
    tx = fx - x0f
    ty = fy - y0f
    x0 = x0f.astype(np.int64) % n
    y0 = y0f.astype(np.int64) % n
    x1 = (x0 + 1) % n
    y1 = (y0 + 1) % n

    h00 = heights[y0, x0]
    h10 = heights[y0, x1]
    h01 = heights[y1, x0]
    h11 = heights[y1, x1]

    h0 = h00 + (h10 - h00) * tx
    h1 = h01 + (h11 - h01) * tx
    return h0 + (h1 - h0) * ty


class HeightFieldCache:
    def __init__(self, backend, texture_size: int, tile_factor: float = 1.0,
                 buffer_name: str = "height", max_in_flight: int = 4, surface=None):
        """
        Args:
            backend: compute back-end serving ``request_readback``/``poll``
            texture_size: resolution N of the height grid
            tile_factor: world -> uv scale, the grid repeats every 1/tile_factor
            buffer_name: back-end buffer holding the composite heights
            max_in_flight: requests allowed to be outstanding at once
            surface: when given, tile_factor is read live from its first layer
        """
        self.backend = backend
        self.texture_size = int(texture_size)
        self._tile_factor = float(tile_factor)
        self.buffer_name = buffer_name
        self.max_in_flight = int(max_in_flight)
        self.surface = surface

        self.active = True
        self.publish_count = 0
        self.failure_count = 0
        self._snapshot = HeightFieldSnapshot.flat(self.texture_size)
        self._in_flight: deque = deque()

    @classmethod
    def for_surface(cls, surface, **kwargs) -> "HeightFieldCache":
        return cls(
            surface.backend,
            texture_size=surface.texture_size,
            tile_factor=surface.config.layers[0].tile_factor,
            buffer_name=surface.height_buffer,
            surface=surface,
            **kwargs,
        )

    @property
    def snapshot(self) -> HeightFieldSnapshot:
        return self._snapshot

    @property
    def tile_factor(self) -> float:
        if self.surface is not None:
            return float(self.surface.config.layers[0].tile_factor)
        return self._tile_factor

    @property
    def period(self) -> float:
        """World distance after which the height field repeats."""
        return 1.0 / self.tile_factor

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    @property
    def is_stale(self) -> bool:
        return bool(self._in_flight)

    # producer side ---------------------------------------------------------------
    def update(self, tick: int) -> bool:
        """Collect finished readbacks and request a new one.

        Returns True when a new snapshot was published during this call.
        """
        if not self.active:
            return False
        self.backend.poll()
        published = self._collect()
        self._request(tick)
        return published

    def _request(self, tick: int) -> None:
        if len(self._in_flight) >= self.max_in_flight:
            logger.debug("readback for tick %d skipped, %d already in flight", tick, len(self._in_flight))
            return
        self._in_flight.append((tick, self.backend.request_readback(self.buffer_name)))

    def _collect(self) -> bool:
        newest = None
        expected = (self.texture_size, self.texture_size)
        while self._in_flight and self._in_flight[0][1].done():
            tick, future = self._in_flight.popleft()
            if future.cancelled():
                continue
            error = future.exception()
            if error is not None:
                self.failure_count += 1
                logger.error("height field readback for tick %d failed: %s", tick, error)
                continue
            data = future.result()
            if data.shape != expected:
                self.failure_count += 1
                logger.error("height field readback for tick %d has shape %s, expected %s",
                             tick, data.shape, expected)
                continue
            newest = (tick, data)

        if newest is None or newest[0] <= self._snapshot.tick:
            return False
        self._snapshot = HeightFieldSnapshot(newest[1], tick=newest[0])
        self.publish_count += 1
        logger.debug("height snapshot published for tick %d", newest[0])
        return True

    def shutdown(self) -> None:
        """Discard outstanding requests; the last snapshot stays readable."""
        while self._in_flight:
            _, future = self._in_flight.popleft()
            future.cancel()
        self.active = False

    # consumer side -------------------------------------------------------------
    def _uv(self, world_x, world_z):
        scale = self.tile_factor
        uv_x = np.asarray(world_x, dtype=np.float64) * scale
        uv_z = np.asarray(world_z, dtype=np.float64) * scale
        return uv_x - np.floor(uv_x), uv_z - np.floor(uv_z)

    def get_heights(self, world_x, world_z) -> np.ndarray:
        snapshot = self._snapshot
        u, v = self._uv(world_x, world_z)
        return np.asarray(sample_bilinear(snapshot.heights, u, v))

    def get_height(self, world_x: float, world_z: float) -> float:
        snapshot = self._snapshot
        u, v = self._uv(world_x, world_z)
        return float(sample_bilinear(snapshot.heights, u, v))

    def get_normal(self, world_x: float, world_z: float, epsilon: float = 0.1) -> np.ndarray:
        if epsilon <= 0:
            raise ValueError(f"epsilon must be > 0, got {epsilon}")
        snapshot = self._snapshot
        heights = snapshot.heights
        xs = np.array([world_x - epsilon, world_x + epsilon, world_x, world_x])
        zs = np.array([world_z, world_z, world_z - epsilon, world_z + epsilon])
        u, v = self._uv(xs, zs)
        h_left, h_right, h_down, h_up = sample_bilinear(heights, u, v)

        normal = np.array([h_left - h_right, 2.0 * epsilon, h_down - h_up])
        return normal / np.linalg.norm(normal)
