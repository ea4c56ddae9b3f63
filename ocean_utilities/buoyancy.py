"""
Buoyancy

Point-floater buoyancy: every float point of a body samples the height field,
and if it is submerged contributes a buoyant force proportional to its depth
and area plus a vertical damping force, both applied at the point's world
position so the body pitches and rolls with the waves.

Damage reduces a body's buoyancy through ``BuoyantBody.reduce_buoyancy``;
once the strength reaches the sink threshold it is clamped to zero for good.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

import numpy as np

from ocean_utilities.height_cache import WORLD_UP

logger = logging.getLogger(__name__)


class MovementMode(Enum):
    VERTICAL_ONLY = "vertical_only"
    ALONG_SURFACE_NORMAL = "along_surface_normal"


@dataclass
class FloatPoint:
    local_position: np.ndarray
    area: float = 1.0

    def __post_init__(self):
        self.local_position = np.asarray(self.local_position, dtype=float).reshape(3)
        if self.area < 0:
            raise ValueError(f"float point area must be >= 0, got {self.area}")


@dataclass(frozen=True)
class ForceSample:
    """Forces produced by one float point during one physics tick."""

    world_position: np.ndarray
    water_height: float
    depth: float
    buoyant_force: np.ndarray
    damping_force: np.ndarray

    @property
    def submerged(self) -> bool:
        return self.depth > 0.0

    @property
    def total_force(self) -> np.ndarray:
        return self.buoyant_force + self.damping_force


class BuoyantBody:
    """Float points attached to a rigid body, with damageable buoyancy."""

    def __init__(self,
                 rigid_body,
                 float_points: Sequence[FloatPoint],
                 buoyancy_strength: float = 1000.0,
                 damping_strength: float = 0.5,
                 movement_mode: MovementMode = MovementMode.VERTICAL_ONLY,
                 sink_threshold: float = 0.0,
                 name: str = "body"):
        if buoyancy_strength < 0:
            raise ValueError(f"buoyancy_strength must be >= 0, got {buoyancy_strength}")
        self.rigid_body = rigid_body
        self.float_points: List[FloatPoint] = list(float_points)
        self._buoyancy_strength = float(buoyancy_strength)
        self.damping_strength = float(damping_strength)
        self.movement_mode = MovementMode(movement_mode)
        self.sink_threshold = float(sink_threshold)
        self.name = name

    @classmethod
    def box_floaters(cls, rigid_body, half_extents, area: float = 1.0, **kwargs) -> "BuoyantBody":
        """Body with one float point under each bottom corner of a box."""
        hx, hy, hz = half_extents
        corners = [(sx * hx, -hy, sz * hz) for sx in (-1, 1) for sz in (-1, 1)]
        return cls(rigid_body, [FloatPoint(c, area) for c in corners], **kwargs)

    @property
    def buoyancy_strength(self) -> float:
        return self._buoyancy_strength

    @property
    def is_sunk(self) -> bool:
        return self._buoyancy_strength == 0.0

    def reduce_buoyancy(self, amount: float) -> float:
        """Subtract ``amount`` from the buoyancy strength and return the new value.

        At or below ``sink_threshold`` the strength becomes zero, a terminal
        state: further reductions keep it at zero.
        """
        if amount < 0:
            raise ValueError(f"buoyancy reduction must be >= 0, got {amount}")
        was_sunk = self.is_sunk
        strength = self._buoyancy_strength - float(amount)
        if strength <= self.sink_threshold:
            strength = 0.0
        self._buoyancy_strength = max(0.0, strength)
        if self.is_sunk and not was_sunk:
            logger.info("%s lost all buoyancy and is sinking", self.name)
        return self._buoyancy_strength


class BuoyancySampler:
    def __init__(self, height_cache, normal_epsilon: float = 0.1):
        self.height_cache = height_cache
        self.normal_epsilon = float(normal_epsilon)

    def sample_point(self, body: BuoyantBody, point: FloatPoint) -> ForceSample:
        world = body.rigid_body.transform_point(point.local_position)
        water_height = self.height_cache.get_height(world[0], world[2])
        depth = water_height - world[1]
        if depth <= 0.0:
            zero = np.zeros(3)
            return ForceSample(world, water_height, depth, zero, zero.copy())

        if body.movement_mode is MovementMode.ALONG_SURFACE_NORMAL:
            direction = self.height_cache.get_normal(world[0], world[2], self.normal_epsilon)
        else:
            direction = WORLD_UP
        buoyant = direction * body.buoyancy_strength * point.area * depth

        velocity = body.rigid_body.point_velocity(world)
        damping = WORLD_UP * (-body.damping_strength * float(np.dot(velocity, WORLD_UP)))
        return ForceSample(world, water_height, depth, buoyant, damping)

    def apply(self, body: BuoyantBody) -> List[ForceSample]:
        """Sample every float point and apply the resulting forces to the body."""
        samples = []
        for point in body.float_points:
            sample = self.sample_point(body, point)
            if sample.submerged:
                body.rigid_body.add_force_at_position(sample.buoyant_force, sample.world_position)
                body.rigid_body.add_force_at_position(sample.damping_force, sample.world_position)
            samples.append(sample)
        return samples
