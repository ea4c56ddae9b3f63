"""
Rigid Body

Minimal rigid body used as the collaborator of the buoyancy sampler: it
accumulates forces applied at world positions (and the torque they produce),
reports the velocity of a world point, and integrates its state with a
semi-implicit Euler step.

World frame: y is up. Orientation is held as a scipy ``Rotation``.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np
from scipy.spatial.transform import Rotation

GRAVITY = np.array([0.0, -9.81, 0.0])


class RigidBody:
    def __init__(self,
                 mass: float = 1.0,
                 inertia: Sequence[float] = (1.0, 1.0, 1.0),
                 pos=np.zeros(3),
                 rot: Optional[Rotation] = None,
                 lin=np.zeros(3),
                 ang=np.zeros(3),
                 linear_drag: float = 0.0,
                 angular_drag: float = 0.05):
        if mass <= 0:
            raise ValueError(f"mass must be > 0, got {mass}")
        self.mass = float(mass)
        self.inertia = np.asarray(inertia, dtype=float)
        self.pos = pos
        self.rot = rot if rot is not None else Rotation.identity()
        self.lin = lin
        self.ang = ang
        self.linear_drag = float(linear_drag)
        self.angular_drag = float(angular_drag)
        self.clear_forces()

    @classmethod
    def box(cls, mass: float, size: Sequence[float], **kwargs) -> "RigidBody":
        """Solid box of full extents ``size`` = (x, y, z)."""
        sx, sy, sz = (float(s) for s in size)
        inertia = (
            mass / 12.0 * (sy * sy + sz * sz),
            mass / 12.0 * (sx * sx + sz * sz),
            mass / 12.0 * (sx * sx + sy * sy),
        )
        return cls(mass=mass, inertia=inertia, **kwargs)

    @property
    def pos(self):
        return self._pos

    @pos.setter
    def pos(self, value):
        self._pos = np.asarray(value, dtype=float).reshape(3).copy()

    @property
    def lin(self):
        return self._lin

    @lin.setter
    def lin(self, value):
        self._lin = np.asarray(value, dtype=float).reshape(3).copy()

    @property
    def ang(self):
        return self._ang

    @ang.setter
    def ang(self, value):
        self._ang = np.asarray(value, dtype=float).reshape(3).copy()

    @property
    def euler_deg(self) -> np.ndarray:
        """Orientation as intrinsic yaw (about y), pitch (about x), roll (about z) in degrees."""
        return self.rot.as_euler("YXZ", degrees=True)

    def transform_point(self, local_point) -> np.ndarray:
        return self._pos + self.rot.apply(np.asarray(local_point, dtype=float))

    def inverse_transform_point(self, world_point) -> np.ndarray:
        return self.rot.inv().apply(np.asarray(world_point, dtype=float) - self._pos)

    def point_velocity(self, world_point) -> np.ndarray:
        return self._lin + np.cross(self._ang, np.asarray(world_point, dtype=float) - self._pos)

    def clear_forces(self) -> None:
        self.force = np.zeros(3)
        self.torque = np.zeros(3)

    def add_force(self, force) -> None:
        self.force += np.asarray(force, dtype=float)

    def add_force_at_position(self, force, world_point) -> None:
        force = np.asarray(force, dtype=float)
        self.force += force
        self.torque += np.cross(np.asarray(world_point, dtype=float) - self._pos, force)

    def integrate(self, dt: float, gravity=GRAVITY) -> None:
        """Advance by ``dt`` using the accumulated forces, then clear them."""
        accel = self.force / self.mass + np.asarray(gravity, dtype=float)
        self._lin = (self._lin + accel * dt) * max(0.0, 1.0 - self.linear_drag * dt)

        matrix = self.rot.as_matrix()
        inertia_world = matrix @ np.diag(self.inertia) @ matrix.T
        gyroscopic = np.cross(self._ang, inertia_world @ self._ang)
        ang_accel = np.linalg.solve(inertia_world, self.torque - gyroscopic)
        self._ang = (self._ang + ang_accel * dt) * max(0.0, 1.0 - self.angular_drag * dt)

        self._pos = self._pos + self._lin * dt
        self.rot = Rotation.from_rotvec(self._ang * dt) * self.rot
        self.clear_forces()
