#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Unit tests for point-floater buoyancy and the rigid body it drives.
"""

import os
import sys
import unittest

import numpy as np
from scipy.spatial.transform import Rotation

# Add the parent directory to the path to import ocean_utilities
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ocean_utilities.buoyancy import BuoyancySampler, BuoyantBody, FloatPoint, MovementMode
from ocean_utilities.compute_backend import LatencyQueueBackend
from ocean_utilities.height_cache import HeightFieldCache
from ocean_utilities.rigid_body import RigidBody


def cache_with(heights, tile_factor=1.0 / 16):
    n = heights.shape[0]
    backend = LatencyQueueBackend(latency_polls=1)
    backend.create_buffer("height", (n, n), np.float32)[...] = heights
    cache = HeightFieldCache(backend, n, tile_factor=tile_factor)
    cache.update(1)
    cache.update(2)
    return cache


def flat_cache(level=0.0, n=8):
    return cache_with(np.full((n, n), level, dtype=np.float32), tile_factor=1.0 / n)


class TestRigidBody(unittest.TestCase):

    def test_box_inertia(self):
        body = RigidBody.box(12.0, (1.0, 2.0, 3.0))
        np.testing.assert_allclose(body.inertia, [13.0, 10.0, 5.0])

    def test_transform_point_round_trip(self):
        body = RigidBody(pos=(1.0, 2.0, 3.0), rot=Rotation.from_euler("y", 90, degrees=True))
        world = body.transform_point((1.0, 0.0, 0.0))
        np.testing.assert_allclose(world, [1.0, 2.0, 2.0], atol=1e-12)
        np.testing.assert_allclose(body.inverse_transform_point(world), [1.0, 0.0, 0.0], atol=1e-12)

    def test_off_center_force_produces_torque(self):
        body = RigidBody()
        body.add_force_at_position((0.0, 10.0, 0.0), (1.0, 0.0, 0.0))
        np.testing.assert_allclose(body.force, [0.0, 10.0, 0.0])
        np.testing.assert_allclose(body.torque, [0.0, 0.0, 10.0])

    def test_free_fall(self):
        body = RigidBody(mass=2.0, angular_drag=0.0)
        for _ in range(10):
            body.integrate(0.1)
        np.testing.assert_allclose(body.lin, [0.0, -9.81, 0.0])
        self.assertLess(body.pos[1], 0.0)
        np.testing.assert_allclose(body.torque, 0.0)

    def test_point_velocity_includes_spin(self):
        body = RigidBody(lin=(1.0, 0.0, 0.0), ang=(0.0, 0.0, 2.0))
        np.testing.assert_allclose(body.point_velocity((0.0, 1.0, 0.0)), [-1.0, 0.0, 0.0])

    def test_invalid_mass(self):
        with self.assertRaises(ValueError):
            RigidBody(mass=0.0)


class TestBuoyancySampler(unittest.TestCase):

    def make_body(self, y, **kwargs):
        rigid = RigidBody(mass=10.0, pos=(2.0, y, 3.0))
        return BuoyantBody(rigid, [FloatPoint((0.0, 0.0, 0.0), area=2.0)], **kwargs)

    def test_force_is_strength_area_depth(self):
        sampler = BuoyancySampler(flat_cache(0.0))
        body = self.make_body(-0.5, buoyancy_strength=100.0, damping_strength=0.0)
        (sample,) = sampler.apply(body)
        self.assertAlmostEqual(sample.depth, 0.5)
        np.testing.assert_allclose(sample.buoyant_force, [0.0, 100.0, 0.0])
        np.testing.assert_allclose(body.rigid_body.force, [0.0, 100.0, 0.0])

    def test_no_force_above_surface(self):
        sampler = BuoyancySampler(flat_cache(0.0))
        body = self.make_body(0.0, buoyancy_strength=100.0)
        body.rigid_body.lin = (0.0, -3.0, 0.0)
        (sample,) = sampler.apply(body)
        self.assertFalse(sample.submerged)
        np.testing.assert_array_equal(sample.total_force, 0.0)
        np.testing.assert_array_equal(body.rigid_body.force, 0.0)

    def test_follows_water_level(self):
        sampler = BuoyancySampler(flat_cache(1.0))
        body = self.make_body(0.25, buoyancy_strength=10.0, damping_strength=0.0)
        (sample,) = sampler.apply(body)
        self.assertAlmostEqual(sample.water_height, 1.0)
        np.testing.assert_allclose(sample.buoyant_force, [0.0, 15.0, 0.0])

    def test_damping_opposes_vertical_velocity(self):
        sampler = BuoyancySampler(flat_cache(0.0))
        body = self.make_body(-1.0, buoyancy_strength=0.0, damping_strength=4.0)
        body.rigid_body.lin = (5.0, -2.0, 0.0)
        (sample,) = sampler.apply(body)
        np.testing.assert_allclose(sample.damping_force, [0.0, 8.0, 0.0])

    def test_surface_normal_mode(self):
        n = 16
        x = np.arange(n)
        grid = np.tile(np.sin(2.0 * np.pi * x / n), (n, 1)).astype(np.float32)
        cache = cache_with(grid, tile_factor=1.0 / 16)
        sampler = BuoyancySampler(cache)
        rigid = RigidBody(pos=(0.0, -2.0, 5.0))
        body = BuoyantBody(rigid, [FloatPoint((0.0, 0.0, 0.0), area=1.5)], buoyancy_strength=10.0,
                           damping_strength=0.0, movement_mode=MovementMode.ALONG_SURFACE_NORMAL)
        (sample,) = sampler.apply(body)
        expected = 10.0 * 1.5 * sample.depth
        self.assertAlmostEqual(float(np.linalg.norm(sample.buoyant_force)), expected, places=9)
        np.testing.assert_allclose(sample.buoyant_force / expected, cache.get_normal(0.0, 5.0))
        self.assertLess(sample.buoyant_force[0], 0.0)

        vertical = BuoyantBody(RigidBody(pos=(0.0, -2.0, 5.0)), [FloatPoint((0.0, 0.0, 0.0), area=1.5)],
                               buoyancy_strength=10.0, damping_strength=0.0)
        (upright,) = sampler.apply(vertical)
        self.assertEqual(upright.buoyant_force[0], 0.0)

    def test_partially_submerged_body_tilts(self):
        sampler = BuoyancySampler(flat_cache(0.0))
        rigid = RigidBody(mass=10.0, pos=(4.0, 0.0, 4.0))
        body = BuoyantBody(rigid, [FloatPoint((1.0, -0.5, 0.0)), FloatPoint((-1.0, 0.5, 0.0))],
                           buoyancy_strength=10.0, damping_strength=0.0)
        samples = sampler.apply(body)
        self.assertEqual([s.submerged for s in samples], [True, False])
        np.testing.assert_allclose(rigid.torque, [0.0, 0.0, 5.0])

    def test_box_floaters(self):
        body = BuoyantBody.box_floaters(RigidBody(), (2.0, 0.5, 4.0), area=0.5)
        self.assertEqual(len(body.float_points), 4)
        for point in body.float_points:
            self.assertEqual(point.local_position[1], -0.5)
            self.assertEqual(point.area, 0.5)


class TestReduceBuoyancy(unittest.TestCase):

    def setUp(self):
        self.body = BuoyantBody(RigidBody(), [FloatPoint((0, 0, 0))], buoyancy_strength=10.0,
                                sink_threshold=5.0, name="dinghy")

    def test_reduction_is_monotone_and_terminal(self):
        self.assertEqual(self.body.reduce_buoyancy(3.0), 7.0)
        self.assertFalse(self.body.is_sunk)
        with self.assertLogs("ocean_utilities.buoyancy", level="INFO"):
            self.assertEqual(self.body.reduce_buoyancy(2.0), 0.0)
        self.assertTrue(self.body.is_sunk)
        self.assertEqual(self.body.reduce_buoyancy(1.0), 0.0)
        self.assertEqual(self.body.reduce_buoyancy(0.0), 0.0)

    def test_negative_reduction_rejected(self):
        with self.assertRaises(ValueError):
            self.body.reduce_buoyancy(-1.0)
        self.assertEqual(self.body.buoyancy_strength, 10.0)

    def test_sunk_body_gets_no_lift(self):
        self.body.reduce_buoyancy(100.0)
        sampler = BuoyancySampler(flat_cache(0.0))
        self.body.rigid_body.pos = (0.0, -3.0, 0.0)
        (sample,) = sampler.apply(self.body)
        np.testing.assert_array_equal(sample.buoyant_force, 0.0)


if __name__ == '__main__':
    unittest.main()
