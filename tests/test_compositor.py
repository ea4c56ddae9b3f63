#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Unit tests for layer compositing and foam integration.
"""

import os
import sys
import unittest

import numpy as np

# Add the parent directory to the path to import ocean_utilities
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ocean_utilities.compositor import LayerCompositor, integrate_foam, surface_jacobian, turbulence
from ocean_utilities.config import FoamConfig
from ocean_utilities.exceptions import ConfigurationError
from ocean_utilities.fields import DisplacementField, SlopeField


def layer(n, value, derivatives=0.0):
    disp = DisplacementField(
        displacement=np.full((n, n, 3), value, dtype=float),
        derivatives=np.full((n, n, 3), derivatives, dtype=float),
    )
    return disp, SlopeField(slope=np.full((n, n, 2), value, dtype=float))


class TestFoamFunctions(unittest.TestCase):

    def test_flat_surface_jacobian_is_one(self):
        np.testing.assert_allclose(surface_jacobian(np.zeros((4, 4, 3))), 1.0)

    def test_jacobian_formula(self):
        derivatives = np.array([0.2, -0.4, 0.3])
        expected = (1 + 0.5 * 0.2) * (1 + 2.0 * -0.4) - 0.5 * 2.0 * 0.3 * 0.3
        self.assertAlmostEqual(float(surface_jacobian(derivatives, (0.5, 2.0))), expected)

    def test_turbulence_threshold(self):
        jacobian = np.array([1.0, -0.5, -1.0, -2.0])
        result = turbulence(jacobian, foam_bias=-0.5, foam_threshold=0.6)
        np.testing.assert_allclose(result, [0.0, 0.0, 0.0, 1.5])

    def test_foam_stays_in_unit_interval(self):
        rng = np.random.default_rng(0)
        foam = np.zeros((16, 16))
        for _ in range(200):
            turb = rng.uniform(0.0, 5.0, size=(16, 16)) * (rng.random((16, 16)) < 0.3)
            foam = integrate_foam(foam, turb, foam_add=rng.uniform(0, 1),
                                  foam_decay_rate=rng.uniform(0, 2), delta_time=rng.uniform(0, 0.1))
            self.assertGreaterEqual(foam.min(), 0.0)
            self.assertLessEqual(foam.max(), 1.0)

    def test_foam_decays_without_turbulence(self):
        foam = integrate_foam(np.full(3, 0.5), np.zeros(3), 0.5, 1.0, 0.25)
        np.testing.assert_allclose(foam, 0.25)


class TestLayerCompositor(unittest.TestCase):

    def test_tile_weighted_sum(self):
        compositor = LayerCompositor(4)
        first, first_slope = layer(4, 1.0)
        second, second_slope = layer(4, 2.0)
        result = compositor.composite([first, second], [first_slope, second_slope], [1.0, 0.5], 0.02)
        np.testing.assert_allclose(result.displacement, 2.0)
        np.testing.assert_allclose(result.slope, 2.0)
        np.testing.assert_allclose(result.height, 2.0)
        self.assertEqual(result.resolution, 4)

    def test_folding_surface_accumulates_foam(self):
        compositor = LayerCompositor(4, foam=FoamConfig(foam_bias=0.0, foam_threshold=0.0, foam_add=0.5))
        folded, slope = layer(4, 0.0, derivatives=-3.0)
        result = compositor.composite([folded], [slope], [1.0], 0.0)
        self.assertTrue(np.all(result.jacobian < 0.0))
        self.assertTrue(np.all(result.foam > 0.0))
        for _ in range(10):
            result = compositor.composite([folded], [slope], [1.0], 0.0)
        np.testing.assert_allclose(result.foam, 1.0)

        compositor.reset()
        np.testing.assert_array_equal(compositor.foam, 0.0)

    def test_mismatched_layers_rejected(self):
        compositor = LayerCompositor(4)
        good, good_slope = layer(4, 1.0)
        bad, bad_slope = layer(8, 1.0)
        with self.assertRaises(ConfigurationError):
            compositor.composite([good, bad], [good_slope, bad_slope], [1.0, 1.0], 0.02)
        with self.assertRaises(ConfigurationError):
            compositor.composite([good], [good_slope], [1.0, 1.0], 0.02)
        with self.assertRaises(ConfigurationError):
            compositor.composite([], [], [], 0.02)


if __name__ == '__main__':
    unittest.main()
