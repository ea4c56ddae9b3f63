#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Unit tests for time evolution of the spectrum and the inverse transform.
"""

import os
import sys
import unittest

import numpy as np

# Add the parent directory to the path to import ocean_utilities
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from ocean_utilities.config import WaveLayerConfig
from ocean_utilities.evolution import TimeEvolver, TimeState
from ocean_utilities.exceptions import ConfigurationError
from ocean_utilities.spectrum import SpectrumSynthesizer, mirror_indices
from ocean_utilities.transform import SpectralTransform


def make_spectrum(texture_size=32, seed=0, length_scale=64):
    synth = SpectrumSynthesizer(texture_size=texture_size, gravity=9.81, depth=20.0, seed=seed)
    return synth.synthesize(WaveLayerConfig(wind_speed=8.0, length_scale=length_scale), 0)


class TestTimeState(unittest.TestCase):

    def test_advance(self):
        state = TimeState().advance(0.25, speed=2.0)
        self.assertEqual(state.tick, 1)
        self.assertEqual(state.delta_time, 0.5)
        self.assertEqual(state.sim_time, 0.5)
        self.assertEqual(state.advance(0.25).sim_time, 0.75)

    def test_wrapped_time(self):
        self.assertEqual(TimeState(sim_time=203.0).wrapped_time(200.0), 3.0)
        self.assertEqual(TimeState(sim_time=50.0).wrapped_time(200.0), 50.0)
        self.assertEqual(TimeState(sim_time=250.0).wrapped_time(0.0), 250.0)


class TestTimeEvolver(unittest.TestCase):

    def setUp(self):
        self.spectrum = make_spectrum()
        self.evolver = TimeEvolver(gravity=9.81, depth=20.0, repeat_time=200.0)

    def test_loop_frequency_is_harmonic(self):
        k = np.linspace(0.0, 3.0, 50)
        omega = self.evolver.loop_frequency(k)
        w0 = 2.0 * np.pi / 200.0
        np.testing.assert_allclose(omega / w0, np.round(omega / w0), atol=1e-9)
        self.assertTrue(np.all(omega <= TimeEvolver(repeat_time=0.0).loop_frequency(k) + 1e-12))

    def test_evolved_spectrum_is_hermitian(self):
        mirror = mirror_indices(32)
        for t in (0.0, 1.3, 57.25):
            htilde = self.evolver.evolve(self.spectrum, TimeState(sim_time=t))
            np.testing.assert_allclose(htilde, np.conj(htilde[mirror[:, None], mirror[None, :]]), atol=1e-12)

    def test_field_repeats_after_repeat_time(self):
        early = self.evolver.spectral_channels(self.spectrum, TimeState(sim_time=3.0))
        late = self.evolver.spectral_channels(self.spectrum, TimeState(sim_time=203.0))
        np.testing.assert_allclose(early, late, atol=1e-12)

    def test_field_changes_over_time(self):
        first = self.evolver.evolve(self.spectrum, TimeState(sim_time=0.0))
        later = self.evolver.evolve(self.spectrum, TimeState(sim_time=5.0))
        self.assertFalse(np.allclose(first, later))

    def test_channel_layout(self):
        channels = self.evolver.spectral_channels(self.spectrum, TimeState(sim_time=2.0))
        self.assertEqual(channels.shape, (4, 32, 32))
        htilde = self.evolver.evolve(self.spectrum, TimeState(sim_time=2.0))
        # zero-frequency bin carries no energy in any channel
        np.testing.assert_array_equal(channels[:, 16, 16], 0.0)
        # the real half of channel 1 is the height spectrum itself
        mirror = mirror_indices(32)
        hermitian_part = 0.5 * (channels[1] + np.conj(channels[1][mirror[:, None], mirror[None, :]]))
        np.testing.assert_allclose(hermitian_part, htilde, atol=1e-12)


class TestSpectralTransform(unittest.TestCase):

    def test_rejects_non_power_of_two(self):
        for size in (0, 3, 12, 100):
            with self.assertRaises(ConfigurationError):
                SpectralTransform(size)

    def test_rejects_wrong_shape(self):
        with self.assertRaises(ConfigurationError):
            SpectralTransform(8).inverse(np.zeros((16, 16), dtype=complex))

    def test_zero_bin_gives_constant_field(self):
        for size in (4, 8, 16, 32, 64, 128, 256):
            spectrum = np.zeros((size, size), dtype=complex)
            spectrum[size // 2, size // 2] = 1.75
            spatial = SpectralTransform(size).inverse(spectrum)
            np.testing.assert_allclose(spatial.real, 1.75, atol=1e-12)
            np.testing.assert_allclose(spatial.imag, 0.0, atol=1e-12)

    def test_single_wave_along_x(self):
        n = 16
        spectrum = np.zeros((n, n), dtype=complex)
        spectrum[n // 2, n // 2 + 1] = 0.5
        spectrum[n // 2, n // 2 - 1] = 0.5
        spatial = SpectralTransform(n).inverse(spectrum)
        x = np.arange(n)
        expected = np.tile(np.cos(2.0 * np.pi * x / n), (n, 1))
        np.testing.assert_allclose(spatial.real, expected, atol=1e-12)
        np.testing.assert_allclose(spatial.imag, 0.0, atol=1e-12)

    def test_passes_commute_with_full_inverse(self):
        rng = np.random.default_rng(0)
        data = rng.standard_normal((8, 8)) + 1j * rng.standard_normal((8, 8))
        transform = SpectralTransform(8)
        expected = np.fft.ifft2(np.fft.ifftshift(data)) * 64
        np.testing.assert_allclose(transform.inverse(data), expected, atol=1e-10)

    def test_height_channel_is_real(self):
        spectrum = make_spectrum()
        channels = TimeEvolver().spectral_channels(spectrum, TimeState(sim_time=4.0))
        spatial = SpectralTransform(32).inverse(channels)
        height_only = SpectralTransform(32).inverse(TimeEvolver().evolve(spectrum, TimeState(sim_time=4.0)))
        scale = np.abs(height_only.real).max()
        self.assertGreater(scale, 0.0)
        np.testing.assert_allclose(height_only.imag, 0.0, atol=1e-9 * scale)
        np.testing.assert_allclose(spatial[1].real, height_only.real, atol=1e-9 * scale)

    def test_assemble_applies_choppiness(self):
        n = 8
        spatial = np.zeros((4, n, n), dtype=complex)
        spatial[0] = 2.0 + 3.0j
        spatial[1] = 1.5 + 0.25j
        spatial[2] = 0.4 - 0.2j
        spatial[3] = 1.0 - 0.5j
        disp, slope = SpectralTransform.assemble(spatial, choppiness=(0.5, 2.0))
        np.testing.assert_allclose(disp.displacement[0, 0], [1.0, 1.5, 6.0])
        np.testing.assert_allclose(disp.derivatives[0, 0], [1.0, -0.5, 0.25])
        np.testing.assert_allclose(slope.slope[0, 0], [0.4 / 1.5, -0.2 / 2.0])
        np.testing.assert_allclose(disp.height, 1.5)


if __name__ == '__main__':
    unittest.main()
