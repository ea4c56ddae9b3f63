"""
Time Evolution

Advances every frequency bin's phase with the finite-depth dispersion
relation and expands the evolved height spectrum into the packed channels the
inverse transform consumes.

Each packed channel stores two Hermitian spectra as ``A + iB`` so one complex
inverse FFT recovers two real fields (real part A, imaginary part B):

    channel 0: lateral x displacement       + i * lateral z displacement
    channel 1: vertical displacement (h)    + i * dDz/dx
    channel 2: dh/dx                        + i * dh/dz
    channel 3: dDx/dx                       + i * dDz/dz
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ocean_utilities.fields import SpectrumField
from ocean_utilities.spectrum import dispersion, wavenumber_grid

NUM_CHANNELS = 4


@dataclass(frozen=True)
class TimeState:
    """Simulation clock for one tick."""

    sim_time: float = 0.0
    delta_time: float = 0.0
    tick: int = 0

    def wrapped_time(self, repeat_time: float) -> float:
        if repeat_time <= 0:
            return self.sim_time
        return float(np.fmod(self.sim_time, repeat_time))

    def advance(self, delta_time: float, speed: float = 1.0) -> "TimeState":
        step = float(delta_time) * float(speed)
        return TimeState(sim_time=self.sim_time + step, delta_time=step, tick=self.tick + 1)


class TimeEvolver:
    def __init__(self, gravity: float = 9.81, depth: float = 20.0, repeat_time: float = 200.0):
        self.gravity = float(gravity)
        self.depth = float(depth)
        self.repeat_time = float(repeat_time)

    @classmethod
    def from_config(cls, config) -> "TimeEvolver":
        return cls(gravity=config.gravity, depth=config.depth, repeat_time=config.repeat_time)

    def loop_frequency(self, k: np.ndarray) -> np.ndarray:
        """Dispersion frequency snapped down to a multiple of 2*pi/repeat_time.

        With every bin on a harmonic of the loop frequency the whole field
        repeats exactly after ``repeat_time`` seconds.
        """
        omega = dispersion(k, self.gravity, self.depth)
        if self.repeat_time <= 0:
            return omega
        w0 = 2.0 * np.pi / self.repeat_time
        return np.floor(omega / w0) * w0

    def phase(self, k: np.ndarray, time_state: TimeState) -> np.ndarray:
        return self.loop_frequency(k) * time_state.wrapped_time(self.repeat_time)

    def evolve(self, spectrum: SpectrumField, time_state: TimeState) -> np.ndarray:
        """Height spectrum ``h(k, t)``; Hermitian by construction."""
        kx, kz = wavenumber_grid(spectrum.resolution, spectrum.length_scale)
        phase = self.phase(np.hypot(kx, kz), time_state)
        exponent = np.exp(1j * phase)
        return spectrum.h0 * exponent + spectrum.h0_conj * np.conj(exponent)

    def spectral_channels(self, spectrum: SpectrumField, time_state: TimeState) -> np.ndarray:
        """Packed frequency-domain channels, shape (4, N, N) complex."""
        kx, kz = wavenumber_grid(spectrum.resolution, spectrum.length_scale)
        k = np.hypot(kx, kz)
        k_rcp = np.where(k < 0.0001, 1.0, 1.0 / np.maximum(k, 0.0001))

        htilde = self.evolve(spectrum, time_state)
        ih = 1j * htilde

        displacement_x = ih * kx * k_rcp
        displacement_z = ih * kz * k_rcp
        displacement_x_dx = -htilde * kx * kx * k_rcp
        displacement_z_dx = -htilde * kx * kz * k_rcp
        displacement_z_dz = -htilde * kz * kz * k_rcp
        height_dx = ih * kx
        height_dz = ih * kz

        channels = np.empty((NUM_CHANNELS,) + htilde.shape, dtype=np.complex128)
        channels[0] = displacement_x + 1j * displacement_z
        channels[1] = htilde + 1j * displacement_z_dx
        channels[2] = height_dx + 1j * height_dz
        channels[3] = displacement_x_dx + 1j * displacement_z_dz
        return channels
