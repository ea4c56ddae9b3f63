"""
Spectrum Synthesis

Builds the initial frequency-domain amplitudes of each wave layer from a
directional JONSWAP spectrum.

Grid convention: cell ``(row, col)`` of an ``N x N`` grid holds the
wavevector ``k = 2*pi*(n - N/2)/length_scale`` with ``n = col`` along x and
``n = row`` along z, so the zero-frequency bin sits at ``(N/2, N/2)``.

Key pieces:
    - JONSWAP alpha / peak frequency from wind speed and fetch
    - finite-depth dispersion relation and its derivative
    - TMA shallow-water correction
    - cos-2s directional spreading blended with a broad cos^2 base
    - seeded Gaussian amplitudes, reproducible per (seed, layer)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ocean_utilities.fields import SpectrumField

logger = logging.getLogger(__name__)

# tanh/cosh arguments are clamped here, beyond it tanh(x) == 1 in float32
DEPTH_ARGUMENT_CLAMP = 20.0


def jonswap_alpha(fetch: float, wind_speed: float, gravity: float = 9.81) -> float:
    return 0.076 * wind_speed ** 0.44 / (gravity * fetch) ** 0.22


def jonswap_peak_omega(fetch: float, wind_speed: float, gravity: float = 9.81) -> float:
    return 22.0 * gravity ** 0.66 / (wind_speed * fetch) ** 0.33


def wavenumber_grid(texture_size: int, length_scale: float) -> Tuple[np.ndarray, np.ndarray]:
    """Centered wavevector components (kx along columns, kz along rows)."""
    delta_k = 2.0 * np.pi / length_scale
    n = np.arange(texture_size, dtype=np.float64) - texture_size / 2.0
    kx, kz = np.meshgrid(n * delta_k, n * delta_k)
    return kx, kz


def dispersion(k: np.ndarray, gravity: float, depth: float) -> np.ndarray:
    """Finite-depth dispersion ``w = sqrt(g k tanh(k d))``."""
    k = np.abs(np.asarray(k, dtype=np.float64))
    return np.sqrt(gravity * k * np.tanh(np.minimum(k * depth, DEPTH_ARGUMENT_CLAMP)))


def dispersion_derivative(k: np.ndarray, gravity: float, depth: float) -> np.ndarray:
    k = np.abs(np.asarray(k, dtype=np.float64))
    kd = np.minimum(k * depth, DEPTH_ARGUMENT_CLAMP)
    th = np.tanh(kd)
    ch = np.cosh(kd)
    omega = dispersion(k, gravity, depth)
    omega_safe = np.where(omega > 0.0, omega, 1.0)
    derivative = gravity * (depth * k / (ch * ch) + th) / omega_safe / 2.0
    return np.where(omega > 0.0, derivative, 0.0)


def tma_correction(omega: np.ndarray, gravity: float, depth: float) -> np.ndarray:
    omega_h = omega * np.sqrt(depth / gravity)
    return np.where(
        omega_h <= 1.0,
        0.5 * omega_h * omega_h,
        np.where(omega_h < 2.0, 1.0 - 0.5 * (2.0 - omega_h) ** 2, 1.0),
    )


def jonswap(omega: np.ndarray, params: "LayerSpectrumParameters", gravity: float, depth: float) -> np.ndarray:
    """JONSWAP energy density with TMA depth correction, zero where omega <= 0."""
    omega = np.asarray(omega, dtype=np.float64)
    omega_safe = np.where(omega > 0.0, omega, 1.0)
    peak = params.peak_omega
    sigma = np.where(omega_safe <= peak, 0.07, 0.09)
    r = np.exp(-((omega_safe - peak) ** 2) / (2.0 * sigma ** 2 * peak ** 2))
    density = (
        params.scale
        * tma_correction(omega_safe, gravity, depth)
        * params.alpha
        * gravity ** 2
        / omega_safe ** 5
        * np.exp(-1.25 * (peak / omega_safe) ** 4)
        * np.abs(params.gamma) ** r
    )
    return np.where(omega > 0.0, density, 0.0)


def normalisation_factor(s: np.ndarray) -> np.ndarray:
    s = np.asarray(s, dtype=np.float64)
    s2, s3, s4 = s * s, s ** 3, s ** 4
    low = -0.000564 * s4 + 0.00776 * s3 - 0.044 * s2 + 0.192 * s + 0.163
    high = -4.80e-08 * s4 + 1.07e-05 * s3 - 9.53e-04 * s2 + 5.90e-02 * s + 3.93e-01
    return np.where(s < 5.0, low, high)


def spread_power(omega: np.ndarray, peak_omega: float) -> np.ndarray:
    ratio = np.abs(np.asarray(omega, dtype=np.float64) / peak_omega)
    ratio_safe = np.where(ratio > 0.0, ratio, 1.0)
    return np.where(ratio > 1.0, 9.77 * ratio_safe ** -2.5, 6.97 * ratio ** 5.0)


def cosine_2s(theta: np.ndarray, s: np.ndarray) -> np.ndarray:
    return normalisation_factor(s) * np.abs(np.cos(0.5 * theta)) ** (2.0 * s)


def direction_spectrum(theta: np.ndarray, omega: np.ndarray, params: "LayerSpectrumParameters") -> np.ndarray:
    """Directional spreading for wave angle ``theta`` relative to the wind."""
    ratio = np.minimum(np.asarray(omega) / params.peak_omega, DEPTH_ARGUMENT_CLAMP)
    s = spread_power(omega, params.peak_omega) + 16.0 * np.tanh(ratio) * params.swell ** 2
    broad = 2.0 / np.pi * np.cos(theta) ** 2
    narrow = cosine_2s(theta, s)
    return broad + (narrow - broad) * params.spread_blend


def short_waves_fade(k: np.ndarray, fade: float) -> np.ndarray:
    return np.exp(-fade * fade * k * k)


@dataclass(frozen=True)
class LayerSpectrumParameters:
    """Derived per-layer spectrum parameters, as consumed by the kernels."""

    scale: float
    angle: float
    spread_blend: float
    swell: float
    alpha: float
    peak_omega: float
    gamma: float
    short_waves_fade: float

    @classmethod
    def from_layer(cls, layer, gravity: float) -> "LayerSpectrumParameters":
        return cls(
            scale=float(layer.scale),
            angle=float(np.deg2rad(layer.wind_direction_deg)),
            spread_blend=float(layer.spread_blend),
            swell=float(np.clip(layer.swell, 0.01, 1.0)),
            alpha=jonswap_alpha(layer.fetch, layer.wind_speed, gravity),
            peak_omega=jonswap_peak_omega(layer.fetch, layer.wind_speed, gravity),
            gamma=float(layer.peak_enhancement),
            short_waves_fade=float(layer.short_waves_fade),
        )


class SpectrumSynthesizer:
    """Generate initial amplitude grids ``h0`` for wave layers."""

    def __init__(self, texture_size: int, gravity: float = 9.81, depth: float = 20.0,
                 low_cutoff: float = 0.0001, high_cutoff: float = 9000.0, seed: int = 0):
        self.texture_size = int(texture_size)
        self.gravity = float(gravity)
        self.depth = float(depth)
        self.low_cutoff = float(low_cutoff)
        self.high_cutoff = float(high_cutoff)
        self.seed = int(seed)

    @classmethod
    def from_config(cls, config) -> "SpectrumSynthesizer":
        return cls(
            texture_size=config.texture_size,
            gravity=config.gravity,
            depth=config.depth,
            low_cutoff=config.low_cutoff,
            high_cutoff=config.high_cutoff,
            seed=config.seed,
        )

    def gaussian_pairs(self, layer_index: int) -> np.ndarray:
        """Two independent standard normal grids, shape (2, N, N).

        The stream depends only on (seed, layer_index), so a layer's noise
        does not change when other layers are added or edited.
        """
        rng = np.random.default_rng([self.seed, int(layer_index)])
        return rng.standard_normal((2, self.texture_size, self.texture_size))

    def spectral_density(self, layer, kx: np.ndarray, kz: np.ndarray) -> np.ndarray:
        params = LayerSpectrumParameters.from_layer(layer, self.gravity)
        k = np.hypot(kx, kz)
        omega = dispersion(k, self.gravity, self.depth)
        theta = np.arctan2(kz, kx) - params.angle
        theta = np.arctan2(np.sin(theta), np.cos(theta))
        return (
            jonswap(omega, params, self.gravity, self.depth)
            * direction_spectrum(theta, omega, params)
            * short_waves_fade(k, params.short_waves_fade)
        )

    def synthesize(self, layer, layer_index: int = 0) -> SpectrumField:
        n = self.texture_size
        length_scale = float(layer.length_scale)
        delta_k = 2.0 * np.pi / length_scale
        kx, kz = wavenumber_grid(n, length_scale)
        k = np.hypot(kx, kz)

        active = (k >= self.low_cutoff) & (k <= self.high_cutoff) & (k > 0.0)
        # Nyquist row/column mirror onto themselves and would break the
        # conjugate pairing of the odd derivative channels
        active[0, :] = False
        active[:, 0] = False

        density = self.spectral_density(layer, kx, kz)
        k_safe = np.where(active, k, 1.0)
        d_omega = np.abs(dispersion_derivative(k_safe, self.gravity, self.depth))
        amplitude = np.sqrt(np.maximum(2.0 * density * d_omega / k_safe * delta_k ** 2, 0.0))
        amplitude = np.where(active, np.nan_to_num(amplitude, nan=0.0, posinf=0.0, neginf=0.0), 0.0)

        logger.debug(
            "layer %d: %d active bins, peak amplitude %.4g",
            layer_index, int(np.count_nonzero(amplitude)), float(amplitude.max()),
        )
        gauss = self.gaussian_pairs(layer_index)
        h0 = (gauss[0] + 1j * gauss[1]) * amplitude
        return SpectrumField(
            h0=h0,
            h0_conj=pack_conjugate(h0),
            length_scale=length_scale,
            layer_index=int(layer_index),
        )


def mirror_indices(texture_size: int) -> np.ndarray:
    """Index of ``-k`` for every centered index ``n``: ``(N - n) mod N``."""
    n = np.arange(texture_size)
    return (texture_size - n) % texture_size


def pack_conjugate(h0: np.ndarray) -> np.ndarray:
    """``conj(h0(-k))`` laid out on the same grid as ``h0``."""
    mirror = mirror_indices(h0.shape[-1])
    return np.conj(h0[..., mirror[:, None], mirror[None, :]])
