"""Containers for the grids flowing through the wave pipeline."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class SpectrumField:
    """Initial amplitudes of one layer and their mirrored conjugates.

    ``h0_conj[n, m] == conj(h0[-n, -m])`` so the evolved spectrum
    ``h0 * e^{i phi} + h0_conj * e^{-i phi}`` is Hermitian for any phase.
    """

    h0: np.ndarray
    h0_conj: np.ndarray
    length_scale: float
    layer_index: int = 0

    @property
    def resolution(self) -> int:
        return self.h0.shape[-1]


@dataclass
class DisplacementField:
    """Spatial displacement of one layer plus the horizontal derivatives.

    ``displacement`` has shape (N, N, 3) holding the lateral x offset, the
    vertical offset and the lateral z offset. ``derivatives`` has shape
    (N, N, 3) holding dDx/dx, dDz/dz and dDz/dx.
    """

    displacement: np.ndarray
    derivatives: np.ndarray

    @property
    def height(self) -> np.ndarray:
        return self.displacement[..., 1]


@dataclass
class SlopeField:
    """Surface slopes (dh/dx, dh/dz) of one layer, shape (N, N, 2)."""

    slope: np.ndarray


@dataclass
class CompositeField:
    """Sum of all layers, the foam grid and the foam jacobian."""

    displacement: np.ndarray
    slope: np.ndarray
    foam: np.ndarray
    jacobian: np.ndarray

    @property
    def height(self) -> np.ndarray:
        return self.displacement[..., 1]

    @property
    def resolution(self) -> int:
        return self.displacement.shape[0]
