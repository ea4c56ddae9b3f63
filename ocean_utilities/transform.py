"""
Spectral Transform

Two-pass inverse FFT over the centered spectrum layout, followed by map
assembly into displacement and slope grids.

The transform uses the unnormalized (sum) convention: a spectrum that is zero
everywhere except the zero-frequency bin ``(N/2, N/2)`` with amplitude ``A``
comes back as the constant field ``A``.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np
from scipy.fft import ifft

from ocean_utilities.config import is_power_of_two
from ocean_utilities.exceptions import ConfigurationError
from ocean_utilities.fields import DisplacementField, SlopeField


class SpectralTransform:
    """Inverse 2D FFT for power-of-two ``N x N`` grids (row pass, then column pass)."""

    def __init__(self, texture_size: int):
        if not is_power_of_two(texture_size):
            raise ConfigurationError(f"FFT resolution must be a power of two, got {texture_size}")
        self.texture_size = int(texture_size)

    def _check(self, data: np.ndarray) -> None:
        if data.shape[-2:] != (self.texture_size, self.texture_size):
            raise ConfigurationError(
                f"grid shape {data.shape[-2:]} does not match transform resolution {self.texture_size}"
            )

    def row_pass(self, data: np.ndarray) -> np.ndarray:
        """1D inverse transform of every row (x axis)."""
        self._check(data)
        return ifft(np.fft.ifftshift(data, axes=-1), axis=-1, norm="forward")

    def column_pass(self, data: np.ndarray) -> np.ndarray:
        """1D inverse transform of every column (z axis)."""
        self._check(data)
        return ifft(np.fft.ifftshift(data, axes=-2), axis=-2, norm="forward")

    def inverse(self, spectrum: np.ndarray) -> np.ndarray:
        return self.column_pass(self.row_pass(spectrum))

    @staticmethod
    def assemble(spatial_channels: np.ndarray,
                 choppiness: Sequence[float] = (1.0, 1.0)) -> Tuple[DisplacementField, SlopeField]:
        """Unpack the four transformed channels of one layer.

        Args:
            spatial_channels: complex array (4, N, N) returned by ``inverse``
            choppiness: lateral displacement multipliers (lambda_x, lambda_z)

        Returns:
            DisplacementField and SlopeField for the layer
        """
        lambda_x, lambda_z = float(choppiness[0]), float(choppiness[1])
        dx_dz, dy_dxz, slopes, dxx_dzz = spatial_channels

        displacement = np.stack(
            [lambda_x * dx_dz.real, dy_dxz.real, lambda_z * dx_dz.imag], axis=-1
        )
        derivatives = np.stack([dxx_dzz.real, dxx_dzz.imag, dy_dxz.imag], axis=-1)
        slope = np.stack(
            [
                slopes.real / (1.0 + np.abs(dxx_dzz.real * lambda_x)),
                slopes.imag / (1.0 + np.abs(dxx_dzz.imag * lambda_z)),
            ],
            axis=-1,
        )
        return DisplacementField(displacement=displacement, derivatives=derivatives), SlopeField(slope=slope)
