"""
Layer Compositor

Sums the per-layer displacement/slope grids into one composite surface and
integrates the foam grid with a clamped first-order filter:

    foam_t = clamp(foam_{t-1} + foam_add * turbulence - foam_decay_rate * dt, 0, 1)

Turbulence is the amount by which the (biased) surface jacobian folds past the
foam threshold; the clamp bounds are hard invariants of the foam grid.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from ocean_utilities.config import FoamConfig
from ocean_utilities.exceptions import ConfigurationError
from ocean_utilities.fields import CompositeField, DisplacementField, SlopeField



def surface_jacobian(derivatives: np.ndarray, choppiness: Sequence[float] = (1.0, 1.0)) -> np.ndarray:
    """Jacobian of the horizontal displacement map; < 0 where the surface folds."""
    lambda_x, lambda_z = float(choppiness[0]), float(choppiness[1])
    dxx = derivatives[..., 0]
    dzz = derivatives[..., 1]
    dxz = derivatives[..., 2]
    return (1.0 + lambda_x * dxx) * (1.0 + lambda_z * dzz) - lambda_x * lambda_z * dxz * dxz


def turbulence(jacobian: np.ndarray, foam_bias: float, foam_threshold: float) -> np.ndarray:
    biased = np.maximum(0.0, -(jacobian - foam_bias))
    return np.where(biased > foam_threshold, biased, 0.0)


def integrate_foam(previous: np.ndarray, turbulence_grid: np.ndarray, foam_add: float,
                   foam_decay_rate: float, delta_time: float) -> np.ndarray:
    foam = previous + foam_add * turbulence_grid - foam_decay_rate * delta_time
    return np.clip(foam, 0.0, 1.0)


class LayerCompositor:
    def __init__(self, texture_size: int, foam: Optional[FoamConfig] = None,
                 choppiness: Sequence[float] = (1.0, 1.0)):
        self.texture_size = int(texture_size)
        self.foam_config = foam if foam is not None else FoamConfig()
        self.choppiness = tuple(float(c) for c in choppiness)
        self.foam = np.zeros((self.texture_size, self.texture_size))

    def reset(self) -> None:
        self.foam = np.zeros((self.texture_size, self.texture_size))

    def _check_layers(self, displacements, slopes, tile_factors) -> None:
        if not displacements:
            raise ConfigurationError("no layers to composite")
        if not len(displacements) == len(slopes) == len(tile_factors):
            raise ConfigurationError(
                f"layer count mismatch: {len(displacements)} displacement, "
                f"{len(slopes)} slope, {len(tile_factors)} tile factors"
            )
        expected = (self.texture_size, self.texture_size)
        for index, (disp, slope) in enumerate(zip(displacements, slopes)):
            if disp.displacement.shape[:2] != expected or slope.slope.shape[:2] != expected:
                raise ConfigurationError(
                    f"layer {index} grid {disp.displacement.shape[:2]} does not match composite {expected}"
                )

    def composite(self, displacements: Sequence[DisplacementField], slopes: Sequence[SlopeField],
                  tile_factors: Sequence[float], delta_time: float) -> CompositeField:
        self._check_layers(displacements, slopes, tile_factors)

        n = self.texture_size
        displacement = np.zeros((n, n, 3))
        derivatives = np.zeros((n, n, 3))
        slope = np.zeros((n, n, 2))
        for disp, slp, tile in zip(displacements, slopes, tile_factors):
            displacement += disp.displacement * tile
            derivatives += disp.derivatives * tile
            slope += slp.slope * tile

        jacobian = surface_jacobian(derivatives, self.choppiness)
        cfg = self.foam_config
        self.foam = integrate_foam(
            self.foam,
            turbulence(jacobian, cfg.foam_bias, cfg.foam_threshold),
            cfg.foam_add,
            cfg.foam_decay_rate,
            delta_time,
        )
        return CompositeField(displacement=displacement, slope=slope, foam=self.foam, jacobian=jacobian)
