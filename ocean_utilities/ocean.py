from __future__ import annotations

import logging
from dataclasses import astuple
from typing import Optional

import numpy as np
import pyvista as pv

from ocean_utilities.compute_backend import ComputeBackend, NumpyComputeBackend
from ocean_utilities.config import OceanPresets, SimulationConfig
from ocean_utilities.evolution import TimeState
from ocean_utilities.exceptions import ComputeBackendError, ConfigurationError
from ocean_utilities.fields import CompositeField, DisplacementField, SlopeField, SpectrumField
from ocean_utilities.kernels import Kernel, buffer_layout, register_default_kernels, thread_groups

logger = logging.getLogger(__name__)


class OceanSurface:
    """Generate ocean surface realisations from layered directional JONSWAP spectra.

    Owns the compute buffers and runs, once per tick, the kernel sequence
    spectrum update -> row IFFT -> column IFFT -> map assembly -> composite.
    The initial spectrum is rebuilt only when a spectral parameter changed.
    """

    def __init__(self, config: Optional[SimulationConfig] = None,
                 backend: Optional[ComputeBackend] = None) -> None:
        if config is None:
            config = SimulationConfig()
        self.config = config.validate()

        if backend is None:
            backend = NumpyComputeBackend()
            register_default_kernels(backend)
        self.backend = self._check_backend(backend)

        self.texture_size = int(config.texture_size)
        self.num_layers = len(config.layers)
        self.thread_groups = thread_groups(self.texture_size)

        for name, (shape, dtype) in buffer_layout(self.num_layers, self.texture_size).items():
            self.backend.create_buffer(name, shape, dtype)

        self.time_state = TimeState()
        self._spectrum_signature = None
        self.spectrum_builds = 0
        self.mesh: Optional[pv.PolyData] = None

        self._upload_params(self.time_state)
        self.initialize_spectrum()
        logger.info(
            "ocean surface ready: %d layer(s) at %dx%d, seed %d",
            self.num_layers, self.texture_size, self.texture_size, config.seed,
        )

    # Factory methods for common scenarios
    @classmethod
    def calm_sea(cls, texture_size: int = 128, seed: int = 0) -> "OceanSurface":
        return cls(OceanPresets.calm_sea(texture_size=texture_size, seed=seed))

    @classmethod
    def rough_sea(cls, texture_size: int = 128, seed: int = 0) -> "OceanSurface":
        return cls(OceanPresets.rough_sea(texture_size=texture_size, seed=seed))

    @staticmethod
    def _check_backend(backend) -> ComputeBackend:
        for attr in ("dispatch", "set_param", "request_readback", "has_kernel", "create_buffer"):
            if not callable(getattr(backend, attr, None)):
                raise ComputeBackendError(f"compute backend {backend!r} does not provide '{attr}'")
        missing = [kernel.name for kernel in Kernel if not backend.has_kernel(kernel)]
        if missing:
            raise ComputeBackendError(f"compute backend has no kernel bound for: {', '.join(missing)}")
        return backend

    # parameters ---------------------------------------------------------------
    def _spectral_signature(self) -> tuple:
        cfg = self.config
        return (
            cfg.seed, cfg.gravity, cfg.depth, cfg.low_cutoff, cfg.high_cutoff,
            tuple(astuple(layer) for layer in cfg.layers),
        )

    def _upload_params(self, time_state: TimeState) -> None:
        cfg = self.config
        if len(cfg.layers) != self.num_layers:
            raise ConfigurationError(
                f"layer count changed from {self.num_layers} to {len(cfg.layers)}; rebuild the surface"
            )
        if cfg.texture_size != self.texture_size:
            raise ConfigurationError(
                f"texture_size changed from {self.texture_size} to {cfg.texture_size}; rebuild the surface"
            )
        set_param = self.backend.set_param
        set_param("texture_size", self.texture_size)
        set_param("seed", cfg.seed)
        set_param("gravity", cfg.gravity)
        set_param("depth", cfg.depth)
        set_param("repeat_time", cfg.repeat_time)
        set_param("low_cutoff", cfg.low_cutoff)
        set_param("high_cutoff", cfg.high_cutoff)
        set_param("layers", list(cfg.layers))
        set_param("length_scales", [float(layer.length_scale) for layer in cfg.layers])
        set_param("tile_factors", [float(layer.tile_factor) for layer in cfg.layers])
        set_param("choppiness", tuple(cfg.choppiness))
        set_param("foam", cfg.foam)
        set_param("frame_time", time_state.sim_time)
        set_param("delta_time", time_state.delta_time)

    @property
    def spectrum_dirty(self) -> bool:
        return self._spectral_signature() != self._spectrum_signature

    def initialize_spectrum(self) -> None:
        groups = (self.thread_groups, self.thread_groups, 1)
        self.backend.dispatch(Kernel.INITIALIZE_SPECTRUM, groups)
        self.backend.dispatch(Kernel.PACK_SPECTRUM_CONJUGATE, groups)
        self._spectrum_signature = self._spectral_signature()
        self.spectrum_builds += 1
        logger.info("initial spectrum built (%d)", self.spectrum_builds)

    # per tick -------------------------------------------------------------------
    def step(self, time_state: TimeState) -> CompositeField:
        """Advance the surface to ``time_state`` and return the composite field."""
        # live-tuned parameters are checked before they reach the kernels
        self.config.validate()
        self._upload_params(time_state)
        if self.spectrum_dirty:
            self.initialize_spectrum()

        n = self.texture_size
        groups = (self.thread_groups, self.thread_groups, 1)
        self.backend.dispatch(Kernel.UPDATE_SPECTRUM, groups)
        self.backend.dispatch(Kernel.HORIZONTAL_IFFT, (1, n, 1))
        self.backend.dispatch(Kernel.VERTICAL_IFFT, (1, n, 1))
        self.backend.dispatch(Kernel.ASSEMBLE_MAPS, groups)
        self.backend.dispatch(Kernel.COMPOSITE_LAYERS, groups)
        self.time_state = time_state
        return self.composite

    # outputs ---------------------------------------------------------------------
    @property
    def composite(self) -> CompositeField:
        return CompositeField(
            displacement=self.backend.buffer("composite_displacement"),
            slope=self.backend.buffer("composite_slope"),
            foam=self.backend.buffer("foam"),
            jacobian=self.backend.buffer("jacobian"),
        )

    def spectrum_field(self, layer_index: int) -> SpectrumField:
        initial = self.backend.buffer("initial_spectrum")
        return SpectrumField(
            h0=initial[layer_index, 0].copy(),
            h0_conj=initial[layer_index, 1].copy(),
            length_scale=float(self.config.layers[layer_index].length_scale),
            layer_index=layer_index,
        )

    def layer_fields(self, layer_index: int) -> tuple[DisplacementField, SlopeField]:
        return (
            DisplacementField(
                displacement=self.backend.buffer("displacement")[layer_index],
                derivatives=self.backend.buffer("derivatives")[layer_index],
            ),
            SlopeField(slope=self.backend.buffer("slope")[layer_index]),
        )

    @property
    def height_buffer(self) -> str:
        """Name of the buffer holding the composite height grid."""
        return "height"

    @property
    def tile_period(self) -> float:
        """World distance covered by one repeat of the height grid."""
        return 1.0 / float(self.config.layers[0].tile_factor)

    # mesh export ----------------------------------------------------------------
    def _generate_grid(self) -> pv.StructuredGrid:
        n = self.texture_size
        composite = self.composite
        coords = np.arange(n) / n * self.tile_period
        xx, zz = np.meshgrid(coords, coords)

        xx = xx + composite.displacement[..., 0]
        zz = zz + composite.displacement[..., 2]
        height = composite.height

        grid = pv.StructuredGrid(xx, zz, height)
        grid["Height"] = height.ravel(order="F")
        grid["Foam"] = composite.foam.ravel(order="F")
        return grid

    def generate_mesh(self) -> pv.PolyData:
        self.mesh = self._generate_grid().extract_surface().triangulate()
        return self.mesh

    def save_mesh(self, output_path: str) -> None:
        if self.mesh is None:
            self.generate_mesh()
        self.mesh.save(output_path)

    def close(self) -> None:
        self.backend.close()
