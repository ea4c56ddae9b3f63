"""
Numpy Kernels

Kernel ids of the wave pipeline and their vectorized numpy implementations.
Every kernel reads its inputs from the back-end parameters and buffers and
writes its outputs to buffers; all grid cells of a stage are independent.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np

from ocean_utilities.compositor import LayerCompositor
from ocean_utilities.evolution import NUM_CHANNELS, TimeEvolver, TimeState
from ocean_utilities.fields import DisplacementField, SlopeField, SpectrumField
from ocean_utilities.spectrum import SpectrumSynthesizer, pack_conjugate
from ocean_utilities.transform import SpectralTransform

THREAD_GROUP_SIZE = 8


class Kernel(IntEnum):
    INITIALIZE_SPECTRUM = 0
    PACK_SPECTRUM_CONJUGATE = 1
    UPDATE_SPECTRUM = 2
    HORIZONTAL_IFFT = 3
    VERTICAL_IFFT = 4
    ASSEMBLE_MAPS = 5
    COMPOSITE_LAYERS = 6


def buffer_layout(num_layers: int, texture_size: int) -> dict:
    """Name -> (shape, dtype) of every buffer the kernels touch."""
    n = texture_size
    return {
        "initial_spectrum": ((num_layers, 2, n, n), np.complex128),
        "spectrum": ((num_layers, NUM_CHANNELS, n, n), np.complex128),
        "displacement": ((num_layers, n, n, 3), np.float64),
        "derivatives": ((num_layers, n, n, 3), np.float64),
        "slope": ((num_layers, n, n, 2), np.float64),
        "composite_displacement": ((n, n, 3), np.float64),
        "composite_slope": ((n, n, 2), np.float64),
        "jacobian": ((n, n), np.float64),
        "foam": ((n, n), np.float64),
        "height": ((n, n), np.float32),
    }


def initialize_spectrum(backend) -> None:
    synthesizer = SpectrumSynthesizer(
        texture_size=backend.param("texture_size"),
        gravity=backend.param("gravity"),
        depth=backend.param("depth"),
        low_cutoff=backend.param("low_cutoff"),
        high_cutoff=backend.param("high_cutoff"),
        seed=backend.param("seed"),
    )
    initial = backend.buffer("initial_spectrum")
    for index, layer in enumerate(backend.param("layers")):
        initial[index, 0] = synthesizer.synthesize(layer, index).h0


def pack_spectrum_conjugate(backend) -> None:
    initial = backend.buffer("initial_spectrum")
    initial[:, 1] = pack_conjugate(initial[:, 0])


def update_spectrum(backend) -> None:
    evolver = TimeEvolver(
        gravity=backend.param("gravity"),
        depth=backend.param("depth"),
        repeat_time=backend.param("repeat_time"),
    )
    time_state = TimeState(sim_time=backend.param("frame_time"), delta_time=backend.param("delta_time"))
    initial = backend.buffer("initial_spectrum")
    spectrum = backend.buffer("spectrum")
    for index, length_scale in enumerate(backend.param("length_scales")):
        field = SpectrumField(
            h0=initial[index, 0],
            h0_conj=initial[index, 1],
            length_scale=length_scale,
            layer_index=index,
        )
        spectrum[index] = evolver.spectral_channels(field, time_state)


def horizontal_ifft(backend) -> None:
    spectrum = backend.buffer("spectrum")
    spectrum[...] = SpectralTransform(backend.param("texture_size")).row_pass(spectrum)


def vertical_ifft(backend) -> None:
    spectrum = backend.buffer("spectrum")
    spectrum[...] = SpectralTransform(backend.param("texture_size")).column_pass(spectrum)


def assemble_maps(backend) -> None:
    spectrum = backend.buffer("spectrum")
    displacement = backend.buffer("displacement")
    derivatives = backend.buffer("derivatives")
    slope = backend.buffer("slope")
    choppiness = backend.param("choppiness")
    for index in range(spectrum.shape[0]):
        disp, slp = SpectralTransform.assemble(spectrum[index], choppiness)
        displacement[index] = disp.displacement
        derivatives[index] = disp.derivatives
        slope[index] = slp.slope


def composite_layers(backend) -> None:
    displacement = backend.buffer("displacement")
    derivatives = backend.buffer("derivatives")
    slope = backend.buffer("slope")

    compositor = LayerCompositor(
        texture_size=backend.param("texture_size"),
        foam=backend.param("foam"),
        choppiness=backend.param("choppiness"),
    )
    compositor.foam = backend.buffer("foam")
    composite = compositor.composite(
        [DisplacementField(displacement[i], derivatives[i]) for i in range(displacement.shape[0])],
        [SlopeField(slope[i]) for i in range(slope.shape[0])],
        backend.param("tile_factors"),
        backend.param("delta_time"),
    )
    backend.buffer("composite_displacement")[...] = composite.displacement
    backend.buffer("composite_slope")[...] = composite.slope
    backend.buffer("jacobian")[...] = composite.jacobian
    backend.buffer("foam")[...] = composite.foam
    backend.buffer("height")[...] = composite.height


DEFAULT_KERNELS = {
    Kernel.INITIALIZE_SPECTRUM: initialize_spectrum,
    Kernel.PACK_SPECTRUM_CONJUGATE: pack_spectrum_conjugate,
    Kernel.UPDATE_SPECTRUM: update_spectrum,
    Kernel.HORIZONTAL_IFFT: horizontal_ifft,
    Kernel.VERTICAL_IFFT: vertical_ifft,
    Kernel.ASSEMBLE_MAPS: assemble_maps,
    Kernel.COMPOSITE_LAYERS: composite_layers,
}


def register_default_kernels(backend) -> None:
    for kernel_id, fn in DEFAULT_KERNELS.items():
        backend.register_kernel(kernel_id, fn)


def thread_groups(texture_size: int) -> int:
    return int(np.ceil(texture_size / THREAD_GROUP_SIZE))
