"""
Ocean Utilities Package

Spectral ocean-wave simulation and height-field queries for physics:
- Directional JONSWAP spectrum synthesis per wave layer
- Dispersion-driven time evolution with exact looping
- Two-pass inverse FFT and layer compositing with foam
- Asynchronous height-field cache with bilinear height/normal queries
- Point-floater buoyancy for rigid bodies
"""

__version__ = "1.0.0"

from ocean_utilities.buoyancy import BuoyancySampler, BuoyantBody, FloatPoint, MovementMode
from ocean_utilities.compute_backend import ComputeBackend, LatencyQueueBackend, NumpyComputeBackend
from ocean_utilities.config import FoamConfig, OceanPresets, SimulationConfig, WaveLayerConfig
from ocean_utilities.evolution import TimeState
from ocean_utilities.exceptions import (
    ComputeBackendError,
    ConfigurationError,
    OceanSimulationError,
    ReadbackError,
)
from ocean_utilities.height_cache import HeightFieldCache, HeightFieldSnapshot
from ocean_utilities.ocean import OceanSurface
from ocean_utilities.rigid_body import RigidBody
from ocean_utilities.simulation import OceanSimulation

__all__ = [
    "BuoyancySampler",
    "BuoyantBody",
    "ComputeBackend",
    "ComputeBackendError",
    "ConfigurationError",
    "FloatPoint",
    "FoamConfig",
    "HeightFieldCache",
    "HeightFieldSnapshot",
    "LatencyQueueBackend",
    "MovementMode",
    "NumpyComputeBackend",
    "OceanPresets",
    "OceanSimulation",
    "OceanSimulationError",
    "OceanSurface",
    "ReadbackError",
    "RigidBody",
    "SimulationConfig",
    "TimeState",
    "WaveLayerConfig",
]
