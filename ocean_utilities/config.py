"""
Simulation Configuration

Dataclass containers for the per-layer wave spectrum settings and the global
simulation settings, with validation, dict/JSON round trips and a small
preset library.

All validation happens up front: ``SimulationConfig.validate()`` gathers every
problem it finds and raises a single ``ConfigurationError`` so a bad setup is
reported at initialization and never discovered mid-simulation.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Tuple

from ocean_utilities.exceptions import ConfigurationError
from ocean_utilities.spectrum import jonswap_alpha, jonswap_peak_omega


def is_power_of_two(value) -> bool:
    try:
        value = int(value)
    except (TypeError, ValueError):
        return False
    return value > 0 and (value & (value - 1)) == 0


@dataclass
class WaveLayerConfig:
    """Spectrum settings for one wave layer (cascade)."""

    scale: float = 1.0
    wind_speed: float = 10.0
    wind_direction_deg: float = 0.0
    fetch: float = 100000.0
    spread_blend: float = 1.0
    swell: float = 0.2
    peak_enhancement: float = 3.3  # JONSWAP gamma
    short_waves_fade: float = 0.0
    length_scale: int = 256
    tile_factor: float = 1.0

    def alpha(self, gravity: float) -> float:
        return jonswap_alpha(self.fetch, self.wind_speed, gravity)

    def peak_omega(self, gravity: float) -> float:
        return jonswap_peak_omega(self.fetch, self.wind_speed, gravity)

    def problems(self, index: int = 0) -> List[str]:
        prefix = f"layer {index}"
        found = []
        if self.wind_speed <= 0:
            found.append(f"{prefix}: wind_speed must be > 0, got {self.wind_speed}")
        if self.fetch <= 0:
            found.append(f"{prefix}: fetch must be > 0, got {self.fetch}")
        if not 0.0 <= self.wind_direction_deg <= 360.0:
            found.append(f"{prefix}: wind_direction_deg must be within [0, 360], got {self.wind_direction_deg}")
        if not 0.0 <= self.spread_blend <= 1.0:
            found.append(f"{prefix}: spread_blend must be within [0, 1], got {self.spread_blend}")
        if not 0.0 <= self.swell <= 1.0:
            found.append(f"{prefix}: swell must be within [0, 1], got {self.swell}")
        if self.scale < 0:
            found.append(f"{prefix}: scale must be >= 0, got {self.scale}")
        if self.peak_enhancement <= 0:
            found.append(f"{prefix}: peak_enhancement must be > 0, got {self.peak_enhancement}")
        if not is_power_of_two(self.length_scale):
            found.append(f"{prefix}: length_scale must be a power of two, got {self.length_scale}")
        if self.tile_factor <= 0:
            found.append(f"{prefix}: tile_factor must be > 0, got {self.tile_factor}")
        return found


@dataclass
class FoamConfig:
    """Foam accumulation settings used by the layer compositor."""

    foam_bias: float = -0.5
    foam_threshold: float = 0.0
    foam_add: float = 0.5
    foam_decay_rate: float = 0.05


def _default_layers() -> List[WaveLayerConfig]:
    return OceanPresets.default_layers()


@dataclass
class SimulationConfig:
    """Global settings shared by every layer of the simulation."""

    seed: int = 0
    gravity: float = 9.81
    depth: float = 20.0
    repeat_time: float = 200.0
    low_cutoff: float = 0.0001
    high_cutoff: float = 9000.0
    texture_size: int = 256
    speed: float = 1.0
    choppiness: Tuple[float, float] = (1.0, 1.0)
    tick_rate: float = 50.0
    max_ticks_per_frame: int = 8
    foam: FoamConfig = field(default_factory=FoamConfig)
    layers: List[WaveLayerConfig] = field(default_factory=_default_layers)

    @property
    def tick_duration(self) -> float:
        return 1.0 / self.tick_rate

    def problems(self) -> List[str]:
        found = []
        if not is_power_of_two(self.texture_size):
            found.append(f"texture_size must be a power of two, got {self.texture_size}")
        elif self.texture_size < 4:
            found.append(f"texture_size must be >= 4, got {self.texture_size}")
        if self.gravity <= 0:
            found.append(f"gravity must be > 0, got {self.gravity}")
        if self.depth <= 0:
            found.append(f"depth must be > 0, got {self.depth}")
        if self.repeat_time < 0:
            found.append(f"repeat_time must be >= 0, got {self.repeat_time}")
        if self.low_cutoff < 0 or self.low_cutoff >= self.high_cutoff:
            found.append(
                f"cutoffs must satisfy 0 <= low_cutoff < high_cutoff, got {self.low_cutoff}, {self.high_cutoff}"
            )
        if self.speed < 0:
            found.append(f"speed must be >= 0, got {self.speed}")
        if len(self.choppiness) != 2:
            found.append(f"choppiness must hold two values (x, z), got {self.choppiness}")
        if self.tick_rate <= 0:
            found.append(f"tick_rate must be > 0, got {self.tick_rate}")
        if self.max_ticks_per_frame < 1:
            found.append(f"max_ticks_per_frame must be >= 1, got {self.max_ticks_per_frame}")
        if not 0.0 <= self.foam.foam_add <= 1.0:
            found.append(f"foam_add must be within [0, 1], got {self.foam.foam_add}")
        if self.foam.foam_decay_rate < 0:
            found.append(f"foam_decay_rate must be >= 0, got {self.foam.foam_decay_rate}")
        if not self.layers:
            found.append("at least one wave layer is required")
        for index, layer in enumerate(self.layers):
            found.extend(layer.problems(index))
        return found

    def validate(self) -> "SimulationConfig":
        found = self.problems()
        if found:
            raise ConfigurationError(found)
        return self

    def to_dict(self) -> dict:
        data = asdict(self)
        data["choppiness"] = list(self.choppiness)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SimulationConfig":
        """Build a config from a plain dictionary, e.g. one loaded from JSON.

        Unknown keys are rejected so that typos do not silently fall back to
        defaults.
        """
        data = dict(data)
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"unknown configuration keys: {sorted(unknown)}")

        layer_keys = {f.name for f in fields(WaveLayerConfig)}
        has_layers = "layers" in data
        layers = []
        for index, layer in enumerate(data.pop("layers", [])):
            bad = set(layer) - layer_keys
            if bad:
                raise ConfigurationError(f"layer {index}: unknown keys {sorted(bad)}")
            layers.append(WaveLayerConfig(**layer))

        foam_data = data.pop("foam", None) or {}
        bad = set(foam_data) - {f.name for f in fields(FoamConfig)}
        if bad:
            raise ConfigurationError(f"foam: unknown keys {sorted(bad)}")

        if "choppiness" in data:
            data["choppiness"] = tuple(data["choppiness"])

        config = cls(foam=FoamConfig(**foam_data), **data)
        if has_layers:
            config.layers = layers
        return config

    @classmethod
    def from_json(cls, path) -> "SimulationConfig":
        with open(Path(path)) as f:
            return cls.from_dict(json.load(f))

    def save_json(self, path) -> None:
        with open(Path(path), "w") as f:
            json.dump(self.to_dict(), f, indent=2)


class OceanPresets:
    """Library of standard ocean configurations."""

    BEAUFORT_SCALE = {
        1: {"wind_speed": 0.95, "name": "Light air"},
        2: {"wind_speed": 2.55, "name": "Light breeze"},
        3: {"wind_speed": 4.4, "name": "Gentle breeze"},
        4: {"wind_speed": 6.7, "name": "Moderate breeze"},
        5: {"wind_speed": 9.35, "name": "Fresh breeze"},
        6: {"wind_speed": 12.3, "name": "Strong breeze"},
        7: {"wind_speed": 15.5, "name": "Near gale"},
        8: {"wind_speed": 18.95, "name": "Gale"},
        9: {"wind_speed": 22.6, "name": "Strong gale"},
        10: {"wind_speed": 26.45, "name": "Storm"},
        11: {"wind_speed": 30.0, "name": "Violent storm"},
        12: {"wind_speed": 33.0, "name": "Hurricane"},
    }

    @staticmethod
    def default_layers() -> List[WaveLayerConfig]:
        """Four cascades: a long swell, the main wind sea and two detail layers."""
        return [
            WaveLayerConfig(scale=0.1, wind_speed=2.0, wind_direction_deg=22.0, fetch=100000.0,
                            spread_blend=0.64, swell=1.0, peak_enhancement=1.0,
                            short_waves_fade=0.025, length_scale=256, tile_factor=1.0),
            WaveLayerConfig(scale=0.07, wind_speed=2.0, wind_direction_deg=59.0, fetch=1000.0,
                            spread_blend=0.0, swell=1.0, peak_enhancement=1.0,
                            short_waves_fade=0.01, length_scale=128, tile_factor=1.0),
            WaveLayerConfig(scale=0.25, wind_speed=20.0, wind_direction_deg=97.0, fetch=100000000.0,
                            spread_blend=0.14, swell=1.0, peak_enhancement=1.0,
                            short_waves_fade=0.5, length_scale=64, tile_factor=1.0),
            WaveLayerConfig(scale=0.25, wind_speed=20.0, wind_direction_deg=67.0, fetch=1000000.0,
                            spread_blend=0.47, swell=1.0, peak_enhancement=1.0,
                            short_waves_fade=0.5, length_scale=32, tile_factor=1.0),
        ]

    @classmethod
    def from_beaufort(cls, beaufort_number: int, **kwargs) -> SimulationConfig:
        """Single-layer wind sea for a Beaufort scale number."""
        params = cls.BEAUFORT_SCALE.get(beaufort_number)
        if params is None:
            raise ConfigurationError(
                f"Beaufort number {beaufort_number} not in preset library, valid value are {list(cls.BEAUFORT_SCALE.keys())}"
            )
        layer = WaveLayerConfig(wind_speed=params["wind_speed"], fetch=100000.0)
        return SimulationConfig(layers=[layer], **kwargs)

    @classmethod
    def calm_sea(cls, texture_size: int = 128, seed: Optional[int] = 0) -> SimulationConfig:
        return cls.from_beaufort(3, texture_size=texture_size, seed=seed or 0)

    @classmethod
    def rough_sea(cls, texture_size: int = 128, seed: Optional[int] = 0) -> SimulationConfig:
        return cls.from_beaufort(8, texture_size=texture_size, seed=seed or 0)
