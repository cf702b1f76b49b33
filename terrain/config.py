from __future__ import annotations

import math
import operator
from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any

from terrain.errors import ConfigurationError

# Seconds per simulation step at time_scale == 1 (one 60 Hz frame).
BASE_DELTA_TIME = 0.016


class FBMVariant(str, Enum):
    PLAIN = "plain"
    RIDGED = "ridged"
    COMBINED = "combined"


class ExecutionMode(str, Enum):
    IN_PLACE = "in_place"
    DOUBLE_BUFFER = "double_buffer"


class PipelineMode(str, Enum):
    REFERENCE = "reference"
    SIMPLIFIED = "simplified"


def resolve_variant(*, ridged: bool = False, combined: bool = False) -> FBMVariant:
    """Map the ridged/combined flags to a variant. Combined wins over ridged."""
    if bool(combined):
        return FBMVariant.COMBINED
    if bool(ridged):
        return FBMVariant.RIDGED
    return FBMVariant.PLAIN


def _coerce_enum(kind: type[Enum], value: Any, name: str) -> Any:
    try:
        return kind(value)
    except ValueError:
        allowed = ", ".join(m.value for m in kind)
        raise ConfigurationError(
            f"unknown {name}: {value!r} (expected one of {allowed})"
        ) from None


def _from_mapping(cls: type, data: Mapping[str, Any]) -> Any:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"unknown {cls.__name__} keys: {', '.join(unknown)}")
    return cls(**dict(data))


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise ConfigurationError(message)


def _finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be a number") from None
    _require(math.isfinite(value), f"{name} must be finite")
    return value


def _integer(name: str, value: Any) -> int:
    _require(not isinstance(value, bool), f"{name} must be an int")
    try:
        return operator.index(value)
    except TypeError:
        raise ConfigurationError(f"{name} must be an int") from None


@dataclass(frozen=True)
class NoiseParameters:
    """FBM settings. Immutable for one generation run."""

    octaves: int = 6
    persistence: float = 0.5
    lacunarity: float = 2.0
    exponentiation: float = 2.0
    amplitude: float = 1.0
    frequency: float = 1.0
    seed: float = 0.0
    scale: float = 120.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "octaves", _integer("octaves", self.octaves))
        _require(self.octaves >= 1, "octaves must be >= 1")
        for name in (
            "persistence",
            "lacunarity",
            "exponentiation",
            "amplitude",
            "frequency",
            "seed",
            "scale",
        ):
            object.__setattr__(self, name, _finite(name, getattr(self, name)))
        _require(self.scale > 0.0, "scale must be > 0")
        _require(self.frequency > 0.0, "frequency must be > 0")
        _require(self.lacunarity > 0.0, "lacunarity must be > 0")
        _require(self.exponentiation > 0.0, "exponentiation must be > 0")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> NoiseParameters:
        return _from_mapping(cls, data)


@dataclass(frozen=True)
class ErosionParams:
    """Physical constants of the pipe-model erosion simulation.

    Terrain heights live in normalized units and are multiplied by
    ``height_scale`` wherever they meet water depth (world units).
    ``max_erosion_depth`` is in world units.
    """

    time_scale: float = 1.0
    gravity: float = 9.81
    rain_rate: float = 0.02
    height_scale: float = 500.0
    evaporation_rate: float = 0.015
    soil_suspension_rate: float = 0.01
    sediment_deposition_rate: float = 0.3
    sediment_softening_rate: float = 3.0
    sediment_capacity: float = 0.1
    max_erosion_depth: float = 1.0
    min_hardness: float = 0.1
    pipe_length: float = 1.0
    pipe_cross_area: float = 4.0
    cell_size: tuple[float, float] = (1.0, 1.0)

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name == "cell_size":
                continue
            object.__setattr__(self, f.name, _finite(f.name, getattr(self, f.name)))

        try:
            cx, cy = self.cell_size
        except (TypeError, ValueError):
            raise ConfigurationError("cell_size must be a pair (x, y)") from None
        object.__setattr__(
            self, "cell_size", (_finite("cell_size", cx), _finite("cell_size", cy))
        )

        for name in (
            "height_scale",
            "pipe_length",
            "pipe_cross_area",
            "gravity",
            "time_scale",
        ):
            _require(getattr(self, name) > 0.0, f"{name} must be > 0")
        _require(min(self.cell_size) > 0.0, "cell_size components must be > 0")

        for name in (
            "rain_rate",
            "evaporation_rate",
            "soil_suspension_rate",
            "sediment_deposition_rate",
            "sediment_softening_rate",
            "sediment_capacity",
            "max_erosion_depth",
        ):
            _require(getattr(self, name) >= 0.0, f"{name} must be >= 0")

        _require(
            self.sediment_deposition_rate <= 1.0,
            "sediment_deposition_rate must be <= 1",
        )
        _require(0.0 < self.min_hardness <= 1.0, "min_hardness must be in (0, 1]")
        _require(
            self.evaporation_rate * self.delta_time <= 1.0,
            "evaporation_rate * delta_time must be <= 1",
        )

    @property
    def delta_time(self) -> float:
        return BASE_DELTA_TIME * self.time_scale

    @property
    def cell_area(self) -> float:
        return self.cell_size[0] * self.cell_size[1]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ErosionParams:
        data = dict(data)
        if "cell_size" in data:
            data["cell_size"] = tuple(data["cell_size"])
        return _from_mapping(cls, data)


def coerce_variant(value: FBMVariant | str) -> FBMVariant:
    return _coerce_enum(FBMVariant, value, "FBM variant")


def coerce_mode(value: ExecutionMode | str) -> ExecutionMode:
    return _coerce_enum(ExecutionMode, value, "execution mode")


def coerce_pipeline(value: PipelineMode | str) -> PipelineMode:
    return _coerce_enum(PipelineMode, value, "pipeline mode")


def validate_map_size(map_size: int) -> int:
    map_size = _integer("map_size", map_size)
    _require(map_size >= 2, "map_size must be >= 2")
    return map_size


def validate_iterations(iterations: int) -> int:
    iterations = _integer("iterations", iterations)
    _require(iterations >= 0, "iterations must be >= 0")
    return iterations
