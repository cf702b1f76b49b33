from __future__ import annotations

import numpy as np
import pytest

from terrain.config import (
    BASE_DELTA_TIME,
    ErosionParams,
    ExecutionMode,
    FBMVariant,
    NoiseParameters,
    coerce_mode,
    coerce_variant,
    resolve_variant,
    validate_iterations,
    validate_map_size,
)
from terrain.errors import ConfigurationError


def test_erosion_params_defaults() -> None:
    p = ErosionParams()
    assert p.gravity == 9.81
    assert p.rain_rate == 0.02
    assert p.height_scale == 500.0
    assert p.pipe_cross_area == 4.0
    assert p.cell_size == (1.0, 1.0)
    assert p.delta_time == BASE_DELTA_TIME
    assert p.cell_area == 1.0


def test_delta_time_follows_time_scale() -> None:
    p = ErosionParams(time_scale=2.5)
    assert np.isclose(p.delta_time, 0.04)


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(height_scale=0.0),
        dict(pipe_length=-1.0),
        dict(gravity=0.0),
        dict(rain_rate=-0.1),
        dict(sediment_deposition_rate=1.5),
        dict(min_hardness=0.0),
        dict(min_hardness=1.2),
        dict(cell_size=(1.0, 0.0)),
        dict(cell_size=3.0),
        dict(evaporation_rate=float("nan")),
        dict(evaporation_rate=100.0),
    ],
)
def test_erosion_params_rejects_invalid(kwargs: dict) -> None:
    with pytest.raises(ConfigurationError):
        ErosionParams(**kwargs)


def test_erosion_params_from_mapping() -> None:
    p = ErosionParams.from_mapping({"rain_rate": 0.05, "cell_size": [2, 0.5]})
    assert p.rain_rate == 0.05
    assert p.cell_size == (2.0, 0.5)
    assert p.cell_area == 1.0

    with pytest.raises(ConfigurationError):
        ErosionParams.from_mapping({"rainfall": 0.05})


def test_noise_parameters_validation() -> None:
    p = NoiseParameters(octaves=np.int64(3), seed=7)
    assert p.octaves == 3
    assert isinstance(p.octaves, int)
    assert p.seed == 7.0

    with pytest.raises(ConfigurationError):
        NoiseParameters(octaves=0)
    with pytest.raises(ConfigurationError):
        NoiseParameters(octaves=2.5)
    with pytest.raises(ConfigurationError):
        NoiseParameters(scale=0.0)
    with pytest.raises(ConfigurationError):
        NoiseParameters(persistence=float("inf"))


def test_configuration_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        NoiseParameters(octaves=-1)


def test_resolve_variant_combined_wins() -> None:
    assert resolve_variant() is FBMVariant.PLAIN
    assert resolve_variant(ridged=True) is FBMVariant.RIDGED
    assert resolve_variant(combined=True) is FBMVariant.COMBINED
    assert resolve_variant(ridged=True, combined=True) is FBMVariant.COMBINED


def test_enum_coercion() -> None:
    assert coerce_variant("ridged") is FBMVariant.RIDGED
    assert coerce_mode(ExecutionMode.IN_PLACE) is ExecutionMode.IN_PLACE
    with pytest.raises(ConfigurationError):
        coerce_mode("parallel")


def test_size_and_iteration_validation() -> None:
    assert validate_map_size(2) == 2
    assert validate_iterations(0) == 0
    with pytest.raises(ConfigurationError):
        validate_map_size(1)
    with pytest.raises(ConfigurationError):
        validate_map_size(True)
    with pytest.raises(ConfigurationError):
        validate_iterations(-1)
