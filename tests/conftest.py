"""Shared test fixtures for airfoil-features tests."""

from __future__ import annotations

import numpy as np
import polars as pl
import pytest

from airfoil_features.config import EngineConfig
from airfoil_features.storage import FeatureStore


def make_airfoil_samples(n: int = 200, seed: int = 42) -> pl.DataFrame:
    """Synthetic samples shaped like the airfoil self-noise dataset.

    Inputs are drawn from the value grids of the real measurements; the
    target falls with frequency and thickness, plus noise.
    """
    rng = np.random.default_rng(seed)
    frequency = rng.choice([200.0, 400.0, 800.0, 1600.0, 3150.0, 6300.0], size=n)
    angle = rng.uniform(0.0, 20.0, size=n)
    chord = rng.choice([0.0254, 0.0508, 0.1016, 0.2286, 0.3048], size=n)
    velocity = rng.choice([31.7, 39.6, 55.5, 71.3], size=n)
    thickness = rng.uniform(0.0004, 0.05, size=n)
    spl = (
        132.0
        - 0.0015 * frequency
        - 80.0 * thickness
        - 10.0 * chord
        + 0.05 * velocity
        + rng.normal(0.0, 1.5, size=n)
    )
    return pl.DataFrame({
        "frequency": frequency,
        "angle_of_attack": angle,
        "chord_length": chord,
        "free_stream_velocity": velocity,
        "suction_side_displacement_thickness": thickness,
        "sound_pressure_level": spl,
    })


def samples_to_text(df: pl.DataFrame) -> str:
    """Render samples in the whitespace-separated .dat layout."""
    return "\n".join("\t".join(repr(v) for v in row) for row in df.iter_rows()) + "\n"


@pytest.fixture
def airfoil_samples() -> pl.DataFrame:
    """200 seeded synthetic airfoil samples."""
    return make_airfoil_samples()


@pytest.fixture
def engine_config() -> EngineConfig:
    """Default engine configuration (airfoil layout, snapshot version 2)."""
    return EngineConfig()


@pytest.fixture
def store(airfoil_samples: pl.DataFrame, engine_config: EngineConfig) -> FeatureStore:
    """Feature store seeded with the synthetic samples."""
    s = FeatureStore(engine_config)
    s.initialize_from_data(airfoil_samples)
    return s


@pytest.fixture
def dataset_file(tmp_path, airfoil_samples: pl.DataFrame):
    """The synthetic samples written as a .dat file."""
    path = tmp_path / "airfoil_self_noise.dat"
    path.write_text(samples_to_text(airfoil_samples))
    return path
