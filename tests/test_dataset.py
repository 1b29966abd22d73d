"""Tests for dataset parsing, loading and sample validation."""

from __future__ import annotations

import polars as pl
import pytest

from airfoil_features.config import EngineConfig
from airfoil_features.dataset import load_dataset, parse_dataset
from airfoil_features.storage import validate_samples

ROWS = "800\t0\t0.3048\t71.3\t0.00266337\t126.201\n1000\t0\t0.3048\t71.3\t0.00266337\t125.201\n"


class TestParseDataset:
    """Tests for parse_dataset()."""

    def test_parses_rows(self):
        df = parse_dataset(ROWS)

        assert df.shape == (2, 6)
        assert df.columns[0] == "frequency"
        assert df.schema["sound_pressure_level"] == pl.Float64
        assert df["frequency"].to_list() == [800.0, 1000.0]

    def test_blank_lines_and_spaces(self):
        df = parse_dataset("\n  800   0 0.3048 71.3 0.00266337 126.201  \n\n")
        assert df.height == 1

    def test_wrong_value_count(self):
        with pytest.raises(ValueError, match="line 2"):
            parse_dataset("800 0 0.3048 71.3 0.00266337 126.201\n800 0 0.3048\n")

    @pytest.mark.parametrize("bad", ["abc", "nan", "inf"])
    def test_non_numeric_value(self, bad):
        with pytest.raises(ValueError, match="line 1"):
            parse_dataset(f"800 0 0.3048 71.3 0.00266337 {bad}\n")

    def test_custom_columns(self):
        df = parse_dataset("1 2\n3 4\n", columns=["a", "b"])
        assert df["b"].to_list() == [2.0, 4.0]

    def test_empty_text(self):
        assert parse_dataset("").height == 0


class TestLoadDataset:
    """Tests for load_dataset()."""

    def test_load(self, dataset_file, airfoil_samples):
        df = load_dataset(dataset_file)
        assert df.shape == airfoil_samples.shape
        assert df["frequency"].to_list() == airfoil_samples["frequency"].to_list()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_dataset(tmp_path / "missing.dat")

    def test_failing_validation(self, tmp_path):
        path = tmp_path / "bad.dat"
        path.write_text("-800 0 0.3048 71.3 0.00266337 126.201\n")

        with pytest.raises(ValueError, match="Invalid dataset"):
            load_dataset(path)
        assert load_dataset(path, validate=False).height == 1

    def test_configured_path(self, dataset_file):
        config = EngineConfig()
        config.dataset.path = str(dataset_file)
        assert load_dataset(config=config).height == 200


class TestValidateSamples:
    """Tests for the pandera sample schema."""

    def test_valid(self, airfoil_samples):
        assert validate_samples(airfoil_samples) == (True, [])

    def test_negative_chord_length(self, airfoil_samples):
        df = airfoil_samples.with_columns(pl.lit(-1.0).alias("chord_length"))
        is_valid, errors = validate_samples(df)
        assert not is_valid
        assert errors

    def test_missing_column(self, airfoil_samples):
        is_valid, errors = validate_samples(airfoil_samples.drop("sound_pressure_level"))
        assert not is_valid
        assert errors == ["column 'sound_pressure_level' not in dataframe"]

    def test_extra_columns_allowed(self, airfoil_samples):
        df = airfoil_samples.with_columns(pl.lit("x").alias("note"))
        assert validate_samples(df)[0]
