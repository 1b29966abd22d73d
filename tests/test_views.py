"""Tests for tabular views over the feature store."""

from __future__ import annotations

import numpy as np
import polars as pl
import pytest

from airfoil_features.storage import FeatureStore

TARGET = "sound_pressure_level"


class TestWideView:
    """Tests for to_wide()."""

    def test_selection_plus_target(self, store):
        df = store.to_wide()

        assert df.columns == ["sample_index", *store.selected_feature_ids, TARGET]
        assert df.height == 200
        assert df.schema["sample_index"] == pl.UInt32
        assert df["sample_index"].to_list()[:3] == [0, 1, 2]

    def test_explicit_ids_without_target(self, store):
        fid = store.add_transformed_feature("frequency", "zscore")
        df = store.to_wide([fid, "missing", "chord_length"], include_target=False)

        assert df.columns == ["sample_index", fid, "chord_length"]
        np.testing.assert_array_equal(df[fid].to_numpy(), store.get_feature_values(fid))

    def test_target_not_duplicated(self, store):
        df = store.to_wide([TARGET, "frequency"])
        assert df.columns == ["sample_index", TARGET, "frequency"]

    def test_empty(self, store):
        assert store.to_wide([], include_target=False).is_empty()


class TestLongView:
    """Tests for to_long()."""

    def test_layout(self, store):
        fid = store.add_transformed_feature("frequency", "minmax")
        df = store.to_long(["frequency", fid])

        assert df.columns == ["sample_index", "feature", "type", "value"]
        assert df.height == 400
        assert set(df["type"].unique().to_list()) == {"original", "transformed"}
        assert df.filter(pl.col("feature") == fid)["value"].max() == pytest.approx(1.0)

    def test_empty_keeps_schema(self, store):
        df = store.to_long([])
        assert df.height == 0
        assert df.columns == ["sample_index", "feature", "type", "value"]


class TestStatsTable:
    """Tests for stats_table()."""

    def test_defaults_to_all_features(self, store):
        store.add_transformed_feature("frequency", "zscore")
        df = store.stats_table()

        assert df.height == 7
        assert TARGET in df["id"].to_list()
        row = df.filter(pl.col("id") == "frequency_zscore_1").row(0, named=True)
        assert row["transform"] == "zscore"
        assert row["mean"] == pytest.approx(0.0, abs=1e-9)
        assert row["count"] == 200

    def test_empty_selection(self):
        df = FeatureStore().stats_table([])
        assert df.height == 0
        assert "median" in df.columns


class TestMatrices:
    """Tests for feature_matrix() and correlation_matrix()."""

    def test_feature_matrix(self, store):
        matrix = store.feature_matrix(["frequency", "chord_length"])
        assert matrix.shape == (200, 2)
        np.testing.assert_array_equal(matrix[:, 1], store.get_feature_values("chord_length"))
        assert store.feature_matrix().shape == (200, 5)

    def test_correlation_matrix(self, store):
        fid = store.add_transformed_feature("frequency", "zscore")
        df = store.correlation_matrix(["frequency", fid, "angle_of_attack"])

        assert df.columns == ["feature", "frequency", fid, "angle_of_attack"]
        assert df["feature"].to_list() == ["frequency", fid, "angle_of_attack"]
        assert df[fid][0] == pytest.approx(1.0)
        assert df["frequency"][0] == 1.0
        assert df["angle_of_attack"][1] == pytest.approx(df["frequency"][2])
