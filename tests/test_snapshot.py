"""Tests for feature store snapshots (export, import, save, load)."""

from __future__ import annotations

import copy
import json

import numpy as np
import pytest

from airfoil_features.config import EngineConfig, SnapshotConfig
from airfoil_features.storage import DiagnosticCode, FeatureStore, FeatureType, validate_store_config
from airfoil_features.transforms import TransformParams


def codes(store: FeatureStore) -> list[DiagnosticCode]:
    return [d.code for d in store.diagnostics]


def fresh_store(samples, version: int = 2) -> FeatureStore:
    s = FeatureStore(EngineConfig(snapshot=SnapshotConfig(version=version)))
    s.initialize_from_data(samples)
    return s


def build_derived(store: FeatureStore) -> dict[str, str]:
    """Transformed chain, custom transform, PCA with a saved component and a transform of it."""
    z = store.add_transformed_feature("frequency", "zscore")
    m = store.add_transformed_feature(z, "minmax", custom_name="Scaled z")
    log_f = store.add_transformed_feature("chord_length", "custom", TransformParams("log(x)", "exp(x)"))
    result = store.run_pca([z, log_f, "angle_of_attack"], num_components=2)
    pc1 = store.save_pca_components(result.id, [0])[0]
    pc_z = store.add_transformed_feature(pc1, "zscore")
    store.set_selected_feature_ids(["angle_of_attack", m, pc1, pc_z])
    return {"z": z, "m": m, "log": log_f, "pca": result.id, "pc1": pc1, "pc_z": pc_z}


class TestExport:
    """Tests for export_config()."""

    def test_v2_layout(self, store):
        ids = build_derived(store)
        config = store.export_config()

        assert config["version"] == 2
        assert [e["id"] for e in config["transformedFeatures"]] == [ids["z"], ids["m"], ids["log"], ids["pc_z"]]
        m_entry = config["transformedFeatures"][1]
        assert m_entry == {
            "id": ids["m"],
            "sourceFeatureId": ids["z"],
            "transform": "minmax",
            "customName": "Scaled z",
        }
        assert config["transformedFeatures"][2]["transformParams"] == {
            "expression": "log(x)",
            "inverseExpression": "exp(x)",
        }
        assert config["pcaFeatures"] == [
            {"id": ids["pc1"], "pcaId": ids["pca"], "componentIndex": 0, "name": store.get_feature(ids["pc1"]).name}
        ]
        assert config["selectedFeatureIds"] == ["angle_of_attack", ids["m"], ids["pc1"], ids["pc_z"]]

    def test_pca_result_wire_keys(self, store):
        ids = build_derived(store)
        (result,) = store.export_config()["pcaResults"]

        assert result["id"] == ids["pca"]
        assert result["numComponents"] == 2
        assert result["sourceFeatureIds"] == [ids["z"], ids["log"], "angle_of_attack"]
        assert np.asarray(result["components"]).shape == (2, 3)
        assert np.asarray(result["projections"]).shape == (200, 2)

    def test_originals_not_exported(self, store):
        config = store.export_config()
        assert config["transformedFeatures"] == []
        assert config["pcaResults"] == []

    def test_export_is_json_serializable(self, store):
        build_derived(store)
        json.dumps(store.export_config())

    def test_v1_layout(self, airfoil_samples):
        s = fresh_store(airfoil_samples, version=1)
        build_derived(s)
        config = s.export_config()

        assert config["version"] == 1
        assert "pcaFeatures" not in config
        assert all("id" not in e for e in config["transformedFeatures"])

    def test_export_validates(self, store):
        build_derived(store)
        assert validate_store_config(store.export_config()) == (True, [])


class TestImport:
    """Tests for import_config()."""

    def test_round_trip(self, store, airfoil_samples):
        ids = build_derived(store)
        config = store.export_config()

        restored = fresh_store(airfoil_samples)
        assert restored.import_config(config)

        assert restored.diagnostics == []
        for key in ("z", "m", "log", "pc1", "pc_z"):
            original = store.get_feature(ids[key])
            copy_ = restored.get_feature(ids[key])
            assert copy_ is not None, key
            assert copy_.name == original.name
            assert copy_.type is original.type
            np.testing.assert_allclose(copy_.values, original.values)
        assert restored.selected_feature_ids == store.selected_feature_ids
        result = restored.get_pca_result(ids["pca"])
        np.testing.assert_array_equal(result.components, store.get_pca_result(ids["pca"]).components)
        assert restored.get_feature(ids["pc1"]).type is FeatureType.PCA

    def test_round_trip_is_stable(self, store, airfoil_samples):
        build_derived(store)
        first = store.export_config()

        restored = fresh_store(airfoil_samples)
        restored.import_config(first)
        second = restored.export_config()

        assert second == first

    def test_v1_round_trip(self, airfoil_samples):
        s = fresh_store(airfoil_samples, version=1)
        z = s.add_transformed_feature("frequency", "zscore")
        m = s.add_transformed_feature(z, "minmax")
        result = s.run_pca([z, "chord_length"])
        s.set_selected_feature_ids([m, "chord_length"])

        restored = fresh_store(airfoil_samples)
        assert restored.import_config(s.export_config())

        assert restored.get_feature(m).source_feature_id == z
        assert restored.get_pca_result(result.id) is not None
        assert restored.selected_feature_ids == [m, "chord_length"]

    def test_v1_snapshot_without_pca_features(self, store, airfoil_samples):
        config = {
            "version": 1,
            "transformedFeatures": [
                {"sourceFeatureId": "frequency", "transform": "custom",
                 "transformParams": {"expression": "log(x)"}, "customName": "log f"},
            ],
            "pcaResults": [],
            "selectedFeatureIds": ["frequency_custom_1", "frequency"],
        }
        assert store.import_config(config)
        assert store.get_feature("frequency_custom_1").name == "log f"
        assert store.selected_feature_ids == ["frequency_custom_1", "frequency"]

    def test_entries_wait_for_sources_listed_later(self, store):
        config = {
            "version": 2,
            "transformedFeatures": [
                {"id": "frequency_zscore_1_minmax_1", "sourceFeatureId": "frequency_zscore_1",
                 "transform": "minmax", "customName": "second"},
                {"id": "frequency_zscore_1", "sourceFeatureId": "frequency",
                 "transform": "zscore", "customName": "first"},
            ],
            "pcaResults": [],
            "pcaFeatures": [],
            "selectedFeatureIds": [],
        }
        assert store.import_config(config)
        assert store.get_feature("frequency_zscore_1_minmax_1").source_feature_id == "frequency_zscore_1"
        assert store.diagnostics == []

    def test_ids_remapped_when_taken(self, store, airfoil_samples):
        source = fresh_store(airfoil_samples)
        z = source.add_transformed_feature("frequency", "zscore")
        m = source.add_transformed_feature(z, "minmax")
        result = source.run_pca([z, "chord_length"])
        pc1 = source.save_pca_components(result.id, [0])[0]
        source.set_selected_feature_ids([z, m, pc1])

        store.add_transformed_feature("frequency", "zscore")  # takes frequency_zscore_1
        assert store.import_config(source.export_config())

        assert store.get_feature("frequency_zscore_2").name == "Frequency (Hz) (z-score)"
        assert store.get_feature("frequency_zscore_2_minmax_1").source_feature_id == "frequency_zscore_2"
        assert store.get_pca_result(result.id).source_feature_ids == ["frequency_zscore_2", "chord_length"]
        assert store.get_feature(pc1).sources == ("frequency_zscore_2", "chord_length")
        assert store.selected_feature_ids == ["frequency_zscore_2", "frequency_zscore_2_minmax_1", pc1]

    def test_missing_source_is_skipped(self, store):
        config = {
            "version": 2,
            "transformedFeatures": [
                {"id": "ghost_zscore_1", "sourceFeatureId": "ghost", "transform": "zscore"},
                {"id": "frequency_minmax_1", "sourceFeatureId": "frequency", "transform": "minmax"},
            ],
            "pcaResults": [],
            "pcaFeatures": [],
            "selectedFeatureIds": ["ghost_zscore_1", "frequency_minmax_1"],
        }
        assert store.import_config(config)

        assert codes(store) == [DiagnosticCode.IMPORT_SKIPPED]
        assert store.get_feature("frequency_minmax_1") is not None
        assert store.selected_feature_ids == ["frequency_minmax_1"]

    def test_component_of_unknown_result_is_skipped(self, store):
        config = {
            "version": 2,
            "transformedFeatures": [],
            "pcaResults": [],
            "pcaFeatures": [{"id": "pca_1_1_pc1", "pcaId": "pca_1_1", "componentIndex": 0}],
            "selectedFeatureIds": [],
        }
        assert store.import_config(config)
        assert codes(store) == [DiagnosticCode.IMPORT_SKIPPED]
        assert store.get_pca_features() == []

    def test_restored_result_keeps_creation_order(self, store, airfoil_samples):
        source = fresh_store(airfoil_samples)
        old = source.run_pca(["frequency", "chord_length"])

        assert store.import_config(source.export_config())
        new = store.run_pca(["frequency", "angle_of_attack"])

        assert new.created_at > old.created_at
        assert store.get_all_pca_results()[0].id == new.id

    def test_uninitialized_store_rejects(self, store):
        empty = FeatureStore()
        assert not empty.import_config(store.export_config())
        assert codes(empty) == [DiagnosticCode.NOT_INITIALIZED]

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda c: c.update(version=3),
            lambda c: c.pop("transformedFeatures"),
            lambda c: c.update(selectedFeatureIds="frequency"),
            lambda c: c["transformedFeatures"].append({"sourceFeatureId": "frequency", "transform": "none"}),
            lambda c: c["transformedFeatures"].append({"sourceFeatureId": "frequency", "transform": "custom"}),
            lambda c: c["transformedFeatures"].append({"sourceFeatureId": "frequency", "transform": ["zscore"]}),
            lambda c: c["pcaResults"][0].update(numComponents=5),
            lambda c: c["pcaResults"][0].update(mean=[0.0]),
            lambda c: c["pcaResults"][0].update(components="oops"),
            lambda c: c["pcaFeatures"].append({"pcaId": "x", "componentIndex": -1}),
        ],
    )
    def test_invalid_snapshot_changes_nothing(self, store, airfoil_samples, mutate):
        source = fresh_store(airfoil_samples)
        build_derived(source)
        config = copy.deepcopy(source.export_config())
        mutate(config)
        before = store.export_config()

        assert not store.import_config(config)

        assert codes(store) == [DiagnosticCode.INVALID_SNAPSHOT]
        assert store.export_config() == before

    def test_snapshot_from_other_sample_count_changes_nothing(self, store, airfoil_samples):
        source = fresh_store(airfoil_samples)
        build_derived(source)
        smaller = fresh_store(airfoil_samples.head(50))
        before = smaller.export_config()

        assert not smaller.import_config(source.export_config())

        assert codes(smaller) == [DiagnosticCode.INVALID_SNAPSHOT]
        assert "50 projected samples" in smaller.diagnostics[0].message
        assert smaller.export_config() == before
        assert smaller.to_wide(include_target=False).height == 50

    def test_non_dict_snapshot(self, store):
        assert not store.import_config(["not", "a", "snapshot"])
        assert codes(store) == [DiagnosticCode.INVALID_SNAPSHOT]


class TestSnapshotFiles:
    """Tests for save_config() and load_config()."""

    def test_save_and_load(self, store, airfoil_samples, tmp_path):
        ids = build_derived(store)
        path = store.save_config(tmp_path / "snapshots" / "features.json")

        assert path.exists()
        assert json.loads(path.read_text())["version"] == 2

        restored = fresh_store(airfoil_samples)
        assert restored.load_config(path)
        assert restored.get_feature(ids["pc_z"]) is not None

    def test_load_missing_file(self, store, tmp_path):
        with pytest.raises(FileNotFoundError):
            store.load_config(tmp_path / "missing.json")

    def test_load_invalid_json(self, store, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")

        assert not store.load_config(path)
        assert codes(store) == [DiagnosticCode.INVALID_SNAPSHOT]
