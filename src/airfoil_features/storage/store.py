"""FeatureStore - derivation graph of dataset features and PCA results.

The store seeds one ``original`` feature per dataset column, derives
``transformed`` features from any existing feature, runs PCA over any set of
features and materializes chosen components as ``pca`` features.

Rejected operations never raise: they return None/False/[] (or the input
value for inverse transforms), log a warning and append a Diagnostic to
``store.diagnostics``. Every mutation computes its result first and commits
into the store's dicts at the end, so a rejected call leaves state unchanged.
"""

from __future__ import annotations

import json
import time
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

import numpy as np
import polars as pl
from loguru import logger

from airfoil_features.config.engine import EngineConfig
from airfoil_features.dimensionality import (
    compute_pca,
    generate_pc_feature_name,
    generate_pca_display_name,
    reconstruct_data,
)
from airfoil_features.ndjson_logger import set_dataset_hash
from airfoil_features.stats import compute_stats
from airfoil_features.storage import views
from airfoil_features.storage.graph import DerivationGraph
from airfoil_features.storage.models import (
    Diagnostic,
    DiagnosticCode,
    FeatureDefinition,
    FeatureType,
    PCAResult,
    readonly_array,
)
from airfoil_features.storage.schemas import validate_store_config
from airfoil_features.telemetry.events import (
    log_dataset_load,
    log_feature_derived,
    log_pca_run,
    log_snapshot,
)
from airfoil_features.telemetry.provenance import fingerprint_array, fingerprint_config
from airfoil_features.transforms import (
    TransformKind,
    TransformParams,
    has_inverse,
    inverse_transform_values,
    transform_suffix,
    transform_values,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from numpy.typing import ArrayLike


class FeatureStore:
    """Feature definitions, PCA results and the selection for one dataset.

    Example:
        >>> store = FeatureStore()
        >>> store.initialize_from_data(samples_df)
        >>> fid = store.add_transformed_feature("frequency", "zscore")
        >>> result = store.run_pca(["frequency", fid, "chord_length"])
        >>> store.save_pca_components(result.id, [0, 1])
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        """Create an empty store.

        Args:
            config: Engine configuration; defaults describe the airfoil dataset
        """
        self.config = config or EngineConfig()
        self._features: dict[str, FeatureDefinition] = {}
        self._pca_results: dict[str, PCAResult] = {}
        self._selected: list[str] = []
        self._graph = DerivationGraph()
        self._diagnostics: list[Diagnostic] = []
        self._initialized = False
        self._pca_counter = 0
        self._last_created_at = 0

    # =========================================================================
    # State
    # =========================================================================

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def target_id(self) -> str:
        return self.config.target

    @property
    def sample_count(self) -> int:
        """Number of samples behind every feature, 0 before initialization."""
        return len(next(iter(self._features.values())).values) if self._features else 0

    @property
    def diagnostics(self) -> list[Diagnostic]:
        """Diagnostics recorded since the last clear, oldest first."""
        return list(self._diagnostics)

    def clear_diagnostics(self) -> None:
        self._diagnostics.clear()

    def _diagnose(self, code: DiagnosticCode, message: str, subject: str | None = None) -> None:
        self._diagnostics.append(Diagnostic(code, message, subject))
        logger.bind(context={"code": code.value, "subject": subject}).warning(message)

    def reset(self) -> None:
        """Drop all features, PCA results, selection and diagnostics."""
        self._features = {}
        self._pca_results = {}
        self._selected = []
        self._graph = DerivationGraph()
        self._diagnostics = []
        self._initialized = False
        self._pca_counter = 0
        self._last_created_at = 0

    def initialize_from_data(self, samples: pl.DataFrame | Iterable[Mapping[str, float]]) -> None:
        """Seed one original feature per configured column, replacing all state.

        The selection becomes every original feature except the target.

        Args:
            samples: Polars DataFrame or iterable of per-sample mappings

        Raises:
            ValueError: If a configured column is missing or holds a null or
                non-finite value.
        """
        frame = samples if isinstance(samples, pl.DataFrame) else pl.DataFrame(list(samples))
        columns = self.config.dataset.columns
        missing = [c for c in columns if c not in frame.columns]
        if missing:
            msg = f"Samples are missing columns: {missing}"
            raise ValueError(msg)

        incomplete = [
            c for c in columns
            if frame.get_column(c).null_count() > 0
            or not np.isfinite(frame.get_column(c).cast(pl.Float64).to_numpy()).all()
        ]
        if incomplete:
            msg = f"Samples have null or non-finite values in columns: {incomplete}"
            raise ValueError(msg)

        features: dict[str, FeatureDefinition] = {}
        graph = DerivationGraph()
        for column in columns:
            values = frame.get_column(column).cast(pl.Float64).to_numpy()
            features[column] = FeatureDefinition(
                id=column,
                name=self.config.dataset.label_for(column),
                type=FeatureType.ORIGINAL,
                values=readonly_array(values),
                stats=compute_stats(values),
            )
            graph.add_node(column)

        self.reset()
        self._features = features
        self._graph = graph
        self._selected = [c for c in self.config.original_feature_ids if c in features]
        self._initialized = True

        matrix = np.column_stack([f.values for f in features.values()]) if features else np.empty((0, 0))
        fingerprint = fingerprint_array(matrix, "samples")
        set_dataset_hash(fingerprint["sha256"])
        log_dataset_load(fingerprint["sha256"], frame.height, list(columns), self.target_id)

    # =========================================================================
    # Transformed features
    # =========================================================================

    def _next_feature_id(self, source_id: str, kind: TransformKind) -> str:
        counter = 1
        while f"{source_id}_{kind.value}_{counter}" in self._features:
            counter += 1
        return f"{source_id}_{kind.value}_{counter}"

    def add_transformed_feature(
        self,
        source_feature_id: str,
        transform: TransformKind | str,
        params: TransformParams | None = None,
        custom_name: str | None = None,
    ) -> str | None:
        """Derive a feature by transforming an existing one.

        Values are computed with the source feature's statistics; the new
        feature's own statistics are computed afterwards.

        Args:
            source_feature_id: Feature to transform
            transform: minmax, zscore or custom
            params: Expressions, required for custom transforms
            custom_name: Display name (defaults to source name plus suffix)

        Returns:
            New feature id, or None if rejected
        """
        source = self._features.get(source_feature_id)
        if source is None:
            self._diagnose(
                DiagnosticCode.UNKNOWN_FEATURE,
                f"Source feature not found: {source_feature_id}",
                source_feature_id,
            )
            return None

        try:
            kind = TransformKind(transform)
        except ValueError:
            self._diagnose(DiagnosticCode.UNKNOWN_TRANSFORM, f"Unknown transform: {transform!r}", source_feature_id)
            return None

        if kind is TransformKind.NONE:
            self._diagnose(
                DiagnosticCode.NONE_TRANSFORM,
                'Cannot create transformed feature with "none" transform',
                source_feature_id,
            )
            return None

        if kind is TransformKind.CUSTOM and (params is None or not params.expression):
            self._diagnose(
                DiagnosticCode.MISSING_EXPRESSION,
                "Custom transform requires an expression",
                source_feature_id,
            )
            return None

        stored_params = params if kind is TransformKind.CUSTOM else None
        feature_id = self._next_feature_id(source_feature_id, kind)
        outcome = transform_values(source.values, kind, source.stats, stored_params)
        if outcome.degraded:
            self._diagnose(
                DiagnosticCode.EVALUATION_FALLBACK,
                f"{outcome.fallback_count} of {len(source.values)} values of {feature_id} "
                f"kept their source value: {outcome.error}",
                feature_id,
            )

        feature = FeatureDefinition(
            id=feature_id,
            name=custom_name or f"{source.name}{transform_suffix(kind, stored_params)}",
            type=FeatureType.TRANSFORMED,
            values=readonly_array(outcome.values),
            stats=compute_stats(outcome.values),
            transform=kind,
            source_feature_id=source_feature_id,
            transform_params=stored_params,
        )

        self._graph.add_node(feature_id, [source_feature_id])
        self._features[feature_id] = feature
        log_feature_derived(
            feature_id, FeatureType.TRANSFORMED.value, kind.value, [source_feature_id], outcome.fallback_count
        )
        return feature_id

    def delete_feature(self, feature_id: str) -> bool:
        """Delete a derived feature that nothing depends on.

        Returns:
            True if deleted
        """
        feature = self._features.get(feature_id)
        if feature is None:
            self._diagnose(DiagnosticCode.UNKNOWN_FEATURE, f"Feature not found: {feature_id}", feature_id)
            return False

        if feature.type is FeatureType.ORIGINAL:
            self._diagnose(DiagnosticCode.ORIGINAL_FEATURE, "Cannot delete original features", feature_id)
            return False

        if self._graph.has_dependents(feature_id):
            names = sorted(self._features[d].name for d in self._graph.dependents_of(feature_id))
            self._diagnose(
                DiagnosticCode.HAS_DEPENDENTS,
                f"Cannot delete feature with dependents: {', '.join(names)}",
                feature_id,
            )
            return False

        self._graph.remove_node(feature_id)
        del self._features[feature_id]
        self._selected = [fid for fid in self._selected if fid != feature_id]
        logger.debug(f"Deleted feature {feature_id}")
        return True

    # =========================================================================
    # Selection
    # =========================================================================

    @property
    def selected_feature_ids(self) -> list[str]:
        return list(self._selected)

    def set_selected_feature_ids(self, feature_ids: Iterable[str]) -> None:
        """Replace the selection, dropping unknown and duplicate ids."""
        self._selected = [fid for fid in dict.fromkeys(feature_ids) if fid in self._features]

    def select_feature(self, feature_id: str) -> None:
        if feature_id not in self._features:
            self._diagnose(DiagnosticCode.UNKNOWN_FEATURE, f"Feature not found: {feature_id}", feature_id)
            return
        if feature_id not in self._selected:
            self._selected.append(feature_id)

    def deselect_feature(self, feature_id: str) -> None:
        self._selected = [fid for fid in self._selected if fid != feature_id]

    def select_all_original(self) -> None:
        """Select exactly the original input features (target excluded)."""
        self._selected = [fid for fid in self.config.original_feature_ids if fid in self._features]

    # =========================================================================
    # Queries
    # =========================================================================

    def get_feature(self, feature_id: str) -> FeatureDefinition | None:
        return self._features.get(feature_id)

    def get_feature_values(self, feature_id: str) -> np.ndarray:
        """Values of a feature; an empty array for unknown ids."""
        feature = self._features.get(feature_id)
        return feature.values if feature is not None else readonly_array([])

    def _features_of_type(self, feature_type: FeatureType) -> list[FeatureDefinition]:
        return [f for f in self._features.values() if f.type is feature_type]

    def get_original_features(self) -> list[FeatureDefinition]:
        return self._features_of_type(FeatureType.ORIGINAL)

    def get_transformed_features(self) -> list[FeatureDefinition]:
        return self._features_of_type(FeatureType.TRANSFORMED)

    def get_pca_features(self) -> list[FeatureDefinition]:
        return self._features_of_type(FeatureType.PCA)

    def get_all_features(self, include_target: bool = False) -> list[FeatureDefinition]:
        """All features in creation order, the target only if asked for."""
        return [f for f in self._features.values() if include_target or f.id != self.target_id]

    def get_selected_features(self) -> list[FeatureDefinition]:
        return [self._features[fid] for fid in self._selected if fid in self._features]

    def dependents_of(self, feature_id: str) -> list[str]:
        return sorted(self._graph.dependents_of(feature_id))

    def _invertible_chain_to_target(self, feature: FeatureDefinition) -> bool:
        current: FeatureDefinition | None = feature
        while current is not None:
            if not has_inverse(current.transform, current.transform_params):
                return False
            if current.id == self.target_id:
                return True
            if current.source_feature_id is None:
                return False
            current = self._features.get(current.source_feature_id)
        return False

    def get_valid_target_features(self) -> list[FeatureDefinition]:
        """Features usable as a model output.

        A feature qualifies when it is the target or is derived from it through
        source links where every transform along the way can be inverted, so a
        prediction can always be mapped back to target units.
        """
        return [f for f in self._features.values() if self._invertible_chain_to_target(f)]

    # =========================================================================
    # Inverse transforms
    # =========================================================================

    def inverse_transform(self, feature_id: str, value: float) -> float:
        """Undo one feature's own transform (a single hop toward its source).

        Original features, untransformed features and pca features return the
        value unchanged.
        """
        feature = self._features.get(feature_id)
        if feature is None:
            self._diagnose(DiagnosticCode.UNKNOWN_FEATURE, f"Feature not found: {feature_id}", feature_id)
            return value

        if feature.type is not FeatureType.TRANSFORMED or feature.transform is TransformKind.NONE:
            return value

        source = self._features.get(feature.source_feature_id) if feature.source_feature_id else None
        if source is None:
            return value

        outcome = inverse_transform_values(
            np.array([value], dtype=np.float64), feature.transform, source.stats, feature.transform_params
        )
        if outcome.degraded:
            code = (
                DiagnosticCode.EVALUATION_FALLBACK
                if has_inverse(feature.transform, feature.transform_params)
                else DiagnosticCode.NO_INVERSE
            )
            self._diagnose(code, f"Inverse of {feature_id} returned the input value: {outcome.error}", feature_id)
        return float(outcome.values[0])

    def inverse_transform_chain(self, feature_id: str, value: float) -> float:
        """Undo every transform from a feature back to its original feature."""
        feature = self._features.get(feature_id)
        if feature is None:
            self._diagnose(DiagnosticCode.UNKNOWN_FEATURE, f"Feature not found: {feature_id}", feature_id)
            return value

        current = value
        while feature.type is FeatureType.TRANSFORMED and feature.source_feature_id in self._features:
            current = self.inverse_transform(feature.id, current)
            feature = self._features[feature.source_feature_id]
        return current

    # =========================================================================
    # PCA
    # =========================================================================

    def _next_created_at(self) -> int:
        """Millisecond timestamp, strictly greater than any issued or restored one."""
        now_ms = time.time_ns() // 1_000_000
        self._last_created_at = max(now_ms, self._last_created_at + 1)
        return self._last_created_at

    def run_pca(
        self,
        feature_ids: Sequence[str],
        num_components: int | None = None,
        custom_name: str | None = None,
    ) -> PCAResult | None:
        """Run PCA over existing features and store the result.

        Unknown ids are dropped before the run.

        Args:
            feature_ids: Features to decompose (at least 2 must exist)
            num_components: Components to keep (default: one per feature)
            custom_name: Display name (default: abbreviated source names)

        Returns:
            The stored PCAResult, or None if rejected
        """
        requested = list(dict.fromkeys(feature_ids))
        features = [self._features[fid] for fid in requested if fid in self._features]
        dropped = [fid for fid in requested if fid not in self._features]
        if dropped:
            logger.bind(context={"dropped": dropped}).debug("Ignoring unknown features for PCA")

        source_ids = [f.id for f in features]
        if len(features) < 2:
            self._diagnose(
                DiagnosticCode.INSUFFICIENT_FEATURES,
                f"PCA requires at least 2 features, got {len(features)}",
            )
            return None

        data = np.column_stack([f.values for f in features])
        names = [f.name for f in features]
        k = num_components if num_components is not None else len(features)

        output = compute_pca(data, names, k)
        if output.error is not None:
            self._diagnose(DiagnosticCode.DECOMPOSITION_FAILED, f"PCA computation failed: {output.error}")
            log_pca_run(None, source_ids, k, error=output.error)
            return None

        self._pca_counter += 1
        created_at = self._next_created_at()
        pca_id = f"pca_{created_at}_{self._pca_counter}"

        result = PCAResult(
            id=pca_id,
            name=generate_pca_display_name(custom_name, names, self._pca_counter),
            created_at=created_at,
            source_feature_ids=source_ids,
            source_feature_names=names,
            components=output.components,
            explained_variance=output.explained_variance,
            explained_variance_ratio=output.explained_variance_ratio,
            cumulative_variance_ratio=output.cumulative_variance_ratio,
            projections=output.projections,
            mean=output.mean,
            singular_values=output.singular_values,
            num_components=output.num_components,
        )

        self._pca_results[pca_id] = result
        log_pca_run(pca_id, source_ids, result.num_components, float(output.cumulative_variance_ratio[-1]))
        return result

    def save_pca_result(self, result: PCAResult) -> None:
        """Store a result as is, replacing any result with the same id."""
        self._pca_results[result.id] = result
        self._last_created_at = max(self._last_created_at, result.created_at)

    def get_pca_result(self, pca_id: str) -> PCAResult | None:
        return self._pca_results.get(pca_id)

    def get_all_pca_results(self) -> list[PCAResult]:
        """Stored results, newest first."""
        return sorted(self._pca_results.values(), key=lambda r: r.created_at, reverse=True)

    def _component_feature(
        self,
        result: PCAResult,
        index: int,
        name: str,
        taken: Mapping[str, Any],
    ) -> FeatureDefinition:
        """Build (without committing) a pca feature for one component."""
        base_id = f"{result.id}_pc{index + 1}"
        feature_id = base_id
        counter = 1
        while feature_id in self._features or feature_id in taken:
            feature_id = f"{base_id}_{counter}"
            counter += 1

        values = result.projections[:, index] if result.projections.size else np.empty(0)
        return FeatureDefinition(
            id=feature_id,
            name=name,
            type=FeatureType.PCA,
            values=readonly_array(values),
            stats=compute_stats(values),
            source_feature_ids=tuple(result.source_feature_ids),
            pca_id=result.id,
            component_index=index,
        )

    def _commit_component_features(self, new_features: Mapping[str, FeatureDefinition]) -> None:
        for feature_id, feature in new_features.items():
            # Sources deleted after the PCA run are no longer linked
            sources = [s for s in feature.source_feature_ids if s in self._graph]
            self._graph.add_node(feature_id, sources)
            self._features[feature_id] = feature
            log_feature_derived(
                feature_id, FeatureType.PCA.value, f"pc{feature.component_index + 1}", sources
            )

    def save_pca_components(
        self,
        pca_id: str,
        component_indices: Iterable[int],
        name_prefix: str | None = None,
    ) -> list[str]:
        """Materialize components of a stored result as pca features.

        Invalid indices are skipped with a diagnostic.

        Args:
            pca_id: Stored PCA result
            component_indices: 0-based components to save
            name_prefix: Name prefix (default: the result's name)

        Returns:
            Ids of the created features, in index order given
        """
        result = self._pca_results.get(pca_id)
        if result is None:
            self._diagnose(DiagnosticCode.UNKNOWN_PCA_RESULT, f"PCA result not found: {pca_id}", pca_id)
            return []

        prefix = name_prefix or result.name
        new_features: dict[str, FeatureDefinition] = {}
        for index in component_indices:
            if isinstance(index, bool) or not isinstance(index, (int, np.integer)) or not (
                0 <= index < result.num_components
            ):
                self._diagnose(DiagnosticCode.INVALID_COMPONENT, f"Invalid component index: {index}", pca_id)
                continue
            index = int(index)
            ratio = float(result.explained_variance_ratio[index]) if index < len(result.explained_variance_ratio) else None
            feature = self._component_feature(
                result, index, generate_pc_feature_name(prefix, index, ratio), new_features
            )
            new_features[feature.id] = feature

        self._commit_component_features(new_features)
        return list(new_features)

    def delete_pca_result(self, pca_id: str) -> bool:
        """Delete a result together with the pca features materialized from it.

        Refused when a feature outside that set depends on one of them.

        Returns:
            True if deleted
        """
        if pca_id not in self._pca_results:
            self._diagnose(DiagnosticCode.UNKNOWN_PCA_RESULT, f"PCA result not found: {pca_id}", pca_id)
            return False

        owned = [
            fid for fid, f in self._features.items()
            if f.type is FeatureType.PCA and f.pca_id == pca_id and fid.startswith(f"{pca_id}_")
        ]
        external = self._graph.external_dependents(owned)
        if external:
            self._diagnose(
                DiagnosticCode.HAS_DEPENDENTS,
                f"Cannot delete PCA result whose features have dependents: {', '.join(sorted(external))}",
                pca_id,
            )
            return False

        for fid in owned:
            self._graph.remove_node(fid)
            del self._features[fid]
        del self._pca_results[pca_id]
        owned_set = set(owned)
        self._selected = [fid for fid in self._selected if fid not in owned_set]
        logger.bind(context={"pca_id": pca_id, "features": owned}).debug("Deleted PCA result")
        return True

    def inverse_pca_transform(self, pca_id: str, pc_values: ArrayLike) -> np.ndarray | None:
        """Map one point in component space back to the PCA's source features.

        Returns:
            One value per source feature, or None if rejected
        """
        result = self._pca_results.get(pca_id)
        if result is None:
            self._diagnose(DiagnosticCode.UNKNOWN_PCA_RESULT, f"PCA result not found: {pca_id}", pca_id)
            return None

        try:
            return reconstruct_data(np.atleast_1d(pc_values), result.mean, result.components)[0]
        except ValueError as e:
            self._diagnose(DiagnosticCode.INVALID_COMPONENT, f"PCA inverse transform failed: {e}", pca_id)
            return None

    # =========================================================================
    # Snapshots
    # =========================================================================

    def export_config(self) -> dict[str, Any]:
        """Snapshot of derived features, PCA results and selection.

        Original features are not included; the snapshot is replayed on top of
        a store seeded from the same samples.
        """
        version = self.config.snapshot.version
        transformed = []
        for f in self.get_transformed_features():
            entry: dict[str, Any] = {
                "sourceFeatureId": f.source_feature_id,
                "transform": f.transform.value,
                "customName": f.name,
            }
            if f.transform_params is not None:
                entry["transformParams"] = f.transform_params.to_dict()
            if version >= 2:
                entry = {"id": f.id} | entry
            transformed.append(entry)

        config: dict[str, Any] = {
            "version": version,
            "transformedFeatures": transformed,
            "pcaResults": [r.to_dict() for r in self._pca_results.values()],
        }
        if version >= 2:
            config["pcaFeatures"] = [
                {"id": f.id, "pcaId": f.pca_id, "componentIndex": f.component_index, "name": f.name}
                for f in self.get_pca_features()
            ]
        config["selectedFeatureIds"] = list(self._selected)

        log_snapshot("export", version, fingerprint_config(config), self._snapshot_counts(config))
        return config

    @staticmethod
    def _snapshot_counts(config: Mapping[str, Any]) -> dict[str, int]:
        return {
            "transformed_features": len(config.get("transformedFeatures", [])),
            "pca_results": len(config.get("pcaResults", [])),
            "pca_features": len(config.get("pcaFeatures", [])),
            "selected": len(config.get("selectedFeatureIds", [])),
        }

    def _replay_transformed(self, entry: Mapping[str, Any], id_map: dict[str, str]) -> bool | None:
        """Recreate one transformed feature; None while its source is missing."""
        source_id = id_map.get(entry["sourceFeatureId"], entry["sourceFeatureId"])
        if source_id not in self._features:
            return None

        params = TransformParams.from_dict(entry["transformParams"]) if entry.get("transformParams") else None
        new_id = self.add_transformed_feature(source_id, entry["transform"], params, entry.get("customName"))
        if new_id is None:
            return False
        if entry.get("id"):
            id_map[entry["id"]] = new_id
        return True

    def _replay_component(self, entry: Mapping[str, Any], id_map: dict[str, str]) -> bool | None:
        """Re-materialize one pca feature; None while a PCA source is missing."""
        result = self._pca_results.get(entry["pcaId"])
        index = entry["componentIndex"]
        if result is None or index >= result.num_components:
            return False
        sources = tuple(id_map.get(s, s) for s in result.source_feature_ids)
        if any(s not in self._features for s in sources):
            return None

        name = entry.get("name") or generate_pc_feature_name(
            result.name, index, float(result.explained_variance_ratio[index])
        )
        feature = replace(self._component_feature(result, index, name, {}), source_feature_ids=sources)
        self._commit_component_features({feature.id: feature})
        if entry.get("id"):
            id_map[entry["id"]] = feature.id
        return True

    def import_config(self, config: Mapping[str, Any]) -> bool:
        """Replay a snapshot on top of the current features.

        PCA results are restored first. Transformed and pca features are then
        replayed in order; entries whose source does not exist yet are retried
        once other entries have been created, and skipped with a diagnostic if
        it never appears. Exported ids are mapped to the ids generated here,
        for both feature sources and the selection.

        Returns:
            False if the store is uninitialized or the snapshot is invalid;
            nothing is changed in that case
        """
        if not self._initialized:
            self._diagnose(DiagnosticCode.NOT_INITIALIZED, "Feature store not initialized with data")
            return False

        is_valid, errors = validate_store_config(config)
        if not is_valid:
            self._diagnose(DiagnosticCode.INVALID_SNAPSHOT, f"Invalid snapshot: {'; '.join(errors)}")
            return False

        try:
            results = [PCAResult.from_dict(r) for r in config["pcaResults"]]
        except (KeyError, TypeError, ValueError) as e:
            self._diagnose(DiagnosticCode.INVALID_SNAPSHOT, f"Invalid PCA result in snapshot: {e}")
            return False

        mismatched = [r.id for r in results if r.projections.shape[0] != self.sample_count]
        if mismatched:
            self._diagnose(
                DiagnosticCode.INVALID_SNAPSHOT,
                f"PCA results {mismatched} do not have {self.sample_count} projected samples",
            )
            return False

        for result in results:
            self.save_pca_result(result)

        id_map: dict[str, str] = {}
        pending: list[tuple[str, Mapping[str, Any]]] = [
            ("transformed", entry) for entry in config["transformedFeatures"]
        ] + [("pca", entry) for entry in config.get("pcaFeatures", [])]

        progress = True
        while pending and progress:
            progress = False
            waiting = []
            for kind, entry in pending:
                if kind == "transformed":
                    status = self._replay_transformed(entry, id_map)
                else:
                    status = self._replay_component(entry, id_map)
                if status is None:
                    waiting.append((kind, entry))
                elif status:
                    progress = True
                else:
                    self._diagnose(DiagnosticCode.IMPORT_SKIPPED, f"Skipped {kind} entry: {dict(entry)}")
            pending = waiting

        for kind, entry in pending:
            self._diagnose(DiagnosticCode.IMPORT_SKIPPED, f"Source missing for {kind} entry: {dict(entry)}")

        # Restored results refer to sources by their exported ids
        for result in results:
            mapped = [id_map.get(s, s) for s in result.source_feature_ids]
            if mapped != result.source_feature_ids:
                self._pca_results[result.id] = replace(result, source_feature_ids=mapped)

        self.set_selected_feature_ids(id_map.get(fid, fid) for fid in config["selectedFeatureIds"])
        log_snapshot("import", config["version"], fingerprint_config(dict(config)), self._snapshot_counts(config))
        return True

    def save_config(self, path: Path | str) -> Path:
        """Write export_config() as JSON.

        Returns:
            Path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.export_config(), indent=self.config.snapshot.indent))
        logger.info(f"Saved feature store snapshot to {path}")
        return path

    def load_config(self, path: Path | str) -> bool:
        """Read a JSON snapshot and import it.

        Raises:
            FileNotFoundError: If the file does not exist.
        """
        path = Path(path)
        if not path.exists():
            msg = f"Snapshot file not found: {path}"
            raise FileNotFoundError(msg)
        try:
            config = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            self._diagnose(DiagnosticCode.INVALID_SNAPSHOT, f"Snapshot is not valid JSON: {e}", str(path))
            return False
        return self.import_config(config)

    # =========================================================================
    # Views
    # =========================================================================

    def to_wide(self, feature_ids: Sequence[str] | None = None, include_target: bool = True) -> pl.DataFrame:
        return views.to_wide(self, feature_ids, include_target)

    def to_long(self, feature_ids: Sequence[str] | None = None) -> pl.DataFrame:
        return views.to_long(self, feature_ids)

    def stats_table(self, feature_ids: Sequence[str] | None = None) -> pl.DataFrame:
        return views.stats_table(self, feature_ids)

    def feature_matrix(self, feature_ids: Sequence[str] | None = None) -> np.ndarray:
        return views.feature_matrix(self, feature_ids)

    def correlation_matrix(self, feature_ids: Sequence[str] | None = None) -> pl.DataFrame:
        return views.correlation_matrix(self, feature_ids)
