"""Tests for PCA computation, reconstruction and naming."""

from __future__ import annotations

import numpy as np
import pytest

from airfoil_features.dimensionality import (
    PCAOutput,
    component_loadings,
    compute_pca,
    generate_pc_feature_name,
    generate_pca_display_name,
    optimal_components,
    participation_ratio,
    project_data,
    reconstruct_data,
    summarize_pca,
)


@pytest.fixture
def correlated_data() -> np.ndarray:
    """300 samples of 4 features, two of them nearly collinear."""
    rng = np.random.default_rng(7)
    a = rng.normal(0, 3, 300)
    b = rng.normal(0, 1, 300)
    return np.column_stack([a, 2 * a + rng.normal(0, 0.1, 300), b, rng.normal(0, 0.5, 300)])


NAMES = ["a", "a2", "b", "noise"]


class TestComputePCA:
    """Tests for compute_pca()."""

    def test_shapes(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)

        assert out.ok
        assert out.num_components == 4
        assert out.components.shape == (4, 4)
        assert out.projections.shape == (300, 4)
        assert out.mean.shape == (4,)
        assert out.feature_names == NAMES

    def test_components_are_orthonormal(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        np.testing.assert_allclose(out.components @ out.components.T, np.eye(4), atol=1e-10)

    def test_variance_ordering_and_ratios(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)

        assert np.all(np.diff(out.explained_variance) <= 1e-12)
        assert out.explained_variance_ratio.sum() == pytest.approx(1.0)
        np.testing.assert_allclose(out.cumulative_variance_ratio, np.cumsum(out.explained_variance_ratio))
        assert out.cumulative_variance_ratio[-1] == pytest.approx(1.0)

    def test_eigenvalues_match_singular_values(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        np.testing.assert_allclose(out.explained_variance, out.singular_values**2 / (300 - 1))

    def test_first_component_follows_collinear_pair(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        loadings = np.abs(out.components[0])
        assert set(np.argsort(loadings)[-2:]) == {0, 1}
        assert out.explained_variance_ratio[0] > 0.9

    def test_ratio_uses_total_variance_when_truncated(self, correlated_data):
        full = compute_pca(correlated_data, NAMES)
        two = compute_pca(correlated_data, NAMES, num_components=2)

        assert two.num_components == 2
        assert two.projections.shape == (300, 2)
        np.testing.assert_allclose(two.explained_variance_ratio, full.explained_variance_ratio[:2])
        assert two.cumulative_variance_ratio[-1] < 1.0

    @pytest.mark.parametrize("requested, expected", [(0, 1), (-3, 1), (10, 4), (None, 4)])
    def test_num_components_is_clamped(self, correlated_data, requested, expected):
        assert compute_pca(correlated_data, NAMES, requested).num_components == expected

    def test_fewer_samples_than_features(self):
        rng = np.random.default_rng(0)
        out = compute_pca(rng.normal(size=(3, 5)), list("abcde"))
        assert out.ok
        assert out.num_components == 3

    def test_constant_data_gives_zero_ratios(self):
        out = compute_pca(np.ones((10, 3)), ["x", "y", "z"])
        assert out.ok
        np.testing.assert_array_equal(out.explained_variance_ratio, np.zeros(out.num_components))

    @pytest.mark.parametrize(
        "data, names, fragment",
        [
            (np.ones(5), ["a"], "2-D"),
            (np.ones((5, 2)), ["a"], "mismatch"),
            (np.ones((5, 1)), ["a"], "at least 2 features"),
            (np.ones((1, 3)), ["a", "b", "c"], "at least 2 samples"),
            (np.array([[1.0, np.nan], [2.0, 3.0]]), ["a", "b"], "NaN"),
        ],
    )
    def test_rejected_inputs(self, data, names, fragment):
        out = compute_pca(data, names)
        assert not out.ok
        assert fragment in out.error
        assert out.num_components == 0


class TestReconstruction:
    """Tests for project_data() and reconstruct_data()."""

    def test_full_reconstruction_is_exact(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        rebuilt = reconstruct_data(out.projections, out.mean, out.components)
        np.testing.assert_allclose(rebuilt, correlated_data, atol=1e-9)

    def test_projection_matches_fit(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        np.testing.assert_allclose(
            project_data(correlated_data, out.mean, out.components), out.projections, atol=1e-9
        )

    def test_zero_scores_give_mean(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        np.testing.assert_allclose(reconstruct_data([0.0, 0.0], out.mean, out.components)[0], out.mean)

    def test_partial_scores_use_leading_components(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        rebuilt = reconstruct_data([1.5], out.mean, out.components)
        np.testing.assert_allclose(rebuilt[0], out.mean + 1.5 * out.components[0])

    def test_too_many_scores_raises(self, correlated_data):
        out = compute_pca(correlated_data, NAMES, num_components=2)
        with pytest.raises(ValueError):
            reconstruct_data([1.0, 2.0, 3.0], out.mean, out.components)


class TestPCASummaries:
    """Tests for loadings, component counts and summaries."""

    def test_component_loadings_sorted(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        df = component_loadings(out.components, 0, NAMES)

        assert df.columns == ["feature", "loading", "abs_loading"]
        assert df["abs_loading"].to_list() == sorted(df["abs_loading"].to_list(), reverse=True)
        assert set(df["feature"].head(2).to_list()) == {"a", "a2"}

    def test_component_loadings_bad_index(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        with pytest.raises(ValueError):
            component_loadings(out.components, 4, NAMES)

    def test_optimal_components(self):
        cumvar = [0.6, 0.85, 0.96, 1.0]
        assert optimal_components(cumvar, 0.95) == 3
        assert optimal_components(cumvar, 0.5) == 1
        assert optimal_components([0.5, 0.7], 0.95) == 2

    def test_participation_ratio(self):
        assert participation_ratio([1.0, 1.0, 1.0]) == pytest.approx(3.0)
        assert participation_ratio([5.0, 0.0, 0.0]) == pytest.approx(1.0)
        assert participation_ratio([]) == 0.0

    def test_summary(self, correlated_data):
        out = compute_pca(correlated_data, NAMES)
        summary = summarize_pca(out, max_loadings=2)

        assert summary["n_samples"] == 300
        assert summary["n_features"] == 4
        assert summary["n_components_90_variance"] <= summary["n_components_99_variance"]
        assert len(summary["top_contributors_per_component"]) == 4
        assert len(summary["top_contributors_per_component"][0]["top_features"]) == 2
        assert "components explain 95% variance" in summary["interpretation"]

    def test_summary_of_failed_run(self):
        assert summarize_pca(PCAOutput(error="boom")) == {"error": "boom"}


class TestNaming:
    """Tests for PCA display names."""

    def test_custom_name_wins(self):
        assert generate_pca_display_name("Flow", ["Frequency (Hz)"]) == "Flow"

    def test_abbreviated_sources(self):
        name = generate_pca_display_name(None, ["Frequency (Hz)", "Angle of Attack (deg)"])
        assert name == "PCA(FH,AOA)"

    def test_many_sources(self):
        names = ["Frequency (Hz)", "Angle of Attack (deg)", "Chord Length (m)", "Free-stream Velocity (m/s)"]
        assert generate_pca_display_name(None, names) == "PCA(FH,AOA+2)"

    def test_ordinal_fallback(self):
        assert generate_pca_display_name(None, [], ordinal=4) == "PCA 4"

    def test_pc_feature_name(self):
        assert generate_pc_feature_name("PCA(FH,AOA)", 0, 0.6234) == "PCA(FH,AOA) PC1 (62.3%)"
        assert generate_pc_feature_name("Flow", 2) == "Flow PC3"
