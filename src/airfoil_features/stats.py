"""Descriptive statistics for feature columns.

compute_stats() is the only statistic the feature store depends on; the
correlation, histogram and density helpers feed charts and tables built on top
of the store.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike


@dataclass(frozen=True)
class FeatureStats:
    """Summary statistics of one feature column.

    All fields are zero for an empty column (count == 0).
    """

    min: float = 0.0
    max: float = 0.0
    mean: float = 0.0
    std: float = 0.0
    q1: float = 0.0
    median: float = 0.0
    q3: float = 0.0
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FeatureStats:
        """Build from a dictionary produced by to_dict()."""
        return cls(
            min=float(data.get("min", 0.0)),
            max=float(data.get("max", 0.0)),
            mean=float(data.get("mean", 0.0)),
            std=float(data.get("std", 0.0)),
            q1=float(data.get("q1", 0.0)),
            median=float(data.get("median", 0.0)),
            q3=float(data.get("q3", 0.0)),
            count=int(data.get("count", 0)),
        )


EMPTY_STATS = FeatureStats()


def _quantile(sorted_values: np.ndarray, p: float) -> float:
    """Quantile of a sorted array by linear interpolation at rank p*(n-1)."""
    n = len(sorted_values)
    if n == 0:
        return 0.0
    if n == 1:
        return float(sorted_values[0])

    index = p * (n - 1)
    lower = math.floor(index)
    upper = math.ceil(index)
    if lower == upper:
        return float(sorted_values[lower])
    weight = index - lower
    return float(sorted_values[lower] * (1 - weight) + sorted_values[upper] * weight)


def compute_stats(values: ArrayLike) -> FeatureStats:
    """Compute descriptive statistics for a sequence of samples.

    Variance is the population variance (divisor n).

    Args:
        values: Numeric samples

    Returns:
        FeatureStats; the zero record for empty input
    """
    arr = np.asarray(values, dtype=np.float64).ravel()
    n = len(arr)
    if n == 0:
        return EMPTY_STATS

    sorted_values = np.sort(arr)
    mean = float(np.sum(arr) / n)
    variance = float(np.sum((arr - mean) ** 2) / n)

    return FeatureStats(
        min=float(sorted_values[0]),
        max=float(sorted_values[-1]),
        mean=mean,
        std=math.sqrt(variance),
        q1=_quantile(sorted_values, 0.25),
        median=_quantile(sorted_values, 0.5),
        q3=_quantile(sorted_values, 0.75),
        count=n,
    )


def pearson_correlation(x: ArrayLike, y: ArrayLike) -> float:
    """Pearson correlation coefficient between two equally long series.

    Returns 0.0 when either series is constant.

    Raises:
        ValueError: If the series differ in length or are empty.
    """
    x_arr = np.asarray(x, dtype=np.float64)
    y_arr = np.asarray(y, dtype=np.float64)
    if len(x_arr) != len(y_arr) or len(x_arr) == 0:
        raise ValueError("Arrays must have the same non-zero length")

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denominator = math.sqrt(float(np.sum(dx * dx)) * float(np.sum(dy * dy)))
    if denominator == 0:
        return 0.0
    return float(np.sum(dx * dy) / denominator)


@dataclass(frozen=True)
class HistogramBin:
    """One equal-width histogram bin [x0, x1)."""

    x0: float
    x1: float
    count: int
    frequency: float


def histogram(
    values: ArrayLike,
    num_bins: int = 20,
    value_range: tuple[float, float] | None = None,
) -> list[HistogramBin]:
    """Equal-width histogram.

    The maximum value is counted in the last bin; values outside an explicit
    range are dropped.

    Args:
        values: Samples to bin
        num_bins: Number of bins
        value_range: Optional (low, high) instead of the data range

    Returns:
        List of bins, empty for empty input
    """
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 0:
        return []

    low, high = value_range if value_range is not None else (float(arr.min()), float(arr.max()))
    width = (high - low) / num_bins

    if width > 0:
        idx = np.floor((arr - low) / width).astype(np.int64)
        idx[idx == num_bins] = num_bins - 1
    else:
        idx = np.zeros(len(arr), dtype=np.int64)
    in_range = (idx >= 0) & (idx < num_bins)
    counts = np.bincount(idx[in_range], minlength=num_bins)

    total = len(arr)
    return [
        HistogramBin(
            x0=low + i * width,
            x1=low + (i + 1) * width,
            count=int(counts[i]),
            frequency=float(counts[i]) / total,
        )
        for i in range(num_bins)
    ]


def kernel_density_estimate(
    values: ArrayLike,
    bandwidth: float | None = None,
    n_points: int = 100,
) -> tuple[np.ndarray, np.ndarray]:
    """Gaussian kernel density estimate on a regular grid.

    Bandwidth defaults to Silverman's rule of thumb (1.06 * std * n^-1/5).
    The grid extends 10% of the data range beyond both ends.

    Returns:
        Tuple of (grid, density), both empty for empty input
    """
    arr = np.asarray(values, dtype=np.float64)
    if len(arr) == 0:
        return np.array([]), np.array([])

    low, high = float(arr.min()), float(arr.max())
    padding = (high - low) * 0.1
    grid = np.linspace(low - padding, high + padding, n_points)

    h = bandwidth if bandwidth is not None else 1.06 * float(arr.std()) * len(arr) ** -0.2
    if h <= 0:
        # Degenerate column: every sample identical
        h = 1.0

    u = (grid[:, None] - arr[None, :]) / h
    density = np.exp(-0.5 * u * u).sum(axis=1) / (math.sqrt(2 * math.pi) * len(arr) * h)
    return grid, density

