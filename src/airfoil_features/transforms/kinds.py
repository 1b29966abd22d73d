"""Forward and inverse feature transforms.

Built-in kinds (minmax, zscore) are closed-form in the source feature's
statistics. Custom transforms are expressions over ``x`` and the statistics
``min, max, mean, std`` (see transforms.expression); a custom forward transform
only has an inverse when the user supplies one.

Non-finite results never reach the store: an element whose expression value
is NaN or infinite falls back to its input value. The vectorized functions
report how many elements fell back through TransformOutcome, so callers can
surface degraded results instead of silently accepting them.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import numpy as np
from loguru import logger

from airfoil_features.stats import FeatureStats
from airfoil_features.transforms.expression import ExpressionError, compile_expression

if TYPE_CHECKING:
    from numpy.typing import ArrayLike


class TransformKind(str, Enum):
    """Transform applied to a source feature."""

    NONE = "none"
    MINMAX = "minmax"
    ZSCORE = "zscore"
    CUSTOM = "custom"


@dataclass(frozen=True)
class TransformParams:
    """Expressions of a custom transform."""

    expression: str = ""
    inverse_expression: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"expression": self.expression}
        if self.inverse_expression:
            data["inverseExpression"] = self.inverse_expression
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TransformParams:
        return cls(
            expression=data.get("expression") or "",
            inverse_expression=data.get("inverseExpression") or None,
        )


@dataclass(frozen=True)
class TransformOutcome:
    """Result of a vectorized transform.

    Attributes:
        values: Transformed values, always finite where the input was
        fallback_count: Elements returned unchanged because evaluation failed
        error: Description of the failure, None for a clean run
    """

    values: np.ndarray
    fallback_count: int = 0
    error: str | None = None

    @property
    def degraded(self) -> bool:
        return self.fallback_count > 0 or self.error is not None


# Forward -> inverse for common custom transforms (whitespace-insensitive keys)
KNOWN_INVERSES: dict[str, str] = {
    "log(x+1)": "exp(x)-1",
    "log(x)": "exp(x)",
    "log10(x+1)": "pow(10,x)-1",
    "log10(x)": "pow(10,x)",
    "sqrt(x)": "pow(x,2)",
    "pow(x,2)": "sqrt(x)",
    "pow(x,0.5)": "pow(x,2)",
    "(x-min)/(max-min)": "x*(max-min)+min",
    "(x-mean)/std": "x*std+mean",
    "exp(x)": "log(x)",
}

# Statistics used to trial-evaluate an expression during validation
VALIDATION_STATS = FeatureStats(
    min=0.0, max=100.0, mean=50.0, std=25.0, q1=25.0, median=50.0, q3=75.0, count=101
)

_VALIDATION_X = 50.0

_WHITESPACE_RE = re.compile(r"\s+")


def _stat_variables(stats: FeatureStats) -> dict[str, float]:
    return {"min": stats.min, "max": stats.max, "mean": stats.mean, "std": stats.std}


def _evaluate_with_fallback(
    expression: str,
    values: np.ndarray,
    stats: FeatureStats,
) -> TransformOutcome:
    """Evaluate an expression element-wise, keeping x where the result is not finite."""
    try:
        result = compile_expression(expression).evaluate(x=values, **_stat_variables(stats))
    except ExpressionError as e:
        logger.bind(context={"expression": expression}).warning(
            f"Error evaluating custom transform: {e}"
        )
        return TransformOutcome(values.copy(), fallback_count=values.size, error=str(e))

    result = np.broadcast_to(np.asarray(result, dtype=np.float64), values.shape)
    finite = np.isfinite(result)
    out = np.where(finite, result, values)
    n_bad = int(values.size - np.count_nonzero(finite))
    if n_bad:
        return TransformOutcome(out, n_bad, f"{n_bad} non-finite result(s) replaced by input")
    return TransformOutcome(out)


def transform_values(
    values: ArrayLike,
    kind: TransformKind | str,
    stats: FeatureStats,
    params: TransformParams | None = None,
) -> TransformOutcome:
    """Apply a forward transform to every element.

    Args:
        values: Input values
        kind: Transform kind
        stats: Statistics of the source feature
        params: Expressions, only read for custom transforms

    Returns:
        TransformOutcome with float64 values of the input's shape

    Raises:
        ValueError: If kind is not a TransformKind value.
    """
    kind = TransformKind(kind)
    arr = np.asarray(values, dtype=np.float64)

    if kind is TransformKind.MINMAX:
        value_range = stats.max - stats.min
        if value_range == 0:
            return TransformOutcome(np.zeros_like(arr))
        return TransformOutcome((arr - stats.min) / value_range)

    if kind is TransformKind.ZSCORE:
        if stats.std == 0:
            return TransformOutcome(np.zeros_like(arr))
        return TransformOutcome((arr - stats.mean) / stats.std)

    if kind is TransformKind.CUSTOM and params is not None and params.expression:
        return _evaluate_with_fallback(params.expression, arr, stats)

    return TransformOutcome(arr.copy())


def inverse_transform_values(
    values: ArrayLike,
    kind: TransformKind | str,
    stats: FeatureStats,
    params: TransformParams | None = None,
) -> TransformOutcome:
    """Apply the inverse of a transform to every element.

    A custom transform without an inverse expression returns the values
    unchanged, flagged as degraded.

    Raises:
        ValueError: If kind is not a TransformKind value.
    """
    kind = TransformKind(kind)
    arr = np.asarray(values, dtype=np.float64)

    if kind is TransformKind.MINMAX:
        return TransformOutcome(arr * (stats.max - stats.min) + stats.min)

    if kind is TransformKind.ZSCORE:
        return TransformOutcome(arr * stats.std + stats.mean)

    if kind is TransformKind.CUSTOM:
        if params is not None and params.inverse_expression:
            return _evaluate_with_fallback(params.inverse_expression, arr, stats)
        logger.warning("Inverse transform not available for custom transform without inverse expression")
        return TransformOutcome(arr.copy(), fallback_count=arr.size, error="No inverse expression defined")

    return TransformOutcome(arr.copy())


def apply_transform(
    value: float,
    kind: TransformKind | str,
    stats: FeatureStats,
    params: TransformParams | None = None,
) -> float:
    """Forward transform of a single value."""
    return float(transform_values(np.array([value]), kind, stats, params).values[0])


def apply_inverse_transform(
    value: float,
    kind: TransformKind | str,
    stats: FeatureStats,
    params: TransformParams | None = None,
) -> float:
    """Inverse transform of a single value."""
    return float(inverse_transform_values(np.array([value]), kind, stats, params).values[0])


def evaluate_custom_transform(expression: str, value: float, stats: FeatureStats) -> float:
    """Evaluate an expression at one value.

    Returns the input value when the expression cannot be parsed or its
    result is NaN or infinite.
    """
    outcome = _evaluate_with_fallback(expression, np.array([value], dtype=np.float64), stats)
    return float(outcome.values[0])


def validate_custom_transform(expression: str) -> str | None:
    """Check an expression before it is stored.

    The expression is parsed, then trial-evaluated at x=50 with
    min=0, max=100, mean=50, std=25.

    Returns:
        None if the expression is usable, otherwise an error message
    """
    if not expression or not expression.strip():
        return "Expression cannot be empty"

    depth = 0
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return "Unbalanced parentheses"
    if depth != 0:
        return "Unbalanced parentheses"

    try:
        result = compile_expression(expression).evaluate(
            x=_VALIDATION_X, **_stat_variables(VALIDATION_STATS)
        )
    except ExpressionError as e:
        return f"Invalid expression: {e}"

    if not np.all(np.isfinite(result)):
        return "Expression produces invalid result"
    return None


def get_known_inverse(expression: str) -> str | None:
    """Look up the inverse of a common forward expression, ignoring whitespace."""
    return KNOWN_INVERSES.get(_WHITESPACE_RE.sub("", expression))


def has_inverse(kind: TransformKind | str, params: TransformParams | None = None) -> bool:
    """Whether values of this transform can be mapped back to its source."""
    try:
        kind = TransformKind(kind)
    except ValueError:
        return False
    if kind is TransformKind.CUSTOM:
        return bool(params is not None and params.inverse_expression)
    return True


_DISPLAY_NAMES = {
    TransformKind.NONE: "None",
    TransformKind.MINMAX: "Min-Max Normalization",
    TransformKind.ZSCORE: "Z-Score Standardization",
    TransformKind.CUSTOM: "Custom Expression",
}


def transform_display_name(kind: TransformKind | str) -> str:
    """Human-readable transform name."""
    try:
        return _DISPLAY_NAMES[TransformKind(kind)]
    except ValueError:
        return str(kind)


def transform_suffix(kind: TransformKind | str, params: TransformParams | None = None) -> str:
    """Suffix appended to a source feature's name for a derived feature.

    Custom expressions longer than 15 characters are shortened to their
    first 12 characters followed by "...".
    """
    try:
        kind = TransformKind(kind)
    except ValueError:
        return ""

    if kind is TransformKind.MINMAX:
        return " (min-max)"
    if kind is TransformKind.ZSCORE:
        return " (z-score)"
    if kind is TransformKind.CUSTOM:
        if params is not None and params.expression:
            expr = params.expression
            short = f"{expr[:12]}..." if len(expr) > 15 else expr
            return f" ({short})"
        return " (custom)"
    return ""
