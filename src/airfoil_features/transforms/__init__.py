"""Feature transforms and the custom expression language."""

from airfoil_features.transforms.expression import (
    CONSTANTS,
    FUNCTIONS,
    VARIABLES,
    Expression,
    ExpressionError,
    compile_expression,
    tokenize,
)
from airfoil_features.transforms.kinds import (
    KNOWN_INVERSES,
    VALIDATION_STATS,
    TransformKind,
    TransformOutcome,
    TransformParams,
    apply_inverse_transform,
    apply_transform,
    evaluate_custom_transform,
    get_known_inverse,
    has_inverse,
    inverse_transform_values,
    transform_display_name,
    transform_suffix,
    transform_values,
    validate_custom_transform,
)

__all__ = [
    # Expression language
    "CONSTANTS",
    "FUNCTIONS",
    "VARIABLES",
    "Expression",
    "ExpressionError",
    "compile_expression",
    "tokenize",
    # Transforms
    "KNOWN_INVERSES",
    "VALIDATION_STATS",
    "TransformKind",
    "TransformOutcome",
    "TransformParams",
    "apply_inverse_transform",
    "apply_transform",
    "evaluate_custom_transform",
    "get_known_inverse",
    "has_inverse",
    "inverse_transform_values",
    "transform_display_name",
    "transform_suffix",
    "transform_values",
    "validate_custom_transform",
]
