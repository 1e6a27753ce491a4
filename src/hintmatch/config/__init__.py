"""Config subpackage.

- vision: central knobs for matching thresholds, resize limits, and toggles
"""
# Import vision configuration explicitly to avoid F403
from .vision import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    MIN_OPACITY_RATIO,
    MAX_LONG_EDGE,
    MAX_TOTAL_PIXELS,
    MAX_WORKERS,
    MatchConfig,
    validate_threshold,
    validate_scale_factor,
)

__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "MIN_OPACITY_RATIO",
    "MAX_LONG_EDGE",
    "MAX_TOTAL_PIXELS",
    "MAX_WORKERS",
    "MatchConfig",
    "validate_threshold",
    "validate_scale_factor",
]
