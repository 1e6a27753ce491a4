"""
Matching configuration knobs centralization.

All thresholds, resize limits, and environment toggles live here. The engine
never reads these module constants directly: callers build a MatchConfig
(defaults below, or ConfigManager.match_config()) and pass it into each call.

Environment overrides (read once at import; unparseable or out-of-range
values are logged and the built-in default is kept):
- HM_CONFIDENCE_THRESHOLD (default 0.7)
- HM_MIN_OPACITY_RATIO (default 0.10)
- HM_MAX_LONG_EDGE (default 1920)
- HM_MAX_TOTAL_PIXELS (default 2000000)
- HM_MAX_WORKERS (default 1, sequential)
"""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
import math
import os


logger = logging.getLogger(__name__)


def _env_float(name: str, default: float, lo: float = 0.0, hi: float = 1.0) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (ValueError, TypeError):
        logger.warning("Ignoring %s=%r: not a number, using %s", name, raw, default)
        return default
    # NaN fails both comparisons
    if not (lo <= value <= hi):
        logger.warning("Ignoring %s=%r: outside [%s, %s], using %s", name, raw, lo, hi, default)
        return default
    return value


def _env_int(name: str, default: int, lo: int = 1) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (ValueError, TypeError):
        logger.warning("Ignoring %s=%r: not an integer, using %s", name, raw, default)
        return default
    if value < lo:
        logger.warning("Ignoring %s=%r: must be >= %s, using %s", name, raw, lo, default)
        return default
    return value


# Thresholds
DEFAULT_CONFIDENCE_THRESHOLD: float = _env_float("HM_CONFIDENCE_THRESHOLD", 0.7)
MIN_OPACITY_RATIO: float = _env_float("HM_MIN_OPACITY_RATIO", 0.10)

# Capture-side resize limits (the producer of scale_factor)
MAX_LONG_EDGE: int = _env_int("HM_MAX_LONG_EDGE", 1920)
MAX_TOTAL_PIXELS: int = _env_int("HM_MAX_TOTAL_PIXELS", 2_000_000)

# Batch parallelism; 1 keeps the batch sequential
MAX_WORKERS: int = _env_int("HM_MAX_WORKERS", 1)


@dataclass(frozen=True)
class MatchConfig:
    """Tunables passed explicitly into every engine call."""

    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    min_opacity_ratio: float = MIN_OPACITY_RATIO
    max_long_edge: int = MAX_LONG_EDGE
    max_total_pixels: int = MAX_TOTAL_PIXELS
    max_workers: int = MAX_WORKERS

    def __post_init__(self) -> None:
        validate_threshold(self.confidence_threshold)
        if not (0.0 <= float(self.min_opacity_ratio) <= 1.0):
            raise ValueError(f"min_opacity_ratio must be within [0, 1], got {self.min_opacity_ratio}")
        if int(self.max_long_edge) < 1 or int(self.max_total_pixels) < 1:
            raise ValueError("resize limits must be positive")
        if int(self.max_workers) < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    def with_overrides(self, **kwargs) -> "MatchConfig":
        """Return a copy with the non-None keyword values replaced."""
        changes = {k: v for k, v in kwargs.items() if v is not None}
        return replace(self, **changes) if changes else self


def validate_threshold(value: float) -> float:
    v = float(value)
    if not math.isfinite(v) or v < 0.0 or v > 1.0:
        raise ValueError(f"confidence threshold must be within [0, 1], got {value}")
    return v


def validate_scale_factor(value: float) -> float:
    v = float(value)
    if not math.isfinite(v) or v <= 0.0 or v > 1.0:
        raise ValueError(f"scale_factor must be within (0, 1], got {value}")
    return v


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
