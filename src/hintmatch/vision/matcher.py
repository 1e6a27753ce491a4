"""
Single-template matching against a pre-decoded grayscale screenshot.

This module provides pure functions that take numpy arrays (plus the encoded
template payload) and return MatchResult values. The batch orchestrator
composes them; nothing here touches the screen, the filesystem or shared
state, so pipelines for different templates may run concurrently.

Pipeline per template:
  decode -> scale align -> opacity gate -> composite -> size guard
  -> correlate -> classify
Every stage either hands its output to the next one or ends the pipeline
with a MatchResult carrying an error code. There are no retries.
"""
from __future__ import annotations

from typing import Optional, Tuple
import logging
import math
import time

import cv2
import numpy as np

from ..config.vision import MatchConfig
from .decode import Base64DecodeError, ImageDecodeError, Payload, decode_payload
from .preprocess import align_template_scale, composite_gray_on_white, opacity_ratio
from .results import MatchErrorCode, MatchResult

logger = logging.getLogger(__name__)


def fits_inside(tpl_size: Tuple[int, int], screen_size: Tuple[int, int]) -> bool:
    """True when a (w, h) template fits entirely inside a (w, h) screenshot."""
    return tpl_size[0] <= screen_size[0] and tpl_size[1] <= screen_size[1]


def correlate(screen: np.ndarray, tpl: np.ndarray) -> Tuple[float, Tuple[int, int]]:
    """Normalized cross-correlation; return (max value, top-left (x, y)).

    The surface covers every offset where the template fully overlaps the
    screenshot. A surface holding any NaN/Inf is degenerate and reported as
    NaN so the caller can reject it.
    """
    res = cv2.matchTemplate(screen, tpl, cv2.TM_CCORR_NORMED)
    if not np.isfinite(res).all():
        return float("nan"), (0, 0)
    _, max_val, _, max_loc = cv2.minMaxLoc(res)
    return float(max_val), (int(max_loc[0]), int(max_loc[1]))


def classify(
    max_val: float,
    loc: Tuple[int, int],
    tpl_size: Tuple[int, int],
    threshold: float,
) -> MatchResult:
    """Turn the correlation peak into a found / not-found result.

    Below threshold is not an error: the confidence is still reported so
    near-misses can be logged.
    """
    w, h = int(tpl_size[0]), int(tpl_size[1])
    if max_val >= threshold:
        return MatchResult(
            found=True,
            center_x=int(loc[0]) + w // 2,
            center_y=int(loc[1]) + h // 2,
            confidence=float(max_val),
            template_width=w,
            template_height=h,
        )
    return MatchResult(found=False, confidence=float(max_val), template_width=w, template_height=h)


def match_template_gray(
    screen: np.ndarray,
    payload: Payload,
    scale_factor: float,
    confidence_threshold: Optional[float] = None,
    config: Optional[MatchConfig] = None,
) -> MatchResult:
    """Run the full pipeline for one template against a grayscale screenshot.

    screen is only read. Returned center coordinates are in the screenshot's
    own (already resized) coordinate space.
    """
    cfg = config or MatchConfig()
    threshold = cfg.confidence_threshold if confidence_threshold is None else float(confidence_threshold)
    t0 = time.perf_counter()

    try:
        tpl = decode_payload(payload)
    except Base64DecodeError as e:
        return MatchResult.failure(MatchErrorCode.TEMPLATE_BASE64_DECODE_ERROR, str(e))
    except ImageDecodeError as e:
        return MatchResult.failure(MatchErrorCode.TEMPLATE_IMAGE_DECODE_ERROR, str(e))

    orig_h, orig_w = tpl.shape[:2]
    tpl = align_template_scale(tpl, scale_factor)
    tpl_h, tpl_w = tpl.shape[:2]
    size = (tpl_w, tpl_h)

    ratio = opacity_ratio(tpl)
    if ratio < cfg.min_opacity_ratio:
        return MatchResult.failure(
            MatchErrorCode.INSUFFICIENT_OPACITY,
            (
                f"Template has insufficient opacity ({ratio * 100.0:.1f}% < "
                f"{cfg.min_opacity_ratio * 100.0:.1f}% minimum). "
                "Mostly transparent images cannot be reliably matched."
            ),
            size=size,
        )

    tpl_gray = composite_gray_on_white(tpl)

    scr_h, scr_w = screen.shape[:2]
    if not fits_inside(size, (scr_w, scr_h)):
        return MatchResult.failure(
            MatchErrorCode.TEMPLATE_TOO_LARGE,
            "Template is larger than screenshot after scaling",
            size=size,
            confidence=0.0,
        )

    max_val, loc = correlate(screen, tpl_gray)
    if not math.isfinite(max_val):
        return MatchResult.failure(
            MatchErrorCode.NON_FINITE_CONFIDENCE,
            (
                "Template matching produced non-finite confidence value. Template may have "
                "insufficient variance (e.g., single-color image)."
            ),
            size=size,
        )

    result = classify(max_val, loc, size, threshold)
    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "matcher: tpl %dx%d -> %dx%d score=%.3f thr=%.2f found=%s loc=%s %.1fms",
            orig_w, orig_h, tpl_w, tpl_h, max_val, threshold, result.found, loc,
            (time.perf_counter() - t0) * 1000.0,
        )
    return result
