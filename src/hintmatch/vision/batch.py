"""
Batch matching: one screenshot, many hint templates.

The screenshot is decoded and converted to grayscale exactly once and then
shared read-only by every template pipeline. Results come back in input
order, one per template, whatever happens to individual templates; nothing
raised inside a pipeline crosses the batch boundary.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union
import logging
import time

import numpy as np

from ..config.vision import MatchConfig, validate_scale_factor, validate_threshold
from .decode import DecodeError, Payload, decode_payload
from .matcher import match_template_gray
from .preprocess import screen_gray
from .results import MatchErrorCode, MatchResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TemplateRequest:
    """One hint image to locate.

    scale_factor / confidence_threshold left as None inherit the batch-wide
    values.
    """

    data: Payload
    file_name: str = ""
    scale_factor: Optional[float] = None
    confidence_threshold: Optional[float] = None


TemplateInput = Union[TemplateRequest, Tuple[Payload, str]]


def _as_request(item: TemplateInput, index: int) -> TemplateRequest:
    if isinstance(item, TemplateRequest):
        return item
    data, name = item
    return TemplateRequest(data=data, file_name=str(name) if name is not None else f"#{index}")


def decode_screenshot(screenshot: Payload) -> np.ndarray:
    """Decode a screenshot payload to a grayscale ndarray (raises DecodeError)."""
    return screen_gray(decode_payload(screenshot))


def _run_one(
    screen: np.ndarray,
    req: TemplateRequest,
    scale_factor: float,
    threshold: float,
    config: MatchConfig,
) -> MatchResult:
    try:
        return match_template_gray(screen, req.data, scale_factor, threshold, config)
    except Exception as e:
        # Unclassified failure (e.g. an OpenCV error): report for this slot only
        logger.exception("batch: template %s failed unexpectedly", req.file_name)
        return MatchResult(found=False, error=f"Template matching failed: {e}")


def _plan(req: TemplateRequest, scale: float, threshold: float):
    """Resolve per-request overrides to (req, scale, threshold, rejected).

    An invalid override only rejects its own slot (error set, no error code).
    """
    try:
        s = scale if req.scale_factor is None else validate_scale_factor(req.scale_factor)
        thr = threshold if req.confidence_threshold is None else validate_threshold(req.confidence_threshold)
    except ValueError as e:
        logger.warning("batch: template %s rejected: %s", req.file_name, e)
        return req, scale, threshold, MatchResult(found=False, error=f"Invalid template request: {e}")
    return req, s, thr, None


def match_templates_batch(
    screenshot: Payload,
    templates: Sequence[TemplateInput],
    scale_factor: float,
    confidence_threshold: Optional[float] = None,
    config: Optional[MatchConfig] = None,
    max_workers: Optional[int] = None,
) -> List[Tuple[str, MatchResult]]:
    """Match every template against one screenshot.

    Returns [(file_name, MatchResult), ...] with the same length and order as
    templates. A screenshot that cannot be decoded yields an equal (but not
    shared) ScreenshotDecodeError result in every slot.

    Raises ValueError only for invalid batch-wide arguments (scale factor
    outside (0, 1], threshold outside [0, 1]), before any decoding happens.
    An invalid per-request override is reported in that request's slot.
    """
    cfg = config or MatchConfig()
    threshold = validate_threshold(cfg.confidence_threshold if confidence_threshold is None else confidence_threshold)
    scale = validate_scale_factor(scale_factor)
    requests = [_as_request(t, i) for i, t in enumerate(templates)]
    plans = [_plan(req, scale, threshold) for req in requests]

    t0 = time.perf_counter()
    try:
        screen = decode_screenshot(screenshot)
    except DecodeError as e:
        logger.warning("batch: screenshot decode failed for %d template(s): %s", len(requests), e)
        message = f"Screenshot decode error: {e}"
        return [
            (req.file_name, MatchResult.failure(MatchErrorCode.SCREENSHOT_DECODE_ERROR, message))
            for req in requests
        ]

    def run(plan) -> MatchResult:
        req, s, thr, rejected = plan
        if rejected is not None:
            return rejected
        return _run_one(screen, req, s, thr, cfg)

    workers = int(max_workers if max_workers is not None else cfg.max_workers)
    if workers > 1 and len(plans) > 1:
        # executor.map yields in submission order, which keeps slots index-stable
        with ThreadPoolExecutor(max_workers=min(workers, len(plans)), thread_name_prefix="hintmatch") as pool:
            results = list(pool.map(run, plans))
    else:
        results = [run(p) for p in plans]

    found = sum(1 for r in results if r.found)
    errors = sum(1 for r in results if r.error is not None)
    logger.info(
        "batch: %d template(s) on %dx%d screenshot: found=%d errors=%d in %.1fms",
        len(results), screen.shape[1], screen.shape[0], found, errors,
        (time.perf_counter() - t0) * 1000.0,
    )
    for req, res in zip(requests, results):
        if res.error_code is not None:
            logger.warning("batch: %s -> %s: %s", req.file_name, res.error_code.value, res.error)
    return [(req.file_name, res) for req, res in zip(requests, results)]


def find_template_in_screenshot(
    screenshot: Payload,
    template: Payload,
    scale_factor: float,
    confidence_threshold: Optional[float] = None,
    config: Optional[MatchConfig] = None,
) -> MatchResult:
    """Single-template convenience wrapper around match_templates_batch."""
    [(_, result)] = match_templates_batch(
        screenshot,
        [TemplateRequest(data=template)],
        scale_factor,
        confidence_threshold=confidence_threshold,
        config=config,
        max_workers=1,
    )
    return result
