"""Hint image matching entry point for the calling layer.

Responsibility:
- Accept the wire shapes the caller sends (camelCase or snake_case mappings,
  or TemplateRequest objects).
- Delegate to the pure matching functions in hintmatch.vision.batch.
- Tag each result with its input index and file name.

Individual image failures stay inside their own HintImageMatchResult so one
corrupted hint never hides coordinates found for the others.
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence
import logging

from ..config.vision import MatchConfig
from ..vision.batch import TemplateRequest, match_templates_batch
from ..vision.decode import Payload
from ..vision.results import HintImageMatchResult

logger = logging.getLogger(__name__)


def _to_request(item: Any, index: int) -> TemplateRequest:
    if isinstance(item, TemplateRequest):
        return item
    if isinstance(item, Mapping):
        data = item.get("imageData", item.get("image_data"))
        name = item.get("fileName", item.get("file_name"))
        scale = item.get("scaleFactor", item.get("scale_factor"))
        thr = item.get("confidenceThreshold", item.get("confidence_threshold"))
    else:
        data = getattr(item, "image_data", None)
        name = getattr(item, "file_name", None)
        scale = getattr(item, "scale_factor", None)
        thr = getattr(item, "confidence_threshold", None)
    if data is None:
        raise ValueError(f"template #{index} has no image data")
    return TemplateRequest(
        data=data,
        file_name=str(name) if name is not None else f"#{index}",
        scale_factor=scale,
        confidence_threshold=thr,
    )


def match_hint_images(
    screenshot_base64: Payload,
    template_images: Sequence[Any],
    scale_factor: float,
    confidence_threshold: Optional[float] = None,
    config: Optional[MatchConfig] = None,
    max_workers: Optional[int] = None,
) -> List[HintImageMatchResult]:
    """Match several hint images against one (already resized) screenshot.

    scale_factor must be the factor the capture side applied when producing
    screenshot_base64; returned centers are in that resized space. Raw image
    bytes are accepted in place of base64 text.
    """
    requests = [_to_request(item, i) for i, item in enumerate(template_images)]
    logger.debug("controller: matching %d hint image(s) at scale %s", len(requests), scale_factor)
    batch = match_templates_batch(
        screenshot_base64,
        requests,
        scale_factor,
        confidence_threshold=confidence_threshold,
        config=config,
        max_workers=max_workers,
    )
    return [
        HintImageMatchResult(index=i, file_name=name, match_result=result)
        for i, (name, result) in enumerate(batch)
    ]
