"""Vision package: pure image ops and matching.

Submodules:
- decode: base64 / image decoding with classified failures
- preprocess: stateless scale alignment, opacity, grayscale and coordinate utilities
- matcher: single-template NCC pipeline
- batch: one screenshot, many templates, order-preserving
- results: MatchResult and MatchErrorCode
"""
from .decode import (
    DecodeError,
    Base64DecodeError,
    ImageDecodeError,
    decode_base64,
    decode_image,
    decode_payload,
)
from .preprocess import (
    scaled_size,
    align_template_scale,
    opacity_ratio,
    composite_gray_on_white,
    screen_gray,
    screenshot_scale_factor,
    resize_screenshot,
    ResizeResult,
    to_screen_coordinate,
    to_resized_coordinate,
)
from .results import MatchErrorCode, MatchResult, HintImageMatchResult
from .matcher import correlate, classify, fits_inside, match_template_gray
from .batch import TemplateRequest, decode_screenshot, match_templates_batch, find_template_in_screenshot

__all__ = [
    "DecodeError",
    "Base64DecodeError",
    "ImageDecodeError",
    "decode_base64",
    "decode_image",
    "decode_payload",
    "scaled_size",
    "align_template_scale",
    "opacity_ratio",
    "composite_gray_on_white",
    "screen_gray",
    "screenshot_scale_factor",
    "resize_screenshot",
    "ResizeResult",
    "to_screen_coordinate",
    "to_resized_coordinate",
    "MatchErrorCode",
    "MatchResult",
    "HintImageMatchResult",
    "correlate",
    "classify",
    "fits_inside",
    "match_template_gray",
    "TemplateRequest",
    "decode_screenshot",
    "match_templates_batch",
    "find_template_in_screenshot",
]
