"""
Pure image preprocessing and template preparation utilities.

This module contains only stateless, side-effect-free functions used by the
matcher: scale alignment, opacity measurement, alpha-aware grayscale
conversion, and the capture-side screenshot resize that produces the scale
factor in the first place.

Logging: Functions here avoid logging for performance; callers can wrap them
and log as needed at DEBUG level.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple
import base64
import math

import cv2
import numpy as np

from ..config.vision import MAX_LONG_EDGE, MAX_TOTAL_PIXELS

# ITU-R BT.601 luma weights, applied to R, G, B
_LUMA_R = 0.299
_LUMA_G = 0.587
_LUMA_B = 0.114


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def scaled_size(width: int, height: int, scale_factor: float) -> Tuple[int, int]:
    """Return (w, h) after scaling, rounded and clamped to at least 1x1."""
    nw = max(1, _round_half_up(width * float(scale_factor)))
    nh = max(1, _round_half_up(height * float(scale_factor)))
    return nw, nh


def align_template_scale(tpl: np.ndarray, scale_factor: float) -> np.ndarray:
    """Resize a template by the screenshot's downscale factor.

    Only shrinks (scale_factor < 1.0); at 1.0 or above the template is
    returned untouched. Lanczos keeps edges crisp enough for correlation.
    """
    if scale_factor >= 1.0:
        return tpl
    h, w = tpl.shape[:2]
    nw, nh = scaled_size(w, h, scale_factor)
    if (nw, nh) == (w, h):
        return tpl
    return cv2.resize(tpl, (nw, nh), interpolation=cv2.INTER_LANCZOS4)


def _split_alpha(img: np.ndarray) -> Tuple[np.ndarray, Optional[np.ndarray]]:
    """Return (color, alpha) where color is HxW or HxWx3 and alpha may be None."""
    if img.ndim == 2:
        return img, None
    channels = img.shape[2]
    if channels == 2:
        return img[:, :, 0], img[:, :, 1]
    if channels == 4:
        return img[:, :, :3], img[:, :, 3]
    return img[:, :, :3], None


def opacity_ratio(img: np.ndarray) -> float:
    """Fraction of pixels with non-zero alpha (0.0 .. 1.0).

    Images without an alpha channel are fully opaque. An empty image has
    ratio 0.0.
    """
    total = int(img.shape[0]) * int(img.shape[1]) if img.ndim >= 2 else 0
    if total == 0:
        return 0.0
    _, alpha = _split_alpha(img)
    if alpha is None:
        return 1.0
    return float(np.count_nonzero(alpha)) / float(total)


def composite_gray_on_white(img: np.ndarray) -> np.ndarray:
    """Alpha-composite onto white, then convert to 8-bit luminance.

    channel' = channel * a + 255 * (1 - a), a = alpha / 255
    gray = round(0.299 R + 0.587 G + 0.114 B)

    Transparent regions therefore read as white instead of black.
    """
    color, alpha = _split_alpha(img)
    if color.ndim == 2:
        if alpha is None:
            return np.ascontiguousarray(color, dtype=np.uint8)
        lum = color.astype(np.float32)
    else:
        bgr = color.astype(np.float32)
        lum = _LUMA_B * bgr[:, :, 0] + _LUMA_G * bgr[:, :, 1] + _LUMA_R * bgr[:, :, 2]
    if alpha is not None:
        # Luma is linear, so compositing the luma equals lumas of the composited channels
        a = alpha.astype(np.float32) / 255.0
        lum = lum * a + 255.0 * (1.0 - a)
    out = np.floor(lum + 0.5)
    return np.clip(out, 0, 255).astype(np.uint8)


def screen_gray(img: np.ndarray) -> np.ndarray:
    """Direct grayscale conversion for screenshots (alpha is ignored)."""
    if img.ndim == 2:
        return img
    channels = img.shape[2]
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2GRAY)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2GRAY)
    return np.ascontiguousarray(img[:, :, 0])


@dataclass
class ResizeResult:
    original_width: int
    original_height: int
    resized_width: int
    resized_height: int
    scale_factor: float
    image_base64: str

    def to_dict(self) -> dict:
        return {
            "originalWidth": self.original_width,
            "originalHeight": self.original_height,
            "resizedWidth": self.resized_width,
            "resizedHeight": self.resized_height,
            "scaleFactor": self.scale_factor,
            "imageBase64": self.image_base64,
        }


def screenshot_scale_factor(
    width: int,
    height: int,
    max_long_edge: int = MAX_LONG_EDGE,
    max_total_pixels: int = MAX_TOTAL_PIXELS,
) -> float:
    """Most restrictive of the long-edge and pixel-count limits, capped at 1.0."""
    long_edge = max(int(width), int(height))
    total = int(width) * int(height)
    if long_edge <= 0 or total <= 0:
        raise ValueError(f"invalid image size {width}x{height}")
    long_edge_scale = float(max_long_edge) / float(long_edge)
    total_scale = math.sqrt(float(max_total_pixels) / float(total))
    return min(long_edge_scale, total_scale, 1.0)


def resize_screenshot(
    img: np.ndarray,
    max_long_edge: int = MAX_LONG_EDGE,
    max_total_pixels: int = MAX_TOTAL_PIXELS,
) -> ResizeResult:
    """Shrink a captured frame to the size limits and encode it as base64 PNG.

    The returned scale_factor is exactly what the matcher must receive so
    template sizes line up with the resized screenshot.
    """
    h, w = img.shape[:2]
    scale = screenshot_scale_factor(w, h, max_long_edge, max_total_pixels)
    rw, rh = scaled_size(w, h, scale)
    if scale < 1.0:
        out = cv2.resize(img, (rw, rh), interpolation=cv2.INTER_LANCZOS4)
    else:
        out, rw, rh = img, w, h
    ok, buf = cv2.imencode(".png", out)
    if not ok:
        raise ValueError("PNG encoding failed")
    return ResizeResult(
        original_width=int(w),
        original_height=int(h),
        resized_width=int(rw),
        resized_height=int(rh),
        scale_factor=float(scale),
        image_base64=base64.b64encode(buf.tobytes()).decode("ascii"),
    )


def to_screen_coordinate(x: float, y: float, scale_factor: float, display_scale: float = 1.0) -> Tuple[int, int]:
    """Map a point on the resized screenshot back to screen coordinates.

    scale_factor is the resize ratio (resized / original) returned by
    resize_screenshot; display_scale converts physical pixels to logical
    points on HiDPI displays.
    """
    combined = float(scale_factor) * float(display_scale)
    if not math.isfinite(combined) or combined <= 0.0:
        raise ValueError(f"scale must be positive, got {scale_factor} x {display_scale}")
    return _round_half_up(x / combined), _round_half_up(y / combined)


def to_resized_coordinate(x: float, y: float, scale_factor: float, display_scale: float = 1.0) -> Tuple[int, int]:
    """Inverse of to_screen_coordinate."""
    combined = float(scale_factor) * float(display_scale)
    if not math.isfinite(combined) or combined <= 0.0:
        raise ValueError(f"scale must be positive, got {scale_factor} x {display_scale}")
    return _round_half_up(x * combined), _round_half_up(y * combined)
