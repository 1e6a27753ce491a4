"""
Image decoding for screenshots and hint templates.

Two failure kinds are kept apart so the caller can classify them: corrupted
transport text (Base64DecodeError) and bytes that are not a readable image
(ImageDecodeError). Both derive from DecodeError.
"""
from __future__ import annotations

from typing import Union
import base64
import binascii

import cv2
import numpy as np

Payload = Union[str, bytes, bytearray, memoryview]


class DecodeError(Exception):
    """Base class for decoding failures."""


class Base64DecodeError(DecodeError):
    pass


class ImageDecodeError(DecodeError):
    pass


def decode_base64(data: str) -> bytes:
    """Decode base64 text strictly.

    Surrounding whitespace and a leading data URL header
    ("data:image/png;base64,") are tolerated; anything else outside the base64
    alphabet is rejected.
    """
    text = str(data).strip()
    if text.startswith("data:") and "," in text:
        text = text.split(",", 1)[1]
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(f"Base64 decode error: {e}") from e


def decode_image(raw: bytes) -> np.ndarray:
    """Decode encoded image bytes (PNG, JPEG, BMP, ...) keeping any alpha channel.

    Returns a uint8 ndarray shaped HxW, HxWx3 (BGR) or HxWx4 (BGRA).
    """
    buf = np.frombuffer(bytes(raw), dtype=np.uint8)
    if buf.size == 0:
        raise ImageDecodeError("Image decode error: empty buffer")
    try:
        img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise ImageDecodeError(f"Image decode error: {e}") from e
    if img is None or img.size == 0:
        raise ImageDecodeError("Image decode error: unsupported or corrupted image data")
    if img.dtype == np.uint16:
        img = (img >> 8).astype(np.uint8)
    elif img.dtype != np.uint8:
        raise ImageDecodeError(f"Image decode error: unsupported pixel type {img.dtype}")
    if img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    return img


def decode_payload(data: Payload) -> np.ndarray:
    """Decode a transport payload: str is base64 text, bytes-like is raw image data."""
    if isinstance(data, str):
        return decode_image(decode_base64(data))
    return decode_image(bytes(data))
