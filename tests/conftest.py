"""Pytest configuration.

Ensures src/ is on sys.path so tests can import `hintmatch.*` without an
install, and provides small helpers that build encoded test images in memory.
"""

import base64
import logging
import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


def _png_bytes(img: np.ndarray) -> bytes:
    ok, buf = cv2.imencode(".png", img)
    assert ok, "PNG encoding failed"
    return buf.tobytes()


def _png_b64(img: np.ndarray) -> str:
    return base64.b64encode(_png_bytes(img)).decode("ascii")


@pytest.fixture
def png_bytes():
    return _png_bytes


@pytest.fixture
def png_b64():
    return _png_b64


@pytest.fixture
def white_block_screen():
    """500x500 black BGR screenshot with a 50x50 white block at (100, 100)."""
    img = np.zeros((500, 500, 3), np.uint8)
    img[100:150, 100:150] = 255
    return img


@pytest.fixture
def noise_image():
    def make(w: int, h: int, channels: int = 3, seed: int = 7) -> np.ndarray:
        rng = np.random.default_rng(seed)
        shape = (h, w) if channels == 1 else (h, w, channels)
        img = rng.integers(0, 256, size=shape, dtype=np.uint8)
        if channels == 4:
            img[:, :, 3] = 255
        return img
    return make


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """setup_logging() replaces root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for h in root.handlers[:]:
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
