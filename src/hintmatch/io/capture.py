"""
One-shot screen capture used by the command line tool.

The matching engine never captures anything itself; this helper only feeds
the CLI's --capture mode: grab a monitor with mss, then shrink it with
resize_screenshot so the returned scale factor lines up with the hints.
"""
from __future__ import annotations

from typing import Optional

import logging
import time

import mss
import numpy as np

from ..config.vision import MatchConfig
from ..vision.preprocess import ResizeResult, resize_screenshot

logger = logging.getLogger(__name__)


def grab_monitor_bgr(monitor: int = 1) -> np.ndarray:
    """Capture a monitor as a BGR frame. 0 is the virtual screen, 1 the primary."""
    t0 = time.perf_counter()
    with mss.mss() as sct:
        monitors = sct.monitors
        if monitor < 0 or monitor >= len(monitors):
            raise ValueError(f"monitor {monitor} not available (found {len(monitors) - 1})")
        shot = sct.grab(monitors[monitor])
        frame = np.array(shot)  # BGRA
    logger.debug("capture: monitor %d %dx%d in %.1fms", monitor, frame.shape[1], frame.shape[0],
                 (time.perf_counter() - t0) * 1000.0)
    return np.ascontiguousarray(frame[:, :, :3])


def capture_resized(monitor: int = 1, config: Optional[MatchConfig] = None) -> ResizeResult:
    """Capture a monitor and resize it to the configured limits."""
    cfg = config or MatchConfig()
    frame = grab_monitor_bgr(monitor)
    return resize_screenshot(frame, cfg.max_long_edge, cfg.max_total_pixels)
