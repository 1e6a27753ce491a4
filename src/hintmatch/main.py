"""Command line entry point.

Locate hint images inside a screenshot and print the results as JSON.

Usage:
  hintmatch shot.png ok_button.png cancel.png --threshold 0.8
  hintmatch --capture --monitor 1 ok_button.png

With --capture the primary (or chosen) monitor is grabbed and resized to the
configured limits; the resulting scale factor is used for the hints and each
result also gets screenX/screenY, its center mapped back to the screen. Exit
status is 0 when every hint was processed without error, 1 when any result
carries an error, 2 on usage errors.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .core.config import ConfigManager
from .core.logging_setup import setup_logging
from .controllers.matching import match_hint_images
from .vision.preprocess import to_screen_coordinate

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="hintmatch", description="Find hint images in a screenshot.")
    ap.add_argument("images", nargs="+", help="screenshot path followed by hint image paths "
                                              "(hint paths only with --capture)")
    ap.add_argument("--capture", action="store_true", help="grab a monitor instead of reading a screenshot")
    ap.add_argument("--monitor", type=int, default=1, help="monitor index for --capture (0 = all)")
    ap.add_argument("--scale", type=float, default=1.0,
                    help="downscale factor already applied to the screenshot (0 < s <= 1)")
    ap.add_argument("--threshold", type=float, default=None, help="minimum confidence (0..1)")
    ap.add_argument("--workers", type=int, default=None, help="thread count for the batch")
    ap.add_argument("--config", type=str, default=None, help="path to config.ini")
    ap.add_argument("--log-level", type=str, default=None, help="override DEFAULT.log_level")
    ap.add_argument("--no-log-file", action="store_true", help="log to stderr only")
    return ap


def _read_bytes(ap: argparse.ArgumentParser, path: str) -> bytes:
    p = Path(path)
    if not p.is_file():
        ap.error(f"file not found: {path}")
    return p.read_bytes()


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = build_parser()
    args = ap.parse_args(argv)

    cfg = ConfigManager(args.config)
    setup_logging(cfg, level=args.log_level, to_file=not args.no_log_file)
    try:
        match_cfg = cfg.match_config()
    except ValueError as e:
        ap.error(f"invalid configuration: {e}")

    paths: List[str] = list(args.images)
    if args.capture:
        from .io.capture import capture_resized

        shot = capture_resized(args.monitor, match_cfg)
        screenshot = shot.image_base64
        scale = shot.scale_factor
        logger.info("capture: %dx%d -> %dx%d (scale %.4f)", shot.original_width, shot.original_height,
                    shot.resized_width, shot.resized_height, scale)
    else:
        if len(paths) < 2:
            ap.error("need a screenshot and at least one hint image")
        screenshot = _read_bytes(ap, paths.pop(0))
        scale = args.scale

    hints = [{"image_data": _read_bytes(ap, p), "file_name": Path(p).name} for p in paths]
    try:
        results = match_hint_images(
            screenshot,
            hints,
            scale,
            confidence_threshold=args.threshold,
            config=match_cfg,
            max_workers=args.workers,
        )
    except ValueError as e:
        ap.error(str(e))

    out = [r.to_dict() for r in results]
    if args.capture:
        # Centers are on the resized capture; add where to click on the real screen
        for item, r in zip(out, results):
            center = r.match_result.center
            screen_xy = to_screen_coordinate(center[0], center[1], scale) if center is not None else (None, None)
            item["screenX"], item["screenY"] = screen_xy
    json.dump(out, sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 1 if any(r.match_result.error is not None for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
