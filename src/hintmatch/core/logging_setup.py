"""Logging setup utilities for hintmatch.

Provides a single setup function to configure application-wide logging with:
- Session-based file handler under the per-user config directory
- Console handler (stderr, so CLI JSON on stdout stays clean)
- Configurable log level via config.ini (DEFAULT.log_level)
- Automatic retention of the last 3 sessions

Usage:
    from .core.logging_setup import setup_logging
    setup_logging(config_manager)

This will create logs/session-YYYYmmdd_HHMMSS/hintmatch.log next to config.ini.
"""
from __future__ import annotations

import logging
import shutil
from datetime import datetime
from pathlib import Path
from typing import Optional


def _level_from_str(value: Optional[str]) -> int:
    if not value:
        return logging.INFO
    v = str(value).strip().upper()
    mapping = {
        "CRITICAL": logging.CRITICAL,
        "ERROR": logging.ERROR,
        "WARNING": logging.WARNING,
        "WARN": logging.WARNING,
        "INFO": logging.INFO,
        "DEBUG": logging.DEBUG,
        "NOTSET": logging.NOTSET,
    }
    return mapping.get(v, logging.INFO)


def get_log_dir(config_manager) -> Path:
    """Return directory path for logs next to the config.ini."""
    base_dir = Path(getattr(config_manager, "config_path")).parent
    log_dir = base_dir / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    return log_dir


def get_session_dir(config_manager) -> Path:
    """Create and return a new session directory under logs/."""
    base = get_log_dir(config_manager)
    ts = datetime.now().strftime("session-%Y%m%d_%H%M%S")
    session = base / ts
    session.mkdir(parents=True, exist_ok=True)
    return session


def prune_old_sessions(log_dir: Path, keep: int = 3) -> None:
    """Keep only the most recent 'keep' session directories inside log_dir."""
    try:
        entries = [p for p in log_dir.iterdir() if p.is_dir() and p.name.startswith("session-")]
    except OSError:
        return
    entries.sort(key=lambda p: (p.stat().st_mtime, p.name), reverse=True)
    for old in entries[keep:]:
        shutil.rmtree(old, ignore_errors=True)


def setup_logging(config_manager, level: Optional[str | int] = None, to_file: bool = True) -> Optional[Path]:
    """Configure root logger with a session-based file and console handler.

    Returns the created session directory Path, or None when to_file is False.

    - File: logs/session-YYYYmmdd_HHMMSS/hintmatch.log (keep last 3 sessions)
    - Console: stderr, INFO+ by default
    - Level: from parameter if provided, else DEFAULT.log_level in config, else INFO
    """
    cfg_level = getattr(config_manager, "get", lambda *_: None)("log_level")
    if isinstance(level, str):
        lvl = _level_from_str(level)
    elif isinstance(level, int):
        lvl = level
    else:
        lvl = _level_from_str(cfg_level)

    logger = logging.getLogger()
    logger.setLevel(lvl)

    # Clear existing handlers to avoid duplicates on re-run
    for h in logger.handlers[:]:
        logger.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    session_dir: Optional[Path] = None
    file_path: Optional[Path] = None
    if to_file:
        log_dir = get_log_dir(config_manager)
        session_dir = get_session_dir(config_manager)

        file_path = session_dir / "hintmatch.log"
        fh = logging.FileHandler(file_path, encoding="utf-8", delay=True)
        fh.setLevel(lvl)
        fh.setFormatter(fmt)
        logger.addHandler(fh)
        prune_old_sessions(log_dir, keep=3)

    ch = logging.StreamHandler()
    ch.setLevel(logging.INFO if lvl < logging.INFO else lvl)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    # Quiet down noisy libraries unless in DEBUG
    if lvl > logging.DEBUG:
        logging.getLogger("cv2").setLevel(logging.WARNING)

    logger.debug("Logging initialized: level=%s, file=%s", logging.getLevelName(lvl), str(file_path))
    return session_dir
