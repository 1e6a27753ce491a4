"""core.config
Configuration core: load/save helpers for config.ini.

A tiny ConfigManager reads and persists the matching tunables. API:
ConfigManager.load(), get(key, fallback), save(), and match_config() which
turns the stored values into the MatchConfig the engine expects.
"""

import logging
import os
from configparser import ConfigParser
from pathlib import Path
from typing import Optional

from ..config.vision import (
    DEFAULT_CONFIDENCE_THRESHOLD,
    MIN_OPACITY_RATIO,
    MAX_LONG_EDGE,
    MAX_TOTAL_PIXELS,
    MAX_WORKERS,
    MatchConfig,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """Simple configuration manager backed by an INI file.

    Behaviour:
    - Uses a single DEFAULT section for lookups.
    - Fills in defaults in memory; the file is only written by save().
    - Defaults to a per-user config path (%APPDATA% on Windows,
      XDG_CONFIG_HOME or ~/.config on other systems) unless an explicit
      path is provided.
    """

    def __init__(self, config_path: Optional[str] = None) -> None:
        if config_path:
            self.config_path = Path(config_path)
        else:
            if os.name == "nt":
                base = Path(os.getenv("APPDATA", Path.home() / "AppData" / "Roaming"))
                self.config_path = base.joinpath("Hintmatch", "config.ini")
            else:
                base = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
                self.config_path = base.joinpath("hintmatch", "config.ini")

        self.config = ConfigParser()
        self.load()

    def load(self) -> None:
        """Load configuration from disk and fill in missing defaults."""
        if self.config_path.exists():
            self.config.read(self.config_path, encoding="utf-8")

        defaults = {
            "log_level": "INFO",
            "confidence_threshold": str(DEFAULT_CONFIDENCE_THRESHOLD),
            "min_opacity_ratio": str(MIN_OPACITY_RATIO),
            "max_long_edge": str(MAX_LONG_EDGE),
            "max_total_pixels": str(MAX_TOTAL_PIXELS),
            "max_workers": str(MAX_WORKERS),
        }
        for key, value in defaults.items():
            if key not in self.config["DEFAULT"]:
                self.config["DEFAULT"][key] = value

    def get(self, key: str, fallback=None):
        """Get a configuration value.

        Precedence is env > config.ini > fallback. Environment candidates are
        HM_<KEY> then <KEY>; empty strings are ignored.
        """
        for ek in (f"HM_{str(key).upper()}", str(key).upper()):
            val = os.environ.get(ek)
            if val is not None and str(val) != "":
                return val
        return self.config["DEFAULT"].get(key, fallback)

    def save(self) -> None:
        """Persist current configuration to disk (creates parent directories)."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with self.config_path.open("w", encoding="utf-8") as fh:
            self.config.write(fh)

    def match_config(self) -> MatchConfig:
        """Build a MatchConfig from the effective settings.

        Unparseable values fall back to the built-in defaults with a warning;
        out-of-range values raise ValueError from MatchConfig itself.
        """
        def _num(key: str, cast, default):
            raw = self.get(key, fallback=str(default))
            try:
                return cast(raw)
            except (TypeError, ValueError):
                logger.warning("config: invalid %s=%r, using default %s", key, raw, default)
                return default

        return MatchConfig(
            confidence_threshold=_num("confidence_threshold", float, DEFAULT_CONFIDENCE_THRESHOLD),
            min_opacity_ratio=_num("min_opacity_ratio", float, MIN_OPACITY_RATIO),
            max_long_edge=_num("max_long_edge", int, MAX_LONG_EDGE),
            max_total_pixels=_num("max_total_pixels", int, MAX_TOTAL_PIXELS),
            max_workers=_num("max_workers", int, MAX_WORKERS),
        )
