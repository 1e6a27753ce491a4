"""IO subpackage for platform integrations.

- capture: mss-based one-shot monitor capture for the CLI
"""
from .capture import grab_monitor_bgr, capture_resized

__all__ = ["grab_monitor_bgr", "capture_resized"]
