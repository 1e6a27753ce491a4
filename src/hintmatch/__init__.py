"""hintmatch: locate hint images inside screenshots by normalized cross-correlation."""

__version__ = "0.1.0"
