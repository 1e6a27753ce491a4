"""Controllers: thin orchestration between callers and the pure vision package."""
from .matching import match_hint_images

__all__ = ["match_hint_images"]
