"""
Result types for hint image matching.

MatchErrorCode is a closed set of failure kinds; callers branch on the code
(never on the message text) and use is_permanent / is_size_related to decide
whether retrying with a fresh screenshot makes sense.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class MatchErrorCode(str, Enum):
    SCREENSHOT_DECODE_ERROR = "screenshot_decode_error"
    TEMPLATE_BASE64_DECODE_ERROR = "template_base64_decode_error"
    TEMPLATE_IMAGE_DECODE_ERROR = "template_image_decode_error"
    INSUFFICIENT_OPACITY = "insufficient_opacity"
    NON_FINITE_CONFIDENCE = "non_finite_confidence"
    TEMPLATE_TOO_LARGE = "template_too_large"

    @property
    def is_permanent(self) -> bool:
        """True when a different screenshot cannot fix the failure."""
        return self not in (MatchErrorCode.SCREENSHOT_DECODE_ERROR, MatchErrorCode.TEMPLATE_TOO_LARGE)

    @property
    def is_size_related(self) -> bool:
        """True when the failure may resolve once screen content changes size."""
        return self is MatchErrorCode.TEMPLATE_TOO_LARGE


@dataclass(frozen=True)
class MatchResult:
    found: bool
    center_x: Optional[int] = None
    center_y: Optional[int] = None
    confidence: Optional[float] = None
    template_width: int = 0
    template_height: int = 0
    error: Optional[str] = None
    error_code: Optional[MatchErrorCode] = None

    @property
    def center(self) -> Optional[Tuple[int, int]]:
        if self.center_x is None or self.center_y is None:
            return None
        return (self.center_x, self.center_y)

    @classmethod
    def failure(
        cls,
        code: MatchErrorCode,
        message: str,
        size: Tuple[int, int] = (0, 0),
        confidence: Optional[float] = None,
    ) -> "MatchResult":
        """Build a not-found result carrying an error code."""
        return cls(
            found=False,
            confidence=confidence,
            template_width=int(size[0]),
            template_height=int(size[1]),
            error=message,
            error_code=code,
        )

    def to_dict(self) -> Dict[str, Any]:
        """camelCase wire shape used by the calling layer."""
        return {
            "found": self.found,
            "centerX": self.center_x,
            "centerY": self.center_y,
            "confidence": self.confidence,
            "templateWidth": self.template_width,
            "templateHeight": self.template_height,
            "error": self.error,
            "errorCode": self.error_code.value if self.error_code is not None else None,
        }


@dataclass(frozen=True)
class HintImageMatchResult:
    index: int
    file_name: str
    match_result: MatchResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "fileName": self.file_name,
            "matchResult": self.match_result.to_dict(),
        }
