"""
Render outcome returned by the pipeline and the queue.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(str, Enum):
    CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"  # card never appeared; content likely deleted
    NAVIGATION_FAILED = "NAVIGATION_FAILED"
    WAIT_TIMEOUT = "WAIT_TIMEOUT"
    SCRIPT_FAILED = "SCRIPT_FAILED"
    CAPTURE_FAILED = "CAPTURE_FAILED"
    BROWSER_ERROR = "BROWSER_ERROR"
    JOB_TIMEOUT = "JOB_TIMEOUT"
    INTERNAL_ERROR = "INTERNAL_ERROR"


_PERMANENT = {ErrorCode.CONTENT_NOT_FOUND}


@dataclass(frozen=True)
class RenderResult:
    """PNG bytes on success; an error code and message on failure."""
    png_image: bytes = b""
    error_code: ErrorCode | None = None
    error: str | None = None
    retryable: bool = False

    @property
    def ok(self) -> bool:
        return self.error_code is None

    @property
    def status(self) -> str:
        return "success" if self.ok else "error"

    @classmethod
    def success(cls, png_image: bytes) -> "RenderResult":
        return cls(png_image=png_image)

    @classmethod
    def failure(cls, error_code: ErrorCode, error: str) -> "RenderResult":
        return cls(error_code=error_code, error=error, retryable=error_code not in _PERMANENT)
