"""
Pydantic schemas for API request / response models.
"""

import base64
from typing import Optional

from pydantic import BaseModel, Field

from ..render.result import ErrorCode, RenderResult


# ---------------------------------------------------------------------------
# Screenshot schemas
# ---------------------------------------------------------------------------

class ScreenshotRequest(BaseModel):
    """Render one dynamic (post) by its identifier."""
    dynamic_id: str = Field(..., description="Identifier of the post to render", min_length=1)


class ScreenshotResponse(BaseModel):
    """Result of one render job."""
    status: str = Field(..., description="'success' or 'error'")
    dynamic_id: str
    png_image: str = Field(default="", description="Base64-encoded PNG of the post card; empty on failure")
    error_code: Optional[ErrorCode] = Field(default=None, description="Failure classification when status='error'")
    error: Optional[str] = Field(default=None, description="Error message when status='error'")
    retryable: bool = Field(default=False, description="Whether retrying the same identifier may succeed")

    @classmethod
    def from_result(cls, dynamic_id: str, result: RenderResult) -> "ScreenshotResponse":
        return cls(
            status=result.status,
            dynamic_id=dynamic_id,
            png_image=base64.b64encode(result.png_image).decode("ascii"),
            error_code=result.error_code,
            error=result.error,
            retryable=result.retryable,
        )


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

class HealthResponse(BaseModel):
    """Health check response."""
    status: str = "ok"
    service: str = "dynamic-shot"
    browser_mode: str
    queue_depth: int
