"""
FastAPI route definitions for the screenshot service.

- POST /screenshots/dynamic: render one post card, return the PNG (base64)
- GET  /health:              liveness plus current queue depth

Concurrency:
- Every render goes through the single RenderQueue held on app.state, so at
  most one browser session exists at a time.
- HTTP 503 is returned when the queue is full; the request is not retried.
- Render failures are not HTTP errors: the response carries status='error'
  plus an error_code and a retryable flag.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from .schemas import HealthResponse, ScreenshotRequest, ScreenshotResponse
from ..config import get_settings
from ..render.queue import QueueFullError, RenderQueue

logger = logging.getLogger(__name__)

router = APIRouter()


def get_render_queue(request: Request) -> RenderQueue:
    """Return the RenderQueue started by the application lifespan."""
    render_queue = getattr(request.app.state, "render_queue", None)
    if render_queue is None:
        raise HTTPException(status_code=503, detail="Render queue is not running")
    return render_queue


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health_check(render_queue: RenderQueue = Depends(get_render_queue)):
    """Service health check endpoint."""
    return HealthResponse(
        browser_mode=get_settings().browser_mode,
        queue_depth=render_queue.depth,
    )


# ---------------------------------------------------------------------------
# Screenshots
# ---------------------------------------------------------------------------

@router.post(
    "/screenshots/dynamic",
    response_model=ScreenshotResponse,
    tags=["screenshot"],
)
async def take_dynamic_screenshot(
    request: ScreenshotRequest,
    render_queue: RenderQueue = Depends(get_render_queue),
):
    """
    Render the post identified by dynamic_id and return the card screenshot.

    - Requests are served strictly one at a time, in arrival order.
    - status='error' responses still return HTTP 200; check error_code and
      retryable (CONTENT_NOT_FOUND is permanent, everything else transient).
    - HTTP 503 is returned if too many renders are already pending.
    """
    try:
        result = await render_queue.submit(request.dynamic_id)
    except QueueFullError as e:
        raise HTTPException(status_code=503, detail=f"{e}. Please retry later.")

    if not result.ok:
        logger.info(
            "Screenshot for %s failed: %s (%s)",
            request.dynamic_id, result.error_code.value, result.error,
        )
    return ScreenshotResponse.from_result(request.dynamic_id, result)
