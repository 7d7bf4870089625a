"""
FastAPI application entry point for the Dynamic Shot service.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .config import get_settings
from .api.routes import router
from .browser import create_session_factory
from .render import PageProfile, RenderPipeline, RenderQueue


settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)


def build_render_queue() -> RenderQueue:
    """Wire session factory, page profile and pipeline from settings."""
    pipeline = RenderPipeline(
        session_factory=create_session_factory(settings),
        profile=PageProfile.from_settings(settings),
    )
    return RenderQueue(
        pipeline,
        max_size=settings.queue_max_size,
        job_timeout=settings.queue_job_timeout,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: start / stop the render queue."""
    logger = logging.getLogger(__name__)
    logger.info("Dynamic Shot starting up (browser_mode=%s) ...", settings.browser_mode)
    render_queue = build_render_queue()
    render_queue.start()
    app.state.render_queue = render_queue
    yield
    logger.info("Dynamic Shot shutting down ...")
    await render_queue.stop()


app = FastAPI(
    title="Dynamic Shot",
    description="Renders social-media posts in a browser and returns "
                "a PNG screenshot cropped to the post card.",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router, prefix="/api/v1")


if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=False,
    )
