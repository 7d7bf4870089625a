"""
Render pipeline: identifier in, cropped card screenshot out.

Drives one browser session through a fixed sequence of steps:
- navigate to the post URL,
- wait for the card (and avatar) to be attached,
- expand a single-image gallery when present,
- wait until every image on the page has loaded,
- hide extraneous UI via an injected style block,
- capture the card element.

The session is acquired per call and always closed, whatever the outcome.
Step failures never propagate: they come back as a RenderResult carrying
an ErrorCode, and are logged with the identifier and step name.
"""

import asyncio
import base64
import binascii
import logging
import time
from dataclasses import dataclass

from ..browser.session import (
    BrowserSession,
    CaptureError,
    ElementTimeoutError,
    NavigationError,
    ScriptError,
    SessionError,
    SessionFactory,
)
from ..config import Settings
from .result import ErrorCode, RenderResult
from .scripts import CLEAN_UP_PAGE, WAIT_FOR_IMAGES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageProfile:
    """Site-specific selectors, templates and timeouts for one kind of page."""
    url_template: str
    card_selector: str
    avatar_selector: str = ""
    card_image_selector: str = "img"
    gallery_selector: str = ""
    gallery_image_selector: str = ""
    gallery_single_selector: str = ""
    gallery_viewer_selector: str = ""
    hidden_selectors: tuple[str, ...] = ()
    background_selectors: tuple[str, ...] = ()
    active_selector: str = ""
    active_class: str = "active"
    overlay_selector: str = ""
    overlay_position: str = "static"
    page_scale: float = 1.0
    navigation_timeout_ms: int = 30000
    structural_timeout_ms: int = 5000
    secondary_timeout_ms: int = 2000
    image_load_timeout_ms: int = 15000

    @classmethod
    def from_settings(cls, settings: Settings) -> "PageProfile":
        return cls(
            url_template=settings.render_url_template,
            card_selector=settings.render_card_selector,
            avatar_selector=settings.render_avatar_selector,
            card_image_selector=settings.render_card_image_selector,
            gallery_selector=settings.render_gallery_selector,
            gallery_image_selector=settings.render_gallery_image_selector,
            gallery_single_selector=settings.render_gallery_single_selector,
            gallery_viewer_selector=settings.render_gallery_viewer_selector,
            hidden_selectors=tuple(settings.render_hidden_selectors),
            background_selectors=tuple(settings.render_background_selectors),
            active_selector=settings.render_active_selector,
            active_class=settings.render_active_class,
            overlay_selector=settings.render_overlay_selector,
            overlay_position=settings.render_overlay_position,
            page_scale=settings.render_page_scale,
            navigation_timeout_ms=settings.render_navigation_timeout_ms,
            structural_timeout_ms=settings.render_structural_timeout_ms,
            secondary_timeout_ms=settings.render_secondary_timeout_ms,
            image_load_timeout_ms=settings.render_image_load_timeout_ms,
        )

    def cleanup_options(self) -> dict:
        """Arguments for the in-page cleanup script."""
        return {
            "hiddenSelectors": list(self.hidden_selectors),
            "backgroundSelectors": list(self.background_selectors),
            "activeSelector": self.active_selector,
            "activeClass": self.active_class,
            "overlaySelector": self.overlay_selector,
            "overlayPosition": self.overlay_position,
            "pageScale": self.page_scale,
        }


class RenderPipeline:
    """Render one post per call against a freshly acquired session."""

    def __init__(self, session_factory: SessionFactory, profile: PageProfile):
        self._session_factory = session_factory
        self._profile = profile

    async def render(self, dynamic_id: str) -> RenderResult:
        p = self._profile
        started = time.monotonic()
        session: BrowserSession | None = None
        step = "acquire"
        try:
            session = await self._session_factory.acquire()

            step = "navigate"
            await session.navigate(p.url_template.format(dynamic_id=dynamic_id), p.navigation_timeout_ms)

            step = "wait_card"
            card = await session.wait_for_element(
                p.card_selector.format(dynamic_id=dynamic_id), p.structural_timeout_ms,
            )

            if p.avatar_selector:
                step = "wait_avatar"
                await session.wait_for_element(
                    p.avatar_selector.format(dynamic_id=dynamic_id), p.secondary_timeout_ms,
                )

            step = "gallery"
            await self._expand_gallery(session, card)

            step = "wait_images"
            await self._wait_for_images(session, card)

            step = "cleanup"
            await session.execute_script(CLEAN_UP_PAGE, card, p.cleanup_options())

            step = "capture"
            png = _decode_png(await session.screenshot_element(card))
        except SessionError as e:
            code = _classify(step, e)
            logger.warning("[pipeline] %s failed at step=%s (%s): %s", dynamic_id, step, code.value, e)
            return RenderResult.failure(code, f"{step}: {e}")
        except Exception as e:
            logger.error("[pipeline] %s unexpected error at step=%s: %s", dynamic_id, step, e, exc_info=True)
            return RenderResult.failure(ErrorCode.INTERNAL_ERROR, f"{step}: {e}")
        finally:
            if session is not None:
                await self._release(session, dynamic_id)

        logger.info(
            "[pipeline] %s done: %d bytes in %.2fs",
            dynamic_id, len(png), time.monotonic() - started,
        )
        return RenderResult.success(png)

    async def _expand_gallery(self, session: BrowserSession, card) -> None:
        """Wait for gallery images and open a single-image gallery; no-op without a gallery."""
        p = self._profile
        if not p.gallery_selector or await session.find_element(p.gallery_selector, within=card) is None:
            return

        if p.gallery_image_selector:
            await session.wait_for_element(p.gallery_image_selector, p.secondary_timeout_ms, within=card)

        if not p.gallery_single_selector:
            return
        single = await session.find_element(p.gallery_single_selector, within=card)
        if single is None:
            return
        await session.click(single)
        if p.gallery_viewer_selector:
            await session.wait_for_element(p.gallery_viewer_selector, p.structural_timeout_ms, within=card)

    async def _wait_for_images(self, session: BrowserSession, card) -> None:
        timeout_ms = self._profile.image_load_timeout_ms
        try:
            await asyncio.wait_for(
                session.execute_async_script(
                    WAIT_FOR_IMAGES, card, self._profile.card_image_selector, timeout_ms=timeout_ms,
                ),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            raise ScriptError(f"images did not finish loading within {timeout_ms}ms") from None

    async def _release(self, session: BrowserSession, dynamic_id: str) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.warning("[pipeline] %s session close failed: %s", dynamic_id, e)


def _classify(step: str, error: SessionError) -> ErrorCode:
    if isinstance(error, ElementTimeoutError):
        return ErrorCode.CONTENT_NOT_FOUND if step == "wait_card" else ErrorCode.WAIT_TIMEOUT
    if isinstance(error, NavigationError):
        return ErrorCode.NAVIGATION_FAILED
    if isinstance(error, ScriptError):
        return ErrorCode.SCRIPT_FAILED
    if isinstance(error, CaptureError):
        return ErrorCode.CAPTURE_FAILED
    return ErrorCode.BROWSER_ERROR


def _decode_png(encoded: str) -> bytes:
    try:
        png = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError, TypeError) as e:
        raise CaptureError(f"screenshot is not valid base64: {e}") from e
    if not png:
        raise CaptureError("screenshot is empty")
    return png
