"""
Local browser sessions driven through Playwright.

Used when BROWSER_MODE=local: the browser runs inside this process's
container instead of on a shared Selenium server, so there is no readiness
handshake. Each session owns its own Playwright driver and browser.
"""

import base64
import logging
from typing import Any, Callable

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..config import Settings
from .session import (
    BrowserSession,
    CaptureError,
    ElementTimeoutError,
    NavigationError,
    ScriptError,
    SessionError,
)

logger = logging.getLogger(__name__)

# Docker-friendly Chromium flags
_CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

_ENGINES = {"firefox": "firefox", "chromium": "chromium", "chrome": "chromium"}


class LocalSession(BrowserSession):
    """BrowserSession backed by a Playwright page."""

    def __init__(self, playwright: Any, browser: Any, page: Any):
        super().__init__()
        self._playwright = playwright
        self._browser = browser
        self._page = page

    async def navigate(self, url: str, timeout_ms: int) -> None:
        try:
            await self._page.goto(url, wait_until="load", timeout=timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"{url}: {e.message}") from e

    async def wait_for_element(self, selector: str, timeout_ms: int, within: Any = None) -> Any:
        scope = within if within is not None else self._page
        try:
            return await scope.wait_for_selector(selector, state="attached", timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise ElementTimeoutError(f"{selector!r} not found within {timeout_ms}ms") from e
        except PlaywrightError as e:
            raise SessionError(e.message) from e

    async def find_element(self, selector: str, within: Any = None) -> Any | None:
        scope = within if within is not None else self._page
        try:
            return await scope.query_selector(selector)
        except PlaywrightError as e:
            raise SessionError(e.message) from e

    async def click(self, element: Any) -> None:
        try:
            await element.click()
        except PlaywrightError as e:
            raise SessionError(e.message) from e

    async def execute_script(self, script: str, *args: Any) -> Any:
        try:
            return await self._page.evaluate(f"(args) => ({script})(...args)", list(args))
        except PlaywrightError as e:
            raise ScriptError(e.message) from e

    async def execute_async_script(self, script: str, *args: Any, timeout_ms: int) -> Any:
        # page.evaluate awaits a returned Promise; the caller bounds the wait.
        return await self.execute_script(script, *args)

    async def screenshot_element(self, element: Any) -> str:
        try:
            png = await element.screenshot(type="png")
        except PlaywrightError as e:
            raise CaptureError(e.message) from e
        return base64.b64encode(png).decode("ascii")

    async def _close(self) -> None:
        try:
            await self._browser.close()
        finally:
            await self._playwright.stop()


class LocalSessionFactory:
    """Launch a fresh local browser for every session."""

    def __init__(self, settings: Settings, playwright_factory: Callable[[], Any] = async_playwright):
        self._settings = settings
        self._playwright_factory = playwright_factory

    async def acquire(self) -> LocalSession:
        s = self._settings
        engine = _ENGINES[s.browser_engine.lower()]

        try:
            playwright = await self._playwright_factory().start()
        except PlaywrightError as e:
            raise SessionError(f"playwright driver failed to start: {e.message}") from e
        try:
            launcher = getattr(playwright, engine)
            browser = await launcher.launch(
                headless=True,
                args=_CHROMIUM_ARGS if engine == "chromium" else None,
            )
            page = await browser.new_page(
                viewport={"width": s.viewport_width, "height": s.viewport_height},
            )
        except PlaywrightError as e:
            await playwright.stop()
            raise SessionError(f"{engine} launch failed: {e.message}") from e
        except BaseException:
            await playwright.stop()
            raise

        logger.info(
            "[session] Local %s session ready (%dx%d)",
            engine, s.viewport_width, s.viewport_height,
        )
        return LocalSession(playwright, browser, page)
