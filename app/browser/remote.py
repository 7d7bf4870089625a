"""
Remote browser sessions on a Selenium WebDriver server.

Acquisition waits for the server's /status endpoint to report ready,
creates a session with the configured engine and pins the window to the
configured viewport. Backend failures during acquisition are logged and
retried at a fixed interval; the caller only ever gets a live session.

Selenium's client is blocking, so every call is offloaded to the
thread pool via run_in_threadpool.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx
import urllib3
from selenium import webdriver
from selenium.common.exceptions import JavascriptException, TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.by import By
from selenium.webdriver.firefox.options import Options as FirefoxOptions
from selenium.webdriver.support.ui import WebDriverWait
from starlette.concurrency import run_in_threadpool

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

_ENGINE_OPTIONS = {
    "firefox": FirefoxOptions,
    "chromium": ChromeOptions,
    "chrome": ChromeOptions,
}

# WebDriver passes script arguments through `arguments`; async scripts get a
# trailing completion callback. Promise rejections are reported through the
# same callback so they surface as ScriptError instead of a script timeout.
_SYNC_WRAPPER = "return (__SCRIPT__).apply(null, arguments);"
_ASYNC_WRAPPER = (
    "var done = arguments[arguments.length - 1];"
    "var args = Array.prototype.slice.call(arguments, 0, -1);"
    "Promise.resolve().then(function () { return (__SCRIPT__).apply(null, args); }).then("
    "function (value) { done({ok: true, value: value === undefined ? null : value}); },"
    "function (err) { done({ok: false, error: String(err)}); });"
)


def build_remote_driver(hub_url: str, engine: str) -> webdriver.Remote:
    """Create a WebDriver session on the hub for the given browser engine."""
    try:
        options = _ENGINE_OPTIONS[engine.lower()]()
    except KeyError:
        raise ValueError(f"Unsupported browser engine: {engine}") from None
    return webdriver.Remote(command_executor=hub_url, options=options)


class RemoteSession(BrowserSession):
    """BrowserSession backed by a selenium.webdriver.Remote driver."""

    def __init__(self, driver: Any):
        super().__init__()
        self._driver = driver

    async def navigate(self, url: str, timeout_ms: int) -> None:
        await self._run(self._navigate, url, timeout_ms)

    async def wait_for_element(self, selector: str, timeout_ms: int, within: Any = None) -> Any:
        return await self._run(self._wait_for_element, selector, timeout_ms, within)

    async def find_element(self, selector: str, within: Any = None) -> Any | None:
        scope = within if within is not None else self._driver
        elements = await self._run(scope.find_elements, By.CSS_SELECTOR, selector)
        return elements[0] if elements else None

    async def click(self, element: Any) -> None:
        await self._run(element.click)

    async def execute_script(self, script: str, *args: Any) -> Any:
        return await self._run(self._execute_script, script, args)

    async def execute_async_script(self, script: str, *args: Any, timeout_ms: int) -> Any:
        return await self._run(self._execute_async_script, script, args, timeout_ms)

    async def screenshot_element(self, element: Any) -> str:
        return await self._run(self._screenshot_element, element)

    async def _close(self) -> None:
        await self._run(self._driver.quit)

    # ------------------------------------------------------------------
    # Blocking helpers (run in the thread pool)
    # ------------------------------------------------------------------

    async def _run(self, func: Callable[..., Any], *args: Any) -> Any:
        try:
            return await run_in_threadpool(func, *args)
        except SessionError:
            raise
        except WebDriverException as e:
            raise SessionError(e.msg or type(e).__name__) from e
        except (urllib3.exceptions.HTTPError, OSError) as e:
            # the WebDriver server dropped or refused the connection
            raise SessionError(str(e) or type(e).__name__) from e

    def _navigate(self, url: str, timeout_ms: int) -> None:
        self._driver.set_page_load_timeout(timeout_ms / 1000)
        try:
            self._driver.get(url)
        except WebDriverException as e:
            raise NavigationError(f"{url}: {e.msg or type(e).__name__}") from e

    def _wait_for_element(self, selector: str, timeout_ms: int, within: Any) -> Any:
        scope = within if within is not None else self._driver
        try:
            return WebDriverWait(self._driver, timeout_ms / 1000).until(
                lambda _: scope.find_element(By.CSS_SELECTOR, selector)
            )
        except TimeoutException as e:
            raise ElementTimeoutError(f"{selector!r} not found within {timeout_ms}ms") from e

    def _execute_script(self, script: str, args: tuple) -> Any:
        try:
            return self._driver.execute_script(_SYNC_WRAPPER.replace("__SCRIPT__", script), *args)
        except JavascriptException as e:
            raise ScriptError(e.msg or "script error") from e

    def _execute_async_script(self, script: str, args: tuple, timeout_ms: int) -> Any:
        self._driver.set_script_timeout(timeout_ms / 1000)
        try:
            outcome = self._driver.execute_async_script(_ASYNC_WRAPPER.replace("__SCRIPT__", script), *args)
        except TimeoutException as e:
            raise ScriptError(f"async script did not complete within {timeout_ms}ms") from e
        except JavascriptException as e:
            raise ScriptError(e.msg or "script error") from e
        if not isinstance(outcome, dict) or not outcome.get("ok"):
            error = outcome.get("error") if isinstance(outcome, dict) else outcome
            raise ScriptError(f"async script failed: {error}")
        return outcome.get("value")

    def _screenshot_element(self, element: Any) -> str:
        try:
            return element.screenshot_as_base64
        except WebDriverException as e:
            raise CaptureError(e.msg or type(e).__name__) from e


class RemoteSessionFactory:
    """
    Acquire RemoteSessions from a Selenium server.

    ``driver_factory``, ``sleep`` and ``transport`` exist so tests can run the
    readiness handshake against fakes.
    """

    def __init__(
        self,
        settings: Settings,
        driver_factory: Callable[[str, str], Any] = build_remote_driver,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._driver_factory = driver_factory
        self._sleep = sleep
        self._transport = transport

    async def acquire(self) -> RemoteSession:
        s = self._settings
        interval = s.selenium_ready_poll_interval
        while True:
            await self.wait_until_ready()

            driver = None
            try:
                driver = await run_in_threadpool(self._driver_factory, s.selenium_hub_url, s.browser_engine)
                await run_in_threadpool(
                    driver.set_window_rect,
                    x=0, y=0, width=s.viewport_width, height=s.viewport_height,
                )
            except Exception as e:
                logger.warning("[session] Session creation failed: %s, retry in %.1fs", e, interval)
                if driver is not None:
                    await run_in_threadpool(_quit_quietly, driver)
                await self._sleep(interval)
                continue

            logger.info(
                "[session] Remote %s session ready (%dx%d)",
                s.browser_engine, s.viewport_width, s.viewport_height,
            )
            return RemoteSession(driver)

    async def wait_until_ready(self) -> int:
        """Poll the status endpoint until it reports ready. Returns the number of polls."""
        s = self._settings
        polls = 0
        async with httpx.AsyncClient(
            trust_env=False,
            timeout=httpx.Timeout(s.selenium_status_timeout),
            transport=self._transport,
        ) as client:
            while True:
                polls += 1
                ready, reason = await self._poll_status(client)
                if ready:
                    logger.info("[session] Automation backend ready after %d poll(s)", polls)
                    return polls
                logger.warning(
                    "[session] Automation backend not ready (%s), retry in %.1fs",
                    reason, s.selenium_ready_poll_interval,
                )
                await self._sleep(s.selenium_ready_poll_interval)

    async def _poll_status(self, client: httpx.AsyncClient) -> tuple[bool, str]:
        try:
            response = await client.get(self._settings.selenium_status_url)
        except httpx.HTTPError as e:
            return False, f"connect failed: {e}"
        if not response.is_success:
            return False, f"HTTP {response.status_code}"

        try:
            payload = response.json()
        except ValueError:
            return False, "malformed status payload"
        value = payload.get("value") if isinstance(payload, dict) else None
        if not isinstance(value, dict):
            return False, "malformed status payload"

        message = value.get("message") or ""
        if not value.get("ready", False):
            return False, message or "not ready"
        return True, message


def _quit_quietly(driver: Any) -> None:
    try:
        driver.quit()
    except Exception as e:
        logger.debug("[session] Discarding half-built session failed: %s", e)
