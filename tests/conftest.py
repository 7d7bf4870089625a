"""
Shared fakes for pipeline / queue / route tests.

FakeSession records every call it receives and can be told to fail at a
given pipeline step; FakeSessionFactory records acquire/release events so
tests can check that sessions never overlap.
"""

import asyncio
from dataclasses import dataclass

import pytest

from app.browser.session import (
    BrowserSession,
    CaptureError,
    ElementTimeoutError,
    NavigationError,
    ScriptError,
)
from app.render.pipeline import PageProfile

PNG_B64 = "iVBORw0KGgo="
PNG_BYTES = b"\x89PNG\r\n\x1a\n"


@dataclass(frozen=True)
class FakeElement:
    selector: str


class FakeSession(BrowserSession):

    def __init__(
        self,
        factory: "FakeSessionFactory",
        index: int,
        fail_at: str | None = None,
        present: tuple[str, ...] = (),
        screenshot: str = PNG_B64,
        image_wait: float = 0.0,
        navigate_delay: float = 0.0,
    ):
        super().__init__()
        self.factory = factory
        self.index = index
        self.fail_at = fail_at
        self.present = set(present)
        self.screenshot = screenshot
        self.image_wait = image_wait
        self.navigate_delay = navigate_delay
        self.calls: list[tuple] = []
        self.close_calls = 0

    async def navigate(self, url, timeout_ms):
        self.calls.append(("navigate", url))
        if self.navigate_delay:
            await asyncio.sleep(self.navigate_delay)
        if self.fail_at == "navigate":
            raise NavigationError(f"{url}: net::ERR_NAME_NOT_RESOLVED")

    async def wait_for_element(self, selector, timeout_ms, within=None):
        self.calls.append(("wait", selector, timeout_ms))
        if self.fail_at == "wait_card" and selector.startswith(".card"):
            raise ElementTimeoutError(f"{selector!r} not found within {timeout_ms}ms")
        if self.fail_at == "wait_avatar" and selector.startswith("#dynamicId_"):
            raise ElementTimeoutError(f"{selector!r} not found within {timeout_ms}ms")
        if self.fail_at == "gallery" and within is not None:
            raise ElementTimeoutError(f"{selector!r} not found within {timeout_ms}ms")
        return FakeElement(selector)

    async def find_element(self, selector, within=None):
        self.calls.append(("find", selector))
        return FakeElement(selector) if selector in self.present else None

    async def click(self, element):
        self.calls.append(("click", element.selector))

    async def execute_script(self, script, *args):
        self.calls.append(("script", args))
        if self.fail_at == "cleanup":
            raise ScriptError("TypeError: card.querySelector(...) is null")
        return len(args)

    async def execute_async_script(self, script, *args, timeout_ms):
        self.calls.append(("async_script", args, timeout_ms))
        if self.image_wait:
            await asyncio.sleep(self.image_wait)
        if self.fail_at == "wait_images":
            raise ScriptError("async script failed: boom")
        return 3

    async def screenshot_element(self, element):
        self.calls.append(("screenshot", element.selector))
        if self.fail_at == "capture":
            raise CaptureError("element not visible")
        return self.screenshot

    async def _close(self):
        self.close_calls += 1
        self.factory.events.append(("release", self.index))

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


class FakeSessionFactory:

    def __init__(self, **session_kwargs):
        self.session_kwargs = session_kwargs
        self.sessions: list[FakeSession] = []
        self.events: list[tuple[str, int]] = []

    async def acquire(self) -> FakeSession:
        session = FakeSession(self, len(self.sessions), **self.session_kwargs)
        self.sessions.append(session)
        self.events.append(("acquire", session.index))
        return session


@pytest.fixture
def profile() -> PageProfile:
    return PageProfile(
        url_template="https://t.example.com/{dynamic_id}?tab=3",
        card_selector='.card[data-did="{dynamic_id}"]',
        avatar_selector="#dynamicId_{dynamic_id}",
        card_image_selector="img",
        gallery_selector=".imagesbox",
        gallery_image_selector=".imagesbox img",
        gallery_single_selector=".imagesbox .one-img",
        gallery_viewer_selector=".imagesbox .boost-img.loaded",
        hidden_selectors=(".panel-area", ".button-area"),
        background_selectors=(".watermark",),
        active_selector=".button-bar .active",
        overlay_selector=".more-panel",
        page_scale=1.5,
        image_load_timeout_ms=500,
    )


@pytest.fixture
def make_factory():
    def _make(**session_kwargs) -> FakeSessionFactory:
        return FakeSessionFactory(**session_kwargs)
    return _make
