"""
Browser session interface shared by the remote (Selenium) and local
(Playwright) backends.

Scripts handed to a session are JavaScript function expressions, e.g.
``(card, options) => { ... }``. A script may return a Promise; each backend
adapts the expression to its own calling convention.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class SessionError(Exception):
    """Base class for failures reported by a browser session."""


class NavigationError(SessionError):
    """The page could not be loaded."""


class ElementTimeoutError(SessionError):
    """An element did not appear within its wait timeout."""


class ScriptError(SessionError):
    """An in-page script raised, or its completion callback never fired."""


class CaptureError(SessionError):
    """The element screenshot could not be taken or decoded."""


class BrowserSession(ABC):
    """
    Handle to one live browser instance.

    Element handles returned by the wait/find methods are backend specific
    and only meaningful to the session that produced them.
    """

    def __init__(self) -> None:
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def navigate(self, url: str, timeout_ms: int) -> None:
        ...

    @abstractmethod
    async def wait_for_element(self, selector: str, timeout_ms: int, within: Any = None) -> Any:
        """Wait until ``selector`` matches inside ``within`` (or the document); return the element."""

    @abstractmethod
    async def find_element(self, selector: str, within: Any = None) -> Any | None:
        """Return the first match without waiting, or None."""

    @abstractmethod
    async def click(self, element: Any) -> None:
        ...

    @abstractmethod
    async def execute_script(self, script: str, *args: Any) -> Any:
        ...

    @abstractmethod
    async def execute_async_script(self, script: str, *args: Any, timeout_ms: int) -> Any:
        """Run a Promise-returning script and wait for it to settle."""

    @abstractmethod
    async def screenshot_element(self, element: Any) -> str:
        """Return a base64-encoded PNG of ``element``."""

    async def close(self) -> None:
        """Release the browser. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._close()

    @abstractmethod
    async def _close(self) -> None:
        ...


class SessionFactory(Protocol):
    async def acquire(self) -> BrowserSession:
        ...
