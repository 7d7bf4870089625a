"""
Browser sessions: remote Selenium server or local Playwright browser.
"""

from ..config import Settings
from .local import LocalSessionFactory
from .remote import RemoteSessionFactory
from .session import (
    BrowserSession,
    CaptureError,
    ElementTimeoutError,
    NavigationError,
    ScriptError,
    SessionError,
    SessionFactory,
)

_SUPPORTED_ENGINES = ("firefox", "chromium", "chrome")


def create_session_factory(settings: Settings) -> SessionFactory:
    """Pick the session backend for the configured deployment mode."""
    if settings.browser_engine.lower() not in _SUPPORTED_ENGINES:
        raise ValueError(f"Unsupported browser engine: {settings.browser_engine}")

    mode = settings.browser_mode.lower()
    if mode == "remote":
        return RemoteSessionFactory(settings)
    if mode == "local":
        return LocalSessionFactory(settings)
    raise ValueError(f"Unknown browser mode: {settings.browser_mode} (expected 'remote' or 'local')")


__all__ = [
    "BrowserSession",
    "CaptureError",
    "ElementTimeoutError",
    "LocalSessionFactory",
    "NavigationError",
    "RemoteSessionFactory",
    "ScriptError",
    "SessionError",
    "SessionFactory",
    "create_session_factory",
]
