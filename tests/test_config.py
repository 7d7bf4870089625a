"""
Tests for settings parsing, page profile wiring and backend selection.

Usage:
    pytest tests/test_config.py -v
"""

import pytest

from app.browser import LocalSessionFactory, RemoteSessionFactory, create_session_factory
from app.config import Settings
from app.render.pipeline import PageProfile


def test_defaults_match_service_contract():
    s = Settings()
    assert s.app_port == 3000
    assert s.viewport_width == 1024 and s.viewport_height == 768
    assert s.selenium_ready_poll_interval == 1.0
    assert s.render_structural_timeout_ms == 5000
    assert s.render_secondary_timeout_ms == 2000
    assert s.selenium_status_url == "http://selenium:4444/status"
    assert s.selenium_hub_url == "http://selenium:4444/wd/hub"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("BROWSER_MODE", "local")
    monkeypatch.setenv("SELENIUM_URL", "http://grid:4444/")
    monkeypatch.setenv("RENDER_HIDDEN_SELECTORS", '[".comment", ".share"]')
    monkeypatch.setenv("QUEUE_MAX_SIZE", "5")

    s = Settings()
    assert s.browser_mode == "local"
    assert s.selenium_hub_url == "http://grid:4444/wd/hub"
    assert s.render_hidden_selectors == [".comment", ".share"]
    assert s.queue_max_size == 5


def test_page_profile_from_settings():
    s = Settings(render_hidden_selectors=[".a", ".b"], render_page_scale=2.0)
    profile = PageProfile.from_settings(s)

    assert profile.url_template == s.render_url_template
    assert profile.hidden_selectors == (".a", ".b")
    assert profile.cleanup_options()["hiddenSelectors"] == [".a", ".b"]
    assert profile.cleanup_options()["pageScale"] == 2.0
    assert profile.structural_timeout_ms == 5000


@pytest.mark.parametrize(
    "mode, expected",
    [("remote", RemoteSessionFactory), ("local", LocalSessionFactory), ("REMOTE", RemoteSessionFactory)],
)
def test_create_session_factory_by_mode(mode, expected):
    assert isinstance(create_session_factory(Settings(browser_mode=mode)), expected)


def test_unknown_mode_or_engine_is_rejected():
    with pytest.raises(ValueError):
        create_session_factory(Settings(browser_mode="cluster"))
    with pytest.raises(ValueError):
        create_session_factory(Settings(browser_engine="netscape"))
