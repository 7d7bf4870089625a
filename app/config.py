"""
Centralized configuration management

All configuration values are read from environment variables,
with sensible defaults for development.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # --- FastAPI ---
    app_host: str = "0.0.0.0"
    app_port: int = 3000
    log_level: str = "info"

    # --- Browser ---
    browser_mode: str = "remote"  # remote | local
    browser_engine: str = "firefox"  # firefox | chromium
    viewport_width: int = 1024
    viewport_height: int = 768

    # --- Remote automation backend (Selenium) ---
    selenium_url: str = "http://selenium:4444"
    selenium_status_path: str = "/status"
    selenium_hub_path: str = "/wd/hub"
    selenium_ready_poll_interval: float = 1.0
    selenium_status_timeout: float = 5.0

    # --- Page profile ---
    # Templates are formatted with dynamic_id; the identifier is not escaped.
    render_url_template: str = "https://t.bilibili.com/{dynamic_id}?tab=3"
    render_card_selector: str = '.card[data-did="{dynamic_id}"]'
    render_avatar_selector: str = "#dynamicId_{dynamic_id}"
    render_card_image_selector: str = "img"
    render_gallery_selector: str = ".imagesbox"
    render_gallery_image_selector: str = ".imagesbox img"
    render_gallery_single_selector: str = ".imagesbox .one-img"
    render_gallery_viewer_selector: str = ".imagesbox .boost-img.loaded"
    # JSON arrays when given via the environment
    render_hidden_selectors: list[str] = [
        ".panel-area",
        ".button-area",
        ".share-popup",
        ".van-popover.van-popper",
        ".unlogin-popover",
    ]
    render_background_selectors: list[str] = [".watermark", ".card .bg-mask"]
    render_active_selector: str = ".button-bar .active"
    render_active_class: str = "active"
    render_overlay_selector: str = ".card .more-panel"
    render_overlay_position: str = "static"
    render_page_scale: float = 1.5

    # --- Render timeouts ---
    render_navigation_timeout_ms: int = 30000
    render_structural_timeout_ms: int = 5000
    render_secondary_timeout_ms: int = 2000
    render_image_load_timeout_ms: int = 15000

    # --- Render queue ---
    queue_max_size: int = 32
    queue_job_timeout: float = 60.0  # seconds; covers acquisition too

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def selenium_status_url(self) -> str:
        return self.selenium_url.rstrip("/") + self.selenium_status_path

    @property
    def selenium_hub_url(self) -> str:
        return self.selenium_url.rstrip("/") + self.selenium_hub_path


@lru_cache()
def get_settings() -> Settings:
    """Return cached Settings instance (singleton)."""
    return Settings()
