"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = ""  # Empty means current working directory

    # ==========================================================================
    # Browser Launch Settings
    # ==========================================================================
    browser_headless: bool = True
    browser_executable_path: str = ""  # Optional override, falls back to Playwright's bundled Chromium
    browser_args: list[str] = [
        "--no-sandbox",
        "--disable-setuid-sandbox",
        "--disable-dev-shm-usage",
        "--disable-accelerated-2d-canvas",
        "--no-zygote",
        "--disable-gpu",
        "--disable-blink-features=AutomationControlled",
    ]
    browser_locale: str = "es-ES"
    disable_cache: bool = True
    block_resources: bool = False  # Abort image/media/font requests

    # ==========================================================================
    # Navigation Settings (milliseconds)
    # ==========================================================================
    navigation_timeout_ms: int = 60000
    navigation_wait_until: str = "networkidle"
    record_wait_timeout_ms: int = 30000  # Waiting for review cards after load/expand
    next_page_wait_timeout_ms: int = 45000  # Waiting for review cards after a "next" click
    navigation_hint_timeout_ms: int = 10000  # Waiting for the pagination control

    # Initial navigation retry budget
    initial_max_attempts: int = 5
    initial_min_delay_ms: int = 5000
    initial_max_delay_ms: int = 15000

    # "Next page" retry budget
    pagination_max_attempts: int = 5
    pagination_min_delay_ms: int = 10000
    pagination_max_delay_ms: int = 25000

    # Page count discovery retry budget (standalone companion run)
    discovery_max_attempts: int = 3
    discovery_min_delay_ms: int = 3000
    discovery_max_delay_ms: int = 8000
    discovery_navigation_timeout_ms: int = 45000

    # ==========================================================================
    # Settle delays (milliseconds) after interacting with the page
    # ==========================================================================
    consent_settle_min_ms: int = 1000
    consent_settle_max_ms: int = 2000
    expand_settle_min_ms: int = 2000
    expand_settle_max_ms: int = 4000
    next_page_settle_min_ms: int = 3000
    next_page_settle_max_ms: int = 7000

    # Optional safety ceiling on pages visited per run (0 = no ceiling)
    max_pages: int = 0

    # Identity rotation
    user_agent_pool_size: int = 0  # 0 = use the whole built-in pool

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
