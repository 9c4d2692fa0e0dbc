from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Fetching
    fetch_backend: str = "http"  # http | browser
    fetch_timeout_seconds: float = 120.0
    blocked_resource_types: list[str] = ["image", "stylesheet", "font"]
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
    )
    browser_ready_timeout_seconds: float = 10.0
    browser_settle_seconds: float = 1.0

    # Retry (1 attempt = no retry)
    fetch_max_attempts: int = 1
    retry_initial_delay_seconds: float = 2.0
    retry_max_delay_seconds: float = 30.0

    # Crawling
    request_delay_seconds: float = 2.0
    max_pages: int = 50
    max_concurrent_sources: int = 1
    respect_robots_txt: bool = False

    # Catalog
    default_currency: str = "ARS"
    sources_file: str | None = None

    # App
    app_name: str = "catalogscout"
    app_version: str = "1.0.0"
    debug: bool = False


settings = Settings()
