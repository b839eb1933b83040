from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).resolve().parents[2]

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/91.0.4472.124 Safari/537.36"
)


class Settings(BaseSettings):
    app_name: str = "sydney-events"
    app_env: str = "dev"

    database_url: str | None = None
    mysql_host: str = "127.0.0.1"
    mysql_port: int = 3306
    mysql_user: str = "root"
    mysql_password: str = ""
    mysql_db: str = "sydney_events"

    log_level: str = "INFO"

    scheduler_enabled: bool = True
    scrape_interval_hours: float = 6.0
    scrape_initial_delay_seconds: float = 5.0
    scrape_source_cooldown_seconds: float = 2.0
    scrape_freshness_hours: float = 6.0
    scrape_user_agent: str = DEFAULT_USER_AGENT
    scrape_sources: list[str] = ["eventbrite", "timeout", "meetup"]
    change_policy: Literal["any", "substantive"] = "any"

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
    )

    @property
    def mysql_host_resolved(self) -> str:
        host = (self.mysql_host or "").strip()
        if host.lower() in {"localhost", "::1", "[::1]"}:
            return "127.0.0.1"
        return host

    @property
    def database_dsn(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host_resolved}:{self.mysql_port}/{self.mysql_db}"
        )


settings = Settings()
