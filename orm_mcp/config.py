"""
Configuration using Pydantic Settings.

Reads from environment variables and .env file.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .browser.session import BrowserOptions, Credentials


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Account
    oreilly_user_id: str = ""
    oreilly_password: SecretStr = SecretStr("")

    # Platform URLs
    base_url: str = "https://learning.oreilly.com"
    login_url: str = "https://www.oreilly.com/member/login/"

    # Browser
    headless: bool = True
    navigation_timeout: float = 30.0  # seconds
    action_timeout: float = 10.0
    login_timeout: float = 60.0
    poll_interval: float = 0.25
    retry_backoff: float = 1.0
    session_probe_interval: float = 600.0  # idle seconds before a full liveness probe

    # MCP transport
    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8080
    allowed_origins: list[str] = []
    mcp_session_timeout: int = 1800  # 30 minutes

    # Logging
    log_level: str = "INFO"
    log_file: str = ""
    log_max_bytes: int = 10 * 1024 * 1024
    log_backup_count: int = 3

    # Debug
    debug: bool = False
    state_dir: Path = Path.home() / ".local" / "state" / "orm-mcp"

    @property
    def credentials(self) -> Credentials:
        """Credentials handed to the browser session."""
        return Credentials(user_id=self.oreilly_user_id, password=self.oreilly_password)

    def browser_options(self, headless: bool | None = None) -> BrowserOptions:
        """Build the timing and launch options injected into the browser layer."""
        return BrowserOptions(
            base_url=self.base_url.rstrip("/"),
            login_url=self.login_url,
            headless=self.headless if headless is None else headless,
            navigation_timeout=self.navigation_timeout,
            action_timeout=self.action_timeout,
            login_timeout=self.login_timeout,
            poll_interval=self.poll_interval,
            retry_backoff=self.retry_backoff,
            session_probe_interval=self.session_probe_interval,
            debug=self.debug,
            state_dir=self.state_dir,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
