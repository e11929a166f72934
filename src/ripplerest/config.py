"""Application configuration using pydantic-settings.

The remote is either a live rippled JSON-RPC endpoint or, in dry-run mode,
an in-memory simulation that never touches the network.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=5990, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Ledger remote
    # ======================
    rippled_url: str = Field(
        default="https://s1.ripple.com:51234/", description="rippled JSON-RPC URL"
    )
    remote_timeout: float = Field(
        default=30.0, description="HTTP timeout for rippled requests (seconds)"
    )
    dry_run: bool = Field(
        default=True, description="Use the simulated remote (no real transactions)"
    )

    # ======================
    # Transaction submission
    # ======================
    submission_timeout: Optional[float] = Field(
        default=60.0,
        description="Seconds to wait for a lifecycle event after submit (None = wait forever)",
    )
    validation_poll_interval: float = Field(
        default=1.0, description="Seconds between tx status polls"
    )
    validation_poll_limit: int = Field(
        default=30, description="Maximum tx status polls before giving up"
    )
    transaction_fee: str = Field(
        default="12", description="Fee in drops for locally signed transactions"
    )
    ledger_offset: int = Field(
        default=20, description="Ledgers after submission before a transaction expires"
    )

    def get_safe_dict(self) -> dict:
        """Return settings dict suitable for health output."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "remote": {
                "url": self._redact_url(self.rippled_url),
                "timeout": self.remote_timeout,
            },
            "submission": {
                "timeout": self.submission_timeout,
                "poll_interval": self.validation_poll_interval,
                "poll_limit": self.validation_poll_limit,
                "fee": self.transaction_fee,
                "ledger_offset": self.ledger_offset,
            },
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact credentials embedded in a URL."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            if "@" in rest:
                creds, host = rest.rsplit("@", 1)
                if ":" in creds:
                    user, _ = creds.split(":", 1)
                    return f"{proto}://{user}:***@{host}"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
