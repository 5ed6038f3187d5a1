"""Configuration management for spamcount components."""
import os
from typing import Any, Literal

from pydantic import BaseModel, Field


class ServiceIdentity(BaseModel):
    """Service identity for telemetry."""

    name: str = "spamcount"
    version: str = "0.1.0"


class BackoffConfig(BaseModel):
    """Exponential backoff tuning for remote calls."""

    initial_interval: float = Field(default=0.5, gt=0)
    multiplier: float = Field(default=1.5, ge=1.0)
    max_interval: float = Field(default=60.0, gt=0)
    randomization_factor: float = Field(default=0.5, ge=0.0, le=1.0)
    # None: keep retrying until the operation timeout cancels the run
    max_elapsed: float | None = Field(default=None, gt=0)


class SpamCountConfig(BaseModel):
    """Main configuration for a spam count run.

    Built once by the entry point and passed explicitly to every
    component that needs it.
    """

    service: ServiceIdentity = Field(default_factory=ServiceIdentity)
    timeout_seconds: int = Field(default=60, gt=0)
    lookback_days: int = Field(default=30, ge=0)
    debug: bool = False
    label: str = "SPAM"
    page_size: int = Field(default=100, ge=1, le=500)
    queue_capacity: int = Field(default=200, ge=1)
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    credentials_file: str = "credentials.json"
    token_file: str = "token.json"
    timezone: str | None = None
    log_format: Literal["text", "json"] = "text"
    backoff: BackoffConfig = Field(default_factory=BackoffConfig)

    @property
    def log_level(self) -> str:
        """Log level implied by the debug toggle."""
        return "DEBUG" if self.debug else "INFO"

    @classmethod
    def from_env(cls, **overrides: Any) -> "SpamCountConfig":
        """Load configuration from environment variables.

        Keyword overrides (typically parsed CLI flags) win over the
        environment; overrides set to None are ignored.
        """
        values: dict[str, Any] = {
            "service": ServiceIdentity(
                name=os.getenv("SERVICE_NAME", "spamcount"),
                version=os.getenv("SERVICE_VERSION", "0.1.0"),
            ),
            "timeout_seconds": os.getenv("SPAMCOUNT_TIMEOUT", "60"),
            "lookback_days": os.getenv("SPAMCOUNT_DAYS", "30"),
            "debug": _env_flag("SPAMCOUNT_DEBUG"),
            "label": os.getenv("SPAMCOUNT_LABEL", "SPAM"),
            "page_size": os.getenv("SPAMCOUNT_PAGE_SIZE", "100"),
            "queue_capacity": os.getenv("SPAMCOUNT_QUEUE_CAPACITY", "200"),
            "request_timeout_seconds": os.getenv("SPAMCOUNT_REQUEST_TIMEOUT", "30"),
            "credentials_file": os.getenv("CREDENTIALS_FILE", "credentials.json"),
            "token_file": os.getenv("TOKEN_FILE", "token.json"),
            "timezone": os.getenv("SPAMCOUNT_TIMEZONE") or None,
            "log_format": os.getenv("LOG_FORMAT", "text").lower(),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")
