"""spamcount common utilities: configuration and logging."""

from .config import BackoffConfig, ServiceIdentity, SpamCountConfig
from .logging import SpamCountJsonFormatter, configure_logging

__all__ = [
    "SpamCountConfig",
    "BackoffConfig",
    "ServiceIdentity",
    "SpamCountJsonFormatter",
    "configure_logging",
]
