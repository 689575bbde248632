"""Utility modules for the Auditflow pipeline."""

from .config import Settings, get_settings
from .clock import utcnow
from .logging_config import configure_logging
from .retry import RetryConfig, retry_async, with_timeout
from .urls import normalize_domain, validate_absolute_url

__all__ = [
    "Settings",
    "get_settings",
    "utcnow",
    "configure_logging",
    # Retry / timeout
    "RetryConfig",
    "retry_async",
    "with_timeout",
    # URLs
    "normalize_domain",
    "validate_absolute_url",
]
