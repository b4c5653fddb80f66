"""Logging, metrics and request-correlation middleware for the provisioning API."""

from .logging import configure_logging, get_logger
from .metrics import metrics_text

__all__ = [
    "configure_logging",
    "get_logger",
    "metrics_text",
]
