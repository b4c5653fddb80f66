"""Client library for the rpaas API."""

from .acl import (
    AccessControlListClient,
    AllowedUpstream,
    RpaasClientError,
    RpaasNotFoundError,
    RpaasTimeoutError,
)

__all__ = [
    "AccessControlListClient",
    "AllowedUpstream",
    "RpaasClientError",
    "RpaasNotFoundError",
    "RpaasTimeoutError",
]
