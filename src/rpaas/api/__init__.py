"""Provisioning API FastAPI application."""

from .main import create_app
from .settings import ApiSettings

__all__ = ["create_app", "ApiSettings"]
