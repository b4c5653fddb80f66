"""HTTP route modules for the provisioning API."""

from .service import create_service_router

__all__ = ["create_service_router"]
