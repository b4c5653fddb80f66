"""Provisioning API FastAPI application factory.

The create_app() factory is the single entry point for building the ASGI
application. It wires middleware (request context, access log and metrics,
basic-auth guard), the service routes, and the resource store via dependency
injection.

Usage:
    # Local development (in-memory store)
    from rpaas.api import create_app, ApiSettings
    app = create_app(ApiSettings(local_plans=("small",)))

    # Non-local (Kubernetes store built from settings)
    app = create_app(ApiSettings.from_env())

    # Testing (full DI control)
    app = create_app(settings, store=InMemoryResourceStore([...]))
"""

from __future__ import annotations

import base64
import binascii
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from rpaas.observability import configure_logging, get_logger, metrics_text
from rpaas.observability.middleware import AccessLogMiddleware, RequestContextMiddleware

from .catalog import PlanCatalog
from .instances import InstanceLifecycleHandler
from .models import Plan
from .protocols import ResourceStore
from .routes.service import create_service_router
from .settings import ApiSettings
from .store.errors import StoreError, StoreTimeoutError
from .store.inmemory import InMemoryResourceStore
from .store.kubernetes import KubernetesResourceStore

logger = get_logger(__name__)

# Paths reachable without credentials even when basic auth is enabled.
AUTH_ALLOWLIST_EXACT: frozenset[str] = frozenset({
    "/health",
    "/metrics",
})


@dataclass(frozen=True)
class AppDependencies:
    """Container for injected collaborators, stored on ``app.state.deps``."""

    store: ResourceStore
    catalog: PlanCatalog
    handler: InstanceLifecycleHandler


def _build_store(
    settings: ApiSettings,
) -> tuple[ResourceStore, httpx.AsyncClient | None]:
    """Build the store for the environment; also return any owned HTTP client."""
    if settings.is_local:
        seed = [
            Plan(name=name).to_manifest(settings.namespace)
            for name in settings.local_plans
        ]
        return InMemoryResourceStore(seed), None

    http_client = httpx.AsyncClient(verify=settings.kube_verify)
    store = KubernetesResourceStore(
        api_server_url=settings.kube_api_url,
        bearer_token=settings.kube_token,
        http_client=http_client,
        timeout_seconds=settings.store_timeout_seconds,
    )
    return store, http_client


# ── Middleware ──────────────────────────────────────────────────────


class BasicAuthGuardMiddleware(BaseHTTPMiddleware):
    """Require HTTP Basic credentials on every non-allowlisted path."""

    def __init__(self, app, *, username: str, password: str) -> None:
        super().__init__(app)
        self._username = username
        self._password = password

    def _authorized(self, header: str) -> bool:
        scheme, _, encoded = header.partition(" ")
        if scheme.lower() != "basic" or not encoded:
            return False
        try:
            decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return False
        username, sep, password = decoded.partition(":")
        if not sep:
            return False
        # Compare both fields unconditionally to keep timing uniform.
        username_ok = secrets.compare_digest(
            username.encode(), self._username.encode(),
        )
        password_ok = secrets.compare_digest(
            password.encode(), self._password.encode(),
        )
        return username_ok and password_ok

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.url.path in AUTH_ALLOWLIST_EXACT:
            return await call_next(request)

        if not self._authorized(request.headers.get("authorization", "")):
            logger.debug("auth_rejected", path=request.url.path)
            return PlainTextResponse(
                "unauthorized",
                status_code=401,
                headers={"WWW-Authenticate": 'Basic realm="rpaas"'},
            )

        return await call_next(request)


# ── Factory ─────────────────────────────────────────────────────────


def create_app(
    settings: ApiSettings | None = None,
    *,
    store: ResourceStore | None = None,
) -> FastAPI:
    """Create a configured provisioning FastAPI application.

    Args:
        settings: Application settings. Defaults to local-dev settings.
        store: Resource store override. When None, local mode uses an
            in-memory store and other environments use Kubernetes.

    Returns:
        Configured FastAPI application ready for uvicorn.run().

    Raises:
        ValueError: If settings validation fails.
    """
    if settings is None:
        settings = ApiSettings()

    errors = settings.validate()
    if errors:
        raise ValueError(
            "Provisioning API settings validation failed:\n"
            + "\n".join(f"  - {e}" for e in errors)
        )

    owned_http_client: httpx.AsyncClient | None = None
    if store is None:
        store, owned_http_client = _build_store(settings)

    catalog = PlanCatalog(
        store,
        namespace=settings.namespace,
        timeout_seconds=settings.store_timeout_seconds,
    )
    handler = InstanceLifecycleHandler(
        store,
        catalog,
        namespace=settings.namespace,
        timeout_seconds=settings.store_timeout_seconds,
    )
    deps = AppDependencies(store=store, catalog=catalog, handler=handler)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(environment=settings.environment)
        logger.info(
            "api_startup",
            environment=settings.environment,
            namespace=settings.namespace,
        )
        try:
            yield
        finally:
            if owned_http_client is not None:
                await owned_http_client.aclose()
            logger.info("api_shutdown")

    app = FastAPI(
        title="RPaaS Provisioning API",
        description="Service-broker API for reverse-proxy instances",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.deps = deps
    app.state.settings = settings

    # ── Middleware stack (applied in reverse order) ──────────────
    # Order of execution: RequestContext -> AccessLog -> AuthGuard -> route

    if settings.auth_enabled:
        app.add_middleware(
            BasicAuthGuardMiddleware,
            username=settings.api_username,
            password=settings.api_password,
        )
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestContextMiddleware)

    # ── Store failures ──────────────────────────────────────────
    # Never echo backend details to the marketplace.

    @app.exception_handler(StoreTimeoutError)
    async def store_timeout_handler(request: Request, exc: StoreTimeoutError):
        logger.error("store_timeout", error=str(exc), path=request.url.path)
        return PlainTextResponse("resource store timed out", status_code=504)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError):
        logger.error("store_error", error=str(exc), path=request.url.path)
        return PlainTextResponse("resource store unavailable", status_code=502)

    # ── Routes ──────────────────────────────────────────────────

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "environment": settings.environment,
        }

    @app.get("/metrics")
    async def metrics():
        body, content_type = metrics_text()
        return Response(content=body, media_type=content_type)

    app.include_router(create_service_router(handler, catalog))

    return app


# For uvicorn, use --factory flag:
#   uvicorn rpaas.api.main:create_app --factory
# This avoids executing create_app() at import time.
