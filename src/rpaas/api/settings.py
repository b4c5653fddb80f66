"""Provisioning API configuration settings.

ApiSettings is the single configuration object accepted by create_app().
It is a plain dataclass (not env-coupled) so tests can inject config
without touching os.environ.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_DEFAULT_STORE_TIMEOUT_SECONDS = 10.0


@dataclass(frozen=True, slots=True)
class ApiSettings:
    """Configuration for the provisioning FastAPI application.

    All fields have sensible defaults for local development.
    Non-local environments must point at a Kubernetes API server.
    """

    # ── Environment ────────────────────────────────────────────────
    environment: str = "local"
    """One of: local, dev, staging, production."""

    namespace: str = "rpaasv2"
    """Fixed tenancy namespace for every instance and plan this API touches."""

    store_timeout_seconds: float = _DEFAULT_STORE_TIMEOUT_SECONDS
    """Deadline applied to each individual store call."""

    # ── Kubernetes ─────────────────────────────────────────────────
    kube_api_url: str = ""
    """API server base URL (e.g. https://10.0.0.1:6443)."""

    kube_token: str = ""
    """Service account bearer token. Never log this."""

    kube_verify: bool | str = True
    """TLS verification: a bool, or a path to a CA bundle."""

    # ── Auth ───────────────────────────────────────────────────────
    api_username: str = ""
    """HTTP Basic username expected from the marketplace. Empty disables auth."""

    api_password: str = ""

    # ── Local development ──────────────────────────────────────────
    local_plans: tuple[str, ...] = ()
    """Plan names seeded into the in-memory store in local mode."""

    @property
    def is_local(self) -> bool:
        return self.environment == "local"

    @property
    def auth_enabled(self) -> bool:
        return bool(self.api_username)

    def validate(self) -> list[str]:
        """Return a list of configuration errors. Empty means valid."""
        errors: list[str] = []
        if not self.namespace:
            errors.append("namespace is required")
        if self.store_timeout_seconds <= 0:
            errors.append("store_timeout_seconds must be positive")
        if not self.is_local and not self.kube_api_url:
            errors.append(f"{self.environment}: kube_api_url is required")
        if self.api_username and not self.api_password:
            errors.append("api_password is required when api_username is set")
        return errors

    @classmethod
    def from_env(cls, env: dict[str, str] | None = None) -> ApiSettings:
        """Build settings from environment variables.

        Tests should construct ApiSettings directly.
        """
        if env is None:
            env = dict(os.environ)

        timeout_raw = env.get("RPAAS_STORE_TIMEOUT_SECONDS", "")
        timeout = _DEFAULT_STORE_TIMEOUT_SECONDS
        if timeout_raw:
            try:
                timeout = float(timeout_raw)
            except ValueError as exc:
                raise ValueError(
                    "Invalid RPAAS_STORE_TIMEOUT_SECONDS; must be a number"
                ) from exc

        plans_raw = env.get("RPAAS_LOCAL_PLANS", "")
        plans = tuple(p.strip() for p in plans_raw.split(",") if p.strip())

        ca_file = env.get("KUBERNETES_CA_FILE", "")
        kube_verify: bool | str = ca_file or True

        return cls(
            environment=env.get("ENVIRONMENT", "local"),
            namespace=env.get("RPAAS_NAMESPACE", "rpaasv2"),
            store_timeout_seconds=timeout,
            kube_api_url=env.get("KUBERNETES_API_URL", ""),
            kube_token=env.get("KUBERNETES_TOKEN", ""),
            kube_verify=kube_verify,
            api_username=env.get("API_USERNAME", ""),
            api_password=env.get("API_PASSWORD", ""),
            local_plans=plans,
        )
