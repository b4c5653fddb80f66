"""Async HTTP client for the ACL endpoints of an rpaas instance.

  POST   /resources/{instance}/acl  body {"host", "port"}  → add an upstream
  GET    /resources/{instance}/acl                         → list upstreams
  DELETE /resources/{instance}/acl  body {"host", "port"}  → remove an upstream

Auth is either a bearer token or HTTP Basic credentials. Requests are not
retried; callers decide whether a failure is worth repeating.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────


class RpaasClientError(Exception):
    """Base exception for rpaas API errors."""

    def __init__(
        self,
        status_code: int,
        message: str = "",
        *,
        response_body: str = "",
    ) -> None:
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"rpaas API error {status_code}: {message}")


class RpaasNotFoundError(RpaasClientError):
    """Instance not found (404)."""

    def __init__(self, message: str = "instance not found", **kwargs: Any) -> None:
        super().__init__(404, message, **kwargs)


class RpaasTimeoutError(RpaasClientError):
    """Request to the rpaas API timed out."""

    def __init__(self, message: str = "request timed out") -> None:
        super().__init__(0, message)


# ── Wire types ───────────────────────────────────────────────────


class AllowedUpstream(BaseModel):
    """A destination an instance is allowed to reach."""

    host: str = ""
    port: int = 0


# ── Client ───────────────────────────────────────────────────────


class AccessControlListClient:
    """Manages the ACL of rpaas instances through the rpaas API."""

    def __init__(
        self,
        *,
        base_url: str,
        token: str = "",
        username: str = "",
        password: str = "",
        http_client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        if not base_url:
            raise ValueError("base_url is required")

        self._base_url = base_url.rstrip("/")
        self._token = token
        self._auth = httpx.BasicAuth(username, password) if username else None
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient()
        self._timeout = float(timeout_seconds)

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        return headers

    def _acl_path(self, instance: str) -> str:
        if not instance:
            raise ValueError("instance is required")
        return f"/resources/{quote(instance, safe='')}/acl"

    def _raise_for_status(self, resp: httpx.Response) -> None:
        if resp.status_code < 400:
            return

        body = resp.text
        message = body[:200] if body else f"HTTP {resp.status_code}"

        try:
            payload = resp.json()
            if isinstance(payload, dict):
                message = payload.get("message", payload.get("error", message))
        except ValueError:
            pass

        if resp.status_code == 404:
            raise RpaasNotFoundError(message=message, response_body=body)

        raise RpaasClientError(
            status_code=resp.status_code,
            message=message,
            response_body=body,
        )

    async def _request(
        self, method: str, path: str, *, json: Any | None = None,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(
                method,
                f"{self._base_url}{path}",
                headers=self._headers(),
                auth=self._auth or httpx.USE_CLIENT_DEFAULT,
                json=json,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise RpaasTimeoutError(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.warning("rpaas API %s %s failed: %s", method, path, exc)
            raise RpaasClientError(0, f"request failed: {exc}") from exc
        self._raise_for_status(resp)
        return resp

    # ── Public API ───────────────────────────────────────────────

    async def add_access_control_list(self, instance: str, host: str, port: int) -> None:
        upstream = AllowedUpstream(host=host, port=port)
        await self._request("POST", self._acl_path(instance), json=upstream.model_dump())
        logger.info("ACL entry added: instance=%s host=%s port=%d", instance, host, port)

    async def list_access_control_list(self, instance: str) -> list[AllowedUpstream]:
        resp = await self._request("GET", self._acl_path(instance))
        if not resp.content:
            return []

        payload = resp.json()
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise RpaasClientError(
                status_code=resp.status_code,
                message=f"expected list from ACL endpoint, got {type(payload).__name__}",
            )
        return [AllowedUpstream.model_validate(item) for item in payload]

    async def remove_access_control_list(self, instance: str, host: str, port: int) -> None:
        upstream = AllowedUpstream(host=host, port=port)
        await self._request("DELETE", self._acl_path(instance), json=upstream.model_dump())
        logger.info("ACL entry removed: instance=%s host=%s port=%d", instance, host, port)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
