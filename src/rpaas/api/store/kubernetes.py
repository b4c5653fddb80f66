"""Kubernetes-backed resource store.

Talks to the Kubernetes API server's custom-resource REST endpoints for the
``extensions.tsuru.io/v1alpha1`` group through httpx. The API server gives us
atomic create-if-absent for free: a POST for an existing name returns 409.

This is the single point of API-server HTTP interaction for the service.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from .errors import (
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    StoreError,
    StoreTimeoutError,
)

logger = logging.getLogger(__name__)

API_GROUP = "extensions.tsuru.io"
API_VERSION = "v1alpha1"

# Kind -> plural resource name as registered by the CRDs.
KIND_PLURALS: dict[str, str] = {
    "RpaasInstance": "rpaasinstances",
    "RpaasPlan": "rpaasplans",
}


class KubernetesResourceStore:
    """ResourceStore over the Kubernetes custom-resource API."""

    def __init__(
        self,
        *,
        api_server_url: str,
        bearer_token: str = "",
        http_client: httpx.AsyncClient,
        timeout_seconds: float = 10.0,
    ) -> None:
        if not api_server_url:
            raise ValueError("api_server_url is required")

        self._api_server_url = api_server_url.rstrip("/")
        self._bearer_token = bearer_token
        self._timeout = float(timeout_seconds)
        self._client = http_client

    def _auth_headers(self) -> dict[str, str]:
        # Never log these headers.
        if not self._bearer_token:
            return {}
        return {"Authorization": f"Bearer {self._bearer_token}"}

    def _collection_url(self, kind: str, namespace: str) -> str:
        plural = KIND_PLURALS.get(kind)
        if plural is None:
            raise StoreError(f"unsupported resource kind {kind!r}", kind=kind)
        return (
            f"{self._api_server_url}/apis/{API_GROUP}/{API_VERSION}"
            f"/namespaces/{namespace}/{plural}"
        )

    def _object_url(self, kind: str, namespace: str, name: str) -> str:
        # "." and ".." are not valid object names and would be collapsed
        # into a different path by URL normalisation.
        if name in ("", ".", ".."):
            raise ResourceNotFoundError(kind, namespace, name)
        return f"{self._collection_url(kind, namespace)}/{quote(name, safe='')}"

    async def _request(
        self,
        method: str,
        url: str,
        *,
        kind: str,
        namespace: str,
        name: str = "",
        json: Any | None = None,
    ) -> httpx.Response:
        try:
            resp = await self._client.request(
                method,
                url,
                headers={"Accept": "application/json", **self._auth_headers()},
                json=json,
                timeout=self._timeout,
            )
        except httpx.TimeoutException as exc:
            raise StoreTimeoutError(kind=kind, namespace=namespace, name=name) from exc
        except httpx.HTTPError as exc:
            logger.warning("API server %s %s failed: %s", method, url, exc)
            raise StoreError(
                "resource store request failed",
                kind=kind,
                namespace=namespace,
                name=name,
            ) from exc

        self._raise_for_status(resp, kind=kind, namespace=namespace, name=name)
        return resp

    @staticmethod
    def _raise_for_status(
        resp: httpx.Response, *, kind: str, namespace: str, name: str,
    ) -> None:
        if resp.status_code < 400:
            return

        if resp.status_code == 404:
            raise ResourceNotFoundError(kind, namespace, name, status_code=404)
        if resp.status_code == 409:
            raise ResourceAlreadyExistsError(kind, namespace, name, status_code=409)

        message = f"HTTP {resp.status_code}"
        try:
            payload = resp.json()
            if isinstance(payload, dict) and payload.get("message"):
                message = str(payload["message"])
        except ValueError:
            pass

        raise StoreError(
            message,
            kind=kind,
            namespace=namespace,
            name=name,
            status_code=resp.status_code,
        )

    @staticmethod
    def _decode_object(resp: httpx.Response, *, kind: str, namespace: str, name: str) -> dict[str, Any]:
        try:
            payload = resp.json()
        except ValueError as exc:
            raise StoreError(
                "invalid JSON from API server",
                kind=kind,
                namespace=namespace,
                name=name,
                status_code=resp.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise StoreError(
                "expected object response from API server",
                kind=kind,
                namespace=namespace,
                name=name,
            )
        return payload

    async def create(
        self, kind: str, namespace: str, name: str, payload: dict[str, Any],
    ) -> dict[str, Any]:
        body = {**payload, "kind": kind}
        body.setdefault("apiVersion", f"{API_GROUP}/{API_VERSION}")
        body["metadata"] = {**(payload.get("metadata") or {}), "name": name, "namespace": namespace}

        resp = await self._request(
            "POST",
            self._collection_url(kind, namespace),
            kind=kind,
            namespace=namespace,
            name=name,
            json=body,
        )
        return self._decode_object(resp, kind=kind, namespace=namespace, name=name)

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        resp = await self._request(
            "GET",
            self._object_url(kind, namespace, name),
            kind=kind,
            namespace=namespace,
            name=name,
        )
        return self._decode_object(resp, kind=kind, namespace=namespace, name=name)

    async def list(self, kind: str, namespace: str) -> list[dict[str, Any]]:
        resp = await self._request(
            "GET",
            self._collection_url(kind, namespace),
            kind=kind,
            namespace=namespace,
        )
        payload = self._decode_object(resp, kind=kind, namespace=namespace, name="")
        items = payload.get("items") or []
        if not isinstance(items, list):
            raise StoreError(
                "expected items list from API server",
                kind=kind,
                namespace=namespace,
            )
        # List responses omit kind on items.
        return [{"kind": kind, **item} for item in items]

    async def delete(self, kind: str, namespace: str, name: str) -> None:
        await self._request(
            "DELETE",
            self._object_url(kind, namespace, name),
            kind=kind,
            namespace=namespace,
            name=name,
        )
