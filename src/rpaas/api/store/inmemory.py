"""In-memory resource store for local development and tests.

Used when ENVIRONMENT=local. Satisfies the ``ResourceStore`` protocol but keeps
everything in a dict (no persistence across restarts).
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Iterable

from .errors import ResourceAlreadyExistsError, ResourceNotFoundError

_Key = tuple[str, str, str]


class InMemoryResourceStore:
    """Dict-backed store; every read and write happens under one mutex.

    Payloads are deep-copied on the way in and out so callers can never
    mutate stored state behind the store's back.
    """

    def __init__(self, objects: Iterable[dict[str, Any]] | None = None) -> None:
        self._objects: dict[_Key, dict[str, Any]] = {}
        self._lock = threading.Lock()
        for obj in objects or ():
            metadata = obj.get("metadata") or {}
            key = (obj["kind"], metadata.get("namespace", ""), metadata["name"])
            self._objects[key] = copy.deepcopy(obj)

    async def create(
        self, kind: str, namespace: str, name: str, payload: dict[str, Any],
    ) -> dict[str, Any]:
        key = (kind, namespace, name)
        with self._lock:
            if key in self._objects:
                raise ResourceAlreadyExistsError(kind, namespace, name)
            self._objects[key] = copy.deepcopy(payload)
            return copy.deepcopy(payload)

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]:
        with self._lock:
            obj = self._objects.get((kind, namespace, name))
            if obj is None:
                raise ResourceNotFoundError(kind, namespace, name)
            return copy.deepcopy(obj)

    async def list(self, kind: str, namespace: str) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(obj)
                for (k, ns, _), obj in self._objects.items()
                if k == kind and ns == namespace
            ]

    async def delete(self, kind: str, namespace: str, name: str) -> None:
        with self._lock:
            if self._objects.pop((kind, namespace, name), None) is None:
                raise ResourceNotFoundError(kind, namespace, name)
