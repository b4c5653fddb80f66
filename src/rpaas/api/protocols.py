"""Store protocol interface for dependency injection.

The app factory accepts any implementation matching ``ResourceStore``:
InMemory for local development and tests, Kubernetes for everything else.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ResourceStore(Protocol):
    """Declarative object store keyed by (kind, namespace, name).

    ``create`` must be atomic: of two concurrent creates for the same key at
    most one succeeds, the other raises ``ResourceAlreadyExistsError``.
    ``get`` and ``delete`` raise ``ResourceNotFoundError`` for absent keys.
    """

    async def create(
        self, kind: str, namespace: str, name: str, payload: dict[str, Any],
    ) -> dict[str, Any]: ...

    async def get(self, kind: str, namespace: str, name: str) -> dict[str, Any]: ...

    async def list(self, kind: str, namespace: str) -> list[dict[str, Any]]: ...

    async def delete(self, kind: str, namespace: str, name: str) -> None: ...
