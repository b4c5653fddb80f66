"""Resource store error hierarchy.

Kept small and dependency-free so both store implementations (in-memory and
Kubernetes) raise the same types, and callers never see httpx objects.
"""

from __future__ import annotations


class StoreError(Exception):
    """Base error for resource store failures unrelated to caller input."""

    def __init__(
        self,
        message: str,
        *,
        kind: str = "",
        namespace: str = "",
        name: str = "",
        status_code: int | None = None,
    ) -> None:
        self.message = message
        self.kind = kind
        self.namespace = namespace
        self.name = name
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        bits: list[str] = [self.message]
        if self.kind:
            bits.append(f"kind={self.kind}")
        if self.namespace:
            bits.append(f"namespace={self.namespace}")
        if self.name:
            bits.append(f"name={self.name}")
        if self.status_code is not None:
            bits.append(f"status={self.status_code}")
        return " ".join(bits)


class ResourceAlreadyExistsError(StoreError):
    """An object with the same (kind, namespace, name) already exists."""

    def __init__(self, kind: str, namespace: str, name: str, **kwargs) -> None:
        super().__init__(
            "resource already exists",
            kind=kind,
            namespace=namespace,
            name=name,
            **kwargs,
        )


class ResourceNotFoundError(StoreError):
    """No object with the given (kind, namespace, name)."""

    def __init__(self, kind: str, namespace: str, name: str, **kwargs) -> None:
        super().__init__(
            "resource not found",
            kind=kind,
            namespace=namespace,
            name=name,
            **kwargs,
        )


class StoreTimeoutError(StoreError):
    """A store call did not complete within the configured deadline."""

    def __init__(self, message: str = "resource store request timed out", **kwargs) -> None:
        super().__init__(message, **kwargs)
