"""Resource store implementations (in-memory, Kubernetes)."""

from .errors import (
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    StoreError,
    StoreTimeoutError,
)
from .inmemory import InMemoryResourceStore
from .kubernetes import KubernetesResourceStore

__all__ = [
    "InMemoryResourceStore",
    "KubernetesResourceStore",
    "ResourceAlreadyExistsError",
    "ResourceNotFoundError",
    "StoreError",
    "StoreTimeoutError",
]
