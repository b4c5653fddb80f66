"""Deadline helper for store calls."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from .errors import StoreTimeoutError

T = TypeVar("T")


async def with_deadline(
    awaitable: Awaitable[T],
    timeout_seconds: float | None,
    *,
    kind: str = "",
    namespace: str = "",
    name: str = "",
) -> T:
    """Await a store call, converting deadline expiry into StoreTimeoutError.

    ``timeout_seconds=None`` waits indefinitely. No retries are attempted;
    cancellation of the caller propagates into the store call.
    """
    if timeout_seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as exc:
        raise StoreTimeoutError(kind=kind, namespace=namespace, name=name) from exc
