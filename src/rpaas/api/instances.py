"""Instance lifecycle handler with ordered validation.

Create validation runs in a fixed order and stops at the first failure:

  1. name is required
  2. plan is required
  3. team name is required
  4. plan must exist in the catalog
  5. no instance with the same name may exist

The existence check in step 5 only produces a cheap, precise error in the
common case. Uniqueness itself is guaranteed by the store's atomic create,
whose already-exists failure is reported as the same conflict.

The handler keeps no per-request state and takes no locks of its own, so a
single instance is shared by all concurrent requests.
"""

from __future__ import annotations

from rpaas.observability import get_logger

from .catalog import PlanCatalog
from .models import INSTANCE_KIND, ServiceInstance
from .protocols import ResourceStore
from .store.deadline import with_deadline
from .store.errors import ResourceAlreadyExistsError, ResourceNotFoundError

logger = get_logger(__name__)


# ── Error types ──────────────────────────────────────────────────────


class InstanceValidationError(ValueError):
    """Caller input is missing or invalid. The message is user-facing."""


class InstanceConflict(Exception):
    """An instance with the requested name already exists."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} instance already exists")


class InstanceNotFound(Exception):
    """The referenced instance does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"{name} instance not found")


# ── Handler ──────────────────────────────────────────────────────────


class InstanceLifecycleHandler:
    """Creates and deletes service instances in a fixed namespace."""

    def __init__(
        self,
        store: ResourceStore,
        catalog: PlanCatalog,
        *,
        namespace: str,
        timeout_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._namespace = namespace
        self._timeout = timeout_seconds

    async def create(self, name: str, plan_name: str, team: str) -> ServiceInstance:
        """Validate the request and create the instance record.

        Raises:
            InstanceValidationError: For a missing field or an unknown plan.
            InstanceConflict: If the name is already taken.
            StoreError: For store failures unrelated to validation.
        """
        if not name:
            raise InstanceValidationError("name is required")
        if not plan_name:
            raise InstanceValidationError("plan is required")
        if not team:
            raise InstanceValidationError("team name is required")

        if not await self._catalog.plan_exists(plan_name):
            raise InstanceValidationError("invalid plan")

        if await self._exists(name):
            logger.info("instance_conflict", instance=name)
            raise InstanceConflict(name)

        instance = ServiceInstance(
            name=name,
            namespace=self._namespace,
            plan_name=plan_name,
            team=team,
        )
        try:
            await with_deadline(
                self._store.create(
                    INSTANCE_KIND, self._namespace, name, instance.to_manifest(),
                ),
                self._timeout,
                kind=INSTANCE_KIND,
                namespace=self._namespace,
                name=name,
            )
        except ResourceAlreadyExistsError as exc:
            # Lost a race against a concurrent create after the pre-check.
            logger.info("instance_create_race_lost", instance=name)
            raise InstanceConflict(name) from exc

        logger.info("instance_created", instance=name, plan=plan_name, team=team)
        return instance

    async def delete(self, name: str) -> None:
        """Delete an existing instance record.

        Raises:
            InstanceValidationError: If name is empty.
            InstanceNotFound: If no such instance exists.
            StoreError: For store failures unrelated to validation.
        """
        if not name:
            raise InstanceValidationError("name is required")

        if not await self._exists(name):
            raise InstanceNotFound(name)

        try:
            await with_deadline(
                self._store.delete(INSTANCE_KIND, self._namespace, name),
                self._timeout,
                kind=INSTANCE_KIND,
                namespace=self._namespace,
                name=name,
            )
        except ResourceNotFoundError as exc:
            raise InstanceNotFound(name) from exc

        logger.info("instance_deleted", instance=name)

    async def _exists(self, name: str) -> bool:
        try:
            await with_deadline(
                self._store.get(INSTANCE_KIND, self._namespace, name),
                self._timeout,
                kind=INSTANCE_KIND,
                namespace=self._namespace,
                name=name,
            )
        except ResourceNotFoundError:
            return False
        return True
