"""Plan catalog accessor.

Read-only view over plan objects in the service's namespace. The empty
description default is a presentation concern applied here, at read time; it
is never written back to the store.
"""

from __future__ import annotations

from .models import PLAN_KIND, Plan
from .protocols import ResourceStore
from .store.deadline import with_deadline
from .store.errors import ResourceNotFoundError

DEFAULT_PLAN_DESCRIPTION = "no plan description"


class PlanCatalog:
    """Looks up and enumerates plans. Never creates, mutates or deletes one."""

    def __init__(
        self,
        store: ResourceStore,
        *,
        namespace: str,
        timeout_seconds: float | None = None,
    ) -> None:
        self._store = store
        self._namespace = namespace
        self._timeout = timeout_seconds

    @property
    def namespace(self) -> str:
        return self._namespace

    async def get_plan(self, name: str) -> Plan | None:
        """Return the stored plan (raw description), or None when absent."""
        try:
            manifest = await with_deadline(
                self._store.get(PLAN_KIND, self._namespace, name),
                self._timeout,
                kind=PLAN_KIND,
                namespace=self._namespace,
                name=name,
            )
        except ResourceNotFoundError:
            return None
        return Plan.from_manifest(manifest)

    async def plan_exists(self, name: str) -> bool:
        return await self.get_plan(name) is not None

    async def list_plans(self) -> list[Plan]:
        """Return every plan in the namespace, in store order.

        Plans with an empty description get ``DEFAULT_PLAN_DESCRIPTION``.
        """
        manifests = await with_deadline(
            self._store.list(PLAN_KIND, self._namespace),
            self._timeout,
            kind=PLAN_KIND,
            namespace=self._namespace,
        )
        plans: list[Plan] = []
        for manifest in manifests:
            plan = Plan.from_manifest(manifest)
            plans.append(
                Plan(
                    name=plan.name,
                    description=plan.description or DEFAULT_PLAN_DESCRIPTION,
                )
            )
        return plans
