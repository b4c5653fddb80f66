"""Service-broker endpoints consumed by the marketplace.

  POST   /resources             → create an instance (form: name, plan, team)
  DELETE /resources/{instance}  → delete an instance
  GET    /resources/plans       → list the plan catalog

Response contracts are part of the marketplace integration and are exact:
  - 400 and 409 carry a plain-text message.
  - 404, 200 and 201 carry an empty body.
  - the plan list is a JSON array of ``{"Name", "Description"}`` objects.

Store failures are not handled here; they propagate to the app-level
exception handlers registered in ``main.py``.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Form
from fastapi.responses import PlainTextResponse, Response
from pydantic import BaseModel, Field

from rpaas.api.catalog import PlanCatalog
from rpaas.api.instances import (
    InstanceConflict,
    InstanceLifecycleHandler,
    InstanceNotFound,
    InstanceValidationError,
)
from rpaas.observability.metrics import PROVISIONING_OPERATIONS_TOTAL


# ── Response schemas ──────────────────────────────────────────────────


class PlanResponse(BaseModel):
    name: str = Field(alias="Name")
    description: str = Field(alias="Description")


# ── Route factory ─────────────────────────────────────────────────────


def create_service_router(
    handler: InstanceLifecycleHandler,
    catalog: PlanCatalog,
) -> APIRouter:
    """Create the /resources router.

    Args:
        handler: Validates and applies instance create/delete.
        catalog: Read-only plan catalog.

    Returns:
        FastAPI router with the service-broker endpoints.
    """
    router = APIRouter(tags=['service'])

    @router.get('/resources/plans', response_model=list[PlanResponse])
    async def service_plans():
        with structlog.contextvars.bound_contextvars(operation='list_plans'):
            plans = await catalog.list_plans()
        _count('list_plans', 'ok')
        return [
            PlanResponse(Name=plan.name, Description=plan.description)
            for plan in plans
        ]

    @router.post('/resources')
    async def service_create(
        name: str = Form(''),
        plan: str = Form(''),
        team: str = Form(''),
    ):
        try:
            with structlog.contextvars.bound_contextvars(operation='create', instance=name):
                await handler.create(name, plan, team)
        except InstanceValidationError as exc:
            _count('create', 'invalid')
            return PlainTextResponse(str(exc), status_code=400)
        except InstanceConflict as exc:
            _count('create', 'conflict')
            return PlainTextResponse(str(exc), status_code=409)

        _count('create', 'created')
        return Response(status_code=201)

    @router.delete('/resources/{instance}')
    async def service_delete(instance: str):
        return await _delete(instance)

    # An empty path segment never matches ``{instance}``; route it explicitly
    # so the missing-name validation is reachable over HTTP.
    @router.delete('/resources/')
    async def service_delete_unnamed():
        return await _delete('')

    async def _delete(instance: str) -> Response:
        try:
            with structlog.contextvars.bound_contextvars(operation='delete', instance=instance):
                await handler.delete(instance)
        except InstanceValidationError as exc:
            _count('delete', 'invalid')
            return PlainTextResponse(str(exc), status_code=400)
        except InstanceNotFound:
            _count('delete', 'not_found')
            return Response(status_code=404)

        _count('delete', 'deleted')
        return Response(status_code=200)

    return router


def _count(operation: str, outcome: str) -> None:
    PROVISIONING_OPERATIONS_TOTAL.labels(
        operation=operation, outcome=outcome,
    ).inc()
