"""Tests for InstanceLifecycleHandler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from rpaas.api.catalog import PlanCatalog
from rpaas.api.instances import (
    InstanceConflict,
    InstanceLifecycleHandler,
    InstanceNotFound,
    InstanceValidationError,
)
from rpaas.api.models import ServiceInstance, TEAM_OWNER_ANNOTATION
from rpaas.api.store.errors import (
    ResourceAlreadyExistsError,
    ResourceNotFoundError,
    StoreError,
    StoreTimeoutError,
)
from rpaas.api.store.inmemory import InMemoryResourceStore

NS = 'rpaasv2'


def _handler(store, timeout_seconds=None) -> InstanceLifecycleHandler:
    catalog = PlanCatalog(store, namespace=NS, timeout_seconds=timeout_seconds)
    return InstanceLifecycleHandler(
        store, catalog, namespace=NS, timeout_seconds=timeout_seconds,
    )


async def _instance_names(store) -> list[str]:
    return sorted(o['metadata']['name'] for o in await store.list('RpaasInstance', NS))


class StaleReadStore(InMemoryResourceStore):
    """Reports instances as absent on get, as if another writer just raced us."""

    async def get(self, kind, namespace, name):
        if kind == 'RpaasInstance':
            raise ResourceNotFoundError(kind, namespace, name)
        return await super().get(kind, namespace, name)


class VanishingStore(InMemoryResourceStore):
    """Instance exists on get but is gone by the time delete runs."""

    async def delete(self, kind, namespace, name):
        raise ResourceNotFoundError(kind, namespace, name)


class SlowGetStore(InMemoryResourceStore):
    async def get(self, kind, namespace, name):
        await asyncio.sleep(1)
        return await super().get(kind, namespace, name)


# ── create ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_create_stores_instance(store):
    instance = await _handler(store).create('rpaas', 'myplan', 'myteam')

    assert instance == ServiceInstance(
        name='rpaas', namespace=NS, plan_name='myplan', team='myteam',
    )
    stored = await store.get('RpaasInstance', NS, 'rpaas')
    assert stored['spec']['planName'] == 'myplan'
    assert stored['metadata']['annotations'][TEAM_OWNER_ANNOTATION] == 'myteam'
    assert ServiceInstance.from_manifest(stored) == instance


@pytest.mark.asyncio
@pytest.mark.parametrize('name,plan,team,message', [
    ('', '', '', 'name is required'),
    ('', 'myplan', 'myteam', 'name is required'),
    ('x', '', '', 'plan is required'),
    ('x', '', 'myteam', 'plan is required'),
    ('x', 'myplan', '', 'team name is required'),
    ('x', 'plan2', '', 'team name is required'),
    ('x', 'plan2', 'myteam', 'invalid plan'),
    ('firstinstance', 'plan2', 'myteam', 'invalid plan'),
])
async def test_create_validation_order(store, name, plan, team, message):
    with pytest.raises(InstanceValidationError) as exc_info:
        await _handler(store).create(name, plan, team)

    assert str(exc_info.value) == message
    assert await _instance_names(store) == ['firstinstance']


@pytest.mark.asyncio
async def test_create_existing_name_conflicts(store):
    with pytest.raises(InstanceConflict) as exc_info:
        await _handler(store).create('firstinstance', 'myplan', 'otherteam')

    assert str(exc_info.value) == 'firstinstance instance already exists'
    stored = await store.get('RpaasInstance', NS, 'firstinstance')
    assert stored['metadata']['annotations'][TEAM_OWNER_ANNOTATION] == 'myteam'


@pytest.mark.asyncio
async def test_create_whitespace_is_not_trimmed(store):
    await _handler(store).create(' ', 'myplan', 'myteam')
    assert ' ' in await _instance_names(store)


@pytest.mark.asyncio
async def test_create_race_lost_reports_conflict(store):
    stale = StaleReadStore([await store.get('RpaasPlan', NS, 'myplan')])
    await stale.create('RpaasInstance', NS, 'raced', {'kind': 'RpaasInstance'})

    with pytest.raises(InstanceConflict) as exc_info:
        await _handler(stale).create('raced', 'myplan', 'myteam')

    assert str(exc_info.value) == 'raced instance already exists'
    assert isinstance(exc_info.value.__cause__, ResourceAlreadyExistsError)


@pytest.mark.asyncio
async def test_concurrent_creates_exactly_one_succeeds(store):
    handler = _handler(store, timeout_seconds=5.0)

    results = await asyncio.gather(
        *(handler.create('contended', 'myplan', f'team{i}') for i in range(20)),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, ServiceInstance)]
    conflicts = [r for r in results if isinstance(r, InstanceConflict)]
    assert len(successes) == 1
    assert len(conflicts) == 19
    assert all(str(c) == 'contended instance already exists' for c in conflicts)
    assert await _instance_names(store) == ['contended', 'firstinstance']


@pytest.mark.asyncio
async def test_create_store_failure_propagates():
    store = AsyncMock()
    store.get.side_effect = StoreError('boom')
    handler = _handler(store)

    with pytest.raises(StoreError):
        await handler.create('rpaas', 'myplan', 'myteam')
    store.create.assert_not_called()


@pytest.mark.asyncio
async def test_create_plan_lookup_timeout(store):
    slow = SlowGetStore([await store.get('RpaasPlan', NS, 'myplan')])

    with pytest.raises(StoreTimeoutError):
        await _handler(slow, timeout_seconds=0.01).create('rpaas', 'myplan', 'myteam')
    assert await slow.list('RpaasInstance', NS) == []


# ── delete ────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_delete_existing(store):
    await _handler(store).delete('firstinstance')
    assert await _instance_names(store) == []


@pytest.mark.asyncio
async def test_delete_empty_name(store):
    with pytest.raises(InstanceValidationError, match='name is required'):
        await _handler(store).delete('')
    assert await _instance_names(store) == ['firstinstance']


@pytest.mark.asyncio
async def test_delete_unknown(store):
    with pytest.raises(InstanceNotFound):
        await _handler(store).delete('unknown')
    assert await _instance_names(store) == ['firstinstance']


@pytest.mark.asyncio
async def test_delete_does_not_touch_plans(store):
    with pytest.raises(InstanceNotFound):
        await _handler(store).delete('myplan')
    assert await store.get('RpaasPlan', NS, 'myplan')


@pytest.mark.asyncio
async def test_delete_racing_delete_reports_not_found(store):
    vanishing = VanishingStore([await store.get('RpaasInstance', NS, 'firstinstance')])

    with pytest.raises(InstanceNotFound):
        await _handler(vanishing).delete('firstinstance')


@pytest.mark.asyncio
async def test_create_then_delete_then_create_again(store):
    handler = _handler(store)

    await handler.create('again', 'myplan', 'myteam')
    await handler.delete('again')
    await handler.create('again', 'myplan', 'myteam')

    assert 'again' in await _instance_names(store)
