"""Pytest configuration for rpaas tests."""
import sys
from pathlib import Path

# Add src/ to path for src-layout imports
_SRC = Path(__file__).parent.parent / 'src'
if str(_SRC) not in sys.path:
    sys.path.insert(0, str(_SRC))

import pytest

from rpaas.api.models import Plan, ServiceInstance
from rpaas.api.store.inmemory import InMemoryResourceStore

NAMESPACE = 'rpaasv2'


@pytest.fixture
def namespace():
    return NAMESPACE


@pytest.fixture
def store():
    """Store seeded with plan ``myplan`` and instance ``firstinstance``."""
    return InMemoryResourceStore([
        Plan(name='myplan').to_manifest(NAMESPACE),
        ServiceInstance(
            name='firstinstance',
            namespace=NAMESPACE,
            plan_name='myplan',
            team='myteam',
        ).to_manifest(),
    ])
