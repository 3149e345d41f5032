"""
Pytest configuration and fixtures for token registry tests.
"""

import itertools
import tempfile
from datetime import datetime, timedelta, timezone

import pytest

from token_registry.manager import RegistryService
from token_registry.schema import Blockchain, Token
from token_registry.storage import JSONEntityStore, MemoryEntityStore


class SteppingClock:
    """Deterministic clock advancing one second per reading."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def temp_storage_dir():
    """Create temporary storage directory."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def id_generator():
    """Sequential identifiers in ascending key order."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter):04d}"


@pytest.fixture
def registry(clock, id_generator):
    """Create registry service over in-memory stores."""
    return RegistryService(
        MemoryEntityStore(Blockchain),
        MemoryEntityStore(Token),
        id_generator=id_generator,
        clock=clock
    )


@pytest.fixture
def json_registry(temp_storage_dir):
    """Create registry service over JSON file stores."""
    return RegistryService.open(storage_dir=temp_storage_dir)


@pytest.fixture
def ethereum(registry):
    return registry.create_blockchain("Ethereum", "L1").unwrap()


@pytest.fixture
def token_payload(ethereum):
    """Valid token payload on the Ethereum fixture."""
    return {
        'name': 'Tether USD',
        'symbol': 'USDT',
        'decimals': 6,
        'total_supply': 1000000,
        'description': 'Dollar-pegged stablecoin',
        'contract_address': '0xdac17f958d2ee523a2206206994597c13d831ec7',
        'blockchain_id': ethereum.id,
    }


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "concurrency: mark test as a concurrency test"
    )
