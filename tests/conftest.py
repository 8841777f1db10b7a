# tests/conftest.py
"""
Shared fixtures for the bosschat test suite.
"""

import pytest
import pytest_asyncio

from .fakes import FakeClock, FakeProvider, make_sqlite_gateway


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def gateway():
    gateway = make_sqlite_gateway()
    await gateway.create_tables()
    yield gateway
    await gateway.close()
