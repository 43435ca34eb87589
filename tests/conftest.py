from __future__ import annotations

import pytest
import pytest_asyncio

from pyreserva.client import ReservaClient
from pyreserva.config import ReservaConfig
from pyreserva.notices import Notice
from tests.fakes import FakeReservaBackend


@pytest.fixture
def backend() -> FakeReservaBackend:
    fake = FakeReservaBackend()
    fake.add_user("alice", "secret123", user_id=1)
    fake.add_user("bob", "hunter22", user_id=2)
    fake.add_user("root", "adminpw", role="admin", user_id=9)
    fake.add_tables("2025-06-01", "dinner", {3: 2, 5: 4, 7: 6})
    return fake


@pytest.fixture
def config() -> ReservaConfig:
    return ReservaConfig(
        users_base_url="http://users.test",
        reservations_base_url="http://reservations.test",
        search_base_url="http://search.test",
    )


@pytest.fixture
def notices() -> list[Notice]:
    return []


@pytest_asyncio.fixture
async def client(config: ReservaConfig, backend: FakeReservaBackend, notices: list[Notice]):
    async with ReservaClient(config, sender=backend, on_notice=notices.append) as c:
        yield c
