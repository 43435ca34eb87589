from __future__ import annotations

import pytest

from pyreserva import queries
from pyreserva.cache import QueryStatus, make_query_key
from pyreserva.client import ReservaClient
from pyreserva.config import ReservaConfig
from pyreserva.exceptions import ReservaConfigError, ReservaNotFoundError
from pyreserva.models import MealType, Reservation, SearchParams
from pyreserva.storage import FileSessionStorage, MemorySessionStorage
from tests.fakes import FakeReservaBackend


def test_client_requires_async_context(config: ReservaConfig) -> None:
    client = ReservaClient(config)
    with pytest.raises(ReservaConfigError):
        client.current_session()
    with pytest.raises(ReservaConfigError):
        client.new_booking()


def test_storage_follows_session_file(config: ReservaConfig, tmp_path) -> None:
    assert isinstance(ReservaClient(config)._storage, MemorySessionStorage)
    persisted = ReservaConfig(session_file=str(tmp_path / "session.json"))
    assert isinstance(ReservaClient(persisted)._storage, FileSessionStorage)


@pytest.mark.asyncio
async def test_default_search_uses_configured_page_size(config: ReservaConfig, backend: FakeReservaBackend) -> None:
    small = ReservaConfig(
        users_base_url=config.users_base_url,
        reservations_base_url=config.reservations_base_url,
        search_base_url=config.search_base_url,
        default_page_size=2,
    )
    async with ReservaClient(small, sender=backend) as client:
        page = await client.search_tables()
    assert page.total == 3
    assert len(page.results) == 2
    assert backend.requests[-1].params["size"] == "2"


@pytest.mark.asyncio
async def test_search_pages_are_served_from_cache_while_fresh(
    client: ReservaClient, backend: FakeReservaBackend
) -> None:
    params = SearchParams(meal_type=MealType.DINNER)
    first = await client.search_tables(params)
    second = await client.search_tables(SearchParams(meal_type="dinner"))
    assert first == second
    assert backend.calls("GET", "/api/search") == 1


@pytest.mark.asyncio
async def test_user_reservations_without_a_user_make_no_request(
    client: ReservaClient, backend: FakeReservaBackend
) -> None:
    assert await client.list_user_reservations() == []
    assert backend.count_path_prefix("/api/reservations") == 0
    assert client.cache.keys() == []


@pytest.mark.asyncio
async def test_user_reservations_default_to_session_user(client: ReservaClient, backend: FakeReservaBackend) -> None:
    await client.login("alice", "secret123")
    await client.create_reservation(
        {
            "owner_id": "1",
            "table_number": 3,
            "guests": 2,
            "date_time": "2025-06-01T21:00:00",
            "meal_type": "dinner",
        }
    )
    mine = await client.list_user_reservations()
    assert [r.table_number for r in mine] == [3]
    assert backend.calls("GET", "/api/reservations/user/1") == 1
    assert await client.list_user_reservations(2) == []


@pytest.mark.asyncio
async def test_reservation_owner_is_resolved_once_reservation_is_known(
    client: ReservaClient, backend: FakeReservaBackend
) -> None:
    await client.login("alice", "secret123")
    reservation = await client.create_reservation(
        {
            "owner_id": "1",
            "table_number": 7,
            "guests": 3,
            "date_time": "2025-06-01T21:00:00",
            "meal_type": "dinner",
        }
    )
    assert await client.get_reservation_owner(Reservation(id="pending")) is None

    fetched = await client.get_reservation(reservation.id)
    owner = await client.get_reservation_owner(fetched)
    assert owner is not None and owner.username == "alice"
    again = await client.get_user(1)
    assert again == owner
    assert backend.calls("GET", "/api/users/1") == 1


@pytest.mark.asyncio
async def test_missing_user_is_not_found(client: ReservaClient) -> None:
    with pytest.raises(ReservaNotFoundError):
        await client.get_user(404)


@pytest.mark.asyncio
async def test_disabled_watch_stays_idle(client: ReservaClient, backend: FakeReservaBackend) -> None:
    definition = queries.table_availability(client.transport, None, MealType.DINNER)
    assert not definition.enabled
    subscription = client.watch(definition)
    assert subscription.status == QueryStatus.IDLE
    assert not subscription.is_fetching
    assert backend.requests == []
    subscription.unsubscribe()


@pytest.mark.asyncio
async def test_watch_reports_results_to_callbacks(client: ReservaClient) -> None:
    seen: list[int] = []
    definition = queries.search_stats(client.transport)
    subscription = client.watch(definition, on_success=lambda stats: seen.append(stats.documents))
    stats = await subscription.result()
    assert stats.documents == 3
    assert seen == [3]
    assert client.cache.get_entry(make_query_key("search-stats")) is not None
    subscription.unsubscribe()


@pytest.mark.asyncio
async def test_reindex_refreshes_stats(client: ReservaClient, backend: FakeReservaBackend) -> None:
    await client.login("root", "adminpw")
    await client.get_search_stats()
    ack = await client.reindex_search()
    assert ack.status == "reindexing"
    await client.get_search_stats()
    assert backend.calls("GET", "/api/search/stats") == 2


@pytest.mark.asyncio
async def test_exit_clears_cache(config: ReservaConfig, backend: FakeReservaBackend) -> None:
    async with ReservaClient(config, sender=backend) as client:
        watched = client.watch(queries.search_stats(client.transport))
        await watched.result()
        cache = client.cache
        assert cache.keys()
    assert cache.keys() == []
    with pytest.raises(ReservaConfigError):
        client.cache
