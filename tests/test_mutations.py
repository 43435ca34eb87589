from __future__ import annotations

import datetime as dt

import pytest

from pyreserva import queries
from pyreserva.cache import make_query_key
from pyreserva.client import ReservaClient
from pyreserva.exceptions import (
    ReservaAuthorizationError,
    ReservaConflictError,
    ReservaTransportError,
    ReservaValidationError,
)
from pyreserva.models import MealType, Reservation, ReservationStatus, SearchParams
from pyreserva.mutations import INVALIDATION_EDGES, MutationKind, ReservationDeletion, ReservationUpdate
from pyreserva.notices import Notice, NoticeLevel
from tests.fakes import FakeReservaBackend, response


def _create_payload(owner_id: str = "1", table_number: int = 5) -> dict:
    return {
        "owner_id": owner_id,
        "table_number": table_number,
        "guests": 2,
        "date_time": dt.datetime(2025, 6, 1, 21, 0),
        "meal_type": MealType.DINNER,
    }


def test_every_reservation_write_invalidates_search_and_lists() -> None:
    for kind in (
        MutationKind.CREATE_RESERVATION,
        MutationKind.UPDATE_RESERVATION,
        MutationKind.DELETE_RESERVATION,
        MutationKind.CONFIRM_RESERVATION,
    ):
        assert {"search", "reservation-list", "reservation-detail"} <= INVALIDATION_EDGES[kind]
    assert INVALIDATION_EDGES[MutationKind.REINDEX_SEARCH] == {"search", "search-detail", "search-stats"}


@pytest.mark.asyncio
async def test_successful_create_invalidates_cached_reads(
    client: ReservaClient, backend: FakeReservaBackend, notices: list[Notice]
) -> None:
    await client.login("alice", "secret123")
    definition = queries.search_tables(client.transport, SearchParams(meal_type=MealType.DINNER), stale_time=60)
    watched = client.watch(definition)
    await watched.result()
    searches_before = backend.calls("GET", "/api/search")

    reservation = await client.create_reservation(_create_payload())

    assert reservation.owner_id == "1"
    assert reservation.status is ReservationStatus.PENDING
    await watched.result()
    assert backend.calls("GET", "/api/search") == searches_before + 1
    assert notices[-1] == Notice(level=NoticeLevel.SUCCESS, message="Reservation created")


@pytest.mark.asyncio
async def test_failed_mutation_leaves_cache_untouched(
    client: ReservaClient, backend: FakeReservaBackend, notices: list[Notice]
) -> None:
    await client.login("alice", "secret123")
    page = await client.search_tables(SearchParams(meal_type=MealType.DINNER))
    searches_before = backend.calls("GET", "/api/search")
    backend.overrides[("POST", "/api/reservations")] = response(500, {"error": "database unavailable"})

    with pytest.raises(ReservaTransportError):
        await client.create_reservation(_create_payload())

    again = await client.search_tables(SearchParams(meal_type=MealType.DINNER))
    assert again == page
    assert backend.calls("GET", "/api/search") == searches_before
    key = make_query_key("search", SearchParams(meal_type=MealType.DINNER).to_query())
    snapshot = client.cache.get_entry(key)
    assert snapshot is not None and not snapshot.invalidated
    assert notices[-1].level is NoticeLevel.ERROR


@pytest.mark.asyncio
async def test_server_conflict_surfaces_unchanged(client: ReservaClient, backend: FakeReservaBackend) -> None:
    await client.login("alice", "secret123")
    await client.create_reservation(_create_payload())

    with pytest.raises(ReservaConflictError) as exc_info:
        await client.create_reservation(_create_payload())
    assert "already reserved" in exc_info.value.detail


@pytest.mark.asyncio
async def test_client_side_validation_sends_nothing(client: ReservaClient, backend: FakeReservaBackend) -> None:
    await client.login("alice", "secret123")
    with pytest.raises(ReservaValidationError):
        await client.create_reservation({**_create_payload(), "guests": 0})
    assert backend.calls("POST", "/api/reservations") == 0


@pytest.mark.asyncio
async def test_update_and_delete_via_execute(client: ReservaClient, backend: FakeReservaBackend) -> None:
    await client.login("alice", "secret123")
    created = await client.create_reservation(_create_payload())

    updated = await client.execute(
        MutationKind.UPDATE_RESERVATION, ReservationUpdate(created.id, {"guests": 3, "special_requests": "window"})
    )
    assert updated.guests == 3
    assert backend.reservations[created.id]["special_requests"] == "window"

    assert await client.execute(MutationKind.DELETE_RESERVATION, ReservationDeletion(created.id)) is None
    assert created.id not in backend.reservations


@pytest.mark.asyncio
async def test_wrong_payload_type_is_validation_error(client: ReservaClient) -> None:
    with pytest.raises(ReservaValidationError):
        await client.execute(MutationKind.DELETE_RESERVATION, "res-1")


@pytest.mark.asyncio
async def test_owner_can_confirm_pending_reservation(client: ReservaClient) -> None:
    await client.login("alice", "secret123")
    created = await client.create_reservation(_create_payload())

    confirmed = await client.confirm_reservation(created, notes="anniversary")
    assert confirmed.status is ReservationStatus.CONFIRMED


@pytest.mark.asyncio
async def test_admin_can_confirm_someone_elses_reservation(client: ReservaClient) -> None:
    await client.login("alice", "secret123")
    created = await client.create_reservation(_create_payload())
    client.logout()

    await client.login("root", "adminpw")
    confirmed = await client.confirm_reservation(created)
    assert confirmed.status is ReservationStatus.CONFIRMED


@pytest.mark.asyncio
async def test_confirm_by_stranger_is_rejected_before_any_request(
    client: ReservaClient, backend: FakeReservaBackend
) -> None:
    reservation = Reservation(id="res-42", owner_id="1", status=ReservationStatus.PENDING)
    await client.login("bob", "hunter22")
    requests_before = len(backend.requests)

    with pytest.raises(ReservaAuthorizationError):
        await client.confirm_reservation(reservation)
    assert len(backend.requests) == requests_before


@pytest.mark.asyncio
async def test_confirm_while_anonymous_is_rejected_before_any_request(
    client: ReservaClient, backend: FakeReservaBackend
) -> None:
    reservation = Reservation(id="res-42", owner_id="1")
    with pytest.raises(ReservaAuthorizationError):
        await client.confirm_reservation(reservation)
    assert backend.requests == []


@pytest.mark.asyncio
async def test_confirm_non_pending_is_conflict_before_any_request(
    client: ReservaClient, backend: FakeReservaBackend
) -> None:
    await client.login("alice", "secret123")
    reservation = Reservation(id="res-42", owner_id="1", status=ReservationStatus.CONFIRMED)
    requests_before = len(backend.requests)

    with pytest.raises(ReservaConflictError):
        await client.confirm_reservation(reservation)
    assert len(backend.requests) == requests_before


@pytest.mark.asyncio
async def test_reindex_invalidates_search_stats(client: ReservaClient, backend: FakeReservaBackend) -> None:
    watched = client.watch(queries.search_stats(client.transport))
    stats = await watched.result()
    assert stats.documents == 3
    kept = await client.search_tables(SearchParams(meal_type=MealType.DINNER))

    ack = await client.reindex_search()
    assert ack.status == "reindexing"
    await watched.result()
    assert backend.calls("GET", "/api/search/stats") == 2
    assert client.cache.get_entry(make_query_key("search", SearchParams(meal_type=MealType.DINNER).to_query())) is None
    assert await client.search_tables(SearchParams(meal_type=MealType.DINNER)) == kept
