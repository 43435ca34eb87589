"""Read definitions shared by the client, the booking machine and callers.

Each builder returns a :class:`QueryDefinition`: the cache key, the fetcher
and the options a consumer subscribes with.  Dependent reads come back
disabled until every input they need is known.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass

from pyreserva._api import reservations as reservations_api
from pyreserva._api import search as search_api
from pyreserva._api.identity import fetch_user
from pyreserva._constants import AVAILABILITY_PAGE_SIZE
from pyreserva._transport import ApiTransport
from pyreserva.cache.keys import QueryKey, make_query_key
from pyreserva.cache.policy import dependent_enabled
from pyreserva.cache.store import Fetcher, QueryOptions
from pyreserva.models.identity import Identity
from pyreserva.models.reservation import MealType, Reservation
from pyreserva.models.search import SearchPage, SearchParams, SearchStats, TableAvailability

SEARCH = "search"
SEARCH_DETAIL = "search-detail"
SEARCH_STATS = "search-stats"
RESERVATION_LIST = "reservation-list"
RESERVATION_DETAIL = "reservation-detail"
USER = "user"


@dataclass(frozen=True)
class QueryDefinition:
    key: QueryKey
    fetcher: Fetcher
    enabled: bool = True
    stale_time: float = 0.0

    @property
    def options(self) -> QueryOptions:
        return QueryOptions(enabled=self.enabled, stale_time=self.stale_time)


def availability_params(date: dt.date | None, meal_type: MealType | None) -> SearchParams:
    """Search parameters for the free tables of one date and meal type."""
    return SearchParams(
        page=1,
        size=AVAILABILITY_PAGE_SIZE,
        date=date,
        meal_type=meal_type,
        is_available=True,
    )


def search_tables(transport: ApiTransport, params: SearchParams, *, stale_time: float = 0.0) -> QueryDefinition:
    async def _fetch() -> SearchPage:
        return await search_api.search_tables(transport, params)

    return QueryDefinition(make_query_key(SEARCH, params.to_query()), _fetch, stale_time=stale_time)


def table_availability(
    transport: ApiTransport,
    date: dt.date | None,
    meal_type: MealType | None,
    *,
    stale_time: float = 0.0,
) -> QueryDefinition:
    """Free tables for a booking draft; disabled until both criteria are set."""
    params = availability_params(date, meal_type)

    async def _fetch() -> SearchPage:
        return await search_api.search_tables(transport, params)

    return QueryDefinition(
        make_query_key(SEARCH, params.to_query()),
        _fetch,
        enabled=dependent_enabled(date, meal_type),
        stale_time=stale_time,
    )


def search_detail(transport: ApiTransport, availability_id: str | None) -> QueryDefinition:
    async def _fetch() -> TableAvailability:
        assert availability_id is not None
        return await search_api.get_table_availability(transport, availability_id)

    return QueryDefinition(
        make_query_key(SEARCH_DETAIL, availability_id),
        _fetch,
        enabled=dependent_enabled(availability_id),
    )


def search_stats(transport: ApiTransport) -> QueryDefinition:
    async def _fetch() -> SearchStats:
        return await search_api.fetch_search_stats(transport)

    return QueryDefinition(make_query_key(SEARCH_STATS), _fetch)


def reservations(transport: ApiTransport, params: Mapping[str, str] | None = None) -> QueryDefinition:
    async def _fetch() -> list[Reservation]:
        return await reservations_api.list_reservations(transport, params)

    return QueryDefinition(make_query_key(RESERVATION_LIST, dict(params or {})), _fetch)


def user_reservations(transport: ApiTransport, user_id: int | str | None) -> QueryDefinition:
    async def _fetch() -> list[Reservation]:
        return await reservations_api.list_user_reservations(transport, user_id)

    return QueryDefinition(
        make_query_key(RESERVATION_LIST, USER, None if user_id is None else str(user_id)),
        _fetch,
        enabled=dependent_enabled(user_id),
    )


def reservation_detail(transport: ApiTransport, reservation_id: str | None) -> QueryDefinition:
    async def _fetch() -> Reservation:
        assert reservation_id is not None
        return await reservations_api.get_reservation(transport, reservation_id)

    return QueryDefinition(
        make_query_key(RESERVATION_DETAIL, reservation_id),
        _fetch,
        enabled=dependent_enabled(reservation_id),
    )


def user(transport: ApiTransport, user_id: int | str | None, *, stale_time: float = 0.0) -> QueryDefinition:
    key_id = None if user_id is None else str(user_id)

    async def _fetch() -> Identity:
        assert key_id
        return await fetch_user(transport, key_id)

    return QueryDefinition(
        make_query_key(USER, key_id),
        _fetch,
        enabled=dependent_enabled(key_id),
        stale_time=stale_time,
    )


def reservation_owner(
    transport: ApiTransport,
    reservation: Reservation | None,
    *,
    stale_time: float = 0.0,
) -> QueryDefinition:
    """Owner of a resolved reservation; disabled until the reservation is known."""
    owner_id = reservation.owner_id if reservation is not None else None
    return user(transport, owner_id or None, stale_time=stale_time)
