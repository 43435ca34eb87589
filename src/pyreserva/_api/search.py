"""Search/availability service endpoints."""

from __future__ import annotations

from pyreserva._api._common import decode_model, path_param
from pyreserva._constants import SEARCH_DETAIL_PATH, SEARCH_PATH, SEARCH_REINDEX_PATH, SEARCH_STATS_PATH
from pyreserva._transport import ApiTransport, Service
from pyreserva.models.search import ReindexAck, SearchPage, SearchParams, SearchStats, TableAvailability


async def search_tables(transport: ApiTransport, params: SearchParams) -> SearchPage:
    body = await transport.request("GET", Service.SEARCH, SEARCH_PATH, params=params.to_query())
    return decode_model(SearchPage, body, endpoint=SEARCH_PATH)


async def get_table_availability(transport: ApiTransport, availability_id: str) -> TableAvailability:
    endpoint = SEARCH_DETAIL_PATH.format(availability_id=path_param(availability_id))
    body = await transport.request("GET", Service.SEARCH, endpoint)
    return decode_model(TableAvailability, body, endpoint=endpoint)


async def fetch_search_stats(transport: ApiTransport) -> SearchStats:
    body = await transport.request("GET", Service.SEARCH, SEARCH_STATS_PATH)
    return decode_model(SearchStats, body, endpoint=SEARCH_STATS_PATH)


async def trigger_reindex(transport: ApiTransport) -> ReindexAck:
    body = await transport.request("POST", Service.SEARCH, SEARCH_REINDEX_PATH)
    return ReindexAck.from_body(body)
