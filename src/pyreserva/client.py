"""High-level async client for the restaurant reservation services."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import aiohttp

from pyreserva import queries
from pyreserva._api._common import build_request
from pyreserva._middleware import AuthTeardownMiddleware, BearerTokenMiddleware, LoginRedirect
from pyreserva._transport import AiohttpSender, ApiTransport, Sender
from pyreserva.booking import BookingMachine
from pyreserva.cache.store import QueryCache, QuerySubscription
from pyreserva.config import ReservaConfig
from pyreserva.exceptions import ReservaConfigError
from pyreserva.models.identity import Identity, RegisterProfile
from pyreserva.models.reservation import CreateReservationRequest, Reservation, UpdateReservationRequest
from pyreserva.models.search import ReindexAck, SearchPage, SearchParams, SearchStats, TableAvailability
from pyreserva.mutations import MutationCoordinator, MutationKind
from pyreserva.notices import NoticeCallback, Notifier
from pyreserva.session import Session, SessionListener, SessionStore
from pyreserva.storage import FileSessionStorage, MemorySessionStorage, SessionStorage

_logger = logging.getLogger(__name__)


class ReservaClient:
    """Async client for the identity, reservation and search services.

    The client builds and owns the session store, the query cache and the
    mutation coordinator; nothing is global.

    Usage::

        async with ReservaClient(ReservaConfig.from_env()) as client:
            await client.login("alice", "secret123")
            page = await client.search_tables(SearchParams(meal_type="dinner"))
    """

    def __init__(
        self,
        config: ReservaConfig,
        *,
        session: aiohttp.ClientSession | None = None,
        sender: Sender | None = None,
        storage: SessionStorage | None = None,
        on_notice: NoticeCallback | None = None,
        on_login_required: Callable[[str], None] | None = None,
        current_location: Callable[[], str] | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._config = config
        self._external_session = session is not None
        self._http_session = session
        self._sender = sender
        if storage is None:
            storage = FileSessionStorage(config.session_file) if config.session_file else MemorySessionStorage()
        self._storage = storage
        self._notifier = Notifier(on_notice, enabled=config.notices_enabled)
        self._redirect = (
            LoginRedirect(on_login_required, config.login_entry_point, current_location)
            if on_login_required is not None
            else None
        )
        self._clock = clock
        self._transport: ApiTransport | None = None
        self._sessions: SessionStore | None = None
        self._cache: QueryCache | None = None
        self._mutations: MutationCoordinator | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ReservaClient:
        sender = self._sender
        if sender is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            sender = AiohttpSender(self._config, self._http_session)
        transport = ApiTransport(sender)
        sessions = SessionStore(transport, self._storage, notifier=self._notifier)
        transport.use(BearerTokenMiddleware(lambda: sessions.token))
        transport.use(AuthTeardownMiddleware(sessions.handle_unauthorized, self._redirect))
        cache = QueryCache(clock=self._clock) if self._clock is not None else QueryCache()

        self._transport = transport
        self._sessions = sessions
        self._cache = cache
        self._mutations = MutationCoordinator(transport, cache, sessions, notifier=self._notifier)
        sessions.restore()
        _logger.debug("Client ready (authenticated=%s)", sessions.current_session().is_authenticated)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if self._cache is not None:
            self._cache.clear()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._transport = None
        self._sessions = None
        self._cache = None
        self._mutations = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> ApiTransport:
        if self._transport is None:
            raise ReservaConfigError("Client not initialized. Use 'async with ReservaClient(...) as client:'")
        return self._transport

    @property
    def config(self) -> ReservaConfig:
        return self._config

    @property
    def transport(self) -> ApiTransport:
        return self._require_transport()

    @property
    def sessions(self) -> SessionStore:
        self._require_transport()
        assert self._sessions is not None
        return self._sessions

    @property
    def cache(self) -> QueryCache:
        self._require_transport()
        assert self._cache is not None
        return self._cache

    @property
    def mutations(self) -> MutationCoordinator:
        self._require_transport()
        assert self._mutations is not None
        return self._mutations

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(self, identifier: str, password: str) -> Identity:
        return await self.sessions.login(identifier, password)

    async def register(self, profile: RegisterProfile | Mapping[str, Any]) -> Identity:
        profile = build_request(RegisterProfile, profile)
        return await self.sessions.register(profile)

    def logout(self) -> None:
        self.sessions.logout()

    def current_session(self) -> Session:
        return self.sessions.current_session()

    def add_session_listener(self, callback: SessionListener) -> Callable[[], None]:
        return self.sessions.add_listener(callback)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def watch(
        self,
        definition: queries.QueryDefinition,
        *,
        on_success: Callable[[Any], None] | None = None,
        on_error: Callable[[BaseException], None] | None = None,
    ) -> QuerySubscription:
        """Subscribe to a read built by :mod:`pyreserva.queries`."""
        return self.cache.subscribe(
            definition.key,
            definition.fetcher,
            definition.options,
            on_success=on_success,
            on_error=on_error,
        )

    async def _read(self, definition: queries.QueryDefinition) -> Any:
        return await self.cache.fetch(definition.key, definition.fetcher, definition.options)

    async def search_tables(self, params: SearchParams | None = None) -> SearchPage:
        params = params or SearchParams(size=self._config.default_page_size)
        result: SearchPage = await self._read(
            queries.search_tables(self._require_transport(), params, stale_time=self._config.search_stale_time)
        )
        return result

    async def get_table_availability(self, availability_id: str) -> TableAvailability:
        result: TableAvailability = await self._read(
            queries.search_detail(self._require_transport(), availability_id)
        )
        return result

    async def get_search_stats(self) -> SearchStats:
        result: SearchStats = await self._read(queries.search_stats(self._require_transport()))
        return result

    async def list_reservations(self, params: Mapping[str, str] | None = None) -> list[Reservation]:
        result: list[Reservation] = await self._read(queries.reservations(self._require_transport(), params))
        return result

    async def list_user_reservations(self, user_id: int | str | None = None) -> list[Reservation]:
        """Reservations of *user_id*, defaulting to the logged-in user.

        Returns ``[]`` without any request when no user is known.
        """
        if user_id is None:
            user_id = self.current_session().user_id
        definition = queries.user_reservations(self._require_transport(), user_id)
        if not definition.enabled:
            return []
        result: list[Reservation] = await self._read(definition)
        return result

    async def get_reservation(self, reservation_id: str) -> Reservation:
        result: Reservation = await self._read(queries.reservation_detail(self._require_transport(), reservation_id))
        return result

    async def get_user(self, user_id: int | str) -> Identity:
        result: Identity = await self._read(
            queries.user(self._require_transport(), user_id, stale_time=self._config.owner_stale_time)
        )
        return result

    async def get_reservation_owner(self, reservation: Reservation) -> Identity | None:
        definition = queries.reservation_owner(
            self._require_transport(), reservation, stale_time=self._config.owner_stale_time
        )
        if not definition.enabled:
            return None
        result: Identity = await self._read(definition)
        return result

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def execute(self, kind: MutationKind, payload: Any = None) -> Any:
        return await self.mutations.execute(kind, payload)

    async def create_reservation(self, request: CreateReservationRequest | Mapping[str, Any]) -> Reservation:
        return await self.mutations.create_reservation(request)

    async def update_reservation(
        self,
        reservation_id: str,
        changes: UpdateReservationRequest | Mapping[str, Any],
    ) -> Reservation:
        return await self.mutations.update_reservation(reservation_id, changes)

    async def delete_reservation(self, reservation_id: str) -> None:
        await self.mutations.delete_reservation(reservation_id)

    async def confirm_reservation(self, reservation: Reservation, notes: str | None = None) -> Reservation:
        return await self.mutations.confirm_reservation(reservation, notes)

    async def reindex_search(self) -> ReindexAck:
        return await self.mutations.reindex_search()

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def new_booking(self) -> BookingMachine:
        return BookingMachine(
            self._require_transport(),
            self.cache,
            self.mutations,
            self.sessions,
            availability_stale_time=self._config.availability_stale_time,
        )
