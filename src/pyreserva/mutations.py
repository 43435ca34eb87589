"""Writes, and the cache invalidation each one implies.

A mutation invalidates only after the server has accepted it; a failed
mutation leaves the cache untouched and re-raises the original error.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pyreserva._api import reservations as reservations_api
from pyreserva._api import search as search_api
from pyreserva._api._common import build_request
from pyreserva._transport import ApiTransport
from pyreserva.cache.store import QueryCache
from pyreserva.exceptions import (
    ReservaAuthorizationError,
    ReservaConflictError,
    ReservaError,
    ReservaValidationError,
)
from pyreserva.models.reservation import (
    ConfirmReservationRequest,
    CreateReservationRequest,
    Reservation,
    UpdateReservationRequest,
)
from pyreserva.models.search import ReindexAck
from pyreserva.notices import Notifier
from pyreserva.queries import RESERVATION_DETAIL, RESERVATION_LIST, SEARCH, SEARCH_DETAIL, SEARCH_STATS
from pyreserva.session import SessionStore

_logger = logging.getLogger(__name__)


class MutationKind(StrEnum):
    CREATE_RESERVATION = "create_reservation"
    UPDATE_RESERVATION = "update_reservation"
    DELETE_RESERVATION = "delete_reservation"
    CONFIRM_RESERVATION = "confirm_reservation"
    REINDEX_SEARCH = "reindex_search"


_RESERVATION_WRITE_EDGES = frozenset({SEARCH, SEARCH_DETAIL, RESERVATION_LIST, RESERVATION_DETAIL})

#: Namespaces whose cached reads a successful mutation makes stale.
INVALIDATION_EDGES: Mapping[MutationKind, frozenset[str]] = {
    MutationKind.CREATE_RESERVATION: _RESERVATION_WRITE_EDGES,
    MutationKind.UPDATE_RESERVATION: _RESERVATION_WRITE_EDGES,
    MutationKind.DELETE_RESERVATION: _RESERVATION_WRITE_EDGES,
    MutationKind.CONFIRM_RESERVATION: _RESERVATION_WRITE_EDGES,
    MutationKind.REINDEX_SEARCH: frozenset({SEARCH, SEARCH_DETAIL, SEARCH_STATS}),
}

_SUCCESS_MESSAGES: dict[MutationKind, str] = {
    MutationKind.CREATE_RESERVATION: "Reservation created",
    MutationKind.UPDATE_RESERVATION: "Reservation updated",
    MutationKind.DELETE_RESERVATION: "Reservation deleted",
    MutationKind.CONFIRM_RESERVATION: "Reservation confirmed",
    MutationKind.REINDEX_SEARCH: "Search reindex started",
}

_FAILURE_MESSAGES: dict[MutationKind, str] = {
    MutationKind.CREATE_RESERVATION: "Failed to create reservation",
    MutationKind.UPDATE_RESERVATION: "Failed to update reservation",
    MutationKind.DELETE_RESERVATION: "Failed to delete reservation",
    MutationKind.CONFIRM_RESERVATION: "Failed to confirm reservation",
    MutationKind.REINDEX_SEARCH: "Failed to reindex search",
}


@dataclass(frozen=True)
class ReservationUpdate:
    reservation_id: str
    changes: UpdateReservationRequest | Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ReservationDeletion:
    reservation_id: str


@dataclass(frozen=True)
class ReservationConfirmation:
    reservation: Reservation
    notes: str | None = None


class MutationCoordinator:
    """Runs writes and applies :data:`INVALIDATION_EDGES` on success."""

    def __init__(
        self,
        transport: ApiTransport,
        cache: QueryCache,
        sessions: SessionStore,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._sessions = sessions
        self._notifier = notifier or Notifier()

    async def execute(self, kind: MutationKind, payload: Any = None) -> Any:
        """Perform *kind* with *payload*.

        Raises
        ------
        ReservaAuthorizationError
            Confirm requested by someone who is neither the owner nor an
            admin (no request is sent).
        ReservaConflictError
            Confirm requested for a reservation that is not pending (no
            request is sent), or the server reports a concurrent change.
        """
        kind = MutationKind(kind)
        try:
            result = await self._dispatch(kind, payload)
        except ReservaError as exc:
            _logger.debug("Mutation %s failed: %s", kind.value, exc)
            self._notifier.error(f"{_FAILURE_MESSAGES[kind]}: {exc}", kind=exc.kind)
            raise
        for namespace in sorted(INVALIDATION_EDGES[kind]):
            self._cache.invalidate(namespace)
        self._notifier.success(_SUCCESS_MESSAGES[kind])
        return result

    async def _dispatch(self, kind: MutationKind, payload: Any) -> Any:
        if kind == MutationKind.CREATE_RESERVATION:
            request = _coerce(CreateReservationRequest, payload)
            return await reservations_api.create_reservation(self._transport, request)
        if kind == MutationKind.UPDATE_RESERVATION:
            update = _expect(ReservationUpdate, payload)
            request = _coerce(UpdateReservationRequest, update.changes)
            return await reservations_api.update_reservation(self._transport, update.reservation_id, request)
        if kind == MutationKind.DELETE_RESERVATION:
            deletion = _expect(ReservationDeletion, payload)
            await reservations_api.delete_reservation(self._transport, deletion.reservation_id)
            return None
        if kind == MutationKind.CONFIRM_RESERVATION:
            confirmation = _expect(ReservationConfirmation, payload)
            self._check_can_confirm(confirmation.reservation)
            request = ConfirmReservationRequest(confirmation_notes=confirmation.notes or None)
            return await reservations_api.confirm_reservation(
                self._transport, confirmation.reservation.id, request
            )
        return await search_api.trigger_reindex(self._transport)

    def _check_can_confirm(self, reservation: Reservation) -> None:
        session = self._sessions.current_session()
        if session.identity is None:
            raise ReservaAuthorizationError("Log in to confirm reservations")
        if not (session.is_admin or reservation.is_owned_by(session.identity.id)):
            raise ReservaAuthorizationError("Only the owner or an admin can confirm this reservation")
        if not reservation.is_confirmable:
            raise ReservaConflictError(f"Reservation is already {reservation.status.value}")

    async def create_reservation(self, request: CreateReservationRequest | Mapping[str, Any]) -> Reservation:
        result: Reservation = await self.execute(MutationKind.CREATE_RESERVATION, request)
        return result

    async def update_reservation(
        self,
        reservation_id: str,
        changes: UpdateReservationRequest | Mapping[str, Any],
    ) -> Reservation:
        result: Reservation = await self.execute(
            MutationKind.UPDATE_RESERVATION, ReservationUpdate(reservation_id, changes)
        )
        return result

    async def delete_reservation(self, reservation_id: str) -> None:
        await self.execute(MutationKind.DELETE_RESERVATION, ReservationDeletion(reservation_id))

    async def confirm_reservation(self, reservation: Reservation, notes: str | None = None) -> Reservation:
        result: Reservation = await self.execute(
            MutationKind.CONFIRM_RESERVATION, ReservationConfirmation(reservation, notes)
        )
        return result

    async def reindex_search(self) -> ReindexAck:
        result: ReindexAck = await self.execute(MutationKind.REINDEX_SEARCH)
        return result


def _coerce(model: Any, payload: Any) -> Any:
    if isinstance(payload, model):
        return payload
    if isinstance(payload, Mapping):
        return build_request(model, payload)
    raise ReservaValidationError(f"Expected {model.__name__}, got {type(payload).__name__}")


def _expect(payload_type: type, payload: Any) -> Any:
    if not isinstance(payload, payload_type):
        raise ReservaValidationError(f"Expected {payload_type.__name__}, got {type(payload).__name__}")
    return payload
