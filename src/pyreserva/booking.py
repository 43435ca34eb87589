"""Multi-step reservation booking.

A :class:`BookingMachine` walks one draft through::

    SELECTING_CRITERIA -> LOADING_AVAILABILITY -> SELECTING_TABLE
        -> READY_TO_SUBMIT -> SUBMITTING -> SUBMITTED | SUBMIT_FAILED

Availability is read through the shared query cache, so two drafts for the
same date and meal type share one fetch.  A conflict on submit means the
cached availability is known to be stale: the selection is dropped and the
availability read is forced to refetch before any table is offered again.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import ValidationError

from pyreserva import queries
from pyreserva._api._common import build_request
from pyreserva._constants import DEFAULT_MEAL_TIMES, MAX_GUESTS, MIN_GUESTS
from pyreserva._transport import ApiTransport
from pyreserva.cache.keys import QueryKey
from pyreserva.cache.store import QueryCache, QueryStatus, QuerySubscription
from pyreserva.exceptions import (
    BookingStateError,
    ReservaAuthorizationError,
    ReservaConflictError,
    ReservaValidationError,
)
from pyreserva.models.reservation import CreateReservationRequest, MealType, Reservation
from pyreserva.models.search import SearchPage, TableAvailability, TableRef
from pyreserva.mutations import MutationCoordinator
from pyreserva.session import SessionStore

_logger = logging.getLogger(__name__)


class BookingState(StrEnum):
    SELECTING_CRITERIA = "selecting_criteria"
    LOADING_AVAILABILITY = "loading_availability"
    SELECTING_TABLE = "selecting_table"
    READY_TO_SUBMIT = "ready_to_submit"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"
    SUBMIT_FAILED = "submit_failed"


_EDITABLE_STATES = frozenset(
    {
        BookingState.SELECTING_CRITERIA,
        BookingState.LOADING_AVAILABILITY,
        BookingState.SELECTING_TABLE,
        BookingState.READY_TO_SUBMIT,
        BookingState.SUBMIT_FAILED,
    }
)
_TABLE_STATES = frozenset(
    {BookingState.SELECTING_TABLE, BookingState.READY_TO_SUBMIT, BookingState.SUBMIT_FAILED}
)


@dataclass
class ReservationDraft:
    """What the user has chosen so far.

    ``guest_count`` never exceeds ``selected_table.capacity``; both are
    cleared whenever ``date`` or ``meal_type`` changes.
    """

    date: dt.date | None = None
    meal_type: MealType | None = None
    reservation_time: dt.time | None = None
    selected_table: TableRef | None = None
    guest_count: int | None = None
    notes: str = ""

    def scheduled_at(self) -> dt.datetime | None:
        """Local date and time the reservation is for, with its UTC offset.

        Meal defaults fill a missing time.
        """
        if self.date is None or self.meal_type is None:
            return None
        at = self.reservation_time or DEFAULT_MEAL_TIMES[self.meal_type.value]
        return dt.datetime.combine(self.date, at).astimezone()

    def clear_selection(self) -> None:
        self.selected_table = None
        self.guest_count = None


def _parse_date(value: dt.date | str | None) -> dt.date | None:
    if value is None or value == "":
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    try:
        return dt.date.fromisoformat(value)
    except ValueError as exc:
        raise ReservaValidationError(f"Invalid date: {value!r}") from exc


def _parse_meal_type(value: MealType | str | None) -> MealType | None:
    if value is None or value == "":
        return None
    try:
        return MealType(value)
    except ValueError as exc:
        raise ReservaValidationError(f"Invalid meal type: {value!r}") from exc


class BookingMachine:
    """Drives one reservation draft from criteria to a created reservation.

    Criteria setters subscribe the availability read and therefore must be
    called from a running event loop.
    """

    def __init__(
        self,
        transport: ApiTransport,
        cache: QueryCache,
        mutations: MutationCoordinator,
        sessions: SessionStore,
        *,
        availability_stale_time: float = 0.0,
    ) -> None:
        self._transport = transport
        self._cache = cache
        self._mutations = mutations
        self._sessions = sessions
        self._stale_time = availability_stale_time
        self._state = BookingState.SELECTING_CRITERIA
        self._draft: ReservationDraft | None = ReservationDraft()
        self._availability: QuerySubscription | None = None
        self._availability_key: QueryKey | None = None
        self._reservation: Reservation | None = None

    @property
    def state(self) -> BookingState:
        return self._state

    @property
    def draft(self) -> ReservationDraft | None:
        """The draft being edited; ``None`` once submitted."""
        return self._draft

    @property
    def reservation(self) -> Reservation | None:
        return self._reservation

    @property
    def availability_key(self) -> QueryKey | None:
        return self._availability_key

    @property
    def availability_error(self) -> BaseException | None:
        if self._availability is None or self._availability.status != QueryStatus.ERROR:
            return None
        return self._availability.error

    @property
    def available_tables(self) -> list[TableAvailability]:
        """Free tables for the current criteria; empty until they are loaded."""
        if self._state not in _TABLE_STATES or self._availability is None:
            return []
        page = self._availability.data
        if not isinstance(page, SearchPage):
            return []
        return [table for table in page.results if table.is_available]

    def _editable_draft(self) -> ReservationDraft:
        if self._state not in _EDITABLE_STATES or self._draft is None:
            raise BookingStateError(f"Draft cannot be edited while {self._state.value}")
        return self._draft

    def set_date(self, value: dt.date | str | None) -> None:
        draft = self._editable_draft()
        self._apply_criteria(_parse_date(value), draft.meal_type)

    def set_meal_type(self, value: MealType | str | None) -> None:
        draft = self._editable_draft()
        self._apply_criteria(draft.date, _parse_meal_type(value))

    def set_criteria(
        self,
        date: dt.date | str | None,
        meal_type: MealType | str | None,
        *,
        reservation_time: dt.time | None = None,
    ) -> None:
        draft = self._editable_draft()
        if reservation_time is not None:
            draft.reservation_time = reservation_time
        self._apply_criteria(_parse_date(date), _parse_meal_type(meal_type))

    def set_reservation_time(self, value: dt.time | None) -> None:
        self._editable_draft().reservation_time = value

    def set_notes(self, notes: str) -> None:
        self._editable_draft().notes = notes

    def _apply_criteria(self, date: dt.date | None, meal_type: MealType | None) -> None:
        draft = self._editable_draft()
        if (date, meal_type) == (draft.date, draft.meal_type) and self._state != BookingState.SELECTING_CRITERIA:
            return
        draft.date, draft.meal_type = date, meal_type
        draft.clear_selection()
        self._watch_availability()

    def _watch_availability(self) -> None:
        self._release_availability()
        draft = self._draft
        assert draft is not None
        definition = queries.table_availability(
            self._transport, draft.date, draft.meal_type, stale_time=self._stale_time
        )
        if not definition.enabled:
            self._state = BookingState.SELECTING_CRITERIA
            return
        self._state = BookingState.LOADING_AVAILABILITY
        self._availability_key = definition.key
        self._availability = self._cache.subscribe(
            definition.key,
            definition.fetcher,
            definition.options,
            on_success=self._on_availability,
            on_error=self._on_availability_error,
        )
        if self._availability.status == QueryStatus.SUCCESS and not self._availability.is_fetching:
            self._state = BookingState.SELECTING_TABLE

    def _release_availability(self) -> None:
        if self._availability is not None:
            self._availability.unsubscribe()
        self._availability = None
        self._availability_key = None

    def _on_availability(self, page: Any) -> None:
        if self._state == BookingState.LOADING_AVAILABILITY:
            self._state = BookingState.SELECTING_TABLE
            return
        draft = self._draft
        if self._state not in _TABLE_STATES or draft is None or draft.selected_table is None:
            return
        selected = draft.selected_table.table_number
        if not any(table.table_number == selected for table in self.available_tables):
            _logger.debug("Selected table %s is no longer available", selected)
            draft.clear_selection()
            self._state = BookingState.SELECTING_TABLE

    def _on_availability_error(self, exc: BaseException) -> None:
        _logger.debug("Availability read failed: %s", exc)

    async def load_availability(self) -> list[TableAvailability]:
        """Wait for the availability read of the current criteria.

        Raises the stored fetch error, if any; call
        :meth:`refresh_availability` to try again.
        """
        if self._availability is None:
            raise BookingStateError("Choose a date and meal type first")
        await self._availability.result()
        return self.available_tables

    async def refresh_availability(self) -> list[TableAvailability]:
        if self._availability is None:
            raise BookingStateError("Choose a date and meal type first")
        await self._availability.refetch()
        return self.available_tables

    def select_table(self, table: TableAvailability | TableRef | int) -> TableRef:
        """Pick one of :attr:`available_tables`.

        The guest count defaults to the table's capacity, capped at the
        service's maximum party size.
        """
        draft = self._editable_draft()
        if self._state not in _TABLE_STATES:
            raise BookingStateError(f"Cannot select a table while {self._state.value}")
        number = table if isinstance(table, int) else table.table_number
        match = next((t for t in self.available_tables if t.table_number == number), None)
        if match is None:
            raise ReservaValidationError(f"Table {number} is not available for the chosen date and meal")
        try:
            draft.selected_table = TableRef.from_availability(match)
        except ValidationError as exc:
            raise ReservaValidationError(
                f"Table {number} cannot be booked", detail=f"capacity {match.capacity!r}"
            ) from exc
        draft.guest_count = min(match.capacity, MAX_GUESTS)
        self._state = BookingState.READY_TO_SUBMIT
        return draft.selected_table

    def set_guest_count(self, count: int) -> None:
        """Set the party size; values above the table's capacity are rejected."""
        draft = self._editable_draft()
        table = draft.selected_table
        if table is None:
            raise BookingStateError("Select a table before setting the guest count")
        limit = min(table.capacity, MAX_GUESTS)
        if isinstance(count, bool) or not isinstance(count, int) or not MIN_GUESTS <= count <= limit:
            raise ReservaValidationError(
                f"Guest count must be between {MIN_GUESTS} and {limit} for table {table.table_number}",
                detail=f"got {count!r}",
            )
        draft.guest_count = count
        if self._state == BookingState.SELECTING_TABLE:
            self._state = BookingState.READY_TO_SUBMIT

    async def submit(self) -> Reservation | None:
        """Create the reservation.

        Returns ``None`` without doing anything while a submit is already
        running.

        Raises
        ------
        ReservaConflictError
            The table was taken concurrently.  The machine is back in
            ``LOADING_AVAILABILITY`` with a refetch under way.
        """
        if self._state == BookingState.SUBMITTING:
            return None
        draft = self._draft
        if (
            self._state not in {BookingState.READY_TO_SUBMIT, BookingState.SUBMIT_FAILED}
            or draft is None
            or draft.selected_table is None
            or draft.guest_count is None
        ):
            raise BookingStateError(f"Cannot submit while {self._state.value}")
        identity = self._sessions.current_session().identity
        if identity is None:
            raise ReservaAuthorizationError("Log in to make a reservation")

        request = build_request(
            CreateReservationRequest,
            {
                "owner_id": str(identity.id),
                "table_number": draft.selected_table.table_number,
                "guests": draft.guest_count,
                "date_time": draft.scheduled_at(),
                "meal_type": draft.meal_type,
                "special_requests": draft.notes or None,
            },
        )
        self._state = BookingState.SUBMITTING
        try:
            reservation = await self._mutations.create_reservation(request)
        except ReservaConflictError:
            _logger.debug("Table %s taken concurrently; reloading availability", request.table_number)
            draft.clear_selection()
            self._state = BookingState.LOADING_AVAILABILITY
            if self._availability_key is not None:
                self._cache.invalidate(self._availability_key)
            raise
        except (Exception, asyncio.CancelledError):
            self._state = BookingState.SUBMIT_FAILED
            raise

        self._state = BookingState.SUBMITTED
        self._reservation = reservation
        self._draft = None
        self._release_availability()
        return reservation

    def close(self) -> None:
        """Stop watching availability."""
        self._release_availability()
