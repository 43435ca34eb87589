"""Reservation service models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from pyreserva._constants import MAX_GUESTS, MIN_GUESTS
from pyreserva.models._base import ReservaBaseModel


class MealType(StrEnum):
    BREAKFAST = "breakfast"
    LUNCH = "lunch"
    DINNER = "dinner"
    EVENT = "event"


class ReservationStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Reservation(ReservaBaseModel):
    """A reservation as returned by the reservation service."""

    id: str
    owner_id: str = ""
    table_number: int = 0
    guests: int = 0
    date_time: datetime | None = None
    meal_type: MealType | None = None
    status: ReservationStatus = ReservationStatus.PENDING
    total_price: float = 0.0
    special_requests: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _coerce_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def is_confirmable(self) -> bool:
        """Only pending reservations can be confirmed."""
        return self.status == ReservationStatus.PENDING

    def is_owned_by(self, user_id: int | str) -> bool:
        return bool(self.owner_id) and self.owner_id == str(user_id)


def _with_zone(value: datetime | None) -> datetime | None:
    """Attach the local zone to naive datetimes; the service only accepts RFC 3339."""
    if value is None or value.tzinfo is not None:
        return value
    return value.astimezone()


class _RequestModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", str_strip_whitespace=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class CreateReservationRequest(_RequestModel):
    owner_id: str = Field(min_length=1)
    table_number: int = Field(ge=1)
    guests: int = Field(ge=MIN_GUESTS, le=MAX_GUESTS)
    date_time: datetime
    meal_type: MealType
    special_requests: str | None = None

    @field_validator("date_time")
    @classmethod
    def _zoned_date_time(cls, value: datetime | None) -> datetime | None:
        return _with_zone(value)

    @field_serializer("special_requests")
    def _omit_blank_requests(self, value: str | None) -> str | None:
        return value or None


class UpdateReservationRequest(_RequestModel):
    table_number: int | None = Field(default=None, ge=1)
    guests: int | None = Field(default=None, ge=MIN_GUESTS, le=MAX_GUESTS)
    date_time: datetime | None = None
    meal_type: MealType | None = None
    special_requests: str | None = None
    status: ReservationStatus | None = None

    @field_validator("date_time")
    @classmethod
    def _zoned_date_time(cls, value: datetime | None) -> datetime | None:
        return _with_zone(value)


class ConfirmReservationRequest(_RequestModel):
    confirmation_notes: str | None = None
