"""Data models for reservation-system API payloads."""

from pyreserva.models._base import ReservaBaseModel, canonical_key
from pyreserva.models.identity import AuthTokens, Identity, LoginResult, RegisterProfile, Role
from pyreserva.models.reservation import (
    ConfirmReservationRequest,
    CreateReservationRequest,
    MealType,
    Reservation,
    ReservationStatus,
    UpdateReservationRequest,
)
from pyreserva.models.search import (
    CacheStats,
    ReindexAck,
    SearchPage,
    SearchParams,
    SearchStats,
    TableAvailability,
    TableRef,
)

__all__ = [
    "AuthTokens",
    "CacheStats",
    "ConfirmReservationRequest",
    "CreateReservationRequest",
    "Identity",
    "LoginResult",
    "MealType",
    "RegisterProfile",
    "ReindexAck",
    "ReservaBaseModel",
    "Reservation",
    "ReservationStatus",
    "Role",
    "SearchPage",
    "SearchParams",
    "SearchStats",
    "TableAvailability",
    "TableRef",
    "UpdateReservationRequest",
    "canonical_key",
]
