"""Reservation service endpoints (all require the bearer token)."""

from __future__ import annotations

from collections.abc import Mapping

from pyreserva._api._common import decode_list, decode_model, path_param
from pyreserva._constants import (
    CONFIRM_RESERVATION_PATH,
    RESERVATION_PATH,
    RESERVATIONS_PATH,
    USER_RESERVATIONS_PATH,
)
from pyreserva._transport import ApiTransport, Service
from pyreserva.models.reservation import (
    ConfirmReservationRequest,
    CreateReservationRequest,
    Reservation,
    UpdateReservationRequest,
)


async def list_reservations(transport: ApiTransport, params: Mapping[str, str] | None = None) -> list[Reservation]:
    body = await transport.request("GET", Service.RESERVATIONS, RESERVATIONS_PATH, params=params)
    return decode_list(Reservation, body, endpoint=RESERVATIONS_PATH)


async def list_user_reservations(transport: ApiTransport, user_id: int | str | None) -> list[Reservation]:
    """Reservations owned by *user_id*; no request is made without one."""
    if user_id is None or user_id == "":
        return []
    endpoint = USER_RESERVATIONS_PATH.format(user_id=path_param(user_id))
    body = await transport.request("GET", Service.RESERVATIONS, endpoint)
    return decode_list(Reservation, body, endpoint=endpoint)


async def get_reservation(transport: ApiTransport, reservation_id: str) -> Reservation:
    endpoint = RESERVATION_PATH.format(reservation_id=path_param(reservation_id))
    body = await transport.request("GET", Service.RESERVATIONS, endpoint)
    return decode_model(Reservation, body, endpoint=endpoint)


async def create_reservation(transport: ApiTransport, request: CreateReservationRequest) -> Reservation:
    body = await transport.request("POST", Service.RESERVATIONS, RESERVATIONS_PATH, json_body=request.to_payload())
    return decode_model(Reservation, body, endpoint=RESERVATIONS_PATH)


async def update_reservation(
    transport: ApiTransport,
    reservation_id: str,
    request: UpdateReservationRequest,
) -> Reservation:
    endpoint = RESERVATION_PATH.format(reservation_id=path_param(reservation_id))
    body = await transport.request("PUT", Service.RESERVATIONS, endpoint, json_body=request.to_payload())
    return decode_model(Reservation, body, endpoint=endpoint)


async def delete_reservation(transport: ApiTransport, reservation_id: str) -> None:
    endpoint = RESERVATION_PATH.format(reservation_id=path_param(reservation_id))
    await transport.request("DELETE", Service.RESERVATIONS, endpoint)


async def confirm_reservation(
    transport: ApiTransport,
    reservation_id: str,
    request: ConfirmReservationRequest,
) -> Reservation:
    endpoint = CONFIRM_RESERVATION_PATH.format(reservation_id=path_param(reservation_id))
    body = await transport.request("POST", Service.RESERVATIONS, endpoint, json_body=request.to_payload())
    return decode_model(Reservation, body, endpoint=endpoint)
