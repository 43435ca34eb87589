"""Identity service endpoints.

Endpoints:
  - POST /api/users/login
  - POST /api/users/register
  - GET  /api/users/{id}
"""

from __future__ import annotations

import logging
from typing import Any

from pyreserva._api._common import decode_model, path_param
from pyreserva._constants import LOGIN_PATH, REGISTER_PATH, USER_PATH
from pyreserva._redact import redact_for_log
from pyreserva._transport import ApiTransport, Service
from pyreserva.exceptions import ReservaProtocolError
from pyreserva.models.identity import Identity, LoginResult, RegisterProfile

_logger = logging.getLogger(__name__)


async def login(transport: ApiTransport, identifier: str, password: str) -> LoginResult:
    """Exchange credentials for a bearer token and identity.

    Raises
    ------
    ReservaAuthenticationError
        Credentials were rejected.
    ReservaProtocolError
        The response lacks a token or a user record.
    """
    body = await transport.request(
        "POST",
        Service.IDENTITY,
        LOGIN_PATH,
        json_body={"identifier": identifier, "password": password},
    )
    _logger.debug("login response parsed=%s", redact_for_log(body))
    return decode_model(LoginResult, body, endpoint=LOGIN_PATH)


def _unwrap_user(body: Any, endpoint: str) -> Any:
    # register answers {"user": {...}}, user lookup answers the bare record.
    if isinstance(body, dict) and isinstance(body.get("user"), dict):
        return body["user"]
    if isinstance(body, dict) and "id" in body:
        return body
    raise ReservaProtocolError(f"{endpoint} response missing user record", endpoint=endpoint)


async def register(transport: ApiTransport, profile: RegisterProfile) -> Identity:
    """Create an account; does not log in."""
    body = await transport.request(
        "POST",
        Service.IDENTITY,
        REGISTER_PATH,
        json_body=profile.model_dump(mode="json"),
    )
    return decode_model(Identity, _unwrap_user(body, REGISTER_PATH), endpoint=REGISTER_PATH)


async def fetch_user(transport: ApiTransport, user_id: int | str) -> Identity:
    endpoint = USER_PATH.format(user_id=path_param(user_id))
    body = await transport.request("GET", Service.IDENTITY, endpoint)
    return decode_model(Identity, _unwrap_user(body, endpoint), endpoint=endpoint)
