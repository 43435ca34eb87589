from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import pytest

from pyreserva._middleware import AuthTeardownMiddleware, BearerTokenMiddleware, LoginRedirect
from pyreserva._transport import ApiTransport, IncomingResponse, OutgoingRequest, Service
from pyreserva.exceptions import (
    ErrorKind,
    ReservaAuthenticationError,
    ReservaAuthorizationError,
    ReservaConflictError,
    ReservaError,
    ReservaNotFoundError,
    ReservaProtocolError,
    ReservaSessionExpiredError,
    ReservaTransportError,
    ReservaValidationError,
)


@dataclass
class _ScriptedSender:
    status: int = 200
    body: Any = None
    text: str | None = None
    seen: list[OutgoingRequest] = field(default_factory=list)

    async def send(self, request: OutgoingRequest) -> IncomingResponse:
        self.seen.append(request)
        text = self.text if self.text is not None else ("" if self.body is None else "json")
        return IncomingResponse(status=self.status, body=self.body, text=text)


@pytest.mark.parametrize(
    ("status", "body", "expected", "kind"),
    [
        (400, {"error": "invalid_input"}, ReservaValidationError, ErrorKind.VALIDATION),
        (403, {"error": "forbidden"}, ReservaAuthorizationError, ErrorKind.AUTHORIZATION),
        (404, {"error": "reservation not found"}, ReservaNotFoundError, ErrorKind.NOT_FOUND),
        (409, {"error": "user_already_exists"}, ReservaConflictError, ErrorKind.CONFLICT),
        (422, {"error": "table 5 is already reserved"}, ReservaConflictError, ErrorKind.CONFLICT),
        (422, {"error": "reservation not available"}, ReservaConflictError, ErrorKind.CONFLICT),
        (422, {"error": "guests must be positive"}, ReservaValidationError, ErrorKind.VALIDATION),
        (503, {"error": "unavailable"}, ReservaTransportError, ErrorKind.TRANSPORT),
        (418, {"error": "teapot"}, ReservaProtocolError, ErrorKind.PROTOCOL),
    ],
)
@pytest.mark.asyncio
async def test_status_mapping(status: int, body: dict, expected: type[ReservaError], kind: ErrorKind) -> None:
    transport = ApiTransport(_ScriptedSender(status=status, body=body))

    with pytest.raises(expected) as exc_info:
        await transport.request("GET", Service.RESERVATIONS, "/api/reservations/r1")

    exc = exc_info.value
    assert exc.kind is kind
    assert exc.status_code == status
    assert exc.endpoint == "/api/reservations/r1"
    assert exc.detail == body["error"]


@pytest.mark.asyncio
async def test_error_code_is_set_for_machine_readable_messages() -> None:
    transport = ApiTransport(_ScriptedSender(status=409, body={"error": "user_already_exists"}))
    with pytest.raises(ReservaConflictError) as exc_info:
        await transport.request("POST", Service.IDENTITY, "/api/users/register", json_body={})
    assert exc_info.value.code == "user_already_exists"


@pytest.mark.asyncio
async def test_401_on_login_is_authentication_error_not_session_expiry() -> None:
    transport = ApiTransport(_ScriptedSender(status=401, body={"error": "invalid_credentials"}))
    with pytest.raises(ReservaAuthenticationError) as exc_info:
        await transport.request("POST", Service.IDENTITY, "/api/users/login", json_body={})
    assert not isinstance(exc_info.value, ReservaSessionExpiredError)


@pytest.mark.asyncio
async def test_401_elsewhere_is_session_expired() -> None:
    transport = ApiTransport(_ScriptedSender(status=401, body={"error": "unauthorized"}))
    with pytest.raises(ReservaSessionExpiredError):
        await transport.request("GET", Service.RESERVATIONS, "/api/reservations")


@pytest.mark.asyncio
async def test_non_json_success_body_is_transport_error() -> None:
    transport = ApiTransport(_ScriptedSender(status=200, body=None, text="<html>gateway</html>"))
    with pytest.raises(ReservaTransportError):
        await transport.request("GET", Service.SEARCH, "/api/search")


@pytest.mark.asyncio
async def test_empty_success_body_returns_none() -> None:
    transport = ApiTransport(_ScriptedSender(status=204))
    assert await transport.request("DELETE", Service.RESERVATIONS, "/api/reservations/r1") is None


@pytest.mark.asyncio
async def test_bearer_is_attached_except_on_login_and_register() -> None:
    sender = _ScriptedSender(status=200, body={})
    transport = ApiTransport(sender)
    transport.use(BearerTokenMiddleware(lambda: "abc"))

    await transport.request("GET", Service.RESERVATIONS, "/api/reservations")
    await transport.request("POST", Service.IDENTITY, "/api/users/login", json_body={})
    await transport.request("POST", Service.IDENTITY, "/api/users/register", json_body={})

    assert sender.seen[0].headers["Authorization"] == "Bearer abc"
    assert "Authorization" not in sender.seen[1].headers
    assert "Authorization" not in sender.seen[2].headers


@pytest.mark.asyncio
async def test_bearer_is_omitted_without_token() -> None:
    sender = _ScriptedSender(status=200, body={})
    transport = ApiTransport(sender)
    transport.use(BearerTokenMiddleware(lambda: None))
    await transport.request("GET", Service.SEARCH, "/api/search")
    assert "Authorization" not in sender.seen[0].headers


@pytest.mark.asyncio
async def test_teardown_runs_before_error_reaches_caller() -> None:
    torn_down: list[str] = []
    transport = ApiTransport(_ScriptedSender(status=401, body={"error": "unauthorized"}))
    transport.use(AuthTeardownMiddleware(torn_down.append))

    with pytest.raises(ReservaSessionExpiredError):
        await transport.request("GET", Service.RESERVATIONS, "/api/reservations")
    assert torn_down == ["/api/reservations"]


@pytest.mark.asyncio
async def test_teardown_skips_exempt_paths() -> None:
    torn_down: list[str] = []
    transport = ApiTransport(_ScriptedSender(status=401, body={"error": "invalid_credentials"}))
    transport.use(AuthTeardownMiddleware(torn_down.append))

    with pytest.raises(ReservaAuthenticationError):
        await transport.request("POST", Service.IDENTITY, "/api/users/login", json_body={})
    assert torn_down == []


@pytest.mark.asyncio
async def test_redirect_skipped_when_already_at_login_entry_point() -> None:
    navigated: list[str] = []
    location = {"path": "/login"}
    redirect = LoginRedirect(navigated.append, "/login", lambda: location["path"])
    transport = ApiTransport(_ScriptedSender(status=401, body={"error": "unauthorized"}))
    transport.use(AuthTeardownMiddleware(lambda _path: None, redirect))

    with pytest.raises(ReservaSessionExpiredError):
        await transport.request("GET", Service.RESERVATIONS, "/api/reservations")
    assert navigated == []

    location["path"] = "/reservations"
    with pytest.raises(ReservaSessionExpiredError):
        await transport.request("GET", Service.RESERVATIONS, "/api/reservations")
    assert navigated == ["/login"]


@pytest.mark.asyncio
async def test_failing_redirect_callback_does_not_mask_error() -> None:
    def _boom(_entry: str) -> None:
        raise RuntimeError("navigation failed")

    transport = ApiTransport(_ScriptedSender(status=401, body={"error": "unauthorized"}))
    transport.use(AuthTeardownMiddleware(lambda _path: None, LoginRedirect(_boom)))

    with pytest.raises(ReservaSessionExpiredError):
        await transport.request("GET", Service.RESERVATIONS, "/api/reservations")


def test_middleware_is_registered_once() -> None:
    transport = ApiTransport(_ScriptedSender())
    bearer = BearerTokenMiddleware(lambda: None)
    transport.use(bearer)
    with pytest.raises(ValueError):
        transport.use(bearer)
    assert transport.middleware == (bearer,)
