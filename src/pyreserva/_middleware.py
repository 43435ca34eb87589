"""Request/response middleware registered once on :class:`ApiTransport`.

The client registers, in this order:

1. :class:`BearerTokenMiddleware` - attaches the session token.
2. :class:`AuthTeardownMiddleware` - tears the session down on 401.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from pyreserva._transport import IncomingResponse, OutgoingRequest

_logger = logging.getLogger(__name__)


class Middleware(Protocol):
    def on_request(self, request: OutgoingRequest) -> None:
        ...

    def on_response(self, request: OutgoingRequest, response: IncomingResponse) -> None:
        ...


class BearerTokenMiddleware:
    """Attach ``Authorization: Bearer <token>`` to non-exempt requests."""

    def __init__(self, token_getter: Callable[[], str | None]) -> None:
        self._token_getter = token_getter

    def on_request(self, request: OutgoingRequest) -> None:
        if request.is_auth_exempt:
            return
        token = self._token_getter()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"

    def on_response(self, request: OutgoingRequest, response: IncomingResponse) -> None:
        return None


@dataclass(frozen=True)
class LoginRedirect:
    """Sends an interactive caller back to the login entry point.

    ``navigate`` is not called when ``current_location()`` already is the
    entry point, so a denial on the login screen cannot loop.
    """

    navigate: Callable[[str], None]
    entry_point: str = "/login"
    current_location: Callable[[], str] | None = None

    def maybe_redirect(self) -> bool:
        if self.current_location is not None and self.current_location() == self.entry_point:
            return False
        self.navigate(self.entry_point)
        return True


class AuthTeardownMiddleware:
    """Tear the session down when a non-exempt endpoint answers 401."""

    def __init__(self, teardown: Callable[[str], None], redirect: LoginRedirect | None = None) -> None:
        self._teardown = teardown
        self._redirect = redirect

    def on_request(self, request: OutgoingRequest) -> None:
        return None

    def on_response(self, request: OutgoingRequest, response: IncomingResponse) -> None:
        if response.status != 401 or request.is_auth_exempt:
            return
        _logger.warning("Authorization denied by %s %s; clearing session", request.method, request.path)
        self._teardown(request.path)
        if self._redirect is not None:
            try:
                self._redirect.maybe_redirect()
            except Exception:
                _logger.debug("login redirect callback failed", exc_info=True)
