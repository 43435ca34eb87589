"""HTTP transport: middleware pipeline, status mapping and the aiohttp sender."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp

from pyreserva._constants import AUTH_EXEMPT_PATHS, CONFLICT_MESSAGE_MARKERS, USER_AGENT
from pyreserva._redact import redact_for_log, redact_headers
from pyreserva.config import ReservaConfig
from pyreserva.exceptions import (
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

if TYPE_CHECKING:
    from pyreserva._middleware import Middleware

_logger = logging.getLogger(__name__)


class Service(StrEnum):
    IDENTITY = "identity"
    RESERVATIONS = "reservations"
    SEARCH = "search"


@dataclass
class OutgoingRequest:
    """A request on its way through the middleware chain."""

    service: Service
    method: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    json_body: Any = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def is_auth_exempt(self) -> bool:
        return self.path in AUTH_EXEMPT_PATHS


@dataclass(frozen=True)
class IncomingResponse:
    status: int
    body: Any = None
    """Decoded JSON body, ``None`` when empty or not JSON."""
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Sender(Protocol):
    """Structural interface for the component that actually performs I/O.

    Having a protocol here makes it easy to pass fake backends in tests
    while keeping the production implementation (`AiohttpSender`) concrete.
    """

    async def send(self, request: OutgoingRequest) -> IncomingResponse:
        ...


class AiohttpSender:
    """Sends requests over a shared :class:`aiohttp.ClientSession`."""

    def __init__(self, config: ReservaConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._base_urls: dict[Service, str] = {
            Service.IDENTITY: config.users_base_url.rstrip("/"),
            Service.RESERVATIONS: config.reservations_base_url.rstrip("/"),
            Service.SEARCH: config.search_base_url.rstrip("/"),
        }

    async def send(self, request: OutgoingRequest) -> IncomingResponse:
        url = f"{self._base_urls[request.service]}{request.path}"
        headers: dict[str, str] = {
            "accept": "application/json",
            "content-type": "application/json",
            "user-agent": USER_AGENT,
            **request.headers,
        }
        timeout = aiohttp.ClientTimeout(total=self._config.request_timeout)

        try:
            async with self._http.request(
                request.method,
                url,
                params=request.params or None,
                json=request.json_body,
                headers=headers,
                timeout=timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
        except aiohttp.ClientError as exc:
            raise ReservaTransportError(
                f"Request to {request.path} failed: {exc}",
                endpoint=request.path,
            ) from exc
        except TimeoutError as exc:
            raise ReservaTransportError(
                f"Request to {request.path} timed out after {self._config.request_timeout}s",
                endpoint=request.path,
            ) from exc

        body: Any = None
        if text.strip():
            try:
                body = json.loads(text)
            except json.JSONDecodeError:
                body = None
        return IncomingResponse(status=status, body=body, text=text)


def _error_message(response: IncomingResponse) -> str:
    body = response.body
    if isinstance(body, Mapping):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    return response.text[:200]


def _raise_for_status(request: OutgoingRequest, response: IncomingResponse) -> None:
    """Map a non-2xx response to the matching :class:`ReservaError`."""
    if response.ok:
        return

    status = response.status
    message = _error_message(response)
    kwargs: dict[str, Any] = {
        "detail": message,
        "code": message if message and " " not in message else "",
        "status_code": status,
        "endpoint": request.path,
    }
    summary = f"HTTP {status} from {request.method} {request.path}: {message}"

    error_cls: type[ReservaError]
    if status == 400:
        error_cls = ReservaValidationError
    elif status == 401:
        error_cls = ReservaAuthenticationError if request.is_auth_exempt else ReservaSessionExpiredError
    elif status == 403:
        error_cls = ReservaAuthorizationError
    elif status == 404:
        error_cls = ReservaNotFoundError
    elif status == 409:
        error_cls = ReservaConflictError
    elif status == 422:
        lowered = message.lower()
        if any(marker in lowered for marker in CONFLICT_MESSAGE_MARKERS):
            error_cls = ReservaConflictError
        else:
            error_cls = ReservaValidationError
    elif status >= 500:
        error_cls = ReservaTransportError
    else:
        error_cls = ReservaProtocolError
    raise error_cls(summary, **kwargs)


class ApiTransport:
    """Runs every request through the registered middleware chain.

    Ordering: request hooks run in registration order before the request is
    sent; response hooks run in registration order after the response
    arrives and *before* the status is mapped to an exception, so any side
    effect they apply (session teardown) is visible to the caller that
    receives the error.
    """

    def __init__(self, sender: Sender) -> None:
        self._sender = sender
        self._middleware: list[Middleware] = []

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return tuple(self._middleware)

    def use(self, middleware: Middleware) -> None:
        """Register *middleware* at the end of the chain (once)."""
        if middleware in self._middleware:
            raise ValueError(f"{type(middleware).__name__} is already registered")
        self._middleware.append(middleware)

    async def request(
        self,
        method: str,
        service: Service,
        path: str,
        *,
        params: Mapping[str, str] | None = None,
        json_body: Any = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        request = OutgoingRequest(
            service=service,
            method=method.upper(),
            path=path,
            params=dict(params or {}),
            json_body=json_body,
        )
        for mw in self._middleware:
            mw.on_request(request)

        _logger.debug(
            "%s %s params=%s headers=%s body=%s",
            request.method,
            request.path,
            request.params,
            redact_headers(request.headers),
            redact_for_log(request.json_body),
        )
        response = await self._sender.send(request)
        _logger.debug(
            "%s %s -> %d body=%s",
            request.method,
            request.path,
            response.status,
            redact_for_log(response.body),
        )

        for mw in self._middleware:
            mw.on_response(request, response)

        _raise_for_status(request, response)

        if response.body is None and response.text.strip():
            raise ReservaTransportError(
                f"Invalid JSON from {request.path}: {response.text[:200]}",
                status_code=response.status,
                endpoint=request.path,
            )
        return response.body
