"""Custom exception hierarchy for pyreserva.

Every error carries a :class:`ErrorKind` plus an optional human-readable
``detail`` so a presentation layer can pick a message without looking at
transport internals.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyreserva.models.identity import Identity


class ErrorKind(StrEnum):
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    REGISTRATION_INCOMPLETE = "registration_incomplete"
    STATE = "state"
    STORAGE = "storage"
    CONFIG = "config"
    UNKNOWN = "unknown"


class ReservaError(Exception):
    """Base exception for all pyreserva errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        detail: str = "",
        code: str = "",
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class ReservaConfigError(ReservaError):
    """Invalid or missing configuration, or client used before init."""

    kind = ErrorKind.CONFIG


class ReservaTransportError(ReservaError):
    """Network failure, timeout, 5xx or an unreadable body.

    The outcome of the request is unknown; it is treated as a failure and
    never retried by this library.
    """

    kind = ErrorKind.TRANSPORT


class ReservaProtocolError(ReservaError):
    """Well-formed response that violates the expected contract."""

    kind = ErrorKind.PROTOCOL


class ReservaAuthenticationError(ReservaError):
    """Credentials rejected."""

    kind = ErrorKind.AUTHENTICATION


class ReservaSessionExpiredError(ReservaAuthenticationError):
    """Bearer token rejected by a non-exempt endpoint.

    By the time this is raised the session has already been torn down.
    """


class ReservaAuthorizationError(ReservaError):
    """Authenticated, but not permitted to perform the operation."""

    kind = ErrorKind.AUTHORIZATION


class ReservaValidationError(ReservaError):
    """Malformed or out-of-range input (client- or server-side)."""

    kind = ErrorKind.VALIDATION


class ReservaConflictError(ReservaError):
    """State changed concurrently (already taken, already exists, ...)."""

    kind = ErrorKind.CONFLICT


class ReservaNotFoundError(ReservaError):
    """Requested resource does not exist."""

    kind = ErrorKind.NOT_FOUND


class ReservaStorageError(ReservaError):
    """The session could not be written to durable storage."""

    kind = ErrorKind.STORAGE


class ReservaRegistrationIncompleteError(ReservaError):
    """The account was created but the follow-up login failed.

    ``identity`` is the account the server created; the login failure is
    chained as ``__cause__``.
    """

    kind = ErrorKind.REGISTRATION_INCOMPLETE

    def __init__(self, message: str, *, identity: Identity, detail: str = "") -> None:
        self.identity = identity
        super().__init__(message, detail=detail)


class BookingStateError(ReservaError):
    """Operation not allowed in the booking machine's current state."""

    kind = ErrorKind.STATE
