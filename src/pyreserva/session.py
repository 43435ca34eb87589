"""Session state: the one place that knows who is logged in."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from pyreserva._api import identity as identity_api
from pyreserva._transport import ApiTransport
from pyreserva.exceptions import ReservaError, ReservaRegistrationIncompleteError, ReservaStorageError
from pyreserva.models.identity import Identity, RegisterProfile
from pyreserva.notices import Notifier
from pyreserva.storage import MemorySessionStorage, SessionStorage

_logger = logging.getLogger(__name__)

SessionListener = Callable[["Session"], None]

_LOGIN_FAILED_MESSAGE = "Could not log in. Check your credentials."
_STORAGE_FAILED_MESSAGE = "Logged in, but the session could not be saved."
_REGISTER_FAILED_MESSAGE = "Could not complete the registration."
_REGISTER_FAILED_MESSAGES: dict[str, str] = {
    "invalid_input": "Invalid data: check the username or email and the password (at least 8 characters).",
    "user_already_exists": "That username or email already exists.",
}


class Session(BaseModel):
    """Immutable ``(token, identity)`` pair.

    Either both are present or neither is; a half-filled pair is
    normalized to the anonymous session.
    """

    model_config = ConfigDict(frozen=True)

    token: str | None = None
    identity: Identity | None = None

    @model_validator(mode="before")
    @classmethod
    def _pair(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        token = values.get("token") or None
        identity = values.get("identity")
        if token is None or identity is None:
            return {"token": None, "identity": None}
        return {"token": token, "identity": identity}

    @classmethod
    def anonymous(cls) -> Session:
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    @property
    def is_admin(self) -> bool:
        return self.identity is not None and self.identity.is_admin

    @property
    def user_id(self) -> int | None:
        return self.identity.id if self.identity is not None else None


class SessionStore:
    """Owns the current :class:`Session` and its persisted copy.

    Parameters
    ----------
    transport : ApiTransport
        Used for the login and register calls.
    storage : SessionStorage, optional
        Durable slots for the token and identity.  Defaults to
        :class:`MemorySessionStorage`.
    notifier : Notifier, optional
        Receives welcome/goodbye notices.
    """

    def __init__(
        self,
        transport: ApiTransport,
        storage: SessionStorage | None = None,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self._transport = transport
        self._storage: SessionStorage = storage or MemorySessionStorage()
        self._notifier = notifier or Notifier()
        self._session = Session.anonymous()
        self._listeners: list[SessionListener] = []

    def current_session(self) -> Session:
        return self._session

    @property
    def token(self) -> str | None:
        return self._session.token

    def add_listener(self, callback: SessionListener) -> Callable[[], None]:
        """Register *callback* for session changes; returns an unsubscribe function."""
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def _set_session(self, session: Session) -> None:
        self._session = session
        for callback in list(self._listeners):
            try:
                callback(session)
            except Exception:
                _logger.debug("Session listener failed", exc_info=True)

    def restore(self) -> Session:
        """Load the persisted pair; anything partial or unreadable becomes anonymous."""
        token, identity_json = self._storage.load()
        if token is None and identity_json is None:
            return self._session
        identity: Identity | None = None
        if token and identity_json:
            try:
                identity = Identity.model_validate(json.loads(identity_json))
            except (json.JSONDecodeError, ValidationError):
                _logger.warning("Discarding undecodable persisted identity")
        if identity is None:
            self._clear_storage()
            self._set_session(Session.anonymous())
            return self._session
        _logger.debug("Restored session for user id=%s", identity.id)
        self._set_session(Session(token=token, identity=identity))
        return self._session

    async def login(self, identifier: str, password: str) -> Identity:
        try:
            result = await identity_api.login(self._transport, identifier, password)
            # Storage first, then memory.
            self._persist(result.token, result.identity)
        except ReservaError as exc:
            message = _STORAGE_FAILED_MESSAGE if isinstance(exc, ReservaStorageError) else _LOGIN_FAILED_MESSAGE
            self._notifier.error(message, kind=exc.kind)
            raise
        self._set_session(Session(token=result.token, identity=result.identity))
        _logger.info("Logged in as user id=%s", result.identity.id)
        self._notifier.success(f"Welcome {result.identity.display_name}")
        return result.identity

    async def register(self, profile: RegisterProfile) -> Identity:
        """Create the account, then log in with the same credentials.

        Raises
        ------
        ReservaRegistrationIncompleteError
            The account exists but the follow-up login failed.
        """
        try:
            created = await identity_api.register(self._transport, profile)
        except ReservaError as exc:
            message = _REGISTER_FAILED_MESSAGES.get(exc.code, _REGISTER_FAILED_MESSAGE)
            self._notifier.error(message, kind=exc.kind)
            raise
        _logger.info("Registered user id=%s", created.id)
        self._notifier.success("Account created. Logging in...")
        try:
            return await self.login(profile.login_identifier, profile.password)
        except ReservaError as exc:
            self._notifier.error("Account created, but automatic login failed", kind=exc.kind)
            raise ReservaRegistrationIncompleteError(
                "Registration succeeded but login failed",
                identity=created,
                detail=str(exc),
            ) from exc

    def logout(self) -> None:
        """Drop the session. Safe to call repeatedly; never raises."""
        was_authenticated = self._session.is_authenticated
        if was_authenticated:
            self._set_session(Session.anonymous())
        self._clear_storage()
        if was_authenticated:
            _logger.info("Logged out")
            self._notifier.success("Logged out")

    def handle_unauthorized(self, path: str) -> None:
        _logger.warning("Session rejected by %s; tearing down", path)
        self.logout()

    def _persist(self, token: str, identity: Identity) -> None:
        try:
            self._storage.save(token, identity.model_dump_json())
        except OSError as exc:
            _logger.warning("Failed to persist session", exc_info=True)
            raise ReservaStorageError("Could not save the session", detail=str(exc)) from exc

    def _clear_storage(self) -> None:
        try:
            self._storage.clear()
        except OSError:
            _logger.warning("Failed to clear persisted session", exc_info=True)
