"""Durable storage for the session's two slots (token, serialized identity).

Both slots are always written and cleared together.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pyreserva._constants import STORAGE_TOKEN_KEY, STORAGE_USER_KEY

_logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    def load(self) -> tuple[str | None, str | None]:
        """Return ``(token, identity_json)``; either may be ``None``."""
        ...

    def save(self, token: str, identity_json: str) -> None:
        ...

    def clear(self) -> None:
        ...


class MemorySessionStorage:
    """Process-local storage; nothing survives a restart."""

    def __init__(self, token: str | None = None, identity_json: str | None = None) -> None:
        self._token = token
        self._identity_json = identity_json

    def load(self) -> tuple[str | None, str | None]:
        return self._token, self._identity_json

    def save(self, token: str, identity_json: str) -> None:
        self._token, self._identity_json = token, identity_json

    def clear(self) -> None:
        self._token, self._identity_json = None, None


class FileSessionStorage:
    """JSON file holding ``{"token": ..., "user": ...}``.

    Writes go to a temporary file in the same directory followed by
    :func:`os.replace`, so readers never observe one slot without the other.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> tuple[str | None, str | None]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None, None
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            _logger.warning("Ignoring unreadable session file %s", self._path)
            return None, None
        if not isinstance(data, dict):
            return None, None
        token = data.get(STORAGE_TOKEN_KEY)
        user = data.get(STORAGE_USER_KEY)
        return (
            token if isinstance(token, str) else None,
            user if isinstance(user, str) else None,
        )

    def _write(self, payload: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".session-", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def save(self, token: str, identity_json: str) -> None:
        self._write({STORAGE_TOKEN_KEY: token, STORAGE_USER_KEY: identity_json})

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
