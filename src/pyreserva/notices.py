"""User-facing notices (the toast equivalents of the web client)."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import StrEnum

from pydantic import BaseModel, ConfigDict

from pyreserva.exceptions import ErrorKind

_logger = logging.getLogger(__name__)


class NoticeLevel(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class Notice(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: NoticeLevel
    message: str
    error_kind: ErrorKind | None = None


NoticeCallback = Callable[[Notice], None]


class Notifier:
    """Delivers notices to an optional callback; never raises."""

    def __init__(self, callback: NoticeCallback | None = None, *, enabled: bool = True) -> None:
        self._callback = callback
        self._enabled = enabled

    def success(self, message: str) -> None:
        self._emit(Notice(level=NoticeLevel.SUCCESS, message=message))

    def error(self, message: str, kind: ErrorKind | None = None) -> None:
        self._emit(Notice(level=NoticeLevel.ERROR, message=message, error_kind=kind))

    def _emit(self, notice: Notice) -> None:
        if not self._enabled or self._callback is None:
            return
        try:
            self._callback(notice)
        except Exception:
            _logger.debug("on_notice callback failed", exc_info=True)
