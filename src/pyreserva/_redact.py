"""Redaction for debug logs.

Login and register bodies carry passwords, login responses carry access
tokens, and every authenticated request carries an ``Authorization``
header.  None of these may reach a log record in clear text.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

REDACTED = "<redacted>"

# Compared after lowercasing and dropping "_" and "-".
_SECRET_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "newpassword",
        "token",
        "accesstoken",
        "refreshtoken",
        "authorization",
        "cookie",
        "setcookie",
    }
)

_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)


def _is_secret(key: str) -> bool:
    return key.lower().replace("_", "").replace("-", "") in _SECRET_KEYS


def _clip(text: str, limit: int) -> str:
    text = _BEARER_RE.sub(rf"\1{REDACTED}", text)
    if len(text) > limit:
        return f"{text[:limit]}…<truncated>"
    return text


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a copy of *value* that is safe to put in a DEBUG record.

    Secret-looking keys are replaced wholesale, bearer tokens embedded in
    strings are masked, long strings are clipped, and pydantic models are
    dumped first so their fields get the same treatment.
    """
    if _depth > 20:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _clip(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if isinstance(value, Mapping):
        return {
            str(key): REDACTED
            if _is_secret(str(key))
            else redact_for_log(item, max_string=max_string, _depth=_depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, Sequence):
        return [redact_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value]
    return repr(value)


def redact_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Header dict with credential-bearing headers masked."""
    return {name: REDACTED if _is_secret(name) else value for name, value in headers.items()}
