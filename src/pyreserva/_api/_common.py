"""Shared helpers for endpoint modules.

Each endpoint decodes its body exactly once, here, into a canonical model.
Shape violations surface as :class:`ReservaProtocolError`; client-side
request validation failures as :class:`ReservaValidationError`.

It is internal to pyreserva and may change at any time.
"""

from __future__ import annotations

from typing import Any, TypeVar
from urllib.parse import quote

from pydantic import BaseModel, ValidationError

from pyreserva.exceptions import ReservaProtocolError, ReservaValidationError

M = TypeVar("M", bound=BaseModel)


def path_param(value: int | str) -> str:
    """Quote a value for use as a single path segment."""
    return quote(str(value), safe="")


def decode_model(model: type[M], body: Any, *, endpoint: str) -> M:
    if not isinstance(body, dict):
        raise ReservaProtocolError(
            f"{endpoint} returned {type(body).__name__}, expected an object",
            endpoint=endpoint,
        )
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        raise ReservaProtocolError(
            f"{endpoint} returned an unexpected {model.__name__} payload",
            detail=str(exc),
            endpoint=endpoint,
        ) from exc


def decode_list(model: type[M], body: Any, *, endpoint: str) -> list[M]:
    # Some list endpoints answer null for "no rows".
    if body is None:
        return []
    if not isinstance(body, list):
        raise ReservaProtocolError(
            f"{endpoint} returned {type(body).__name__}, expected a list",
            endpoint=endpoint,
        )
    return [decode_model(model, item, endpoint=endpoint) for item in body]


def build_request(model: type[M], values: Any) -> M:
    """Validate outgoing request data, mapping failures to ReservaValidationError."""
    if isinstance(values, model):
        return values
    try:
        return model.model_validate(values)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise ReservaValidationError(
            f"Invalid {model.__name__}: {fields}",
            detail=str(exc),
        ) from exc
