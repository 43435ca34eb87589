"""Identity service models."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pyreserva.models._base import ReservaBaseModel


class Role(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Identity(ReservaBaseModel):
    """The authenticated user's identity record."""

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"displayName": "display_name"}

    id: int
    username: str = ""
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: Role = Role.USER
    display_name: str = ""
    """Name to greet the user with; derived from the other fields when absent."""

    @field_validator("role", mode="before")
    @classmethod
    def _normalize_role(cls, value: Any) -> Any:
        if isinstance(value, str):
            lowered = value.strip().lower()
            return lowered if lowered in {r.value for r in Role} else Role.USER
        return value

    @model_validator(mode="after")
    def _derive_display_name(self) -> Identity:
        if not self.display_name:
            composed = f"{self.first_name} {self.last_name}".strip()
            object.__setattr__(self, "display_name", composed or self.username or self.email)
        return self

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class AuthTokens(ReservaBaseModel):
    _KEY_ALIASES: ClassVar[dict[str, str]] = {"token": "access_token", "accessToken": "access_token"}

    access_token: str = ""
    refresh_token: str = ""


class LoginResult(ReservaBaseModel):
    """Decoded ``POST /api/users/login`` response.

    The token has been observed as ``tokens.access_token``,
    ``tokens.token``, top-level ``token`` and top-level ``access_token``;
    the first non-empty one wins.
    """

    _KEY_ALIASES: ClassVar[dict[str, str]] = {"user": "identity"}

    token: str
    identity: Identity

    @model_validator(mode="before")
    @classmethod
    def _pick_token(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        tokens = values.get("tokens")
        candidates: list[Any] = []
        if isinstance(tokens, dict):
            nested = AuthTokens.model_validate(tokens)
            candidates.append(nested.access_token)
        candidates.extend([values.get("token"), values.get("access_token"), values.get("accessToken")])
        picked = next((c for c in candidates if isinstance(c, str) and c), None)
        if picked is None:
            return {k: v for k, v in values.items() if k not in {"token", "access_token", "accessToken"}}
        return {**values, "token": picked}


class RegisterProfile(BaseModel):
    """Account details submitted to ``POST /api/users/register``."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    username: str = Field(min_length=1)
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    password: str = Field(min_length=1, repr=False)

    @property
    def login_identifier(self) -> str:
        return self.email or self.username
