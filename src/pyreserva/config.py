"""Client configuration for pyreserva."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyreserva._constants import DEFAULT_PAGE_SIZE
from pyreserva.exceptions import ReservaConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ReservaConfig:
    """Client configuration.

    Parameters
    ----------
    users_base_url : str
        Base URL of the identity service (login, register, user lookup).
    reservations_base_url : str
        Base URL of the reservation service.
    search_base_url : str
        Base URL of the search/availability service.
    request_timeout : float
        Total per-request timeout in seconds.
    search_stale_time : float
        Seconds a cached search page is served without refetching.
    availability_stale_time : float
        Seconds a cached availability read backs a booking draft without
        refetching.
    owner_stale_time : float
        Seconds a resolved reservation owner stays fresh.
    default_page_size : int
        Page size used by ``SearchParams`` when none is given.
    session_file : str or None
        Path of the JSON file that persists the session across restarts.
        ``None`` keeps the session in memory only.
    login_entry_point : str
        Location of the login entry point. Auth teardown does not ask for a
        redirect when the caller is already there.
    notices_enabled : bool
        Emit user-facing notices through the ``on_notice`` callback.
    """

    users_base_url: str = "http://localhost:8080"
    reservations_base_url: str = "http://localhost:8081"
    search_base_url: str = "http://localhost:8082"
    request_timeout: float = 10.0
    search_stale_time: float = 30.0
    availability_stale_time: float = 30.0
    owner_stale_time: float = 60.0
    default_page_size: int = DEFAULT_PAGE_SIZE
    session_file: str | None = None
    login_entry_point: str = "/login"
    notices_enabled: bool = True

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ReservaConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if self.default_page_size < 1:
            raise ReservaConfigError(f"default_page_size must be >= 1, got {self.default_page_size}")
        for name in ("search_stale_time", "availability_stale_time", "owner_stale_time"):
            if getattr(self, name) < 0:
                raise ReservaConfigError(f"{name} must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> ReservaConfig:
        """Create configuration from environment variables.

        Reads optional ``RESERVA_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        ReservaConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "RESERVA_USERS_URL": "users_base_url",
            "RESERVA_RESERVATIONS_URL": "reservations_base_url",
            "RESERVA_SEARCH_URL": "search_base_url",
            "RESERVA_SESSION_FILE": "session_file",
            "RESERVA_LOGIN_ENTRY_POINT": "login_entry_point",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric fields, handled separately
        _ENV_FLOAT_MAP = {
            "RESERVA_REQUEST_TIMEOUT": "request_timeout",
            "RESERVA_SEARCH_STALE_TIME": "search_stale_time",
            "RESERVA_AVAILABILITY_STALE_TIME": "availability_stale_time",
            "RESERVA_OWNER_STALE_TIME": "owner_stale_time",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise ReservaConfigError(f"{env_key} must be a number, got {val!r}") from exc

        page_size_env = env.get("RESERVA_PAGE_SIZE")
        if page_size_env is not None and "default_page_size" not in overrides:
            try:
                config_kwargs["default_page_size"] = int(page_size_env)
            except ValueError as exc:
                raise ReservaConfigError(f"RESERVA_PAGE_SIZE must be an integer, got {page_size_env!r}") from exc

        if "notices_enabled" not in overrides:
            config_kwargs["notices_enabled"] = _env_bool(env.get("RESERVA_NOTICES_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
