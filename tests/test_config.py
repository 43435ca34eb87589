from __future__ import annotations

import pytest

from pyreserva.config import ReservaConfig
from pyreserva.exceptions import ReservaConfigError


def test_defaults_match_service_layout() -> None:
    config = ReservaConfig()
    assert config.users_base_url.endswith(":8080")
    assert config.reservations_base_url.endswith(":8081")
    assert config.search_base_url.endswith(":8082")
    assert config.request_timeout == 10.0
    assert config.default_page_size == 6


def test_from_env_reads_reserva_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESERVA_USERS_URL", "http://users.internal")
    monkeypatch.setenv("RESERVA_SEARCH_STALE_TIME", "5")
    monkeypatch.setenv("RESERVA_PAGE_SIZE", "12")
    monkeypatch.setenv("RESERVA_NOTICES_ENABLED", "off")

    config = ReservaConfig.from_env()
    assert config.users_base_url == "http://users.internal"
    assert config.search_stale_time == 5.0
    assert config.default_page_size == 12
    assert config.notices_enabled is False


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESERVA_REQUEST_TIMEOUT", "3")
    config = ReservaConfig.from_env(request_timeout=7.5)
    assert config.request_timeout == 7.5


def test_from_env_rejects_non_numeric(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESERVA_REQUEST_TIMEOUT", "soon")
    with pytest.raises(ReservaConfigError):
        ReservaConfig.from_env()


@pytest.mark.parametrize(
    "kwargs",
    [{"request_timeout": 0}, {"default_page_size": 0}, {"owner_stale_time": -1}],
)
def test_invalid_values_raise_config_error(kwargs: dict) -> None:
    with pytest.raises(ReservaConfigError):
        ReservaConfig(**kwargs)
