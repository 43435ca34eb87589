from __future__ import annotations

from pyreserva._redact import redact_for_log, redact_headers
from pyreserva.models import RegisterProfile


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "identifier": "alice",
        "password": "secret123",
        "tokens": {"access_token": "abc", "refresh_token": "def", "token_type": "Bearer"},
        "headers": {"Authorization": "Bearer abc"},
    }

    redacted = redact_for_log(payload)
    assert redacted["identifier"] == "alice"
    assert redacted["password"] == "<redacted>"
    assert redacted["tokens"]["access_token"] == "<redacted>"
    assert redacted["tokens"]["refresh_token"] == "<redacted>"
    assert redacted["tokens"]["token_type"] == "Bearer"
    assert redacted["headers"]["Authorization"] == "<redacted>"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_for_log_walks_lists() -> None:
    redacted = redact_for_log([{"token": "abc"}, {"id": 1}])
    assert redacted == [{"token": "<redacted>"}, {"id": 1}]


def test_redact_for_log_masks_embedded_bearer_tokens() -> None:
    redacted = redact_for_log({"detail": "rejected Bearer tok-1 for /api/reservations"})
    assert redacted["detail"] == "rejected Bearer <redacted> for /api/reservations"


def test_redact_for_log_dumps_models() -> None:
    profile = RegisterProfile(username="carol", password="pw123456", email="carol@example.com")
    redacted = redact_for_log(profile)
    assert redacted["username"] == "carol"
    assert redacted["password"] == "<redacted>"


def test_redact_headers_masks_credentials_only() -> None:
    headers = {"Authorization": "Bearer abc", "User-Agent": "pyreserva", "Set-Cookie": "sid=1"}
    assert redact_headers(headers) == {
        "Authorization": "<redacted>",
        "User-Agent": "pyreserva",
        "Set-Cookie": "<redacted>",
    }
