from __future__ import annotations

from claims_backend.config.logging_config import REDACTED, redact_sensitive_fields


def test_credentials_are_masked() -> None:
    event = redact_sensitive_fields(None, "info", {
        "event": "Login attempt",
        "email": "doctor@healthcare.com",
        "password": "doctor123",
        "config": {"ai_api_key": "sk-live", "port": 8000},
    })

    assert event["password"] == REDACTED
    assert event["email"] == "doctor@healthcare.com"
    assert event["config"] == {"ai_api_key": REDACTED, "port": 8000}


def test_empty_credentials_are_left_alone() -> None:
    event = redact_sensitive_fields(None, "info", {"event": "Settings", "ai_api_key": ""})

    assert event["ai_api_key"] == ""
