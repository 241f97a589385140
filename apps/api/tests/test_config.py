"""Tests for runtime settings."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from petcare.core.config import Settings


def test_defaults() -> None:
    config = Settings(_env_file=None)

    assert config.backend_base_url == "http://localhost:5000/api"
    assert config.backend_timeout_seconds == 10.0
    assert config.clinic_timezone == "UTC"
    assert config.time_label_format == "%I:%M %p"
    assert config.lifecycle_max_tracked == 1024


def test_clinic_timezone_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("CLINIC_TIMEZONE", "Europe/Berlin")

    config = Settings(_env_file=None)

    moment = datetime(2026, 7, 1, 12, 0, tzinfo=timezone.utc).astimezone(config.clinic_tz)
    assert moment.hour == 14


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, clinic_timezone="Mars/Olympus_Mons")


def test_cors_origins_accept_comma_separated_value() -> None:
    config = Settings(_env_file=None, cors_allow_origins="http://a.test, http://b.test")

    assert config.cors_allow_origins == ["http://a.test", "http://b.test"]


def test_timeout_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, backend_timeout_seconds=0)
