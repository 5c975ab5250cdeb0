from datetime import time

from pydantic import ValidationError
import pytest

from slotbook.core.config import Settings


def test_defaults_describe_reference_calendar():
    settings = Settings(_env_file=None)

    hours = settings.working_hours
    assert hours.timezone == "Europe/Kyiv"
    assert (hours.opens_at, hours.closes_at) == (time(9, 0), time(19, 0))
    assert settings.slot_step_minutes == 30
    assert settings.hold_duration_hours == 24


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("WORKING_HOURS_START", "08:30")
    monkeypatch.setenv("REFERENCE_TIMEZONE", "UTC")

    settings = Settings(_env_file=None)

    assert settings.working_hours.opens_at == time(8, 30)
    assert settings.working_hours.timezone == "UTC"


def test_unknown_timezone_is_rejected():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, reference_timezone="Mars/Olympus")


def test_closing_must_follow_opening():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, working_hours_start=time(19, 0), working_hours_end=time(9, 0))
