"""
Shared fixtures for the scheduling core test suite.

Cancellation links need a signing secret; a fixed test secret is set before
any service import so ``Settings()`` picks it up.
"""

import os

os.environ.setdefault("CANCEL_TOKEN_SECRET", "test-cancel-secret")

from datetime import date, datetime, time, timezone

from pydantic import SecretStr
import pytest

from scheduling_core.core.config import settings
from scheduling_core.schemas import BookingConfig, CalendarEvent, DaySchedule


@pytest.fixture
def cancel_secret(monkeypatch):
    monkeypatch.setattr(settings, "cancel_token_secret", SecretStr("test-cancel-secret"))
    return "test-cancel-secret"


@pytest.fixture
def sydney_config() -> BookingConfig:
    """Mon-Fri 09:00-12:00 in Sydney, 30-minute slots."""
    hours = {
        index: DaySchedule(enabled=1 <= index <= 5, start_time=time(9, 0), end_time=time(12, 0))
        for index in range(7)
    }
    return BookingConfig(timezone="Australia/Sydney", weekly_schedule=hours)


@pytest.fixture
def utc_config() -> BookingConfig:
    """Every day 09:00-11:00 UTC, 30-minute slots."""
    hours = {
        index: DaySchedule(start_time=time(9, 0), end_time=time(11, 0)) for index in range(7)
    }
    return BookingConfig(timezone="UTC", weekly_schedule=hours)


def make_event(
    start: datetime,
    end: datetime,
    *,
    event_id: str = "evt_1",
    tenant_id: str = "tenant_1",
    status: str = "scheduled",
    **extra,
) -> CalendarEvent:
    event_date = extra.pop("event_date", start.date())
    return CalendarEvent(
        id=event_id,
        tenant_id=tenant_id,
        title="Consultation",
        date=event_date,
        start_time=start,
        end_time=end,
        status=status,
        **extra,
    )


@pytest.fixture
def event_factory():
    return make_event


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 3, 10, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def monday() -> date:
    return date(2025, 3, 10)
