import uuid
from datetime import datetime, date

import pytest

from models.reminder import Reminder
from schemas.buddy import BuddyCreate
from schemas.reminder import ReminderCreate
from services.dates import add_months, day_bounds, get_zone, at_nine
from services.errors import ValidationError


def _reminder(**kwargs):
    fields = dict(user_id=uuid.uuid4(), title="Pay rent", due_date=datetime(2024, 1, 31, 9, 0))
    fields.update(kwargs)
    return Reminder(**fields)


def test_non_recurring_has_no_next_occurrence():
    assert _reminder(is_recurring=False).get_next_occurrence() is None


@pytest.mark.parametrize(
    "frequency, expected",
    [
        ("daily", datetime(2024, 2, 1, 9, 0)),
        ("weekly", datetime(2024, 2, 7, 9, 0)),
        # 1/31 + 1ヶ月 は2月末日に寄せる（閏年）
        ("monthly", datetime(2024, 2, 29, 9, 0)),
    ],
)
def test_next_occurrence(frequency, expected):
    r = _reminder(is_recurring=True, frequency=frequency)
    assert r.get_next_occurrence() == expected


def test_monthly_clamps_in_non_leap_year():
    r = _reminder(is_recurring=True, frequency="monthly", due_date=datetime(2023, 1, 31))
    assert r.get_next_occurrence() == datetime(2023, 2, 28)


def test_end_date_bounds_occurrences():
    r = _reminder(is_recurring=True, frequency="daily", recurrence_end=datetime(2024, 2, 1, 8, 59))
    assert r.get_next_occurrence() is None

    r.recurrence_end = datetime(2024, 2, 1, 9, 0)
    assert r.get_next_occurrence() == datetime(2024, 2, 1, 9, 0)


def test_custom_frequency_is_rejected():
    r = _reminder(is_recurring=True, frequency="custom", custom_pattern="Mon,Wed")
    with pytest.raises(ValidationError):
        r.get_next_occurrence()


def test_set_completed_keeps_completed_at_in_sync():
    r = _reminder(completed=False, completed_at=None)
    now = datetime(2024, 1, 30, 12, 0)

    r.set_completed(True, now=now)
    assert r.completed is True
    assert r.completed_at == now

    r.set_completed(False)
    assert r.completed is False
    assert r.completed_at is None


def test_is_overdue():
    r = _reminder(completed=False)
    assert r.is_overdue(datetime(2024, 2, 1))
    assert not r.is_overdue(datetime(2024, 1, 30))

    r.completed = True
    assert not r.is_overdue(datetime(2024, 2, 1))


def test_owner_cannot_change():
    r = _reminder()
    with pytest.raises(ValidationError):
        r.user_id = uuid.uuid4()


def test_history_and_responses_append():
    r = _reminder(history=[], user_responses=[])
    r.add_history("created", now=datetime(2024, 1, 1))
    r.add_response("snoozed", note="busy", now=datetime(2024, 1, 2))

    assert [h["action"] for h in r.history] == ["created"]
    assert r.user_responses[0]["note"] == "busy"
    assert r.user_responses[0]["timestamp"] == "2024-01-02T00:00:00"


def test_add_months_across_year():
    assert add_months(datetime(2024, 12, 15), 1) == datetime(2025, 1, 15)
    assert add_months(datetime(2024, 3, 31), -1) == datetime(2024, 2, 29)
    assert add_months(datetime(2024, 2, 29), -12) == datetime(2023, 2, 28)


def test_day_bounds_in_local_zone():
    start, end = day_bounds(date(2024, 6, 1), get_zone("Asia/Tokyo"))
    assert start == datetime(2024, 5, 31, 15, 0)
    assert end == datetime(2024, 6, 1, 14, 59, 59, 999000)


def test_at_nine_uses_local_calendar():
    # UTC 2024-06-01 20:00 は東京では 6/2 05:00 → 翌日 6/3 09:00 JST = 6/3 00:00 UTC
    assert at_nine(datetime(2024, 6, 1, 20, 0), 1, get_zone("Asia/Tokyo")) == datetime(2024, 6, 3, 0, 0)


def test_unknown_zone():
    with pytest.raises(ValidationError):
        get_zone("Mars/Olympus")


def test_list_defaults_are_per_instance():
    first = ReminderCreate(title="a", due_date=datetime(2030, 1, 1))
    first.tags.append("work")
    assert ReminderCreate(title="b", due_date=datetime(2030, 1, 1)).tags == []

    buddy = BuddyCreate(name="Pal")
    buddy.custom_traits.append("calm")
    buddy.default_messages.greeting.append("Hi")
    other = BuddyCreate(name="Pal")
    assert other.custom_traits == []
    assert other.default_messages.greeting == []
