import datetime
from types import SimpleNamespace

import pytest
from django.core.exceptions import ValidationError

from ..schedule import (Frequency, add_interval, is_due, is_expired,
                        parse_frequency, to_day)


@pytest.mark.parametrize("frequency", list(Frequency))
@pytest.mark.parametrize(
    "start",
    [
        datetime.date(2024, 1, 15),
        datetime.date(2024, 1, 31),
        datetime.date(2024, 2, 29),
        datetime.date(2023, 12, 31),
        datetime.datetime(2024, 8, 31, 23, 45),
    ],
)
def test_next_date_is_always_later(frequency, start):
    assert add_interval(start, frequency) > to_day(start)


@pytest.mark.parametrize(
    "start, frequency, expected",
    [
        ("2024-01-15", "Week", datetime.date(2024, 1, 22)),
        ("2024-01-15", "Month", datetime.date(2024, 2, 15)),
        ("2024-01-15", "Quarter", datetime.date(2024, 4, 15)),
        ("2024-01-15", "Half Yearly", datetime.date(2024, 7, 15)),
        ("2024-01-15", "Six Month", datetime.date(2024, 7, 15)),
        ("2024-01-15", "Year", datetime.date(2025, 1, 15)),
    ],
)
def test_calendar_intervals(start, frequency, expected):
    assert add_interval(start, frequency) == expected


def test_month_end_clamps_to_last_day():
    assert add_interval(datetime.date(2024, 1, 31), "Month") == datetime.date(2024, 2, 29)
    assert add_interval(datetime.date(2023, 1, 31), "Month") == datetime.date(2023, 2, 28)
    assert add_interval(datetime.date(2024, 8, 31), "Quarter") == datetime.date(2024, 11, 30)
    assert add_interval(datetime.date(2024, 2, 29), "Year") == datetime.date(2025, 2, 28)


def test_datetime_input_returns_calendar_day():
    result = add_interval(datetime.datetime(2024, 3, 10, 18, 30), "Week")
    assert result == datetime.date(2024, 3, 17)
    assert not isinstance(result, datetime.datetime)


@pytest.mark.parametrize("value", ["Fortnight", "", None, "month"])
def test_unknown_frequency_is_rejected(value):
    with pytest.raises(ValidationError):
        parse_frequency(value)


def test_expiry_rules():
    schedule = SimpleNamespace(never_expires=False, ends_on=datetime.date(2024, 1, 1))
    assert is_expired(schedule, datetime.date(2024, 2, 1))
    # the end date itself is still in range
    assert not is_expired(schedule, datetime.date(2024, 1, 1))

    schedule.never_expires = True
    assert not is_expired(schedule, datetime.date(2099, 1, 1))

    open_ended = SimpleNamespace(never_expires=False, ends_on=None)
    assert not is_expired(open_ended, datetime.date(2099, 1, 1))


def test_due_rules():
    schedule = SimpleNamespace(is_active=True, next_occurrence=datetime.date(2024, 2, 15))
    assert is_due(schedule, datetime.date(2024, 2, 15))
    assert is_due(schedule, datetime.date(2024, 3, 1))
    assert not is_due(schedule, datetime.date(2024, 2, 14))

    schedule.is_active = False
    assert not is_due(schedule, datetime.date(2024, 3, 1))


def test_anchor_day_returns_after_a_short_month():
    feb = add_interval(datetime.date(2024, 1, 31), "Month", anchor_day=31)
    assert feb == datetime.date(2024, 2, 29)
    assert add_interval(feb, "Month", anchor_day=31) == datetime.date(2024, 3, 31)
    assert add_interval(datetime.date(2024, 11, 30), "Quarter", anchor_day=31) == datetime.date(2025, 2, 28)
    # weekly schedules have no day of month to return to
    assert add_interval(datetime.date(2024, 2, 29), "Week", anchor_day=31) == datetime.date(2024, 3, 7)
