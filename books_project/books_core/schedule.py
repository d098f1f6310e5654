import datetime

from dateutil.relativedelta import relativedelta
from django.core.exceptions import ValidationError
from django.db import models


class Frequency(models.TextChoices):
    WEEK = "Week", "Week"
    MONTH = "Month", "Month"
    QUARTER = "Quarter", "Quarter"
    HALF_YEARLY = "Half Yearly", "Half Yearly"
    SIX_MONTH = "Six Month", "Six Month"
    YEAR = "Year", "Year"


# relativedelta clamps month arithmetic to the last valid day
# (Jan 31 + 1 month -> Feb 28/29)
INTERVALS = {
    Frequency.WEEK: relativedelta(days=7),
    Frequency.MONTH: relativedelta(months=1),
    Frequency.QUARTER: relativedelta(months=3),
    Frequency.HALF_YEARLY: relativedelta(months=6),
    Frequency.SIX_MONTH: relativedelta(months=6),
    Frequency.YEAR: relativedelta(years=1),
}


def parse_frequency(value) -> Frequency:
    # Closed set: never fall back to a default interval
    try:
        return Frequency(value)
    except ValueError:
        raise ValidationError(
            f"Invalid repeat frequency: {value!r}", code="invalid_frequency"
        )


def to_day(value) -> datetime.date:
    """Normalize a date or datetime to its calendar day."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return datetime.date.fromisoformat(value[:10])
    raise ValidationError(f"Not a date: {value!r}")


def add_interval(base_date, frequency, anchor_day=None) -> datetime.date:
    """
    Next occurrence after base_date. Calendar-month steps return to
    anchor_day when the target month has it, so a schedule started on the
    31st goes Jan 31, Feb 29, Mar 31 instead of sticking to the 29th.
    """
    frequency = parse_frequency(frequency)
    result = to_day(base_date) + INTERVALS[frequency]
    if anchor_day and frequency != Frequency.WEEK:
        result += relativedelta(day=anchor_day)
    return result


def is_expired(schedule, reference_date) -> bool:
    if schedule.never_expires:
        return False
    if schedule.ends_on is None:
        return False
    return to_day(reference_date) > to_day(schedule.ends_on)


def is_due(schedule, reference_date) -> bool:
    return bool(schedule.is_active) and (
        to_day(schedule.next_occurrence) <= to_day(reference_date)
    )
