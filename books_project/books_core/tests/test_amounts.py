from decimal import Decimal

import pytest

from ..amounts import (PAID, PARTIAL, UNPAID, derive_status, normalize_amounts,
                       to_decimal)


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, Decimal("0.00")),
        ("", Decimal("0.00")),
        ("abc", Decimal("0.00")),
        ("NaN", Decimal("0.00")),
        ("Infinity", Decimal("0.00")),
        (float("-inf"), Decimal("0.00")),
        ("12.345", Decimal("12.35")),
        (7, Decimal("7.00")),
        (" 99.5 ", Decimal("99.50")),
    ],
)
def test_to_decimal_coerces_malformed_input(raw, expected):
    assert to_decimal(raw) == expected


@pytest.mark.parametrize(
    "total, paid_raw",
    [
        (1000, 1200),
        (1000, -50),
        (1000, 0),
        (1000, 999.995),
        (1000, 500),
        (0, 100),
        (-20, 5),
        ("abc", "1e9"),
        (100, None),
        (0.01, 0.01),
    ],
)
def test_paid_is_clamped_and_status_matches_thresholds(total, paid_raw):
    result = normalize_amounts(total, paid_raw)

    assert Decimal("0") <= result.paid <= result.total
    assert result.due == result.total - result.paid
    assert result.status == derive_status(result.total, result.paid)

    if result.total > 0 and result.paid >= result.total - Decimal("0.01"):
        assert result.status == PAID
    elif result.paid > Decimal("0.01"):
        assert result.status == PARTIAL
    else:
        assert result.status == UNPAID


def test_overpaid_expense_is_clamped_to_total():
    result = normalize_amounts(Decimal("1000"), Decimal("1200"))

    assert result.total == Decimal("1000.00")
    assert result.paid == Decimal("1000.00")
    assert result.due == Decimal("0.00")
    assert result.status == PAID


def test_within_epsilon_counts_as_paid():
    assert normalize_amounts("100.00", "99.99").status == PAID
    assert normalize_amounts("100.00", "99.98").status == PARTIAL


def test_nothing_due_on_zero_total():
    result = normalize_amounts(0, 250)
    assert result.paid == Decimal("0.00")
    assert result.status == UNPAID
