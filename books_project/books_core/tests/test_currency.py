from decimal import Decimal

import pytest
from django.test import override_settings

from ..currency import default_rate, to_reporting_currency
from ..exceptions import UnknownCurrencyError


def test_reporting_currency_amount_is_unchanged():
    assert to_reporting_currency("1234.56", "INR", exchange_rate=80) == Decimal("1234.56")


def test_usd_without_hints_uses_configured_default_rate():
    # 5000 USD at the default 90.13
    assert to_reporting_currency(5000, "USD") == Decimal("450650.00")


def test_stored_rate_of_one_is_treated_as_unset():
    assert to_reporting_currency(100, "CAD", exchange_rate=1) == Decimal("6700.00")


def test_explicit_exchange_rate_beats_default():
    assert to_reporting_currency(100, "USD", exchange_rate="83.25") == Decimal("8325.00")


def test_reporting_equivalent_factor_beats_exchange_rate():
    converted = to_reporting_currency(
        250,
        "USD",
        exchange_rate="83.25",
        reporting_equivalent="84000",
        whole_amount="1000",
    )
    assert converted == Decimal("21000.00")


def test_equivalent_needs_a_positive_whole_amount():
    converted = to_reporting_currency(
        10, "AUD", reporting_equivalent="600", whole_amount=0)
    assert converted == Decimal("600.00")


def test_unknown_currency_is_an_error():
    with pytest.raises(UnknownCurrencyError):
        to_reporting_currency(10, "XYZ")


@override_settings(BOOKS_DEFAULT_EXCHANGE_RATES={"usd": "83.5"})
def test_default_rates_come_from_settings():
    assert default_rate("USD") == Decimal("83.5")
    with pytest.raises(UnknownCurrencyError):
        default_rate("CAD")


def test_rates_table_can_be_passed_in():
    assert to_reporting_currency(2, "EUR", rates={"EUR": "95"}) == Decimal("190.00")


@override_settings(BOOKS_DEFAULT_EXCHANGE_RATES={"USD": "0"})
def test_non_positive_default_rate_is_rejected():
    with pytest.raises(UnknownCurrencyError):
        to_reporting_currency(1, "USD")


@override_settings(BOOKS_FALLBACK_EXCHANGE_RATE="90")
def test_fallback_rate_covers_unlisted_currencies():
    assert to_reporting_currency(10, "XYZ") == Decimal("900.00")
    # listed currencies keep their own rate
    assert to_reporting_currency(1, "CAD") == Decimal("67.00")
