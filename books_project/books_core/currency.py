import logging
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from .amounts import CENT, to_decimal
from .exceptions import UnknownCurrencyError

logger = logging.getLogger(__name__)


def reporting_currency() -> str:
    return settings.BOOKS_REPORTING_CURRENCY.upper()


def default_rate(currency_code: str, rates=None) -> Decimal:
    """Operator-configured rate: 1 unit of currency_code in reporting units."""
    code = (currency_code or "").upper()
    if code == reporting_currency():
        return Decimal("1")
    table = rates if rates is not None else settings.BOOKS_DEFAULT_EXCHANGE_RATES
    raw = {k.upper(): v for k, v in table.items()}.get(code)
    if raw is None:
        raw = settings.BOOKS_FALLBACK_EXCHANGE_RATE
        if raw is None:
            raise UnknownCurrencyError(
                f"No default exchange rate configured for {code or 'blank currency'}"
            )
        logger.warning("No rate configured for %s, using fallback %s", code, raw)
    rate = Decimal(str(raw))
    if rate <= 0:
        raise UnknownCurrencyError(f"Default exchange rate for {code} must be positive")
    return rate


def to_reporting_currency(
    amount,
    source_currency: str,
    exchange_rate=None,
    reporting_equivalent=None,
    whole_amount=None,
    rates=None,
) -> Decimal:
    """
    Convert amount from source_currency into the reporting currency.

    Precedence:
      1. same currency -> unchanged
      2. reporting_equivalent of whole_amount -> proportional factor
      3. explicit exchange_rate (1 is the stored default and is ignored)
      4. configured default rate
    """
    amount = to_decimal(amount)
    code = (source_currency or reporting_currency()).upper()
    if code == reporting_currency():
        return amount

    equivalent = to_decimal(reporting_equivalent)
    whole = to_decimal(whole_amount)
    if equivalent > 0 and whole > 0:
        factor = equivalent / whole
    else:
        rate = Decimal(str(exchange_rate)) if exchange_rate is not None else Decimal("0")
        if rate > 0 and rate != 1:
            factor = rate
        else:
            factor = default_rate(code, rates=rates)
            logger.info("No rate hint for %s, using default %s", code, factor)

    return (amount * factor).quantize(CENT, rounding=ROUND_HALF_UP)
