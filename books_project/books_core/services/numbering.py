import logging

from django.conf import settings
from django.db import IntegrityError, transaction

from ..exceptions import SequenceExhausted

logger = logging.getLogger(__name__)


def format_sequence(prefix: str, year: int, counter: int, width: int) -> str:
    """<PREFIX><YYYY><zero-padded counter>, e.g. INV20240007."""
    return f"{prefix}{year:04d}{counter:0{width}d}"


def _parse_counter(number: str, stem: str):
    tail = number[len(stem):]
    if not tail.isdigit():
        return None
    return int(tail), len(tail)


def next_sequence_number(model, field: str, owner, prefix: str, year: int) -> str:
    """
    Next unused counter for (owner, prefix, year).
    Width follows the latest existing number, so a history that
    started with 3 digits keeps 3 digits.
    """
    stem = f"{prefix}{year:04d}"
    existing = model.objects.filter(
        owner=owner, **{f"{field}__startswith": stem}
    ).values_list(field, flat=True)

    counter, width = 0, settings.BOOKS_SEQUENCE_WIDTH
    for number in existing:
        parsed = _parse_counter(number, stem)
        if parsed and parsed[0] > counter:
            counter, width = parsed
    return format_sequence(prefix, year, counter + 1, width)


def create_with_sequence(model, field: str, owner, prefix: str, year: int, **fields):
    """
    Create model(**fields) with a fresh sequence number in `field`.
    Read-then-write races surface as IntegrityError on the unique
    (owner, number) constraint; each attempt runs in its own savepoint
    so a collision is retried without poisoning the outer transaction.
    """
    max_retries = settings.BOOKS_SEQUENCE_MAX_RETRIES
    for attempt in range(1, max_retries + 1):
        number = next_sequence_number(model, field, owner, prefix, year)
        try:
            with transaction.atomic():
                return model.objects.create(owner=owner, **{field: number}, **fields)
        except IntegrityError:
            # Only retry when the number itself was taken
            if not model.objects.filter(owner=owner, **{field: number}).exists():
                raise
            logger.warning(
                "%s %s already taken (attempt %s/%s), retrying",
                model.__name__, number, attempt, max_retries,
            )
    raise SequenceExhausted(
        f"No free {prefix}{year} number for {model.__name__} after {max_retries} attempts"
    )
