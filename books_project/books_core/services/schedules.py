import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from ..amounts import UNPAID
from ..models import Expense, Invoice, RecurringExpense, RecurringInvoice
from ..schedule import add_interval, parse_frequency, to_day
from .audit_helper import log_action

logger = logging.getLogger(__name__)

_UNSET = object()


def validate_schedule_fields(frequency, start_on, ends_on, never_expires):
    """Reject bad input before anything is written."""
    if not frequency or not start_on:
        raise ValidationError("Repeat Every and Start On are required")
    frequency = parse_frequency(frequency)
    start_on = to_day(start_on)
    ends_on = to_day(ends_on) if ends_on else None
    if not never_expires and ends_on is None:
        raise ValidationError(
            "Ends On is required when Never Expires is not checked")
    if never_expires:
        ends_on = None
    if ends_on is not None and ends_on <= start_on:
        raise ValidationError("Ends On date must be after Start On date")
    return frequency, start_on, ends_on


def _schedule_changes(schedule):
    return {
        "frequency": schedule.frequency,
        "start_on": schedule.start_on,
        "ends_on": schedule.ends_on,
        "never_expires": schedule.never_expires,
        "next_occurrence": schedule.next_occurrence,
        "is_active": schedule.is_active,
    }


def create_recurring_invoices(
    owner, invoice_ids, frequency, start_on, ends_on=None, never_expires=False
):
    """
    Attach one schedule per base invoice. Ids that don't belong to the
    owner are skipped. The base invoice covers start_on itself, so the
    first generated occurrence is one interval later.
    """
    if not invoice_ids:
        raise ValidationError("At least one invoice ID is required")
    frequency, start_on, ends_on = validate_schedule_fields(
        frequency, start_on, ends_on, never_expires)
    next_occurrence = add_interval(start_on, frequency)

    schedules = []
    with transaction.atomic():
        for invoice in Invoice.objects.for_owner(owner).filter(pk__in=invoice_ids):
            schedule = RecurringInvoice.objects.create(
                owner=owner,
                base_invoice=invoice,
                frequency=frequency,
                start_on=start_on,
                ends_on=ends_on,
                never_expires=bool(never_expires),
                next_occurrence=next_occurrence,
            )
            log_action(action="create", instance=schedule,
                       changes=_schedule_changes(schedule))
            schedules.append(schedule)
    logger.info("Created %s recurring invoice schedule(s) for %s",
                len(schedules), owner)
    return schedules


def expense_dedupe_key(expense, frequency) -> str:
    """One schedule per logical expense per repeat cycle."""
    def part(value):
        return str(value or "").strip().lower()

    return "|".join([
        part(expense.vendor),
        part(expense.category),
        part(expense.department),
        f"{expense.total_amount:.2f}",
        part(frequency),
    ])


def create_recurring_expenses(
    owner, expense_ids, frequency, start_on, ends_on=None, never_expires=False
):
    """
    Attach schedules to base expenses. When an active schedule already
    repeats the same logical expense at this frequency it is returned
    instead of a second one.
    """
    if not expense_ids:
        raise ValidationError("At least one expense ID is required")
    frequency, start_on, ends_on = validate_schedule_fields(
        frequency, start_on, ends_on, never_expires)
    next_occurrence = add_interval(start_on, frequency)

    schedules = []
    with transaction.atomic():
        existing = {
            expense_dedupe_key(s.base_expense, s.frequency): s
            for s in RecurringExpense.objects.for_owner(owner)
            .active()
            .select_related("base_expense")
        }
        for expense in Expense.objects.for_owner(owner).filter(pk__in=expense_ids):
            key = expense_dedupe_key(expense, frequency)
            if key in existing:
                logger.info("Expense %s already repeats as schedule %s",
                            expense.pk, existing[key].pk)
                schedules.append(existing[key])
                continue

            # A template carries no payment state of its own
            expense.paid_amount = 0
            expense.status = UNPAID
            expense.save()

            schedule = RecurringExpense.objects.create(
                owner=owner,
                base_expense=expense,
                frequency=frequency,
                start_on=start_on,
                ends_on=ends_on,
                never_expires=bool(never_expires),
                next_occurrence=next_occurrence,
            )
            log_action(action="create", instance=schedule,
                       changes=_schedule_changes(schedule))
            existing[key] = schedule
            schedules.append(schedule)
    return schedules


def update_schedule(
    schedule,
    *,
    frequency=None,
    start_on=None,
    ends_on=_UNSET,
    never_expires=None,
    is_active=None,
):
    """Apply changes and recompute next_occurrence from the last run (or start)."""
    new_frequency = frequency or schedule.frequency
    new_start = start_on or schedule.start_on
    new_ends = schedule.ends_on if ends_on is _UNSET else ends_on
    new_never = schedule.never_expires if never_expires is None else bool(never_expires)

    new_frequency, new_start, new_ends = validate_schedule_fields(
        new_frequency, new_start, new_ends, new_never)

    with transaction.atomic():
        schedule.frequency = new_frequency
        schedule.start_on = new_start
        schedule.ends_on = new_ends
        schedule.never_expires = new_never
        if is_active is not None:
            schedule.is_active = bool(is_active)
        schedule.next_occurrence = add_interval(
            schedule.last_occurrence or schedule.start_on,
            schedule.frequency,
            anchor_day=schedule.start_on.day,
        )
        schedule.save()
        log_action(action="update", instance=schedule,
                   changes=_schedule_changes(schedule))
    return schedule


def delete_schedule(schedule):
    """Remove a schedule; the base document's template flag is synced by signals."""
    with transaction.atomic():
        log_action(action="delete", instance=schedule,
                   changes={"base_document_id": schedule.base_document_id})
        schedule.delete()
