import datetime
import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..amounts import CANCEL, to_decimal
from ..exceptions import DocumentNotFound
from ..models import Expense, ExpensePayment
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def find_duplicate_expense(owner, *, vendor, category, department, total_amount, date):
    """Same vendor/category/department/total on the same day is one expense."""
    return (
        Expense.objects.for_owner(owner)
        .filter(
            vendor=vendor or "",
            category=category or "",
            department=department or "",
            total_amount=to_decimal(total_amount),
            date=date,
        )
        .order_by("created_at", "id")
        .first()
    )


def create_expense(owner, **fields):
    """
    Create an expense, or return the existing one when the same
    submission was already recorded. Returns (expense, created).
    """
    expense = Expense(owner=owner, **fields)
    if to_decimal(expense.total_amount) <= 0:
        expense.total_amount = expense.derived_total()
    expense.apply_amounts()

    with transaction.atomic():
        duplicate = find_duplicate_expense(
            owner,
            vendor=expense.vendor,
            category=expense.category,
            department=expense.department,
            total_amount=expense.total_amount,
            date=expense.date,
        )
        if duplicate is not None:
            logger.info("Duplicate expense submission, returning %s", duplicate.pk)
            return duplicate, False

        # save() clamps paid into [0, total] and derives the status
        expense.save()
        if expense.paid_amount > 0:
            ExpensePayment.objects.create(
                expense=expense,
                payment_date=expense.date,
                amount_paid=expense.paid_amount,
                cumulative_paid=expense.paid_amount,
                status=expense.status,
                transaction_ref=expense.paid_transaction_ref,
            )
        log_action(
            action="create",
            instance=expense,
            changes={
                "total_amount": expense.total_amount,
                "paid_amount": expense.paid_amount,
                "status": expense.status,
            },
        )
    return expense, True


def record_expense_payment(
    expense_id,
    amount,
    *,
    owner=None,
    payment_date: datetime.date | None = None,
    transaction_ref: str = "",
    notes: str = "",
):
    """Add a payment to an expense; overpayment is clamped at the total."""
    amount = to_decimal(amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be positive")

    with transaction.atomic():
        qs = Expense.objects.select_for_update()
        if owner is not None:
            qs = qs.for_owner(owner)
        try:
            expense = qs.get(pk=expense_id)
        except Expense.DoesNotExist:
            raise DocumentNotFound(f"Expense {expense_id} not found")

        if expense.status == CANCEL:
            raise ValidationError("Cannot record a payment on a cancelled expense")

        before = expense.paid_amount
        expense.paid_amount = before + amount
        if transaction_ref:
            expense.paid_transaction_ref = transaction_ref
        expense.save()

        applied = expense.paid_amount - before
        if applied <= Decimal("0.00"):
            raise ValidationError("Expense is already fully paid")

        ExpensePayment.objects.create(
            expense=expense,
            payment_date=payment_date or timezone.localdate(),
            amount_paid=applied,
            cumulative_paid=expense.paid_amount,
            status=expense.status,
            transaction_ref=transaction_ref,
            notes=notes,
        )
        log_action(
            action="payment",
            instance=expense,
            changes={
                "amount": applied,
                "paid_amount": expense.paid_amount,
                "status": expense.status,
            },
        )
    return expense
