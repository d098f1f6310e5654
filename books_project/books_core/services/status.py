import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..amounts import (PAID, PARTIAL, STATUS_CHOICES, UNPAID, normalize_amounts,
                       to_decimal)
from ..currency import reporting_currency, to_reporting_currency
from ..exceptions import DocumentNotFound, InvalidTransition, TransactionFailure
from ..models import Invoice, Payment, Revenue
from ..models.expense import MONTH_NAMES
from ..schedule import to_day
from .audit_helper import log_action
from .numbering import create_with_sequence

logger = logging.getLogger(__name__)

VALID_STATUSES = {value for value, _label in STATUS_CHOICES}

PAYMENT_DETAIL_FIELDS = (
    "payment_date",
    "payment_mode",
    "deposit_to",
    "reference_number",
    "amount_received",
    "bank_charges",
    "amount_withheld",
    "notes",
    "status",
)


# ----------------------------
# Currency helpers
# ----------------------------
def _converter(invoice):
    """Convert invoice-currency amounts with the invoice's own rate hints."""
    def convert(amount):
        return to_reporting_currency(
            amount,
            invoice.currency_code,
            exchange_rate=invoice.exchange_rate,
            reporting_equivalent=invoice.reporting_equivalent,
            whole_amount=invoice.base_amount,
        )
    return convert


# ----------------------------
# Ledger rows for paid invoices
# ----------------------------
def upsert_revenue(invoice):
    """
    Create or refresh the invoice's Revenue entry.
    Every amount lands in the reporting currency.
    """
    convert = _converter(invoice)
    values = {
        "client_name": invoice.client_name,
        "country": invoice.client_country or "India",
        "service": invoice.service_description or "Other Services",
        "invoice_number": invoice.invoice_number or "",
        "invoice_date": invoice.invoice_date,
        "currency_code": reporting_currency(),
        "invoice_amount": convert(invoice.base_amount),
        "gst_amount": convert(invoice.gst_amount),
        "tds_amount": convert(invoice.tds_amount),
        "remittance_charges": convert(invoice.remittance_charges),
        "received_amount": convert(invoice.paid_amount),
        "due_amount": to_decimal(0),
        "month": MONTH_NAMES[invoice.invoice_date.month - 1],
        "year": invoice.invoice_date.year,
    }

    revenue = invoice.revenue
    if revenue is not None:
        for name, value in values.items():
            setattr(revenue, name, value)
        revenue.save()
        action = "update"
    else:
        revenue = Revenue.objects.create(owner=invoice.owner, **values)
        invoice.revenue = revenue
        invoice.save(update_fields=["revenue"], derive_status=False)
        action = "create"

    log_action(action=action, instance=revenue, changes={
        "invoice_id": invoice.pk,
        "received_amount": revenue.received_amount,
    })
    return revenue


def upsert_payment(invoice, payment_details: dict):
    """
    Create or refresh the Payment receipt for a paid invoice.
    New receipts get the next PAY number for the payment year.
    """
    unknown = set(payment_details) - set(PAYMENT_DETAIL_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown payment fields: {', '.join(sorted(unknown))}")

    convert = _converter(invoice)
    details = dict(payment_details)
    payment_date = to_day(details.pop("payment_date", None) or timezone.localdate())
    values = {
        "payment_date": payment_date,
        "currency_code": reporting_currency(),
        "amount_received": convert(details.pop("amount_received", invoice.paid_amount)),
        "bank_charges": convert(details.pop("bank_charges", 0)),
        "amount_withheld": convert(details.pop("amount_withheld", 0)),
        **details,
    }

    payment = invoice.payment
    if payment is not None:
        for name, value in values.items():
            setattr(payment, name, value)
        payment.save()
        action = "update"
    else:
        payment = create_with_sequence(
            Payment,
            "payment_number",
            invoice.owner,
            settings.BOOKS_PAYMENT_PREFIX,
            payment_date.year,
            **values,
        )
        invoice.payment = payment
        invoice.save(update_fields=["payment"], derive_status=False)
        action = "create"

    log_action(action=action, instance=payment, changes={
        "invoice_id": invoice.pk,
        "payment_number": payment.payment_number,
        "amount_received": payment.amount_received,
    })
    return payment


# ----------------------------
# Status transitions
# ----------------------------
def _apply_transition(invoice_id, target_status, owner, received_amount, payment_details):
    with transaction.atomic():
        # Lock the invoice row until the transition commits
        qs = Invoice.objects.select_for_update()
        if owner is not None:
            qs = qs.for_owner(owner)
        try:
            invoice = qs.get(pk=invoice_id)
        except Invoice.DoesNotExist:
            raise DocumentNotFound(f"Invoice {invoice_id} not found")

        if target_status is not None and target_status not in VALID_STATUSES:
            raise ValidationError(f"Invalid status: {target_status}")

        previous = invoice.status
        if previous == PAID and target_status is not None and target_status != PAID:
            raise InvalidTransition(
                f"Invoice {invoice.invoice_number or invoice.pk} is Paid "
                f"and cannot move to {target_status}")

        if received_amount is not None:
            invoice.paid_amount = to_decimal(received_amount)
        elif target_status == PAID:
            invoice.paid_amount = invoice.total_amount

        if target_status in (UNPAID, PARTIAL):
            derived = normalize_amounts(invoice.total_amount, invoice.paid_amount).status
            if derived != target_status:
                raise ValidationError(
                    f"Status {target_status} contradicts the amounts "
                    f"(paid {invoice.paid_amount} of {invoice.total_amount})")

        if target_status is not None:
            # An explicit status wins, e.g. Paid with TDS withheld
            invoice.status = target_status
            invoice.save(derive_status=False)
        else:
            invoice.save()

        # Re-deriving from amounts cannot reopen a Paid invoice either
        if previous == PAID and invoice.status != PAID:
            raise InvalidTransition(
                f"Invoice {invoice.invoice_number or invoice.pk} is Paid "
                f"and cannot move to {invoice.status}")

        if invoice.status == PAID:
            upsert_revenue(invoice)
            if payment_details is not None:
                upsert_payment(invoice, payment_details)

        log_action(action="status", instance=invoice, changes={
            "from": previous,
            "to": invoice.status,
            "paid_amount": invoice.paid_amount,
            "due_amount": invoice.due_amount,
        })
    return invoice, previous


def transition_invoice(
    invoice_id,
    target_status=None,
    *,
    owner=None,
    received_amount=None,
    payment_details: dict | None = None,
):
    """
    Move an invoice to target_status (or re-derive it from amounts) and,
    once it is Paid, keep its Revenue and Payment rows in step.
    All of it commits together or not at all.
    """
    try:
        invoice, previous = _apply_transition(
            invoice_id, target_status, owner, received_amount, payment_details)
    except DatabaseError as exc:
        logger.error("Status update for invoice %s rolled back: %s", invoice_id, exc)
        raise TransactionFailure(
            f"Status update for invoice {invoice_id} failed") from exc

    logger.info(
        "Invoice %s: %s -> %s (paid %s of %s %s)",
        invoice.invoice_number or invoice.pk, previous, invoice.status,
        invoice.paid_amount, invoice.total_amount, invoice.currency_code,
    )
    return invoice


def mark_invoice_paid(invoice_id, *, owner=None, received_amount=None, payment_details=None):
    return transition_invoice(
        invoice_id,
        PAID,
        owner=owner,
        received_amount=received_amount,
        payment_details=payment_details,
    )
