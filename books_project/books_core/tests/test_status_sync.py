import datetime
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.test import TestCase, TransactionTestCase

from ..amounts import PAID, PARTIAL, UNPAID
from ..exceptions import (DocumentNotFound, InvalidTransition,
                          TransactionFailure, UnknownCurrencyError)
from ..models import AuditLog, Invoice, Payment, Revenue
from ..services import mark_invoice_paid, transition_invoice


def make_invoice(owner, **overrides):
    fields = dict(
        owner=owner,
        invoice_number="INV20240001",
        invoice_date=datetime.date(2024, 3, 5),
        client_name="Globex",
        client_country="USA",
        service_description="Software Development",
        currency_code="INR",
        base_amount=Decimal("1000.00"),
    )
    fields.update(overrides)
    return Invoice.objects.create(**fields)


class InvoiceTransitionTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="owner", password="pw")

    def test_usd_payment_converts_at_default_rate(self):
        invoice = make_invoice(
            self.user, currency_code="USD", base_amount=Decimal("5000.00"))

        mark_invoice_paid(invoice.pk, received_amount=Decimal("5000"))

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, PAID)
        revenue = invoice.revenue
        self.assertEqual(revenue.currency_code, "INR")
        self.assertEqual(revenue.received_amount, Decimal("450650.00"))
        self.assertEqual(revenue.invoice_amount, Decimal("450650.00"))
        self.assertEqual(revenue.due_amount, Decimal("0.00"))
        self.assertEqual((revenue.month, revenue.year), ("Mar", 2024))
        self.assertEqual(revenue.country, "USA")

    def test_invoice_hints_drive_conversion(self):
        invoice = make_invoice(
            self.user,
            currency_code="USD",
            base_amount=Decimal("1000.00"),
            gst_amount=Decimal("0.00"),
            exchange_rate=Decimal("83.000000"),
        )

        mark_invoice_paid(invoice.pk)

        invoice.refresh_from_db()
        self.assertEqual(invoice.revenue.received_amount, Decimal("83000.00"))

        other = make_invoice(
            self.user,
            invoice_number="INV20240002",
            currency_code="USD",
            base_amount=Decimal("1000.00"),
            exchange_rate=Decimal("83.000000"),
            reporting_equivalent=Decimal("84500.00"),
        )
        mark_invoice_paid(other.pk)
        other.refresh_from_db()
        self.assertEqual(other.revenue.received_amount, Decimal("84500.00"))

    def test_unknown_currency_aborts_transition(self):
        invoice = make_invoice(self.user, currency_code="XYZ")

        with self.assertRaises(UnknownCurrencyError):
            mark_invoice_paid(invoice.pk)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, UNPAID)
        self.assertFalse(Revenue.objects.exists())

    def test_paid_without_amount_receives_whole_total(self):
        invoice = make_invoice(self.user, gst_amount=Decimal("180.00"))

        result = mark_invoice_paid(invoice.pk)

        self.assertEqual(result.paid_amount, Decimal("1180.00"))
        self.assertEqual(result.due_amount, Decimal("0.00"))

    def test_explicit_paid_with_tds_short_payment(self):
        invoice = make_invoice(self.user, tds_amount=Decimal("100.00"))

        result = mark_invoice_paid(invoice.pk, received_amount="900")

        self.assertEqual(result.status, PAID)
        self.assertEqual(result.paid_amount, Decimal("900.00"))
        self.assertEqual(result.due_amount, Decimal("100.00"))
        self.assertEqual(Revenue.objects.get().tds_amount, Decimal("100.00"))

    def test_derived_status_without_target(self):
        invoice = make_invoice(self.user)

        result = transition_invoice(invoice.pk, received_amount=400)

        self.assertEqual(result.status, PARTIAL)
        self.assertFalse(Revenue.objects.exists())

        result = transition_invoice(invoice.pk, received_amount=1000)
        self.assertEqual(result.status, PAID)
        self.assertEqual(Revenue.objects.count(), 1)

    def test_paid_is_terminal(self):
        invoice = make_invoice(self.user)
        mark_invoice_paid(invoice.pk)

        with self.assertRaises(InvalidTransition):
            transition_invoice(invoice.pk, UNPAID)

        # a lower received amount without a target cannot reopen it either
        with self.assertRaises(InvalidTransition):
            transition_invoice(invoice.pk, received_amount=100)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, PAID)
        self.assertEqual(invoice.paid_amount, Decimal("1000.00"))
        self.assertEqual(Revenue.objects.get().received_amount, Decimal("1000.00"))

    def test_explicit_status_must_match_amounts(self):
        invoice = make_invoice(self.user)

        with self.assertRaises(ValidationError):
            transition_invoice(invoice.pk, UNPAID, received_amount=1000)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, UNPAID)
        self.assertEqual(invoice.due_amount, Decimal("1000.00"))

        result = transition_invoice(invoice.pk, PARTIAL, received_amount=250)
        self.assertEqual((result.status, result.due_amount), (PARTIAL, Decimal("750.00")))

    def test_invalid_status_rejected(self):
        invoice = make_invoice(self.user)

        with self.assertRaises(ValidationError):
            transition_invoice(invoice.pk, "Refunded")

    def test_missing_invoice(self):
        with self.assertRaises(DocumentNotFound):
            mark_invoice_paid(987654)

    def test_other_owners_invoice_is_not_found(self):
        stranger = get_user_model().objects.create_user(username="stranger", password="pw")
        invoice = make_invoice(self.user)

        with self.assertRaises(DocumentNotFound):
            mark_invoice_paid(invoice.pk, owner=stranger)

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, UNPAID)

    def test_sequential_calls_update_the_same_ledger_rows(self):
        invoice = make_invoice(self.user)

        mark_invoice_paid(
            invoice.pk,
            received_amount=1000,
            payment_details={
                "payment_date": datetime.date(2024, 3, 20),
                "payment_mode": "Bank Transfer",
                "deposit_to": "Bank Account",
                "reference_number": "UTR-001",
            },
        )
        invoice.refresh_from_db()
        first_revenue, first_payment = invoice.revenue_id, invoice.payment_id
        self.assertEqual(invoice.payment.payment_number, "PAY20240001")

        # second call sees the committed Paid state and updates in place
        result = transition_invoice(
            invoice.pk,
            PAID,
            received_amount=1000,
            payment_details={"payment_date": "2024-03-21", "bank_charges": "15"},
        )

        self.assertEqual(result.revenue_id, first_revenue)
        self.assertEqual(result.payment_id, first_payment)
        self.assertEqual(Revenue.objects.count(), 1)
        self.assertEqual(Payment.objects.count(), 1)
        payment = Payment.objects.get()
        self.assertEqual(payment.payment_date, datetime.date(2024, 3, 21))
        self.assertEqual(payment.bank_charges, Decimal("15.00"))
        self.assertEqual(payment.payment_mode, "Bank Transfer")
        self.assertEqual(payment.amount_received, Decimal("1000.00"))

    def test_payment_numbers_are_per_owner_and_year(self):
        first = make_invoice(self.user)
        second = make_invoice(self.user, invoice_number="INV20240002")

        mark_invoice_paid(first.pk, payment_details={"payment_date": datetime.date(2024, 12, 31)})
        mark_invoice_paid(second.pk, payment_details={"payment_date": datetime.date(2025, 1, 2)})

        numbers = sorted(Payment.objects.values_list("payment_number", flat=True))
        self.assertEqual(numbers, ["PAY20240001", "PAY20250001"])

    def test_unknown_payment_field_rejected(self):
        invoice = make_invoice(self.user)

        with self.assertRaises(ValidationError):
            mark_invoice_paid(invoice.pk, payment_details={"colour": "blue"})

        invoice.refresh_from_db()
        self.assertEqual(invoice.status, UNPAID)
        self.assertFalse(Revenue.objects.exists())

    def test_transition_is_audited(self):
        invoice = make_invoice(self.user)

        mark_invoice_paid(invoice.pk)

        log = AuditLog.objects.for_owner(self.user).get(action="status")
        self.assertEqual(log.changes["from"], UNPAID)
        self.assertEqual(log.changes["to"], PAID)


class InvoiceTransitionAtomicityTests(TransactionTestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="owner", password="pw")
        self.invoice = make_invoice(self.user)

    def test_failed_revenue_upsert_leaves_invoice_untouched(self):
        with mock.patch(
            "books_core.services.status.upsert_revenue",
            side_effect=DatabaseError("disk full"),
        ):
            with self.assertRaises(TransactionFailure) as ctx:
                mark_invoice_paid(self.invoice.pk, received_amount=1000)

        self.assertIsInstance(ctx.exception.__cause__, DatabaseError)
        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, UNPAID)
        self.assertEqual(self.invoice.paid_amount, Decimal("0.00"))
        self.assertFalse(Revenue.objects.exists())
        self.assertFalse(AuditLog.objects.filter(action="status").exists())

    def test_failed_payment_upsert_rolls_back_revenue(self):
        with mock.patch(
            "books_core.services.status.upsert_payment",
            side_effect=DatabaseError("constraint"),
        ):
            with self.assertRaises(TransactionFailure):
                mark_invoice_paid(self.invoice.pk, payment_details={"reference_number": "X"})

        self.invoice.refresh_from_db()
        self.assertEqual(self.invoice.status, UNPAID)
        self.assertIsNone(self.invoice.revenue_id)
        # no orphaned revenue without its payment
        self.assertFalse(Revenue.objects.exists())
        self.assertFalse(Payment.objects.exists())
