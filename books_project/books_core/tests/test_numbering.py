import datetime
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from ..exceptions import SequenceExhausted
from ..models import Invoice, Payment
from ..services.numbering import (create_with_sequence, format_sequence,
                                  next_sequence_number)


class SequenceNumberTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(username="owner", password="pw")

    def make_invoice(self, number, owner=None):
        return Invoice.objects.create(
            owner=owner or self.user,
            invoice_number=number,
            invoice_date=datetime.date(2024, 6, 1),
            client_name="Umbrella",
            base_amount=Decimal("10.00"),
        )

    def test_format(self):
        self.assertEqual(format_sequence("INV", 2024, 7, 4), "INV20240007")
        self.assertEqual(format_sequence("PAY", 2025, 12345, 4), "PAY202512345")

    def test_first_number_of_the_year(self):
        self.assertEqual(
            next_sequence_number(Invoice, "invoice_number", self.user, "INV", 2024),
            "INV20240001",
        )

    def test_counter_follows_highest_existing(self):
        self.make_invoice("INV20240009")
        self.make_invoice("INV20240003")
        self.make_invoice("INV20230044")

        self.assertEqual(
            next_sequence_number(Invoice, "invoice_number", self.user, "INV", 2024),
            "INV20240010",
        )

    def test_existing_width_is_kept(self):
        self.make_invoice("INV2024007")

        self.assertEqual(
            next_sequence_number(Invoice, "invoice_number", self.user, "INV", 2024),
            "INV2024008",
        )

    def test_numbers_are_per_owner(self):
        stranger = get_user_model().objects.create_user(username="stranger", password="pw")
        self.make_invoice("INV20240050", owner=stranger)

        self.assertEqual(
            next_sequence_number(Invoice, "invoice_number", self.user, "INV", 2024),
            "INV20240001",
        )

    def test_manual_numbers_are_ignored(self):
        self.make_invoice("INV2024-A")

        self.assertEqual(
            next_sequence_number(Invoice, "invoice_number", self.user, "INV", 2024),
            "INV20240001",
        )

    def test_collision_retries_with_next_number(self):
        self.make_invoice("INV20240001")

        with mock.patch(
            "books_core.services.numbering.next_sequence_number",
            side_effect=["INV20240001", "INV20240002"],
        ):
            invoice = create_with_sequence(
                Invoice, "invoice_number", self.user, "INV", 2024,
                invoice_date=datetime.date(2024, 6, 2),
                client_name="Umbrella",
                base_amount=Decimal("20.00"),
            )

        self.assertEqual(invoice.invoice_number, "INV20240002")

    @override_settings(BOOKS_SEQUENCE_MAX_RETRIES=2)
    def test_retries_are_bounded(self):
        Payment.objects.create(
            owner=self.user,
            payment_number="PAY20240001",
            payment_date=datetime.date(2024, 6, 1),
            currency_code="INR",
        )

        with mock.patch(
            "books_core.services.numbering.next_sequence_number",
            return_value="PAY20240001",
        ):
            with self.assertRaises(SequenceExhausted):
                create_with_sequence(
                    Payment, "payment_number", self.user, "PAY", 2024,
                    payment_date=datetime.date(2024, 6, 2),
                    currency_code="INR",
                )

        self.assertEqual(Payment.objects.count(), 1)
