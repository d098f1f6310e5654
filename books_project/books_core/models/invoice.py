import re
from decimal import Decimal

from django.db import models

from ..amounts import to_decimal
from .document import MonetaryDocument

TERMS_DAYS_RE = re.compile(r"\d+")


class Invoice(MonetaryDocument):  # Represents a customer invoice

    # Identifiers and key dates
    # human-readable (e.g. "INV20250001")
    invoice_number = models.CharField(max_length=64, null=True, blank=True)
    invoice_date = models.DateField()  # issue date
    due_date = models.DateField(null=True, blank=True)
    # free text such as "Net 30"; the first number is the day offset
    payment_terms = models.CharField(max_length=64, blank=True, default="")

    client_name = models.CharField(max_length=200)
    client_email = models.EmailField(blank=True, default="")
    client_country = models.CharField(max_length=64, blank=True, default="India")
    service_description = models.CharField(max_length=200, blank=True, default="")

    # Amount split in invoice currency; total_amount is the receivable
    base_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    gst_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    tds_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    remittance_charges = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    # Notification state, never copied to generated invoices
    email_sent = models.BooleanField(default=False)
    email_sent_at = models.DateTimeField(null=True, blank=True)

    # Back-references to the ledger rows written when the invoice is paid
    revenue = models.OneToOneField(
        "Revenue",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoice",
    )
    payment = models.OneToOneField(
        "Payment",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="invoice",
    )

    # Which schedule produced this invoice, and for which occurrence
    recurring_source = models.ForeignKey(
        "RecurringInvoice",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="generated_invoices",
    )
    occurrence_date = models.DateField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["owner", "invoice_number"], name="invoice_owner_number_idx"),
            models.Index(fields=["owner", "invoice_date"], name="invoice_owner_date_idx"),
        ]
        constraints = [
            # Within one owner, each invoice number must be unique
            models.UniqueConstraint(
                fields=["owner", "invoice_number"],
                name="uq_invoice_owner_number",
            ),
            # One generated invoice per schedule occurrence
            models.UniqueConstraint(
                fields=["recurring_source", "occurrence_date"],
                name="uq_invoice_schedule_occurrence",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0)
                & models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("total_amount")),
                name="invoice_paid_within_total",
            ),
        ]

    def __str__(self):
        # If no invoice number, fall back to database ID
        return f"Inv {self.invoice_number or self.pk}"

    @property
    def total_gst(self):
        return to_decimal(self.gst_amount)

    def payment_terms_days(self) -> int:
        match = TERMS_DAYS_RE.search(self.payment_terms or "")
        return int(match.group()) if match else 0

    def save(self, *args, **kwargs):
        # Receivable defaults to base + GST when not given
        if to_decimal(self.total_amount) <= 0:
            self.total_amount = max(
                to_decimal(self.base_amount) + to_decimal(self.gst_amount),
                Decimal("0.00"),
            )
        return super().save(*args, **kwargs)
