from decimal import Decimal

from django.conf import settings
from django.db import models

from ..managers import OwnerManager
from .expense import MONTH_CHOICES


# ---------- Revenue ----------
# One row per paid invoice, all amounts in the reporting currency
class Revenue(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="revenues",
    )
    client_name = models.CharField(max_length=200)
    country = models.CharField(max_length=64, default="India")
    service = models.CharField(max_length=200, default="Other Services")
    invoice_number = models.CharField(max_length=64, blank=True, default="")
    invoice_date = models.DateField()

    currency_code = models.CharField(max_length=10)
    invoice_amount = models.DecimalField(
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
    received_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    due_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    month = models.CharField(max_length=3, choices=MONTH_CHOICES)
    year = models.PositiveIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce owner scoping
    objects = OwnerManager()

    class Meta:
        indexes = [
            models.Index(fields=["owner", "year", "month"], name="revenue_owner_period_idx"),
        ]

    def __str__(self):
        return f"Revenue {self.invoice_number}: {self.received_amount} {self.currency_code}"


PAYMENT_MODE_CHOICES = [
    ("Cash", "Cash"),
    ("Bank Transfer", "Bank Transfer"),
    ("Bank Remittance", "Bank Remittance"),
    ("Cheque", "Cheque"),
    ("Credit Card", "Credit Card"),
    ("UPI", "UPI"),
]

DEPOSIT_TO_CHOICES = [
    ("Petty Cash", "Petty Cash"),
    ("Bank Account", "Bank Account"),
    ("Cash Account", "Cash Account"),
    ("Other", "Other"),
]

PAYMENT_STATUS_CHOICES = [
    ("Draft", "Draft"),
    ("Paid", "Paid"),
]


# ---------- Payment ----------
# Receipt recorded against a paid invoice, in the reporting currency
class Payment(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="payments",
    )
    # e.g. "PAY20250001"
    payment_number = models.CharField(max_length=64)
    payment_date = models.DateField()
    payment_mode = models.CharField(
        max_length=20, choices=PAYMENT_MODE_CHOICES, default="Cash"
    )
    deposit_to = models.CharField(
        max_length=20, choices=DEPOSIT_TO_CHOICES, default="Petty Cash"
    )
    reference_number = models.CharField(max_length=100, blank=True, default="")

    currency_code = models.CharField(max_length=10)
    amount_received = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    bank_charges = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    amount_withheld = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    notes = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default="Paid"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce owner scoping
    objects = OwnerManager()

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "payment_number"],
                name="uq_payment_owner_number",
            ),
            models.CheckConstraint(
                condition=models.Q(amount_received__gte=0),
                name="payment_non_negative_amount",
            ),
        ]

    def __str__(self):
        return f"Payment {self.payment_number}: {self.amount_received} {self.currency_code}"
