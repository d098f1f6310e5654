from decimal import Decimal

from django.conf import settings
from django.db import models

from ..amounts import CANCEL, STATUS_CHOICES, UNPAID, normalize_amounts
from ..managers import DocumentManager


class MonetaryDocument(models.Model):
    """
    Shape shared by Expense and Invoice.
    paid_amount / due_amount / status are never trusted as submitted:
    every save runs them through normalize_amounts().
    """
    # Every document belongs to one user
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )

    # Supports multiple currencies
    currency_code = models.CharField(max_length=10, default="INR")
    # Conversion hints captured when the document was written
    # 1 is the form default and means "not set"
    exchange_rate = models.DecimalField(
        max_digits=18, decimal_places=6, null=True, blank=True
    )
    # Reporting-currency value of the document's base amount
    reporting_equivalent = models.DecimalField(
        max_digits=18, decimal_places=2, null=True, blank=True
    )

    total_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    paid_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    due_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES, default=UNPAID
    )

    # Set while a recurring schedule uses this document as its template.
    # Templates are excluded from totals without scanning schedules.
    has_recurring_schedule = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce owner scoping
    objects = DocumentManager()

    class Meta:
        abstract = True

    def apply_amounts(self, derive_status=True):
        """Clamp amounts and (unless told otherwise) derive status.
        Cancel is sticky and never replaced by a computed status."""
        normalized = normalize_amounts(self.total_amount, self.paid_amount)
        self.total_amount = normalized.total
        self.paid_amount = normalized.paid
        self.due_amount = normalized.due
        if derive_status and self.status != CANCEL:
            self.status = normalized.status
        return normalized

    def save(self, *args, derive_status=True, **kwargs):
        self.apply_amounts(derive_status=derive_status)
        update_fields = kwargs.get("update_fields")
        if update_fields is not None:
            # normalization may have touched these too
            kwargs["update_fields"] = set(update_fields) | {
                "total_amount", "paid_amount", "due_amount", "status",
                "updated_at",
            }
        return super().save(*args, **kwargs)
