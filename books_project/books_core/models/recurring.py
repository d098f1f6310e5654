from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from ..managers import ScheduleManager
from ..schedule import Frequency, parse_frequency


class RecurringSchedule(models.Model):
    """
    Repeats a base (template) document on a calendar interval.
    next_occurrence is the issue date of the next generated document;
    last_occurrence is the issue date of the previous one.
    """
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="%(class)ss",
    )
    frequency = models.CharField(max_length=20, choices=Frequency.choices)
    start_on = models.DateField()
    # Exactly one of "ends_on is set" / "never_expires" applies
    ends_on = models.DateField(null=True, blank=True)
    never_expires = models.BooleanField(default=False)
    next_occurrence = models.DateField()
    last_occurrence = models.DateField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ScheduleManager()

    # set by subclasses
    base_field = None
    kind = None

    class Meta:
        abstract = True

    @property
    def base_document(self):
        return getattr(self, self.base_field)

    @property
    def base_document_id(self):
        return getattr(self, f"{self.base_field}_id")

    def clean(self):
        parse_frequency(self.frequency)
        if not self.never_expires and not self.ends_on:
            raise ValidationError(
                "Ends On is required when Never Expires is not checked")
        if self.never_expires:
            # A schedule that never expires has no real end
            self.ends_on = None
        if self.ends_on and self.start_on and self.ends_on <= self.start_on:
            raise ValidationError("Ends On date must be after Start On date")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)


class RecurringInvoice(RecurringSchedule):
    base_invoice = models.ForeignKey(
        "Invoice",
        # schedules go away together with their template
        on_delete=models.CASCADE,
        related_name="schedules",
    )

    base_field = "base_invoice"
    kind = "invoice"

    class Meta:
        indexes = [
            models.Index(fields=["owner", "is_active"], name="recinv_owner_active_idx"),
            models.Index(fields=["next_occurrence", "is_active"], name="recinv_next_active_idx"),
        ]

    def __str__(self):
        return f"Every {self.frequency}: {self.base_invoice_id} (next {self.next_occurrence})"


class RecurringExpense(RecurringSchedule):
    base_expense = models.ForeignKey(
        "Expense",
        on_delete=models.CASCADE,
        related_name="schedules",
    )

    base_field = "base_expense"
    kind = "expense"

    class Meta:
        indexes = [
            models.Index(fields=["owner", "is_active"], name="recexp_owner_active_idx"),
            models.Index(fields=["next_occurrence", "is_active"], name="recexp_next_active_idx"),
        ]

    def __str__(self):
        return f"Every {self.frequency}: {self.base_expense_id} (next {self.next_occurrence})"
