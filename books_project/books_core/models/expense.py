from decimal import Decimal

from django.db import models

from ..amounts import STATUS_CHOICES, to_decimal
from .document import MonetaryDocument

MONTH_NAMES = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]
MONTH_CHOICES = [(m, m) for m in MONTH_NAMES]

EXPENSE_TYPE_CHOICES = [
    ("Fixed", "Fixed"),
    ("Variable", "Variable"),
]


# ---------- Expense ----------
class Expense(MonetaryDocument):
    date = models.DateField()
    category = models.CharField(max_length=100)
    department = models.CharField(max_length=100)
    payment_mode = models.CharField(max_length=50, blank=True, default="")
    vendor = models.CharField(max_length=200, blank=True, default="")
    description = models.TextField(blank=True, default="")
    type = models.CharField(
        max_length=10, choices=EXPENSE_TYPE_CHOICES, default="Variable"
    )

    # Tax split; total = amount_excl_tax + gst - tds when not given
    amount_excl_tax = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    gst_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )
    tds_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00")
    )

    # Reporting period
    month = models.CharField(max_length=3, choices=MONTH_CHOICES, blank=True)
    year = models.PositiveIntegerField(null=True, blank=True)

    # e.g. "EXP20240001", assigned to generated occurrences
    expense_number = models.CharField(max_length=64, null=True, blank=True)
    is_recurring = models.BooleanField(default=False)
    paid_transaction_ref = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    # Which schedule produced this expense, and for which occurrence
    recurring_source = models.ForeignKey(
        "RecurringExpense",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="generated_expenses",
    )
    occurrence_date = models.DateField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["owner", "date"], name="expense_owner_date_idx"),
            models.Index(fields=["owner", "year", "month"], name="expense_owner_period_idx"),
            models.Index(fields=["owner", "category"], name="expense_owner_category_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["owner", "expense_number"],
                name="uq_expense_owner_number",
            ),
            # One generated expense per schedule occurrence
            models.UniqueConstraint(
                fields=["recurring_source", "occurrence_date"],
                name="uq_expense_schedule_occurrence",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gte=0)
                & models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("total_amount")),
                name="expense_paid_within_total",
            ),
        ]

    def __str__(self):
        return f"Expense: {self.expense_number or self.pk} {self.vendor}"

    def derived_total(self):
        total = (
            to_decimal(self.amount_excl_tax)
            + to_decimal(self.gst_amount)
            - to_decimal(self.tds_amount)
        )
        return max(total, Decimal("0.00"))

    def save(self, *args, **kwargs):
        # Explicit total wins; otherwise rebuild it from the tax split
        if to_decimal(self.total_amount) <= 0:
            self.total_amount = self.derived_total()
        if self.date:
            self.month = MONTH_NAMES[self.date.month - 1]
            self.year = self.date.year
        return super().save(*args, **kwargs)


class ExpensePayment(models.Model):
    """One row per payment recorded against an expense."""
    expense = models.ForeignKey(
        Expense, on_delete=models.CASCADE, related_name="payment_history"
    )
    payment_date = models.DateField()
    amount_paid = models.DecimalField(max_digits=18, decimal_places=2)
    # paid_amount of the expense right after this payment
    cumulative_paid = models.DecimalField(max_digits=18, decimal_places=2)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    transaction_ref = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["payment_date", "id"]

    def __str__(self):
        return f"{self.expense} paid {self.amount_paid} ({self.status})"
