from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("Unpaid", "Unpaid"),
    ("Partial", "Partial"),
    ("Paid", "Paid"),
    ("Cancel", "Cancel"),
]

MONTH_CHOICES = [
    (m, m)
    for m in ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
]

FREQUENCY_CHOICES = [
    ("Week", "Week"),
    ("Month", "Month"),
    ("Quarter", "Quarter"),
    ("Half Yearly", "Half Yearly"),
    ("Six Month", "Six Month"),
    ("Year", "Year"),
]


def money():
    return models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)


def document_fields(related_name):
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("currency_code", models.CharField(default="INR", max_length=10)),
        ("exchange_rate", models.DecimalField(blank=True, decimal_places=6, max_digits=18, null=True)),
        ("reporting_equivalent", models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
        ("total_amount", money()),
        ("paid_amount", money()),
        ("due_amount", money()),
        ("status", models.CharField(choices=STATUS_CHOICES, default="Unpaid", max_length=10)),
        ("has_recurring_schedule", models.BooleanField(default=False)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("owner", models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE,
            related_name=related_name,
            to=settings.AUTH_USER_MODEL,
        )),
    ]


def schedule_fields(related_name):
    return [
        ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
        ("frequency", models.CharField(choices=FREQUENCY_CHOICES, max_length=20)),
        ("start_on", models.DateField()),
        ("ends_on", models.DateField(blank=True, null=True)),
        ("never_expires", models.BooleanField(default=False)),
        ("next_occurrence", models.DateField()),
        ("last_occurrence", models.DateField(blank=True, null=True)),
        ("is_active", models.BooleanField(default=True)),
        ("created_at", models.DateTimeField(auto_now_add=True)),
        ("updated_at", models.DateTimeField(auto_now=True)),
        ("owner", models.ForeignKey(
            on_delete=django.db.models.deletion.CASCADE,
            related_name=related_name,
            to=settings.AUTH_USER_MODEL,
        )),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "created_at"], name="audit_owner_created_idx"),
                    models.Index(fields=["object_type", "object_id"], name="audit_object_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Revenue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("client_name", models.CharField(max_length=200)),
                ("country", models.CharField(default="India", max_length=64)),
                ("service", models.CharField(default="Other Services", max_length=200)),
                ("invoice_number", models.CharField(blank=True, default="", max_length=64)),
                ("invoice_date", models.DateField()),
                ("currency_code", models.CharField(max_length=10)),
                ("invoice_amount", money()),
                ("gst_amount", money()),
                ("tds_amount", money()),
                ("remittance_charges", money()),
                ("received_amount", money()),
                ("due_amount", money()),
                ("month", models.CharField(choices=MONTH_CHOICES, max_length=3)),
                ("year", models.PositiveIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="revenues",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "year", "month"], name="revenue_owner_period_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_number", models.CharField(max_length=64)),
                ("payment_date", models.DateField()),
                ("payment_mode", models.CharField(
                    choices=[
                        ("Cash", "Cash"),
                        ("Bank Transfer", "Bank Transfer"),
                        ("Bank Remittance", "Bank Remittance"),
                        ("Cheque", "Cheque"),
                        ("Credit Card", "Credit Card"),
                        ("UPI", "UPI"),
                    ],
                    default="Cash",
                    max_length=20,
                )),
                ("deposit_to", models.CharField(
                    choices=[
                        ("Petty Cash", "Petty Cash"),
                        ("Bank Account", "Bank Account"),
                        ("Cash Account", "Cash Account"),
                        ("Other", "Other"),
                    ],
                    default="Petty Cash",
                    max_length=20,
                )),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("currency_code", models.CharField(max_length=10)),
                ("amount_received", money()),
                ("bank_charges", money()),
                ("amount_withheld", money()),
                ("notes", models.TextField(blank=True, default="")),
                ("status", models.CharField(
                    choices=[("Draft", "Draft"), ("Paid", "Paid")],
                    default="Paid",
                    max_length=10,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="payments",
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(
                        fields=("owner", "payment_number"),
                        name="uq_payment_owner_number",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(amount_received__gte=0),
                        name="payment_non_negative_amount",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=document_fields("invoices") + [
                ("invoice_number", models.CharField(blank=True, max_length=64, null=True)),
                ("invoice_date", models.DateField()),
                ("due_date", models.DateField(blank=True, null=True)),
                ("payment_terms", models.CharField(blank=True, default="", max_length=64)),
                ("client_name", models.CharField(max_length=200)),
                ("client_email", models.EmailField(blank=True, default="", max_length=254)),
                ("client_country", models.CharField(blank=True, default="India", max_length=64)),
                ("service_description", models.CharField(blank=True, default="", max_length=200)),
                ("base_amount", money()),
                ("gst_amount", money()),
                ("tds_amount", money()),
                ("remittance_charges", money()),
                ("email_sent", models.BooleanField(default=False)),
                ("email_sent_at", models.DateTimeField(blank=True, null=True)),
                ("occurrence_date", models.DateField(blank=True, null=True)),
                ("revenue", models.OneToOneField(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="invoice",
                    to="books_core.revenue",
                )),
                ("payment", models.OneToOneField(
                    blank=True,
                    null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="invoice",
                    to="books_core.payment",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "invoice_number"], name="invoice_owner_number_idx"),
                    models.Index(fields=["owner", "invoice_date"], name="invoice_owner_date_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Expense",
            fields=document_fields("expenses") + [
                ("date", models.DateField()),
                ("category", models.CharField(max_length=100)),
                ("department", models.CharField(max_length=100)),
                ("payment_mode", models.CharField(blank=True, default="", max_length=50)),
                ("vendor", models.CharField(blank=True, default="", max_length=200)),
                ("description", models.TextField(blank=True, default="")),
                ("type", models.CharField(
                    choices=[("Fixed", "Fixed"), ("Variable", "Variable")],
                    default="Variable",
                    max_length=10,
                )),
                ("amount_excl_tax", money()),
                ("gst_amount", money()),
                ("tds_amount", money()),
                ("month", models.CharField(blank=True, choices=MONTH_CHOICES, max_length=3)),
                ("year", models.PositiveIntegerField(blank=True, null=True)),
                ("expense_number", models.CharField(blank=True, max_length=64, null=True)),
                ("is_recurring", models.BooleanField(default=False)),
                ("paid_transaction_ref", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                ("occurrence_date", models.DateField(blank=True, null=True)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "date"], name="expense_owner_date_idx"),
                    models.Index(fields=["owner", "year", "month"], name="expense_owner_period_idx"),
                    models.Index(fields=["owner", "category"], name="expense_owner_category_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ExpensePayment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_date", models.DateField()),
                ("amount_paid", models.DecimalField(decimal_places=2, max_digits=18)),
                ("cumulative_paid", models.DecimalField(decimal_places=2, max_digits=18)),
                ("status", models.CharField(choices=STATUS_CHOICES, max_length=10)),
                ("transaction_ref", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("expense", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="payment_history",
                    to="books_core.expense",
                )),
            ],
            options={
                "ordering": ["payment_date", "id"],
            },
        ),
        migrations.CreateModel(
            name="RecurringInvoice",
            fields=schedule_fields("recurringinvoices") + [
                ("base_invoice", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="schedules",
                    to="books_core.invoice",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "is_active"], name="recinv_owner_active_idx"),
                    models.Index(fields=["next_occurrence", "is_active"], name="recinv_next_active_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RecurringExpense",
            fields=schedule_fields("recurringexpenses") + [
                ("base_expense", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="schedules",
                    to="books_core.expense",
                )),
            ],
            options={
                "indexes": [
                    models.Index(fields=["owner", "is_active"], name="recexp_owner_active_idx"),
                    models.Index(fields=["next_occurrence", "is_active"], name="recexp_next_active_idx"),
                ],
            },
        ),
        # Documents and schedules point at each other
        migrations.AddField(
            model_name="invoice",
            name="recurring_source",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="generated_invoices",
                to="books_core.recurringinvoice",
            ),
        ),
        migrations.AddField(
            model_name="expense",
            name="recurring_source",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="generated_expenses",
                to="books_core.recurringexpense",
            ),
        ),
        migrations.AddConstraint(
            model_name="invoice",
            constraint=models.UniqueConstraint(
                fields=("owner", "invoice_number"),
                name="uq_invoice_owner_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="invoice",
            constraint=models.UniqueConstraint(
                fields=("recurring_source", "occurrence_date"),
                name="uq_invoice_schedule_occurrence",
            ),
        ),
        migrations.AddConstraint(
            model_name="invoice",
            constraint=models.CheckConstraint(
                condition=models.Q(total_amount__gte=0)
                & models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("total_amount")),
                name="invoice_paid_within_total",
            ),
        ),
        migrations.AddConstraint(
            model_name="expense",
            constraint=models.UniqueConstraint(
                fields=("owner", "expense_number"),
                name="uq_expense_owner_number",
            ),
        ),
        migrations.AddConstraint(
            model_name="expense",
            constraint=models.UniqueConstraint(
                fields=("recurring_source", "occurrence_date"),
                name="uq_expense_schedule_occurrence",
            ),
        ),
        migrations.AddConstraint(
            model_name="expense",
            constraint=models.CheckConstraint(
                condition=models.Q(total_amount__gte=0)
                & models.Q(paid_amount__gte=0)
                & models.Q(paid_amount__lte=models.F("total_amount")),
                name="expense_paid_within_total",
            ),
        ),
    ]
