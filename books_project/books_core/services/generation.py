"""
Recurring document generation.

run_once() is the single entry point for the Celery beat tick and for the
``run_recurring`` management command. Each due schedule is handled in its
own transaction: the schedule row is locked, re-checked, the document is
created and the schedule advanced together, so a second tick for the same
day finds nothing left to do. Client notification happens after commit and
can never undo or repeat a generation.
"""
import datetime
import logging
from dataclasses import asdict, dataclass, field

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..amounts import UNPAID
from ..exceptions import DocumentNotFound
from ..models import Expense, Invoice, RecurringExpense, RecurringInvoice
from ..notifications import get_notifier
from ..schedule import add_interval, is_due, is_expired, to_day
from .audit_helper import log_action
from .expenses import find_duplicate_expense
from .numbering import create_with_sequence

logger = logging.getLogger(__name__)

SUCCESS = "success"
SKIPPED = "skipped"
FAILED = "failed"

# Business fields copied from a template into each occurrence.
# Identity, numbering, timestamps, payment state, ledger back-references
# and notification flags are deliberately absent.
INVOICE_TEMPLATE_FIELDS = (
    "currency_code",
    "exchange_rate",
    "reporting_equivalent",
    "total_amount",
    "payment_terms",
    "client_name",
    "client_email",
    "client_country",
    "service_description",
    "base_amount",
    "gst_amount",
    "tds_amount",
    "remittance_charges",
)

EXPENSE_TEMPLATE_FIELDS = (
    "currency_code",
    "exchange_rate",
    "reporting_equivalent",
    "total_amount",
    "category",
    "department",
    "payment_mode",
    "vendor",
    "description",
    "type",
    "amount_excl_tax",
    "gst_amount",
    "tds_amount",
    "notes",
)


@dataclass
class ScheduleResult:
    schedule_id: int
    kind: str
    outcome: str
    detail: str = ""
    document_id: int | None = None
    document_number: str | None = None
    notification: str | None = None


@dataclass
class GenerationReport:
    processed_count: int = 0
    results: list = field(default_factory=list)

    def as_dict(self):
        return {
            "processed_count": self.processed_count,
            "results": [asdict(r) for r in self.results],
        }

    def count(self, outcome):
        return sum(1 for r in self.results if r.outcome == outcome)


def template_fields(base, names) -> dict:
    """Explicit allow-list copy of a template's business fields."""
    return {name: getattr(base, name) for name in names}


def load_base_document(schedule):
    try:
        base = schedule.base_document
    except ObjectDoesNotExist:
        base = None
    if base is None:
        raise DocumentNotFound(
            f"Base {schedule.kind} {schedule.base_document_id} not found")
    return base


def generate_invoice(schedule, base):
    """Returns (invoice, created, detail) for the schedule's next occurrence."""
    occurrence = to_day(schedule.next_occurrence)
    existing = Invoice.objects.filter(
        recurring_source=schedule, occurrence_date=occurrence
    ).first()
    if existing is not None:
        return existing, False, "already_generated"

    fields = template_fields(base, INVOICE_TEMPLATE_FIELDS)
    fields.update(
        invoice_date=occurrence,
        due_date=occurrence + datetime.timedelta(days=base.payment_terms_days()),
        paid_amount=0,
        status=UNPAID,
        recurring_source=schedule,
        occurrence_date=occurrence,
    )
    invoice = create_with_sequence(
        Invoice,
        "invoice_number",
        schedule.owner,
        settings.BOOKS_INVOICE_PREFIX,
        occurrence.year,
        **fields,
    )
    return invoice, True, ""


def generate_expense(schedule, base):
    """Returns (expense, created, detail) for the schedule's next occurrence."""
    occurrence = to_day(schedule.next_occurrence)
    existing = Expense.objects.filter(
        recurring_source=schedule, occurrence_date=occurrence
    ).first()
    if existing is not None:
        return existing, False, "already_generated"

    # The same expense entered by hand for that day counts as this occurrence
    duplicate = find_duplicate_expense(
        schedule.owner,
        vendor=base.vendor,
        category=base.category,
        department=base.department,
        total_amount=base.total_amount,
        date=occurrence,
    )
    if duplicate is not None and duplicate.pk != base.pk:
        return duplicate, False, "duplicate"

    fields = template_fields(base, EXPENSE_TEMPLATE_FIELDS)
    fields.update(
        date=occurrence,
        paid_amount=0,
        status=UNPAID,
        is_recurring=True,
        recurring_source=schedule,
        occurrence_date=occurrence,
    )
    expense = create_with_sequence(
        Expense,
        "expense_number",
        schedule.owner,
        settings.BOOKS_EXPENSE_PREFIX,
        occurrence.year,
        **fields,
    )
    return expense, True, ""


GENERATORS = {
    "invoice": generate_invoice,
    "expense": generate_expense,
}


def advance_schedule(schedule):
    """Move the schedule past the occurrence just produced."""
    scheduled = to_day(schedule.next_occurrence)
    schedule.last_occurrence = scheduled
    schedule.next_occurrence = add_interval(
        scheduled, schedule.frequency, anchor_day=to_day(schedule.start_on).day)
    # The next run would already be past the end date
    if is_expired(schedule, schedule.next_occurrence):
        schedule.is_active = False
    schedule.save(update_fields=[
        "last_occurrence", "next_occurrence", "is_active", "updated_at",
    ])


def invoice_notification_data(invoice) -> dict:
    return {
        "kind": "invoice",
        "id": invoice.pk,
        "number": invoice.invoice_number,
        "client_name": invoice.client_name,
        "service": invoice.service_description,
        "amount": str(invoice.total_amount),
        "currency": invoice.currency_code,
        "invoice_date": invoice.invoice_date.isoformat(),
        "due_date": invoice.due_date.isoformat() if invoice.due_date else None,
    }


def _delivered(result) -> tuple:
    if isinstance(result, dict):
        return bool(result.get("success")), result.get("error")
    return bool(getattr(result, "success", False)), getattr(result, "error", None)


def mark_emailed(invoice):
    Invoice.objects.filter(pk=invoice.pk).update(
        email_sent=True, email_sent_at=timezone.now())


def notify_client(invoice, notifier) -> str:
    """Best effort: failures are logged and reported, never raised."""
    recipient = (invoice.client_email or "").strip()
    if not recipient:
        return "skipped: no recipient"

    attachment_path = settings.BOOKS_ATTACHMENT_DIR / f"invoice-{invoice.pk}.pdf"
    try:
        result = notifier(invoice_notification_data(invoice), recipient, attachment_path)
    except Exception as exc:
        logger.exception("Notifier crashed for invoice %s", invoice.invoice_number)
        return f"failed: {exc}"

    success, error = _delivered(result)
    if not success:
        logger.warning(
            "Failed to send recurring invoice %s to %s: %s",
            invoice.invoice_number, recipient, error or "unknown error",
        )
        return f"failed: {error or 'unknown error'}"

    try:
        mark_emailed(invoice)
    except DatabaseError as exc:
        # The email is out; only the sent flag is missing
        logger.exception("Could not flag invoice %s as emailed", invoice.invoice_number)
        return f"failed: {exc}"
    return "sent"


def process_schedule(model, schedule_id, reference_date, notifier) -> ScheduleResult:
    """Generate at most one occurrence for one schedule."""
    kind = model.kind
    try:
        with transaction.atomic():
            try:
                schedule = model.objects.select_for_update().get(pk=schedule_id)
            except model.DoesNotExist:
                return ScheduleResult(schedule_id, kind, SKIPPED, "deleted")

            # Another tick may have got here first
            if not is_due(schedule, reference_date):
                return ScheduleResult(schedule_id, kind, SKIPPED, "not_due")

            if is_expired(schedule, reference_date):
                schedule.is_active = False
                schedule.save(update_fields=["is_active", "updated_at"])
                log_action(action="expire", instance=schedule,
                           changes={"ends_on": schedule.ends_on})
                logger.info("Schedule %s %s expired on %s",
                            kind, schedule_id, schedule.ends_on)
                return ScheduleResult(schedule_id, kind, SKIPPED, "expired")

            try:
                base = load_base_document(schedule)
            except DocumentNotFound as exc:
                # Stop retrying a schedule whose template is gone.
                # save() would full_clean() the dangling FK, so update directly.
                model.objects.filter(pk=schedule.pk).update(
                    is_active=False, updated_at=timezone.now())
                logger.error("%s", exc)
                return ScheduleResult(schedule_id, kind, FAILED, "base_missing")

            document, created, detail = GENERATORS[kind](schedule, base)
            occurrence = schedule.next_occurrence
            advance_schedule(schedule)
            log_action(
                action="generate" if created else "advance",
                instance=schedule,
                changes={
                    "occurrence": occurrence,
                    "document_id": document.pk,
                    "next_occurrence": schedule.next_occurrence,
                    "is_active": schedule.is_active,
                },
            )
    except Exception as exc:
        # One schedule's failure never blocks the rest of the batch
        logger.exception("Error processing recurring %s %s", kind, schedule_id)
        return ScheduleResult(schedule_id, kind, FAILED, str(exc))

    number = getattr(document, f"{kind}_number", None)
    result = ScheduleResult(
        schedule_id,
        kind,
        SUCCESS if created else SKIPPED,
        detail,
        document_id=document.pk,
        document_number=number,
    )
    if created and kind == "invoice":
        result.notification = notify_client(document, notifier)
    logger.info("Recurring %s %s: %s %s (%s)",
                kind, schedule_id, result.outcome, number or document.pk, detail)
    return result


def run_once(reference_date=None, notifier=None) -> GenerationReport:
    """Process every schedule due on reference_date (default: today)."""
    reference_date = to_day(reference_date or timezone.localdate())
    if notifier is None:
        notifier = get_notifier()

    report = GenerationReport()
    for model in (RecurringInvoice, RecurringExpense):
        due_ids = list(
            model.objects.due(reference_date)
            .order_by("next_occurrence", "pk")
            .values_list("pk", flat=True)
        )
        for schedule_id in due_ids:
            report.results.append(
                process_schedule(model, schedule_id, reference_date, notifier))
    report.processed_count = len(report.results)

    logger.info(
        "Recurring run for %s: %s processed, %s generated, %s skipped, %s failed",
        reference_date, report.processed_count, report.count(SUCCESS),
        report.count(SKIPPED), report.count(FAILED),
    )
    return report
