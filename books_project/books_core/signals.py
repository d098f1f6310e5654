from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import RecurringExpense, RecurringInvoice

"""
Keep the base document's has_recurring_schedule flag in step with
the schedules that point at it. Uses queryset.update() so document
save() logic (normalization, timestamps) is not re-run.
"""


def _sync_template_flag(schedule):
    document_model = schedule._meta.get_field(schedule.base_field).related_model
    base_id = schedule.base_document_id
    if base_id is None:
        return
    in_use = type(schedule).objects.filter(
        **{f"{schedule.base_field}_id": base_id}
    ).exists()
    document_model.objects.filter(pk=base_id).update(has_recurring_schedule=in_use)


@receiver((post_save, post_delete), sender=RecurringInvoice)
def recurring_invoice_changed(sender, instance, **kwargs):
    _sync_template_flag(instance)


@receiver((post_save, post_delete), sender=RecurringExpense)
def recurring_expense_changed(sender, instance, **kwargs):
    _sync_template_flag(instance)
