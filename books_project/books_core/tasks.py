import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task  # register this function as a Celery task
def run_recurring_generation(reference_date=None):
    """
    Daily beat tick: generate every due recurring invoice and expense.
    Returns the run report as a JSON-safe dict for the result backend.
    """
    # import services lazily to avoid circular imports at module import time
    from .services.generation import run_once

    report = run_once(reference_date=reference_date)
    logger.info("Recurring generation processed %s schedule(s)", report.processed_count)
    return report.as_dict()
