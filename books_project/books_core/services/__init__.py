from .expenses import create_expense, find_duplicate_expense, record_expense_payment
from .generation import GenerationReport, ScheduleResult, run_once
from .schedules import (create_recurring_expenses, create_recurring_invoices,
                        delete_schedule, update_schedule)
from .status import mark_invoice_paid, transition_invoice

__all__ = [
    "GenerationReport",
    "ScheduleResult",
    "create_expense",
    "create_recurring_expenses",
    "create_recurring_invoices",
    "delete_schedule",
    "find_duplicate_expense",
    "mark_invoice_paid",
    "record_expense_payment",
    "run_once",
    "transition_invoice",
    "update_schedule",
]
