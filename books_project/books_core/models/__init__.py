from .auditlog import AuditLog
from .document import MonetaryDocument
from .expense import Expense, ExpensePayment
from .invoice import Invoice
from .ledger import Payment, Revenue
from .recurring import RecurringExpense, RecurringInvoice, RecurringSchedule
