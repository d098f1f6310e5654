from django.core.exceptions import ValidationError


class DocumentNotFound(Exception):
    """Raised when a document (or the base document of a schedule) is missing."""
    pass

class InvalidTransition(Exception):
    """Raised when a Paid document is asked to move to a non-Paid status."""
    pass

class TransactionFailure(Exception):
    """Raised when the storage layer fails mid-transaction.
    Nothing from the failed call was persisted."""
    pass

class UnknownCurrencyError(ValidationError):
    """Raised when no hint and no default rate exist for a currency."""
    pass

class SequenceExhausted(Exception):
    """Raised when no free sequence number was found within the retry budget."""
    pass
