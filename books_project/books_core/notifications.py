import logging
import os
import smtplib
from typing import NamedTuple

from django.conf import settings
from django.core.mail import EmailMessage
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class NotificationResult(NamedTuple):
    success: bool
    error: str | None = None


def send_document_email(document_data: dict, recipient: str, attachment_path=None):
    """
    Email a generated document to its client.
    Never raises for delivery problems; the result says what happened.
    """
    subject = (
        f"Invoice {document_data.get('number', '')} "
        f"from {document_data.get('issuer', 'us')}"
    ).strip()
    body = "\n".join([
        f"Dear {document_data.get('client_name') or 'Client'},",
        "",
        f"Please find invoice {document_data.get('number', '')} for "
        f"{document_data.get('service') or 'services rendered'}.",
        f"Amount due: {document_data.get('amount')} {document_data.get('currency', '')}",
        f"Due date: {document_data.get('due_date') or 'on receipt'}",
    ])
    message = EmailMessage(
        subject=subject,
        body=body,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[recipient],
    )
    try:
        if attachment_path and os.path.exists(attachment_path):
            message.attach_file(str(attachment_path))
        sent = message.send(fail_silently=False)
    except (smtplib.SMTPException, OSError) as exc:
        logger.warning("Email to %s failed: %s", recipient, exc)
        return NotificationResult(success=False, error=str(exc))
    if not sent:
        return NotificationResult(success=False, error="No message was sent")
    return NotificationResult(success=True)


def get_notifier():
    """Notifier configured by BOOKS_NOTIFIER (dotted path)."""
    return import_string(settings.BOOKS_NOTIFIER)
