"""Email sending tasks."""

from typing import Optional, List
import logging

from celery import Task

from workers.celery_app import celery_app
from core.integrations.email import EmailAttachment, get_email_service

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """SMTP delivery failed; the task is retried."""


@celery_app.task(name="workers.tasks.emails.send_email", bind=True, max_retries=5)
def send_email(
    self: Task,
    to: str,
    subject: str,
    body: str,
    attachments: Optional[List[EmailAttachment]] = None,
) -> dict:
    """Send email via configured email service.

    Args:
        to: Recipient email address
        subject: Email subject
        body: Plain text email body
        attachments: In-memory attachments (calendar invites)

    Returns:
        Dictionary with send status
    """
    sent = get_email_service().send_email(
        to_email=to,
        subject=subject,
        body=body,
        attachments=attachments,
    )
    if not sent:
        logger.warning(f"Retrying email '{subject}' to {to}")
        raise self.retry(exc=EmailDeliveryError(subject), countdown=120)

    return {"status": "sent", "to": to}
