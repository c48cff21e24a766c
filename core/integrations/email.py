"""Email integration utilities for sending emails."""

import smtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.mime.base import MIMEBase
from email import encoders
from typing import Optional, List, TypedDict
import logging

from core.config import settings

logger = logging.getLogger(__name__)


class EmailAttachment(TypedDict):
    """In-memory attachment; plain dict so it survives Celery's JSON serializer."""

    filename: str
    content: str
    content_type: str


class EmailService:
    """Email service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_user: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: Optional[str] = None,
        use_tls: Optional[bool] = None,
    ):
        """
        Initialize email service.

        Args:
            smtp_host: SMTP server host
            smtp_port: SMTP server port
            smtp_user: SMTP username
            smtp_password: SMTP password
            from_email: Default sender email
            from_name: Default sender name
            use_tls: Whether to upgrade the connection with STARTTLS
        """
        self.smtp_host = smtp_host or settings.smtp_host
        self.smtp_port = smtp_port or settings.smtp_port
        self.smtp_user = smtp_user or settings.smtp_user
        self.smtp_password = smtp_password or settings.smtp_password
        self.from_email = from_email or settings.from_email
        self.from_name = from_name or settings.from_name
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls

    def build_message(
        self,
        to_email: str,
        subject: str,
        body: str,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> MIMEMultipart:
        """Assemble the MIME message without sending it."""
        msg = MIMEMultipart()
        msg['From'] = f"{self.from_name} <{self.from_email}>"
        msg['To'] = to_email
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'plain'))

        for attachment in attachments or []:
            self._attach(msg, attachment)

        return msg

    def send_email(
        self,
        to_email: str,
        subject: str,
        body: str,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> bool:
        """
        Send an email.

        Args:
            to_email: Recipient email address
            subject: Email subject
            body: Plain text body
            attachments: In-memory attachments (e.g. calendar invites)

        Returns:
            True if email sent successfully
        """
        try:
            msg = self.build_message(to_email, subject, body, attachments)

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                if self.use_tls:
                    server.starttls()
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.send_message(msg, from_addr=self.from_email, to_addrs=[to_email])

            logger.info(f"Email '{subject}' sent to {to_email}")
            return True

        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email '{subject}': {e}")
            return False

    def _attach(self, msg: MIMEMultipart, attachment: EmailAttachment):
        """Attach an in-memory file to the email message."""
        maintype, _, subtype = attachment["content_type"].partition("/")
        subtype = subtype.split(";")[0].strip() or "octet-stream"
        part = MIMEBase(maintype or "application", subtype)
        part.set_payload(attachment["content"].encode("utf-8"))

        encoders.encode_base64(part)
        part.add_header(
            'Content-Disposition',
            f'attachment; filename="{attachment["filename"]}"'
        )

        msg.attach(part)


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create global email service instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
