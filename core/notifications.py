"""
Email notifications for the interview workflow.

Messages are queued on the Celery `send_email` task. Dispatch is
best-effort: failures are logged and never propagate to the operation that
triggered them.
"""

import logging
from typing import Any, Callable, List, Optional

from core.config import settings
from core.integrations.calendar import interview_invite
from core.integrations.email import EmailAttachment
from core.utils.datetime import format_human
from database.models.users import User

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str, str, Optional[List[EmailAttachment]]], Any]


def _queue_email(
    to: str,
    subject: str,
    body: str,
    attachments: Optional[List[EmailAttachment]] = None,
) -> Any:
    from workers.tasks.emails import send_email

    return send_email.delay(to=to, subject=subject, body=body, attachments=attachments)


class NotificationDispatcher:
    """Builds notification emails and hands them to a sender."""

    def __init__(self, sender: Optional[EmailSender] = None, tz_name: Optional[str] = None):
        self.sender = sender or _queue_email
        self.tz_name = tz_name or settings.scheduling_timezone

    def _send(
        self,
        user: Optional[User],
        subject: str,
        body: str,
        attachments: Optional[List[EmailAttachment]] = None,
    ) -> bool:
        if user is None or not user.email:
            logger.debug(f"Skipping '{subject}': recipient has no email")
            return False
        try:
            self.sender(user.email, subject, body, attachments)
            return True
        except Exception as e:
            logger.error(f"Failed to dispatch '{subject}' to user {user.id}: {e}")
            return False

    def _when(self, at) -> str:
        return format_human(at, self.tz_name)

    def pairing_created(self, event_name: str, interviewer: User, interviewee: User) -> None:
        self._send(
            interviewer,
            f"You have been paired for {event_name}",
            f"Hi {interviewer.display_name},\n\n"
            f"You will interview {interviewee.display_name} in {event_name}.\n"
            f"Log in to propose a time slot.",
        )
        self._send(
            interviewee,
            f"You have been paired for {event_name}",
            f"Hi {interviewee.display_name},\n\n"
            f"You will be interviewed by {interviewer.display_name} in {event_name}.\n"
            f"Log in to propose a time slot.",
        )

    def slots_proposed(self, proposer: User, recipient: User, slots: List) -> None:
        listed = "\n".join(f"  - {self._when(slot)}" for slot in slots)
        self._send(
            recipient,
            "New interview time slots proposed",
            f"Hi {recipient.display_name},\n\n"
            f"{proposer.display_name} proposed the following slots:\n{listed}",
        )

    def interview_scheduled(
        self,
        pair_id: int,
        scheduled_at,
        interviewer: User,
        interviewee: User,
        meeting_link: Optional[str] = None,
    ) -> None:
        try:
            invite = interview_invite(
                pair_id=pair_id,
                start_time=scheduled_at,
                duration_minutes=settings.interview_duration_minutes,
                interviewer=(interviewer.display_name, interviewer.email),
                interviewee=(interviewee.display_name, interviewee.email),
                meeting_link=meeting_link,
            )
            attachments = [invite.to_attachment()]
        except Exception as e:
            logger.error(f"Failed to build calendar invite for pair {pair_id}: {e}")
            attachments = None

        link_line = f"\nMeeting link: {meeting_link}" if meeting_link else ""
        for user, other in ((interviewer, interviewee), (interviewee, interviewer)):
            self._send(
                user,
                "Interview scheduled",
                f"Hi {user.display_name},\n\n"
                f"Your interview with {other.display_name} is scheduled for "
                f"{self._when(scheduled_at)}.{link_line}",
                attachments,
            )

    def meeting_link_set(self, meeting_link: str, scheduled_at, interviewer: User, interviewee: User) -> None:
        for user in (interviewer, interviewee):
            self._send(
                user,
                "Meeting link available",
                f"Hi {user.display_name},\n\n"
                f"The meeting link for your interview at {self._when(scheduled_at)} "
                f"is {meeting_link}",
            )

    def slots_rejected(self, interviewer: User, interviewee: User, reason: Optional[str]) -> None:
        reason_line = f"\nReason: {reason}" if reason else ""
        self._send(
            interviewer,
            "Proposed time slots rejected",
            f"Hi {interviewer.display_name},\n\n"
            f"{interviewee.display_name} rejected the proposed slots.{reason_line}\n"
            f"Please propose new times.",
        )

    def reminder(self, label: str, scheduled_at, interviewer: User, interviewee: User, meeting_link: Optional[str]) -> int:
        """Send an 'Interview in {label}' reminder to both sides; returns emails queued."""
        link_line = f"\nMeeting link: {meeting_link}" if meeting_link else ""
        sent = 0
        for user, other in ((interviewer, interviewee), (interviewee, interviewer)):
            sent += self._send(
                user,
                f"Interview in {label}",
                f"Hi {user.display_name},\n\n"
                f"Reminder: your interview with {other.display_name} starts at "
                f"{self._when(scheduled_at)}.{link_line}",
            )
        return sent
