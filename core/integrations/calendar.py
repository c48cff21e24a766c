"""Calendar invite (.ics) generation for scheduled interviews."""

from datetime import datetime, timedelta
from typing import Optional, List
import logging

from icalendar import Calendar, Event, vCalAddress, vText

from core.integrations.email import EmailAttachment
from core.utils.datetime import ensure_utc, now

logger = logging.getLogger(__name__)

ICS_CONTENT_TYPE = "text/calendar; charset=utf-8; method=REQUEST"


class CalendarEvent:
    """Represents a calendar event."""

    def __init__(
        self,
        uid: str,
        title: str,
        start_time: datetime,
        end_time: datetime,
        description: Optional[str] = None,
        url: Optional[str] = None,
        organizer: Optional[tuple[str, str]] = None,
        attendees: Optional[List[tuple[str, str]]] = None,
    ):
        """
        Initialize calendar event.

        Args:
            uid: Stable identifier so re-sent invites update the same entry
            title: Event title
            start_time: Event start time
            end_time: Event end time
            description: Event description
            url: Meeting link
            organizer: (name, email) of the organizer
            attendees: List of (name, email)
        """
        self.uid = uid
        self.title = title
        self.start_time = ensure_utc(start_time)
        self.end_time = ensure_utc(end_time)
        self.description = description
        self.url = url
        self.organizer = organizer
        self.attendees = attendees or []

    def to_ics(self) -> str:
        """Render as an iCalendar REQUEST."""
        cal = Calendar()
        cal.add('prodid', '-//mockround//interview-system//')
        cal.add('version', '2.0')
        cal.add('method', 'REQUEST')

        event = Event()
        event.add('uid', self.uid)
        event.add('summary', self.title)
        event.add('dtstart', self.start_time)
        event.add('dtend', self.end_time)
        event.add('dtstamp', now())

        description = self.description or ''
        if self.url:
            event.add('url', self.url)
            description += f"\n\nJoin meeting: {self.url}"
        event['description'] = vText(description.strip())

        if self.organizer and self.organizer[1]:
            organizer = vCalAddress(f"MAILTO:{self.organizer[1]}")
            organizer.params['cn'] = vText(self.organizer[0])
            event['organizer'] = organizer

        for name, email in self.attendees:
            if not email:
                continue
            attendee = vCalAddress(f"MAILTO:{email}")
            attendee.params['cn'] = vText(name)
            attendee.params['role'] = vText('REQ-PARTICIPANT')
            attendee.params['rsvp'] = vText('TRUE')
            event.add('attendee', attendee, encode=0)

        cal.add_component(event)
        return cal.to_ical().decode('utf-8')

    def to_attachment(self, filename: str = "interview.ics") -> EmailAttachment:
        """Wrap the invite for EmailService."""
        return EmailAttachment(
            filename=filename,
            content=self.to_ics(),
            content_type=ICS_CONTENT_TYPE,
        )


def interview_invite(
    pair_id: int,
    start_time: datetime,
    duration_minutes: int,
    interviewer: tuple[str, str],
    interviewee: tuple[str, str],
    meeting_link: Optional[str] = None,
) -> CalendarEvent:
    """Calendar entry for a confirmed pair."""
    return CalendarEvent(
        uid=f"pair-{pair_id}@mockround",
        title="Interview Session",
        start_time=start_time,
        end_time=ensure_utc(start_time) + timedelta(minutes=duration_minutes),
        description="Scheduled mock interview session",
        url=meeting_link,
        organizer=interviewer,
        attendees=[interviewer, interviewee],
    )
