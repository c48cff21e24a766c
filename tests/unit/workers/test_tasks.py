"""
Tests for Celery tasks.

Tests:
- Email delivery and retry on SMTP failure
- Reminder sweep entry point
- Beat schedule and routing configuration
"""

from unittest.mock import AsyncMock, Mock, patch

import pytest

from core.config import settings
from workers.celery_app import celery_app
from workers.tasks.emails import EmailDeliveryError, send_email
from workers.tasks.reminders import sweep_reminders


class TestSendEmail:
    def test_delivers_via_email_service(self):
        service = Mock()
        service.send_email.return_value = True
        with patch("workers.tasks.emails.get_email_service", return_value=service):
            result = send_email.run(to="a@example.com", subject="Hi", body="Body")

        assert result == {"status": "sent", "to": "a@example.com"}
        service.send_email.assert_called_once_with(
            to_email="a@example.com", subject="Hi", body="Body", attachments=None
        )

    def test_failed_delivery_retries(self):
        """Called directly, retry re-raises the delivery error."""
        service = Mock()
        service.send_email.return_value = False
        with patch("workers.tasks.emails.get_email_service", return_value=service):
            with pytest.raises(EmailDeliveryError):
                send_email.run(to="a@example.com", subject="Hi", body="Body")


class TestReminderTask:
    def test_runs_sweep(self):
        counts = {"checked": 1, "reminders_sent": 2, "links_generated": 0, "completed": 0}
        with patch("workers.tasks.reminders.run_reminder_sweep", AsyncMock(return_value=counts)) as sweep:
            assert sweep_reminders.run() == counts
        sweep.assert_awaited_once()


class TestCeleryConfig:
    def test_beat_schedule(self):
        entry = celery_app.conf.beat_schedule["interview-reminder-sweep"]
        assert entry["task"] == "workers.tasks.reminders.sweep_reminders"
        assert entry["schedule"].run_every.total_seconds() == settings.reminder_interval_seconds

    def test_email_routing(self):
        assert celery_app.conf.task_routes["workers.tasks.emails.*"] == {"queue": "emails"}
