"""
Tests for NotificationService.

Emails go to the counter-party of each event, and no failure may escape
a notify_* call.
"""

from unittest.mock import MagicMock

import pytest

from glamup.core.config import settings
from glamup.core.enums import ActorKind
from glamup.core.exceptions import ServiceException
from glamup.services.booking_service import BookingService
from glamup.services.cancellation_service import CancellationService
from glamup.services.notification_service import NotificationService
from glamup.services.template_service import TemplateService


@pytest.fixture
def email_service() -> MagicMock:
    service = MagicMock()
    service.send_email.return_value = {"id": "test"}
    return service


@pytest.fixture
def notifications(db, email_service) -> NotificationService:
    return NotificationService(
        db,
        template_service=TemplateService(),
        email_service=email_service,
        retry_backoff_seconds=0,
    )


class TestRecipients:
    def test_business_booking_emails_the_client(
        self, book, notifications, email_service, registered_client
    ):
        business_row, client_row = book("10:00")

        assert notifications.notify_booked(business_row, client_row) is True

        to_email, subject, html = email_service.send_email.call_args.args
        assert to_email == registered_client.email
        assert "Velvet Salon" in subject
        assert client_row.appointment_id in html

    def test_client_booking_emails_the_business(
        self, book, notifications, email_service, client_actor, business
    ):
        business_row, client_row = book("10:00", actor=client_actor)

        assert notifications.notify_booked(business_row, client_row) is True

        assert email_service.send_email.call_args.args[0] == business.email

    def test_client_cancellation_emails_the_business(
        self, book, notifications, email_service, business
    ):
        business_row, client_row = book("10:00")

        notifications.notify_cancelled(business_row, client_row, ActorKind.CLIENT, "Sick")

        to_email, _, html = email_service.send_email.call_args.args
        assert to_email == business.email
        assert "Sick" in html

    def test_business_cancellation_emails_the_client(
        self, book, notifications, email_service, registered_client
    ):
        business_row, client_row = book("10:00")

        notifications.notify_cancelled(business_row, client_row, ActorKind.BUSINESS)

        assert email_service.send_email.call_args.args[0] == registered_client.email

    def test_missing_mirror_skips_cancellation_email(self, book, notifications, email_service):
        business_row, _ = book("10:00")

        assert notifications.notify_cancelled(business_row, None, ActorKind.BUSINESS) is False
        email_service.send_email.assert_not_called()

    def test_recipient_without_email_is_skipped(
        self, db, book, notifications, email_service, business, client_actor
    ):
        business.email = None
        db.commit()
        business_row, client_row = book("10:00", actor=client_actor)

        assert notifications.notify_booked(business_row, client_row) is False
        email_service.send_email.assert_not_called()

    @pytest.mark.parametrize("method", ["notify_confirmed", "notify_completed"])
    def test_status_emails_go_to_the_client(
        self, book, notifications, email_service, registered_client, method
    ):
        _, client_row = book("10:00")

        assert getattr(notifications, method)(client_row) is True
        assert email_service.send_email.call_args.args[0] == registered_client.email

    def test_reassignment_mentions_previous_team_member(
        self, book, notifications, email_service
    ):
        _, client_row = book("10:00")

        notifications.notify_team_member_reassigned(client_row, "Priya")

        assert "Priya" in email_service.send_email.call_args.args[2]


class TestFailureIsolation:
    def test_send_failure_is_swallowed_after_retry(self, book, notifications, email_service):
        email_service.send_email.side_effect = ServiceException("provider down")
        business_row, client_row = book("10:00")

        assert notifications.notify_booked(business_row, client_row) is False
        assert email_service.send_email.call_count == 2

    def test_transient_failure_is_retried(self, book, notifications, email_service):
        email_service.send_email.side_effect = [ServiceException("blip"), {"id": "ok"}]
        business_row, client_row = book("10:00")

        assert notifications.notify_booked(business_row, client_row) is True
        assert email_service.send_email.call_count == 2

    def test_template_failure_is_swallowed(self, db, book, email_service):
        broken_templates = MagicMock()
        broken_templates.render_template.side_effect = RuntimeError("bad template")
        service = NotificationService(
            db, template_service=broken_templates, email_service=email_service
        )
        business_row, client_row = book("10:00")

        assert service.notify_booked(business_row, client_row) is False
        email_service.send_email.assert_not_called()

    def test_disabled_notifications_send_nothing(
        self, book, notifications, email_service, monkeypatch
    ):
        monkeypatch.setattr(settings, "notifications_enabled", False)
        business_row, client_row = book("10:00")

        assert notifications.notify_booked(business_row, client_row) is False
        email_service.send_email.assert_not_called()

    def test_booking_survives_notification_failure(self, db, make_request, email_service):
        email_service.send_email.side_effect = ServiceException("provider down")
        notifications = NotificationService(
            db, email_service=email_service, retry_backoff_seconds=0
        )
        service = BookingService(db, notification_service=notifications)
        request = make_request("10:00")

        business_row, client_row = service.create_booking(request, request.actor.to_actor())

        assert business_row.appointment_id == client_row.appointment_id
        assert email_service.send_email.called

    def test_cancellation_survives_notification_failure(
        self, db, book, business_actor, email_service
    ):
        email_service.send_email.side_effect = ServiceException("provider down")
        notifications = NotificationService(
            db, email_service=email_service, retry_backoff_seconds=0
        )
        business_row, _ = book("10:00")

        cancelled = CancellationService(db, notification_service=notifications).cancel(
            business_row.appointment_id, None, business_actor
        )

        db.refresh(cancelled)
        assert cancelled.status == "CANCELLED"
