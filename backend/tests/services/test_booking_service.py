from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from glamup.core.actor import Actor
from glamup.core.enums import AppointmentStatus, ClientModel, CreatedVia
from glamup.core.exceptions import (
    AlreadyTerminalException,
    BusinessRuleException,
    CrossTenantException,
    InvalidCombinationException,
    NotFoundException,
    RepositoryException,
    SlotConflictException,
    TransactionException,
    ValidationException,
)
from glamup.models.appointment import BusinessAppointment, ClientAppointment
from glamup.models.business import TeamMember
from glamup.models.catalog import Service
from glamup.models.client import Client
from glamup.repositories.appointment_repository import ClientAppointmentRepository

MIRRORED_FIELDS = (
    "appointment_id",
    "business_id",
    "client_id",
    "client_model",
    "team_member_id",
    "category_id",
    "services",
    "package",
    "date",
    "end_date",
    "start_time",
    "end_time",
    "duration",
    "total_price",
    "discount",
    "final_price",
    "currency",
    "status",
    "payment_status",
    "payment_method",
    "location_type",
    "notes",
)


def _row_counts(db) -> tuple[int, int]:
    return db.query(BusinessAppointment).count(), db.query(ClientAppointment).count()


def assert_mirrored(business_row: BusinessAppointment, client_row: ClientAppointment) -> None:
    for field_name in MIRRORED_FIELDS:
        assert getattr(business_row, field_name) == getattr(client_row, field_name), field_name


class TestCreateBooking:
    def test_business_booking_creates_confirmed_pair(
        self, db, book, business, team_member, haircut, category, notification_spy
    ):
        business_row, client_row = book("10:00")

        assert business_row.status == AppointmentStatus.CONFIRMED.value
        assert business_row.created_via == CreatedVia.BUSINESS.value
        assert business_row.created_by == business.owner_id
        assert business_row.end_time.strftime("%H:%M") == "10:30"
        assert business_row.duration == 30
        assert business_row.total_price == Decimal("500.00")
        assert business_row.final_price == Decimal("500.00")
        assert business_row.category_id == category.id
        assert business_row.services == [haircut.snapshot()]
        assert business_row.package is None
        assert business_row.parent_appointment_id is None

        assert client_row.business_name == business.name
        assert client_row.business_address == business.address
        assert client_row.team_member_name == team_member.name
        assert client_row.category_name == category.name
        assert_mirrored(business_row, client_row)
        assert _row_counts(db) == (1, 1)
        notification_spy.notify_booked.assert_called_once_with(business_row, client_row)

    def test_client_booking_starts_pending(
        self, book, business, client_actor, registered_client
    ):
        business_row, client_row = book("10:00", actor=client_actor)

        assert business_row.status == AppointmentStatus.PENDING.value
        assert client_row.status == AppointmentStatus.PENDING.value
        assert business_row.created_via == CreatedVia.CLIENT_BOOKING.value
        assert business_row.created_by == business.owner_id

    def test_business_may_request_pending(self, book):
        business_row, _ = book("10:00", status=AppointmentStatus.PENDING)
        assert business_row.status == AppointmentStatus.PENDING.value

    def test_multiple_services_sum_duration_and_price(self, book, haircut, blow_dry):
        business_row, client_row = book("10:00", service_ids=[haircut.id, blow_dry.id])

        assert business_row.duration == 45
        assert business_row.end_time.strftime("%H:%M") == "10:45"
        assert business_row.total_price == Decimal("750.00")
        assert [item["service_id"] for item in client_row.services] == [haircut.id, blow_dry.id]

    def test_package_uses_its_own_duration_and_price(self, book, spa_package):
        business_row, client_row = book("10:00", service_ids=None, package_id=spa_package.id)

        assert business_row.duration == 60
        assert business_row.end_time.strftime("%H:%M") == "11:00"
        assert business_row.total_price == Decimal("650.00")
        assert business_row.services == []
        assert business_row.package["package_id"] == spa_package.id
        assert len(business_row.package["services"]) == 2
        assert_mirrored(business_row, client_row)

    def test_snapshot_survives_catalog_edits(self, db, book, haircut):
        business_row, _ = book("10:00")
        haircut.price = Decimal("900.00")
        haircut.name = "Premium Haircut"
        db.commit()

        db.refresh(business_row)
        assert business_row.services[0]["name"] == "Haircut"
        assert business_row.services[0]["price"] == 500.0

    def test_discount_applied(self, book):
        business_row, _ = book("10:00", discount=Decimal("120"))
        assert business_row.discount == Decimal("120.00")
        assert business_row.final_price == Decimal("380.00")

    def test_explicit_end_time_wins(self, book):
        business_row, _ = book("10:00", "11:15")
        assert business_row.end_time.strftime("%H:%M") == "11:15"

    def test_explicit_end_before_start_is_rejected(self, book, db):
        with pytest.raises(ValidationException):
            book("10:00", "09:00")
        assert db.query(BusinessAppointment).count() == 0

    def test_very_short_service_can_be_booked(self, db, book, business, category):
        fringe = Service(
            business_id=business.id, category_id=category.id, name="Fringe", duration=3, price=50
        )
        db.add(fringe)
        db.commit()

        business_row, _ = book("10:00", service_ids=[fringe.id])

        assert business_row.duration == 3
        assert business_row.end_time.strftime("%H:%M") == "10:03"

    def test_window_crossing_midnight_ends_next_day(self, book, booking_day):
        business_row, client_row = book("23:45")

        assert business_row.end_time.strftime("%H:%M") == "00:15"
        assert business_row.end_date == booking_day + timedelta(days=1)
        assert client_row.end_date == business_row.end_date

    def test_shared_ids_are_distinct_per_booking(self, book):
        first, _ = book("10:00")
        second, _ = book("11:00")
        assert first.appointment_id != second.appointment_id
        assert first.id != second.id

    def test_currency_defaults_from_settings(self, book):
        business_row, _ = book("10:00")
        assert business_row.currency == "INR"


class TestCreateBookingValidation:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"service_ids": None, "package_id": None},
            {"service_ids": [], "package_id": None},
        ],
    )
    def test_neither_services_nor_package(self, db, book, overrides):
        with pytest.raises(InvalidCombinationException):
            book("10:00", **overrides)
        assert _row_counts(db) == (0, 0)

    def test_both_services_and_package(self, db, book, spa_package):
        with pytest.raises(InvalidCombinationException) as exc_info:
            book("10:00", package_id=spa_package.id)
        assert exc_info.value.code == "INVALID_COMBINATION"
        assert _row_counts(db) == (0, 0)

    def test_client_cannot_book_for_someone_else(self, db, book, walk_in_client):
        with pytest.raises(ValidationException):
            book("10:00", actor=Actor.client(walk_in_client.id))
        assert _row_counts(db) == (0, 0)

    def test_unknown_service_fails_closed(self, db, book, haircut):
        with pytest.raises(NotFoundException):
            book("10:00", service_ids=[haircut.id, "01HNOSUCHSERVICE0000000000"])
        assert _row_counts(db) == (0, 0)

    def test_inactive_service_is_not_found(self, db, book, haircut):
        haircut.is_active = False
        db.commit()
        with pytest.raises(NotFoundException):
            book("10:00")

    def test_inactive_team_member(self, db, book, team_member):
        team_member.is_active = False
        db.commit()
        with pytest.raises(NotFoundException):
            book("10:00")

    def test_inactive_business(self, db, book, business):
        business.status = "inactive"
        db.commit()
        with pytest.raises(NotFoundException):
            book("10:00")

    def test_unknown_client(self, db, book):
        with pytest.raises(NotFoundException):
            book("10:00", client_id="01HNOSUCHCLIENT00000000000")

    def test_team_member_from_other_business(self, db, book, other_business):
        outsider = TeamMember(business_id=other_business.id, name="Outsider")
        db.add(outsider)
        db.commit()

        with pytest.raises(CrossTenantException) as exc_info:
            book("10:00", team_member_id=outsider.id)
        assert exc_info.value.details["entity"] == "Team member"
        assert _row_counts(db) == (0, 0)

    def test_service_from_other_business(self, db, book, other_business):
        foreign = Service(business_id=other_business.id, name="Shave", duration=20, price=300)
        db.add(foreign)
        db.commit()

        with pytest.raises(CrossTenantException):
            book("10:00", service_ids=[foreign.id])

    def test_walk_in_client_of_other_business(self, db, book, other_business):
        stranger = Client(business_id=other_business.id, name="Stranger")
        db.add(stranger)
        db.commit()

        with pytest.raises(CrossTenantException):
            book("10:00", client_id=stranger.id, client_model=ClientModel.CLIENT)

    def test_conflict_performs_no_writes(self, db, book, notification_spy):
        book("10:00")
        notification_spy.reset_mock()

        with pytest.raises(SlotConflictException):
            book("10:10")

        assert _row_counts(db) == (1, 1)
        notification_spy.notify_booked.assert_not_called()


class TestCreateBookingAtomicity:
    def test_second_mirror_failure_leaves_nothing_behind(self, db, book, notification_spy):
        with patch.object(
            ClientAppointmentRepository,
            "add",
            side_effect=RepositoryException("disk full"),
        ):
            with pytest.raises(TransactionException):
                book("10:00")

        assert _row_counts(db) == (0, 0)
        notification_spy.notify_booked.assert_not_called()

    def test_integrity_error_on_insert_is_a_slot_conflict(self, db, book):
        error = RepositoryException("Integrity constraint violated")
        error.__cause__ = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with patch.object(ClientAppointmentRepository, "add", side_effect=error):
            with pytest.raises(SlotConflictException):
                book("10:00")

        assert _row_counts(db) == (0, 0)

    def test_booking_succeeds_after_failed_attempt(self, db, book):
        with patch.object(
            ClientAppointmentRepository, "add", side_effect=RepositoryException("boom")
        ):
            with pytest.raises(TransactionException):
                book("10:00")

        business_row, client_row = book("10:00")
        assert _row_counts(db) == (1, 1)
        assert_mirrored(business_row, client_row)


class TestUpdateBooking:
    def test_move_window_resets_to_pending(self, book, booking_service, business_actor):
        business_row, _ = book("10:00")

        updated, client_row = booking_service.update_booking(
            business_row.appointment_id,
            {"start_time": "14:00"},
            business_actor,
        )

        assert updated.start_time.strftime("%H:%M") == "14:00"
        assert updated.end_time.strftime("%H:%M") == "14:30"
        assert updated.status == AppointmentStatus.PENDING.value
        assert updated.updated_by == business_actor.id
        assert updated.appointment_id == business_row.appointment_id
        assert_mirrored(updated, client_row)

    def test_update_ignores_its_own_slot(self, book, booking_service, business_actor):
        business_row, _ = book("10:00")

        updated, _ = booking_service.update_booking(
            business_row.appointment_id, {"start_time": "10:15"}, business_actor
        )

        assert updated.start_time.strftime("%H:%M") == "10:15"

    def test_update_into_taken_slot(self, db, book, booking_service, business_actor):
        first, _ = book("10:00")
        book("11:00")

        with pytest.raises(SlotConflictException):
            booking_service.update_booking(
                first.appointment_id, {"start_time": "10:45"}, business_actor
            )

        db.refresh(first)
        assert first.start_time.strftime("%H:%M") == "10:00"
        assert first.status == AppointmentStatus.CONFIRMED.value

    def test_change_team_member_updates_client_view(
        self, book, booking_service, business_actor, second_team_member, notification_spy
    ):
        business_row, _ = book("10:00")

        updated, client_row = booking_service.update_booking(
            business_row.appointment_id,
            {"team_member_id": second_team_member.id},
            business_actor,
        )

        assert updated.team_member_id == second_team_member.id
        assert client_row.team_member_name == second_team_member.name
        notification_spy.notify_team_member_reassigned.assert_called_once_with(client_row, "Asha")

    def test_change_services_reprices(self, book, booking_service, business_actor, blow_dry):
        business_row, _ = book("10:00")

        updated, client_row = booking_service.update_booking(
            business_row.appointment_id, {"service_ids": [blow_dry.id]}, business_actor
        )

        assert updated.duration == 15
        assert updated.end_time.strftime("%H:%M") == "10:15"
        assert updated.total_price == Decimal("250.00")
        assert client_row.services[0]["service_id"] == blow_dry.id

    def test_notes_only_keeps_window(self, book, booking_service, client_actor):
        business_row, _ = book("10:00", actor=client_actor)

        updated, client_row = booking_service.update_booking(
            business_row.appointment_id, {"notes": "Please use the side door"}, client_actor
        )

        assert updated.start_time.strftime("%H:%M") == "10:00"
        assert client_row.notes == "Please use the side door"

    def test_client_cannot_update_someone_elses_booking(
        self, book, booking_service, walk_in_client
    ):
        business_row, _ = book("10:00")

        with pytest.raises(ValidationException):
            booking_service.update_booking(
                business_row.appointment_id,
                {"notes": "hi"},
                Actor.client(walk_in_client.id),
            )

    def test_cancelled_booking_cannot_be_updated(
        self, book, booking_service, cancellation_service, business_actor
    ):
        business_row, _ = book("10:00")
        cancellation_service.cancel(business_row.appointment_id, None, business_actor)

        with pytest.raises(AlreadyTerminalException):
            booking_service.update_booking(
                business_row.appointment_id, {"start_time": "12:00"}, business_actor
            )

    def test_unknown_appointment(self, booking_service, business_actor):
        with pytest.raises(NotFoundException):
            booking_service.update_booking("MISSING123", {"notes": "x"}, business_actor)


class TestStatusTransitions:
    def test_confirm_pending(self, book, booking_service, business_actor, notification_spy):
        business_row, _ = book("10:00", status=AppointmentStatus.PENDING)

        confirmed, client_row = booking_service.confirm_booking(
            business_row.appointment_id, business_actor
        )

        assert confirmed.status == AppointmentStatus.CONFIRMED.value
        assert confirmed.confirmed_at is not None
        assert client_row.status == AppointmentStatus.CONFIRMED.value
        notification_spy.notify_confirmed.assert_called_once_with(client_row)

    def test_confirm_requires_pending(self, book, booking_service, business_actor):
        business_row, _ = book("10:00")

        with pytest.raises(BusinessRuleException):
            booking_service.confirm_booking(business_row.appointment_id, business_actor)

    def test_complete_then_slot_is_free(self, book, booking_service, business_actor):
        business_row, _ = book("10:00")

        completed, client_row = booking_service.complete_booking(
            business_row.appointment_id, business_actor
        )

        assert completed.status == AppointmentStatus.COMPLETED.value
        assert client_row.status == AppointmentStatus.COMPLETED.value
        assert completed.completed_at is not None
        book("10:00")

    def test_no_show(self, book, booking_service, business_actor):
        business_row, _ = book("10:00")

        marked, client_row = booking_service.mark_no_show(
            business_row.appointment_id, business_actor
        )

        assert marked.status == AppointmentStatus.NO_SHOW.value
        assert client_row.status == AppointmentStatus.NO_SHOW.value

    def test_terminal_status_cannot_change(self, book, booking_service, business_actor):
        business_row, _ = book("10:00")
        booking_service.complete_booking(business_row.appointment_id, business_actor)

        with pytest.raises(AlreadyTerminalException):
            booking_service.mark_no_show(business_row.appointment_id, business_actor)

    def test_clients_cannot_change_status(self, book, booking_service, client_actor):
        business_row, _ = book("10:00", actor=client_actor)

        with pytest.raises(ValidationException):
            booking_service.confirm_booking(business_row.appointment_id, client_actor)
