"""
Tests for RescheduleService.

A reschedule cancels the current pair and creates a new one that points
back at it; following parents from any booking reaches the original.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from glamup.core.actor import Actor
from glamup.core.enums import AppointmentStatus, CreatedVia
from glamup.core.exceptions import (
    AlreadyTerminalException,
    NotFoundException,
    SlotConflictException,
    ValidationException,
)
from glamup.models.appointment import BusinessAppointment, ClientAppointment


class TestReschedule:
    def test_old_pair_cancelled_and_new_pair_linked(
        self, db, book, reschedule_service, business_actor, booking_day
    ):
        old_business, old_client = book("10:00", notes="Bring reference photo")
        new_day = booking_day + timedelta(days=1)

        (prev_b, prev_c), (new_b, new_c) = reschedule_service.reschedule(
            old_business.appointment_id, new_day, "15:00", business_actor
        )

        assert prev_b.status == AppointmentStatus.CANCELLED.value
        assert prev_c.status == AppointmentStatus.CANCELLED.value
        assert prev_b.is_rescheduled and prev_c.is_rescheduled
        assert prev_b.cancellation_reason == "Rescheduled by business"
        assert prev_c.cancellation_reason == "Rescheduled by business"
        assert prev_b.cancellation_by == "business"
        assert prev_b.cancelled_by_id == business_actor.id
        assert prev_b.cancellation_date == prev_c.cancellation_date

        assert new_b.appointment_id != old_business.appointment_id
        assert new_b.appointment_id == new_c.appointment_id
        assert new_b.status == AppointmentStatus.PENDING.value
        assert new_c.status == AppointmentStatus.PENDING.value
        assert new_b.parent_appointment_id == old_business.id
        assert new_c.parent_appointment_id == old_client.id
        assert new_b.date == new_day
        assert new_b.start_time.strftime("%H:%M") == "15:00"
        assert new_b.end_time.strftime("%H:%M") == "15:30"
        assert new_b.notes == "Bring reference photo"
        assert new_b.services == old_business.services
        assert new_b.total_price == Decimal("500.00")
        assert db.query(BusinessAppointment).count() == 2
        assert db.query(ClientAppointment).count() == 2

    def test_own_slot_does_not_block(self, book, reschedule_service, business_actor, booking_day):
        old_business, _ = book("10:00")

        _, (new_b, _) = reschedule_service.reschedule(
            old_business.appointment_id, booking_day, "10:15", business_actor
        )

        assert new_b.start_time.strftime("%H:%M") == "10:15"

    def test_client_reschedule_keeps_creator(
        self, book, reschedule_service, client_actor, business, booking_day
    ):
        old_business, _ = book("10:00", actor=client_actor)

        (prev_b, _), (new_b, _) = reschedule_service.reschedule(
            old_business.appointment_id, booking_day, "12:00", client_actor
        )

        assert prev_b.cancellation_reason == "Rescheduled by client"
        assert new_b.created_by == business.owner_id
        assert new_b.created_via == CreatedVia.CLIENT_BOOKING.value

    def test_new_team_member_and_services(
        self,
        book,
        reschedule_service,
        business_actor,
        second_team_member,
        blow_dry,
        booking_day,
        notification_spy,
    ):
        old_business, _ = book("10:00")

        _, (new_b, new_c) = reschedule_service.reschedule(
            old_business.appointment_id,
            booking_day,
            "11:00",
            business_actor,
            new_team_member_id=second_team_member.id,
            service_ids=[blow_dry.id],
        )

        assert new_b.team_member_id == second_team_member.id
        assert new_c.team_member_name == second_team_member.name
        assert new_b.duration == 15
        assert new_b.end_time.strftime("%H:%M") == "11:15"
        notification_spy.notify_team_member_reassigned.assert_called_once_with(new_c, "Asha")

    def test_conflict_leaves_original_active(
        self, db, book, reschedule_service, business_actor, booking_day
    ):
        original, _ = book("10:00")
        book("14:00")

        with pytest.raises(SlotConflictException):
            reschedule_service.reschedule(
                original.appointment_id, booking_day, "14:15", business_actor
            )

        db.refresh(original)
        assert original.status == AppointmentStatus.CONFIRMED.value
        assert original.is_rescheduled is False
        assert db.query(BusinessAppointment).count() == 2

    def test_terminal_booking_cannot_be_rescheduled(
        self, book, reschedule_service, booking_service, business_actor, booking_day
    ):
        original, _ = book("10:00")
        booking_service.complete_booking(original.appointment_id, business_actor)

        with pytest.raises(AlreadyTerminalException):
            reschedule_service.reschedule(
                original.appointment_id, booking_day, "12:00", business_actor
            )

    def test_superseded_booking_cannot_be_rescheduled_again(
        self, book, reschedule_service, business_actor, booking_day
    ):
        original, _ = book("10:00")
        reschedule_service.reschedule(original.appointment_id, booking_day, "12:00", business_actor)

        with pytest.raises(AlreadyTerminalException):
            reschedule_service.reschedule(
                original.appointment_id, booking_day, "13:00", business_actor
            )

    def test_unknown_appointment(self, reschedule_service, business_actor, booking_day):
        with pytest.raises(NotFoundException):
            reschedule_service.reschedule("NOPE000000", booking_day, "10:00", business_actor)

    def test_missing_client_mirror_is_refused(
        self, db, book, reschedule_service, business_actor, booking_day
    ):
        original, client_row = book("10:00")
        db.delete(client_row)
        db.commit()

        with pytest.raises(NotFoundException):
            reschedule_service.reschedule(
                original.appointment_id, booking_day, "12:00", business_actor
            )

        db.refresh(original)
        assert original.status == AppointmentStatus.CONFIRMED.value

    def test_other_client_cannot_reschedule(
        self, book, reschedule_service, walk_in_client, booking_day
    ):
        original, _ = book("10:00")

        with pytest.raises(ValidationException):
            reschedule_service.reschedule(
                original.appointment_id, booking_day, "12:00", Actor.client(walk_in_client.id)
            )

    def test_owner_of_another_business_cannot_reschedule(
        self, book, reschedule_service, other_business, booking_day
    ):
        original, _ = book("10:00")
        outsider = Actor.business(other_business.owner_id)

        with pytest.raises(ValidationException):
            reschedule_service.reschedule(original.appointment_id, booking_day, "12:00", outsider)


class TestLineage:
    @pytest.mark.parametrize("reschedules", [1, 3, 5])
    def test_chain_reaches_original(
        self, book, reschedule_service, business_actor, booking_day, reschedules
    ):
        original, _ = book("08:00")
        current_id = original.appointment_id
        for step in range(reschedules):
            _, (new_b, _) = reschedule_service.reschedule(
                current_id, booking_day, f"{9 + step:02d}:00", business_actor
            )
            current_id = new_b.appointment_id

        chain = reschedule_service.get_lineage(current_id)

        assert len(chain) == reschedules + 1
        assert chain[0].appointment_id == current_id
        assert chain[0].status == AppointmentStatus.PENDING.value
        assert all(row.status == AppointmentStatus.CANCELLED.value for row in chain[1:])
        assert all(row.is_rescheduled for row in chain[1:])
        assert chain[-1].id == original.id
        assert chain[-1].parent_appointment_id is None

    def test_unrescheduled_booking_is_its_own_lineage(self, book, reschedule_service):
        original, _ = book("10:00")

        chain = reschedule_service.get_lineage(original.appointment_id)

        assert [row.id for row in chain] == [original.id]

    def test_unknown_appointment(self, reschedule_service):
        with pytest.raises(NotFoundException):
            reschedule_service.get_lineage("MISSING000")
