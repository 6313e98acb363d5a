from datetime import time, timedelta

from glamup.core.enums import AppointmentStatus
from glamup.repositories.appointment_repository import (
    BusinessAppointmentRepository,
    ClientAppointmentRepository,
)


class TestBusinessAppointmentRepository:
    def test_get_by_appointment_id(self, db, book):
        business_row, _ = book("10:00")
        repo = BusinessAppointmentRepository(db)

        found = repo.get_by_appointment_id(business_row.appointment_id)

        assert found is not None
        assert found.id == business_row.id
        assert repo.get_by_appointment_id("NOPE") is None

    def test_soft_deleted_rows_are_hidden(self, db, book):
        business_row, _ = book("10:00")
        business_row.is_deleted = True
        db.commit()

        assert BusinessAppointmentRepository(db).get_by_appointment_id(
            business_row.appointment_id
        ) is None

    def test_list_for_business_filters_and_pages(
        self, db, book, business, second_team_member, booking_day
    ):
        book("09:00")
        book("11:00")
        book("13:00", team_member_id=second_team_member.id)
        book("10:00", date=booking_day + timedelta(days=3))
        repo = BusinessAppointmentRepository(db)

        rows, total = repo.list_for_business(business.id, skip=0, limit=2)
        assert total == 4
        assert [row.start_time for row in rows] == [time(9, 0), time(11, 0)]

        rows, total = repo.list_for_business(business.id, team_member_id=second_team_member.id)
        assert total == 1
        assert rows[0].team_member_id == second_team_member.id

        rows, total = repo.list_for_business(
            business.id, date_from=booking_day, date_to=booking_day, descending=True
        )
        assert total == 3
        assert [row.start_time for row in rows] == [time(13, 0), time(11, 0), time(9, 0)]

    def test_list_for_business_status_filter(self, db, book, business):
        pending, _ = book("09:00", status=AppointmentStatus.PENDING)
        book("11:00")
        repo = BusinessAppointmentRepository(db)

        rows, total = repo.list_for_business(business.id, statuses=["PENDING"])

        assert total == 1
        assert rows[0].appointment_id == pending.appointment_id


class TestClientAppointmentRepository:
    def test_list_for_client_orders_by_date_then_time(
        self, db, book, registered_client, booking_day
    ):
        book("15:00")
        book("09:00", date=booking_day + timedelta(days=1))
        book("08:00")
        repo = ClientAppointmentRepository(db)

        rows, total = repo.list_for_client(registered_client.id)
        assert total == 3
        assert [(row.date, row.start_time) for row in rows] == [
            (booking_day, time(8, 0)),
            (booking_day, time(15, 0)),
            (booking_day + timedelta(days=1), time(9, 0)),
        ]

        rows, _ = repo.list_for_client(registered_client.id, descending=True, limit=1)
        assert rows[0].date == booking_day + timedelta(days=1)

    def test_list_upcoming_for_client_uses_day_and_time(
        self, db, book, registered_client, booking_day
    ):
        book("09:00")
        later, _ = book("15:00")
        repo = ClientAppointmentRepository(db)

        rows, total = repo.list_upcoming_for_client(registered_client.id, booking_day, time(12, 0))

        assert total == 1
        assert rows[0].appointment_id == later.appointment_id

    def test_list_upcoming_for_client_skips_cancelled(
        self, db, book, cancellation_service, business_actor, registered_client, booking_day
    ):
        business_row, _ = book("15:00")
        cancellation_service.cancel(business_row.appointment_id, None, business_actor)
        repo = ClientAppointmentRepository(db)

        rows, total = repo.list_upcoming_for_client(
            registered_client.id, booking_day - timedelta(days=1), time(0, 0)
        )

        assert total == 0
        assert rows == []
