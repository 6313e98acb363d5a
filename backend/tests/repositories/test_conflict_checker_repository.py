"""
Tests for ConflictCheckerRepository.

Only PENDING and CONFIRMED rows may block a window; the repository is
scoped by team member, or by client within one business.
"""

from datetime import timedelta

from glamup.core.enums import ActorKind
from glamup.repositories.conflict_checker_repository import ConflictCheckerRepository


class TestConflictCheckerRepository:
    def test_team_member_rows_in_range(self, db, book, team_member, booking_day):
        book("10:00")
        book("14:00")
        repo = ConflictCheckerRepository(db)

        rows = repo.get_team_member_appointments_for_conflict_check(
            team_member.id, booking_day, booking_day
        )

        assert [row.start_time.strftime("%H:%M") for row in rows] == ["10:00", "14:00"]

    def test_other_days_are_ignored(self, db, book, team_member, booking_day):
        book("10:00")
        repo = ConflictCheckerRepository(db)
        next_day = booking_day + timedelta(days=1)

        assert repo.get_team_member_appointments_for_conflict_check(
            team_member.id, next_day, next_day
        ) == []

    def test_excludes_given_appointment(self, db, book, team_member, booking_day):
        business_row, _ = book("10:00")
        repo = ConflictCheckerRepository(db)

        rows = repo.get_team_member_appointments_for_conflict_check(
            team_member.id,
            booking_day,
            booking_day,
            exclude_appointment_id=business_row.appointment_id,
        )

        assert rows == []

    def test_terminal_rows_never_block(self, db, book, team_member, booking_day):
        business_row, client_row = book("10:00")
        business_row.cancel(ActorKind.BUSINESS, "test")
        client_row.cancel(ActorKind.BUSINESS, "test")
        completed, _ = book("12:00")
        completed.complete("owner")
        db.commit()
        repo = ConflictCheckerRepository(db)

        assert (
            repo.get_team_member_appointments_for_conflict_check(
                team_member.id, booking_day, booking_day
            )
            == []
        )

    def test_client_rows_span_team_members(
        self, db, book, business, team_member, second_team_member, registered_client, booking_day
    ):
        book("10:00")
        book("12:00", team_member_id=second_team_member.id)
        repo = ConflictCheckerRepository(db)

        rows = repo.get_client_appointments_for_conflict_check(
            business.id, registered_client.id, booking_day, booking_day
        )

        assert len(rows) == 2
        assert {row.team_member_id for row in rows} == {team_member.id, second_team_member.id}

    def test_client_rows_scoped_to_business(
        self, db, book, other_business, registered_client, booking_day
    ):
        book("10:00")
        repo = ConflictCheckerRepository(db)

        assert (
            repo.get_client_appointments_for_conflict_check(
                other_business.id, registered_client.id, booking_day, booking_day
            )
            == []
        )

    def test_overnight_row_counts_for_the_day_it_ends(self, db, book, team_member, booking_day):
        book("23:30", "00:30")
        repo = ConflictCheckerRepository(db)
        next_day = booking_day + timedelta(days=1)

        rows = repo.get_team_member_appointments_for_conflict_check(
            team_member.id, next_day, next_day
        )

        assert [row.date for row in rows] == [booking_day]
