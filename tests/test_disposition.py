"""
Tests for the disposition orchestrator against a SQLite session.
"""
import pytest

from db_models import DispositionHistoryDB, LayoutDB, SeatDB
from disposition import add_row, change_seats_per_block, generate_disposition
from errors import InvalidRequestError, LayoutLimitError, NotFoundError
from repository import SqlAlchemyRepository
from tests.utils.seed import (
    create_booking, create_company, create_manual, create_roster, create_session, create_student
)


@pytest.fixture
def manuals(db_session):
    return {
        area: create_manual(db_session, f"M{area}", area)
        for area in ("A", "B", "C")
    }


@pytest.fixture
def session(db_session, manuals):
    session = create_session(db_session)
    day1, day2 = session.days
    create_roster(db_session, day1, manuals["A"], 5, "Alpha")
    create_roster(db_session, day1, manuals["B"], 4, "Bravo")
    create_roster(db_session, day2, manuals["C"], 3, "Charlie")
    return session


def seat_snapshot(db_session, session):
    seats = (
        db_session.query(SeatDB)
        .filter(SeatDB.session_day_id.in_([d.id for d in session.days]))
        .all()
    )
    return sorted(
        (s.session_day_id, s.row_letter, s.column_number, s.status, s.booking_id, s.reservation_for_student_id)
        for s in seats
    )


class FailingAuditRepository(SqlAlchemyRepository):

    def insert_audit_entry(self, *args, **kwargs):
        raise RuntimeError("audit store unavailable")


def test_generate_disposition(db_session, repo, session):
    result = generate_disposition(repo, session.id, user_id="planner-1")

    assert result.success
    assert result.layout.seats_per_block == 3
    assert result.layout.rows_count == 8
    assert result.layout.columns_count == 9
    assert result.total_attendance == 9
    assert result.unseated_booking_ids == []

    layout = db_session.query(LayoutDB).filter(LayoutDB.session_id == session.id).one()
    assert (layout.seats_per_block, layout.rows_count, layout.columns_count) == (3, 8, 9)

    snapshot = seat_snapshot(db_session, session)
    assert len(snapshot) == 2 * 8 * 9
    assert len([s for s in snapshot if s[3] == "occupied"]) == 12

    entry = db_session.query(DispositionHistoryDB).one()
    assert entry.action_type == "auto_generate"
    assert entry.user_id == "planner-1"
    assert "8 rows, 9 columns, 3 seats per block" in entry.description
    assert entry.new_data["total_attendance"] == 9


def test_bookings_are_seated_on_their_own_day(db_session, repo, session):
    generate_disposition(repo, session.id)
    day1, day2 = session.days

    day2_seats = db_session.query(SeatDB).filter(SeatDB.session_day_id == day2.id).all()
    occupied = [s for s in day2_seats if s.status == "occupied"]
    assert len(occupied) == 3
    assert {s.area for s in occupied} == {"C"}
    assert all(s.booking.session_day_id == day2.id for s in occupied)


def test_only_confirmed_bookings_take_seats(db_session, repo, manuals):
    session = create_session(db_session)
    day1 = session.days[0]
    for status in ("confirmed", "pending", "cancelled"):
        student = create_student(db_session, f"Student {status}")
        create_booking(db_session, day1, student, manuals["A"], status=status)

    result = generate_disposition(repo, session.id)

    assert result.total_attendance == 1
    assert db_session.query(SeatDB).filter(SeatDB.status == "occupied").count() == 1


def test_missing_session_id_is_rejected(repo):
    with pytest.raises(InvalidRequestError):
        generate_disposition(repo, None)


def test_unknown_session_writes_nothing(db_session, repo):
    with pytest.raises(NotFoundError):
        generate_disposition(repo, 999)

    assert db_session.query(LayoutDB).count() == 0
    assert db_session.query(DispositionHistoryDB).count() == 0


def test_session_without_days_is_not_found(db_session, repo):
    session = create_session(db_session, days=0)

    with pytest.raises(NotFoundError):
        generate_disposition(repo, session.id)


def test_regeneration_is_idempotent(db_session, repo, session):
    first = generate_disposition(repo, session.id)
    first_seats = seat_snapshot(db_session, session)

    second = generate_disposition(repo, session.id)

    assert first.layout == second.layout
    assert seat_snapshot(db_session, session) == first_seats
    assert db_session.query(LayoutDB).count() == 1
    assert db_session.query(DispositionHistoryDB).count() == 2


def test_regeneration_clears_locks(db_session, repo, session):
    generate_disposition(repo, session.id)
    db_session.query(SeatDB).update({SeatDB.is_locked: True})
    db_session.commit()

    generate_disposition(repo, session.id)

    assert db_session.query(SeatDB).filter(SeatDB.is_locked.is_(True)).count() == 0


def test_failed_regeneration_rolls_back(db_session, repo, session):
    generate_disposition(repo, session.id)
    before = seat_snapshot(db_session, session)

    with pytest.raises(RuntimeError):
        generate_disposition(FailingAuditRepository(db_session), session.id)

    assert seat_snapshot(db_session, session) == before
    assert db_session.query(DispositionHistoryDB).count() == 1


def test_forward_reservation(db_session, repo, manuals):
    session = create_session(db_session)
    day1 = session.days[0]
    student = create_student(
        db_session, "Nearly Done", progress=55, total_points=60, next_manual=manuals["B"]
    )
    booking = create_booking(db_session, day1, student, manuals["A"])

    generate_disposition(repo, session.id)

    reserved = db_session.query(SeatDB).filter(SeatDB.status == "reserved").all()
    assert len(reserved) == 1
    assert reserved[0].area == "B"
    assert reserved[0].session_day_id == day1.id
    assert reserved[0].reservation_for_student_id == student.id
    own = db_session.query(SeatDB).filter(SeatDB.booking_id == booking.id).one()
    assert own.area == "A"


def test_same_company_is_spread(db_session, repo, manuals):
    session = create_session(db_session)
    day1 = session.days[0]
    x = create_company(db_session, "Xeno Srl")
    y = create_company(db_session, "Ypsilon Spa")
    for company in (x, x, y, y):
        student = create_student(db_session, f"Worker {company.name}", company=company)
        create_booking(db_session, day1, student, manuals["A"], company=company)

    generate_disposition(repo, session.id)

    seats = (
        db_session.query(SeatDB)
        .filter(SeatDB.status == "occupied")
        .order_by(SeatDB.row_letter, SeatDB.column_number)
        .all()
    )
    assert [s.booking.company_reference_id for s in seats] == [x.id, y.id, x.id, y.id]


def test_overflow_is_reported(db_session, repo, manuals):
    session = create_session(db_session)
    bookings = create_roster(db_session, session.days[0], manuals["A"], 40, "Crowd")

    result = generate_disposition(repo, session.id)

    assert result.layout.rows_count == 12
    assert result.unseated_booking_ids == [b.id for b in bookings[36:]]
    entry = db_session.query(DispositionHistoryDB).one()
    assert entry.new_data["unseated_booking_ids"] == result.unseated_booking_ids


class TestAddRow:

    def test_add_row_keeps_existing_seats(self, db_session, repo, session):
        generate_disposition(repo, session.id)
        before = seat_snapshot(db_session, session)

        layout = add_row(repo, session.id)

        assert layout.rows_count == 9
        after = seat_snapshot(db_session, session)
        new_seats = [s for s in after if s[1] == "i"]
        assert len(new_seats) == 2 * 9
        assert all(s[3] == "empty" for s in new_seats)
        assert [s for s in after if s[1] != "i"] == before
        assert db_session.query(DispositionHistoryDB).filter_by(action_type="add_row").count() == 1

    def test_add_row_stops_at_twelve(self, db_session, repo, session):
        generate_disposition(repo, session.id)
        for _ in range(4):
            add_row(repo, session.id)

        with pytest.raises(LayoutLimitError):
            add_row(repo, session.id)

        assert repo.get_layout(session.id).rows_count == 12

    def test_add_row_needs_a_layout(self, repo, session):
        with pytest.raises(NotFoundError):
            add_row(repo, session.id)


class TestChangeSeatsPerBlock:

    def test_change_regenerates(self, db_session, repo, session):
        generate_disposition(repo, session.id)

        result = change_seats_per_block(repo, session.id, 4)

        assert result.layout.seats_per_block == 4
        assert result.layout.columns_count == 12
        assert db_session.query(SeatDB).count() == 2 * 8 * 12
        assert db_session.query(SeatDB).filter(SeatDB.status == "occupied").count() == 12
        entry = db_session.query(DispositionHistoryDB).order_by(DispositionHistoryDB.id.desc()).first()
        assert entry.action_type == "change_layout"

    def test_unchanged_width_is_a_no_op(self, db_session, repo, session):
        generate_disposition(repo, session.id)

        result = change_seats_per_block(repo, session.id, 3)

        assert result.layout.seats_per_block == 3
        assert db_session.query(DispositionHistoryDB).count() == 1

    def test_invalid_width(self, repo, session):
        with pytest.raises(InvalidRequestError):
            change_seats_per_block(repo, session.id, 5)
