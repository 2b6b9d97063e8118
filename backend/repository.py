"""
Data access used by the disposition generator.

`DispositionRepository` describes every read and write the generator needs, so
the orchestrator can be handed any store (the SQLAlchemy one below in
production, a session on an in-memory SQLite database in tests). Writes only
flush; nothing is committed until the surrounding `transaction()` block exits
cleanly.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session, joinedload

from db_models import (
    BookingDB, DispositionHistoryDB, LayoutDB, ManualDB, SeatDB, SessionDB, StudentDB
)
from errors import InvalidRequestError, NotFoundError
from schemas import (
    BookingRecord, EnrollmentRecord, HistoryEntry, LayoutRead, LayoutSpec, ManualRef,
    SeatCreate, SeatDetail, SeatRecord, SessionDayRecord, SessionRecord, StudentRecord
)

logger = logging.getLogger(__name__)


class DispositionRepository(ABC):

    @abstractmethod
    def transaction(self):
        """Context manager committing every write made inside it, or none."""

    @abstractmethod
    def load_session(self, session_id: int) -> SessionRecord: ...

    @abstractmethod
    def load_confirmed_bookings(self, session_day_ids: List[int]) -> List[BookingRecord]: ...

    @abstractmethod
    def load_manual_area(self, manual_id: int) -> Optional[str]: ...

    @abstractmethod
    def get_layout(self, session_id: int) -> Optional[LayoutRead]: ...

    @abstractmethod
    def upsert_layout(self, session_id: int, layout: LayoutSpec) -> int: ...

    @abstractmethod
    def delete_seats(self, session_day_ids: List[int]) -> None: ...

    @abstractmethod
    def insert_seats(self, seats: List[SeatCreate]) -> List[SeatRecord]: ...

    @abstractmethod
    def get_seat(self, seat_id: int) -> SeatRecord: ...

    @abstractmethod
    def update_seat(self, seat_id: int, **fields) -> SeatRecord: ...

    @abstractmethod
    def list_seats(self, session_day_id: int) -> List[SeatDetail]: ...

    @abstractmethod
    def insert_audit_entry(self, session_id: int, action_type: str, description: str,
                           snapshot: dict, user_id: Optional[str] = None) -> int: ...

    @abstractmethod
    def list_history(self, session_id: int) -> List[HistoryEntry]: ...


def _booking_record(booking: BookingDB) -> BookingRecord:
    student = booking.student
    enrollment = None
    if student is not None and student.enrollments:
        first = student.enrollments[0]
        enrollment = EnrollmentRecord(
            current_progress=first.current_progress or 0,
            total_points=first.total_points,
            next_manual_id=first.next_manual_id,
        )

    try:
        return BookingRecord(
            id=booking.id,
            session_day_id=booking.session_day_id,
            student_id=booking.student_id,
            manual_id=booking.manual_id,
            company_reference_id=booking.company_reference_id,
            status=booking.status,
            student=StudentRecord(
                id=student.id,
                name=student.name,
                company_id=student.company_id,
                enrollment=enrollment,
            ) if student is not None else None,
            manual=ManualRef(
                id=booking.manual.id,
                name=booking.manual.name,
                area=booking.manual.area,
            ) if booking.manual is not None else None,
        )
    except ValidationError as e:
        raise InvalidRequestError(f"Booking {booking.id} is malformed: {e}") from e


def _seat_detail(seat: SeatDB) -> SeatDetail:
    detail = SeatDetail.model_validate(seat)
    booking = seat.booking
    if booking is not None:
        detail.manual_id = booking.manual_id
        if booking.manual is not None:
            detail.manual_name = booking.manual.name
        if booking.student is not None:
            detail.student_name = booking.student.name
            detail.company_id = booking.student.company_id
            if booking.student.company is not None:
                detail.company_name = booking.student.company.name
    if seat.reservation_student is not None:
        detail.reservation_student_name = seat.reservation_student.name
    return detail


class SqlAlchemyRepository(DispositionRepository):

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def transaction(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except Exception:
            logger.warning("Rolling back disposition changes")
            self.db.rollback()
            raise

    def load_session(self, session_id: int) -> SessionRecord:
        session = (
            self.db.query(SessionDB)
            .options(joinedload(SessionDB.days))
            .filter(SessionDB.id == session_id)
            .first()
        )
        if session is None:
            raise NotFoundError(f"Session {session_id} not found")
        if not session.days:
            raise NotFoundError(f"Session {session_id} has no days")

        return SessionRecord(
            id=session.id,
            days=[
                SessionDayRecord(id=d.id, day_index=d.day_index, date=d.date)
                for d in session.days
            ],
        )

    def load_confirmed_bookings(self, session_day_ids: List[int]) -> List[BookingRecord]:
        if not session_day_ids:
            return []
        bookings = (
            self.db.query(BookingDB)
            .options(
                joinedload(BookingDB.student).joinedload(StudentDB.enrollments),
                joinedload(BookingDB.manual),
            )
            .filter(BookingDB.session_day_id.in_(session_day_ids))
            .filter(BookingDB.status == "confirmed")
            .order_by(BookingDB.id)
            .all()
        )
        return [_booking_record(b) for b in bookings]

    def load_manual_area(self, manual_id: int) -> Optional[str]:
        manual = self.db.query(ManualDB).filter(ManualDB.id == manual_id).first()
        return manual.area if manual else None

    def get_layout(self, session_id: int) -> Optional[LayoutRead]:
        layout = self.db.query(LayoutDB).filter(LayoutDB.session_id == session_id).first()
        return LayoutRead.model_validate(layout) if layout else None

    def upsert_layout(self, session_id: int, layout: LayoutSpec) -> int:
        existing = self.db.query(LayoutDB).filter(LayoutDB.session_id == session_id).first()
        if existing is None:
            existing = LayoutDB(session_id=session_id)
            self.db.add(existing)

        existing.seats_per_block = layout.seats_per_block
        existing.rows_count = layout.rows_count
        existing.columns_count = layout.columns_count
        self.db.flush()
        return existing.id

    def delete_seats(self, session_day_ids: List[int]) -> None:
        if not session_day_ids:
            return
        (
            self.db.query(SeatDB)
            .filter(SeatDB.session_day_id.in_(session_day_ids))
            .delete(synchronize_session=False)
        )
        self.db.flush()

    def insert_seats(self, seats: List[SeatCreate]) -> List[SeatRecord]:
        rows = [SeatDB(**s.model_dump()) for s in seats]
        self.db.add_all(rows)
        self.db.flush()
        return [SeatRecord.model_validate(r) for r in rows]

    def _seat(self, seat_id: int) -> SeatDB:
        seat = self.db.query(SeatDB).filter(SeatDB.id == seat_id).first()
        if seat is None:
            raise NotFoundError(f"Seat {seat_id} not found")
        return seat

    def get_seat(self, seat_id: int) -> SeatRecord:
        return SeatRecord.model_validate(self._seat(seat_id))

    def update_seat(self, seat_id: int, **fields) -> SeatRecord:
        seat = self._seat(seat_id)
        for key, value in fields.items():
            setattr(seat, key, value)
        self.db.flush()
        return SeatRecord.model_validate(seat)

    def list_seats(self, session_day_id: int) -> List[SeatDetail]:
        seats = (
            self.db.query(SeatDB)
            .options(
                joinedload(SeatDB.booking).joinedload(BookingDB.student).joinedload(StudentDB.company),
                joinedload(SeatDB.booking).joinedload(BookingDB.manual),
                joinedload(SeatDB.reservation_student),
            )
            .filter(SeatDB.session_day_id == session_day_id)
            .order_by(SeatDB.row_letter, SeatDB.column_number)
            .all()
        )
        return [_seat_detail(s) for s in seats]

    def insert_audit_entry(self, session_id: int, action_type: str, description: str,
                           snapshot: dict, user_id: Optional[str] = None) -> int:
        entry = DispositionHistoryDB(
            session_id=session_id,
            action_type=action_type,
            description=description,
            new_data=snapshot,
            user_id=user_id,
        )
        self.db.add(entry)
        self.db.flush()
        return entry.id

    def list_history(self, session_id: int) -> List[HistoryEntry]:
        entries = (
            self.db.query(DispositionHistoryDB)
            .filter(DispositionHistoryDB.session_id == session_id)
            .order_by(DispositionHistoryDB.id.desc())
            .all()
        )
        return [HistoryEntry.model_validate(e) for e in entries]
