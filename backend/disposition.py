"""
Disposition orchestration: size the room, rebuild the empty grid for every day
of a session, seat the confirmed bookings and record what was done.

The whole write sequence runs inside one repository transaction, so a failure
anywhere leaves the previous disposition untouched.
"""
import logging
from typing import Dict, List, Optional

from allocator import allocate_day, order_bookings
from errors import InvalidRequestError, LayoutLimitError, NotFoundError
from layouts import (
    AREAS, LARGE_BLOCK, MAX_ROWS, SMALL_BLOCK,
    generate_grid, generate_row, row_letters, size_layout, total_attendance_of
)
from repository import DispositionRepository
from schemas import BookingRecord, DispositionResult, LayoutSpec, SessionRecord

logger = logging.getLogger(__name__)


def bookings_by_day(session: SessionRecord, bookings: List[BookingRecord]) -> Dict[int, List[BookingRecord]]:
    day_index_of = {day.id: day.day_index for day in session.days}
    grouped = {day.day_index: [] for day in session.days}
    for booking in bookings:
        day_index = day_index_of.get(booking.session_day_id)
        if day_index is not None:
            grouped[day_index].append(booking)
    return grouped


def _cached_area_lookup(repo: DispositionRepository):
    cache = {}

    def resolve(manual_id: int) -> Optional[str]:
        if manual_id not in cache:
            cache[manual_id] = repo.load_manual_area(manual_id)
        return cache[manual_id]

    return resolve


def _regenerate(repo: DispositionRepository, session_id: int, user_id: Optional[str],
                seats_per_block: Optional[int], action_type: str) -> DispositionResult:
    session = repo.load_session(session_id)
    day_ids = [day.id for day in session.days]
    day_bookings = bookings_by_day(session, repo.load_confirmed_bookings(day_ids))

    layout = size_layout(day_bookings, seats_per_block=seats_per_block)
    total_attendance = total_attendance_of(day_bookings)
    resolve_area = _cached_area_lookup(repo)
    unseated = []
    occupied = reserved = 0

    with repo.transaction():
        repo.upsert_layout(session_id, layout)
        repo.delete_seats(day_ids)

        for day in sorted(session.days, key=lambda d: d.day_index):
            bookings = day_bookings[day.day_index]
            seats = repo.insert_seats(generate_grid([day.id], layout))
            allocation = allocate_day(order_bookings(bookings), seats, layout, resolve_area)

            for seat_id, booking_id in allocation.occupied.items():
                repo.update_seat(seat_id, status="occupied", booking_id=booking_id)
            for seat_id, student_id in allocation.reserved.items():
                repo.update_seat(seat_id, status="reserved", reservation_for_student_id=student_id)

            # bookings whose manual has no area never enter an area queue
            unseated.extend(b.id for b in bookings if b.area not in AREAS)
            unseated.extend(allocation.unseated)
            occupied += len(allocation.occupied)
            reserved += len(allocation.reserved)

        summary = (
            f"{layout.rows_count} rows, {layout.columns_count} columns, "
            f"{layout.seats_per_block} seats per block"
        )
        if action_type == "change_layout":
            description = f"Seats per block changed, disposition regenerated: {summary}"
        else:
            description = f"Disposition generated automatically: {summary}"
        repo.insert_audit_entry(
            session_id,
            action_type,
            description,
            {
                "layout": layout.model_dump(),
                "total_attendance": total_attendance,
                "unseated_booking_ids": unseated,
            },
            user_id=user_id,
        )

    logger.info(
        "Session %s: %d rows x %d columns (%d per block), %d occupied, %d reserved, %d unseated",
        session_id, layout.rows_count, layout.columns_count, layout.seats_per_block,
        occupied, reserved, len(unseated),
    )
    return DispositionResult(layout=layout, total_attendance=total_attendance, unseated_booking_ids=unseated)


def generate_disposition(repo: DispositionRepository, session_id: Optional[int],
                         user_id: Optional[str] = None) -> DispositionResult:
    if not session_id:
        raise InvalidRequestError("Session ID is required")
    return _regenerate(repo, session_id, user_id, seats_per_block=None, action_type="auto_generate")


def change_seats_per_block(repo: DispositionRepository, session_id: int, seats_per_block: int,
                           user_id: Optional[str] = None) -> DispositionResult:
    """Force the area width to 3 or 4 seats and regenerate the whole disposition."""
    if seats_per_block not in (SMALL_BLOCK, LARGE_BLOCK):
        raise InvalidRequestError(
            f"Seats per block must be {SMALL_BLOCK} or {LARGE_BLOCK}, got {seats_per_block}"
        )

    current = repo.get_layout(session_id)
    if current is not None and current.seats_per_block == seats_per_block:
        session = repo.load_session(session_id)
        day_bookings = bookings_by_day(session, repo.load_confirmed_bookings([d.id for d in session.days]))
        return DispositionResult(
            layout=LayoutSpec.model_validate(current.model_dump()),
            total_attendance=total_attendance_of(day_bookings),
        )

    return _regenerate(repo, session_id, user_id, seats_per_block=seats_per_block, action_type="change_layout")


def add_row(repo: DispositionRepository, session_id: int, user_id: Optional[str] = None) -> LayoutSpec:
    """Append one empty row to every day of the session, keeping existing seats."""
    current = repo.get_layout(session_id)
    if current is None:
        raise NotFoundError(f"Session {session_id} has no layout; generate a disposition first")
    if current.rows_count >= MAX_ROWS:
        raise LayoutLimitError(f"Maximum number of rows reached ({MAX_ROWS})")

    session = repo.load_session(session_id)
    layout = LayoutSpec(
        seats_per_block=current.seats_per_block,
        rows_count=current.rows_count + 1,
        columns_count=current.columns_count,
    )
    new_letter = row_letters(layout.rows_count)[-1]

    with repo.transaction():
        repo.upsert_layout(session_id, layout)
        repo.insert_seats(generate_row([day.id for day in session.days], new_letter, layout))
        repo.insert_audit_entry(
            session_id,
            "add_row",
            f"Row {new_letter} added: {layout.rows_count} rows",
            {"layout": layout.model_dump()},
            user_id=user_id,
        )

    logger.info("Session %s: added row %s", session_id, new_letter)
    return layout
