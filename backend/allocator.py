import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from config import settings
from layouts import AREAS, area_column_range, row_letters
from schemas import BookingRecord, LayoutSpec, SeatRecord

logger = logging.getLogger(__name__)

NO_COMPANY = "no-company"


@dataclass
class DayAllocation:
    """Outcome of seating one session day."""

    occupied: Dict[int, int] = field(default_factory=dict)   # seat id -> booking id
    reserved: Dict[int, int] = field(default_factory=dict)   # seat id -> student id
    unseated: List[int] = field(default_factory=list)        # booking ids


def classify_bookings(bookings: List[BookingRecord]) -> Dict[str, List[BookingRecord]]:
    groups = {area: [] for area in AREAS}
    for booking in bookings:
        if booking.area in groups:
            groups[booking.area].append(booking)
    return groups


def rank_by_progress(bookings: List[BookingRecord]) -> List[BookingRecord]:
    # sorted() is stable, so equal progress keeps booking order
    return sorted(bookings, key=lambda b: b.progress, reverse=True)


def interleave_by_company(bookings: List[BookingRecord]) -> List[BookingRecord]:
    companies: Dict[object, List[BookingRecord]] = {}
    for booking in bookings:
        key = booking.company_reference_id if booking.company_reference_id is not None else NO_COMPANY
        companies.setdefault(key, []).append(booking)

    longest = max((len(group) for group in companies.values()), default=0)
    spread = []
    for i in range(longest):
        for group in companies.values():
            if i < len(group):
                spread.append(group[i])
    return spread


def order_bookings(bookings: List[BookingRecord]) -> Dict[str, List[BookingRecord]]:
    """Seating order per area: most advanced first, companies spread apart."""
    return {
        area: interleave_by_company(rank_by_progress(group))
        for area, group in classify_bookings(bookings).items()
    }


def is_near_completion(booking: BookingRecord) -> bool:
    enrollment = booking.enrollment
    if enrollment is None:
        return False
    total_points = enrollment.total_points
    # 0 means the manual carries no points yet
    if not total_points:
        total_points = settings.DEFAULT_TOTAL_POINTS
    return (total_points - enrollment.current_progress) < settings.NEAR_COMPLETION_GAP


class SeatCursor:
    """Row-major scan over one area's columns."""

    def __init__(self, area: str, layout: LayoutSpec):
        self.start, self.end = area_column_range(area, layout.seats_per_block)
        self.rows = row_letters(layout.rows_count)
        self.row = 0
        self.column = self.start

    @property
    def exhausted(self) -> bool:
        return self.row >= len(self.rows)

    @property
    def position(self):
        return self.rows[self.row], self.column

    def advance(self):
        self.column += 1
        if self.column > self.end:
            self.column = self.start
            self.row += 1


def allocate_day(area_orders: Dict[str, List[BookingRecord]],
                 seats: List[SeatRecord],
                 layout: LayoutSpec,
                 resolve_area: Callable[[int], Optional[str]]) -> DayAllocation:
    """
    Seat one day's ordered bookings on that day's grid.

    `seats` are updated in place. Seats that are not empty when the cursor
    reaches them (a lock, or a forward reservation) are stepped over. A
    forward reservation is only made when the target area keeps a free seat
    for every booking of its own still waiting, and it takes the last free
    seat of that area in scan order.
    """
    allocation = DayAllocation()
    by_position = {(s.row_letter, s.column_number): s for s in seats}
    ordered_seats = sorted(seats, key=lambda s: (s.row_letter, s.column_number))
    # bookings of each area not seated yet
    waiting = {area: len(bookings) for area, bookings in area_orders.items()}

    def free(seat: Optional[SeatRecord]) -> bool:
        return seat is not None and seat.status == "empty" and not seat.is_locked

    def reserve_next_area(booking: BookingRecord):
        next_manual_id = booking.enrollment.next_manual_id
        if next_manual_id is None:
            return
        next_area = resolve_area(next_manual_id)
        if next_area is None:
            logger.debug("Manual %s has no area; no reservation for student %s",
                         next_manual_id, booking.student_id)
            return
        candidates = [s for s in ordered_seats if s.area == next_area and free(s)]
        if len(candidates) <= waiting.get(next_area, 0):
            logger.debug("No spare seat in area %s to reserve for student %s",
                         next_area, booking.student_id)
            return
        seat = candidates[-1]
        seat.status = "reserved"
        seat.reservation_for_student_id = booking.student_id
        allocation.reserved[seat.id] = booking.student_id

    for area, bookings in area_orders.items():
        cursor = SeatCursor(area, layout)

        def seek() -> bool:
            while not cursor.exhausted and not free(by_position.get(cursor.position)):
                cursor.advance()
            return not cursor.exhausted

        for i, booking in enumerate(bookings):
            if not seek():
                dropped = [b.id for b in bookings[i:]]
                logger.warning("Area %s is full: %d booking(s) left unseated %s",
                               area, len(dropped), dropped)
                allocation.unseated.extend(dropped)
                waiting[area] = 0
                break

            if is_near_completion(booking):
                reserve_next_area(booking)

            seat = by_position[cursor.position]
            seat.status = "occupied"
            seat.booking_id = booking.id
            allocation.occupied[seat.id] = booking.id
            waiting[area] -= 1
            cursor.advance()

    return allocation
