"""
Room geometry for a training session.

The room is a grid of rows (lettered a, b, c, ...) and columns (numbered from 1)
split into three side-by-side areas A, B and C, each `seats_per_block` columns
wide. `size_layout` derives the geometry from the confirmed roster and
`generate_grid` materialises the empty seats for it.
"""
import math
from typing import Dict, Iterable, List, Optional, Tuple

from schemas import BookingRecord, LayoutSpec, SeatCreate, SeatRecord

AREAS = ("A", "B", "C")

LARGE_SESSION_THRESHOLD = 100
SMALL_BLOCK = 3
LARGE_BLOCK = 4
MIN_ROWS = 8
MAX_ROWS = 12


def seats_per_block_for(total_attendance: int) -> int:
    return LARGE_BLOCK if total_attendance > LARGE_SESSION_THRESHOLD else SMALL_BLOCK


def count_by_area(bookings: Iterable[BookingRecord]) -> Dict[str, int]:
    counts = {area: 0 for area in AREAS}
    for booking in bookings:
        if booking.area in counts:
            counts[booking.area] += 1
    return counts


def rows_for(area_counts: Dict[str, int], seats_per_block: int) -> int:
    max_area_count = max(area_counts.values(), default=0)
    required_rows = math.ceil(max_area_count / seats_per_block)
    return min(max(required_rows, MIN_ROWS), MAX_ROWS)


def total_attendance_of(day_bookings: Dict[int, List[BookingRecord]]) -> int:
    # the busiest day drives the shared layout
    return max((len(bookings) for bookings in day_bookings.values()), default=0)


def size_layout(day_bookings: Dict[int, List[BookingRecord]],
                seats_per_block: Optional[int] = None) -> LayoutSpec:
    """
    Size the room for a session.

    `day_bookings` maps each day index to that day's confirmed bookings. When
    `seats_per_block` is given it overrides the attendance-based width and the
    row count is derived for that width instead.
    """
    if seats_per_block is None:
        seats_per_block = seats_per_block_for(total_attendance_of(day_bookings))

    all_bookings = [b for bookings in day_bookings.values() for b in bookings]
    rows_count = rows_for(count_by_area(all_bookings), seats_per_block)

    return LayoutSpec(
        seats_per_block=seats_per_block,
        rows_count=rows_count,
        columns_count=seats_per_block * len(AREAS),
    )


def row_letters(rows_count: int) -> List[str]:
    # rows_count never exceeds MAX_ROWS, so single letters are enough
    return [chr(ord("a") + i) for i in range(rows_count)]


def area_for_column(column: int, seats_per_block: int) -> str:
    if column <= seats_per_block:
        return "A"
    if column <= seats_per_block * 2:
        return "B"
    return "C"


def area_column_range(area: str, seats_per_block: int) -> Tuple[int, int]:
    index = AREAS.index(area)
    return seats_per_block * index + 1, seats_per_block * (index + 1)


def generate_row(session_day_ids: List[int], row_letter: str, layout: LayoutSpec) -> List[SeatCreate]:
    seats = []
    for day_id in session_day_ids:
        for column in range(1, layout.columns_count + 1):
            seats.append(
                SeatCreate(
                    session_day_id=day_id,
                    row_letter=row_letter,
                    column_number=column,
                    area=area_for_column(column, layout.seats_per_block),
                )
            )
    return seats


def generate_grid(session_day_ids: List[int], layout: LayoutSpec) -> List[SeatCreate]:
    seats = []
    for day_id in session_day_ids:
        for letter in row_letters(layout.rows_count):
            seats.extend(generate_row([day_id], letter, layout))
    return seats


def render_day_grid(seats: List[SeatRecord], layout: LayoutSpec) -> str:
    """Plain-text picture of one day: booking id, R for reserved, '.' for empty."""
    by_position = {(s.row_letter, s.column_number): s for s in seats}
    lines = []
    for letter in row_letters(layout.rows_count):
        cells = []
        for column in range(1, layout.columns_count + 1):
            seat = by_position.get((letter, column))
            if seat is None:
                cell = "-"
            elif seat.status == "occupied":
                cell = str(seat.booking_id)
            elif seat.status == "reserved":
                cell = "R"
            else:
                cell = "."
            if seat is not None and seat.is_locked:
                cell += "*"
            cells.append(cell.rjust(5))
            if column % layout.seats_per_block == 0 and column < layout.columns_count:
                cells.append(" |")
        lines.append(f"{letter} " + "".join(cells))
    return "\n".join(lines)
