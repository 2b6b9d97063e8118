import logging
from typing import Tuple

from errors import InvalidRequestError, SeatLockedError
from repository import DispositionRepository
from schemas import SeatRecord

logger = logging.getLogger(__name__)

# column 0 never exists on the grid; used while two seats trade places
PARKING_COLUMN = 0


def toggle_lock(repo: DispositionRepository, seat_id: int) -> SeatRecord:
    seat = repo.get_seat(seat_id)
    with repo.transaction():
        updated = repo.update_seat(seat_id, is_locked=not seat.is_locked)
    logger.info("Seat %s %s", seat_id, "locked" if updated.is_locked else "unlocked")
    return updated


def swap_seats(repo: DispositionRepository, seat_id: int, target_seat_id: int) -> Tuple[SeatRecord, SeatRecord]:
    """
    Exchange the positions (row, column, area) of two seats of the same day.

    Status, booking and reservation stay with their seat records, so the
    occupants move with them. Locked seats cannot take part.
    """
    if seat_id == target_seat_id:
        raise InvalidRequestError("Cannot swap a seat with itself")

    seat = repo.get_seat(seat_id)
    target = repo.get_seat(target_seat_id)
    if seat.session_day_id != target.session_day_id:
        raise InvalidRequestError("Seats belong to different session days")
    if seat.is_locked or target.is_locked:
        raise SeatLockedError("Locked seats cannot be moved")

    with repo.transaction():
        repo.update_seat(seat.id, column_number=PARKING_COLUMN)
        moved_target = repo.update_seat(
            target.id,
            row_letter=seat.row_letter,
            column_number=seat.column_number,
            area=seat.area,
        )
        moved_seat = repo.update_seat(
            seat.id,
            row_letter=target.row_letter,
            column_number=target.column_number,
            area=target.area,
        )

    logger.info("Swapped seat %s (%s%s) with seat %s (%s%s)",
                seat.id, seat.row_letter, seat.column_number,
                target.id, target.row_letter, target.column_number)
    return moved_seat, moved_target
