from layouts import generate_grid
from schemas import BookingRecord, EnrollmentRecord, ManualRef, SeatRecord, StudentRecord

MANUAL_IDS = {"A": 1, "B": 2, "C": 3}


def make_booking(id, area="A", progress=None, company=None, total_points=None,
                 next_manual_id=None, day_id=1):
    enrollment = None
    if progress is not None or total_points is not None or next_manual_id is not None:
        enrollment = EnrollmentRecord(
            current_progress=progress or 0,
            total_points=total_points,
            next_manual_id=next_manual_id,
        )
    student_id = 1000 + id
    return BookingRecord(
        id=id,
        session_day_id=day_id,
        student_id=student_id,
        manual_id=MANUAL_IDS.get(area, 0),
        company_reference_id=company,
        student=StudentRecord(id=student_id, enrollment=enrollment),
        manual=ManualRef(id=MANUAL_IDS.get(area), area=area) if area else None,
    )


def make_seats(layout, day_id=1):
    return [
        SeatRecord(id=i, **seat.model_dump())
        for i, seat in enumerate(generate_grid([day_id], layout), start=1)
    ]


def seat_of(seats, booking_id):
    return next(s for s in seats if s.booking_id == booking_id)
