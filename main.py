import argparse
import logging

from config import settings
from database import Base, engine, SessionLocal
import db_models  # noqa: F401
from disposition import generate_disposition
from layouts import render_day_grid
from repository import SqlAlchemyRepository


def run(session_id):
    db = SessionLocal()
    try:
        repo = SqlAlchemyRepository(db)
        result = generate_disposition(repo, session_id)

        print("\n--- Seat Disposition ---")
        print(
            f"Session {session_id} | {result.layout.rows_count} rows x "
            f"{result.layout.columns_count} columns | {result.layout.seats_per_block} per block | "
            f"attendance {result.total_attendance}"
        )

        for day in repo.load_session(session_id).days:
            print(f"\nDay {day.day_index}")
            print(render_day_grid(repo.list_seats(day.id), result.layout))

        if result.unseated_booking_ids:
            print(f"\nUnseated bookings: {result.unseated_booking_ids}")
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate the seat disposition of a session")
    parser.add_argument("session_id", type=int)
    args = parser.parse_args()

    logging.basicConfig(level=settings.LOG_LEVEL)
    Base.metadata.create_all(bind = engine)
    run(args.session_id)
