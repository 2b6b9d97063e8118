from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


class CompanyDB(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key = True, index = True)
    name = Column(String, nullable = False)


class ManualDB(Base):
    __tablename__ = "manuals"

    id = Column(Integer, primary_key = True, index = True)
    code = Column(String, unique = True, nullable = False)
    name = Column(String, nullable = False)
    area = Column(String(1), nullable = False)
    color = Column(String, nullable = True)
    order_priority = Column(Integer, nullable = False, default = 0)
    total_points = Column(Integer, nullable = False, default = 60)


class StudentDB(Base):
    __tablename__ = "students"

    id = Column(Integer, primary_key = True, index = True)
    name = Column(String, nullable = False)
    email = Column(String, nullable = True)
    phone = Column(String, nullable = True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable = True)

    company = relationship("CompanyDB")
    enrollments = relationship(
        "EnrollmentDB",
        back_populates = "student",
        order_by = "EnrollmentDB.id",
        cascade = "all, delete"
    )


class EnrollmentDB(Base):
    __tablename__ = "enrollments"

    id = Column(Integer, primary_key = True, index = True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable = False)
    manual_id = Column(Integer, ForeignKey("manuals.id"), nullable = True)
    current_progress = Column(Integer, nullable = False, default = 0)
    total_points = Column(Integer, nullable = True)
    next_manual_id = Column(Integer, ForeignKey("manuals.id"), nullable = True)

    student = relationship("StudentDB", back_populates = "enrollments")


class SessionDB(Base):
    __tablename__ = "sessions"

    id = Column(Integer, primary_key = True, index = True)
    month = Column(Integer, nullable = False)
    year = Column(Integer, nullable = False)
    location = Column(String, nullable = True)
    # draft / active / completed / cancelled
    status = Column(String, nullable = False, default = "draft")
    estimated_attendance = Column(Integer, nullable = True)

    days = relationship(
        "SessionDayDB",
        back_populates = "session",
        order_by = "SessionDayDB.day_index",
        cascade = "all, delete"
    )


class SessionDayDB(Base):
    __tablename__ = "session_days"
    __table_args__ = (
        UniqueConstraint("session_id", "day_index", name = "uq_session_day_index"),
    )

    id = Column(Integer, primary_key = True, index = True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable = False)
    day_index = Column(Integer, nullable = False)
    date = Column(Date, nullable = True)
    estimated_attendance = Column(Integer, nullable = True)
    actual_attendance = Column(Integer, nullable = True)

    session = relationship("SessionDB", back_populates = "days")


class BookingDB(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key = True, index = True)
    session_day_id = Column(Integer, ForeignKey("session_days.id"), nullable = False, index = True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable = False)
    manual_id = Column(Integer, ForeignKey("manuals.id"), nullable = False)
    company_reference_id = Column(Integer, ForeignKey("companies.id"), nullable = True)
    # confirmed / pending / cancelled
    status = Column(String, nullable = False, default = "pending")
    tags = Column(JSON, nullable = False, default = list)
    keep_seat_between_days = Column(Boolean, nullable = False, default = False)
    notes = Column(String, nullable = True)

    student = relationship("StudentDB")
    manual = relationship("ManualDB")
    company_reference = relationship("CompanyDB")


class LayoutDB(Base):
    __tablename__ = "layouts"

    id = Column(Integer, primary_key = True, index = True)
    session_id = Column(Integer, ForeignKey("sessions.id"), unique = True, nullable = False)
    seats_per_block = Column(Integer, nullable = False, default = 3)
    rows_count = Column(Integer, nullable = False, default = 8)
    columns_count = Column(Integer, nullable = False, default = 9)


class SeatDB(Base):
    __tablename__ = "seats"
    __table_args__ = (
        UniqueConstraint("session_day_id", "row_letter", "column_number", name = "uq_seat_position"),
    )

    id = Column(Integer, primary_key = True, index = True)
    session_day_id = Column(Integer, ForeignKey("session_days.id"), nullable = False, index = True)
    row_letter = Column(String(1), nullable = False)
    column_number = Column(Integer, nullable = False)
    area = Column(String(1), nullable = False)
    # empty / occupied / reserved / locked
    status = Column(String, nullable = False, default = "empty")
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable = True)
    reservation_for_student_id = Column(Integer, ForeignKey("students.id"), nullable = True)
    is_locked = Column(Boolean, nullable = False, default = False)
    notes = Column(String, nullable = True)

    booking = relationship("BookingDB")
    reservation_student = relationship("StudentDB")


class DispositionHistoryDB(Base):
    __tablename__ = "disposition_history"

    id = Column(Integer, primary_key = True, index = True)
    session_id = Column(Integer, ForeignKey("sessions.id"), nullable = False, index = True)
    action_type = Column(String, nullable = False)
    description = Column(String, nullable = False)
    new_data = Column(JSON, nullable = True)
    user_id = Column(String, nullable = True)
    created_at = Column(DateTime(timezone = True), server_default = func.now())
