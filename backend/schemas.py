import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel

Area = Literal["A", "B", "C"]
SeatStatus = Literal["empty", "occupied", "reserved", "locked"]


class EnrollmentRecord(BaseModel):
    current_progress: int = 0
    total_points: Optional[int] = None
    next_manual_id: Optional[int] = None


class StudentRecord(BaseModel):
    id: int
    name: Optional[str] = None
    company_id: Optional[int] = None
    enrollment: Optional[EnrollmentRecord] = None


class ManualRef(BaseModel):
    id: Optional[int] = None
    name: Optional[str] = None
    area: Optional[Area] = None


class BookingRecord(BaseModel):
    """A confirmed booking as consumed by the disposition generator."""

    id: int
    session_day_id: int
    student_id: int
    manual_id: int
    company_reference_id: Optional[int] = None
    status: str = "confirmed"
    student: Optional[StudentRecord] = None
    manual: Optional[ManualRef] = None

    @property
    def area(self) -> Optional[str]:
        return self.manual.area if self.manual else None

    @property
    def enrollment(self) -> Optional[EnrollmentRecord]:
        return self.student.enrollment if self.student else None

    @property
    def progress(self) -> int:
        return self.enrollment.current_progress if self.enrollment else 0


class SessionDayRecord(BaseModel):
    id: int
    day_index: int
    date: Optional[datetime.date] = None


class SessionRecord(BaseModel):
    id: int
    days: List[SessionDayRecord]


class LayoutSpec(BaseModel):
    seats_per_block: int
    rows_count: int
    columns_count: int


class LayoutRead(LayoutSpec):
    id: int
    session_id: int
    model_config = {"from_attributes": True}


class SeatCreate(BaseModel):
    session_day_id: int
    row_letter: str
    column_number: int
    area: Area
    status: SeatStatus = "empty"


class SeatRecord(SeatCreate):
    id: int
    booking_id: Optional[int] = None
    reservation_for_student_id: Optional[int] = None
    is_locked: bool = False
    notes: Optional[str] = None
    model_config = {"from_attributes": True}


class SeatDetail(SeatRecord):
    # denormalised booking information for display and statistics
    student_name: Optional[str] = None
    company_id: Optional[int] = None
    company_name: Optional[str] = None
    manual_id: Optional[int] = None
    manual_name: Optional[str] = None
    reservation_student_name: Optional[str] = None


class GenerateRequest(BaseModel):
    session_id: Optional[int] = None


class ChangeLayoutRequest(BaseModel):
    seats_per_block: int


class SwapRequest(BaseModel):
    seat_id: int
    target_seat_id: int


class DispositionResult(BaseModel):
    success: bool = True
    layout: LayoutSpec
    total_attendance: int
    unseated_booking_ids: List[int] = []


class AreaStats(BaseModel):
    total: int = 0
    occupied: int = 0
    reserved: int = 0


class DispositionStats(BaseModel):
    total_seats: int = 0
    occupied_seats: int = 0
    reserved_seats: int = 0
    empty_seats: int = 0
    area_stats: Dict[str, AreaStats] = {}
    company_stats: Dict[str, int] = {}
    manual_stats: Dict[str, int] = {}


class HistoryEntry(BaseModel):
    id: int
    session_id: int
    action_type: str
    description: str
    new_data: Optional[dict] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime.datetime] = None
    model_config = {"from_attributes": True}
