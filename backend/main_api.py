import logging
from typing import Optional

from fastapi import FastAPI, Depends, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from config import settings
from database import Base, engine, get_db
import db_models  # noqa: F401  registers the tables on Base
from disposition import add_row, change_seats_per_block, generate_disposition
from errors import DispositionError, NotFoundError
from grid_editing import swap_seats, toggle_lock
from repository import SqlAlchemyRepository
from schemas import ChangeLayoutRequest, GenerateRequest, SwapRequest
from stats import compute_stats

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title = "Seat Disposition API")

Base.metadata.create_all(bind = engine)


def get_repository(db: Session = Depends(get_db)):
    return SqlAlchemyRepository(db)


@app.exception_handler(DispositionError)
def disposition_error_handler(request: Request, exc: DispositionError):
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})


def validation_error_handler(request: Request, exc: RequestValidationError):
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    )
    logger.warning("%s %s rejected: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("%s %s failed", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": str(exc)})


app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unexpected_error_handler)


def _day_id(repo: SqlAlchemyRepository, session_id: int, day_index: int) -> int:
    session = repo.load_session(session_id)
    for day in session.days:
        if day.day_index == day_index:
            return day.id
    raise NotFoundError(f"Session {session_id} has no day {day_index}")


@app.get("/")
def root():
    return {"message": "Seat Disposition API is running !"}


@app.post("/generate-disposition")
def generate(
    req: GenerateRequest,
    repo: SqlAlchemyRepository = Depends(get_repository),
    x_user_id: Optional[str] = Header(None)
):
    """
    Example request body:
    {
      "session_id": 7
    }
    """
    result = generate_disposition(repo, req.session_id, user_id=x_user_id)
    return result.model_dump()


@app.get("/sessions/{session_id}/layout")
def get_layout(session_id: int, repo: SqlAlchemyRepository = Depends(get_repository)):
    layout = repo.get_layout(session_id)
    if layout is None:
        raise NotFoundError(f"Session {session_id} has no layout")
    return layout.model_dump()


@app.post("/sessions/{session_id}/add-row")
def add_layout_row(
    session_id: int,
    repo: SqlAlchemyRepository = Depends(get_repository),
    x_user_id: Optional[str] = Header(None)
):
    layout = add_row(repo, session_id, user_id=x_user_id)
    return {"success": True, "layout": layout.model_dump()}


@app.post("/sessions/{session_id}/change-layout")
def change_layout(
    session_id: int,
    req: ChangeLayoutRequest,
    repo: SqlAlchemyRepository = Depends(get_repository),
    x_user_id: Optional[str] = Header(None)
):
    result = change_seats_per_block(repo, session_id, req.seats_per_block, user_id=x_user_id)
    return result.model_dump()


@app.get("/sessions/{session_id}/days/{day_index}/seats")
def get_seats(session_id: int, day_index: int, repo: SqlAlchemyRepository = Depends(get_repository)):
    seats = repo.list_seats(_day_id(repo, session_id, day_index))
    return {
        "session_id": session_id,
        "day_index": day_index,
        "total_seats": len(seats),
        "seats": [s.model_dump() for s in seats]
    }


@app.get("/sessions/{session_id}/days/{day_index}/stats")
def get_stats(session_id: int, day_index: int, repo: SqlAlchemyRepository = Depends(get_repository)):
    seats = repo.list_seats(_day_id(repo, session_id, day_index))
    return compute_stats(seats).model_dump()


@app.get("/sessions/{session_id}/history")
def get_history(session_id: int, repo: SqlAlchemyRepository = Depends(get_repository)):
    return [entry.model_dump() for entry in repo.list_history(session_id)]


@app.post("/seats/{seat_id}/toggle-lock")
def toggle_seat_lock(seat_id: int, repo: SqlAlchemyRepository = Depends(get_repository)):
    return toggle_lock(repo, seat_id).model_dump()


@app.post("/seats/swap")
def swap(req: SwapRequest, repo: SqlAlchemyRepository = Depends(get_repository)):
    seat, target = swap_seats(repo, req.seat_id, req.target_seat_id)
    return {"seat": seat.model_dump(), "target_seat": target.model_dump()}
