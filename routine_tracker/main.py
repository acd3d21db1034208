from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import List, Optional
import logging

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from routine_tracker.auth import get_current_user_id, verify_api_key
from routine_tracker.config import AppConfig, load_config
from routine_tracker.constants import DEFAULT_LOG_DIRECTORY
from routine_tracker.database import create_db_engine, create_session_factory, get_db, init_db
from routine_tracker.exceptions import (
    CheckinNotFoundException,
    DatabaseException,
    DuplicateCheckinException,
    RoutineNotFoundException,
    StreakUpdateFailedException,
    ValidationException,
)
from routine_tracker.scheduler import SchedulerDriver
from routine_tracker.schemas import (
    CheckinCreate, CheckinResponse, GenerationResult, GeneratorRunRequest, MarkDone,
    RoutineCreate, RoutineResponse, RoutineUpdate, SchedulerStatusResponse, StreakResponse
)
from routine_tracker.services.checkin_service import CheckinService
from routine_tracker.services.event_service import EventService
from routine_tracker.services.routine_service import RoutineService
from routine_tracker.services.streak_service import StreakService

logger = logging.getLogger("routine_tracker")


def setup_logging(config: AppConfig) -> Path:
    """Log to a file and to the console; returns the log file path"""
    try:
        Path(config.log_dir).mkdir(parents=True, exist_ok=True)
        log_path = Path(config.log_dir) / config.log_file
    except PermissionError:
        # Fallback to local directory if the configured one is not writable
        Path(DEFAULT_LOG_DIRECTORY).mkdir(parents=True, exist_ok=True)
        log_path = Path(DEFAULT_LOG_DIRECTORY) / config.log_file

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler()
        ]
    )
    return log_path


def create_app(
    config: Optional[AppConfig] = None,
    session_factory: Optional[sessionmaker] = None,
    configure_logging: bool = True
) -> FastAPI:
    """
    Build the API application.

    Args:
        config: Configuration (read from the environment if omitted)
        session_factory: Store session factory (built from config.database_url if omitted)
        configure_logging: Whether to install file/console log handlers
    """
    config = config or load_config()
    if session_factory is None:
        engine = create_db_engine(config.database_url)
        init_db(engine)
        session_factory = create_session_factory(engine)

    log_path = setup_logging(config) if configure_logging else None
    driver = SchedulerDriver(session_factory, config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Routine Tracker API started. Logging to: {log_path}")
        driver.start()
        yield
        logger.info("Shutting down Routine Tracker API")
        driver.stop()

    app = FastAPI(
        title="Routine Tracker API",
        description="Recurring routines, daily check-ins and streaks",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.config = config
    app.state.session_factory = session_factory
    app.state.scheduler_driver = driver

    register_exception_handlers(app)
    register_routes(app)
    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ValidationException)
    async def validation_handler(request: Request, exc: ValidationException):
        return JSONResponse(status_code=400, content={"detail": exc.message, "field": exc.field})

    @app.exception_handler(RoutineNotFoundException)
    async def routine_not_found_handler(request: Request, exc: RoutineNotFoundException):
        return JSONResponse(status_code=404, content={"detail": "Routine not found"})

    @app.exception_handler(CheckinNotFoundException)
    async def checkin_not_found_handler(request: Request, exc: CheckinNotFoundException):
        return JSONResponse(status_code=404, content={"detail": "Check-in not found"})

    @app.exception_handler(DuplicateCheckinException)
    async def duplicate_handler(request: Request, exc: DuplicateCheckinException):
        return JSONResponse(
            status_code=409,
            content={"detail": "Check-in already exists for this date"}
        )

    @app.exception_handler(StreakUpdateFailedException)
    async def streak_conflict_handler(request: Request, exc: StreakUpdateFailedException):
        content = {"detail": "Streak is being updated concurrently, please retry"}
        if exc.checkin_id:
            # The check-in exists but is not done yet; finishing it is a mark-done, not a new POST
            content["checkin_id"] = exc.checkin_id
            content["retry"] = f"PATCH /api/checkins/{exc.checkin_id}/done"
        return JSONResponse(status_code=503, content=content)

    @app.exception_handler(DatabaseException)
    async def database_handler(request: Request, exc: DatabaseException):
        logger.error(f"Database error on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": "Storage temporarily unavailable"})


def register_routes(app: FastAPI) -> None:
    auth = [Depends(verify_api_key)]

    def streak_retries(request: Request) -> int:
        return request.app.state.config.streak_retries

    # Health check (no auth required)
    @app.get("/")
    async def root():
        return {"message": "Routine Tracker API", "status": "active"}

    # ===== ROUTINES ENDPOINTS =====

    @app.get("/api/routines", response_model=List[RoutineResponse], dependencies=auth)
    def get_routines(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
        """Get all routines of the current user"""
        return RoutineService(db).get_routines(user_id)

    @app.post("/api/routines", response_model=RoutineResponse,
              status_code=status.HTTP_201_CREATED, dependencies=auth)
    def create_routine(
        routine: RoutineCreate,
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Create a new routine"""
        return RoutineService(db).create_routine(routine, user_id)

    @app.get("/api/routines/{routine_id}", response_model=RoutineResponse, dependencies=auth)
    def get_routine(routine_id: str, user_id: str = Depends(get_current_user_id),
                    db: Session = Depends(get_db)):
        return RoutineService(db).get_routine(routine_id, user_id)

    @app.put("/api/routines/{routine_id}", response_model=RoutineResponse, dependencies=auth)
    def update_routine(
        routine_id: str,
        routine_update: RoutineUpdate,
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Update a routine"""
        return RoutineService(db).update_routine(routine_id, routine_update, user_id)

    @app.delete("/api/routines/{routine_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=auth)
    def delete_routine(routine_id: str, user_id: str = Depends(get_current_user_id),
                       db: Session = Depends(get_db)):
        """Delete a routine (its check-ins and streak are kept)"""
        RoutineService(db).delete_routine(routine_id, user_id)

    @app.get("/api/routines/{routine_id}/checkins", response_model=List[CheckinResponse],
             dependencies=auth)
    def get_routine_checkins(
        routine_id: str,
        date_from: Optional[date] = Query(None, alias="from"),
        date_to: Optional[date] = Query(None, alias="to"),
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Get check-ins of one routine (format: YYYY-MM-DD)"""
        return CheckinService(db).get_routine_checkins(routine_id, user_id, date_from, date_to)

    # ===== CHECKINS ENDPOINTS =====

    @app.get("/api/checkins", response_model=List[CheckinResponse], dependencies=auth)
    def get_checkins(
        date_from: Optional[date] = Query(None, alias="from"),
        date_to: Optional[date] = Query(None, alias="to"),
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Get the current user's check-ins (format: YYYY-MM-DD)"""
        return CheckinService(db).get_checkins(user_id, date_from, date_to)

    @app.post("/api/checkins", response_model=CheckinResponse,
              status_code=status.HTTP_201_CREATED, dependencies=auth)
    def create_checkin(
        checkin: CheckinCreate,
        user_id: str = Depends(get_current_user_id),
        retries: int = Depends(streak_retries),
        db: Session = Depends(get_db)
    ):
        """Record a check-in directly"""
        return CheckinService(db, streak_retries=retries).create_checkin(checkin, user_id)

    @app.patch("/api/checkins/{checkin_id}/done", response_model=CheckinResponse, dependencies=auth)
    def mark_checkin_done(
        checkin_id: str,
        body: Optional[MarkDone] = None,
        user_id: str = Depends(get_current_user_id),
        retries: int = Depends(streak_retries),
        db: Session = Depends(get_db)
    ):
        """Mark a check-in as done and update the routine's streak"""
        return CheckinService(db, streak_retries=retries).mark_done(checkin_id, user_id, body)

    @app.delete("/api/checkins/{checkin_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=auth)
    def delete_checkin(checkin_id: str, user_id: str = Depends(get_current_user_id),
                       db: Session = Depends(get_db)):
        CheckinService(db).delete_checkin(checkin_id, user_id)

    # ===== STREAKS ENDPOINTS =====

    @app.get("/api/streaks", response_model=List[StreakResponse], dependencies=auth)
    def get_streaks(user_id: str = Depends(get_current_user_id), db: Session = Depends(get_db)):
        """Get all streaks of the current user, longest first"""
        return StreakService(db).get_user_streaks(user_id)

    @app.get("/api/streaks/{routine_id}", response_model=StreakResponse, dependencies=auth)
    def get_streak(routine_id: str, user_id: str = Depends(get_current_user_id),
                   db: Session = Depends(get_db)):
        streak = StreakService(db).get_streak(routine_id, user_id)
        if not streak:
            raise HTTPException(status_code=404, detail="Streak not found")
        return streak

    # ===== EVENTS ENDPOINTS =====

    @app.get("/api/events", dependencies=auth)
    def get_events(
        limit: int = Query(100, ge=1, le=1000),
        user_id: str = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Get the current user's recent events"""
        return [
            {"id": e.id, "type": e.type, "payload": e.payload, "timestamp": e.timestamp}
            for e in EventService(db).get_recent(user_id, limit)
        ]

    # ===== ADMIN ENDPOINTS =====

    @app.post("/api/admin/generate-checkins", response_model=GenerationResult, dependencies=auth)
    def run_generator_now(request: Request, body: Optional[GeneratorRunRequest] = None):
        """Run the check-in generator now (defaults to tomorrow)"""
        driver: SchedulerDriver = request.app.state.scheduler_driver
        target = body.target_date if body else None
        return driver.run_generator_now(target)

    @app.get("/api/admin/scheduler", response_model=SchedulerStatusResponse, dependencies=auth)
    def get_scheduler_status(request: Request):
        return request.app.state.scheduler_driver.status()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("routine_tracker.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=False)
