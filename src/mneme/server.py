import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from mneme.application.config import resolve_config
from mneme.application.factory import build_learning_service
from mneme.application.service import LearningService
from mneme.consts import VERSION
from mneme.domain.errors import MnemeError, NotFoundError, PersistenceError, ValidationError
from mneme.domain.models import Result
from mneme.domain.schedule.models import StudyPreferences, TimeWindow

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("mneme.server")

_service: LearningService | None = None


def get_service() -> LearningService:
    """One service per process, built from the resolved config on first use."""
    global _service
    if _service is None:
        _service = build_learning_service(resolve_config())
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"mneme server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("mneme server shutting down...")


app = FastAPI(
    title="mneme",
    description="Spaced-repetition scheduling and retention API.",
    version=VERSION,
    lifespan=lifespan,
)


def _http_error(error: MnemeError) -> HTTPException:
    if isinstance(error, ValidationError):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, PersistenceError):
        return HTTPException(status_code=503, detail=str(error))
    return HTTPException(status_code=500, detail=str(error))


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


class CreateCardRequest(BaseModel):
    owner_id: str
    front: str
    back: str
    topic_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


def _unwrap(result: Result) -> Any:
    if not result.ok:
        raise _http_error(result.error)
    return result.value


@app.post("/cards", status_code=201)
async def create_card(req: CreateCardRequest, service: LearningService = Depends(get_service)):
    result = await service.create_card(
        req.owner_id, req.front, req.back, topic_id=req.topic_id, metadata=req.metadata
    )
    return jsonable_encoder(_unwrap(result))


class ReviewRequest(BaseModel):
    # Range is checked by the engine so the error shape matches other entry points
    rating: int
    reviewed_at: datetime | None = None


@app.post("/cards/{card_id}/review")
async def review_card(
    card_id: str, req: ReviewRequest, service: LearningService = Depends(get_service)
):
    """
    Record a review for a card and return the updated card.
    """
    result = await service.record_review(card_id, req.rating, req.reviewed_at)
    if not result.ok:
        logger.info(f"Review rejected for card={card_id}: {result.error}")
        raise _http_error(result.error)
    return jsonable_encoder({"card": result.card, "event": result.event})


@app.get("/cards/{card_id}/preview")
async def preview_card(card_id: str, service: LearningService = Depends(get_service)):
    intervals = _unwrap(await service.preview_intervals(card_id))
    return {"intervals": {str(k): v for k, v in intervals.items()}}


@app.get("/owners/{owner_id}/due")
async def due_cards(owner_id: str, service: LearningService = Depends(get_service)):
    return jsonable_encoder(_unwrap(await service.get_due_cards(owner_id)))


@app.get("/owners/{owner_id}/stats")
async def learning_stats(owner_id: str, service: LearningService = Depends(get_service)):
    return jsonable_encoder(_unwrap(await service.get_learning_stats(owner_id)))


@app.get("/owners/{owner_id}/retention")
async def retention_snapshot(owner_id: str, service: LearningService = Depends(get_service)):
    return jsonable_encoder(_unwrap(await service.get_retention_snapshot(owner_id)))


class ScheduleRequest(BaseModel):
    available_time_windows: list[TimeWindow] | None = None
    max_session_minutes: int | None = None
    target_retention: float | None = None


@app.post("/owners/{owner_id}/schedule")
async def study_schedule(
    owner_id: str,
    req: ScheduleRequest | None = None,
    service: LearningService = Depends(get_service),
):
    """
    Build the owner's study schedule. Omitted preferences fall back to the service defaults.
    """
    preferences = None
    if req is not None:
        defaults = service.default_preferences
        try:
            preferences = StudyPreferences(
                available_time_windows=frozenset(
                    req.available_time_windows or defaults.available_time_windows
                ),
                max_session_minutes=(
                    req.max_session_minutes
                    if req.max_session_minutes is not None
                    else defaults.max_session_minutes
                ),
                target_retention=(
                    req.target_retention
                    if req.target_retention is not None
                    else defaults.target_retention
                ),
                minutes_per_card=defaults.minutes_per_card,
            )
        except MnemeError as e:
            raise _http_error(e) from e

    return jsonable_encoder(_unwrap(await service.generate_study_schedule(owner_id, preferences)))
