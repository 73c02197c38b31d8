import logging
import math
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel

from backend.config import get_settings
from backend.core.engine import GradesEngine
from backend.core.errors import ConfigurationError, validate_threshold
from backend.core.models import ClassAverageResult, StatisticsResult
from backend.core.repositories import JsonRecordSource
from backend.grades.loaders import load_grades

logger = logging.getLogger(__name__)


@lru_cache()
def get_engine() -> GradesEngine:
    settings = get_settings()
    repo = JsonRecordSource(load_grades(settings.data_dir))
    return GradesEngine(repo=repo, weights=settings.weights, threshold=settings.threshold)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Bad settings or unreadable grades abort the boot instead of failing every request
    app.dependency_overrides.get(get_engine, get_engine)()
    yield


app = FastAPI(title="Grades Aggregation API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --------- Response models ----------
class ClassAverageOut(BaseModel):
    class_id: int
    avg: Optional[float]  # null when a score type had no scores

    @classmethod
    def from_result(cls, r: ClassAverageResult) -> "ClassAverageOut":
        return cls(class_id=r.class_id, avg=r.avg if math.isfinite(r.avg) else None)


class StatisticsOut(BaseModel):
    total_learners: int
    above_threshold_count: int
    above_threshold_percentage: float
    threshold: float
    class_id: Optional[int] = None

    @classmethod
    def from_result(cls, r: StatisticsResult) -> "StatisticsOut":
        return cls(
            total_learners=r.total_learners,
            above_threshold_count=r.above_threshold_count,
            above_threshold_percentage=r.above_threshold_percentage,
            threshold=r.threshold,
            class_id=r.class_id,
        )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _check_threshold(threshold: Optional[float]) -> Optional[JSONResponse]:
    # a client-supplied threshold is a bad request, the configured one is checked at boot
    if threshold is None:
        return None
    try:
        validate_threshold(threshold)
    except ConfigurationError as e:
        return _error(status.HTTP_400_BAD_REQUEST, str(e))
    return None


# --------- Endpoints ----------
@app.get("/", response_class=PlainTextResponse)
def root() -> str:
    return "Welcome to the API."


router = APIRouter(prefix="/grades-agg")


@router.get("/learner/{learner_id}/avg-class", response_model=List[ClassAverageOut])
def learner_avg_class(learner_id: str, engine: GradesEngine = Depends(get_engine)):
    try:
        lid = int(learner_id)
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid learner ID format")

    result = engine.learner_class_averages(lid)
    if not result:
        return _error(status.HTTP_404_NOT_FOUND, "Not found")
    return [ClassAverageOut.from_result(r) for r in result]


@router.get("/stats", response_model=StatisticsOut)
def stats(
    threshold: Optional[float] = Query(None),
    engine: GradesEngine = Depends(get_engine),
):
    bad = _check_threshold(threshold)
    if bad is not None:
        return bad

    result = engine.statistics(threshold)
    if not result:
        return _error(status.HTTP_404_NOT_FOUND, "No data found")
    return StatisticsOut.from_result(result)


@router.get("/stats/{class_id}", response_model=StatisticsOut)
def class_stats(
    class_id: str,
    threshold: Optional[float] = Query(None),
    engine: GradesEngine = Depends(get_engine),
):
    try:
        cid = int(class_id)
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "Invalid class ID format")
    bad = _check_threshold(threshold)
    if bad is not None:
        return bad

    result = engine.class_statistics(cid, threshold)
    if not result:
        return _error(status.HTTP_404_NOT_FOUND, "No data found for this class")
    return StatisticsOut.from_result(result)


app.include_router(router)


# --------- Error handling ----------
@app.exception_handler(Exception)
def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("request %s %s failed", request.method, request.url.path)
    return PlainTextResponse(
        "Seems like we messed up somewhere...",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(
        level=settings.numeric_log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Server is running on port: %d", settings.port)
    uvicorn.run("backend.app:app", host="0.0.0.0", port=settings.port)
