"""FastAPI application exposing the lecture archive and its search.

WHY: The web front end needs to list topics and lectures, play a lecture
with word-level highlighting, and jump to search hits inside recordings.
FastAPI provides request validation and automatic OpenAPI docs.

HOW: A read-only app. Each request gets a SQLAlchemy session through the
get_session dependency; handlers forward query parameters into
LectureRepository and convert rows to the Pydantic models in models.py.
Tables are created on startup if missing.

RULES:
- All endpoints have OpenAPI summaries, descriptions and tags
- Missing resources return 404 with the ErrorResponse schema
- Blank search queries return 422
- Pagination: limit 1–100, offset ≥ 0
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Annotated, Iterator, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from lecture_archive import __version__
from lecture_archive.database.repository import LectureRepository
from lecture_archive.database.session import get_session_factory, init_db
from lecture_archive.server.models import (
    ErrorResponse,
    HealthResponse,
    LectureDetail,
    LectureHitResponse,
    LectureListResponse,
    LectureSearchResponse,
    LectureSummary,
    SearchResponse,
    SegmentHitResponse,
    SegmentResponse,
    TopicResponse,
    WordResponse,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create missing tables on startup."""
    init_db()
    logger.info("Lecture archive API started")
    yield


app = FastAPI(
    lifespan=lifespan,
    title="Lecture Archive API",
    description=(
        "Read-only REST API for transcribed lectures: topics, lectures, "
        "word streams for playback highlighting, and full-text search "
        "over lecture segments."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_session() -> Iterator[Session]:
    """Yield a request-scoped database session."""
    session = get_session_factory()()
    try:
        yield session
    finally:
        session.close()


def get_repository(session: Annotated[Session, Depends(get_session)]) -> LectureRepository:
    return LectureRepository(session)


Repo = Annotated[LectureRepository, Depends(get_repository)]
Limit = Annotated[int, Query(ge=1, le=100, description="Maximum number of items to return.")]
Offset = Annotated[int, Query(ge=0, description="Number of items to skip.")]

_NOT_FOUND = {404: {"model": ErrorResponse, "description": "Resource not found"}}


def _require_lecture(repo: LectureRepository, lecture_id: int):
    lecture = repo.get_lecture(lecture_id)
    if lecture is None:
        raise HTTPException(status_code=404, detail="Lecture not found: {}".format(lecture_id))
    return lecture


def _require_query(q: str) -> str:
    query = q.strip()
    if not query:
        raise HTTPException(status_code=422, detail="Search query must not be blank")
    return query


# ---------------------------------------------------------------------------
# Endpoints: Topics
# ---------------------------------------------------------------------------


@app.get(
    "/topics",
    response_model=List[TopicResponse],
    tags=["topics"],
    summary="List topics",
    description="Returns all lecture topics ordered by name.",
)
def list_topics(repo: Repo) -> List[TopicResponse]:
    return [TopicResponse.model_validate(t) for t in repo.list_topics()]


@app.get(
    "/topics/{topic_id}/lectures",
    response_model=List[LectureSummary],
    tags=["topics"],
    summary="List lectures of a topic",
    description="Returns a page of the lectures of one topic in lecture order.",
    responses=_NOT_FOUND,
)
def list_topic_lectures(
    topic_id: int,
    repo: Repo,
    limit: Limit = 100,
    offset: Offset = 0,
) -> List[LectureSummary]:
    if repo.get_topic(topic_id) is None:
        raise HTTPException(status_code=404, detail="Topic not found: {}".format(topic_id))
    lectures = repo.list_lectures(topic_id=topic_id, limit=limit, offset=offset)
    return [LectureSummary.model_validate(lec) for lec in lectures]


# ---------------------------------------------------------------------------
# Endpoints: Lectures
# ---------------------------------------------------------------------------


@app.get(
    "/lectures",
    response_model=LectureListResponse,
    tags=["lectures"],
    summary="List lectures",
    description="Returns a page of lectures, optionally filtered by topic.",
)
def list_lectures(
    repo: Repo,
    topic_id: Annotated[Optional[int], Query(description="Only lectures of this topic.")] = None,
    limit: Limit = 50,
    offset: Offset = 0,
) -> LectureListResponse:
    lectures = repo.list_lectures(topic_id=topic_id, limit=limit, offset=offset)
    return LectureListResponse(
        total=repo.count_lectures(topic_id=topic_id),
        items=[LectureSummary.model_validate(lec) for lec in lectures],
    )


@app.get(
    "/lectures/{lecture_id}",
    response_model=LectureDetail,
    tags=["lectures"],
    summary="Get a lecture",
    description="Returns lecture metadata and its full transcript text.",
    responses=_NOT_FOUND,
)
def get_lecture(lecture_id: int, repo: Repo) -> LectureDetail:
    return LectureDetail.model_validate(_require_lecture(repo, lecture_id))


@app.get(
    "/lectures/{lecture_id}/segments",
    response_model=List[SegmentResponse],
    tags=["lectures"],
    summary="List lecture segments",
    description="Returns the search segments of a lecture in stream order.",
    responses=_NOT_FOUND,
)
def list_lecture_segments(lecture_id: int, repo: Repo) -> List[SegmentResponse]:
    _require_lecture(repo, lecture_id)
    return [SegmentResponse.model_validate(s) for s in repo.list_segments(lecture_id)]


@app.get(
    "/lectures/{lecture_id}/words",
    response_model=List[WordResponse],
    tags=["lectures"],
    summary="List lecture words",
    description=(
        "Returns the lecture's word stream, optionally limited to tokens "
        "overlapping the [start, end] time window (seconds)."
    ),
    responses={
        **_NOT_FOUND,
        422: {"model": ErrorResponse, "description": "start is after end"},
    },
)
def list_lecture_words(
    lecture_id: int,
    repo: Repo,
    start: Annotated[Optional[float], Query(ge=0, description="Window start in seconds.")] = None,
    end: Annotated[Optional[float], Query(ge=0, description="Window end in seconds.")] = None,
) -> List[WordResponse]:
    if start is not None and end is not None and start > end:
        raise HTTPException(status_code=422, detail="start must not be after end")
    _require_lecture(repo, lecture_id)
    return [WordResponse.model_validate(w) for w in repo.words_in_range(lecture_id, start, end)]


# ---------------------------------------------------------------------------
# Endpoints: Search
# ---------------------------------------------------------------------------


@app.get(
    "/search",
    response_model=SearchResponse,
    tags=["search"],
    summary="Search lecture segments",
    description=(
        "Full-text search over lecture segments. Each hit carries the time "
        "range to seek to and a snippet around the match."
    ),
    responses={422: {"model": ErrorResponse, "description": "Blank query"}},
)
def search_segments(
    repo: Repo,
    q: Annotated[str, Query(min_length=1, description="Search query.")],
    topic_id: Annotated[Optional[int], Query(description="Only lectures of this topic.")] = None,
    limit: Limit = 20,
    offset: Offset = 0,
) -> SearchResponse:
    query = _require_query(q)
    hits = repo.search_segments(query, limit=limit, offset=offset, topic_id=topic_id)
    return SearchResponse(
        query=query,
        hits=[SegmentHitResponse.model_validate(h) for h in hits],
    )


@app.get(
    "/search/lectures",
    response_model=LectureSearchResponse,
    tags=["search"],
    summary="Search lectures",
    description="Full-text search over lecture titles and transcripts.",
    responses={422: {"model": ErrorResponse, "description": "Blank query"}},
)
def search_lectures(
    repo: Repo,
    q: Annotated[str, Query(min_length=1, description="Search query.")],
    limit: Limit = 20,
    offset: Offset = 0,
) -> LectureSearchResponse:
    query = _require_query(q)
    hits = repo.search_lectures(query, limit=limit, offset=offset)
    return LectureSearchResponse(
        query=query,
        hits=[LectureHitResponse.model_validate(h) for h in hits],
    )


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: str = "0.0.0.0", port: int = 3000) -> None:
    """Entry point for the lecture-archive-api console script."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)
