"""Pydantic response models for the HTTP API.

WHY: The FastAPI endpoints need typed schemas for response serialization
and automatic OpenAPI documentation. Pydantic models generate the JSON
Schema that appears in the /docs UI.

HOW: One model per resource shape. ORM rows are converted with
model_validate(..., from_attributes=True); search hits are dataclasses
converted the same way.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Times are float seconds, positions are token indices
- Response models never expose internal implementation details
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class TopicResponse(BaseModel):
    """A lecture topic."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Topic identifier.")
    name: str = Field(description="Topic name.")


class LectureSummary(BaseModel):
    """Lecture metadata without the full transcript."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Lecture identifier.")
    title: str = Field(description="Lecture title.")
    description: Optional[str] = Field(default=None, description="Optional description.")
    order: int = Field(description="Position of the lecture within its topic.")
    duration: float = Field(description="Recording length in seconds.")
    src: str = Field(description="URL path of the MP3 recording.")
    topic_id: int = Field(description="Owning topic identifier.")


class LectureDetail(LectureSummary):
    """Lecture metadata with the full transcript text."""

    full_text: str = Field(description="Complete transcript text.")


class LectureListResponse(BaseModel):
    """A page of lectures."""

    total: int = Field(description="Total number of lectures matching the filter.")
    items: List[LectureSummary] = Field(description="Lectures on this page.")


class SegmentResponse(BaseModel):
    """A search segment of a lecture."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(description="Segment identifier.")
    start_position: int = Field(description="Index of the first token covered.")
    end_position: int = Field(description="Index of the last token covered (inclusive).")
    start_time: float = Field(description="Start time in seconds.")
    end_time: float = Field(description="End time in seconds.")
    text: str = Field(description="Segment text.")


class WordResponse(BaseModel):
    """One token of a lecture's word stream."""

    model_config = ConfigDict(from_attributes=True)

    position: int = Field(description="Index in the word stream.")
    text: str = Field(description="Token text (a word or the spacing between words).")
    type: str = Field(description="Token kind: word, spacing or audio_event.")
    start: float = Field(description="Start time in seconds.")
    end: float = Field(description="End time in seconds.")


class SegmentHitResponse(BaseModel):
    """A segment matching a search query."""

    model_config = ConfigDict(from_attributes=True)

    segment_id: int = Field(description="Matching segment identifier.")
    lecture_id: int = Field(description="Lecture the segment belongs to.")
    lecture_title: str = Field(description="Title of that lecture.")
    topic_id: int = Field(description="Topic of that lecture.")
    start_position: int = Field(description="Index of the first token covered.")
    end_position: int = Field(description="Index of the last token covered.")
    start_time: float = Field(description="Seek position in seconds.")
    end_time: float = Field(description="End of the segment in seconds.")
    snippet: str = Field(description="Excerpt around the match.")
    rank: float = Field(description="Relevance score (0 when ranking is unavailable).")


class LectureHitResponse(BaseModel):
    """A lecture matching a search query."""

    model_config = ConfigDict(from_attributes=True)

    lecture_id: int = Field(description="Matching lecture identifier.")
    title: str = Field(description="Lecture title.")
    topic_id: int = Field(description="Topic of the lecture.")
    order: int = Field(description="Position of the lecture within its topic.")
    snippet: str = Field(description="Excerpt around the match.")
    rank: float = Field(description="Relevance score (0 when ranking is unavailable).")


class SearchResponse(BaseModel):
    """Segment search results."""

    query: str = Field(description="The query as searched.")
    hits: List[SegmentHitResponse] = Field(description="Matching segments.")


class LectureSearchResponse(BaseModel):
    """Lecture search results."""

    query: str = Field(description="The query as searched.")
    hits: List[LectureHitResponse] = Field(description="Matching lectures.")


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
