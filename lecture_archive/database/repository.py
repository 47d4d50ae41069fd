"""Repository for lectures, words, segments and full-text search.

WHY: Ingestion and the HTTP API need the same handful of queries:
upserting topics and lectures, replacing a lecture's word stream and
segments, paging, seeking by time, and searching. Keeping them in one
class means the route handlers stay thin and the SQL is testable.

HOW: LectureRepository wraps a SQLAlchemy Session. Search branches on the
session's dialect: PostgreSQL uses to_tsvector/plainto_tsquery with
ts_rank ordering and ts_headline snippets (matching the GIN indexes
declared in models.py); other dialects fall back to a case-insensitive
substring match with a Python-built snippet.

RULES:
- The repository never commits; the caller owns the transaction
- replace_words / replace_segments delete existing rows first, so a
  re-upload leaves exactly one copy
- Search queries are trimmed; blank queries return no hits
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import Select, delete, func, insert, literal_column, select
from sqlalchemy.orm import Session

from lecture_archive.config import WORD_BATCH_SIZE
from lecture_archive.core.ir import Segment, Token
from lecture_archive.database.models import SEARCH_CONFIG, Lecture, LectureSegment, LectureWord, Topic

logger = logging.getLogger(__name__)

_HEADLINE_OPTIONS = "MaxFragments=1, MaxWords=35, MinWords=15, StartSel=<b>, StopSel=</b>"
_FALLBACK_SNIPPET_RADIUS = 120


@dataclass
class SegmentHit:
    """One segment matching a search query."""

    segment_id: int
    lecture_id: int
    lecture_title: str
    topic_id: int
    start_position: int
    end_position: int
    start_time: float
    end_time: float
    snippet: str
    rank: float


@dataclass
class LectureHit:
    """One lecture matching a search query."""

    lecture_id: int
    title: str
    topic_id: int
    order: int
    snippet: str
    rank: float


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _fallback_snippet(text: str, query: str, radius: int = _FALLBACK_SNIPPET_RADIUS) -> str:
    """Return a window of *text* around the first case-insensitive match of *query*."""
    idx = text.casefold().find(query.casefold())
    if idx < 0:
        return text[: radius * 2].strip()
    start = max(0, idx - radius)
    end = min(len(text), idx + len(query) + radius)
    snippet = text[start:end].strip()
    if start > 0:
        snippet = "…" + snippet
    if end < len(text):
        snippet = snippet + "…"
    return snippet


def _lecture_document():
    """Title and transcript joined exactly as in LECTURE_SEARCH_DOCUMENT.

    Literal columns instead of bound parameters keep the rendered SQL
    identical to the index expression.
    """
    empty = literal_column("''")
    return func.coalesce(Lecture.title, empty) + literal_column("' '") + func.coalesce(Lecture.full_text, empty)


class LectureRepository:
    """Data access for topics, lectures, words and segments."""

    def __init__(self, session: Session) -> None:
        self.session = session

    @property
    def _is_postgres(self) -> bool:
        return self.session.get_bind().dialect.name == "postgresql"

    @staticmethod
    def _ts_config():
        # Literal regconfig so the expression matches the GIN index definition.
        return literal_column(SEARCH_CONFIG)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert_topic(self, name: str) -> Topic:
        """Return the topic called *name*, creating it if missing."""
        topic = self.session.scalar(select(Topic).where(Topic.name == name))
        if topic is None:
            topic = Topic(name=name)
            self.session.add(topic)
            self.session.flush()
            logger.info("Created topic %r (id=%s)", name, topic.id)
        return topic

    def upsert_lecture(
        self,
        topic: Topic,
        order: int,
        title: str,
        src: str,
        duration: float,
        full_text: str,
        description: Optional[str] = None,
    ) -> Lecture:
        """Insert a lecture, or update the one already stored at (order, topic)."""
        lecture = self.session.scalar(
            select(Lecture).where(Lecture.order == order, Lecture.topic_id == topic.id)
        )
        if lecture is None:
            lecture = Lecture(order=order, topic_id=topic.id)
            self.session.add(lecture)
        lecture.title = title
        lecture.src = src
        lecture.duration = duration
        lecture.full_text = full_text
        if description is not None:
            lecture.description = description
        self.session.flush()
        return lecture

    def replace_words(
        self,
        lecture: Lecture,
        tokens: Sequence[Token],
        batch_size: int = WORD_BATCH_SIZE,
    ) -> int:
        """Replace the stored word stream of *lecture*; returns rows inserted."""
        self.session.execute(delete(LectureWord).where(LectureWord.lecture_id == lecture.id))
        for offset in range(0, len(tokens), batch_size):
            batch = tokens[offset:offset + batch_size]
            self.session.execute(
                insert(LectureWord),
                [
                    {
                        "lecture_id": lecture.id,
                        "position": offset + i,
                        "text": t.text,
                        "type": t.kind,
                        "start": t.start,
                        "end": t.end,
                    }
                    for i, t in enumerate(batch)
                ],
            )
        return len(tokens)

    def replace_segments(self, lecture: Lecture, segments: Iterable[Segment]) -> int:
        """Replace the stored search segments of *lecture*; returns rows inserted."""
        self.session.execute(
            delete(LectureSegment).where(LectureSegment.lecture_id == lecture.id)
        )
        rows = [
            {
                "lecture_id": lecture.id,
                "start_position": s.start_position,
                "end_position": s.end_position,
                "start_time": s.start_time,
                "end_time": s.end_time,
                "text": s.text,
            }
            for s in segments
        ]
        if rows:
            self.session.execute(insert(LectureSegment), rows)
        return len(rows)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_topics(self) -> List[Topic]:
        """All topics ordered by name."""
        return list(self.session.scalars(select(Topic).order_by(Topic.name)))

    def get_topic(self, topic_id: int) -> Optional[Topic]:
        """The topic with *topic_id*, or None."""
        return self.session.get(Topic, topic_id)

    def list_lectures(
        self,
        topic_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Lecture]:
        """A page of lectures ordered by topic, then by order within the topic."""
        stmt = select(Lecture).order_by(Lecture.topic_id, Lecture.order)
        if topic_id is not None:
            stmt = stmt.where(Lecture.topic_id == topic_id)
        return list(self.session.scalars(stmt.limit(limit).offset(offset)))

    def count_lectures(self, topic_id: Optional[int] = None) -> int:
        """Number of lectures, optionally within one topic."""
        stmt = select(func.count(Lecture.id))
        if topic_id is not None:
            stmt = stmt.where(Lecture.topic_id == topic_id)
        return self.session.scalar(stmt) or 0

    def get_lecture(self, lecture_id: int) -> Optional[Lecture]:
        """The lecture with *lecture_id*, or None."""
        return self.session.get(Lecture, lecture_id)

    def list_segments(self, lecture_id: int) -> List[LectureSegment]:
        """Segments of a lecture in stream order."""
        return list(self.session.scalars(
            select(LectureSegment)
            .where(LectureSegment.lecture_id == lecture_id)
            .order_by(LectureSegment.start_position)
        ))

    def words_in_range(
        self,
        lecture_id: int,
        start: Optional[float] = None,
        end: Optional[float] = None,
    ) -> List[LectureWord]:
        """Words overlapping the [start, end] window, in stream order."""
        stmt = select(LectureWord).where(LectureWord.lecture_id == lecture_id)
        if start is not None:
            stmt = stmt.where(LectureWord.end >= start)
        if end is not None:
            stmt = stmt.where(LectureWord.start <= end)
        return list(self.session.scalars(stmt.order_by(LectureWord.position)))

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def segment_search_statement(self, query: str, topic_id: Optional[int] = None) -> Select:
        """Build the unpaged segment search query for the session's dialect.

        PostgreSQL: ``to_tsvector @@ plainto_tsquery`` over segment text,
        ordered by ``ts_rank`` with a ``ts_headline`` snippet column. The
        vector expression is the one segments_search_idx is built on.
        Other dialects: case-insensitive substring match ordered by id.
        """
        if self._is_postgres:
            cfg = self._ts_config()
            ts_query = func.plainto_tsquery(cfg, query)
            vector = func.to_tsvector(cfg, LectureSegment.text)
            rank = func.ts_rank(vector, ts_query).label("rank")
            snippet = func.ts_headline(cfg, LectureSegment.text, ts_query, _HEADLINE_OPTIONS).label("snippet")
            stmt = (
                select(LectureSegment, Lecture.title, Lecture.topic_id, rank, snippet)
                .join(Lecture, Lecture.id == LectureSegment.lecture_id)
                .where(vector.op("@@")(ts_query))
                .order_by(rank.desc(), LectureSegment.id)
            )
        else:
            stmt = (
                select(LectureSegment, Lecture.title, Lecture.topic_id)
                .join(Lecture, Lecture.id == LectureSegment.lecture_id)
                .where(LectureSegment.text.ilike("%{}%".format(_escape_like(query)), escape="\\"))
                .order_by(LectureSegment.id)
            )
        if topic_id is not None:
            stmt = stmt.where(Lecture.topic_id == topic_id)
        return stmt

    def lecture_search_statement(self, query: str) -> Select:
        """Build the unpaged lecture search query over title and full text.

        Mirrors segment_search_statement(); on PostgreSQL the document
        expression matches lectures_search_idx.
        """
        document = _lecture_document()
        if self._is_postgres:
            cfg = self._ts_config()
            ts_query = func.plainto_tsquery(cfg, query)
            vector = func.to_tsvector(cfg, document)
            rank = func.ts_rank(vector, ts_query).label("rank")
            snippet = func.ts_headline(cfg, Lecture.full_text, ts_query, _HEADLINE_OPTIONS).label("snippet")
            return (
                select(Lecture, rank, snippet)
                .where(vector.op("@@")(ts_query))
                .order_by(rank.desc(), Lecture.id)
            )
        return (
            select(Lecture)
            .where(document.ilike("%{}%".format(_escape_like(query)), escape="\\"))
            .order_by(Lecture.id)
        )

    def search_segments(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
        topic_id: Optional[int] = None,
    ) -> List[SegmentHit]:
        """Full-text search over segments; blank queries return no hits.

        Rank and snippet come from PostgreSQL when available. Elsewhere
        rank is 0.0 and the snippet is a window around the first match.
        """
        query = query.strip()
        if not query:
            return []

        stmt = self.segment_search_statement(query, topic_id)
        hits = []
        for row in self.session.execute(stmt.limit(limit).offset(offset)):
            segment = row[0]
            if self._is_postgres:
                snippet_text, rank_value = row.snippet, float(row.rank)
            else:
                snippet_text, rank_value = _fallback_snippet(segment.text, query), 0.0
            hits.append(SegmentHit(
                segment_id=segment.id,
                lecture_id=segment.lecture_id,
                lecture_title=row.title,
                topic_id=row.topic_id,
                start_position=segment.start_position,
                end_position=segment.end_position,
                start_time=segment.start_time,
                end_time=segment.end_time,
                snippet=snippet_text,
                rank=rank_value,
            ))
        logger.debug("Segment search %r returned %d hits", query, len(hits))
        return hits

    def search_lectures(self, query: str, limit: int = 20, offset: int = 0) -> List[LectureHit]:
        """Full-text search over lecture titles and transcripts (same fallback rules)."""
        query = query.strip()
        if not query:
            return []

        hits = []
        for row in self.session.execute(self.lecture_search_statement(query).limit(limit).offset(offset)):
            lecture = row[0]
            if self._is_postgres:
                snippet_text, rank_value = row.snippet, float(row.rank)
            else:
                snippet_text, rank_value = _fallback_snippet(lecture.full_text, query), 0.0
            hits.append(LectureHit(
                lecture_id=lecture.id,
                title=lecture.title,
                topic_id=lecture.topic_id,
                order=lecture.order,
                snippet=snippet_text,
                rank=rank_value,
            ))
        return hits
