"""SQLAlchemy ORM models for topics, lectures, words and segments.

WHY: Lectures, their full word streams, and the search segments derived
from them are stored relationally so the API can page through lectures,
seek inside a recording by time, and run full-text search over segments.

HOW: SQLAlchemy 2.x declarative models with Mapped annotations. Every
table carries created_at/updated_at through TimestampMixin. The full-text
GIN indexes use to_tsvector, which only PostgreSQL understands, so they
are attached as DDL that runs after table creation on that dialect only.

RULES:
- lectures are unique per (order, topic_id)
- Deleting a lecture cascades to its words and segments
- Deleting a topic that still has lectures is refused (RESTRICT)
- lecture_words.type is one of word / spacing / audio_event
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DDL,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    event,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from lecture_archive.config import SEARCH_LANGUAGE
from lecture_archive.core.ir import AUDIO_EVENT, SPACING, WORD


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class Topic(TimestampMixin, Base):
    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    lectures: Mapped[List["Lecture"]] = relationship(
        back_populates="topic", order_by="Lecture.order"
    )


class Lecture(TimestampMixin, Base):
    __tablename__ = "lectures"
    __table_args__ = (
        UniqueConstraint("order", "topic_id", name="lectures_order_topic_id_unique"),
        Index("lectures_topic_id_idx", "topic_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration: Mapped[float] = mapped_column(Float, nullable=False)
    full_text: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False)
    src: Mapped[str] = mapped_column(Text, nullable=False)
    topic_id: Mapped[int] = mapped_column(
        ForeignKey("topics.id", ondelete="RESTRICT"), nullable=False
    )

    topic: Mapped[Topic] = relationship(back_populates="lectures")
    words: Mapped[List["LectureWord"]] = relationship(
        back_populates="lecture", cascade="all, delete-orphan", passive_deletes=True,
        order_by="LectureWord.position",
    )
    segments: Mapped[List["LectureSegment"]] = relationship(
        back_populates="lecture", cascade="all, delete-orphan", passive_deletes=True,
        order_by="LectureSegment.start_position",
    )


class LectureWord(TimestampMixin, Base):
    __tablename__ = "lecture_words"
    __table_args__ = (
        Index("lecture_words_lecture_idx", "lecture_id"),
        Index("lecture_words_time_idx", "lecture_id", "start"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lecture_id: Mapped[int] = mapped_column(
        ForeignKey("lectures.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(
        Enum(WORD, SPACING, AUDIO_EVENT, name="lecture_words_type"), nullable=False
    )
    start: Mapped[float] = mapped_column(Float, nullable=False)
    end: Mapped[float] = mapped_column(Float, nullable=False)

    lecture: Mapped[Lecture] = relationship(back_populates="words")


class LectureSegment(TimestampMixin, Base):
    __tablename__ = "lecture_segments"
    __table_args__ = (Index("segments_lecture_idx", "lecture_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    lecture_id: Mapped[int] = mapped_column(
        ForeignKey("lectures.id", ondelete="CASCADE"), nullable=False
    )
    start_position: Mapped[int] = mapped_column(Integer, nullable=False)
    end_position: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[float] = mapped_column(Float, nullable=False)
    end_time: Mapped[float] = mapped_column(Float, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    lecture: Mapped[Lecture] = relationship(back_populates="segments")


# ---------------------------------------------------------------------------
# PostgreSQL full-text indexes
# ---------------------------------------------------------------------------

SEARCH_CONFIG = "'{}'::regconfig".format(SEARCH_LANGUAGE)
"""Text search configuration as a literal regconfig, shared by indexes and queries."""

SEGMENT_SEARCH_DOCUMENT = "text"
LECTURE_SEARCH_DOCUMENT = "coalesce(title, '') || ' ' || coalesce(full_text, '')"

SEGMENTS_SEARCH_INDEX = DDL(
    "CREATE INDEX IF NOT EXISTS segments_search_idx ON lecture_segments "
    "USING gin (to_tsvector({cfg}, {doc}))".format(cfg=SEARCH_CONFIG, doc=SEGMENT_SEARCH_DOCUMENT)
).execute_if(dialect="postgresql")

LECTURES_SEARCH_INDEX = DDL(
    "CREATE INDEX IF NOT EXISTS lectures_search_idx ON lectures "
    "USING gin (to_tsvector({cfg}, {doc}))".format(cfg=SEARCH_CONFIG, doc=LECTURE_SEARCH_DOCUMENT)
).execute_if(dialect="postgresql")

event.listen(LectureSegment.__table__, "after_create", SEGMENTS_SEARCH_INDEX)
event.listen(Lecture.__table__, "after_create", LECTURES_SEARCH_INDEX)
