"""Relational storage for lectures, word streams and search segments.

WHY: The archive is served from a relational database (PostgreSQL in
production, SQLite for local runs and tests). This package holds the ORM
models, session management and the repository used by ingestion and the
HTTP API.

RULES:
- Only the repository issues queries; callers own transactions
- Full-text search indexes exist on PostgreSQL only
"""

from lecture_archive.database.models import Base, Lecture, LectureSegment, LectureWord, Topic
from lecture_archive.database.repository import LectureRepository
from lecture_archive.database.session import configure_database, get_db_session, init_db

__all__ = [
    "Base",
    "Lecture",
    "LectureRepository",
    "LectureSegment",
    "LectureWord",
    "Topic",
    "configure_database",
    "get_db_session",
    "init_db",
]
