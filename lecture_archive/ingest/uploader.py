"""Upload transcribed lectures into the database.

WHY: After transcription each lecture directory holds an MP3 and the two
transcript files. Uploading turns that into database rows: the topic, the
lecture with its full text, the complete word stream (for seeking and
word highlighting), and the search segments built from it.

HOW: upload_lecture() loads the transcript, derives metadata from the
path, upserts topic and lecture, replaces the words in batches, runs the
segment builder and replaces the segments. upload_all() does that for
every response directory under a root, one transaction per lecture.

RULES:
- A missing MP3 skips the directory with a warning (nothing is written)
- Re-uploading a lecture replaces its words and segments
- upload_all() stops at the first failing lecture and re-raises
- Lecture duration is the end of the last token
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sqlalchemy.orm import Session

from lecture_archive.config import SEGMENT_WORD_LIMIT, WORD_BATCH_SIZE
from lecture_archive.core.segmenter import build_segments
from lecture_archive.core.transcript import load_transcript
from lecture_archive.database.repository import LectureRepository
from lecture_archive.database.session import get_db_session
from lecture_archive.ingest.discovery import (
    extract_metadata,
    find_mp3,
    find_response_dirs,
    public_src,
)

logger = logging.getLogger(__name__)


@dataclass
class UploadResult:
    directory: Path
    lecture_id: int
    title: str
    src: str
    words: int
    segments: int


def upload_lecture(
    session: Session,
    directory: Path,
    public_dir: Path,
    max_words_per_segment: int = SEGMENT_WORD_LIMIT,
    batch_size: int = WORD_BATCH_SIZE,
) -> Optional[UploadResult]:
    """Upload one lecture directory. Returns None when it has no MP3."""
    directory = Path(directory)
    mp3 = find_mp3(directory)
    if mp3 is None:
        logger.warning("No .mp3 file in %s, skipping", directory)
        return None

    src = public_src(mp3, public_dir)
    transcript = load_transcript(directory)
    meta = extract_metadata(directory)

    repo = LectureRepository(session)
    topic = repo.upsert_topic(meta.topic)
    lecture = repo.upsert_lecture(
        topic=topic,
        order=meta.order,
        title=meta.title,
        src=src,
        duration=transcript.duration,
        full_text=transcript.full_text,
    )

    words = repo.replace_words(lecture, transcript.tokens, batch_size=batch_size)
    segments = build_segments(transcript.tokens, max_words_per_segment)
    segment_count = repo.replace_segments(lecture, segments)

    logger.info(
        "Uploaded lecture %s (%r): %d words, %d segments",
        lecture.id, meta.title, words, segment_count,
    )
    return UploadResult(
        directory=directory,
        lecture_id=lecture.id,
        title=meta.title,
        src=src,
        words=words,
        segments=segment_count,
    )


def upload_all(
    root: Path,
    public_dir: Path,
    max_words_per_segment: int = SEGMENT_WORD_LIMIT,
    on_status: Callable[[str], None] | None = None,
) -> List[UploadResult]:
    """Upload every response directory under *root*, one transaction each."""
    directories = find_response_dirs(Path(root))
    if on_status:
        on_status("Found {} lecture directories".format(len(directories)))

    results: List[UploadResult] = []
    for directory in directories:
        if on_status:
            on_status("Processing: {}".format(directory))
        try:
            with get_db_session() as session:
                result = upload_lecture(session, directory, public_dir, max_words_per_segment)
        except Exception:
            logger.exception("Failed to upload %s", directory)
            raise
        if result is None:
            if on_status:
                on_status("  ✗ No .mp3 file in {}".format(directory))
            continue
        results.append(result)
        if on_status:
            on_status("  ✓ Lecture ID={}: {} ({} words, {} segments)".format(
                result.lecture_id, result.title, result.words, result.segments
            ))
    return results
