"""Tests for lecture discovery and upload into the database.

WHY: Upload is where files on disk become searchable rows. Metadata comes
entirely from directory names, and re-running the upload after fixing a
transcript must not duplicate anything.

HOW: Discovery helpers are tested on plain paths. Upload tests run
upload_all() against the conftest lecture_tree and a throwaway SQLite
database, then inspect the rows through LectureRepository.

RULES:
- Every upload test uses the ``database`` fixture
- Row counts are asserted after each upload, not just return values
"""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import func, select

from conftest import SAMPLE_TEXT, write_lecture_dir
from lecture_archive.database.models import Lecture, LectureSegment, LectureWord, Topic
from lecture_archive.database.repository import LectureRepository
from lecture_archive.database.session import get_db_session
from lecture_archive.ingest import (
    IngestError,
    extract_metadata,
    find_response_dirs,
    upload_all,
    upload_lecture,
)
from lecture_archive.ingest.discovery import find_mp3, public_src


def _count(model):
    with get_db_session() as session:
        return session.scalar(select(func.count()).select_from(model))


class TestExtractMetadata:

    def test_numbered_lecture(self):
        meta = extract_metadata(Path("/srv/public/lectures/Терпение/Беседа 3"))
        assert meta.topic == "Терпение"
        assert meta.order == 3
        assert meta.title == "Беседа №3"

    def test_first_number_wins(self):
        meta = extract_metadata(Path("/srv/Смирение и кротость/12 - part 2"))
        assert meta.topic == "Смирение и кротость"
        assert meta.order == 12

    def test_no_number_defaults_to_first_lecture(self):
        meta = extract_metadata(Path("/srv/lectures/Молитва/intro"))
        assert meta.order == 1
        assert meta.title == "Молитва"

    def test_yo_letter_in_topic(self):
        assert extract_metadata(Path("/Всё о посте/1")).topic == "Всё о посте"

    def test_no_topic_directory(self):
        with pytest.raises(IngestError, match="No topic directory"):
            extract_metadata(Path("/srv/lectures/patience/lecture 1"))


class TestDiscovery:

    def test_find_response_dirs(self, lecture_tree, tmp_path):
        (tmp_path / "public" / "lectures" / "Терпение" / "not transcribed").mkdir()
        dirs = find_response_dirs(lecture_tree)
        assert [d.name for d in dirs] == ["lecture 1", "lecture 2"]

    def test_find_response_dirs_needs_both_files(self, tmp_path):
        d = tmp_path / "Тема" / "1"
        d.mkdir(parents=True)
        (d / "response.json").write_text("{}", encoding="utf-8")
        assert find_response_dirs(tmp_path) == []

    def test_find_mp3_is_case_insensitive(self, tmp_path):
        (tmp_path / "b.txt").write_text("x")
        (tmp_path / "LECTURE.MP3").write_bytes(b"x")
        assert find_mp3(tmp_path).name == "LECTURE.MP3"

    def test_find_mp3_none(self, tmp_path):
        assert find_mp3(tmp_path) is None

    def test_public_src(self, lecture_tree):
        mp3 = lecture_tree / "lectures" / "Терпение" / "lecture 1" / "audio.mp3"
        assert public_src(mp3, lecture_tree) == "/lectures/Терпение/lecture 1/audio.mp3"


class TestUploadAll:

    def test_uploads_every_lecture(self, database, lecture_tree):
        results = upload_all(lecture_tree / "lectures", lecture_tree, max_words_per_segment=2)
        assert [r.title for r in results] == ["Беседа №1", "Беседа №2"]
        assert results[0].words == 9
        assert results[0].segments == 3
        assert results[1].segments == 1

        assert _count(Topic) == 1
        assert _count(Lecture) == 2
        assert _count(LectureWord) == 12
        assert _count(LectureSegment) == 4

    def test_lecture_row(self, database, lecture_tree):
        upload_all(lecture_tree / "lectures", lecture_tree)
        with get_db_session() as session:
            lecture = session.scalar(select(Lecture).where(Lecture.order == 1))
            assert lecture.title == "Беседа №1"
            assert lecture.full_text == SAMPLE_TEXT
            assert lecture.duration == pytest.approx(2.10)
            assert lecture.src == "/lectures/Терпение/lecture 1/audio.mp3"
            assert lecture.topic.name == "Терпение"

    def test_words_keep_stream_positions(self, database, lecture_tree):
        results = upload_all(lecture_tree / "lectures", lecture_tree)
        with get_db_session() as session:
            words = LectureRepository(session).words_in_range(results[0].lecture_id)
            assert [w.position for w in words] == list(range(9))
            assert words[0].text == "Сегодня"
            assert words[1].type == "spacing"

    def test_reupload_replaces_rows(self, database, lecture_tree):
        upload_all(lecture_tree / "lectures", lecture_tree, max_words_per_segment=2)
        results = upload_all(lecture_tree / "lectures", lecture_tree, max_words_per_segment=200)
        assert _count(Lecture) == 2
        assert _count(LectureWord) == 12
        assert _count(LectureSegment) == 2
        with get_db_session() as session:
            segments = LectureRepository(session).list_segments(results[0].lecture_id)
            assert [s.text for s in segments] == [SAMPLE_TEXT]

    def test_missing_mp3_is_skipped(self, database, lecture_tree, sample_words):
        write_lecture_dir(
            lecture_tree / "lectures" / "Терпение" / "lecture 3", sample_words, SAMPLE_TEXT, mp3_name=None
        )
        messages = []
        results = upload_all(lecture_tree / "lectures", lecture_tree, on_status=messages.append)
        assert len(results) == 2
        assert _count(Lecture) == 2
        assert any("No .mp3 file" in m for m in messages)

    def test_status_messages(self, database, lecture_tree):
        messages = []
        upload_all(lecture_tree / "lectures", lecture_tree, on_status=messages.append)
        assert messages[0] == "Found 2 lecture directories"
        assert any("Lecture ID=" in m for m in messages)

    def test_failure_rolls_back_and_reraises(self, database, tmp_path, sample_words):
        bad = tmp_path / "public" / "lectures" / "nontopic" / "1"
        write_lecture_dir(bad, sample_words, SAMPLE_TEXT)
        with pytest.raises(IngestError):
            upload_all(tmp_path / "public" / "lectures", tmp_path / "public")
        assert _count(Lecture) == 0

    def test_invalid_threshold_is_rejected(self, database, lecture_tree):
        with pytest.raises(ValueError):
            upload_all(lecture_tree / "lectures", lecture_tree, max_words_per_segment=0)
        assert _count(LectureSegment) == 0


class TestUploadLecture:

    def test_uses_given_session(self, database, lecture_tree):
        directory = lecture_tree / "lectures" / "Терпение" / "lecture 2"
        with get_db_session() as session:
            result = upload_lecture(session, directory, lecture_tree, batch_size=2)
            assert result.words == 3
        assert _count(LectureWord) == 3
