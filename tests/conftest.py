"""Shared test fixtures for the lecture_archive test suite.

WHY: Several test modules need the same sample transcription word stream,
a throwaway SQLite database, and a lecture directory tree laid out the way
the upload step expects.

HOW: SAMPLE_WORDS mimics an ElevenLabs speech-to-text word array (words
and spacing, float seconds). The ``database`` fixture points the session
module at a fresh SQLite file under tmp_path and creates the tables. The
``lecture_tree`` fixture builds public/lectures/<topic>/<lecture N>/ with
an MP3 placeholder and the two transcript files.

RULES:
- No test touches the network or a real PostgreSQL server
- Every database test gets its own SQLite file
"""

import json
from typing import Any, Dict, List

import pytest

from lecture_archive.core.ir import Token
from lecture_archive.database.session import configure_database, init_db


SAMPLE_WORDS: List[Dict[str, Any]] = [
    {"text": "Сегодня", "type": "word",    "start": 0.12, "end": 0.58},
    {"text": " ",       "type": "spacing", "start": 0.58, "end": 0.62},
    {"text": "мы",      "type": "word",    "start": 0.62, "end": 0.75},
    {"text": " ",       "type": "spacing", "start": 0.75, "end": 0.80},
    {"text": "говорим", "type": "word",    "start": 0.80, "end": 1.30},
    {"text": " ",       "type": "spacing", "start": 1.30, "end": 1.34},
    {"text": "о",       "type": "word",    "start": 1.34, "end": 1.40},
    {"text": " ",       "type": "spacing", "start": 1.40, "end": 1.45},
    {"text": "терпении.", "type": "word",  "start": 1.45, "end": 2.10},
]

SAMPLE_TEXT = "Сегодня мы говорим о терпении."


def make_tokens(pattern: str, step: float = 0.5) -> List[Token]:
    """Build tokens from a compact pattern: ``"w"`` → word, ``"s"`` → spacing.

    Word texts are ``w0``, ``w1``…; spacing is a single space. Each token
    lasts ``step`` seconds, back to back.
    """
    tokens = []
    word_index = 0
    for i, ch in enumerate(pattern):
        start = i * step
        if ch == "w":
            tokens.append(Token(text="w{}".format(word_index), kind="word", start=start, end=start + step))
            word_index += 1
        elif ch == "s":
            tokens.append(Token(text=" ", kind="spacing", start=start, end=start + step))
        elif ch == "a":
            tokens.append(Token(text="(laughs)", kind="audio_event", start=start, end=start + step))
        else:
            raise ValueError("unknown token code {!r}".format(ch))
    return tokens


@pytest.fixture
def sample_words():
    return [dict(w) for w in SAMPLE_WORDS]


@pytest.fixture
def sample_response():
    """Full speech-to-text response dict (as returned by the API)."""
    return {
        "language_code": "rus",
        "language_probability": 0.99,
        "text": SAMPLE_TEXT,
        "words": [dict(w) for w in SAMPLE_WORDS],
    }


@pytest.fixture
def database(tmp_path):
    """Point the session module at a fresh SQLite database with all tables."""
    url = "sqlite:///{}".format(tmp_path / "test.db")
    configure_database(url)
    init_db()
    yield url
    configure_database("sqlite:///{}".format(tmp_path / "unused.db"))


def write_lecture_dir(directory, words, text, mp3_name="audio.mp3"):
    """Create a lecture directory with an MP3 placeholder and transcript files."""
    directory.mkdir(parents=True, exist_ok=True)
    if mp3_name:
        (directory / mp3_name).write_bytes(b"ID3")
    (directory / "response.txt").write_text(text, encoding="utf-8")
    (directory / "response.json").write_text(
        json.dumps({"language_code": "rus", "language_probability": 0.99, "words": words}, ensure_ascii=False),
        encoding="utf-8",
    )
    return directory


@pytest.fixture
def lecture_tree(tmp_path, sample_words):
    """public/lectures/Терпение/<lecture N>/ with two transcribed lectures."""
    public = tmp_path / "public"
    topic_dir = public / "lectures" / "Терпение"
    write_lecture_dir(topic_dir / "lecture 1", sample_words, SAMPLE_TEXT)
    write_lecture_dir(
        topic_dir / "lecture 2",
        [
            {"text": "Second", "type": "word", "start": 0.0, "end": 0.4},
            {"text": " ", "type": "spacing", "start": 0.4, "end": 0.5},
            {"text": "lecture", "type": "word", "start": 0.5, "end": 1.0},
        ],
        "Second lecture",
    )
    return public
