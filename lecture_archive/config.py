"""Configuration constants and .env loading.

WHY: Centralizes all configurable values so they are easy to find,
update, and override. API defaults, database location, segmentation
threshold, and filesystem layout are plain module-level values, not
buried in logic.

HOW: python-dotenv loads the .env file on import. Constants are read from
the environment with sensible defaults. load_api_key() provides a clear
error when the ElevenLabs key is missing.

RULES:
- API key is loaded from .env via python-dotenv, never hardcoded
- All defaults can be overridden via environment variables
- SEGMENT_WORD_LIMIT is the word-count trigger used for search segments
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()


def _int_env(name: str, default: int) -> int:
    """Read a positive integer from the environment, falling back to *default*."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError("{} must be an integer, got {!r}".format(name, raw))
    if value <= 0:
        raise ValueError("{} must be positive, got {}".format(name, value))
    return value


# ---------------------------------------------------------------------------
# Speech-to-text (ElevenLabs)
# ---------------------------------------------------------------------------

ELEVENLABS_BASE_URL = os.getenv("ELEVENLABS_BASE_URL", "https://api.elevenlabs.io")
ELEVENLABS_MODEL = os.getenv("ELEVENLABS_MODEL", "scribe_v1")
DEFAULT_LANGUAGE = os.getenv("DEFAULT_LANGUAGE", "ru")

SUPPORTED_AUDIO_FORMATS: set[str] = {
    ".aac", ".flac", ".m4a", ".mp3", ".mp4", ".ogg", ".opus", ".wav", ".webm",
}
"""Audio/video file extensions accepted by the transcribe command (lowercase, with dot)."""

# ---------------------------------------------------------------------------
# Storage and search
# ---------------------------------------------------------------------------

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///lectures.db")
SEARCH_LANGUAGE = os.getenv("SEARCH_LANGUAGE", "russian")
"""PostgreSQL text search configuration used for to_tsvector/plainto_tsquery."""

SEGMENT_WORD_LIMIT = _int_env("SEGMENT_WORD_LIMIT", 200)
WORD_BATCH_SIZE = _int_env("WORD_BATCH_SIZE", 1000)

# ---------------------------------------------------------------------------
# Filesystem layout and external tools
# ---------------------------------------------------------------------------

PUBLIC_DIR = os.getenv("PUBLIC_DIR", "public")
LECTURES_DIR = os.getenv("LECTURES_DIR", os.path.join(PUBLIC_DIR, "lectures"))
FFMPEG_BINARY = os.getenv("FFMPEG_BINARY", "ffmpeg")

RESPONSE_TEXT_FILENAME = "response.txt"
RESPONSE_JSON_FILENAME = "response.json"


def load_api_key() -> str:
    """Load the ElevenLabs API key from the environment.

    WHY: The API key is required for every speech-to-text call. Loading it
    from the environment (via .env) keeps it out of source code.

    RULES:
    - Raises ValueError if the key is missing or empty
    - Never returns a default/placeholder value
    """
    key = os.getenv("ELEVENLABS_API_KEY", "").strip()
    if not key:
        raise ValueError(
            "ElevenLabs API key not configured. "
            "Add ELEVENLABS_API_KEY to the .env file."
        )
    return key
