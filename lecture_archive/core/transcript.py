"""Reading and writing the transcript files stored next to each lecture.

WHY: Transcription and ingestion run at different times (transcription is
slow and paid for once). The transcribe step persists the STT response as
two files in the lecture directory; the upload step reads them back. Both
sides need one definition of that on-disk format.

HOW: save_transcript() splits a response into response.txt (plain text)
and response.json (everything else). load_transcript() reads both,
validates the JSON with jsonschema against transcript_schema.json and
parses the word array into Tokens.

RULES:
- response.txt holds only the transcript text
- response.json never contains the "text" key
- Both snake_case and camelCase language keys are accepted on read
- Invalid or missing files raise TranscriptFileError
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from lecture_archive.config import RESPONSE_JSON_FILENAME, RESPONSE_TEXT_FILENAME
from lecture_archive.core.ir import Token

_SCHEMA_PATH = Path(__file__).resolve().parent / "transcript_schema.json"
_schema_cache: Optional[Dict[str, Any]] = None


class TranscriptFileError(ValueError):
    """Raised when response.txt / response.json are missing or malformed."""


def _load_schema() -> Dict[str, Any]:
    global _schema_cache
    if _schema_cache is None:
        with open(_SCHEMA_PATH, encoding="utf-8") as f:
            _schema_cache = json.load(f)
    return _schema_cache


@dataclass
class TranscriptFile:
    """A lecture transcript as stored on disk.

    RULES:
    - full_text: contents of response.txt
    - tokens: parsed word stream from response.json
    - language_code / language_probability: None when absent
    """

    full_text: str
    tokens: List[Token] = field(default_factory=list)
    language_code: Optional[str] = None
    language_probability: Optional[float] = None
    transcription_id: Optional[str] = None

    @property
    def duration(self) -> float:
        """End of the last token, or 0.0 for an empty transcript."""
        if not self.tokens:
            return 0.0
        return self.tokens[-1].end


def validate_response(data: Dict[str, Any], source: str = "response.json") -> None:
    """Validate a response.json document against the bundled schema."""
    try:
        jsonschema.validate(instance=data, schema=_load_schema())
    except jsonschema.ValidationError as exc:
        raise TranscriptFileError("{} is invalid: {}".format(source, exc.message))


def parse_response(data: Dict[str, Any], full_text: str, source: str = "response.json") -> TranscriptFile:
    """Build a TranscriptFile from a decoded response.json and its text."""
    validate_response(data, source)
    return TranscriptFile(
        full_text=full_text,
        tokens=[Token.from_dict(w) for w in data["words"]],
        language_code=data.get("language_code", data.get("languageCode")),
        language_probability=data.get("language_probability", data.get("languageProbability")),
        transcription_id=data.get("transcription_id", data.get("transcriptionId")),
    )


def load_transcript(directory: Path) -> TranscriptFile:
    """Load response.txt and response.json from a lecture directory.

    Raises:
        TranscriptFileError: If either file is missing, the JSON cannot be
            decoded, or it does not match the schema.
    """
    directory = Path(directory)
    txt_path = directory / RESPONSE_TEXT_FILENAME
    json_path = directory / RESPONSE_JSON_FILENAME

    if not txt_path.is_file() or not json_path.is_file():
        raise TranscriptFileError(
            "Missing {} or {} in {}".format(RESPONSE_TEXT_FILENAME, RESPONSE_JSON_FILENAME, directory)
        )

    full_text = txt_path.read_text(encoding="utf-8")
    try:
        data = json.loads(json_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TranscriptFileError("{} is not valid JSON: {}".format(json_path, exc))

    return parse_response(data, full_text, source=str(json_path))


def save_transcript(directory: Path, response: Dict[str, Any]) -> tuple:
    """Write an STT response dict as response.txt + response.json.

    Returns:
        Tuple of (txt_path, json_path).
    """
    directory = Path(directory)
    rest = {k: v for k, v in response.items() if k != "text"}

    txt_path = directory / RESPONSE_TEXT_FILENAME
    json_path = directory / RESPONSE_JSON_FILENAME
    txt_path.write_text(response.get("text", ""), encoding="utf-8")
    json_path.write_text(json.dumps(rest, ensure_ascii=False, indent=2), encoding="utf-8")
    return txt_path, json_path
