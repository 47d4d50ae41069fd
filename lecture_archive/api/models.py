"""ElevenLabs speech-to-text response dataclasses.

WHY: The speech-to-text endpoint returns a JSON object with the full
transcript text, language detection results, and a flat array of
timestamped words and spacing. Typed dataclasses make these fields
explicit and catch mismatches early.

HOW: Each dataclass maps 1:1 to an API JSON object. from_dict handles
parsing from raw responses; to_dict returns the shape written to
response.json.

RULES:
- SpeechToTextWord.type is "word", "spacing", or "audio_event"
- start/end are float seconds
- speaker_id is None unless diarization was requested
- transcription_id is only present on some responses
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from lecture_archive.core.ir import Token


@dataclass
class SpeechToTextWord:
    """A single word, spacing run, or audio event from the word array."""

    text: str
    type: str
    start: float
    end: float
    speaker_id: Optional[str] = None
    logprob: Optional[float] = None

    @classmethod
    def from_dict(cls, data: dict) -> SpeechToTextWord:
        return cls(
            text=data["text"],
            type=data["type"],
            start=float(data.get("start") or 0.0),
            end=float(data.get("end") or 0.0),
            speaker_id=data.get("speaker_id"),
            logprob=data.get("logprob"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "text": self.text,
            "type": self.type,
            "start": self.start,
            "end": self.end,
        }
        if self.speaker_id is not None:
            out["speaker_id"] = self.speaker_id
        if self.logprob is not None:
            out["logprob"] = self.logprob
        return out

    def to_token(self) -> Token:
        return Token(text=self.text, kind=self.type, start=self.start, end=self.end)


@dataclass
class SpeechToTextResponse:
    """Full response from POST /v1/speech-to-text.

    RULES:
    - text is the pre-assembled plain transcript
    - words is the flat array the segment builder consumes
    """

    language_code: str
    language_probability: float
    text: str
    words: List[SpeechToTextWord] = field(default_factory=list)
    transcription_id: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> SpeechToTextResponse:
        return cls(
            language_code=data.get("language_code", ""),
            language_probability=float(data.get("language_probability") or 0.0),
            text=data["text"],
            words=[SpeechToTextWord.from_dict(w) for w in data["words"]],
            transcription_id=data.get("transcription_id"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "language_code": self.language_code,
            "language_probability": self.language_probability,
            "text": self.text,
            "words": [w.to_dict() for w in self.words],
        }
        if self.transcription_id:
            out["transcription_id"] = self.transcription_id
        return out

    def tokens(self) -> List[Token]:
        return [w.to_token() for w in self.words]
