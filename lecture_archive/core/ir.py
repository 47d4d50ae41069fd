"""Intermediate representation dataclasses for transcribed lectures.

WHY: The speech-to-text service returns a flat array of timestamped
items, words interleaved with the spacing between them. Segmentation,
storage, and the HTTP layer all need the same typed view of that array
and of the segments derived from it.

HOW: Two frozen dataclasses:
  Token   : one element of the transcription word stream
  Segment : a contiguous, time-bounded run of tokens used for search

RULES:
- Tokens are produced once, externally, and never mutated
- Only tokens of kind "word" count toward segment size limits
- All times are float seconds
- Segment positions are inclusive indices into the source token list
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

WORD = "word"
SPACING = "spacing"
AUDIO_EVENT = "audio_event"

TOKEN_KINDS = frozenset({WORD, SPACING, AUDIO_EVENT})
"""Token kinds known to the store (mirrors the lecture_words.type enum)."""


@dataclass(frozen=True)
class Token:
    """One timestamped unit of a transcription word stream.

    WHY: The STT engine emits words and the whitespace/punctuation runs
    between them as separate items. Keeping spacing as tokens lets segment
    text be rebuilt by plain concatenation.

    RULES:
    - text: literal characters, including whitespace for spacing tokens
    - kind: "word", "spacing", or "audio_event"
    - start / end: float seconds in the source audio
    """

    text: str
    kind: str
    start: float
    end: float

    @property
    def is_word(self) -> bool:
        return self.kind == WORD

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Token:
        """Parse a token from the STT wire shape ``{text, type, start, end}``.

        ``kind`` is accepted as an alias for ``type``.
        """
        kind = data.get("type", data.get("kind"))
        return cls(
            text=data["text"],
            kind=kind,
            start=float(data["start"]),
            end=float(data["end"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"text": self.text, "type": self.kind, "start": self.start, "end": self.end}


@dataclass(frozen=True)
class Segment:
    """A contiguous run of tokens grouped for display and search.

    WHY: Full-text search over whole lectures cannot point a listener at a
    moment in the recording. Segments are small enough to snippet and carry
    the time range to seek to.

    RULES:
    - start_position / end_position: inclusive token-index bounds
    - start_time: start of the first accumulated token
    - end_time: end of the last accumulated token
    - text: accumulated token texts joined with no separator
    """

    start_position: int
    end_position: int
    start_time: float
    end_time: float
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
