"""Word-stream segmentation into fixed-size search segments.

WHY: Search results need short, time-bounded snippets rather than whole
lectures. The transcription word stream is flat, so it has to be cut into
runs of a bounded number of words, each carrying the time range and token
positions it came from.

HOW: A single pass with an accumulator. Word tokens are always appended;
spacing (and any other non-word token) is appended only once the
accumulator already holds something, so no segment text starts with
whitespace. After each token the accumulated word count is checked; the
accumulator is flushed into a Segment when it reaches the threshold or
when the input ends.

RULES:
- Only "word" tokens count toward max_words_per_segment
- The threshold is a flush trigger, not a length cap: interleaved spacing
  is carried along without being counted
- start_position is the index following the previous flush, so spacing
  dropped at the head of a segment is covered by its index range but not
  included in its text
- End of input flushes a shorter trailing run
- Empty or all-spacing input yields no segments
- Pure function: no I/O, input is never mutated
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Sequence

from lecture_archive.core.ir import Segment, Token

DEFAULT_MAX_WORDS_PER_SEGMENT = 200


class InvalidSegmentationInput(ValueError):
    """Raised when the threshold or a token violates the builder's preconditions."""


def tokens_from_dicts(items: Iterable[Dict[str, Any]]) -> List[Token]:
    """Parse STT word dicts (``{text, type, start, end}``) into Tokens."""
    return [Token.from_dict(item) for item in items]


def count_words(tokens: Iterable[Token]) -> int:
    """Return the number of word-kind tokens in *tokens*."""
    return sum(1 for token in tokens if token.is_word)


def _validate(tokens: Sequence[Token], max_words_per_segment: int) -> None:
    if isinstance(max_words_per_segment, bool) or not isinstance(max_words_per_segment, int):
        raise InvalidSegmentationInput(
            "max_words_per_segment must be an integer, got {!r}".format(max_words_per_segment)
        )
    if max_words_per_segment <= 0:
        raise InvalidSegmentationInput(
            "max_words_per_segment must be positive, got {}".format(max_words_per_segment)
        )
    for index, token in enumerate(tokens):
        if token.end < token.start:
            raise InvalidSegmentationInput(
                "Token {} ({!r}) ends before it starts: {} < {}".format(
                    index, token.text, token.end, token.start
                )
            )


def build_segments(
    tokens: Sequence[Token],
    max_words_per_segment: int = DEFAULT_MAX_WORDS_PER_SEGMENT,
) -> List[Segment]:
    """Partition a token stream into segments of at most N words.

    Args:
        tokens: Ordered transcription tokens (words and spacing).
        max_words_per_segment: Word count that triggers a flush.

    Returns:
        Segments in source order.

    Raises:
        InvalidSegmentationInput: If the threshold is not a positive
            integer or a token ends before it starts.
    """
    _validate(tokens, max_words_per_segment)

    segments: List[Segment] = []
    current: List[Token] = []
    word_count = 0
    segment_start = 0
    last_index = len(tokens) - 1

    for index, token in enumerate(tokens):
        if token.is_word:
            current.append(token)
            word_count += 1
        elif current:
            current.append(token)

        if not current:
            continue

        if word_count >= max_words_per_segment or index == last_index:
            segments.append(Segment(
                start_position=segment_start,
                end_position=index,
                start_time=current[0].start,
                end_time=current[-1].end,
                text="".join(t.text for t in current),
            ))
            current = []
            word_count = 0
            segment_start = index + 1

    return segments
