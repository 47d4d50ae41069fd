"""Lecture Archive: transcribed lecture storage with segment search.

WHY: Lecture recordings are only useful once they can be searched. The
speech-to-text service returns a flat timestamped word stream; this
package turns that stream into fixed-size, time-bounded segments, stores
lectures, words and segments in a relational database, and serves them
through a small read-only REST API with full-text search.

HOW: Four stages: merge (ffmpeg concatenation of raw recordings),
transcribe (ElevenLabs API client), ingest (segmentation + persistence),
serve (FastAPI). Each stage is independently testable and runnable from
the CLI.

RULES:
- The segment builder is pure; it knows nothing about storage
- Segments are the unit of full-text search
- All configuration comes from the environment (.env)
"""

__version__ = "0.1.0"
