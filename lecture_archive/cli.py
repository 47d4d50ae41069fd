"""Command-line interface for the lecture archive pipeline.

WHY: The archive is built by running a few batch steps over a directory
of recordings (merge raw chunks, transcribe, upload) and then serving
the result. Each step is a subcommand so they can be re-run on their own.

HOW: argparse with subparsers. Async steps (transcription) run through
asyncio.run(). Status messages go to stderr via _status(); library
modules log through the logging module, configured here.

RULES:
- merge <dir>: ffmpeg concat of .orig chunks into <dir>.mp3 and <dir>.wav
- transcribe <audio>: writes response.txt / response.json next to the audio
- segment <file.json | dir>: prints segments of that word array as JSON on stdout
- upload: ingests every response directory under --lectures-dir
- init-db / serve: create tables / run the HTTP API
- Exit code 1 on error, 130 on Ctrl-C
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from lecture_archive.config import (
    DATABASE_URL,
    DEFAULT_LANGUAGE,
    LECTURES_DIR,
    PUBLIC_DIR,
    SEGMENT_WORD_LIMIT,
    SUPPORTED_AUDIO_FORMATS,
)
from lecture_archive.core.segmenter import build_segments, tokens_from_dicts
from lecture_archive.core.transcript import (
    TranscriptFileError,
    load_transcript,
    save_transcript,
    validate_response,
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _status(msg: str) -> None:
    """Print a status message to stderr so stdout stays pipeable."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> None:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


# ---------------------------------------------------------------------------
# Subcommands
# ---------------------------------------------------------------------------


def _cmd_merge(args: argparse.Namespace) -> None:
    from lecture_archive.media.merge import find_orig_directories, merge_directory, summarize

    root = Path(args.directory)
    if not root.is_dir():
        _fail("{} is not a directory".format(root))

    _status("Searching for directories with .orig files in {}...".format(root))
    found = find_orig_directories(root)
    if not found:
        _status("No directories with .orig files found")
        return

    total = sum(len(files) for files in found.values())
    _status("Found {} director(ies) with {} .orig file(s) in total".format(len(found), total))

    results = []
    for directory, files in found.items():
        _status("")
        _status("Processing directory: {}".format(directory))
        for i, f in enumerate(files, start=1):
            _status("    {}. {}".format(i, f.name))
        results.append(merge_directory(directory, files))

    _status("")
    _status(summarize(results))
    if any(not r.success for r in results):
        sys.exit(1)


async def _transcribe(args: argparse.Namespace) -> None:
    from lecture_archive.api.client import ElevenLabsClient

    audio = Path(args.audio_file).resolve()
    if not audio.is_file():
        _fail("File not found: {}".format(audio))
    if audio.suffix.lower() not in SUPPORTED_AUDIO_FORMATS:
        _fail("Unsupported file type '{}'. Supported formats: {}".format(
            audio.suffix.lower(), ", ".join(sorted(SUPPORTED_AUDIO_FORMATS))
        ))

    file_format = "pcm_s16le_16" if audio.suffix.lower() == ".wav" and not args.other_format else None

    async with ElevenLabsClient() as client:
        response = await client.convert(
            audio,
            language_code=args.language,
            diarize=args.diarize,
            tag_audio_events=args.tag_audio_events,
            file_format=file_format,
            on_status=_status,
        )

    txt_path, json_path = save_transcript(audio.parent, response.to_dict())
    _status("Saved: {}".format(txt_path))
    _status("Saved: {}".format(json_path))


def _cmd_transcribe(args: argparse.Namespace) -> None:
    asyncio.run(_transcribe(args))


def _cmd_segment(args: argparse.Namespace) -> None:
    path = Path(args.response_json)
    if path.is_file():
        # Only the word array is needed, so response.txt is not required.
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise TranscriptFileError("{} is not valid JSON: {}".format(path, exc))
        validate_response(data, source=str(path))
        tokens = tokens_from_dicts(data["words"])
    else:
        tokens = load_transcript(path).tokens

    segments = build_segments(tokens, args.max_words)
    json.dump([s.to_dict() for s in segments], sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")
    _status("{} segments from {} tokens".format(len(segments), len(tokens)))


def _cmd_upload(args: argparse.Namespace) -> None:
    from lecture_archive.database.session import configure_database, init_db
    from lecture_archive.ingest.uploader import upload_all

    lectures_dir = Path(args.lectures_dir).resolve()
    if not lectures_dir.is_dir():
        _fail("{} is not a directory".format(lectures_dir))

    configure_database(args.database_url)
    init_db()

    _status("Searching for lectures in {}...".format(lectures_dir))
    results = upload_all(
        lectures_dir,
        Path(args.public_dir).resolve(),
        max_words_per_segment=args.max_words,
        on_status=_status,
    )
    _status("✓ Uploaded {} lecture(s)".format(len(results)))


def _cmd_init_db(args: argparse.Namespace) -> None:
    from lecture_archive.database.session import configure_database, init_db

    configure_database(args.database_url)
    init_db()
    _status("Database initialised: {}".format(args.database_url))


def _cmd_serve(args: argparse.Namespace) -> None:
    from lecture_archive.database.session import configure_database
    from lecture_archive.server.app import run_api

    configure_database(args.database_url)
    run_api(host=args.host, port=args.port)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="lecture_archive",
        description="Merge, transcribe, segment, upload and serve lecture recordings.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("merge", help="Concatenate .orig chunks into MP3 and WAV files.")
    p.add_argument("directory", help="Root directory to search recursively.")
    p.set_defaults(func=_cmd_merge)

    p = sub.add_parser("transcribe", help="Transcribe an audio file with ElevenLabs.")
    p.add_argument("audio_file", help="Audio file (normally the merged 16 kHz WAV).")
    p.add_argument("--language", default=DEFAULT_LANGUAGE,
                   help="Language ISO 639-1 code (default: %(default)s).")
    p.add_argument("--diarize", action=argparse.BooleanOptionalAction, default=False,
                   help="Request speaker labels (default: %(default)s).")
    p.add_argument("--tag-audio-events", action=argparse.BooleanOptionalAction, default=False,
                   help="Emit audio_event items (default: %(default)s).")
    p.add_argument("--other-format", action="store_true",
                   help="Let the service decode the file instead of sending raw PCM.")
    p.set_defaults(func=_cmd_transcribe)

    p = sub.add_parser("segment", help="Print the segments of a transcript as JSON.")
    p.add_argument("response_json", help="A response JSON file, or a lecture directory holding response.json.")
    p.add_argument("--max-words", type=int, default=SEGMENT_WORD_LIMIT,
                   help="Words per segment (default: %(default)s).")
    p.set_defaults(func=_cmd_segment)

    p = sub.add_parser("upload", help="Upload transcribed lectures into the database.")
    p.add_argument("--lectures-dir", default=LECTURES_DIR,
                   help="Root of the lecture tree (default: %(default)s).")
    p.add_argument("--public-dir", default=PUBLIC_DIR,
                   help="Static root that lecture src URLs are relative to (default: %(default)s).")
    p.add_argument("--max-words", type=int, default=SEGMENT_WORD_LIMIT,
                   help="Words per segment (default: %(default)s).")
    p.add_argument("--database-url", default=DATABASE_URL, help="SQLAlchemy database URL.")
    p.set_defaults(func=_cmd_upload)

    p = sub.add_parser("init-db", help="Create database tables.")
    p.add_argument("--database-url", default=DATABASE_URL, help="SQLAlchemy database URL.")
    p.set_defaults(func=_cmd_init_db)

    p = sub.add_parser("serve", help="Run the HTTP API.")
    p.add_argument("--host", default="0.0.0.0")
    p.add_argument("--port", type=int, default=3000)
    p.add_argument("--database-url", default=DATABASE_URL, help="SQLAlchemy database URL.")
    p.set_defaults(func=_cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``python -m lecture_archive`` and the console script."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    try:
        args.func(args)
    except KeyboardInterrupt:
        _status("\nCancelled by user.")
        sys.exit(130)
    except ValueError as e:
        # Config errors, invalid transcripts, invalid segment thresholds
        _fail(str(e))
    except Exception as e:
        logging.getLogger(__name__).debug("Command failed", exc_info=True)
        _fail(str(e))


if __name__ == "__main__":
    main()
