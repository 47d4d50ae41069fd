"""Discovery of transcribed lecture directories and their metadata.

WHY: Lectures live in a directory tree under the public static root,
e.g. ``public/lectures/<Topic>/<Lecture 3>/``. The tree itself carries the
lecture metadata: the Cyrillic-named directory is the topic, and the
number in the lecture directory name is its order within the topic.

HOW: find_response_dirs() walks the tree for directories holding both
transcript files. extract_metadata() derives topic, order and title from
the path. public_src() turns the MP3 path into the URL it is served at.

RULES:
- A response directory contains both response.txt and response.json
- Topic: first path component consisting only of Cyrillic letters and spaces
- Order: first integer in the lecture directory name; title "Беседа №<order>"
- No number → order 1, title = topic name
- No topic component → IngestError
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from lecture_archive.config import RESPONSE_JSON_FILENAME, RESPONSE_TEXT_FILENAME

_TOPIC_RE = re.compile(r"^[ ЁА-яё]+$")
_NUMBER_RE = re.compile(r"(\d+)")

TITLE_TEMPLATE = "Беседа №{order}"


class IngestError(Exception):
    """Raised when a lecture directory cannot be uploaded."""


@dataclass(frozen=True)
class LectureMetadata:
    topic: str
    order: int
    title: str


def find_response_dirs(root: Path) -> List[Path]:
    """Return every directory under *root* holding both transcript files, sorted."""
    results = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        names = set(filenames)
        if RESPONSE_TEXT_FILENAME in names and RESPONSE_JSON_FILENAME in names:
            results.append(Path(dirpath))
    return sorted(results)


def find_mp3(directory: Path) -> Optional[Path]:
    """Return the first .mp3 file in *directory* (case-insensitive), or None."""
    for entry in sorted(Path(directory).iterdir()):
        if entry.is_file() and entry.name.lower().endswith(".mp3"):
            return entry
    return None


def extract_metadata(directory: Path) -> LectureMetadata:
    """Derive topic, order and title from a lecture directory path."""
    parts = Path(directory).parts
    topic = next((p for p in parts if _TOPIC_RE.match(p)), None)
    if topic is None:
        raise IngestError("No topic directory (Cyrillic name) in path {}".format(directory))

    match = _NUMBER_RE.search(parts[-1]) if parts else None
    if match is None:
        return LectureMetadata(topic=topic, order=1, title=topic)

    order = int(match.group(1))
    return LectureMetadata(topic=topic, order=order, title=TITLE_TEMPLATE.format(order=order))


def public_src(mp3_path: Path, public_dir: Path) -> str:
    """URL path of *mp3_path* relative to the public static root."""
    rel = os.path.relpath(Path(mp3_path).resolve(), Path(public_dir).resolve())
    return "/" + Path(rel).as_posix()
