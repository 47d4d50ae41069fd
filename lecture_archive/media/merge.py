"""Merge raw lecture recordings into MP3 (for listening) and WAV (for STT).

WHY: Recorders split a lecture into several .orig chunks. The archive
serves one MP3 per lecture, and the speech-to-text step wants one 16 kHz
mono PCM WAV. Both are produced by concatenating the chunks with ffmpeg.

HOW: find_orig_directories() walks the tree and collects every directory
holding .orig files (sorted by name). merge_directory() writes an ffmpeg
concat-demuxer list to a temp file, then runs ffmpeg once per missing
output: libmp3lame at VBR quality 5 for the MP3, pcm_s16le mono 16 kHz
for the WAV. Outputs are named after the directory.

RULES:
- An output that already exists is skipped, not overwritten
- ffmpeg failures are reported in MergeResult.error, never raised
- The concat list file is always removed afterwards
- Paths in the concat list are absolute and single-quote escaped
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from lecture_archive.config import FFMPEG_BINARY

logger = logging.getLogger(__name__)

ORIG_SUFFIX = ".orig"

_MP3_CODEC_ARGS = ["-c:a", "libmp3lame", "-q:a", "5"]
_WAV_CODEC_ARGS = ["-ac", "1", "-ar", "16000", "-c:a", "pcm_s16le"]


@dataclass
class MergeResult:
    """Outcome of merging one directory."""

    directory: Path
    mp3_file: Path
    wav_file: Path
    files_count: int
    success: bool
    mp3_skipped: bool = False
    wav_skipped: bool = False
    error: Optional[str] = None


class FfmpegError(RuntimeError):
    """Raised internally when ffmpeg exits non-zero or cannot be started."""


def find_orig_directories(root: Path) -> Dict[Path, List[Path]]:
    """Map every directory under *root* holding .orig files to its sorted file list."""
    found: Dict[Path, List[Path]] = {}
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        orig_files = sorted(
            Path(dirpath) / name for name in filenames
            if Path(name).suffix == ORIG_SUFFIX
        )
        if orig_files:
            found[Path(dirpath)] = orig_files
    return found


def build_concat_list(files: List[Path]) -> str:
    """Render an ffmpeg concat-demuxer file list."""
    lines = []
    for f in files:
        escaped = str(Path(f).resolve()).replace("'", "'\\''")
        lines.append("file '{}'".format(escaped))
    return "\n".join(lines)


def _run_ffmpeg(args: List[str]) -> None:
    cmd = [FFMPEG_BINARY] + args
    logger.debug("Running %s", " ".join(cmd))
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, check=False)
    except OSError as exc:
        raise FfmpegError(str(exc))
    if proc.returncode != 0:
        raise FfmpegError("ffmpeg exited with code {}\n{}".format(proc.returncode, proc.stderr))


def concatenate_and_convert(files: List[Path], mp3_file: Path, wav_file: Path) -> MergeResult:
    """Concatenate *files* into *mp3_file* and *wav_file*, skipping existing outputs."""
    directory = mp3_file.parent
    mp3_exists = mp3_file.exists()
    wav_exists = wav_file.exists()

    result = MergeResult(
        directory=directory,
        mp3_file=mp3_file,
        wav_file=wav_file,
        files_count=len(files),
        success=False,
        mp3_skipped=mp3_exists,
        wav_skipped=wav_exists,
    )

    if mp3_exists and wav_exists:
        result.success = True
        return result

    fd, list_path = tempfile.mkstemp(prefix="concat_", suffix=".txt")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(build_concat_list(files))

        input_args = ["-y", "-f", "concat", "-safe", "0", "-i", list_path]

        if not mp3_exists:
            try:
                _run_ffmpeg(input_args + _MP3_CODEC_ARGS + [str(mp3_file)])
            except FfmpegError as exc:
                result.error = "MP3 creation failed: {}".format(exc)
                return result

        if not wav_exists:
            try:
                _run_ffmpeg(input_args + _WAV_CODEC_ARGS + [str(wav_file)])
            except FfmpegError as exc:
                result.error = "WAV creation failed: {}".format(exc)
                return result

        result.success = True
        return result
    finally:
        try:
            os.unlink(list_path)
        except OSError:
            logger.warning("Could not remove concat list %s", list_path)


def merge_directory(directory: Path, files: List[Path]) -> MergeResult:
    """Merge the .orig *files* of *directory* into <dirname>.mp3 and <dirname>.wav."""
    directory = Path(directory)
    name = directory.name
    result = concatenate_and_convert(files, directory / f"{name}.mp3", directory / f"{name}.wav")
    if result.success:
        logger.info(
            "Merged %d file(s) in %s (mp3 %s, wav %s)",
            result.files_count,
            directory,
            "skipped" if result.mp3_skipped else "created",
            "skipped" if result.wav_skipped else "created",
        )
    else:
        logger.error("Merge failed in %s: %s", directory, result.error)
    return result


def merge_tree(root: Path) -> List[MergeResult]:
    """Merge every .orig directory under *root*."""
    return [merge_directory(d, files) for d, files in find_orig_directories(Path(root)).items()]


def summarize(results: List[MergeResult]) -> str:
    """Render a human-readable summary of a merge run."""
    successful = [r for r in results if r.success]
    failed = [r for r in results if not r.success]

    lines = [
        "=" * 60,
        "SUMMARY",
        "=" * 60,
        "Total directories processed: {}".format(len(results)),
        "Successful: {}".format(len(successful)),
        "Failed: {}".format(len(failed)),
    ]
    if successful:
        lines.append("")
        lines.append("Successfully processed:")
        for r in successful:
            mp3_status = "skipped" if r.mp3_skipped else "merged {} file(s)".format(r.files_count)
            wav_status = "skipped" if r.wav_skipped else "created"
            lines.append("  ✓ {} ({})".format(r.mp3_file, mp3_status))
            lines.append("  ✓ {} ({})".format(r.wav_file, wav_status))
    if failed:
        lines.append("")
        lines.append("Failed directories:")
        for r in failed:
            lines.append("  ✗ {}: {}".format(r.directory, r.error))
    return "\n".join(lines)
