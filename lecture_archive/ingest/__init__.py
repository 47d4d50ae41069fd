"""Lecture ingestion: directory discovery and database upload."""

from lecture_archive.ingest.discovery import IngestError, extract_metadata, find_response_dirs
from lecture_archive.ingest.uploader import UploadResult, upload_all, upload_lecture

__all__ = [
    "IngestError",
    "UploadResult",
    "extract_metadata",
    "find_response_dirs",
    "upload_all",
    "upload_lecture",
]
