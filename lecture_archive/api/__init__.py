"""ElevenLabs API client package: async HTTP interface to speech-to-text.

WHY: Lecture audio is transcribed by ElevenLabs. This package keeps all
API communication behind one async client class and typed response models.

RULES:
- All HTTP calls go through ElevenLabsClient (no direct httpx usage elsewhere)
- Authentication is via the xi-api-key header from config
"""

from lecture_archive.api.client import ElevenLabsClient
from lecture_archive.api.models import SpeechToTextResponse, SpeechToTextWord

__all__ = ["ElevenLabsClient", "SpeechToTextResponse", "SpeechToTextWord"]
