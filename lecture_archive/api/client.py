"""Async HTTP client for the ElevenLabs speech-to-text API.

WHY: Lecture recordings are transcribed once by ElevenLabs and the result
is stored next to the audio. This module keeps the HTTP details behind a
single client class so the CLI and tests don't need to know them.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. ElevenLabsClient is an
async context manager. Enter it to get an authenticated client, exit to
close the connection pool. convert() uploads the audio as multipart form
data and returns the parsed response synchronously (no polling).

RULES:
- Always use the async context manager (async with ElevenLabsClient() as client:)
- Default model is scribe_v1, default language "ru"
- Authentication is the xi-api-key header
- Non-2xx → ElevenLabsAPIError; httpx timeout → ElevenLabsTimeoutError
- A response without "text" and "words" → UnexpectedResponseError
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any, Dict, Optional

import httpx

from lecture_archive.api.models import SpeechToTextResponse
from lecture_archive.config import (
    DEFAULT_LANGUAGE,
    ELEVENLABS_BASE_URL,
    ELEVENLABS_MODEL,
    load_api_key,
)

# Long recordings are transcribed in a single request.
_REQUEST_TIMEOUT_S = 60 * 30
_CONNECT_TIMEOUT_S = 30.0


class ElevenLabsAPIError(Exception):
    """Raised when the ElevenLabs API returns an error response.

    RULES:
    - Always include status_code and message
    - message is the response body text
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"ElevenLabs API error {status_code}: {message}")


class ElevenLabsTimeoutError(TimeoutError):
    """Raised when a request to ElevenLabs times out."""


class UnexpectedResponseError(Exception):
    """Raised when the response is not a transcript (e.g. a webhook acknowledgement)."""


class ElevenLabsClient:
    """Async client for the ElevenLabs speech-to-text API.

    RULES:
    - Use as: async with ElevenLabsClient() as client: ...
    - api_key defaults to load_api_key() from .env
    - base_url / model default to the config module
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key or load_api_key()
        self._base_url = (base_url or ELEVENLABS_BASE_URL).rstrip("/")
        self._model = model or ELEVENLABS_MODEL
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> ElevenLabsClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"xi-api-key": self._api_key},
            timeout=httpx.Timeout(_REQUEST_TIMEOUT_S, connect=_CONNECT_TIMEOUT_S),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the active httpx client, raising if not in context manager."""
        if self._client is None:
            raise RuntimeError(
                "ElevenLabsClient must be used as an async context manager: "
                "async with ElevenLabsClient() as client: ..."
            )
        return self._client

    async def convert(
        self,
        file_path: Path,
        language_code: str = DEFAULT_LANGUAGE,
        diarize: bool = False,
        tag_audio_events: bool = False,
        file_format: str | None = "pcm_s16le_16",
        on_status: Callable[[str], None] | None = None,
    ) -> SpeechToTextResponse:
        """Transcribe an audio file and return the parsed response.

        WHY: The lecture pipeline feeds 16 kHz mono PCM WAV files (produced
        by the merge step), so file_format defaults to pcm_s16le_16 which
        lets the service skip decoding.

        Args:
            file_path: Audio file to upload.
            language_code: ISO 639-1 language hint.
            diarize: Whether to request speaker labels.
            tag_audio_events: Whether to emit audio_event items (laughter etc.).
            file_format: "pcm_s16le_16" for raw 16 kHz PCM, None for "other".
            on_status: Optional callback for status updates.

        Returns:
            SpeechToTextResponse with text and the word array.
        """
        client = self._ensure_client()
        file_path = Path(file_path)
        if on_status:
            on_status("Uploading {} for transcription...".format(file_path.name))

        data: Dict[str, Any] = {
            "model_id": self._model,
            "language_code": language_code,
            "diarize": _form_bool(diarize),
            "tag_audio_events": _form_bool(tag_audio_events),
        }
        if file_format:
            data["file_format"] = file_format

        try:
            with open(file_path, "rb") as f:
                resp = await client.post(
                    "/v1/speech-to-text",
                    data=data,
                    files={"file": (file_path.name, f)},
                )
        except httpx.TimeoutException as exc:
            raise ElevenLabsTimeoutError(
                "Transcription of {} timed out: {}".format(file_path.name, exc)
            )

        if resp.status_code not in (200, 201):
            raise ElevenLabsAPIError(resp.status_code, resp.text)

        if on_status:
            on_status("Transcription complete.")
        return _parse_transcript(resp.json())

    async def get_transcript(self, transcription_id: str) -> SpeechToTextResponse:
        """Fetch a previously created transcript by ID."""
        client = self._ensure_client()
        try:
            resp = await client.get(f"/v1/speech-to-text/transcripts/{transcription_id}")
        except httpx.TimeoutException as exc:
            raise ElevenLabsTimeoutError(
                "Fetching transcript {} timed out: {}".format(transcription_id, exc)
            )

        if resp.status_code != 200:
            raise ElevenLabsAPIError(resp.status_code, resp.text)
        return _parse_transcript(resp.json())


def _form_bool(value: bool) -> str:
    return "true" if value else "false"


def _parse_transcript(data: Dict[str, Any]) -> SpeechToTextResponse:
    if not isinstance(data, dict) or "text" not in data or "words" not in data:
        raise UnexpectedResponseError(
            "Unexpected response model (keys: {})".format(
                ", ".join(sorted(data)) if isinstance(data, dict) else type(data).__name__
            )
        )
    return SpeechToTextResponse.from_dict(data)
