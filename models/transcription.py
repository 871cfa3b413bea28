"""Speech-to-text through a Whisper-compatible HTTP API."""

import logging
import os

import httpx
from pydantic import BaseModel, Field, ValidationError

from config.settings import TranscriptionConfig
from debate_engine.exceptions import TranscriptionError, TranscriptionErrorCode

logger = logging.getLogger(__name__)

MIME_EXTENSIONS: dict[str, str] = {
    "audio/webm": "webm",
    "audio/webm;codecs=opus": "webm",
    "audio/mp3": "mp3",
    "audio/mpeg": "mp3",
    "audio/wav": "wav",
    "audio/ogg": "ogg",
    "audio/mp4": "m4a",
}


class WhisperSegment(BaseModel):
    """One timed segment of a verbose Whisper response."""

    id: int = 0
    start: float
    end: float
    text: str


class TranscriptionResult(BaseModel):
    """Transcribed text for one audio payload."""

    text: str
    language: str | None = None
    duration: float | None = None
    segments: list[WhisperSegment] = Field(default_factory=list)


class TranscriptionService:
    """Sends audio to `{base_url}/v1/audio/transcriptions` as multipart form data."""

    def __init__(
        self,
        config: TranscriptionConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.base_url = config.base_url or os.getenv("TRANSCRIPTION_API_URL")
        self.api_key = config.api_key or os.getenv("TRANSCRIPTION_API_KEY")
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def transcribe(
        self,
        audio: bytes,
        mime_type: str = "audio/webm",
        language: str | None = None,
        prompt: str | None = None,
    ) -> TranscriptionResult:
        """Transcribe `audio` and return the parsed verbose response.

        Raises:
            TranscriptionError: When the payload is out of bounds, the service is
                not configured, or the service fails or returns garbage.
        """
        if not self.base_url:
            raise TranscriptionError(
                "Transcription service not configured",
                TranscriptionErrorCode.SERVICE_ERROR,
                "TRANSCRIPTION_API_URL is not set",
            )
        if not self.api_key:
            raise TranscriptionError(
                "Transcription service authentication missing",
                TranscriptionErrorCode.SERVICE_ERROR,
                "TRANSCRIPTION_API_KEY is not set",
            )

        size = len(audio)
        if size > self.config.max_bytes:
            size_mb = size / (1024 * 1024)
            max_mb = self.config.max_bytes / (1024 * 1024)
            raise TranscriptionError(
                "Audio file exceeds maximum size limit",
                TranscriptionErrorCode.FILE_TOO_LARGE,
                f"File size is {size_mb:.2f}MB, maximum allowed is {max_mb:.0f}MB",
            )
        if size < self.config.min_bytes:
            raise TranscriptionError(
                "Audio file too small",
                TranscriptionErrorCode.INVALID_FORMAT,
                f"File size is {size} bytes, minimum is {self.config.min_bytes} bytes",
            )

        if prompt is None:
            if language:
                prompt = f"Transcribe this debate speech clearly. The speaker is using {language}."
            else:
                prompt = "Transcribe this debate speech clearly and accurately."

        extension = MIME_EXTENSIONS.get(mime_type, "webm")
        files = {"file": (f"audio.{extension}", audio, mime_type)}
        data = {
            "model": self.config.model,
            "response_format": "verbose_json",
            "prompt": prompt,
        }
        if language:
            data["language"] = language

        url = f"{self.base_url.rstrip('/')}/v1/audio/transcriptions"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Accept-Encoding": "identity",
        }

        logger.info(f"Transcribing {size} bytes of {mime_type}")
        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.timeout
            ) as client:
                response = await client.post(url, data=data, files=files, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Transcription request failed: {e}")
            raise TranscriptionError(
                "Transcription failed", TranscriptionErrorCode.SERVICE_ERROR, str(e)
            ) from e

        if response.is_error:
            logger.error(f"Transcription API error: {response.status_code} {response.text}")
            details = f"{response.status_code} {response.reason_phrase}"
            if response.text:
                details += f": {response.text}"
            raise TranscriptionError(
                "Transcription service request failed",
                TranscriptionErrorCode.TRANSCRIPTION_FAILED,
                details,
            )

        try:
            result = TranscriptionResult.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise TranscriptionError(
                "Invalid transcription response",
                TranscriptionErrorCode.SERVICE_ERROR,
                "Whisper API returned invalid response format",
            ) from e

        if not result.text:
            raise TranscriptionError(
                "Invalid transcription response",
                TranscriptionErrorCode.SERVICE_ERROR,
                "Whisper API returned no text",
            )

        logger.debug(f"Transcription succeeded: {result.text[:100]}")
        return result
