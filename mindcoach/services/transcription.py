"""Speech-to-text abstraction for captured audio segments."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import logging

import httpx

from ..errors import TranscriptionError

logger = logging.getLogger(__name__)


class Transcriber(ABC):
    """Abstract interface for transcription providers."""

    @abstractmethod
    async def transcribe(self, audio_ref: str) -> Optional[str]:
        """Transcribe one closed segment.

        Args:
            audio_ref: Reference returned by the capture device (a file path)

        Returns:
            The transcript, or None when nothing could be transcribed

        Raises:
            TranscriptionError: On service or network failure
        """


class WhisperTranscriber(Transcriber):
    """OpenAI Whisper transcription over the REST API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        from .. import config

        self.api_key = api_key if api_key is not None else config.OPENAI_API_KEY
        self.model = model or config.WHISPER_MODEL
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.transport = transport

        if not self.api_key:
            logger.warning("OPENAI_API_KEY not set; speech-to-text is disabled")

    async def transcribe(self, audio_ref: str) -> Optional[str]:
        if not self.api_key:
            return None

        path = Path(audio_ref)
        if not path.exists():
            logger.warning(f"Audio segment not found: {audio_ref}")
            return None

        audio = path.read_bytes()
        if not audio:
            return None

        files = {"file": (path.name, audio, _mime_type(path))}
        data = {"model": self.model, "response_format": "json"}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(
                    f"{self.base_url}/audio/transcriptions",
                    headers=headers,
                    data=data,
                    files=files,
                )
                r.raise_for_status()
                payload = r.json()
        except httpx.HTTPStatusError as e:
            raise TranscriptionError(
                f"Whisper API error: {e.response.status_code} {e.response.text[:200]}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise TranscriptionError(f"Whisper request failed: {e}") from e

        text = (payload.get("text") or "").strip()
        return text or None


def _mime_type(path: Path) -> str:
    return {
        ".wav": "audio/wav",
        ".m4a": "audio/m4a",
        ".mp3": "audio/mpeg",
        ".flac": "audio/flac",
        ".ogg": "audio/ogg",
    }.get(path.suffix.lower(), "application/octet-stream")
