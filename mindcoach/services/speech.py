"""
Speech Synthesis

Turns feedback text into an audio file the presentation layer can play.
Two providers: ElevenLabs over HTTP, or pyttsx3 offline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
import asyncio
import logging
import uuid

import httpx

logger = logging.getLogger(__name__)


class SpeechSynthesizer(ABC):
    """Abstract interface for text-to-speech providers."""

    @abstractmethod
    async def synthesize(self, text: str) -> Optional[str]:
        """
        Render text to audio.

        Returns:
            Reference to the rendered audio (a file path), or None on failure
        """


class AudioPlayer(ABC):
    """Optional playback collaborator for synthesized feedback."""

    @abstractmethod
    async def play(self, audio_ref: str):
        """Play audio_ref and return when playback has finished."""


# ElevenLabs voice_settings presets
VOICE_SETTINGS: Dict[str, Dict] = {
    "real_time": {
        "stability": 0.3,
        "similarity_boost": 0.7,
        "style": 0.8,
        "use_speaker_boost": True,
    },
    "empathetic": {"stability": 0.5, "similarity_boost": 0.5},
    "encouraging": {"stability": 0.7, "similarity_boost": 0.3},
    "calming": {"stability": 0.8, "similarity_boost": 0.2},
}


def _output_path(output_dir: Path, suffix: str) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir / f"feedback_{uuid.uuid4().hex}{suffix}"


class ElevenLabsSynthesizer(SpeechSynthesizer):
    """ElevenLabs text-to-speech, saved as MP3."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
        base_url: Optional[str] = None,
        output_dir: Optional[Path] = None,
        voice_settings: str = "real_time",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        from .. import config

        self.api_key = api_key if api_key is not None else config.ELEVEN_LABS_API_KEY
        self.voice_id = voice_id or config.ELEVEN_LABS_VOICE_ID
        self.model_id = model_id or config.ELEVEN_LABS_MODEL
        self.base_url = (base_url or config.ELEVEN_LABS_BASE_URL).rstrip("/")
        self.output_dir = Path(output_dir or config.RECORDINGS_DIR / "feedback")
        self.voice_settings = VOICE_SETTINGS[voice_settings]
        self.timeout = timeout
        self.transport = transport

        if not self.api_key:
            logger.warning("ELEVEN_LABS_API_KEY not set; voice feedback is disabled")

    async def synthesize(self, text: str) -> Optional[str]:
        if not self.api_key or not text.strip():
            return None

        headers = {
            "Accept": "audio/mpeg",
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }
        body = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": self.voice_settings,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                r = await client.post(
                    f"{self.base_url}/text-to-speech/{self.voice_id}",
                    headers=headers,
                    json=body,
                )
                r.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"ElevenLabs API error: {e.response.status_code}")
            return None
        except httpx.HTTPError as e:
            logger.error(f"ElevenLabs request failed: {e}")
            return None

        path = _output_path(self.output_dir, ".mp3")
        path.write_bytes(r.content)
        logger.info(f"Voice feedback saved to {path}")
        return str(path)


@dataclass
class VoiceSettings:
    """pyttsx3 rate (words per minute) and volume (0.0 to 1.0)."""
    rate: int
    volume: float


TONE_SETTINGS: Dict[str, VoiceSettings] = {
    "calm": VoiceSettings(rate=150, volume=0.85),
    "cheerful": VoiceSettings(rate=175, volume=0.95),
    "neutral": VoiceSettings(rate=165, volume=0.9),
    "empathetic": VoiceSettings(rate=160, volume=0.85),
}


class LocalVoiceSynthesizer(SpeechSynthesizer):
    """
    Offline text-to-speech with pyttsx3, saved as WAV.

    pyttsx3 blocks while rendering, so each render runs in a worker thread.
    """

    def __init__(self, tone: str = "calm", output_dir: Optional[Path] = None):
        from .. import config

        self.settings = TONE_SETTINGS.get(tone, TONE_SETTINGS["neutral"])
        self.output_dir = Path(output_dir or config.RECORDINGS_DIR / "feedback")

    def _render(self, text: str, path: Path):
        import pyttsx3

        engine = pyttsx3.init()
        engine.setProperty("rate", self.settings.rate)
        engine.setProperty("volume", self.settings.volume)
        engine.save_to_file(text, str(path))
        engine.runAndWait()
        engine.stop()

    async def synthesize(self, text: str) -> Optional[str]:
        if not text.strip():
            return None

        path = _output_path(self.output_dir, ".wav")
        try:
            await asyncio.to_thread(self._render, text, path)
        except Exception as e:
            logger.error(f"Local TTS failed: {e}")
            return None

        if not path.exists():
            logger.error("Local TTS produced no audio file")
            return None
        return str(path)


def create_synthesizer(provider: Optional[str] = None, **kwargs) -> SpeechSynthesizer:
    """
    Factory for speech synthesizers.

    Args:
        provider: "elevenlabs" or "local" (defaults to SPEECH_PROVIDER)
        **kwargs: Passed to the synthesizer constructor
    """
    from .. import config

    provider = (provider or config.SPEECH_PROVIDER).lower()
    if provider == "elevenlabs":
        return ElevenLabsSynthesizer(**kwargs)
    elif provider == "local":
        return LocalVoiceSynthesizer(**kwargs)
    else:
        raise ValueError(f"Unknown speech provider: {provider}")
