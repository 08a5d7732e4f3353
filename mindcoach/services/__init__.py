"""External service adapters: speech-to-text, insights, text-to-speech."""

from .transcription import Transcriber, WhisperTranscriber
from .insights import GeminiInsightService, InsightService
from .speech import (
    AudioPlayer,
    ElevenLabsSynthesizer,
    LocalVoiceSynthesizer,
    SpeechSynthesizer,
    create_synthesizer,
)

__all__ = [
    "Transcriber",
    "WhisperTranscriber",
    "InsightService",
    "GeminiInsightService",
    "SpeechSynthesizer",
    "AudioPlayer",
    "ElevenLabsSynthesizer",
    "LocalVoiceSynthesizer",
    "create_synthesizer",
]
