"""
Engine Configuration

Loads environment variables and provides configuration settings.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List

from dotenv import load_dotenv

# Load .env.local first (for local development), then .env as fallback
ROOT_DIR = Path(__file__).parent.parent
env_local = ROOT_DIR / '.env.local'
env_file = ROOT_DIR / '.env'

if env_local.exists():
    load_dotenv(env_local)
elif env_file.exists():
    load_dotenv(env_file)

# Gemini (insight generation + coaching tips)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODELS: List[str] = [
    m.strip()
    for m in os.getenv(
        "GEMINI_MODELS", "gemini-2.0-flash,gemini-1.5-flash,gemini-1.5-pro"
    ).split(",")
    if m.strip()
]

if not GEMINI_API_KEY:
    print("=" * 60)
    print("⚠️  WARNING: GEMINI_API_KEY not found!")
    print("   Insight generation will use demo mode.")
    print("   To enable Gemini AI:")
    print("   1. Get a key from: https://aistudio.google.com/")
    print("   2. Add to .env.local: GEMINI_API_KEY=your_key")
    print("=" * 60)

# Speech-to-text (OpenAI Whisper)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
WHISPER_MODEL = os.getenv("WHISPER_MODEL", "whisper-1")

# Text-to-speech
SPEECH_PROVIDER = os.getenv("SPEECH_PROVIDER", "elevenlabs")  # "elevenlabs" or "local"
ELEVEN_LABS_API_KEY = os.getenv("ELEVEN_LABS_API_KEY")
ELEVEN_LABS_BASE_URL = os.getenv("ELEVEN_LABS_BASE_URL", "https://api.elevenlabs.io/v1")
ELEVEN_LABS_VOICE_ID = os.getenv("ELEVEN_LABS_VOICE_ID", "pNInz6obpgDQGcFmaJgB")
ELEVEN_LABS_MODEL = os.getenv("ELEVEN_LABS_MODEL", "eleven_monolingual_v1")

# Audio files (captured segments and synthesized feedback)
RECORDINGS_DIR = Path(os.getenv("RECORDINGS_DIR", str(ROOT_DIR / "recordings")))
SAMPLE_RATE = int(os.getenv("SAMPLE_RATE", "16000"))

# Server Config
BACKEND_HOST = os.getenv("BACKEND_HOST", "0.0.0.0")
BACKEND_PORT = int(os.getenv("BACKEND_PORT", "8000"))
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass
class OrchestratorSettings:
    """Timing and threshold constants for the recording engine (seconds)."""
    segment_duration: float = float(os.getenv("SEGMENT_DURATION_SECONDS", "10"))
    coaching_interval: float = float(os.getenv("COACHING_INTERVAL_SECONDS", str(30 * 60)))
    voice_feedback_cooldown: float = float(os.getenv("VOICE_FEEDBACK_COOLDOWN_SECONDS", "30"))
    moment_threshold: float = 0.7
    concern_threshold: float = 0.5
    activity_context_entries: int = 3
    pattern_analysis_interval_hours: float = 4.0
    pattern_analysis_min_entries: int = 5
    rotation_settle_delay: float = 0.1
