"""
Scripted capture for running the engine without a microphone.

ScriptedCapture hands out one line of text per segment as its audio
reference and ScriptTranscriber "transcribes" it back, so the whole
pipeline can be driven from a text file.
"""

from collections import deque
from typing import Iterable, List, Optional

from .capture import AudioCapture
from .errors import CaptureDeviceError
from .services.speech import SpeechSynthesizer
from .services.transcription import Transcriber

SCRIPT_PREFIX = "script:"


class ScriptedCapture(AudioCapture):
    """Each opened segment takes the next scripted line; silence once exhausted."""

    def __init__(self, lines: Iterable[str] = (), permission: bool = True, fail_on_open: bool = False):
        self.lines = deque(lines)
        self.permission = permission
        self.fail_on_open = fail_on_open
        self.current: Optional[str] = None
        self._open = False
        self.opened = 0
        self.closed = 0
        self.overlapping_opens = 0
        self.released = False

    @property
    def is_open(self) -> bool:
        return self._open

    async def request_permission(self) -> bool:
        return self.permission

    async def open_segment(self):
        if self.fail_on_open:
            raise CaptureDeviceError("Scripted capture device failure")
        if self._open:
            # a second segment while one is still recording
            self.overlapping_opens += 1
            return
        self._open = True
        self.opened += 1
        self.current = self.lines.popleft() if self.lines else ""

    async def close_segment(self) -> Optional[str]:
        if not self._open:
            return None
        self._open = False
        self.closed += 1
        text, self.current = self.current, None
        return SCRIPT_PREFIX + (text or "")

    async def release(self):
        await super().release()
        self.released = True

    @property
    def remaining(self) -> int:
        return len(self.lines)


class ScriptTranscriber(Transcriber):
    """Returns the text carried in a scripted audio reference."""

    def __init__(self):
        self.calls: List[str] = []

    async def transcribe(self, audio_ref: str) -> Optional[str]:
        self.calls.append(audio_ref)
        if not audio_ref.startswith(SCRIPT_PREFIX):
            return None
        return audio_ref[len(SCRIPT_PREFIX):] or None


class PrintingSynthesizer(SpeechSynthesizer):
    """Stands in for text-to-speech by echoing the text as the audio reference."""

    def __init__(self):
        self.spoken: List[str] = []

    async def synthesize(self, text: str) -> Optional[str]:
        self.spoken.append(text)
        return f"spoken:{len(self.spoken)}"
