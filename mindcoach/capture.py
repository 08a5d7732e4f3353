"""
Audio Capture

Microphone access for the recording loop. Each segment is one WAV file;
the reference handed back on close is its path.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
import asyncio
import logging
import threading
import time

from .errors import CaptureDeviceError
from .services.speech import AudioPlayer

logger = logging.getLogger(__name__)

CHANNELS = 1
SUBTYPE = "PCM_16"


class AudioCapture(ABC):
    """Abstract interface for a segmenting audio recorder."""

    @abstractmethod
    async def request_permission(self) -> bool:
        """True when the microphone may be used."""

    @abstractmethod
    async def open_segment(self):
        """
        Start recording a new segment.

        Raises:
            CaptureDeviceError: If the device cannot start
        """

    @abstractmethod
    async def close_segment(self) -> Optional[str]:
        """Stop the open segment and return its audio reference (None if nothing was open)."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether a segment is currently recording."""

    async def release(self):
        """Give the device back. Closes any open segment."""
        if self.is_open:
            await self.close_segment()


class SoundDeviceCapture(AudioCapture):
    """Records segments from the default (or a chosen) input with sounddevice."""

    def __init__(
        self,
        output_dir: Optional[Path] = None,
        sample_rate: Optional[int] = None,
        device_index: Optional[int] = None,
    ):
        from . import config

        self.output_dir = Path(output_dir or config.RECORDINGS_DIR / "segments")
        self.sample_rate = sample_rate or config.SAMPLE_RATE
        self.device_index = device_index
        self.stream = None
        self.sndfile = None
        self.current_path: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self.stream is not None

    async def request_permission(self) -> bool:
        import sounddevice as sd

        try:
            device = sd.query_devices(self.device_index, kind="input")
        except Exception as e:
            logger.error(f"No usable input device: {e}")
            return False
        return device.get("max_input_channels", 0) > 0

    async def open_segment(self):
        import sounddevice as sd
        import soundfile as sf

        if self.is_open:
            return

        self.output_dir.mkdir(parents=True, exist_ok=True)
        path = self.output_dir / f"segment_{time.strftime('%Y%m%d_%H%M%S')}_{time.monotonic_ns() % 1000000:06d}.wav"

        try:
            self.sndfile = sf.SoundFile(
                path,
                mode="w",
                samplerate=self.sample_rate,
                channels=CHANNELS,
                subtype=SUBTYPE,
            )
            self.current_path = path
            self.stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=CHANNELS,
                dtype="float32",
                callback=self._on_audio,
                blocksize=0,
                device=self.device_index,
            )
            self.stream.start()
        except Exception as e:
            self._discard()
            raise CaptureDeviceError(f"Could not start audio capture: {e}") from e

        logger.debug(f"Segment opened: {path}")

    def _on_audio(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Input stream status: {status}")
        with self._lock:
            if self.sndfile is not None:
                self.sndfile.write(indata.copy())

    def _close_stream_and_file(self) -> Optional[Path]:
        try:
            if self.stream is not None:
                self.stream.stop()
                self.stream.close()
        finally:
            self.stream = None
            with self._lock:
                if self.sndfile is not None:
                    self.sndfile.flush()
                    self.sndfile.close()
                    self.sndfile = None
        finished, self.current_path = self.current_path, None
        return finished

    def _discard(self):
        try:
            self._close_stream_and_file()
        except Exception as e:
            logger.debug(f"Cleanup after failed start: {e}")
        self.current_path = None

    async def close_segment(self) -> Optional[str]:
        if not self.is_open:
            return None
        finished = await asyncio.to_thread(self._close_stream_and_file)
        return str(finished) if finished else None


class SoundDevicePlayer(AudioPlayer):
    """
    Blocking playback of a rendered feedback file, run in a worker thread.

    Files are decoded with soundfile. WAV (pyttsx3) always works; MP3
    (ElevenLabs) needs libsndfile 1.1.0 or newer underneath soundfile.
    """

    def __init__(self, device_index: Optional[int] = None):
        self.device_index = device_index

    def _play(self, audio_ref: str):
        import sounddevice as sd
        import soundfile as sf

        data, sample_rate = sf.read(audio_ref, dtype="float32")
        sd.play(data, sample_rate, device=self.device_index)
        sd.wait()

    async def play(self, audio_ref: str):
        try:
            await asyncio.to_thread(self._play, audio_ref)
        except RuntimeError as e:
            # soundfile's LibsndfileError; usually an unsupported format
            logger.error(
                f"Cannot decode {audio_ref}: {e}. "
                f"MP3 playback requires libsndfile >= 1.1.0"
            )
        except Exception as e:
            logger.error(f"Playback failed for {audio_ref}: {e}")
