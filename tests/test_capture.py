"""
Tests for feedback playback error handling.
Run with: pytest tests/test_capture.py -v
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import logging
import pytest
from mindcoach.capture import SoundDevicePlayer


class TestSoundDevicePlayer:
    """Playback failures are logged, never raised."""

    @pytest.mark.asyncio
    async def test_undecodable_file_names_libsndfile(self, monkeypatch, caplog):
        player = SoundDevicePlayer()

        def fail(audio_ref):
            raise RuntimeError("Error opening 'voice.mp3': File contains data in an unknown format.")

        monkeypatch.setattr(player, "_play", fail)
        with caplog.at_level(logging.ERROR, logger="mindcoach.capture"):
            await player.play("voice.mp3")

        assert "Cannot decode voice.mp3" in caplog.text
        assert "libsndfile >= 1.1.0" in caplog.text

    @pytest.mark.asyncio
    async def test_device_error_logged(self, monkeypatch, caplog):
        player = SoundDevicePlayer()

        def fail(audio_ref):
            raise OSError("no output device")

        monkeypatch.setattr(player, "_play", fail)
        with caplog.at_level(logging.ERROR, logger="mindcoach.capture"):
            await player.play("voice.wav")

        assert "Playback failed for voice.wav" in caplog.text
        assert "libsndfile" not in caplog.text
