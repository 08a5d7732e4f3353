"""
Recording Orchestrator

Owns the record / pause / resume / stop lifecycle, rotates fixed-length
audio segments and drives every closed segment through the pipeline:

    transcribe -> append -> concern + voice feedback -> static nudge
               -> activity tip -> moment detection

Everything runs on one asyncio event loop. The rotation timer and the
background coaching timer are tasks owned by the orchestrator; segment
pipelines run as tracked tasks so a slow transcription never delays the
next rotation.
"""

from datetime import datetime
from typing import Awaitable, List, Optional, Set
import asyncio
import logging
import random
import time

from .capture import AudioCapture
from .concern import (
    ConcernWeights,
    VoiceFeedbackGate,
    build_feedback_text,
    recommends_feedback,
    score_concern,
)
from .config import OrchestratorSettings
from .errors import AlreadyRunningError, CaptureDeviceError, MicrophonePermissionError
from .events import CoachingCallbacks
from .models import (
    CoachingTip,
    InsightResult,
    Moment,
    Nudge,
    Priority,
    RecordingStatus,
    ReflectionReply,
    TipSource,
    TranscriptEntry,
    UserProfile,
    VoiceFeedbackEvent,
)
from .moments import MomentDetector
from .rules import check_static_nudges
from .scheduler import BackgroundCoachingScheduler, activity_based_tip
from .services.insights import InsightService
from .services.speech import AudioPlayer, SpeechSynthesizer
from .services.transcription import Transcriber
from .throttle import should_show_nudge

logger = logging.getLogger(__name__)

REFLECTION_FALLBACK_REPLY = (
    "I understand how you're feeling. Let's work through this together. "
    "What specific aspect would you like to focus on right now?"
)


class RecordingSession:
    """Lifecycle flags. is_paused is only ever True while is_recording is."""

    def __init__(self):
        self.is_recording = False
        self.is_paused = False

    def begin(self):
        if self.is_recording:
            raise AlreadyRunningError("Recording already in progress")
        self.is_recording = True
        self.is_paused = False

    def end(self):
        self.is_recording = False
        self.is_paused = False

    def pause(self) -> bool:
        if not self.is_recording:
            return False
        self.is_paused = True
        return True

    def resume(self):
        self.is_paused = False


class RecordingOrchestrator:
    """
    Continuous recording and coaching engine.

    Usage:
        orchestrator = RecordingOrchestrator(capture, transcriber, insights, synthesizer)
        await orchestrator.initialize(profile, callbacks)
        await orchestrator.start_recording()
        ...
        await orchestrator.dispose()
    """

    def __init__(
        self,
        capture: AudioCapture,
        transcriber: Transcriber,
        insight_service: InsightService,
        synthesizer: SpeechSynthesizer,
        settings: Optional[OrchestratorSettings] = None,
        player: Optional[AudioPlayer] = None,
        clock=time.time,
        rng: Optional[random.Random] = None,
    ):
        self.capture = capture
        self.transcriber = transcriber
        self.insight_service = insight_service
        self.synthesizer = synthesizer
        self.player = player
        self.settings = settings or OrchestratorSettings()
        self.clock = clock
        self.rng = rng or random.Random()

        self.session = RecordingSession()
        self.concern_weights = ConcernWeights(threshold=self.settings.concern_threshold)
        self.feedback_gate = VoiceFeedbackGate(self.settings.voice_feedback_cooldown, clock)
        self.moment_detector = MomentDetector(self.settings.moment_threshold)
        self.scheduler = BackgroundCoachingScheduler(insight_service, self.settings, self.rng)

        self.profile: Optional[UserProfile] = None
        self.callbacks = CoachingCallbacks()
        self.initialized = False

        # Session memory
        self.transcript: List[TranscriptEntry] = []
        self.moments: List[Moment] = []
        self.nudge_history: List[Nudge] = []
        self.coaching_history: List[CoachingTip] = []

        self._rotation_lock = asyncio.Lock()
        self._rotation_task: Optional[asyncio.Task] = None
        self._pipeline_tasks: Set[asyncio.Task] = set()
        self._last_append_turn: Optional[asyncio.Event] = None
        self._segment_started_at: Optional[float] = None
        self._stopping = False

    # ==================== LIFECYCLE ====================

    async def initialize(self, profile: Optional[UserProfile], callbacks: Optional[CoachingCallbacks] = None):
        """
        Store the profile and callbacks and check microphone access.

        Raises:
            MicrophonePermissionError: If the capture device refuses access
        """
        self.profile = profile
        self.callbacks = callbacks or CoachingCallbacks()

        if not await self.capture.request_permission():
            raise MicrophonePermissionError("Microphone permission denied")

        self.initialized = True
        logger.info(
            f"Recording orchestrator initialized with "
            f"{self.settings.segment_duration:g}-second segments"
        )

    async def dispose(self):
        """Stop recording and give the capture device back."""
        if self.session.is_recording:
            await self.stop_recording()
        await self.capture.release()
        self.initialized = False

    async def start_recording(self) -> bool:
        """
        Open the first segment and arm the rotation and coaching timers.

        Returns:
            False if a session is already running (nothing changes)

        Raises:
            CaptureDeviceError: If the first segment cannot be opened
        """
        try:
            self.session.begin()
        except AlreadyRunningError as e:
            logger.warning(str(e))
            return False

        logger.info(f"Starting continuous recording with {self.settings.segment_duration:g}-second segments")
        try:
            async with self._rotation_lock:
                await self._open_segment()
        except CaptureDeviceError:
            self.session.end()
            raise

        if self._stopping or not self.session.is_recording:
            # stop_recording() ran while the first segment was opening
            logger.info("Recording stopped before start completed")
            return False

        self._rotation_task = asyncio.create_task(self._rotation_loop())
        self.scheduler.start(self._coaching_cycle)
        return True

    async def stop_recording(self) -> bool:
        """
        Cancel both timers, close the open segment and wait for every
        in-flight pipeline to finish. No-op (False) when idle.
        """
        if not self.session.is_recording or self._stopping:
            logger.warning("No recording in progress")
            return False

        self._stopping = True
        logger.info("Stopping continuous recording...")
        try:
            task, self._rotation_task = self._rotation_task, None
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
            await self.scheduler.stop()

            # Waits out a rotation already in progress
            async with self._rotation_lock:
                await self._close_and_dispatch()

            await self._drain_pipelines()
        finally:
            self.session.end()
            self._stopping = False

        logger.info("Recording stopped")
        return True

    def pause_recording(self):
        """Suppress segment rotation, e.g. while feedback audio plays."""
        if not self.session.pause():
            logger.info("Pause ignored: not recording")
            return
        logger.info("Recording paused for audio playback")

    def resume_recording(self):
        self.session.resume()
        logger.info("Recording resumed")

    # ==================== ROTATION ====================

    async def _open_segment(self):
        await self.capture.open_segment()
        self._segment_started_at = self.clock()
        logger.debug("Started new recording segment")

    async def _close_and_dispatch(self):
        if not self.capture.is_open:
            return

        started = self._segment_started_at
        self._segment_started_at = None
        try:
            audio_ref = await self.capture.close_segment()
        except Exception as e:
            logger.error(f"Error closing recording segment: {e}")
            return

        duration = self.clock() - started if started is not None else 0.0
        if audio_ref:
            self._dispatch(audio_ref, duration)

    async def _rotate(self):
        async with self._rotation_lock:
            if self._stopping or not self.session.is_recording or self.session.is_paused:
                return

            await self._close_and_dispatch()
            await asyncio.sleep(self.settings.rotation_settle_delay)

            if self._stopping or not self.session.is_recording or self.session.is_paused:
                return
            try:
                await self._open_segment()
            except CaptureDeviceError as e:
                # The next tick retries
                logger.error(f"Error starting recording segment: {e}")

    async def _rotation_loop(self):
        while True:
            await asyncio.sleep(self.settings.segment_duration)

            if self.session.is_paused:
                logger.debug("Rotation skipped: paused")
                continue
            if self._rotation_lock.locked():
                logger.debug("Rotation skipped: previous rotation still running")
                continue

            try:
                # Shielded so stop() cannot interrupt a half-done rotation
                await asyncio.shield(self._rotate())
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error rotating recording: {e}")

    # ==================== PIPELINE ====================

    def _dispatch(self, audio_ref: str, duration: float):
        previous = self._last_append_turn
        turn = asyncio.Event()
        self._last_append_turn = turn

        task = asyncio.create_task(self._process_segment(audio_ref, duration, previous, turn))
        self._pipeline_tasks.add(task)
        task.add_done_callback(self._pipeline_tasks.discard)

    async def _drain_pipelines(self):
        while self._pipeline_tasks:
            await asyncio.gather(*list(self._pipeline_tasks), return_exceptions=True)

    async def _transcribe(self, audio_ref: str) -> Optional[str]:
        try:
            return await self.transcriber.transcribe(audio_ref)
        except Exception as e:
            logger.error(f"Transcription failed, treating segment as silent: {e}")
            return None

    async def _process_segment(
        self,
        audio_ref: str,
        duration: float,
        previous_turn: Optional[asyncio.Event],
        turn: asyncio.Event,
    ):
        try:
            text = await self._transcribe(audio_ref)
            # Append in segment-close order
            if previous_turn is not None:
                await previous_turn.wait()

            text = (text or "").strip()
            if not text:
                logger.info("No speech detected in this segment")
                return

            entry = TranscriptEntry(
                timestamp=datetime.now(),
                text=text,
                audio_ref=audio_ref,
                duration_seconds=duration,
            )
            self.transcript.append(entry)
            snapshot = list(self.transcript)
        finally:
            turn.set()

        await self.callbacks.emit("on_transcript_update", snapshot)

        await self._run_step("concern analysis", self._handle_concern(entry, snapshot[:-1]))
        await self._run_step("static nudges", self._handle_static_nudges(entry.text))
        await self._run_step("activity coaching", self._handle_activity(snapshot))
        await self._run_step("moment detection", self._handle_moment(entry))

    async def _run_step(self, name: str, step: Awaitable):
        try:
            await step
        except Exception as e:
            logger.error(f"Pipeline step '{name}' failed: {e}")

    def _shown_history(self) -> list:
        return list(self.nudge_history) + list(self.coaching_history)

    async def _handle_concern(self, entry: TranscriptEntry, recent: List[TranscriptEntry]):
        analysis = await self.insight_service.generate_insights(entry.text)
        level = score_concern(entry.text, analysis, recent, self.concern_weights)
        logger.debug(f"Concern level {level:.2f}")

        if recommends_feedback(level, self.concern_weights):
            logger.info(f"Concerning content detected (level {level:.2f}), providing voice feedback")
            await self.provide_voice_feedback(analysis, entry.text)

    async def provide_voice_feedback(
        self,
        analysis: Optional[InsightResult],
        transcript_text: str,
    ) -> Optional[VoiceFeedbackEvent]:
        """
        Speak an empathetic response, at most once per cooldown window.

        Rotation is paused for the synthesis and playback window and always
        resumed afterwards, including when synthesis fails.
        """
        if not self.feedback_gate.try_acquire():
            return None

        self.pause_recording()
        emitted = False
        try:
            text = build_feedback_text(analysis, transcript_text)
            logger.info(f"Voice feedback text: {text}")

            audio_ref = await self.synthesizer.synthesize(text)
            if not audio_ref:
                return None

            event = VoiceFeedbackEvent(text=text, audio_ref=audio_ref)
            self.feedback_gate.commit()
            emitted = True
            await self.callbacks.emit("on_voice_feedback", event)

            tip = CoachingTip(
                message=text,
                category=TipSource.REAL_TIME_FEEDBACK.value,
                priority=Priority.HIGH,
                source=TipSource.REAL_TIME_FEEDBACK,
                timestamp=event.timestamp,
            )
            self.coaching_history.append(tip)
            await self.callbacks.emit("on_coaching_generated", tip)

            if self.player is not None:
                await self.player.play(audio_ref)
            return event
        finally:
            if not emitted:
                self.feedback_gate.release()
            self.resume_recording()

    async def _handle_static_nudges(self, text: str) -> Optional[Nudge]:
        """Show the first matching static nudge, throttle permitting."""
        nudges = check_static_nudges(text, self.profile)
        if not nudges:
            return None

        nudge = nudges[0]
        if not should_show_nudge(nudge, self._shown_history(), self.profile):
            logger.info(f"Nudge '{nudge.trigger}' throttled ({nudge.category})")
            return None

        self.nudge_history.append(nudge)
        await self.callbacks.emit("on_nudge_triggered", nudge)
        return nudge

    async def _handle_activity(self, snapshot: List[TranscriptEntry]):
        tip = activity_based_tip(
            snapshot,
            self.profile,
            self.settings.activity_context_entries,
            rng=self.rng,
        )
        if tip is None or not should_show_nudge(tip, self._shown_history(), self.profile):
            return

        self.coaching_history.append(tip)
        await self.callbacks.emit("on_coaching_generated", tip)

    async def _handle_moment(self, entry: TranscriptEntry):
        moment = self.moment_detector.detect(entry.text, entry.audio_ref)
        if moment is None:
            return

        self.moments.append(moment)
        logger.info(f"Significant moment detected: {moment.type.value} ({moment.significance:.2f})")
        await self.callbacks.emit("on_moment_detected", moment)

    # ==================== REFLECTION ====================

    async def reflect(self, text: str) -> ReflectionReply:
        """
        Answer a typed reflection or chat message.

        The message gets the same insight analysis and static-nudge check as
        a recorded segment, and the reply is spoken with rotation paused for
        the playback window. It is not added to the transcript and does not
        count against the voice-feedback cooldown.

        Raises:
            ValueError: If the message is blank
        """
        text = (text or "").strip()
        if not text:
            raise ValueError("Reflection text is empty")

        analysis = await self.insight_service.generate_insights(text)
        reply = analysis.insights or REFLECTION_FALLBACK_REPLY

        nudges = []
        try:
            nudge = await self._handle_static_nudges(text)
            if nudge is not None:
                nudges.append(nudge)
        except Exception as e:
            logger.error(f"Static nudge check failed for reflection: {e}")

        audio_ref = await self._speak(reply)
        return ReflectionReply(text=text, reply=reply, analysis=analysis, nudges=nudges, audio_ref=audio_ref)

    async def _speak(self, text: str) -> Optional[str]:
        self.pause_recording()
        try:
            audio_ref = await self.synthesizer.synthesize(text)
            if audio_ref and self.player is not None:
                await self.player.play(audio_ref)
            return audio_ref
        except Exception as e:
            logger.error(f"Speaking reply failed: {e}")
            return None
        finally:
            self.resume_recording()

    # ==================== BACKGROUND COACHING ====================

    async def _coaching_cycle(self):
        if not self.session.is_recording:
            return

        tips = await self.scheduler.generate_tips(self.transcript, self.profile, self._shown_history())
        for tip in tips:
            self.coaching_history.append(tip)
            await self.callbacks.emit("on_coaching_generated", tip)

        if tips:
            logger.info(f"Generated {len(tips)} background coaching tips")

    # ==================== QUERIES ====================

    def clear_data(self):
        """Empty the transcript and moment buffers together."""
        self.transcript.clear()
        self.moments.clear()
        logger.info("Transcript and moments cleared")

    def get_transcript(self) -> List[TranscriptEntry]:
        return list(self.transcript)

    def get_moments(self) -> List[Moment]:
        return list(self.moments)

    def get_coaching_history(self) -> List[CoachingTip]:
        return list(self.coaching_history)

    def get_nudge_history(self) -> List[Nudge]:
        return list(self.nudge_history)

    def update_user_profile(self, profile: UserProfile):
        self.profile = profile

    def get_recording_status(self) -> RecordingStatus:
        return RecordingStatus(
            is_recording=self.session.is_recording,
            is_paused=self.session.is_paused,
            transcript_count=len(self.transcript),
            moment_count=len(self.moments),
            current_segment="active" if self.capture.is_open else "none",
        )
