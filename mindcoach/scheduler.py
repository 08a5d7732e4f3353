"""
Background Coaching Scheduler

Runs on its own timer, independent of segment rotation. Each cycle
produces up to four tips:

1. Time-based      - a tip for the current part of the day
2. Activity-based  - a tip for what the last few entries talk about
3. AI-contextual   - a short generated tip about the latest entry
4. Pattern         - a generated summary over the day's entries (every few hours)

Every candidate is gated by the nudge throttle before it is kept.
"""

from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence
import asyncio
import logging
import random

from .config import OrchestratorSettings
from .models import CoachingTip, Priority, TipSource, TranscriptEntry, UserProfile
from .rules import (
    ACTIVITY_BASED_COACHING,
    TIME_BASED_COACHING,
    day_segment_for_hour,
    detect_activity,
    personalize,
)
from .services.insights import InsightService, contextual_tip_prompt
from .throttle import should_show_nudge

logger = logging.getLogger(__name__)


def time_based_tip(
    profile: Optional[UserProfile],
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> CoachingTip:
    """Random tip from the day segment containing now.hour."""
    now = now or datetime.now()
    rng = rng or random.Random()
    segment = TIME_BASED_COACHING[day_segment_for_hour(now.hour)]
    return CoachingTip(
        message=personalize(rng.choice(segment.tips), profile),
        category="time_based",
        priority=Priority.MEDIUM,
        source=TipSource.TIME_BASED,
        timestamp=now,
    )


def activity_based_tip(
    entries: Sequence[TranscriptEntry],
    profile: Optional[UserProfile],
    context_entries: int = 3,
    now: Optional[datetime] = None,
    rng: Optional[random.Random] = None,
) -> Optional[CoachingTip]:
    """Tip for the first activity mentioned in the last few entries, if any."""
    if not entries:
        return None
    rng = rng or random.Random()

    recent_text = " ".join(e.text for e in list(entries)[-context_entries:])
    activity = detect_activity(recent_text)
    if activity is None:
        return None

    return CoachingTip(
        message=personalize(rng.choice(ACTIVITY_BASED_COACHING[activity].tips), profile),
        category="activity_based",
        priority=Priority.MEDIUM,
        source=TipSource.ACTIVITY_BASED,
        timestamp=now or datetime.now(),
    )


class BackgroundCoachingScheduler:
    """
    Periodic generator of proactive coaching tips.

    The scheduler keeps no transcript of its own: each cycle is handed the
    current transcript, profile and history by its owner.
    """

    def __init__(
        self,
        insight_service: Optional[InsightService] = None,
        settings: Optional[OrchestratorSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.insight_service = insight_service
        self.settings = settings or OrchestratorSettings()
        self.rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _ai_available(self) -> bool:
        return self.insight_service is not None and self.insight_service.configured

    async def ai_contextual_tip(
        self,
        entries: Sequence[TranscriptEntry],
        profile: Optional[UserProfile],
        now: Optional[datetime] = None,
    ) -> Optional[CoachingTip]:
        if not entries or not self._ai_available():
            return None

        text = await self.insight_service.generate_text(
            contextual_tip_prompt(entries[-1].text, profile)
        )
        if not text:
            return None

        return CoachingTip(
            message=text.strip(),
            category="ai_generated",
            priority=Priority.MEDIUM,
            source=TipSource.AI_CONTEXTUAL,
            timestamp=now or datetime.now(),
        )

    def pattern_analysis_due(
        self,
        entries: Sequence[TranscriptEntry],
        history: Sequence[CoachingTip],
        now: Optional[datetime] = None,
    ) -> bool:
        if len(entries) < self.settings.pattern_analysis_min_entries:
            return False

        previous = [
            tip for tip in history
            if getattr(tip, "source", None) == TipSource.PATTERN_ANALYSIS
        ]
        if not previous:
            return True

        now = now or datetime.now()
        last = max(tip.timestamp for tip in previous)
        hours_since = (now - last).total_seconds() / 3600
        return hours_since >= self.settings.pattern_analysis_interval_hours

    async def pattern_analysis_tip(
        self,
        entries: Sequence[TranscriptEntry],
        profile: Optional[UserProfile],
        now: Optional[datetime] = None,
    ) -> Optional[CoachingTip]:
        if not self._ai_available():
            return None

        insights = await self.insight_service.analyze_patterns(entries, profile)
        if not insights or not insights.get("encouragement"):
            return None

        return CoachingTip(
            message=str(insights["encouragement"]),
            category="pattern_analysis",
            priority=Priority.LOW,
            source=TipSource.PATTERN_ANALYSIS,
            timestamp=now or datetime.now(),
            insights=insights,
        )

    async def generate_tips(
        self,
        entries: Sequence[TranscriptEntry],
        profile: Optional[UserProfile],
        history: Sequence = (),
        now: Optional[datetime] = None,
    ) -> List[CoachingTip]:
        """
        One cycle's worth of tips, each already approved by the throttle.

        Args:
            entries: Transcript so far, oldest first
            profile: User profile (optional)
            history: Nudges and tips already shown, for throttling
            now: Reference time (defaults to datetime.now())
        """
        now = now or datetime.now()
        entries = list(entries)
        tips: List[CoachingTip] = []

        def keep(tip: Optional[CoachingTip]):
            if tip is not None and should_show_nudge(tip, history, profile, now):
                tips.append(tip)

        keep(time_based_tip(profile, now, self.rng))
        keep(activity_based_tip(entries, profile, self.settings.activity_context_entries, now, self.rng))

        try:
            keep(await self.ai_contextual_tip(entries, profile, now))
        except Exception as e:
            logger.error(f"AI contextual tip failed: {e}")

        if self.pattern_analysis_due(entries, history, now):
            try:
                keep(await self.pattern_analysis_tip(entries, profile, now))
            except Exception as e:
                logger.error(f"Pattern analysis failed: {e}")

        return tips

    def start(self, cycle: Callable[[], Awaitable]):
        """Run `cycle` now and then every coaching_interval seconds."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(cycle))

    async def _loop(self, cycle: Callable[[], Awaitable]):
        while True:
            try:
                await cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Background coaching cycle failed: {e}")
            await asyncio.sleep(self.settings.coaching_interval)

    async def stop(self):
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
