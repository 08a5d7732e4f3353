"""
Concern Detector

Scores a transcript segment for concerning emotional content and decides
whether spoken feedback should fire. Keyword heuristics, not a classifier:
the weights below are configuration, not calibrated values.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence
import logging
import re
import time

from .models import InsightResult, TranscriptEntry
from .rules import CONCERNING_KEYWORDS, INTENSITY_KEYWORDS, contains_keyword, match_keywords

logger = logging.getLogger(__name__)


@dataclass
class ConcernWeights:
    """Heuristic weights for concern scoring."""
    concerning_keyword: float = 0.3
    intensity_keyword: float = 0.1
    negative_sentiment: float = 0.4
    repeated_concern: float = 0.5
    repeated_concern_min_entries: int = 2
    recent_window: int = 3
    threshold: float = 0.5


DEFAULT_WEIGHTS = ConcernWeights()

# Ordered issue categories used to open the spoken response.
ISSUE_OPENINGS = [
    (("stressed", "overwhelmed"), "stress and feeling overwhelmed"),
    (("anxious", "worried"), "anxiety and worry"),
    (("sad", "lonely"), "feeling sad and lonely"),
    (("tired", "exhausted"), "feeling tired and exhausted"),
    (("failing", "not good enough"), "feeling like you're not good enough"),
]
FALLBACK_OPENING = "what you're going through"

NEGATIVE_EMPATHY_LINE = "Remember, it's okay to not be okay sometimes."
CLOSING_LINE = "You're doing better than you think."


def score_concern(
    transcript_text: str,
    analysis: Optional[InsightResult],
    recent_entries: Sequence[TranscriptEntry] = (),
    weights: ConcernWeights = DEFAULT_WEIGHTS,
) -> float:
    """
    Sum the concern heuristics for one segment.

    recent_entries are the entries preceding the current segment; only the
    last `weights.recent_window` of them are considered. The sum is not
    capped.
    """
    insight_text = analysis.insights if analysis else ""
    level = 0.0

    # 1. Concerning keywords in the transcript or the insight text.
    # Prefix match, so inflections count ("sadness", "struggling").
    for keyword in CONCERNING_KEYWORDS:
        if (contains_keyword(transcript_text, keyword, prefix=True)
                or contains_keyword(insight_text, keyword, prefix=True)):
            level += weights.concerning_keyword

    # 2. Emotional intensity in the raw transcript (whole words: "so" is not "soon")
    level += weights.intensity_keyword * len(match_keywords(transcript_text, INTENSITY_KEYWORDS))

    # 3. Mood analysis
    if analysis and analysis.sentiment == "negative":
        level += weights.negative_sentiment

    # 4. Repeated concern across recent segments
    recent = list(recent_entries)[-weights.recent_window:] if weights.recent_window else []
    concerning_segments = sum(
        1 for entry in recent
        if any(contains_keyword(entry.text, k, prefix=True) for k in CONCERNING_KEYWORDS)
    )
    if concerning_segments >= weights.repeated_concern_min_entries:
        level += weights.repeated_concern

    return level


def recommends_feedback(concern_level: float, weights: ConcernWeights = DEFAULT_WEIGHTS) -> bool:
    """Threshold is inclusive."""
    return concern_level >= weights.threshold


def build_feedback_text(analysis: Optional[InsightResult], transcript_text: str) -> str:
    """Compose the short empathetic response that gets spoken back."""
    opening = FALLBACK_OPENING
    for keywords, phrase in ISSUE_OPENINGS:
        if any(contains_keyword(transcript_text, k, prefix=True) for k in keywords):
            opening = phrase
            break

    parts: List[str] = [f"I hear you're dealing with {opening}."]

    if analysis and analysis.insights:
        first_sentence = re.split(r"\.", analysis.insights, maxsplit=1)[0].strip()
        if first_sentence:
            parts.append(first_sentence + ".")

    if analysis:
        if analysis.recommendations:
            parts.append(analysis.recommendations[0])
        elif analysis.action_items:
            parts.append(analysis.action_items[0])

        if analysis.sentiment == "negative":
            parts.append(NEGATIVE_EMPATHY_LINE)

    parts.append(CLOSING_LINE)
    return " ".join(parts)


class VoiceFeedbackGate:
    """
    Wall-clock cooldown between spoken feedbacks.

    try_acquire() reserves the window up front so two segments analyzed
    concurrently cannot both speak. commit() restarts the window at the
    moment the feedback is actually emitted; release() gives the
    reservation back when nothing was emitted.
    """

    def __init__(self, cooldown_seconds: float = 30.0, clock: Callable[[], float] = time.time):
        self.cooldown_seconds = cooldown_seconds
        self.clock = clock
        self.last_feedback: Optional[float] = None
        self._previous: Optional[float] = None

    def can_speak_now(self) -> bool:
        if self.last_feedback is None:
            return True
        return self.clock() - self.last_feedback >= self.cooldown_seconds

    def try_acquire(self) -> bool:
        if not self.can_speak_now():
            logger.info("Voice feedback skipped due to cooldown")
            return False
        self._previous = self.last_feedback
        self.last_feedback = self.clock()
        return True

    def commit(self):
        """Mark feedback as emitted now; the cooldown runs from here."""
        self.last_feedback = self.clock()
        self._previous = None

    def release(self):
        """Undo the last reservation."""
        self.last_feedback = self._previous
        self._previous = None

    def reset(self):
        self.last_feedback = None
        self._previous = None
