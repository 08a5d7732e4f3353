"""
Moment Detector

Flags transcript segments that carry an insight, a challenge, an
achievement or a struggle, using the same keyword-scoring approach as the
concern detector.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional, Tuple, FrozenSet
import uuid

from .models import Moment, MomentType
from .rules import (
    ACHIEVEMENT_KEYWORDS,
    CHALLENGE_KEYWORDS,
    INSIGHT_KEYWORDS,
    INTENSITY_KEYWORDS,
    PERSONAL_INSIGHT_PHRASES,
    SIGNIFICANT_KEYWORDS,
    STRUGGLE_KEYWORDS,
    contains_keyword,
    match_keywords,
)


@dataclass
class SignificanceWeights:
    significant_keyword: float = 0.3
    intensity_keyword: float = 0.2
    personal_insight: float = 0.4


# Checked in order; first category with a matching keyword wins.
MOMENT_CATEGORIES = [
    (MomentType.INSIGHT, INSIGHT_KEYWORDS),
    (MomentType.CHALLENGE, CHALLENGE_KEYWORDS),
    (MomentType.ACHIEVEMENT, ACHIEVEMENT_KEYWORDS),
    (MomentType.STRUGGLE, STRUGGLE_KEYWORDS),
]


def score_significance(
    transcript_text: str,
    weights: Optional[SignificanceWeights] = None,
) -> Tuple[float, FrozenSet[str]]:
    """Return (uncapped score, matched significant keywords)."""
    weights = weights or SignificanceWeights()

    keywords = match_keywords(transcript_text, SIGNIFICANT_KEYWORDS, prefix=True)
    score = weights.significant_keyword * len(keywords)
    score += weights.intensity_keyword * len(match_keywords(transcript_text, INTENSITY_KEYWORDS))

    if any(contains_keyword(transcript_text, phrase) for phrase in PERSONAL_INSIGHT_PHRASES):
        score += weights.personal_insight

    return score, frozenset(keywords)


def categorize_moment(keywords: Iterable[str]) -> MomentType:
    keywords = set(keywords)
    for moment_type, category_keywords in MOMENT_CATEGORIES:
        if keywords.intersection(category_keywords):
            return moment_type
    return MomentType.REFLECTION


class MomentDetector:
    """Creates Moment records for segments above the significance threshold."""

    def __init__(self, threshold: float = 0.7, weights: Optional[SignificanceWeights] = None):
        self.weights = weights or SignificanceWeights()
        self.threshold = threshold

    def detect(
        self,
        transcript_text: str,
        audio_ref: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> Optional[Moment]:
        score, keywords = score_significance(transcript_text, self.weights)
        if score < self.threshold:
            return None

        return Moment(
            id=uuid.uuid4().hex,
            timestamp=now or datetime.now(),
            transcript=transcript_text,
            significance=min(score, 1.0),
            keywords=keywords,
            type=categorize_moment(keywords),
            audio_ref=audio_ref,
        )
