"""
Nudge Throttle

Per-category daily caps deciding whether a nudge or tip may be surfaced.
Anything with `category` and `timestamp` attributes counts as history.
"""

from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Sequence

from .models import UserProfile

BASE_FREQUENCY: Dict[str, int] = {
    "focus": 3,  # times per day
    "stress": 2,
    "energy": 2,
    "confidence": 1,
    "relationships": 1,
    "ai_generated": 2,
    "time_based": 4,  # every 6 hours
    "activity_based": 2,
    "pattern_analysis": 1,  # once per day
}

LOOKBACK = timedelta(hours=24)
BUSY_HISTORY_SIZE = 8


def _has_challenge(profile: Optional[UserProfile], needle: str) -> bool:
    if not profile:
        return False
    return any(needle in challenge.lower() for challenge in profile.challenges)


def _recent(history: Sequence[Any], now: datetime) -> list:
    cutoff = now - LOOKBACK
    return [item for item in history if item.timestamp > cutoff]


def get_nudge_frequency(
    profile: Optional[UserProfile],
    recent_nudges: Sequence[Any] = (),
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Adjusted daily cap for every known category."""
    now = now or datetime.now()
    frequency = dict(BASE_FREQUENCY)

    if _has_challenge(profile, "distraction"):
        frequency["focus"] += 1
    if _has_challenge(profile, "anxiety"):
        frequency["stress"] += 1

    # Back off when the user has already seen a lot today
    if len(_recent(recent_nudges, now)) > BUSY_HISTORY_SIZE:
        for key in frequency:
            frequency[key] = max(1, frequency[key] - 1)

    return frequency


def should_show_nudge(
    candidate: Any,
    recent_nudges: Sequence[Any] = (),
    profile: Optional[UserProfile] = None,
    now: Optional[datetime] = None,
) -> bool:
    """Allow iff the trailing-24h count for the candidate's category is below its cap."""
    now = now or datetime.now()
    frequency = get_nudge_frequency(profile, recent_nudges, now)

    cap = frequency.get(candidate.category)
    if cap is None:
        return True

    shown = sum(1 for item in _recent(recent_nudges, now) if item.category == candidate.category)
    return shown < cap
