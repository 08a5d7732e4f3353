"""
Keyword Rule Set

Static coaching tables and the keyword matching shared by the detectors:
- Static nudges (phrase -> immediate message)
- Time-based tips (day segment -> tips)
- Activity-based tips (trigger words -> tips)
- Concern, intensity and significance keyword lists

Also holds personalize(), which adapts tip text to the user profile.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence
from functools import lru_cache
import re

from .models import Nudge, Priority, UserProfile


@dataclass(frozen=True)
class NudgeRule:
    message: str
    category: str
    priority: Priority


@dataclass(frozen=True)
class DaySegment:
    start: int  # hour, inclusive
    end: int    # hour, exclusive
    tips: Sequence[str]

    def contains(self, hour: int) -> bool:
        if self.start > self.end:
            # wraps across midnight
            return hour >= self.start or hour < self.end
        return self.start <= hour < self.end


@dataclass(frozen=True)
class ActivityRule:
    triggers: Sequence[str]
    tips: Sequence[str]


# Static nudge triggers for immediate response (insertion order = match order)
STATIC_NUDGES: Dict[str, NudgeRule] = {
    # Focus and productivity
    "can't focus": NudgeRule(
        "Take 5 minutes. Breathe deeply, then refocus on one task.",
        "focus", Priority.HIGH),
    "distracted": NudgeRule(
        "Try the 5-4-3-2-1 technique: Name 5 things you see, 4 you can touch, "
        "3 you hear, 2 you smell, 1 you taste.",
        "focus", Priority.MEDIUM),
    "procrastinating": NudgeRule(
        "Start with just 2 minutes. Often that's all it takes to get going.",
        "productivity", Priority.HIGH),
    # Energy and motivation
    "tired": NudgeRule(
        "Try a quick stretch or walk around. Movement can boost your energy!",
        "energy", Priority.MEDIUM),
    "exhausted": NudgeRule(
        "Consider a 10-minute power nap or a short walk outside.",
        "energy", Priority.HIGH),
    "unmotivated": NudgeRule(
        "Break your task into tiny steps. What's the smallest next action?",
        "motivation", Priority.MEDIUM),
    # Stress and anxiety
    "stressed": NudgeRule(
        "Take 3 deep breaths. Inhale for 4, hold for 4, exhale for 6.",
        "stress", Priority.HIGH),
    "anxious": NudgeRule(
        "Ground yourself: Name 5 things you can see, 4 you can touch, 3 you can hear.",
        "anxiety", Priority.HIGH),
    "overwhelmed": NudgeRule(
        "Break this down into smaller steps. What's the next right thing?",
        "stress", Priority.HIGH),
    # Time management
    "late": NudgeRule(
        "It's okay. Focus on what you can control right now.",
        "time", Priority.MEDIUM),
    "behind": NudgeRule(
        "Prioritize: What's most important right now?",
        "time", Priority.MEDIUM),
    "deadline": NudgeRule(
        "Focus on progress, not perfection. What can you complete now?",
        "time", Priority.HIGH),
    # Self-doubt and confidence
    "doubt": NudgeRule(
        "Remember your past successes. You've got this!",
        "confidence", Priority.MEDIUM),
    "can't do this": NudgeRule(
        "You don't have to do it perfectly. Just start.",
        "confidence", Priority.HIGH),
    "not good enough": NudgeRule(
        "You are enough. Your effort matters.",
        "confidence", Priority.HIGH),
    # Relationships and communication
    "argument": NudgeRule(
        "Take a moment to breathe. What's really important here?",
        "relationships", Priority.HIGH),
    "misunderstood": NudgeRule(
        "Try expressing your feelings with 'I feel...' statements.",
        "communication", Priority.MEDIUM),
    "conflict": NudgeRule(
        "Pause and reflect: What's your goal in this situation?",
        "relationships", Priority.HIGH),
}

TIME_BASED_COACHING: Dict[str, DaySegment] = {
    "morning": DaySegment(6, 10, (
        "Good morning! Start your day with 3 deep breaths to set a positive intention.",
        "Morning check-in: How are you feeling today? Take a moment to acknowledge your emotions.",
        "Consider setting one small, achievable goal for today. What would make today feel successful?",
        "Remember to hydrate! Your brain works better when you're well-hydrated.",
    )),
    "midday": DaySegment(10, 15, (
        "Midday check-in: How's your energy? Consider a quick stretch or walk to refresh.",
        "Take a moment to check in with your body. Are you holding tension anywhere?",
        "If you're feeling overwhelmed, try the 5-4-3-2-1 grounding technique.",
        "Remember to take breaks! Your brain needs rest to maintain focus.",
    )),
    "afternoon": DaySegment(15, 18, (
        "Afternoon energy dip? Try a 5-minute walk or some gentle stretching.",
        "How are you feeling about your progress today? Celebrate small wins!",
        "Consider what you've accomplished so far. You're doing great!",
        "Take a moment to plan your evening. What would help you wind down?",
    )),
    "evening": DaySegment(18, 22, (
        "Evening reflection: What went well today? What are you grateful for?",
        "Start winding down. Consider what would help you relax and prepare for rest.",
        "Take a moment to acknowledge your efforts today. You showed up!",
        "Evening check-in: How are you feeling? What do you need right now?",
    )),
    "late_night": DaySegment(22, 6, (
        "It's getting late. Consider what would help you prepare for restful sleep.",
        "Late night thoughts? Try writing them down to clear your mind.",
        "Remember that rest is productive too. Your brain needs sleep to process and grow.",
        "Take a few deep breaths and let go of today's worries. Tomorrow is a new day.",
    )),
}

ACTIVITY_BASED_COACHING: Dict[str, ActivityRule] = {
    "work_focus": ActivityRule(
        ("meeting", "deadline", "project", "work", "task", "email"),
        (
            "You're in work mode. Remember to take short breaks every 45 minutes.",
            "Focus on one task at a time. Multitasking can reduce your effectiveness.",
            "If you're feeling stuck, try stepping away for 2 minutes and returning with fresh eyes.",
            "Remember your goals. What's the most important thing to accomplish right now?",
        ),
    ),
    "social_interaction": ActivityRule(
        ("friend", "family", "colleague", "talk", "conversation", "meeting"),
        (
            "Social interactions can be energizing! How are you feeling about this connection?",
            "Remember to listen actively and be present in the conversation.",
            "If you're feeling anxious about social interaction, take a deep breath. You've got this!",
            "Authentic connections matter. Be yourself and trust the process.",
        ),
    ),
    "physical_activity": ActivityRule(
        ("exercise", "workout", "run", "walk", "gym", "sport"),
        (
            "Great job moving your body! How does it feel?",
            "Remember to stay hydrated during your activity.",
            "Listen to your body. It's okay to adjust intensity as needed.",
            "Movement is medicine for both body and mind. You're doing something great for yourself!",
        ),
    ),
    "learning": ActivityRule(
        ("study", "learn", "read", "research", "course", "skill"),
        (
            "Learning something new! Take breaks to let information sink in.",
            "Curiosity is a superpower. What interests you most about this topic?",
            "Remember that learning is a process. Be patient with yourself.",
            "Try explaining what you're learning to someone else - it helps retention!",
        ),
    ),
}

CONCERNING_KEYWORDS: List[str] = [
    "stressed", "anxious", "overwhelmed", "depressed", "hopeless",
    "suicidal", "self-harm", "worthless", "failure", "hate myself",
    "can't take it", "want to give up", "no point", "tired of life",
    "struggling", "difficult", "hard time", "crying", "sad", "lonely",
]

INTENSITY_KEYWORDS: List[str] = [
    "really", "very", "extremely", "so", "incredibly",
    "absolutely", "completely", "totally", "deeply", "profoundly",
]

# Significant-moment keywords, grouped by the moment type they imply.
INSIGHT_KEYWORDS: List[str] = ["breakthrough", "realization", "insight", "clarity", "understanding"]
CHALLENGE_KEYWORDS: List[str] = ["struggle", "challenge", "overwhelmed", "anxious", "stressed"]
ACHIEVEMENT_KEYWORDS: List[str] = ["proud", "accomplished", "grateful", "excited", "motivated"]
STRUGGLE_KEYWORDS: List[str] = ["tired", "exhausted", "frustrated", "confused", "lost"]

SIGNIFICANT_KEYWORDS: List[str] = (
    INSIGHT_KEYWORDS + CHALLENGE_KEYWORDS + ACHIEVEMENT_KEYWORDS + STRUGGLE_KEYWORDS
)

PERSONAL_INSIGHT_PHRASES: List[str] = ["i realized", "i understand", "i learned"]

# Leading words that get the user's name prepended.
_NAME_PREFIX_RE = re.compile(
    r"^(Take|Try|Consider|Remember|Focus|Pause|Good morning|Evening reflection|"
    r"Great job|Learning something new|You're in work mode|Social interactions|"
    r"Movement is medicine|Curiosity is a superpower|Remember that learning|"
    r"Start your day|Morning check-in|Midday check-in|Afternoon energy dip|"
    r"Evening check-in|It's getting late|Late night thoughts)"
)


def _normalize(text: str) -> str:
    # curly apostrophes come back from some transcription models
    return text.lower().replace("’", "'")


@lru_cache(maxsize=512)
def _keyword_pattern(keyword: str, prefix: bool) -> "re.Pattern[str]":
    tail = "" if prefix else r"(?!\w)"
    return re.compile(r"(?<!\w)" + re.escape(keyword.lower()) + tail)


def contains_keyword(text: str, keyword: str, prefix: bool = False) -> bool:
    """
    Whole-word, case-insensitive keyword test.

    With prefix=True only the leading edge must be a word boundary,
    so "work" also matches "working".
    """
    return _keyword_pattern(keyword, prefix).search(_normalize(text)) is not None


def match_keywords(text: str, keywords: Iterable[str], prefix: bool = False) -> List[str]:
    """Return the distinct keywords found in text, in list order."""
    seen: List[str] = []
    for keyword in keywords:
        if keyword not in seen and contains_keyword(text, keyword, prefix):
            seen.append(keyword)
    return seen


def day_segment_for_hour(hour: int) -> str:
    """Map an hour (0-23) to its day segment name."""
    for name, segment in TIME_BASED_COACHING.items():
        if segment.contains(hour):
            return name
    return "midday"


def detect_activity(text: str) -> Optional[str]:
    """First activity whose trigger words appear in text."""
    for activity, rule in ACTIVITY_BASED_COACHING.items():
        if any(contains_keyword(text, trigger, prefix=True) for trigger in rule.triggers):
            return activity
    return None


def personalize(message: str, profile: Optional[UserProfile]) -> str:
    """Adapt tip text to the user's name and preferred tone."""
    if not profile:
        return message

    if profile.name:
        message = _NAME_PREFIX_RE.sub(lambda m: f"{profile.name}, {m.group(1)}", message, count=1)

    if profile.voice_tone == "cheerful":
        message = re.sub(r"\.$", " 😊", message)
    elif profile.voice_tone == "calm":
        message = re.sub(r"!$", ".", message)

    return message


def check_static_nudges(
    text: str,
    profile: Optional[UserProfile] = None,
    now: Optional[datetime] = None,
) -> List[Nudge]:
    """All static nudges whose trigger phrase occurs in text, in table order."""
    now = now or datetime.now()
    nudges = []
    for trigger, rule in STATIC_NUDGES.items():
        if contains_keyword(text, trigger, prefix=True):
            nudges.append(Nudge(
                message=personalize(rule.message, profile),
                category=rule.category,
                priority=rule.priority,
                trigger=trigger,
                timestamp=now,
            ))
    return nudges
