"""
Data Models

Records that flow between the recording loop, the detectors and the
presentation layer. All of them serialize with to_dict().
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, FrozenSet, List, Optional
from enum import Enum


class MomentType(Enum):
    """Kinds of significant moments, in categorization priority order."""
    INSIGHT = "insight"
    CHALLENGE = "challenge"
    ACHIEVEMENT = "achievement"
    STRUGGLE = "struggle"
    REFLECTION = "reflection"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TipSource(Enum):
    """Where a coaching tip came from."""
    TIME_BASED = "time_based"
    ACTIVITY_BASED = "activity_based"
    AI_CONTEXTUAL = "ai_contextual"
    PATTERN_ANALYSIS = "pattern_analysis"
    REAL_TIME_FEEDBACK = "real_time_feedback"


@dataclass
class UserProfile:
    """Who is being coached and how they like to be spoken to."""
    name: str = ""
    goals: List[str] = field(default_factory=list)
    challenges: List[str] = field(default_factory=list)
    voice_tone: str = "calm"  # "calm", "cheerful", ...

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "goals": list(self.goals),
            "challenges": list(self.challenges),
            "voice_tone": self.voice_tone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        return cls(
            name=data.get("name") or "",
            goals=list(data.get("goals") or []),
            challenges=list(data.get("challenges") or []),
            voice_tone=data.get("voice_tone") or data.get("voiceTone") or "calm",
        )


@dataclass
class TranscriptEntry:
    """One transcribed segment."""
    timestamp: datetime
    text: str
    audio_ref: Optional[str] = None
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "text": self.text,
            "audio_ref": self.audio_ref,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class Moment:
    """A transcript segment judged significant enough to keep for review."""
    id: str
    timestamp: datetime
    transcript: str
    significance: float
    keywords: FrozenSet[str]
    type: MomentType
    audio_ref: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "transcript": self.transcript,
            "significance": round(self.significance, 3),
            "keywords": sorted(self.keywords),
            "type": self.type.value,
            "audio_ref": self.audio_ref,
        }


@dataclass
class Nudge:
    """A reactive message triggered by a phrase in the transcript."""
    message: str
    category: str
    priority: Priority
    trigger: str = ""
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "category": self.category,
            "priority": self.priority.value,
            "trigger": self.trigger,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class CoachingTip:
    """A coaching message produced proactively or by the feedback path."""
    message: str
    category: str
    priority: Priority
    source: TipSource
    timestamp: datetime = field(default_factory=datetime.now)
    insights: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "message": self.message,
            "category": self.category,
            "priority": self.priority.value,
            "source": self.source.value,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.insights is not None:
            data["insights"] = self.insights
        return data


@dataclass
class VoiceFeedbackEvent:
    """Synthesized spoken feedback, ready for playback."""
    text: str
    audio_ref: str
    timestamp: datetime = field(default_factory=datetime.now)
    type: str = TipSource.REAL_TIME_FEEDBACK.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "audio_ref": self.audio_ref,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type,
        }


@dataclass
class MoodAnalysis:
    sentiment: str = "neutral"
    description: str = ""


@dataclass
class InsightResult:
    """Structured response of the insight-generation service."""
    insights: str = ""
    themes: List[Dict[str, str]] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    mood_analysis: MoodAnalysis = field(default_factory=MoodAnalysis)
    action_items: List[str] = field(default_factory=list)

    @property
    def sentiment(self) -> str:
        return (self.mood_analysis.sentiment or "").lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "insights": self.insights,
            "themes": self.themes,
            "recommendations": self.recommendations,
            "moodAnalysis": {
                "sentiment": self.mood_analysis.sentiment,
                "description": self.mood_analysis.description,
            },
            "actionItems": self.action_items,
        }


@dataclass
class ReflectionReply:
    """Coach reply to a typed reflection or chat message."""
    text: str
    reply: str
    analysis: InsightResult
    nudges: List[Nudge] = field(default_factory=list)
    audio_ref: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "reply": self.reply,
            "analysis": self.analysis.to_dict(),
            "nudges": [n.to_dict() for n in self.nudges],
            "audio_ref": self.audio_ref,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RecordingStatus:
    is_recording: bool
    is_paused: bool
    transcript_count: int
    moment_count: int
    current_segment: str  # "active" or "none"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_recording": self.is_recording,
            "is_paused": self.is_paused,
            "transcript_count": self.transcript_count,
            "moment_count": self.moment_count,
            "current_segment": self.current_segment,
        }
