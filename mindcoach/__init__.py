"""
MindCoach - Continuous Recording & Coaching Engine

Records audio in short segments, transcribes them, watches the text for
emotional signals and surfaces nudges, coaching tips and spoken feedback.

Layers:
1. Keyword Rules (static tables, matching, personalization) - rules.py
2. Concern Detector (feedback decision + cooldown) - concern.py
3. Moment Detector (significant segments) - moments.py
4. Nudge Throttle (daily caps) - throttle.py
5. Background Scheduler (periodic tips) - scheduler.py
6. Recording Orchestrator (lifecycle + pipeline) - orchestrator.py

Collaborators:
7. Services (Whisper, Gemini, ElevenLabs / pyttsx3) - services/
8. Audio Capture (sounddevice segments) - capture.py
9. Events (callbacks + SSE channel) - events.py
10. HTTP API (FastAPI) - server.py
"""

from .errors import (
    CoachingError,
    MicrophonePermissionError,
    CaptureDeviceError,
    TranscriptionError,
    AlreadyRunningError,
    InsightParseError,
)

from .models import (
    UserProfile,
    TranscriptEntry,
    Moment,
    MomentType,
    Nudge,
    CoachingTip,
    TipSource,
    Priority,
    VoiceFeedbackEvent,
    InsightResult,
    MoodAnalysis,
    RecordingStatus,
    ReflectionReply,
)

from .rules import (
    STATIC_NUDGES,
    TIME_BASED_COACHING,
    ACTIVITY_BASED_COACHING,
    check_static_nudges,
    personalize,
)

from .concern import (
    ConcernWeights,
    VoiceFeedbackGate,
    score_concern,
    recommends_feedback,
    build_feedback_text,
)

from .moments import (
    MomentDetector,
    SignificanceWeights,
    score_significance,
    categorize_moment,
)

from .throttle import (
    get_nudge_frequency,
    should_show_nudge,
)

from .scheduler import (
    BackgroundCoachingScheduler,
    time_based_tip,
    activity_based_tip,
)

from .events import (
    CoachingCallbacks,
    EventChannel,
)

from .config import OrchestratorSettings

from .orchestrator import (
    RecordingOrchestrator,
    RecordingSession,
)

__version__ = "0.1.0"
__all__ = [
    # Errors
    "CoachingError",
    "MicrophonePermissionError",
    "CaptureDeviceError",
    "TranscriptionError",
    "AlreadyRunningError",
    "InsightParseError",
    # Models
    "UserProfile",
    "TranscriptEntry",
    "Moment",
    "MomentType",
    "Nudge",
    "CoachingTip",
    "TipSource",
    "Priority",
    "VoiceFeedbackEvent",
    "InsightResult",
    "MoodAnalysis",
    "RecordingStatus",
    "ReflectionReply",
    # Rules
    "STATIC_NUDGES",
    "TIME_BASED_COACHING",
    "ACTIVITY_BASED_COACHING",
    "check_static_nudges",
    "personalize",
    # Concern
    "ConcernWeights",
    "VoiceFeedbackGate",
    "score_concern",
    "recommends_feedback",
    "build_feedback_text",
    # Moments
    "MomentDetector",
    "SignificanceWeights",
    "score_significance",
    "categorize_moment",
    # Throttle
    "get_nudge_frequency",
    "should_show_nudge",
    # Scheduler
    "BackgroundCoachingScheduler",
    "time_based_tip",
    "activity_based_tip",
    # Events
    "CoachingCallbacks",
    "EventChannel",
    # Orchestrator
    "OrchestratorSettings",
    "RecordingOrchestrator",
    "RecordingSession",
]
