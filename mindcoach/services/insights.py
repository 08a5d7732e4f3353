"""
Insight Generation

Gemini-backed analysis of transcript segments plus free-form coaching text
and pattern analysis for the background scheduler. Without an API key, or
when every model fails, a demo payload stands in so the pipeline keeps
producing feedback.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
import copy
import json
import logging
import re

from google import genai

from ..errors import InsightParseError
from ..models import InsightResult, MoodAnalysis, TranscriptEntry, UserProfile
from ..rules import contains_keyword

logger = logging.getLogger(__name__)


DEMO_COACHING: Dict[str, Any] = {
    "insights": "You're showing great self-awareness in recognizing your feelings.",
    "themes": [
        {"name": "Self-awareness", "description": "You're developing deeper understanding of yourself"},
    ],
    "recommendations": ["Take a few deep breaths to help you feel more centered"],
    "moodAnalysis": {
        "sentiment": "reflective",
        "description": "You're showing mindfulness in your reflections",
    },
    "actionItems": ["Try taking a short break to refresh your mind"],
}

# Used when the model answered but not with parseable JSON
UNSTRUCTURED_DEFAULTS: Dict[str, Any] = {
    "themes": [{"name": "Personal Reflection", "description": "You're engaging in self-reflection"}],
    "recommendations": ["Continue your reflection practice", "Be kind to yourself"],
    "moodAnalysis": {"sentiment": "reflective", "description": "You're showing self-awareness"},
    "actionItems": ["Take a moment to breathe", "Acknowledge your progress"],
}

MISSING_FIELD_DEFAULTS: Dict[str, Any] = {
    "insights": "You're showing great self-awareness in your reflections.",
    "themes": [{"name": "Personal Growth", "description": "You're developing self-awareness"}],
    "recommendations": ["Continue your reflection practice", "Be kind to yourself"],
    "moodAnalysis": {"sentiment": "reflective", "description": "You're showing mindfulness"},
    "actionItems": ["Take a moment to breathe", "Acknowledge your progress"],
}

PATTERN_FALLBACK: Dict[str, Any] = {
    "patterns": ["Daily reflection"],
    "mood_trend": "stable",
    "key_themes": ["Personal growth"],
    "suggested_focus": "Continue your reflection practice",
    "encouragement": "You're doing great work on your personal development journey!",
}

INSIGHT_PROMPT = """
You are an empathetic AI mental wellness coach. Analyze the following reflection transcript and provide a short, focused insight and tip.

IMPORTANT: Keep your response SHORT and CONCISE. This will be read aloud as voice feedback, so it should be brief but helpful.

Transcript: "{transcript}"

Please respond in JSON format with SHORT, focused content:
{{
  "insights": "One brief insight about what you're going through (1-2 sentences max)",
  "themes": [
    {{
      "name": "Main theme",
      "description": "Brief description"
    }}
  ],
  "recommendations": [
    "One specific, actionable tip that's easy to follow (1 sentence)"
  ],
  "moodAnalysis": {{
    "sentiment": "positive/negative/neutral",
    "description": "Brief mood description (1 sentence)"
  }},
  "actionItems": [
    "One simple action you can take right now (1 sentence)"
  ]
}}

Keep everything brief and focused. This is for voice feedback, not a long conversation.
"""

PATTERN_PROMPT = """
Analyze this daily transcript for patterns and insights:

{entries}

User Profile:
- Goals: {goals}
- Challenges: {challenges}
- Preferred tone: {tone}

Provide insights in JSON format:
{{
  "patterns": ["pattern1", "pattern2"],
  "mood_trend": "improving/stable/declining",
  "key_themes": ["theme1", "theme2"],
  "suggested_focus": "area to focus on",
  "encouragement": "positive reinforcement message"
}}
"""


class InsightService(ABC):
    """Abstract interface for the insight-generation collaborator."""

    @property
    def configured(self) -> bool:
        """False when running without a real model (demo mode)."""
        return True

    @abstractmethod
    async def generate_insights(self, transcript_text: str) -> InsightResult:
        """Structured insights for one segment. Never raises."""

    async def generate_text(self, prompt: str) -> Optional[str]:
        """Free-form completion, or None when unavailable."""
        return None

    async def analyze_patterns(
        self,
        entries: Sequence[TranscriptEntry],
        profile: Optional[UserProfile] = None,
    ) -> Optional[Dict[str, Any]]:
        """Pattern summary over many entries, or None when unavailable."""
        return None


def clean_json_text(raw: str) -> str:
    """Cut the outermost JSON object out of a model reply and drop trailing commas."""
    text = raw.strip()

    # Remove markdown code blocks if present
    if text.startswith("```"):
        text = text.strip("`")
        if text.startswith("json"):
            text = text[4:]

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end != -1:
        text = text[start:end + 1]

    text = re.sub(r",\s*}", "}", text)
    text = re.sub(r",\s*]", "]", text)
    return text.strip()


def parse_json_object(raw: str) -> Dict[str, Any]:
    try:
        data = json.loads(clean_json_text(raw))
    except json.JSONDecodeError as e:
        raise InsightParseError(f"Model reply is not JSON: {e}") from e
    if not isinstance(data, dict):
        raise InsightParseError("Model reply is not a JSON object")
    return data


def insight_from_dict(data: Dict[str, Any]) -> InsightResult:
    """Build an InsightResult, filling any missing field with its default."""
    merged = {key: data.get(key) or copy.deepcopy(default) for key, default in MISSING_FIELD_DEFAULTS.items()}
    mood = merged["moodAnalysis"] if isinstance(merged["moodAnalysis"], dict) else {}

    return InsightResult(
        insights=str(merged["insights"]),
        themes=[t for t in merged["themes"] if isinstance(t, dict)],
        recommendations=[str(r) for r in merged["recommendations"]],
        mood_analysis=MoodAnalysis(
            sentiment=str(mood.get("sentiment") or "neutral"),
            description=str(mood.get("description") or ""),
        ),
        action_items=[str(a) for a in merged["actionItems"]],
    )


def demo_insights(transcript_text: str) -> InsightResult:
    """Canned response, nudged by a few keywords in the transcript."""
    response = copy.deepcopy(DEMO_COACHING)

    if any(contains_keyword(transcript_text, k, prefix=True) for k in ("work", "project")):
        response["themes"].append({
            "name": "Professional growth",
            "description": "You're balancing work and personal development",
        })
        response["recommendations"].append("Set clear boundaries between work and personal time")

    if any(contains_keyword(transcript_text, k) for k in ("tired", "exhausted")):
        response["moodAnalysis"] = {
            "sentiment": "tired",
            "description": "You're recognizing your energy levels and taking care of yourself",
        }
        response["actionItems"].append("Prioritize rest and self-care today")

    if any(contains_keyword(transcript_text, k) for k in ("stressed", "anxious")):
        response["moodAnalysis"] = {
            "sentiment": "stressed",
            "description": "You're aware of your stress and seeking balance",
        }
        response["recommendations"].append("Practice deep breathing when you feel overwhelmed")

    return insight_from_dict(response)


def _unstructured_insights(reply: str) -> InsightResult:
    data = copy.deepcopy(UNSTRUCTURED_DEFAULTS)
    data["insights"] = reply[:200] + "..."
    return insight_from_dict(data)


class GeminiInsightService(InsightService):
    """Gemini via the google-genai SDK, trying each configured model in turn."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        models: Optional[List[str]] = None,
        client: Optional[Any] = None,
    ):
        from .. import config

        self.api_key = api_key if api_key is not None else config.GEMINI_API_KEY
        self.models = list(models or config.GEMINI_MODELS)
        self.client = client

        if self.client is None and self.api_key:
            try:
                self.client = genai.Client(api_key=self.api_key)
                logger.info(f"Gemini enabled with models: {', '.join(self.models)}")
            except Exception as e:
                logger.error(f"Gemini client init failed: {e}")
                self.client = None

        if self.client is None:
            logger.warning("Gemini not configured. Using demo insights.")

    @property
    def configured(self) -> bool:
        return self.client is not None

    async def _complete(self, prompt: str, models: Optional[List[str]] = None) -> Optional[str]:
        """Reply text from the first model that answers, else None."""
        last_error = None
        for model in models or self.models:
            try:
                logger.debug(f"Trying Gemini model: {model}")
                response = await self.client.aio.models.generate_content(model=model, contents=prompt)
                text = (response.text or "").strip()
                if text:
                    return text
            except Exception as e:
                logger.warning(f"Gemini model {model} failed: {e}")
                last_error = e
        if last_error is not None:
            logger.error(f"All Gemini models failed: {last_error}")
        return None

    async def generate_insights(self, transcript_text: str) -> InsightResult:
        if not self.configured:
            return demo_insights(transcript_text)

        reply = await self._complete(INSIGHT_PROMPT.format(transcript=transcript_text))
        if reply is None:
            return demo_insights(transcript_text)

        try:
            return insight_from_dict(parse_json_object(reply))
        except InsightParseError as e:
            logger.error(f"Error parsing Gemini response: {e}")
            return _unstructured_insights(reply)

    async def generate_text(self, prompt: str) -> Optional[str]:
        if not self.configured:
            return None
        return await self._complete(prompt, self.models[:1])

    async def analyze_patterns(
        self,
        entries: Sequence[TranscriptEntry],
        profile: Optional[UserProfile] = None,
    ) -> Optional[Dict[str, Any]]:
        if not self.configured:
            return None

        profile = profile or UserProfile()
        prompt = PATTERN_PROMPT.format(
            entries="\n".join(f"{e.timestamp.isoformat()}: {e.text}" for e in entries),
            goals=", ".join(profile.goals) or "personal growth",
            challenges=", ".join(profile.challenges) or "general challenges",
            tone=profile.voice_tone or "calm",
        )

        reply = await self._complete(prompt, self.models[:1])
        if reply is None:
            return None

        try:
            return parse_json_object(reply)
        except InsightParseError as e:
            logger.error(f"Error parsing pattern analysis: {e}")
            return copy.deepcopy(PATTERN_FALLBACK)


def contextual_tip_prompt(transcript_text: str, profile: Optional[UserProfile]) -> str:
    """Prompt for a short AI coaching tip about the latest entry."""
    profile = profile or UserProfile()
    return f"""
You are a supportive AI coach for {profile.name or 'the user'}.
Their goals: {', '.join(profile.goals) or 'personal growth'}
Their challenges: {', '.join(profile.challenges) or 'general challenges'}
They prefer a {profile.voice_tone or 'calm'} tone.

Based on this recent transcript entry: "{transcript_text}"

Generate a brief, actionable coaching tip (max 2 sentences) that:
1. Acknowledges their current situation
2. Provides a specific, doable action
3. Uses their preferred tone
4. Relates to their goals and challenges

Respond with just the coaching tip, no additional text.
"""
