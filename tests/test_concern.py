"""
Unit tests for concern scoring, the feedback text and the cooldown gate.
Run with: pytest tests/test_concern.py -v
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from datetime import datetime
from mindcoach.concern import (
    CLOSING_LINE,
    NEGATIVE_EMPATHY_LINE,
    ConcernWeights,
    VoiceFeedbackGate,
    build_feedback_text,
    recommends_feedback,
    score_concern,
)
from mindcoach.models import InsightResult, MoodAnalysis, TranscriptEntry
from mindcoach.services.insights import demo_insights

from fakes import FakeClock, negative_insight


def entry(text: str) -> TranscriptEntry:
    return TranscriptEntry(timestamp=datetime.now(), text=text)


class TestScoreConcern:
    """Heuristic concern scoring."""

    def test_stressed_and_overwhelmed_scenario(self):
        text = "I'm so stressed and overwhelmed, I feel like giving up"
        level = score_concern(text, demo_insights(text))
        assert level == pytest.approx(0.7)
        assert recommends_feedback(level)

    def test_calm_text_scores_zero(self):
        assert score_concern("Had a nice lunch with a friend", None) == 0.0

    def test_keyword_in_insight_text_counts_once(self):
        analysis = InsightResult(insights="You sound lonely lately.")
        assert score_concern("hello", analysis) == pytest.approx(0.3)
        assert score_concern("I feel lonely", analysis) == pytest.approx(0.3)

    def test_intensity_words(self):
        assert score_concern("really very extremely", None) == pytest.approx(0.3)

    def test_negative_sentiment(self):
        analysis = InsightResult(mood_analysis=MoodAnalysis(sentiment="Negative"))
        assert score_concern("hello", analysis) == pytest.approx(0.4)

    def test_repeated_concern_in_recent_entries(self):
        recent = [entry("I'm stressed"), entry("feeling lonely"), entry("fine day")]
        assert score_concern("hello", None, recent) == pytest.approx(0.5)

    def test_repeated_concern_needs_two_entries(self):
        recent = [entry("I'm stressed"), entry("fine"), entry("fine day")]
        assert score_concern("hello", None, recent) == 0.0

    def test_only_last_three_entries_considered(self):
        recent = [entry("so sad"), entry("I'm stressed"), entry("ok"), entry("fine"), entry("good")]
        assert score_concern("hello", None, recent) == 0.0

    def test_not_capped(self):
        text = "stressed anxious overwhelmed depressed hopeless"
        assert score_concern(text, negative_insight()) == pytest.approx(1.9)


class TestInflectedKeywords:
    """Concern keywords match word prefixes; intensity words stay whole."""

    def test_inflections_score(self):
        text = "I'm having difficulties and so much sadness"
        assert score_concern(text, None) == pytest.approx(0.7)

    def test_inflections_in_recent_entries(self):
        recent = [entry("sadness again"), entry("more difficulties")]
        assert score_concern("hello", None, recent) == pytest.approx(0.5)

    def test_keyword_inside_word_does_not_count(self):
        assert score_concern("The crusade went on", None) == 0.0

    def test_soon_is_not_intensity(self):
        assert score_concern("I'll feel better soon", None) == 0.0


class TestFeedbackDecision:
    """Threshold is inclusive."""

    def test_exact_threshold_recommends(self):
        assert recommends_feedback(0.5)

    def test_below_threshold(self):
        assert not recommends_feedback(0.49)

    def test_computed_boundary(self):
        weights = ConcernWeights(concerning_keyword=0.25)
        level = score_concern("stressed and sad", None, weights=weights)
        assert level == 0.5
        assert recommends_feedback(level, weights)

    def test_custom_threshold(self):
        weights = ConcernWeights(threshold=0.8)
        assert not recommends_feedback(0.7, weights)


class TestFeedbackText:
    def test_full_response(self):
        analysis = negative_insight(
            insights="You are carrying a lot. Rest helps.",
            recommendations=["Take a walk."],
        )
        text = build_feedback_text(analysis, "I'm so stressed")
        assert text == (
            "I hear you're dealing with stress and feeling overwhelmed. "
            "You are carrying a lot. Take a walk. "
            f"{NEGATIVE_EMPATHY_LINE} {CLOSING_LINE}"
        )

    def test_fallback_opening_without_analysis(self):
        text = build_feedback_text(None, "nothing specific")
        assert text == f"I hear you're dealing with what you're going through. {CLOSING_LINE}"

    def test_category_order(self):
        text = build_feedback_text(None, "so tired and worried")
        assert text.startswith("I hear you're dealing with anxiety and worry.")

    def test_action_item_when_no_recommendation(self):
        analysis = InsightResult(insights="", action_items=["Drink some water"])
        text = build_feedback_text(analysis, "exhausted")
        assert "Drink some water" in text
        assert NEGATIVE_EMPATHY_LINE not in text


class TestVoiceFeedbackGate:
    """Wall-clock cooldown."""

    def setup_method(self):
        self.clock = FakeClock()
        self.gate = VoiceFeedbackGate(cooldown_seconds=30, clock=self.clock)

    def test_first_acquire(self):
        assert self.gate.can_speak_now()
        assert self.gate.try_acquire()

    def test_blocked_within_cooldown(self):
        self.gate.try_acquire()
        self.clock.advance(29.9)
        assert not self.gate.try_acquire()

    def test_open_after_cooldown(self):
        self.gate.try_acquire()
        self.clock.advance(30)
        assert self.gate.try_acquire()

    def test_release_rolls_back(self):
        self.gate.try_acquire()
        self.gate.release()
        assert self.gate.can_speak_now()

    def test_cooldown_runs_from_commit(self):
        assert self.gate.try_acquire()
        self.clock.advance(10)
        self.gate.commit()

        self.clock.advance(20)
        assert not self.gate.try_acquire()
        self.clock.advance(10)
        assert self.gate.try_acquire()

    def test_reservation_blocks_before_commit(self):
        self.gate.try_acquire()
        self.clock.advance(5)
        assert not self.gate.try_acquire()

    def test_reset(self):
        self.gate.try_acquire()
        self.gate.reset()
        assert self.gate.try_acquire()
