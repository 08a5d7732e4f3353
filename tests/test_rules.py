"""
Unit tests for the keyword tables, matching and personalization.
Run with: pytest tests/test_rules.py -v
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from mindcoach.models import Priority, UserProfile
from mindcoach.rules import (
    ACTIVITY_BASED_COACHING,
    STATIC_NUDGES,
    check_static_nudges,
    contains_keyword,
    day_segment_for_hour,
    detect_activity,
    match_keywords,
    personalize,
)


class TestKeywordMatching:
    """Whole-word and prefix matching."""

    def test_whole_word_only(self):
        assert contains_keyword("I feel sad today", "sad")
        assert not contains_keyword("That saddle is new", "sad")
        assert not contains_keyword("so much sadness", "sad")

    def test_prefix_matches_inflections(self):
        assert contains_keyword("so much sadness", "sad", prefix=True)
        assert contains_keyword("I struggled", "struggle", prefix=True)
        assert contains_keyword("huge challenges", "challenge", prefix=True)
        assert not contains_keyword("a long crusade", "sad", prefix=True)

    def test_case_insensitive(self):
        assert contains_keyword("I am STRESSED", "stressed")

    def test_multi_word_phrase(self):
        assert contains_keyword("honestly I can't take it anymore", "can't take it")

    def test_curly_apostrophe(self):
        assert contains_keyword("I can’t focus", "can't focus")

    def test_prefix_mode(self):
        assert contains_keyword("I'm working late", "work", prefix=True)
        assert not contains_keyword("I'm working late", "work")

    def test_match_keywords_distinct_in_list_order(self):
        found = match_keywords("very very tired, really", ["really", "very", "so"])
        assert found == ["really", "very"]


class TestDaySegments:
    """Hour to day segment mapping."""

    @pytest.mark.parametrize("hour,segment", [
        (6, "morning"),
        (8, "morning"),
        (10, "midday"),
        (14, "midday"),
        (15, "afternoon"),
        (18, "evening"),
        (21, "evening"),
        (22, "late_night"),
        (23, "late_night"),
        (0, "late_night"),
        (5, "late_night"),
    ])
    def test_segment_for_hour(self, hour, segment):
        assert day_segment_for_hour(hour) == segment


class TestActivityDetection:
    def test_work(self):
        assert detect_activity("I have a meeting at noon") == "work_focus"

    def test_learning(self):
        assert detect_activity("I need to study for my course") == "learning"

    def test_physical(self):
        assert detect_activity("went to the gym this morning") == "physical_activity"

    def test_no_activity(self):
        assert detect_activity("the weather is nice") is None

    def test_tables_have_four_tips(self):
        for rule in ACTIVITY_BASED_COACHING.values():
            assert len(rule.tips) == 4


class TestPersonalize:
    """Name prefix and tone adjustments."""

    def test_no_profile(self):
        msg = "Take a break."
        assert personalize(msg, None) == msg

    def test_name_prefix(self):
        profile = UserProfile(name="Sam", voice_tone="neutral")
        assert personalize("Take a break.", profile) == "Sam, Take a break."

    def test_unrecognized_lead_word_unchanged(self):
        profile = UserProfile(name="Sam", voice_tone="neutral")
        msg = "Break your task into tiny steps."
        assert personalize(msg, profile) == msg

    def test_cheerful_replaces_trailing_period(self):
        profile = UserProfile(voice_tone="cheerful")
        assert personalize("Take a break.", profile) == "Take a break 😊"

    def test_calm_replaces_trailing_exclamation(self):
        profile = UserProfile(name="Sam", voice_tone="calm")
        msg = "Try a quick stretch or walk around. Movement can boost your energy!"
        assert personalize(msg, profile) == (
            "Sam, Try a quick stretch or walk around. Movement can boost your energy."
        )


class TestStaticNudges:
    def test_table_size(self):
        assert len(STATIC_NUDGES) == 18

    def test_matches_in_table_order(self):
        nudges = check_static_nudges("I'm so stressed and overwhelmed")
        assert [n.trigger for n in nudges] == ["stressed", "overwhelmed"]
        assert nudges[0].category == "stress"
        assert nudges[0].priority == Priority.HIGH

    def test_phrase_trigger(self):
        nudges = check_static_nudges("I just can't focus today")
        assert nudges[0].trigger == "can't focus"
        assert nudges[0].category == "focus"

    def test_personalized(self):
        profile = UserProfile(name="Sam", voice_tone="calm")
        nudge = check_static_nudges("I keep doubting myself, so much doubt", profile)[0]
        assert nudge.message == "Sam, Remember your past successes. You've got this."

    def test_no_trigger(self):
        assert check_static_nudges("what a lovely afternoon") == []
