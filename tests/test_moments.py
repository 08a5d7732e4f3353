"""
Unit tests for significant-moment detection.
Run with: pytest tests/test_moments.py -v
"""

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from mindcoach.models import MomentType
from mindcoach.moments import MomentDetector, categorize_moment, score_significance


class TestScoreSignificance:
    def test_keywords_and_intensity(self):
        score, keywords = score_significance("I'm really proud and accomplished")
        assert score == pytest.approx(0.8)
        assert keywords == {"proud", "accomplished"}

    def test_personal_insight_phrase(self):
        score, keywords = score_significance("I realized something about myself")
        assert score == pytest.approx(0.4)
        assert keywords == frozenset()

    def test_no_match(self):
        assert score_significance("just making tea") == (0.0, frozenset())


class TestCategorize:
    """Fixed priority: insight > challenge > achievement > struggle."""

    def test_struggle_keyword_is_challenge(self):
        assert categorize_moment({"struggle"}) == MomentType.CHALLENGE

    def test_proud_is_achievement(self):
        assert categorize_moment({"proud"}) == MomentType.ACHIEVEMENT

    def test_insight_beats_everything(self):
        assert categorize_moment({"proud", "struggle", "clarity"}) == MomentType.INSIGHT

    def test_exhausted_is_struggle(self):
        assert categorize_moment({"exhausted"}) == MomentType.STRUGGLE

    def test_no_keywords_is_reflection(self):
        assert categorize_moment(set()) == MomentType.REFLECTION


class TestMomentDetector:
    def setup_method(self):
        self.detector = MomentDetector()

    def test_below_threshold(self):
        assert self.detector.detect("This is a struggle") is None
        assert self.detector.detect("I'm proud and happy") is None

    def test_at_threshold(self):
        moment = self.detector.detect("I realized this struggle is real", audio_ref="seg-1.wav")
        assert moment is not None
        assert moment.type == MomentType.CHALLENGE
        assert moment.significance == pytest.approx(0.7)
        assert moment.audio_ref == "seg-1.wav"
        assert moment.keywords == {"struggle"}

    def test_significance_capped(self):
        moment = self.detector.detect(
            "I realized a breakthrough, so much clarity and insight, so proud"
        )
        assert moment.significance == 1.0
        assert moment.type == MomentType.INSIGHT

    def test_achievement(self):
        moment = self.detector.detect("I'm really proud and accomplished")
        assert moment.type == MomentType.ACHIEVEMENT

    def test_reflection_without_category_keyword(self):
        moment = self.detector.detect("I realized I am really, very calm")
        assert moment.type == MomentType.REFLECTION
        assert moment.keywords == frozenset()

    def test_inflected_keywords(self):
        moment = self.detector.detect("I'm facing huge challenges, I struggled and felt exhausted")
        assert moment is not None
        assert moment.significance == pytest.approx(0.9)
        assert moment.keywords == {"challenge", "struggle", "exhausted"}
        assert moment.type == MomentType.CHALLENGE

    def test_keyword_must_start_a_word(self):
        score, keywords = score_significance("the overlost sign")
        assert keywords == frozenset()
        assert score == 0.0

    def test_custom_threshold(self):
        detector = MomentDetector(threshold=0.3)
        assert detector.detect("This is a struggle") is not None

    def test_unique_ids(self):
        a = self.detector.detect("I'm really proud and accomplished")
        b = self.detector.detect("I'm really proud and accomplished")
        assert a.id != b.id

    def test_to_dict(self):
        data = self.detector.detect("I'm really proud and accomplished").to_dict()
        assert data["type"] == "achievement"
        assert data["keywords"] == ["accomplished", "proud"]
