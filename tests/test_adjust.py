"""
Tests for learning adjustments.
"""

import pytest

from postfilter.classify.rules import classify_with_patterns
from postfilter.learning.adjust import (
    author_adjustment,
    apply_learning_to_classification,
    get_learning_adjustments,
    keyword_adjustment,
)
from postfilter.learning.feedback import FeedbackProcessor
from postfilter.learning.store import LearningData
from postfilter.models import ClassificationResult

from conftest import ALL_ENABLED, SINGLE_MATCH


def filtered(confidence=0.65, patterns=None):
    return ClassificationResult(
        filter=True,
        category="ai_generated",
        confidence=confidence,
        reason="Matched 1 pattern(s)",
        matched_patterns=patterns or [],
    )


def learning(reputation=None, keep=None, filter_words=None, stats=None):
    return LearningData.from_dict({
        "authorReputation": reputation or {},
        "learnedKeywords": {"keep": keep or [], "filter": filter_words or []},
        "patternStats": stats or {},
    })


class TestAuthorAdjustment:

    @pytest.mark.parametrize("reputation,expected", [
        (-100, 0.20),
        (-10, 0.20),
        (-9, 0.10),
        (-5, 0.10),
        (-4, 0.0),
        (0, 0.0),
        (4, 0.0),
        (5, -0.15),
        (9, -0.15),
        (10, -0.30),
        (19, -0.30),
        (20, -0.30),
    ])
    def test_bands(self, reputation, expected):
        assert author_adjustment(reputation) == pytest.approx(expected)


class TestKeywordAdjustment:

    def test_filter_words_push_up(self):
        data = learning(filter_words=["synergy", "crypto"])
        assert keyword_adjustment("Crypto synergy!", data) == pytest.approx(0.2)

    def test_keep_words_push_down(self):
        data = learning(keep=["kubernetes"])
        assert keyword_adjustment("Our Kubernetes rollout", data) == pytest.approx(-0.1)

    def test_net_capped_at_three(self):
        data = learning(filter_words=["alpha", "bravo", "charlie", "delta", "echo"])
        assert keyword_adjustment("alpha bravo charlie delta echo", data) == pytest.approx(0.3)

    def test_tie_is_zero(self):
        data = learning(keep=["rust"], filter_words=["hype"])
        assert keyword_adjustment("rust hype", data) == 0.0

    def test_substring_counts(self):
        data = learning(keep=["form"])
        assert keyword_adjustment("terraform", data) == pytest.approx(-0.1)


class TestGetLearningAdjustments:

    def test_no_learning_data(self):
        adjustments = get_learning_adjustments("Bob", "text", ["p"], None)

        assert adjustments.author_adjustment == 0.0
        assert adjustments.keyword_adjustment == 0.0
        assert adjustments.pattern_weights == {}
        assert adjustments.dominated is None

    def test_dominated_at_twenty(self):
        adjustments = get_learning_adjustments("Bob", "", [], learning(reputation={"bob": 20}))
        assert adjustments.dominated == "keep"

    def test_pattern_weights_need_three_observations(self):
        data = learning(stats={
            "seen": {"hits": 2, "misses": 1},
            "rare": {"hits": 2, "misses": 0},
        })
        adjustments = get_learning_adjustments(None, "", ["seen", "rare", "new"], data)

        assert adjustments.pattern_weights == {"seen": pytest.approx(0.5 + 2 / 3)}

    def test_invalid_content_skips_keywords(self):
        data = learning(filter_words=["crypto"])
        adjustments = get_learning_adjustments(None, None, [], data)
        assert adjustments.keyword_adjustment == 0.0


class TestApplyLearning:

    def test_none_result(self):
        assert apply_learning_to_classification(None, "Bob", "text", learning()) is None

    def test_keep_result_unchanged(self):
        result = ClassificationResult(filter=False, category=None, confidence=0, reason="No patterns matched")
        data = learning(reputation={"bob": -50})

        assert apply_learning_to_classification(result, "Bob", "text", data) is result

    def test_marks_learning_applied(self):
        adjusted = apply_learning_to_classification(filtered(), "Bob", "text", learning())

        assert adjusted.filter is True
        assert adjusted.confidence == pytest.approx(0.65)
        assert adjusted.learning_applied is True

    def test_input_not_modified(self):
        result = filtered()
        apply_learning_to_classification(result, "Bob", "text", learning(reputation={"bob": -20}))

        assert result.confidence == 0.65
        assert result.learning_applied is False

    def test_trusted_author_overrides(self):
        result = filtered(confidence=0.95)
        data = learning(reputation={"bob": 20}, filter_words=["synergy"])

        adjusted = apply_learning_to_classification(result, "Bob", "synergy", data)

        assert adjusted.filter is False
        assert adjusted.reason == "Author has strong positive reputation"
        assert adjusted.confidence == 0.95
        assert adjusted.learning_applied is True

    def test_imported_display_name_still_trusted(self):
        data = learning(reputation={"Jane Doe": 50})

        adjusted = apply_learning_to_classification(filtered(), "Jane Doe", "text", data)

        assert adjusted.filter is False
        assert adjusted.reason == "Author has strong positive reputation"

    def test_below_floor_stops_filtering(self):
        data = learning(reputation={"bob": 10}, keep=["kubernetes"])
        adjusted = apply_learning_to_classification(filtered(0.65), "Bob", "kubernetes", data)

        assert adjusted.filter is False
        assert adjusted.reason == "Confidence reduced by learning"
        assert adjusted.confidence == pytest.approx(0.25)

    def test_floor_is_inclusive(self):
        adjusted = apply_learning_to_classification(filtered(0.40), "Bob", "text", learning())

        assert adjusted.filter is True
        assert adjusted.confidence == 0.40

    def test_sum_then_weight_then_clamp(self):
        data = learning(
            reputation={"bob": -10},
            filter_words=["crypto"],
            stats={"p1": {"hits": 3, "misses": 0}, "p2": {"hits": 3, "misses": 0}},
        )
        adjusted = apply_learning_to_classification(filtered(0.65, ["p1", "p2"]), "Bob", "crypto", data)

        # (0.65 + 0.20 + 0.10) * 1.5 = 1.425, clamped
        assert adjusted.confidence == 1.0

    def test_unreliable_patterns_scale_down(self):
        data = learning(stats={"p1": {"hits": 0, "misses": 4}})
        adjusted = apply_learning_to_classification(filtered(0.95, ["p1"]), None, "text", data)

        assert adjusted.filter is True
        assert adjusted.confidence == pytest.approx(0.475)

    def test_clamped_at_zero(self):
        data = learning(reputation={"bob": 15}, keep=["alpha", "bravo", "charlie"])
        adjusted = apply_learning_to_classification(filtered(0.5), "Bob", "alpha bravo charlie", data)

        assert adjusted.confidence == 0.0
        assert adjusted.filter is False

    @pytest.mark.parametrize("reputation", [-100, -10, -5, 0, 5, 10, 19])
    @pytest.mark.parametrize("confidence", [0.0, 0.4, 0.65, 0.95, 1.0])
    def test_confidence_always_in_unit_range(self, reputation, confidence):
        data = learning(
            reputation={"bob": reputation},
            keep=["kube"],
            filter_words=["alpha", "bravo", "charlie", "delta"],
            stats={"p": {"hits": 5, "misses": 0}},
        )
        for content in ["alpha bravo charlie delta", "kube", ""]:
            adjusted = apply_learning_to_classification(filtered(confidence, ["p"]), "Bob", content, data)
            assert 0.0 <= adjusted.confidence <= 1.0


class TestLearningScenarios:

    @pytest.mark.asyncio
    async def test_hidden_author_boosts_confidence(self, store):
        processor = FeedbackProcessor(store)
        for _ in range(2):
            await processor.process_signal("hidden", author="Jane Doe", content="Some post")

        data = await processor.load()
        result = classify_with_patterns(SINGLE_MATCH, ALL_ENABLED)
        adjusted = apply_learning_to_classification(result, "Jane Doe", SINGLE_MATCH, data)

        assert data.author_reputation["jane doe"] == -20
        assert adjusted.filter is True
        assert adjusted.confidence == pytest.approx(0.85)

    @pytest.mark.asyncio
    async def test_kept_keyword_lowers_confidence(self, store):
        processor = FeedbackProcessor(store)
        for _ in range(5):
            await processor.process_signal("filterRejected", content="Upgrading our kubernetes cluster")

        data = await processor.load()
        content = "In today's fast-paced world, kubernetes matters."
        result = classify_with_patterns(content, ALL_ENABLED)
        adjusted = apply_learning_to_classification(result, None, content, data)

        assert result.confidence == pytest.approx(0.65)
        assert adjusted.confidence == pytest.approx(0.55)

    @pytest.mark.asyncio
    async def test_trusted_author_never_filtered(self, store):
        processor = FeedbackProcessor(store)
        for _ in range(7):
            await processor.process_signal("liked", author="Sam Smith")

        data = await processor.load()
        content = (
            "In today's fast-paced world, let me share the key takeaways. "
            "Here's the thing about synergy."
        )
        result = classify_with_patterns(content, ALL_ENABLED, "high")
        adjusted = apply_learning_to_classification(result, "Sam Smith", content, data)

        assert data.author_reputation["sam smith"] == 21
        assert adjusted.filter is False
        assert adjusted.reason == "Author has strong positive reputation"
