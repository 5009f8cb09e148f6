"""
Tests for feedback signal processing.
"""

import asyncio
import itertools
import logging
import random

import pytest

from postfilter.learning.feedback import SIGNAL_WEIGHTS, FeedbackProcessor, apply_signal
from postfilter.learning.store import LearningData
from postfilter.storage import MemoryStore


class FailingStore:
    """Store whose reads always fail."""

    async def get(self, key):
        raise OSError("disk unavailable")

    async def set(self, items):
        raise OSError("disk unavailable")


class CountingStore(MemoryStore):
    """Memory store that counts calls and yields on every access."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def get(self, key):
        self.calls += 1
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, items):
        self.calls += 1
        await asyncio.sleep(0)
        await super().set(items)


class TestApplySignal:

    @pytest.mark.parametrize("signal,delta", [
        ("filterApproved", -1),
        ("filterRejected", 2),
        ("liked", 3),
        ("commented", 3),
        ("shared", 3),
        ("hidden", -10),
        ("unfollowed", -10),
        ("notInterested", -2),
    ])
    def test_author_deltas(self, signal, delta):
        data = apply_signal(LearningData.empty(), signal, author="Jane Doe")
        assert data.author_reputation == {"jane doe": delta}

    @pytest.mark.parametrize("author", [None, "", "Unknown"])
    def test_missing_author_not_tracked(self, author):
        data = apply_signal(LearningData.empty(), "liked", author=author)
        assert data.author_reputation == {}

    def test_does_not_modify_input(self):
        original = LearningData.empty()
        apply_signal(original, "liked", author="Bob", content="kubernetes operators")
        assert original == LearningData.empty()

    def test_unknown_signal_is_ignored(self, caplog):
        original = LearningData.empty()
        with caplog.at_level(logging.WARNING):
            result = apply_signal(original, "poked", author="Bob", content="kubernetes")

        assert result is original
        assert "Unknown signal" in caplog.text

    def test_keep_keywords(self):
        data = apply_signal(LearningData.empty(), "liked", content="Kubernetes operators and kubernetes")
        assert data.learned_keywords.keep == ["kubernetes", "operators"]
        assert data.learned_keywords.filter == []

    def test_filter_keywords(self):
        data = apply_signal(LearningData.empty(), "notInterested", content="crypto crypto airdrop")
        assert data.learned_keywords.filter == ["crypto", "airdrop"]

    def test_hidden_learns_no_keywords(self):
        data = apply_signal(LearningData.empty(), "hidden", content="crypto airdrop")
        assert data.learned_keywords.keep == []
        assert data.learned_keywords.filter == []

    def test_only_top_five_keywords(self):
        content = "alpha1 bravo2 charlie delta echo foxtrot golf"
        data = apply_signal(LearningData.empty(), "liked", content=content)
        assert data.learned_keywords.keep == ["alpha1", "bravo2", "charlie", "delta", "echo"]

    def test_keyword_moves_between_lists(self):
        data = apply_signal(LearningData.empty(), "notInterested", content="kubernetes")
        assert data.learned_keywords.filter == ["kubernetes"]

        data = apply_signal(data, "filterRejected", content="kubernetes")
        assert data.learned_keywords.keep == ["kubernetes"]
        assert data.learned_keywords.filter == []

    def test_keyword_not_duplicated(self):
        data = apply_signal(LearningData.empty(), "liked", content="kubernetes")
        data = apply_signal(data, "liked", content="kubernetes")
        assert data.learned_keywords.keep == ["kubernetes"]

    def test_keyword_list_drops_oldest(self):
        data = LearningData.from_dict({
            "learnedKeywords": {"keep": [f"old{i:03d}" for i in range(200)], "filter": []},
        })
        data = apply_signal(data, "liked", content="kubernetes")

        assert len(data.learned_keywords.keep) == 200
        assert data.learned_keywords.keep[0] == "old001"
        assert data.learned_keywords.keep[-1] == "kubernetes"

    def test_pattern_hits_and_misses(self):
        data = apply_signal(LearningData.empty(), "filterApproved", matched_patterns=["p1", "p2"])
        data = apply_signal(data, "filterRejected", matched_patterns=["p1"])

        assert data.pattern_stats["p1"].hits == 1
        assert data.pattern_stats["p1"].misses == 1
        assert data.pattern_stats["p2"].hits == 1
        assert data.pattern_stats["p2"].misses == 0

    @pytest.mark.parametrize("signal", ["liked", "hidden", "notInterested"])
    def test_other_signals_leave_pattern_stats(self, signal):
        data = apply_signal(LearningData.empty(), signal, matched_patterns=["p1"])
        assert data.pattern_stats == {}

    def test_reputation_clamped(self):
        data = LearningData.empty()
        for _ in range(15):
            data = apply_signal(data, "hidden", author="Spammer")
        for _ in range(40):
            data = apply_signal(data, "liked", author="Friend")

        assert data.author_reputation["spammer"] == -100
        assert data.author_reputation["friend"] == 100

    def test_invariants_hold_for_random_sequences(self):
        rng = random.Random(7)
        vocabulary = [f"topic{i:03d}" for i in range(300)]
        signals = list(SIGNAL_WEIGHTS)
        data = LearningData.empty()

        for _ in range(400):
            content = " ".join(rng.sample(vocabulary, 6))
            data = apply_signal(data, rng.choice(signals), author=rng.choice(["A", "B"]), content=content)

            keep = data.learned_keywords.keep
            filtered = data.learned_keywords.filter
            assert not set(keep) & set(filtered)
            assert len(keep) <= 200
            assert len(filtered) <= 200
            assert all(-100 <= score <= 100 for score in data.author_reputation.values())


class TestFeedbackProcessor:

    @pytest.mark.asyncio
    async def test_load_empty_store(self, store):
        processor = FeedbackProcessor(store)
        assert await processor.load() == LearningData.empty()

    @pytest.mark.asyncio
    async def test_corrupted_store_reads_empty(self):
        store = MemoryStore({"learningData": "not a mapping"})
        assert await FeedbackProcessor(store).load() == LearningData.empty()

    @pytest.mark.asyncio
    async def test_process_signal_persists(self, store):
        processor = FeedbackProcessor(store)
        await processor.process_signal("liked", author="Bob", content="kubernetes")

        stored = store.snapshot()["learningData"]
        assert stored["authorReputation"] == {"bob": 3}
        assert stored["learnedKeywords"]["keep"] == ["kubernetes"]

    @pytest.mark.asyncio
    async def test_unknown_signal_touches_nothing(self):
        store = CountingStore()
        processor = FeedbackProcessor(store)

        assert await processor.process_signal("poked", author="Bob") is None
        assert store.calls == 0

    @pytest.mark.asyncio
    async def test_storage_errors_propagate(self):
        processor = FeedbackProcessor(FailingStore())
        with pytest.raises(OSError):
            await processor.process_signal("liked", author="Bob")

    @pytest.mark.asyncio
    async def test_hidden_twice_scenario(self, store):
        processor = FeedbackProcessor(store)
        await processor.process_signal("hidden", author="Jane Doe", content="Another hot take")
        await processor.process_signal("hidden", author="Jane Doe", content="Another hot take")

        data = await processor.load()
        assert data.author_reputation["jane doe"] == -20

    @pytest.mark.asyncio
    async def test_repeated_rejections_learn_keep_keyword(self, store):
        processor = FeedbackProcessor(store)
        for _ in range(5):
            await processor.process_signal("filterRejected", content="Upgrading our kubernetes cluster")

        data = await processor.load()
        assert "kubernetes" in data.learned_keywords.keep
        assert "kubernetes" not in data.learned_keywords.filter

    @pytest.mark.asyncio
    async def test_concurrent_signals_are_not_lost(self):
        store = CountingStore()
        processor = FeedbackProcessor(store)

        await asyncio.gather(*(
            processor.process_signal("liked", author="Bob", matched_patterns=["p"])
            for _ in range(10)
        ))
        await asyncio.gather(*(
            processor.process_signal(signal, matched_patterns=["p"])
            for signal in itertools.islice(itertools.cycle(["filterApproved", "filterRejected"]), 12)
        ))

        data = await processor.load()
        assert data.author_reputation["bob"] == 30
        assert data.pattern_stats["p"].hits == 6
        assert data.pattern_stats["p"].misses == 6

    @pytest.mark.asyncio
    async def test_replace_normalizes(self, store):
        processor = FeedbackProcessor(store)
        data = await processor.replace({"authorReputation": {"bob": 400}})

        assert data.author_reputation == {"bob": 100}
        assert store.snapshot()["learningData"]["authorReputation"] == {"bob": 100}

    @pytest.mark.asyncio
    async def test_reset(self, store):
        processor = FeedbackProcessor(store)
        await processor.process_signal("liked", author="Bob", content="kubernetes")
        await processor.reset()

        assert await processor.load() == LearningData.empty()

    @pytest.mark.asyncio
    async def test_custom_key(self, store):
        processor = FeedbackProcessor(store, key="profileA")
        await processor.process_signal("liked", author="Bob")

        assert "profileA" in store.snapshot()
        assert "learningData" not in store.snapshot()
