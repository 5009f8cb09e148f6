"""
Tests for the classification pipeline.
"""

import csv

import pytest

from postfilter.classify.run import PostClassifier, mitigate_formula_injection
from postfilter.config import default_settings
from postfilter.learning.store import LearningData
from postfilter.remote import RichClassifierError
from postfilter.storage import get_classification_statistics, init_db

from conftest import NO_MATCH, SINGLE_MATCH


POSTS = [
    {"id": "p1", "content": SINGLE_MATCH, "author": "Jane Doe"},
    {"id": "p2", "content": NO_MATCH, "author": "Bob"},
]


class StubRichClassifier:
    """Rich classifier returning canned results."""

    def __init__(self, results=None, error=None):
        self.results = results
        self.error = error
        self.requests = []

    async def classify(self, request):
        self.requests.append(request)
        if self.error:
            raise self.error
        return self.results


@pytest.fixture
def conn(tmp_path):
    connection = init_db(str(tmp_path / "run.sqlite3"))
    yield connection
    connection.close()


class TestPostClassifier:

    @pytest.mark.asyncio
    async def test_local_classification(self):
        classifier = PostClassifier(default_settings())
        outcome = await classifier.classify_posts(POSTS)

        assert outcome.source == "local"
        assert outcome.error is None
        assert [r.filter for r in outcome.results] == [True, False]
        assert outcome.results[0].category_label == "AI-Generated"
        assert classifier.results == {"processed": 2, "filtered": 1, "kept": 1, "errors": 0}

    @pytest.mark.asyncio
    async def test_disabled_never_filters(self):
        settings = default_settings()
        settings.enabled = False
        outcome = await PostClassifier(settings).classify_posts(POSTS)

        assert [r.filter for r in outcome.results] == [False, False]
        assert [r.id for r in outcome.results] == ["p1", "p2"]

    @pytest.mark.asyncio
    async def test_none_settings_never_filter(self):
        outcome = await PostClassifier(None).classify_posts(POSTS)
        assert all(not r.filter for r in outcome.results)

    @pytest.mark.asyncio
    async def test_learning_applied(self):
        learning = LearningData.from_dict({"authorReputation": {"jane doe": -20}})
        outcome = await PostClassifier(default_settings()).classify_posts(POSTS, learning_data=learning)

        assert outcome.results[0].confidence == pytest.approx(0.85)
        assert outcome.results[0].learning_applied is True
        assert outcome.results[1].learning_applied is False

    @pytest.mark.asyncio
    async def test_rich_classifier_used_first(self):
        rich = StubRichClassifier(results=[
            {"id": "p2", "filter": True, "category": "politics", "confidence": 0.9, "reason": "Partisan"},
            {"id": "p1", "filter": False, "category": None, "confidence": 0.2, "reason": "Fine"},
        ])
        classifier = PostClassifier(default_settings(), rich_classifier=rich)

        outcome = await classifier.classify_posts(POSTS, preference_profile="Dislikes politics")

        assert outcome.source == "remote"
        assert [r.id for r in outcome.results] == ["p1", "p2"]
        assert outcome.results[1].category_label == "Politics"
        assert rich.requests[0].preference_profile == "Dislikes politics"

    @pytest.mark.asyncio
    async def test_rich_category_without_config_gets_formatted_label(self):
        rich = StubRichClassifier(results=[
            {"id": "p1", "filter": True, "category": "crypto_shilling", "confidence": 0.8, "reason": "Token pump"},
            {"id": "p2", "filter": False, "category": None, "confidence": 0.1, "reason": "Fine"},
        ])
        outcome = await PostClassifier(default_settings(), rich_classifier=rich).classify_posts(POSTS)

        assert outcome.results[0].category_label == "Crypto shilling"
        assert outcome.results[1].category_label is None

    @pytest.mark.asyncio
    async def test_rich_failure_falls_back_to_local(self):
        rich = StubRichClassifier(error=RichClassifierError("quota exceeded"))
        classifier = PostClassifier(default_settings(), rich_classifier=rich)

        outcome = await classifier.classify_posts(POSTS)

        assert outcome.source == "local"
        assert outcome.error == "quota exceeded"
        assert outcome.results[0].filter is True
        assert classifier.results["errors"] == 1

    @pytest.mark.asyncio
    async def test_rich_result_missing_post_falls_back(self):
        rich = StubRichClassifier(results=[
            {"id": "p1", "filter": False, "category": None, "confidence": 0.2, "reason": "Fine"},
        ])
        outcome = await PostClassifier(default_settings(), rich_classifier=rich).classify_posts(POSTS)

        assert outcome.source == "local"
        assert "p2" in outcome.error

    @pytest.mark.asyncio
    async def test_malformed_rich_results_fall_back(self):
        rich = StubRichClassifier(results={"not": "a list"})
        outcome = await PostClassifier(default_settings(), rich_classifier=rich).classify_posts(POSTS)

        assert outcome.source == "local"
        assert outcome.error

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        rich = StubRichClassifier(results=[])
        outcome = await PostClassifier(default_settings(), rich_classifier=rich).classify_posts([])

        assert outcome.results == []
        assert rich.requests == []

    @pytest.mark.asyncio
    async def test_audit_trail_and_export(self, conn, tmp_path):
        posts = POSTS + [{"id": "p3", "content": "=cmd|' /C calc'!A0 Agree?", "author": "@mallory"}]
        classifier = PostClassifier(default_settings(), conn=conn)

        await classifier.classify_posts(posts)

        stats = get_classification_statistics(conn)
        assert stats["total"] == 3
        assert stats["filtered_count"] == 2

        csv_path = classifier.export_filtered_to_csv(str(tmp_path / "export"))
        with open(csv_path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))

        assert {r["post_id"] for r in rows} == {"p1", "p3"}
        injected = next(r for r in rows if r["post_id"] == "p3")
        assert injected["snippet"].startswith("'=")
        assert injected["author"] == "'@mallory"

    @pytest.mark.asyncio
    async def test_export_with_nothing_filtered(self, conn, tmp_path):
        classifier = PostClassifier(default_settings(), conn=conn)
        await classifier.classify_posts([{"id": "p2", "content": NO_MATCH}])

        assert classifier.export_filtered_to_csv(str(tmp_path)) is None

    def test_export_needs_connection(self, tmp_path):
        with pytest.raises(ValueError):
            PostClassifier(default_settings()).export_filtered_to_csv(str(tmp_path))

    @pytest.mark.asyncio
    async def test_counters_reset(self):
        classifier = PostClassifier(default_settings())
        await classifier.classify_posts(POSTS)
        classifier.reset_counters()

        assert classifier.results == {"processed": 0, "filtered": 0, "kept": 0, "errors": 0}


class TestMitigateFormulaInjection:

    @pytest.mark.parametrize("value,expected", [
        ("=SUM(A1)", "'=SUM(A1)"),
        ("+1", "'+1"),
        ("-1", "'-1"),
        ("@cmd", "'@cmd"),
        ("plain", "plain"),
        ("", ""),
    ])
    def test_values(self, value, expected):
        assert mitigate_formula_injection(value) == expected
