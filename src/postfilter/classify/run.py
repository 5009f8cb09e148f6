"""
Classification orchestrator for postfilter.

Handles batch classification of posts (rich classifier first when one is
configured, local patterns otherwise), learning adjustments, the
classification audit trail and CSV export.
"""

import csv
import logging
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from postfilter.config import Settings, coerce_settings
from postfilter.learning.adjust import apply_learning_to_classification
from postfilter.learning.store import LearningData
from postfilter.models import ClassificationResult, Post
from postfilter.remote import (
    RichClassifier,
    RichClassifierError,
    build_rich_request,
    coerce_rich_results,
)
from postfilter.storage import fetch_filtered_posts, upsert_post_classification
from postfilter.utils import format_category_label, sanitize_text
from .rules import classify_posts_locally


logger = logging.getLogger(__name__)


SOURCE_LOCAL = "local"
SOURCE_REMOTE = "remote"
REASON_DISABLED = "Filtering disabled"


@dataclass
class BatchOutcome:
    """
    Results of one batch.

    error is set when the rich classifier failed and the batch fell back
    to local patterns.
    """
    results: List[ClassificationResult]
    source: str
    error: Optional[str] = None


class PostClassifier:
    """
    Orchestrates post classification.

    Features:
    - Rich classifier with local fallback
    - Learning adjustments on local results
    - Optional audit trail in the post_classifications table
    - CSV export with formula injection mitigation
    """

    def __init__(
        self,
        settings: Any,
        rich_classifier: Optional[RichClassifier] = None,
        conn: Optional[sqlite3.Connection] = None,
    ):
        """
        Initialize classifier.

        Args:
            settings: Settings or settings mapping (None enables no category)
            rich_classifier: Optional remote classifier
            conn: Optional database connection for the audit trail
        """
        self.settings: Settings = coerce_settings(settings)
        self.rich_classifier = rich_classifier
        self.conn = conn
        self.results = self._empty_counters()

    @staticmethod
    def _empty_counters() -> Dict[str, int]:
        return {
            "processed": 0,
            "filtered": 0,
            "kept": 0,
            "errors": 0,
        }

    def reset_counters(self) -> None:
        self.results = self._empty_counters()

    async def classify_posts(
        self,
        posts: Sequence[Any],
        learning_data: Optional[LearningData] = None,
        preference_profile: Optional[str] = None,
        feedback_history: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> BatchOutcome:
        """
        Classify a batch of posts.

        Args:
            posts: Posts as Post objects or {id, content, author} mappings
            learning_data: Learning data applied to local results
            preference_profile: Profile text sent to the rich classifier
            feedback_history: Feedback history sent to the rich classifier

        Returns:
            BatchOutcome with one result per post, in input order
        """
        items = [Post.from_value(p) for p in posts]

        if not self.settings.enabled:
            results = [
                ClassificationResult(
                    id=post.id,
                    filter=False,
                    category=None,
                    confidence=0,
                    reason=REASON_DISABLED,
                )
                for post in items
            ]
            outcome = BatchOutcome(results=results, source=SOURCE_LOCAL)
            self._record(items, outcome)
            return outcome

        error = None
        if self.rich_classifier is not None and items:
            try:
                outcome = await self._classify_remote(items, preference_profile, feedback_history)
                self._record(items, outcome)
                return outcome
            except RichClassifierError as e:
                error = str(e)
                self.results["errors"] += 1
                logger.warning("[CLASSIFY] Rich classifier failed, using local patterns: %s", e)

        results = classify_posts_locally(items, self.settings)

        if learning_data is not None:
            results = [
                apply_learning_to_classification(result, post.author, post.content, learning_data)
                for post, result in zip(items, results)
            ]

        outcome = BatchOutcome(results=results, source=SOURCE_LOCAL, error=error)
        self._record(items, outcome)
        return outcome

    async def _classify_remote(
        self,
        items: List[Post],
        preference_profile: Optional[str],
        feedback_history: Optional[Sequence[Dict[str, Any]]],
    ) -> BatchOutcome:
        request = build_rich_request(items, self.settings, preference_profile, feedback_history)
        raw = await self.rich_classifier.classify(request)
        by_id = {r.id: r for r in coerce_rich_results(raw)}

        results = []
        for post in items:
            result = by_id.get(post.id)
            if result is None:
                raise RichClassifierError(f"No result for post {post.id}")
            if result.filter and result.category:
                category = self.settings.categories.get(result.category)
                # The rich classifier may name a category that is not configured
                result.category_label = (category.label if category else None) or format_category_label(result.category)
            results.append(result)

        return BatchOutcome(results=results, source=SOURCE_REMOTE)

    def _record(self, items: List[Post], outcome: BatchOutcome) -> None:
        """Update counters and the audit trail."""
        for post, result in zip(items, outcome.results):
            self.results["processed"] += 1
            if result.filter:
                self.results["filtered"] += 1
            else:
                self.results["kept"] += 1

            if self.conn is not None:
                upsert_post_classification(
                    self.conn,
                    post_id=post.id,
                    author=post.author,
                    content=post.content,
                    result=result.to_dict(),
                    source=outcome.source,
                )

    def export_filtered_to_csv(
        self,
        export_dir: str,
        export_limit: Optional[int] = None,
    ) -> Optional[str]:
        """
        Export filtered posts from the audit trail to CSV.

        Args:
            export_dir: Directory to write CSV file
            export_limit: Max posts to export

        Returns:
            Path to CSV file or None if nothing was filtered
        """
        if self.conn is None:
            raise ValueError("CSV export needs a database connection")

        filtered = fetch_filtered_posts(self.conn, limit=export_limit)

        if not filtered:
            logger.info("[EXPORT] No filtered posts to export")
            return None

        Path(export_dir).mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        csv_path = os.path.join(export_dir, f"filtered_{timestamp}.csv")

        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f, quoting=csv.QUOTE_MINIMAL)

            writer.writerow([
                "post_id",
                "author",
                "category",
                "confidence",
                "snippet",
                "reason",
                "matched_patterns",
                "source",
            ])

            for post in filtered:
                snippet = sanitize_text(post["content"] or "")
                snippet = snippet.replace("\n", " ").replace("\r", " ")
                snippet = snippet[:200]

                writer.writerow([
                    post["post_id"],
                    mitigate_formula_injection(post["author"] or ""),
                    post["category"] or "",
                    post["confidence"],
                    mitigate_formula_injection(snippet),
                    mitigate_formula_injection(post["reason"]),
                    " | ".join(post["matched_patterns"]),
                    post["source"],
                ])

        logger.info("[EXPORT] Exported %d post(s) to: %s", len(filtered), csv_path)
        return csv_path


def mitigate_formula_injection(value: str) -> str:
    """
    Mitigate CSV formula injection by prefixing dangerous cells.

    Spreadsheets treat cells starting with =, +, -, @ as formulas.
    Prefix with single quote to treat as text.

    Args:
        value: Cell value

    Returns:
        Safe value
    """
    if not value:
        return value

    if value[0] in "=+-@\t\r":
        return f"'{value}"

    return value
