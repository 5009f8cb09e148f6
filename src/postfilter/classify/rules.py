"""
Local classification rules for postfilter.

Scores a post against the pattern library. The sensitivity level decides
how many patterns a category needs and how confident a match is.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Pattern, Sequence

from postfilter.constants import (
    MATCHED_PATTERN_LIMIT,
    MAX_PATTERN_CONFIDENCE,
    REASON_NO_MATCH,
    get_sensitivity_profile,
)
from postfilter.classify.patterns import LOCAL_PATTERNS, pattern_id
from postfilter.config import coerce_settings
from postfilter.models import ClassificationResult, Post


logger = logging.getLogger(__name__)


@dataclass
class _CategoryMatch:
    category: str
    match_count: int
    confidence: float
    matched_patterns: List[str]


def _is_enabled(entry: Any) -> bool:
    if isinstance(entry, Mapping):
        return bool(entry.get("enabled"))
    return bool(getattr(entry, "enabled", False))


def classify_with_patterns(
    content: Any,
    enabled_categories: Optional[Mapping[str, Any]],
    sensitivity: str = "medium",
    patterns: Optional[Mapping[str, Sequence[Pattern]]] = None,
) -> Optional[ClassificationResult]:
    """
    Classify a single post with local pattern matching.

    Each enabled category counts how many of its patterns appear in the
    content. Categories reaching the sensitivity threshold qualify; the one
    with the most matches wins, then the higher confidence, then library
    order.

    Args:
        content: Post text
        enabled_categories: Map of category id to {"enabled": bool, ...}.
            None means no category is enabled.
        sensitivity: "low" | "medium" | "high" (unknown values act as medium)
        patterns: Optional replacement pattern library

    Returns:
        ClassificationResult with filter=True, or None if nothing qualifies
        or the content is not usable text
    """
    if not content or not isinstance(content, str):
        return None

    if not isinstance(enabled_categories, Mapping):
        return None

    profile = get_sensitivity_profile(sensitivity)
    threshold = profile["threshold"]
    base_confidence = profile["base_confidence"]
    per_match = profile["per_match"]

    library = LOCAL_PATTERNS if patterns is None else patterns
    qualifying: List[_CategoryMatch] = []

    for category_id, category_patterns in library.items():
        # Skip disabled categories
        if not _is_enabled(enabled_categories.get(category_id)):
            continue

        matched = [pattern_id(p) for p in category_patterns if p.search(content)]
        match_count = len(matched)

        if match_count >= threshold:
            confidence = min(base_confidence + per_match * match_count, MAX_PATTERN_CONFIDENCE)
            qualifying.append(_CategoryMatch(
                category=category_id,
                match_count=match_count,
                confidence=confidence,
                matched_patterns=matched[:MATCHED_PATTERN_LIMIT],
            ))

    if not qualifying:
        return None

    # max() keeps the first of equal keys, so library order breaks ties
    best = max(qualifying, key=lambda m: (m.match_count, m.confidence))

    return ClassificationResult(
        filter=True,
        category=best.category,
        confidence=best.confidence,
        reason=f"Matched {best.match_count} pattern(s)",
        matched_patterns=best.matched_patterns,
    )


def classify_posts_locally(posts: Sequence[Any], settings: Any) -> List[ClassificationResult]:
    """
    Classify a batch of posts with local pattern matching.

    Args:
        posts: Posts as Post objects or {id, content, author} mappings
        settings: Settings, a {categories, sensitivity} mapping, or None
            (None enables no category)

    Returns:
        One ClassificationResult per post, in input order
    """
    resolved = coerce_settings(settings)
    categories = resolved.categories
    results = []

    for raw_post in posts:
        post = Post.from_value(raw_post)
        result = classify_with_patterns(post.content, categories, resolved.sensitivity)

        if result:
            result.id = post.id
            category_config = categories.get(result.category)
            label = category_config.label if category_config else None
            result.category_label = label or result.category
            results.append(result)
        else:
            results.append(ClassificationResult(
                id=post.id,
                filter=False,
                category=None,
                confidence=0,
                reason=REASON_NO_MATCH,
            ))

    logger.debug(
        "[CLASSIFY] %d post(s), %d filtered",
        len(results),
        sum(1 for r in results if r.filter),
    )
    return results
