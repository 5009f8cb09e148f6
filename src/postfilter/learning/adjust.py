"""
Learning adjustments for postfilter classifications.

Blends three learned signals into a classification's confidence:
author reputation, learned keywords and pattern accuracy. A strongly
trusted author overrides everything else.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Sequence

from postfilter.models import ClassificationResult
from postfilter.constants import (
    DOMINATED_KEEP_REPUTATION,
    FILTER_CONFIDENCE_FLOOR,
    KEYWORD_ADJUSTMENT_MAX_NET,
    KEYWORD_ADJUSTMENT_STEP,
    NEGATIVE_REPUTATION_BANDS,
    PATTERN_MIN_OBSERVATIONS,
    PATTERN_WEIGHT_BASE,
    POSITIVE_REPUTATION_BANDS,
    REASON_LEARNING_REDUCED,
    REASON_TRUSTED_AUTHOR,
)
from postfilter.learning.store import LearningData


@dataclass
class LearningAdjustments:
    """Adjustments derived from learning data for one post."""
    author_adjustment: float = 0.0
    keyword_adjustment: float = 0.0
    pattern_weights: Dict[str, float] = field(default_factory=dict)
    dominated: Optional[str] = None  # "keep" when one signal decides alone


def author_adjustment(reputation: int) -> float:
    """Confidence shift for an author reputation score."""
    for bound, adjustment in NEGATIVE_REPUTATION_BANDS:
        if reputation <= bound:
            return adjustment
    for bound, adjustment in POSITIVE_REPUTATION_BANDS:
        if reputation >= bound:
            return adjustment
    return 0.0


def keyword_adjustment(content: str, learning_data: LearningData) -> float:
    """
    Confidence shift from learned keywords found in the content.

    Counts substring occurrences of keep and filter words; the side with
    more hits moves confidence by 0.1 per extra hit, capped at 3.
    """
    content_lower = content.lower()
    keep_matches = sum(1 for kw in learning_data.learned_keywords.keep if kw in content_lower)
    filter_matches = sum(1 for kw in learning_data.learned_keywords.filter if kw in content_lower)

    if keep_matches > filter_matches:
        return -KEYWORD_ADJUSTMENT_STEP * min(keep_matches - filter_matches, KEYWORD_ADJUSTMENT_MAX_NET)
    if filter_matches > keep_matches:
        return KEYWORD_ADJUSTMENT_STEP * min(filter_matches - keep_matches, KEYWORD_ADJUSTMENT_MAX_NET)
    return 0.0


def get_learning_adjustments(
    author: Optional[str],
    content: Optional[str],
    matched_patterns: Optional[Sequence[str]],
    learning_data: Optional[LearningData],
) -> LearningAdjustments:
    """
    Compute learning adjustments for a post.

    Args:
        author: Post author display name
        content: Post text
        matched_patterns: Pattern ids that matched the post
        learning_data: Current learning data (None means no adjustment)

    Returns:
        LearningAdjustments
    """
    adjustments = LearningAdjustments()

    if learning_data is None:
        return adjustments

    # Author reputation
    reputation = learning_data.reputation_for(author)
    adjustments.author_adjustment = author_adjustment(reputation)
    if reputation >= DOMINATED_KEEP_REPUTATION:
        adjustments.dominated = "keep"

    # Learned keywords
    if content and isinstance(content, str):
        adjustments.keyword_adjustment = keyword_adjustment(content, learning_data)

    # Pattern accuracy, only once a pattern has enough observations
    for pattern in matched_patterns or []:
        stats = learning_data.pattern_stats.get(pattern)
        if stats and stats.total >= PATTERN_MIN_OBSERVATIONS:
            adjustments.pattern_weights[pattern] = PATTERN_WEIGHT_BASE + stats.accuracy

    return adjustments


def apply_learning_to_classification(
    result: Optional[ClassificationResult],
    author: Optional[str],
    content: Optional[str],
    learning_data: Optional[LearningData],
) -> Optional[ClassificationResult]:
    """
    Apply learning adjustments to a classification result.

    Confidence is summed with the author and keyword adjustments, then
    multiplied by the mean pattern weight, then clamped to [0, 1].

    Args:
        result: Base classification (returned unchanged unless it filters)
        author: Post author display name
        content: Post text
        learning_data: Current learning data

    Returns:
        Adjusted copy of the result
    """
    if result is None or not result.filter:
        return result

    adjustments = get_learning_adjustments(author, content, result.matched_patterns, learning_data)

    # Trusted author: never filter
    if adjustments.dominated == "keep":
        return replace(
            result,
            filter=False,
            reason=REASON_TRUSTED_AUTHOR,
            learning_applied=True,
        )

    confidence = result.confidence + adjustments.author_adjustment + adjustments.keyword_adjustment

    weights = list(adjustments.pattern_weights.values())
    if weights:
        confidence *= sum(weights) / len(weights)

    confidence = max(0.0, min(1.0, confidence))

    if confidence < FILTER_CONFIDENCE_FLOOR:
        return replace(
            result,
            filter=False,
            confidence=confidence,
            reason=REASON_LEARNING_REDUCED,
            learning_applied=True,
        )

    return replace(result, confidence=confidence, learning_applied=True)
