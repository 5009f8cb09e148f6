"""
Feedback processing for postfilter learning.

Turns user decisions and observed interactions ("signals") into updates
of the learning store: author reputation, learned keywords and pattern
accuracy counters.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from postfilter.constants import KEYWORD_LIST_LIMIT, KEYWORDS_PER_SIGNAL, LEARNING_DATA_KEY
from postfilter.learning.keywords import extract_keywords
from postfilter.learning.store import (
    LearnedKeywords,
    LearningData,
    PatternStats,
    clamp_reputation,
    normalize_author,
)


logger = logging.getLogger(__name__)


SIGNAL_WEIGHTS: Dict[str, Dict[str, Any]] = {
    # Direct filter feedback
    "filterApproved": {"author": -1, "analyze_for_filter": True},
    "filterRejected": {"author": +2, "analyze_for_keep": True},

    # Post interactions
    "liked": {"author": +3, "analyze_for_keep": True},
    "commented": {"author": +3, "analyze_for_keep": True},
    "shared": {"author": +3, "analyze_for_keep": True},

    # Negative signals
    "hidden": {"author": -10},
    "unfollowed": {"author": -10},
    "notInterested": {"author": -2, "analyze_for_filter": True},
}

HIT_SIGNAL = "filterApproved"
MISS_SIGNAL = "filterRejected"


def _learn_keywords(keywords: LearnedKeywords, words: List[str], direction: str) -> None:
    """Move words into the keep or filter list, evicting the oldest past the limit."""
    if direction == "keep":
        target, other = keywords.keep, keywords.filter
    else:
        target, other = keywords.filter, keywords.keep

    for word in words:
        if word not in target:
            target.append(word)
        if word in other:
            other.remove(word)

    del target[:-KEYWORD_LIST_LIMIT]


def apply_signal(
    learning_data: LearningData,
    signal: str,
    author: Optional[str] = None,
    content: Optional[str] = None,
    matched_patterns: Optional[Sequence[str]] = None,
) -> LearningData:
    """
    Apply one feedback signal to learning data.

    The input is not modified.

    Args:
        learning_data: Current learning data
        signal: Signal name (see SIGNAL_WEIGHTS)
        author: Post author display name
        content: Post text
        matched_patterns: Pattern ids that matched the post

    Returns:
        Updated copy of the learning data (the input itself for
        unknown signals)
    """
    weights = SIGNAL_WEIGHTS.get(signal)
    if weights is None:
        logger.warning("[LEARNING] Unknown signal: %s", signal)
        return learning_data

    data = learning_data.copy()

    # Author reputation
    author_key = normalize_author(author)
    if weights.get("author") and author_key:
        score = data.author_reputation.get(author_key, 0) + weights["author"]
        data.author_reputation[author_key] = clamp_reputation(score)
        logger.debug("[LEARNING] Author %r reputation: %d", author, data.author_reputation[author_key])

    # Keywords
    if content and isinstance(content, str):
        keywords = extract_keywords(content)[:KEYWORDS_PER_SIGNAL]
        if keywords:
            if weights.get("analyze_for_keep"):
                _learn_keywords(data.learned_keywords, keywords, "keep")
            if weights.get("analyze_for_filter"):
                _learn_keywords(data.learned_keywords, keywords, "filter")

    # Pattern statistics
    if matched_patterns and signal in (HIT_SIGNAL, MISS_SIGNAL):
        for pattern in matched_patterns:
            stats = data.pattern_stats.setdefault(pattern, PatternStats())
            if signal == HIT_SIGNAL:
                stats.hits += 1
            else:
                stats.misses += 1

    return data


class FeedbackProcessor:
    """
    Applies feedback signals to the persisted learning store.

    Each signal is one read-modify-write against the storage port. The
    port has no transactions, so calls are serialized with a lock to keep
    concurrent feedback (rapid clicks) from losing updates.
    """

    def __init__(self, store, key: str = LEARNING_DATA_KEY):
        """
        Initialize feedback processor.

        Args:
            store: Async key-value store with get(key) and set(mapping)
            key: Storage key of the learning data
        """
        self.store = store
        self.key = key
        self._lock = asyncio.Lock()

    async def load(self) -> LearningData:
        """Read the current learning data (empty when missing or corrupted)."""
        raw = await self.store.get(self.key)
        return LearningData.from_dict(raw)

    async def process_signal(
        self,
        signal: str,
        author: Optional[str] = None,
        content: Optional[str] = None,
        matched_patterns: Optional[Sequence[str]] = None,
    ) -> Optional[LearningData]:
        """
        Record a feedback signal.

        Unknown signals are logged and ignored. Storage errors propagate.

        Returns:
            The learning data as written, or None for unknown signals
        """
        if signal not in SIGNAL_WEIGHTS:
            logger.warning("[LEARNING] Unknown signal: %s", signal)
            return None

        async with self._lock:
            current = await self.load()
            updated = apply_signal(current, signal, author, content, matched_patterns)
            await self.store.set({self.key: updated.to_dict()})

        return updated

    async def replace(self, raw: Any) -> LearningData:
        """Overwrite the store with imported data (normalized first)."""
        data = LearningData.from_dict(raw)
        async with self._lock:
            await self.store.set({self.key: data.to_dict()})
        return data

    async def reset(self) -> None:
        """Clear all learned data."""
        async with self._lock:
            await self.store.set({self.key: LearningData.empty().to_dict()})
