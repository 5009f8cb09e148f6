"""
Learning store for postfilter.

Holds everything learned from feedback: author reputation, learned
keep/filter keywords and per-pattern accuracy counters. The store is a
plain value; the feedback processor loads it, derives a new one and
writes it back through the storage port.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from postfilter.constants import (
    KEYWORD_LIST_LIMIT,
    REPUTATION_MAX,
    REPUTATION_MIN,
    UNKNOWN_AUTHOR,
)


logger = logging.getLogger(__name__)


@dataclass
class PatternStats:
    """Feedback outcome counters for one pattern."""
    hits: int = 0
    misses: int = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def accuracy(self) -> float:
        return self.hits / self.total if self.total else 0.0


@dataclass
class LearnedKeywords:
    """Words associated with kept and filtered posts (disjoint lists)."""
    keep: List[str] = field(default_factory=list)
    filter: List[str] = field(default_factory=list)


@dataclass
class LearningData:
    """The persisted learning aggregate."""
    author_reputation: Dict[str, int] = field(default_factory=dict)
    learned_keywords: LearnedKeywords = field(default_factory=LearnedKeywords)
    pattern_stats: Dict[str, PatternStats] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "LearningData":
        return cls()

    @classmethod
    def from_dict(cls, raw: Any) -> "LearningData":
        """
        Rebuild learning data from its stored form.

        Missing or corrupted parts load as empty; nothing here raises.
        Stored values are brought back inside the store invariants
        (normalized author keys, finite and clamped reputation, disjoint
        and bounded keyword lists).

        Args:
            raw: Stored mapping with authorReputation, learnedKeywords
                and patternStats keys

        Returns:
            LearningData
        """
        if not isinstance(raw, Mapping):
            if raw is not None:
                logger.warning("[LEARNING] Ignoring corrupted learning data (%s)", type(raw).__name__)
            return cls.empty()

        reputation = {}
        raw_reputation = raw.get("authorReputation")
        if isinstance(raw_reputation, Mapping):
            for author, score in raw_reputation.items():
                key = normalize_author(author)
                if key is None or not _is_number(score):
                    continue
                # Names differing only in case or spacing share one score
                reputation[key] = reputation.get(key, 0) + int(score)
            reputation = {key: clamp_reputation(score) for key, score in reputation.items()}

        keywords = LearnedKeywords()
        raw_keywords = raw.get("learnedKeywords")
        if isinstance(raw_keywords, Mapping):
            filter_words = _string_list(raw_keywords.get("filter"))
            filter_set = set(filter_words)
            keep_words = [w for w in _string_list(raw_keywords.get("keep")) if w not in filter_set]
            keywords = LearnedKeywords(
                keep=keep_words[-KEYWORD_LIST_LIMIT:],
                filter=filter_words[-KEYWORD_LIST_LIMIT:],
            )

        stats = {}
        raw_stats = raw.get("patternStats")
        if isinstance(raw_stats, Mapping):
            for pattern, counters in raw_stats.items():
                if isinstance(counters, Mapping):
                    stats[str(pattern)] = PatternStats(
                        hits=_count(counters.get("hits")),
                        misses=_count(counters.get("misses")),
                    )

        return cls(author_reputation=reputation, learned_keywords=keywords, pattern_stats=stats)

    def to_dict(self) -> Dict[str, Any]:
        """Stored / exported form (camelCase keys)."""
        return {
            "authorReputation": dict(self.author_reputation),
            "learnedKeywords": {
                "keep": list(self.learned_keywords.keep),
                "filter": list(self.learned_keywords.filter),
            },
            "patternStats": {
                pattern: {"hits": s.hits, "misses": s.misses}
                for pattern, s in self.pattern_stats.items()
            },
        }

    def copy(self) -> "LearningData":
        return LearningData(
            author_reputation=dict(self.author_reputation),
            learned_keywords=LearnedKeywords(
                keep=list(self.learned_keywords.keep),
                filter=list(self.learned_keywords.filter),
            ),
            pattern_stats={
                pattern: PatternStats(hits=s.hits, misses=s.misses)
                for pattern, s in self.pattern_stats.items()
            },
        )

    def reputation_for(self, author: Optional[str]) -> int:
        """Reputation of an author (0 when unknown)."""
        key = normalize_author(author)
        if key is None:
            return 0
        return self.author_reputation.get(key, 0)


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []

    seen = set()
    words = []
    for item in value:
        if isinstance(item, str) and item not in seen:
            seen.add(item)
            words.append(item)
    return words


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _count(value: Any) -> int:
    if _is_number(value):
        return int(value)
    return 0


def normalize_author(author: Optional[str]) -> Optional[str]:
    """
    Learning key for an author display name.

    Returns None for missing authors and the "Unknown" placeholder.
    """
    if not author or not isinstance(author, str) or author == UNKNOWN_AUTHOR:
        return None

    key = author.strip().lower()
    return key or None


def clamp_reputation(score: int) -> int:
    return max(REPUTATION_MIN, min(REPUTATION_MAX, score))
