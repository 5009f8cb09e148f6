"""
Classification module for postfilter.

Handles local pattern classification of feed posts and the batch
pipeline that combines it with the rich classifier and learning.
"""

from .patterns import LOCAL_PATTERNS, PATTERN_SOURCES, get_pattern_library
from .rules import classify_with_patterns, classify_posts_locally
from .run import PostClassifier, BatchOutcome, mitigate_formula_injection

__all__ = [
    "LOCAL_PATTERNS",
    "PATTERN_SOURCES",
    "get_pattern_library",
    "classify_with_patterns",
    "classify_posts_locally",
    "PostClassifier",
    "BatchOutcome",
    "mitigate_formula_injection",
]
