"""
Learning module for postfilter.

Keeps author reputation, learned keywords and pattern accuracy, and
turns them into confidence adjustments.
"""

from .keywords import extract_keywords, STOP_WORDS
from .store import LearningData, LearnedKeywords, PatternStats, normalize_author
from .feedback import SIGNAL_WEIGHTS, apply_signal, FeedbackProcessor
from .adjust import LearningAdjustments, get_learning_adjustments, apply_learning_to_classification
from .history import FeedbackRecorder, ProfileScheduler, ProfileRegenerationDue

__all__ = [
    "extract_keywords",
    "STOP_WORDS",
    "LearningData",
    "LearnedKeywords",
    "PatternStats",
    "normalize_author",
    "SIGNAL_WEIGHTS",
    "apply_signal",
    "FeedbackProcessor",
    "LearningAdjustments",
    "get_learning_adjustments",
    "apply_learning_to_classification",
    "FeedbackRecorder",
    "ProfileScheduler",
    "ProfileRegenerationDue",
]
