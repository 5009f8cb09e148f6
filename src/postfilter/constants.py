"""
Scoring constants for postfilter.

Every threshold, clamp and band used by the local classifier and the
learning engine lives here so the scoring model can be read in one place.
"""

from typing import Dict, Any


# Sensitivity -> (match threshold, base confidence, per-match bonus)
SENSITIVITY_PROFILES = {
    "low": {"threshold": 2, "base_confidence": 0.40, "per_match": 0.15},
    "medium": {"threshold": 1, "base_confidence": 0.50, "per_match": 0.15},
    "high": {"threshold": 1, "base_confidence": 0.60, "per_match": 0.20},
}
DEFAULT_SENSITIVITY = "medium"

MAX_PATTERN_CONFIDENCE = 0.95
MATCHED_PATTERN_LIMIT = 3

# Keyword extraction
MIN_KEYWORD_LENGTH = 4
MAX_KEYWORD_LENGTH = 25
MAX_EXTRACTED_KEYWORDS = 20
KEYWORDS_PER_SIGNAL = 5
KEYWORD_LIST_LIMIT = 200

# Author reputation
UNKNOWN_AUTHOR = "Unknown"
REPUTATION_MIN = -100
REPUTATION_MAX = 100

# (lower-or-equal bound, adjustment) checked in order for negative reputation,
# (greater-or-equal bound, adjustment) checked in order for positive reputation
NEGATIVE_REPUTATION_BANDS = ((-10, 0.20), (-5, 0.10))
POSITIVE_REPUTATION_BANDS = ((10, -0.30), (5, -0.15))
DOMINATED_KEEP_REPUTATION = 20

# Learned keyword adjustment
KEYWORD_ADJUSTMENT_STEP = 0.10
KEYWORD_ADJUSTMENT_MAX_NET = 3

# Pattern accuracy weighting
PATTERN_MIN_OBSERVATIONS = 3
PATTERN_WEIGHT_BASE = 0.5

# Adjusted confidence below this no longer filters
FILTER_CONFIDENCE_FLOOR = 0.40

# Feedback history and preference profile
LEARNING_DATA_KEY = "learningData"
MAX_HISTORY = 500
HISTORY_CONTENT_LIMIT = 500
PROFILE_REGEN_THRESHOLD = 25
PROFILE_MIN_SAMPLES = 5
PROFILE_HISTORY_WINDOW = 100
RECENT_FEEDBACK_WINDOW = 20
RECENT_FEEDBACK_PREVIEW = 120

DEFAULT_MODEL = "claude-sonnet-4-20250514"

REASON_NO_MATCH = "No patterns matched"
REASON_TRUSTED_AUTHOR = "Author has strong positive reputation"
REASON_LEARNING_REDUCED = "Confidence reduced by learning"


def get_sensitivity_profile(sensitivity: Any) -> Dict[str, Any]:
    """
    Resolve a sensitivity name to its scoring profile.

    Unknown or missing values fall back to medium.
    """
    if isinstance(sensitivity, str) and sensitivity in SENSITIVITY_PROFILES:
        return SENSITIVITY_PROFILES[sensitivity]
    return SENSITIVITY_PROFILES[DEFAULT_SENSITIVITY]
