"""
Shared fixtures for postfilter tests.
"""

import pytest

from postfilter.storage import MemoryStore


ALL_ENABLED = {
    "ai_generated": {"enabled": True, "label": "AI Generated"},
    "thought_leadership": {"enabled": True, "label": "Thought Leadership"},
    "engagement_bait": {"enabled": True, "label": "Engagement Bait"},
    "self_promotion": {"enabled": True, "label": "Self Promotion"},
    "politics": {"enabled": True, "label": "Politics"},
    "rage_bait": {"enabled": True, "label": "Rage Bait"},
    "corporate_fluff": {"enabled": True, "label": "Corporate Fluff"},
}

# One ai_generated pattern and nothing else
SINGLE_MATCH = "In today's fast-paced world, we need to adapt."

# Two ai_generated patterns
DOUBLE_MATCH = "In today's fast-paced world, here's the takeaway."

NO_MATCH = "Had a nice lunch with colleagues today."


@pytest.fixture
def all_enabled():
    return {cid: dict(entry) for cid, entry in ALL_ENABLED.items()}


@pytest.fixture
def all_enabled_settings(all_enabled):
    return {"categories": all_enabled, "sensitivity": "medium"}


@pytest.fixture
def store():
    return MemoryStore()
