"""
Storage layer for postfilter.

Async key-value stores used by the learning engine:
- SQLite-backed persistence (with a classification audit trail)
- In-memory store for tests and embedding hosts
"""

from .sqlite import (
    init_db,
    get_value,
    set_values,
    upsert_post_classification,
    get_classification_statistics,
    fetch_filtered_posts,
    SqliteStore,
)
from .memory import MemoryStore

__all__ = [
    "init_db",
    "get_value",
    "set_values",
    "upsert_post_classification",
    "get_classification_statistics",
    "fetch_filtered_posts",
    "SqliteStore",
    "MemoryStore",
]
