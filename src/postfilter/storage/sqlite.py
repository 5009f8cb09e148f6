"""
SQLite storage layer for postfilter.

Provides:
- Database initialization
- Key-value persistence for the learning store, history and stats
- Classification audit trail
"""

import json
import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from postfilter.utils import sanitize_data


def init_db(db_path: str) -> sqlite3.Connection:
    """
    Initialize SQLite database with required tables.

    Creates tables if they don't exist:
    - kv_store: JSON values keyed by name (learning data, history, stats)
    - post_classifications: Audit trail for classifications

    Args:
        db_path: Path to SQLite database file

    Returns:
        sqlite3.Connection: Database connection
    """
    conn = sqlite3.connect(db_path)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS kv_store (
            key TEXT PRIMARY KEY,
            value_json TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)

    conn.execute("""
        CREATE TABLE IF NOT EXISTS post_classifications (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            post_id TEXT NOT NULL,
            author TEXT,
            content TEXT,
            filter INTEGER NOT NULL,
            category TEXT,
            confidence REAL NOT NULL,
            reason TEXT NOT NULL,
            matched_patterns_json TEXT NOT NULL,
            source TEXT NOT NULL,
            created_at TEXT NOT NULL,
            UNIQUE(post_id, source)
        )
    """)

    conn.commit()
    return conn


def get_value(conn: sqlite3.Connection, key: str) -> Optional[Any]:
    """
    Read one JSON value.

    Args:
        conn: Database connection
        key: Storage key

    Returns:
        Decoded value, or None if the key is absent or unreadable
    """
    cursor = conn.execute("SELECT value_json FROM kv_store WHERE key = ?", (key,))
    row = cursor.fetchone()

    if row is None:
        return None

    try:
        return json.loads(row[0])
    except json.JSONDecodeError:
        # Corrupted value reads as missing
        return None


def set_values(conn: sqlite3.Connection, items: Mapping[str, Any]) -> None:
    """
    Write several JSON values in one transaction.

    Strings are sanitized first so lone surrogates cannot break encoding.

    Args:
        conn: Database connection
        items: Mapping of key to JSON-serializable value
    """
    now = datetime.utcnow().isoformat()

    with conn:
        for key, value in items.items():
            value_json = json.dumps(sanitize_data(value), ensure_ascii=False)
            conn.execute("""
                INSERT INTO kv_store (key, value_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT (key) DO UPDATE SET
                    value_json = excluded.value_json,
                    updated_at = excluded.updated_at
            """, (key, value_json, now))


def upsert_post_classification(
    conn: sqlite3.Connection,
    post_id: str,
    author: Optional[str],
    content: Optional[str],
    result: Dict[str, Any],
    source: str = "local",
) -> None:
    """
    Insert or update a classification record.

    Args:
        conn: Database connection
        post_id: Post identifier
        author: Post author
        content: Post text
        result: Classification result as plain data
        source: "local" or "remote"
    """
    now = datetime.utcnow().isoformat()
    matched_json = json.dumps(sanitize_data(result.get("matched_patterns", [])), ensure_ascii=False)

    conn.execute("""
        INSERT INTO post_classifications
            (post_id, author, content, filter, category, confidence, reason,
             matched_patterns_json, source, created_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (post_id, source) DO UPDATE SET
            author = excluded.author,
            content = excluded.content,
            filter = excluded.filter,
            category = excluded.category,
            confidence = excluded.confidence,
            reason = excluded.reason,
            matched_patterns_json = excluded.matched_patterns_json,
            created_at = excluded.created_at
    """, (
        sanitize_data(post_id),
        sanitize_data(author),
        sanitize_data(content),
        1 if result.get("filter") else 0,
        result.get("category"),
        float(result.get("confidence") or 0),
        sanitize_data(result.get("reason") or ""),
        matched_json,
        source,
        now,
    ))

    conn.commit()


def get_classification_statistics(conn: sqlite3.Connection) -> Dict[str, Any]:
    """
    Get statistics about recorded classifications.

    Returns:
        Dict with total, filtered, kept counts and average filter confidence
    """
    cursor = conn.execute("""
        SELECT
            COUNT(*) as total,
            SUM(CASE WHEN filter = 1 THEN 1 ELSE 0 END) as filtered_count,
            SUM(CASE WHEN filter = 0 THEN 1 ELSE 0 END) as kept_count,
            AVG(CASE WHEN filter = 1 THEN confidence ELSE NULL END) as avg_confidence
        FROM post_classifications
    """)
    row = cursor.fetchone()

    return {
        "total": row[0] or 0,
        "filtered_count": row[1] or 0,
        "kept_count": row[2] or 0,
        "avg_confidence": round(row[3], 2) if row[3] else 0.0,
    }


def fetch_filtered_posts(
    conn: sqlite3.Connection,
    limit: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Fetch posts classified as filtered, most confident first.

    Args:
        conn: Database connection
        limit: Maximum number of posts to fetch

    Returns:
        List of classification dictionaries
    """
    query = """
        SELECT
            post_id, author, content, category, confidence, reason,
            matched_patterns_json, source, created_at
        FROM post_classifications
        WHERE filter = 1
        ORDER BY confidence DESC, created_at DESC
    """

    params = []
    if limit:
        query += " LIMIT ?"
        params.append(limit)

    cursor = conn.execute(query, params)
    rows = cursor.fetchall()

    return [
        {
            "post_id": row[0],
            "author": row[1],
            "content": row[2],
            "category": row[3],
            "confidence": row[4],
            "reason": row[5],
            "matched_patterns": json.loads(row[6]),
            "source": row[7],
            "created_at": row[8],
        }
        for row in rows
    ]


class SqliteStore:
    """
    Async key-value port backed by SQLite.

    Calls run inline; SQLite work here is small and local.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.conn = init_db(db_path)

    async def get(self, key: str) -> Optional[Any]:
        return get_value(self.conn, key)

    async def set(self, items: Mapping[str, Any]) -> None:
        set_values(self.conn, items)

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None
