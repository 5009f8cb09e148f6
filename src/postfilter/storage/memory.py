"""
In-memory key-value store.

Same port as SqliteStore; values are deep-copied in and out so callers
never share state with the store.
"""

import copy
from typing import Any, Dict, Mapping, Optional


class MemoryStore:
    """Dict-backed async key-value store."""

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(dict(initial or {}))

    async def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    async def set(self, items: Mapping[str, Any]) -> None:
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)

    def snapshot(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)
