"""
Data shapes shared by the classifier, learning engine and remote contract.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Mapping, Optional

from postfilter.utils import derive_post_id


@dataclass
class Post:
    """A post handed over by the page adapter."""
    id: str
    content: str
    author: str = ""

    @classmethod
    def from_value(cls, value: Any) -> "Post":
        """
        Build a Post from a Post or a plain mapping.

        Missing ids are derived from the post text.
        """
        if isinstance(value, Post):
            return value

        if not isinstance(value, Mapping):
            raise ValueError(f"Post must be a mapping, got {type(value).__name__}")

        content = value.get("content")
        content = content if isinstance(content, str) else ""
        post_id = value.get("id")

        return cls(
            id=str(post_id) if post_id is not None else derive_post_id(content),
            content=content,
            author=value.get("author") or "",
        )


@dataclass
class ClassificationResult:
    """Result of classifying a post."""
    filter: bool
    category: Optional[str]
    confidence: float
    reason: str
    matched_patterns: List[str] = field(default_factory=list)
    id: Optional[str] = None
    category_label: Optional[str] = None
    learning_applied: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClassificationResult":
        """
        Build a result from rich classifier output.

        Raises:
            ValueError: If confidence is not a number
        """
        filtered = bool(data.get("filter"))
        category = data.get("category") if filtered else None
        try:
            confidence = float(data.get("confidence") or 0)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid confidence: {data.get('confidence')!r}")

        post_id = data.get("id")
        return cls(
            filter=filtered,
            category=str(category) if category else None,
            confidence=max(0.0, min(1.0, confidence)),
            reason=str(data.get("reason") or ""),
            id=str(post_id) if post_id is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data form, structurally compatible with rich classifier results."""
        data = asdict(self)
        for key in ("id", "category_label"):
            if data[key] is None:
                del data[key]
        if not data["matched_patterns"]:
            del data["matched_patterns"]
        if not data["learning_applied"]:
            del data["learning_applied"]
        return data

