"""
Rich classifier contract for postfilter.

The rich classifier is an external language-model collaborator. This
module builds what it is sent (classification request, preference
profile prompt) and validates what comes back. The transport itself is
supplied by the host application.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from postfilter.config import Settings
from postfilter.constants import RECENT_FEEDBACK_PREVIEW, RECENT_FEEDBACK_WINDOW
from postfilter.models import ClassificationResult, Post
from postfilter.utils import sanitize_text


class RichClassifierError(Exception):
    """The rich classifier failed or returned unusable output."""


@dataclass
class RichClassificationRequest:
    """Everything the rich classifier needs for one batch."""
    posts: List[Post]
    categories: Dict[str, str]
    sensitivity: str
    preference_profile: Optional[str] = None
    recent_feedback: List[Dict[str, Any]] = field(default_factory=list)
    custom_keywords: List[str] = field(default_factory=list)
    model: Optional[str] = None


class RichClassifier(Protocol):
    """Remote classifier reachable by the host application."""

    async def classify(self, request: RichClassificationRequest) -> List[Dict[str, Any]]:
        """Return one {id, filter, category, confidence, reason} dict per post."""
        ...


def build_rich_request(
    posts: Sequence[Post],
    settings: Settings,
    preference_profile: Optional[str] = None,
    feedback_history: Optional[Sequence[Dict[str, Any]]] = None,
) -> RichClassificationRequest:
    """
    Build a rich classification request.

    Only enabled categories are sent, with their descriptions. The last
    20 feedback entries go along as short previews. All text is sanitized.

    Args:
        posts: Posts to classify
        settings: Classification settings
        preference_profile: Learned preference profile text
        feedback_history: Stored feedback history

    Returns:
        RichClassificationRequest
    """
    recent = []
    for entry in list(feedback_history or [])[-RECENT_FEEDBACK_WINDOW:]:
        recent.append({
            "feedback": entry.get("feedback"),
            "category": entry.get("category"),
            "contentPreview": sanitize_text((entry.get("content") or "")[:RECENT_FEEDBACK_PREVIEW]),
        })

    return RichClassificationRequest(
        posts=[
            Post(id=p.id, content=sanitize_text(p.content), author=sanitize_text(p.author))
            for p in posts
        ],
        categories={
            category_id: category.description
            for category_id, category in settings.enabled_categories().items()
        },
        sensitivity=settings.sensitivity,
        preference_profile=preference_profile,
        recent_feedback=recent,
        custom_keywords=list(settings.custom_keywords),
        model=settings.model,
    )


def build_classification_prompt(request: RichClassificationRequest) -> str:
    """Render a request as the model prompt."""
    categories = "\n".join(
        f"- **{category_id}**: {description}"
        for category_id, description in request.categories.items()
    )

    keywords = ""
    if request.custom_keywords:
        keywords = (
            "\n## Keyword Triggers\n"
            f"Also filter posts containing these keywords/phrases: {', '.join(request.custom_keywords)}"
        )

    feedback = ""
    if request.recent_feedback:
        lines = []
        for f in request.recent_feedback:
            verdict = "CORRECTLY FILTERED" if f["feedback"] == "approved" else "WRONGLY FILTERED"
            lines.append(f'- [{verdict}] Category: {f["category"] or "none"} | "{f["contentPreview"]}"')
        feedback = (
            "\n## Recent Feedback Examples\n"
            "Here are recent posts the user gave feedback on:\n" + "\n".join(lines)
        )

    profile = ""
    if request.preference_profile:
        profile = f"\n## Learned User Preferences\n{request.preference_profile}"

    posts = "\n\n".join(
        f"### Post {i} (id: {p.id})\nAuthor: {p.author}\n---\n{p.content}\n---"
        for i, p in enumerate(request.posts)
    )

    return f"""You are a LinkedIn post classifier. Analyze each post and determine whether it should be filtered from the user's feed.

## Active Filter Categories
{categories}
{keywords}

## Sensitivity: {request.sensitivity}
- low: Only filter posts that very clearly and obviously match a category (high confidence required)
- medium: Filter posts that likely match a category
- high: Aggressively filter anything that plausibly matches

{profile}
{feedback}

## Posts to Classify

{posts}

Respond ONLY with a JSON array (no markdown fences, no preamble):
[
  {{
    "id": "the_post_id",
    "filter": true_or_false,
    "category": "category_id_or_null",
    "confidence": 0.0_to_1.0,
    "reason": "One sentence explanation"
  }}
]"""


_FENCE = re.compile(r"```(?:json)?\s*")


def parse_rich_response(text: str) -> List[ClassificationResult]:
    """
    Parse rich classifier output.

    Markdown fences are stripped before decoding.

    Args:
        text: Raw model output

    Returns:
        List of ClassificationResult

    Raises:
        RichClassifierError: If the output is not a JSON list of results
    """
    clean = _FENCE.sub("", text or "").strip()

    try:
        data = json.loads(clean)
    except json.JSONDecodeError as e:
        raise RichClassifierError(f"Response is not valid JSON: {e}")

    return coerce_rich_results(data)


def coerce_rich_results(data: Any) -> List[ClassificationResult]:
    """
    Validate decoded rich classifier results.

    Raises:
        RichClassifierError: If the structure is wrong
    """
    if not isinstance(data, list):
        raise RichClassifierError("Response must be a JSON array")

    results = []
    for idx, item in enumerate(data):
        if not isinstance(item, dict) or "id" not in item:
            raise RichClassifierError(f"Result at index {idx} has no post id")
        try:
            results.append(ClassificationResult.from_dict(item))
        except ValueError as e:
            raise RichClassifierError(f"Result at index {idx}: {e}")

    return results


def build_profile_prompt(
    feedback_history: Sequence[Dict[str, Any]],
    interaction_history: Sequence[Dict[str, Any]],
) -> str:
    """Render the preference-profile prompt from recent history."""
    feedback_summary = "\n".join(
        f'[{f.get("feedback")}] category={f.get("category") or "none"} | '
        f'"{sanitize_text((f.get("content") or "")[:150])}"'
        for f in feedback_history
    )
    interaction_summary = "\n".join(
        f'[{i.get("interaction")}] "{sanitize_text((i.get("content") or "")[:150])}"'
        for i in interaction_history
    )

    return f"""Analyze this LinkedIn user's feedback and interaction history to create a concise preference profile for post filtering.

## Feedback on Filtered Posts (approved = correctly filtered, rejected = incorrectly filtered)
{feedback_summary or 'None yet'}

## Observed Interactions (liked/commented = engaged positively, hidden/unfollowed = disliked)
{interaction_summary or 'None yet'}

Create a concise preference profile (max 300 words) that captures:
1. What types of content the user clearly dislikes or wants filtered
2. What types of content the user enjoys and should NOT be filtered
3. Any patterns or nuances in their preferences
4. Edge cases or subtleties to watch for

Write this as direct instructions for a future classifier, e.g. "This user dislikes X but tolerates Y when Z."
Respond ONLY with the profile text, no preamble."""
