"""
Feedback history and preference-profile scheduling for postfilter.

The recorder keeps the raw feedback and interaction history, running
stats, and forwards each event to the feedback processor as a learning
signal. Once enough new feedback has piled up it emits a
ProfileRegenerationDue event; the scheduler consumes those events and
asks an injected summarizer for a fresh preference profile, so the
write path never waits on the network.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from postfilter.remote import build_profile_prompt
from postfilter.constants import (
    HISTORY_CONTENT_LIMIT,
    MAX_HISTORY,
    PROFILE_HISTORY_WINDOW,
    PROFILE_MIN_SAMPLES,
    PROFILE_REGEN_THRESHOLD,
)
from postfilter.learning.feedback import FeedbackProcessor


logger = logging.getLogger(__name__)


FEEDBACK_SIGNALS = {
    "approved": "filterApproved",
    "rejected": "filterRejected",
}

INTERACTION_SIGNALS = {"liked", "commented", "shared", "hidden", "unfollowed", "notInterested"}
IMPLICIT_KEEP = {"liked", "commented", "shared"}
IMPLICIT_FILTER = {"hidden", "unfollowed"}

EMPTY_STATS = {
    "filtered": 0,
    "approved": 0,
    "rejected": 0,
    "implicitKeep": 0,
    "implicitFilter": 0,
}


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class ProfileRegenerationDue:
    """Enough new feedback has arrived to rebuild the preference profile."""
    feedback_count: int
    requested_at: int


class FeedbackRecorder:
    """
    Records feedback and interactions and feeds them to learning.

    History writes are serialized with a lock, like the processor's.
    Learning updates go through the given processor, so every writer of
    the learning data shares its lock.
    """

    def __init__(
        self,
        processor: FeedbackProcessor,
        events: Optional[asyncio.Queue] = None,
        regen_threshold: int = PROFILE_REGEN_THRESHOLD,
    ):
        """
        Initialize feedback recorder.

        Args:
            processor: Feedback processor; history is kept in its store
            events: Queue receiving ProfileRegenerationDue events
            regen_threshold: Feedback count that triggers regeneration
        """
        self.processor = processor
        self.store = processor.store
        self.events = events if events is not None else asyncio.Queue()
        self.regen_threshold = regen_threshold
        self._lock = asyncio.Lock()

    async def _load_stats(self) -> Dict[str, int]:
        stats = dict(EMPTY_STATS)
        stored = await self.store.get("stats")
        if isinstance(stored, dict):
            stats.update({k: v for k, v in stored.items() if isinstance(v, int)})
        return stats

    async def _load_list(self, key: str) -> List[Dict[str, Any]]:
        stored = await self.store.get(key)
        return stored if isinstance(stored, list) else []

    async def record_feedback(
        self,
        post_id: str,
        content: Optional[str],
        author: Optional[str],
        category: Optional[str],
        feedback: str,
        matched_patterns: Optional[Sequence[str]] = None,
    ) -> Optional[ProfileRegenerationDue]:
        """
        Record the user's verdict on a filtered post.

        Args:
            post_id: Post identifier
            content: Post text
            author: Post author
            category: Category the post was filtered under
            feedback: "approved" (correctly filtered) or "rejected"
            matched_patterns: Pattern ids behind the filter decision

        Returns:
            The regeneration event if one was emitted, else None
        """
        signal = FEEDBACK_SIGNALS.get(feedback)
        if signal is None:
            logger.warning("[HISTORY] Unknown feedback value: %s", feedback)
            return None

        async with self._lock:
            history = await self._load_list("feedbackHistory")
            count = await self.store.get("feedbackCountSinceRegen")
            stats = await self._load_stats()

            history.append({
                "postId": post_id,
                "content": (content or "")[:HISTORY_CONTENT_LIMIT],
                "author": author,
                "category": category,
                "feedback": feedback,
                "timestamp": _now_ms(),
            })
            new_count = (count if isinstance(count, int) else 0) + 1
            stats[feedback] += 1

            await self.store.set({
                "feedbackHistory": history[-MAX_HISTORY:],
                "feedbackCountSinceRegen": new_count,
                "stats": stats,
            })

        await self.processor.process_signal(signal, author, content, matched_patterns)

        if new_count >= self.regen_threshold:
            event = ProfileRegenerationDue(feedback_count=new_count, requested_at=_now_ms())
            self.events.put_nowait(event)
            logger.info("[HISTORY] Preference profile regeneration due (%d new feedback)", new_count)
            return event

        return None

    async def record_interaction(
        self,
        post_id: str,
        content: Optional[str],
        author: Optional[str],
        interaction: str,
    ) -> bool:
        """
        Record an observed interaction (liked, hidden, ...).

        Returns:
            True if recorded, False for unknown interactions
        """
        if interaction not in INTERACTION_SIGNALS:
            logger.warning("[HISTORY] Unknown interaction: %s", interaction)
            return False

        async with self._lock:
            history = await self._load_list("interactionHistory")
            stats = await self._load_stats()

            history.append({
                "postId": post_id,
                "content": (content or "")[:HISTORY_CONTENT_LIMIT],
                "author": author,
                "interaction": interaction,
                "timestamp": _now_ms(),
            })

            # Positive interactions count as implicit "don't filter this"
            if interaction in IMPLICIT_KEEP:
                stats["implicitKeep"] += 1
            elif interaction in IMPLICIT_FILTER:
                stats["implicitFilter"] += 1

            await self.store.set({
                "interactionHistory": history[-MAX_HISTORY:],
                "stats": stats,
            })

        await self.processor.process_signal(interaction, author, content)
        return True

    async def record_filtered(self, count: int = 1) -> None:
        """Count posts hidden by the filter."""
        async with self._lock:
            stats = await self._load_stats()
            stats["filtered"] += count
            await self.store.set({"stats": stats})

    async def get_stats(self) -> Dict[str, int]:
        return await self._load_stats()

    async def get_history(self) -> Dict[str, List[Dict[str, Any]]]:
        return {
            "feedbackHistory": await self._load_list("feedbackHistory"),
            "interactionHistory": await self._load_list("interactionHistory"),
        }

    async def clear_history(self) -> None:
        """Drop history, preference profile, counters and stats."""
        async with self._lock:
            await self.store.set({
                "feedbackHistory": [],
                "interactionHistory": [],
                "preferenceProfile": None,
                "profileLastUpdated": None,
                "feedbackCountSinceRegen": 0,
                "stats": dict(EMPTY_STATS),
            })


Summarizer = Callable[[str], Awaitable[str]]


class ProfileScheduler:
    """
    Rebuilds the preference profile when regeneration is due.

    The summarizer is the external model collaborator: it receives the
    profile prompt and returns the profile text.
    """

    def __init__(
        self,
        store,
        summarizer: Summarizer,
        events: asyncio.Queue,
        regen_threshold: int = PROFILE_REGEN_THRESHOLD,
    ):
        self.store = store
        self.summarizer = summarizer
        self.events = events
        self.regen_threshold = regen_threshold

    async def regenerate(self) -> Optional[str]:
        """
        Build a new preference profile from recent history.

        Returns:
            The stored profile, or None when there is too little history
            or the summarizer failed
        """
        feedback = await self.store.get("feedbackHistory") or []
        interactions = await self.store.get("interactionHistory") or []

        if len(feedback) + len(interactions) < PROFILE_MIN_SAMPLES:
            logger.info("[PROFILE] Not enough history to build a profile")
            return None

        prompt = build_profile_prompt(
            feedback[-PROFILE_HISTORY_WINDOW:],
            interactions[-PROFILE_HISTORY_WINDOW:],
        )

        try:
            profile = await self.summarizer(prompt)
        except Exception:
            # The profile is advisory; keep the old one and retry on the next event
            logger.exception("[PROFILE] Profile regeneration failed")
            return None

        await self.store.set({
            "preferenceProfile": profile,
            "feedbackCountSinceRegen": 0,
            "profileLastUpdated": _now_ms(),
        })
        logger.info("[PROFILE] Preference profile regenerated")
        return profile

    async def handle(self, event: ProfileRegenerationDue) -> Optional[str]:
        """Regenerate unless an earlier event already did."""
        count = await self.store.get("feedbackCountSinceRegen")
        if not isinstance(count, int) or count < self.regen_threshold:
            return None
        return await self.regenerate()

    async def run(self) -> None:
        """Consume regeneration events until cancelled."""
        while True:
            event = await self.events.get()
            try:
                await self.handle(event)
            finally:
                self.events.task_done()
