"""Reaction toggling with optimistic local counters and live store updates."""

import logging
import threading
from concurrent.futures import Executor
from typing import Callable, Optional

from thinkedin.adapters.record_store import RecordStore, Subscription
from thinkedin.core.device_state import DeviceState
from thinkedin.core.exceptions import ValidationError
from thinkedin.core.types import PostDTO, REACTION_KINDS, empty_reactions

logger = logging.getLogger("thinkedin")

REACTION_KEY_PREFIX = "thinkedin_reactions_"


def reaction_key(post_id: str) -> str:
    return f"{REACTION_KEY_PREFIX}{post_id}"


class ReactionService:
    """Keeps displayed reaction counters and per-device reaction flags.

    A toggle updates the device flag and the displayed counter immediately,
    then sends a +1/-1 to the store without waiting for it. Store failures
    are logged only; the flag and the counter may drift apart, and the next
    live snapshot wins.
    """

    def __init__(self, store: RecordStore, device_state: DeviceState,
                 executor: Optional[Executor] = None):
        self._store = store
        self._state = device_state
        self._executor = executor
        self._counts: dict[str, dict[str, int]] = {}
        self._lock = threading.Lock()

    def load(self, post: PostDTO) -> dict[str, int]:
        """Seed the displayed counters from a fetched post."""
        counts = empty_reactions()
        for kind in REACTION_KINDS:
            counts[kind] = max(int(post.reactions.get(kind, 0) or 0), 0)
        with self._lock:
            self._counts[post.id] = counts
        return dict(counts)

    def counts(self, post_id: str) -> dict[str, int]:
        with self._lock:
            return dict(self._counts.get(post_id) or empty_reactions())

    def has_reacted(self, post_id: str, kind: str) -> bool:
        self._check_kind(kind)
        return bool(self._flags(post_id).get(kind, False))

    def toggle(self, post_id: str, kind: str) -> bool:
        """Flip this device's reaction on a post.

        Returns:
            True if the reaction is now set, False if it was removed

        Raises:
            ValidationError: Unknown reaction kind
        """
        self._check_kind(kind)
        flags = self._flags(post_id)
        reacted = not flags.get(kind, False)
        delta = 1 if reacted else -1

        if reacted:
            flags[kind] = True
        else:
            flags.pop(kind, None)
        if flags:
            self._state.set(reaction_key(post_id), flags)
        else:
            self._state.delete(reaction_key(post_id))

        with self._lock:
            counts = self._counts.setdefault(post_id, empty_reactions())
            counts[kind] = max(counts[kind] + delta, 0)

        self._dispatch(post_id, kind, delta)
        logger.debug(f"Reaction {kind} on {post_id}: {'set' if reacted else 'cleared'}")
        return reacted

    def watch(self, post_id: str,
              on_change: Optional[Callable[[dict[str, int]], None]] = None) -> Subscription:
        """Follow live counter updates for a post.

        Each pushed snapshot replaces the displayed counters, then on_change
        (if given) receives a copy.
        """
        def _apply(snapshot: dict[str, int]) -> None:
            counts = empty_reactions()
            for kind in REACTION_KINDS:
                counts[kind] = max(int(snapshot.get(kind, 0) or 0), 0)
            with self._lock:
                self._counts[post_id] = counts
            if on_change is not None:
                on_change(dict(counts))

        return self._store.subscribe(post_id, _apply)

    def _flags(self, post_id: str) -> dict[str, bool]:
        stored = self._state.get(reaction_key(post_id))
        if not isinstance(stored, dict):
            return {}
        return {k: bool(v) for k, v in stored.items() if k in REACTION_KINDS and v}

    def _dispatch(self, post_id: str, kind: str, delta: int) -> None:
        if self._executor is None:
            self._send(post_id, kind, delta)
        else:
            self._executor.submit(self._send, post_id, kind, delta)

    def _send(self, post_id: str, kind: str, delta: int) -> None:
        try:
            self._store.increment_reaction_counter(post_id, kind, delta)
        except Exception as e:
            logger.warning(f"Failed to update {kind} counter on {post_id} ({delta:+d}): {e}")

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in REACTION_KINDS:
            raise ValidationError(f"Unknown reaction kind '{kind}'")
