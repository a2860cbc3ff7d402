"""Thought service: posting, feed, search and owner edits."""

import logging
import threading
import time
from typing import Callable, Optional

from thinkedin.adapters.record_store import RecordStore, ensure_owner
from thinkedin.core.config_manager import ConfigManager
from thinkedin.core.content import DEFAULT_TAG, normalize_kind, normalize_tags, sanitize_content
from thinkedin.core.exceptions import (
    ContentRejectedError,
    NotFoundError,
    RateLimitError,
    StoreUnavailableError,
)
from thinkedin.core.types import PostDTO, RECORD_POST, empty_reactions
from thinkedin.services.identity_service import IdentityService
from thinkedin.services.moderation_service import ModerationService

logger = logging.getLogger("thinkedin")

UNTAGGED = "#untagged"


class PostRateLimiter:
    """Minimum interval between posts by the same author.

    Unlike a sleeping limiter this never blocks: a request that comes too
    early raises RateLimitError and leaves the previous timestamp in place.
    Checking and recording happen under one lock, so of two concurrent
    posts by the same author only one gets through.
    """

    def __init__(self, interval_sec: float = 10.0, clock: Callable[[], float] = time.time):
        self._interval = interval_sec
        self._clock = clock
        self._last_post: dict[str, float] = {}
        self._lock = threading.Lock()

    def acquire(self, author_key: str) -> float:
        """Claim a posting slot for author_key.

        Returns:
            The timestamp recorded for this post; pass it to release() if the
            post is abandoned.

        Raises:
            RateLimitError: author_key posted less than interval_sec ago
        """
        with self._lock:
            now = self._clock()
            self._prune(now)
            last = self._last_post.get(author_key)
            if last is not None:
                remaining = self._interval - (now - last)
                logger.info(f"Rate limit hit for {author_key}: {remaining:.1f}s remaining")
                raise RateLimitError(f"Please wait {remaining:.0f}s before posting again")
            self._last_post[author_key] = now
            return now

    def release(self, author_key: str, stamp: float) -> None:
        """Give back a slot claimed by acquire() whose post never got stored."""
        with self._lock:
            if self._last_post.get(author_key) == stamp:
                del self._last_post[author_key]

    def remaining(self, author_key: str) -> float:
        """Seconds until author_key may post again (0 if allowed now)."""
        with self._lock:
            last = self._last_post.get(author_key)
            now = self._clock()
        if last is None:
            return 0.0
        return max(self._interval - (now - last), 0.0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_post)

    def _prune(self, now: float) -> None:
        """Drop authors whose interval has passed. Caller must hold lock."""
        expired = [key for key, last in self._last_post.items() if now - last >= self._interval]
        for key in expired:
            del self._last_post[key]


class ThoughtService:
    """Creates, lists and mutates posts.

    Responsibilities:
    - Sanitise content and normalise tags/kind before any write
    - Enforce the per-author posting interval
    - Attribute posts to the device pseudonym
    - Run moderation on new posts
    - Gate edit/delete on account ownership
    """

    def __init__(self, store: RecordStore, identity: IdentityService, config: ConfigManager,
                 moderation: Optional[ModerationService] = None,
                 rate_limiter: Optional[PostRateLimiter] = None):
        self._store = store
        self._identity = identity
        self._config = config
        self._moderation = moderation
        if rate_limiter is None:
            rate_limiter = PostRateLimiter(config.get("rate_limit.post_interval_sec", 10))
        self._rate_limiter = rate_limiter

    def create_thought(self, content: str, tags: Optional[list[str]] = None,
                       kind: Optional[str] = None,
                       owner_account_id: Optional[str] = None) -> PostDTO:
        """Publish a new thought under the device pseudonym.

        Args:
            content: Raw text; trimmed and stripped of control characters
            tags: Tags with or without '#'; defaults to the configured default tag
            kind: One of POST_KINDS, "thought" when omitted
            owner_account_id: Signed-in account, None for anonymous sessions

        Returns:
            The stored post

        Raises:
            ValidationError: Empty or too long content, unknown kind
            RateLimitError: Author posted too recently
            ContentRejectedError: Removed by moderation
            StoreUnavailableError: Backend failure
        """
        text = sanitize_content(content, self._config.get("content.post_max_length", 1000))
        tag_list = normalize_tags(tags, self._config.get("content.default_tag", DEFAULT_TAG))
        post_kind = normalize_kind(kind)
        pseudonym = self._identity.get_pseudonym()

        author_key = owner_account_id or pseudonym
        stamp = self._rate_limiter.acquire(author_key)
        try:
            post_id = self._store.create_post(text, tag_list, post_kind, pseudonym, owner_account_id)
        except StoreUnavailableError:
            self._rate_limiter.release(author_key, stamp)
            raise

        if self._moderation is not None and self._config.get("moderation.enabled", True):
            verdict = self._moderation.review(RECORD_POST, post_id, text)
            if not verdict.allowed:
                raise ContentRejectedError(f"Thought removed by moderation ({verdict.reason})")

        logger.info(f"Posted thought {post_id} as {pseudonym}")
        post = self._store.get_post(post_id)
        if post is None:
            post = PostDTO(
                id=post_id, content=text, pseudonym=pseudonym,
                owner_account_id=owner_account_id, created_at=time.time(),
                tags=tag_list, kind=post_kind, reactions=empty_reactions(),
            )
        return post

    def get_thought(self, post_id: str) -> PostDTO:
        post = self._store.get_post(post_id)
        if post is None:
            raise NotFoundError(f"Thought {post_id} not found")
        return post

    def list_thoughts(self, limit: Optional[int] = None) -> list[PostDTO]:
        """Newest thoughts first. Returns [] when the store is unreachable."""
        if limit is None:
            limit = self._config.get("feed.limit", 50)
        try:
            return self._store.list_posts(limit)
        except StoreUnavailableError as e:
            logger.error(f"Failed to load feed: {e}")
            return []

    def search_thoughts(self, query: str, limit: Optional[int] = None) -> list[PostDTO]:
        """Case-insensitive substring search over content and tags.

        A blank query returns the plain feed.
        """
        thoughts = self.list_thoughts(limit)
        needle = (query or "").strip().lower()
        if not needle:
            return thoughts
        return [
            t for t in thoughts
            if needle in t.content.lower() or any(needle in tag.lower() for tag in t.tags)
        ]

    @staticmethod
    def group_by_tag(thoughts: list[PostDTO]) -> dict[str, list[PostDTO]]:
        """Map each tag to its thoughts, in first-seen order.

        A thought with several tags appears under each of them.
        """
        groups: dict[str, list[PostDTO]] = {}
        for thought in thoughts:
            for tag in thought.tags or [UNTAGGED]:
                groups.setdefault(tag, []).append(thought)
        return groups

    def list_user_thoughts(self, account_id: str) -> list[PostDTO]:
        try:
            posts = self._store.list_posts_by_owner(account_id)
        except StoreUnavailableError as e:
            logger.error(f"Failed to load thoughts of {account_id}: {e}")
            return []
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    def edit_thought(self, post_id: str, new_content: str,
                     acting_account_id: Optional[str]) -> None:
        """Replace the content of an owned thought.

        Raises:
            ValidationError: Empty or too long content
            NotFoundError: No such thought
            UnauthorizedError: Not the owner
        """
        text = sanitize_content(new_content, self._config.get("content.post_max_length", 1000))
        post = self.get_thought(post_id)
        ensure_owner(RECORD_POST, post_id, post.owner_account_id, acting_account_id)
        self._store.edit_record(RECORD_POST, post_id, text, acting_account_id)

    def delete_thought(self, post_id: str, acting_account_id: Optional[str]) -> None:
        """Remove an owned thought together with all of its comments."""
        post = self.get_thought(post_id)
        ensure_owner(RECORD_POST, post_id, post.owner_account_id, acting_account_id)
        self._store.delete_record(RECORD_POST, post_id, acting_account_id)
        logger.info(f"Deleted thought {post_id}")
