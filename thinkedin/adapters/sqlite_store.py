"""Local record store backed by the SQLite DatabaseManager."""

import copy
import logging
import threading
import time
import uuid
from typing import Callable, Optional

from thinkedin.adapters.record_store import (
    ReactionListener,
    RecordStore,
    Subscription,
    VoteListener,
    ensure_owner,
)
from thinkedin.core.database import DatabaseManager
from thinkedin.core.exceptions import NotFoundError, ValidationError
from thinkedin.core.types import (
    CommentDTO,
    FEATURE_VOTE_CHOICES,
    PostDTO,
    RECORD_KINDS,
    RECORD_POST,
    TOMBSTONE,
    VoteTally,
    empty_reactions,
)

logger = logging.getLogger("thinkedin")

_VOTES_CHANNEL = ("feature-votes",)


class SQLiteRecordStore(RecordStore):
    """RecordStore over a single SQLite file.

    Live updates are delivered in-process: every counter change or vote
    notifies the listeners of that channel with a fresh snapshot.
    """

    def __init__(self, db: DatabaseManager, clock: Callable[[], float] = time.time):
        self._db = db
        self._clock = clock
        self._listeners: dict[tuple, dict[int, Callable]] = {}
        self._listener_lock = threading.Lock()
        self._next_token = 0

    # --- Posts ---

    def create_post(self, content, tags, kind, author_pseudonym, owner_account_id) -> str:
        post = PostDTO(
            id=uuid.uuid4().hex,
            content=content,
            pseudonym=author_pseudonym,
            owner_account_id=owner_account_id,
            created_at=self._clock(),
            tags=list(tags),
            kind=kind,
            reactions=empty_reactions(),
        )
        self._db.insert_post(post)
        logger.info(f"Created post {post.id} ({kind})")
        return post.id

    def get_post(self, post_id: str) -> Optional[PostDTO]:
        return self._db.get_post(post_id)

    def list_posts(self, limit: int = 50) -> list[PostDTO]:
        return self._db.get_posts(limit)

    def list_posts_by_owner(self, owner_account_id: str) -> list[PostDTO]:
        return self._db.get_posts_by_owner(owner_account_id)

    # --- Comments ---

    def create_comment(self, content, post_id, parent_comment_id, author_pseudonym,
                       owner_account_id) -> str:
        if self._db.get_post(post_id) is None:
            raise NotFoundError(f"Post {post_id} not found")
        comment = CommentDTO(
            id=uuid.uuid4().hex,
            post_id=post_id,
            parent_comment_id=parent_comment_id,
            content=content,
            pseudonym=author_pseudonym,
            owner_account_id=owner_account_id,
            created_at=self._clock(),
        )
        self._db.insert_comment(comment)
        logger.info(f"Created comment {comment.id} on post {post_id}")
        return comment.id

    def get_comment(self, comment_id: str) -> Optional[CommentDTO]:
        return self._db.get_comment(comment_id)

    def list_comments(self, post_id: str) -> list[CommentDTO]:
        return self._db.get_comments(post_id)

    def list_comments_by_owner(self, owner_account_id: str) -> list[CommentDTO]:
        return self._db.get_comments_by_owner(owner_account_id)

    # --- Mutation ---

    def edit_record(self, kind, record_id, new_content, acting_account_id) -> None:
        record = self._load(kind, record_id)
        ensure_owner(kind, record_id, record.owner_account_id, acting_account_id)
        if not self._db.update_content(kind, record_id, new_content):
            raise NotFoundError(f"{kind} {record_id} vanished before update")
        logger.info(f"Edited {kind} {record_id}")

    def delete_record(self, kind, record_id, acting_account_id) -> None:
        record = self._load(kind, record_id)
        ensure_owner(kind, record_id, record.owner_account_id, acting_account_id)
        if kind == RECORD_POST:
            self._remove_post(record_id)
        else:
            if not self._db.update_content(kind, record_id, TOMBSTONE):
                raise NotFoundError(f"{kind} {record_id} vanished before delete")
            logger.info(f"Tombstoned comment {record_id}")

    def purge_record(self, kind, record_id) -> None:
        self._check_kind(kind)
        if kind == RECORD_POST:
            self._remove_post(record_id)
        elif not self._db.delete_comment(record_id):
            raise NotFoundError(f"comment {record_id} not found")
        else:
            logger.info(f"Purged comment {record_id}")

    def _remove_post(self, post_id: str) -> None:
        removed = self._db.delete_post(post_id)
        if removed < 0:
            raise NotFoundError(f"post {post_id} not found")
        logger.info(f"Deleted post {post_id} and {removed} comments")

    def _load(self, kind: str, record_id: str):
        self._check_kind(kind)
        if kind == RECORD_POST:
            record = self._db.get_post(record_id)
        else:
            record = self._db.get_comment(record_id)
        if record is None:
            raise NotFoundError(f"{kind} {record_id} not found")
        return record

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in RECORD_KINDS:
            raise ValidationError(f"Unknown record kind '{kind}'")

    # --- Reactions ---

    def increment_reaction_counter(self, post_id: str, kind: str, delta: int) -> None:
        if not self._db.increment_reaction(post_id, kind, delta):
            raise NotFoundError(f"post {post_id} not found")
        snapshot = self._db.get_reactions(post_id)
        if snapshot is not None:
            self._notify(("reactions", post_id), snapshot)

    def count_recent_content(self, kind: str, content: str, since: float) -> int:
        return self._db.count_content_since(kind, content, since)

    def subscribe(self, post_id: str, on_change: ReactionListener) -> Subscription:
        return self._listen(("reactions", post_id), on_change)

    # --- Feature votes ---

    def set_feature_vote(self, pseudonym: str, choice: str) -> None:
        if choice not in FEATURE_VOTE_CHOICES:
            raise ValidationError(f"Unknown vote '{choice}'")
        self._db.upsert_feature_vote(pseudonym, choice, self._clock())
        logger.info(f"Recorded feature vote '{choice}' for {pseudonym}")
        self._notify(_VOTES_CHANNEL, self.get_feature_votes())

    def get_feature_votes(self) -> VoteTally:
        tally = VoteTally()
        for pseudonym, vote in self._db.get_feature_votes():
            getattr(tally, vote).append(pseudonym)
        return tally

    def subscribe_feature_votes(self, on_change: VoteListener) -> Subscription:
        return self._listen(_VOTES_CHANNEL, on_change)

    # --- Listeners ---

    def _listen(self, channel: tuple, listener: Callable) -> Subscription:
        with self._listener_lock:
            token = self._next_token
            self._next_token += 1
            self._listeners.setdefault(channel, {})[token] = listener
        logger.debug(f"Subscribed to {channel} (token {token})")
        return Subscription(lambda: self._unsubscribe(channel, token))

    def _unsubscribe(self, channel: tuple, token: int) -> None:
        with self._listener_lock:
            listeners = self._listeners.get(channel)
            if listeners is None:
                return
            listeners.pop(token, None)
            if not listeners:
                del self._listeners[channel]
        logger.debug(f"Unsubscribed from {channel} (token {token})")

    def _notify(self, channel: tuple, snapshot) -> None:
        with self._listener_lock:
            listeners = list(self._listeners.get(channel, {}).values())
        for listener in listeners:
            try:
                listener(copy.deepcopy(snapshot))
            except Exception as e:
                logger.error(f"Listener for {channel} failed: {e}")

    def close(self) -> None:
        with self._listener_lock:
            self._listeners.clear()
        self._db.close()
