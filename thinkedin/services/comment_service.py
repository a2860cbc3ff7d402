"""Comment service: replies, threads and owner edits."""

import logging
import time
from typing import Optional

from thinkedin.adapters.record_store import RecordStore, ensure_owner
from thinkedin.core.config_manager import ConfigManager
from thinkedin.core.content import sanitize_content
from thinkedin.core.exceptions import (
    ContentRejectedError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from thinkedin.core.types import CommentDTO, CommentThread, RECORD_COMMENT
from thinkedin.services.comment_tree import build_tree, count_all
from thinkedin.services.identity_service import IdentityService
from thinkedin.services.moderation_service import ModerationService

logger = logging.getLogger("thinkedin")


class CommentService:
    """Creates, lists and mutates comments on thoughts."""

    def __init__(self, store: RecordStore, identity: IdentityService, config: ConfigManager,
                 moderation: Optional[ModerationService] = None):
        self._store = store
        self._identity = identity
        self._config = config
        self._moderation = moderation

    def create_comment(self, post_id: str, content: str,
                       parent_comment_id: Optional[str] = None,
                       owner_account_id: Optional[str] = None) -> CommentDTO:
        """Add a comment, or a reply when parent_comment_id is given.

        Raises:
            ValidationError: Bad content, or parent is not a comment on this post
            NotFoundError: Post does not exist
            ContentRejectedError: Removed by moderation
            StoreUnavailableError: Backend failure
        """
        text = sanitize_content(content, self._config.get("content.comment_max_length", 500))

        if self._store.get_post(post_id) is None:
            raise NotFoundError(f"Thought {post_id} not found")
        if parent_comment_id is not None:
            parent = self._store.get_comment(parent_comment_id)
            if parent is None or parent.post_id != post_id:
                raise ValidationError(
                    f"Parent comment {parent_comment_id} does not belong to thought {post_id}"
                )

        pseudonym = self._identity.get_pseudonym()
        comment_id = self._store.create_comment(
            text, post_id, parent_comment_id, pseudonym, owner_account_id
        )

        if self._moderation is not None and self._config.get("moderation.enabled", True):
            verdict = self._moderation.review(RECORD_COMMENT, comment_id, text)
            if not verdict.allowed:
                raise ContentRejectedError(f"Comment removed by moderation ({verdict.reason})")

        logger.info(f"Posted comment {comment_id} on {post_id} as {pseudonym}")
        comment = self._store.get_comment(comment_id)
        if comment is None:
            comment = CommentDTO(
                id=comment_id, post_id=post_id, content=text, pseudonym=pseudonym,
                owner_account_id=owner_account_id, created_at=time.time(),
                parent_comment_id=parent_comment_id,
            )
        return comment

    def list_comments(self, post_id: str) -> list[CommentDTO]:
        """Flat comments of a thought, oldest first. [] when the store is unreachable."""
        try:
            return self._store.list_comments(post_id)
        except StoreUnavailableError as e:
            logger.error(f"Failed to load comments of {post_id}: {e}")
            return []

    def get_thread(self, post_id: str) -> CommentThread:
        comments = self.list_comments(post_id)
        roots = build_tree(comments)
        return CommentThread(
            post_id=post_id,
            roots=roots,
            total_count=count_all(roots),
            top_level_count=len(roots),
        )

    def list_user_comments(self, account_id: str) -> list[CommentDTO]:
        try:
            comments = self._store.list_comments_by_owner(account_id)
        except StoreUnavailableError as e:
            logger.error(f"Failed to load comments of {account_id}: {e}")
            return []
        return sorted(comments, key=lambda c: c.created_at, reverse=True)

    def edit_comment(self, comment_id: str, new_content: str,
                     acting_account_id: Optional[str]) -> None:
        """Replace the content of an owned comment.

        Raises:
            ValidationError: Empty or too long content
            NotFoundError: No such comment, or it was deleted
            UnauthorizedError: Not the owner
        """
        text = sanitize_content(new_content, self._config.get("content.comment_max_length", 500))
        comment = self._load_live(comment_id)
        ensure_owner(RECORD_COMMENT, comment_id, comment.owner_account_id, acting_account_id)
        self._store.edit_record(RECORD_COMMENT, comment_id, text, acting_account_id)

    def delete_comment(self, comment_id: str, acting_account_id: Optional[str]) -> None:
        """Replace an owned comment with the tombstone marker; replies stay attached."""
        comment = self._load_live(comment_id)
        ensure_owner(RECORD_COMMENT, comment_id, comment.owner_account_id, acting_account_id)
        self._store.delete_record(RECORD_COMMENT, comment_id, acting_account_id)
        logger.info(f"Deleted comment {comment_id}")

    def _load_live(self, comment_id: str) -> CommentDTO:
        comment = self._store.get_comment(comment_id)
        if comment is None or comment.is_tombstone:
            raise NotFoundError(f"Comment {comment_id} not found")
        return comment
