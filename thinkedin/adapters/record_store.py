"""Abstract base class for record persistence and live counter updates."""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Optional

from thinkedin.core.exceptions import UnauthorizedError
from thinkedin.core.types import CommentDTO, PostDTO, VoteTally

logger = logging.getLogger("thinkedin")

ReactionListener = Callable[[dict[str, int]], None]
VoteListener = Callable[[VoteTally], None]


def ensure_owner(
    kind: str, record_id: str, owner_account_id: Optional[str], acting_account_id: Optional[str]
) -> None:
    """Raise UnauthorizedError unless acting_account_id owns the record.

    Records without an owner (anonymous sessions) can never be changed.
    """
    if acting_account_id is None or owner_account_id is None \
            or acting_account_id != owner_account_id:
        logger.warning(f"Rejected change to {kind} {record_id}: not the owner")
        raise UnauthorizedError(f"Account is not the owner of {kind} {record_id}")


class Subscription:
    """Cancellable handle returned by RecordStore.subscribe().

    cancel() may be called any number of times; only the first call
    reaches the store.
    """

    def __init__(self, on_cancel: Callable[[], None]):
        self._on_cancel = on_cancel
        self._active = True
        self._lock = threading.Lock()

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self._on_cancel()


class RecordStore(ABC):
    """Abstract interface over the external document store.

    Record kinds are "post" and "comment" (see core.types.RECORD_KINDS).
    """

    @abstractmethod
    def create_post(
        self,
        content: str,
        tags: list[str],
        kind: str,
        author_pseudonym: str,
        owner_account_id: Optional[str],
    ) -> str:
        """Persist a new post.

        Returns:
            The new post id

        Raises:
            StoreUnavailableError: Backend failure
        """
        ...

    @abstractmethod
    def get_post(self, post_id: str) -> Optional[PostDTO]:
        ...

    @abstractmethod
    def list_posts(self, limit: int = 50) -> list[PostDTO]:
        """Newest posts first."""
        ...

    @abstractmethod
    def list_posts_by_owner(self, owner_account_id: str) -> list[PostDTO]:
        ...

    @abstractmethod
    def create_comment(
        self,
        content: str,
        post_id: str,
        parent_comment_id: Optional[str],
        author_pseudonym: str,
        owner_account_id: Optional[str],
    ) -> str:
        """Persist a new comment.

        Raises:
            NotFoundError: Post does not exist
            StoreUnavailableError: Backend failure
        """
        ...

    @abstractmethod
    def get_comment(self, comment_id: str) -> Optional[CommentDTO]:
        ...

    @abstractmethod
    def list_comments(self, post_id: str) -> list[CommentDTO]:
        """Flat comment list of a post, oldest first. The caller builds the tree."""
        ...

    @abstractmethod
    def list_comments_by_owner(self, owner_account_id: str) -> list[CommentDTO]:
        ...

    @abstractmethod
    def edit_record(
        self, kind: str, record_id: str, new_content: str, acting_account_id: Optional[str]
    ) -> None:
        """Replace a record's content, keeping its creation time.

        Raises:
            NotFoundError: No such record
            UnauthorizedError: acting_account_id is not the owner
        """
        ...

    @abstractmethod
    def delete_record(self, kind: str, record_id: str, acting_account_id: Optional[str]) -> None:
        """Owner deletion. Posts are removed together with all their comments;
        comments are rewritten to the tombstone marker.

        Raises:
            NotFoundError: No such record
            UnauthorizedError: acting_account_id is not the owner
        """
        ...

    @abstractmethod
    def purge_record(self, kind: str, record_id: str) -> None:
        """Privileged hard removal without an ownership check (moderation)."""
        ...

    @abstractmethod
    def increment_reaction_counter(self, post_id: str, kind: str, delta: int) -> None:
        """Atomically add delta to a post's reaction counter.

        Implementations must use a store-side increment, never fetch-then-write.
        """
        ...

    @abstractmethod
    def count_recent_content(self, kind: str, content: str, since: float) -> int:
        """Number of records of kind with exactly this content created at or after since."""
        ...

    @abstractmethod
    def subscribe(self, post_id: str, on_change: ReactionListener) -> Subscription:
        """Call on_change with the latest reaction counters whenever they change."""
        ...

    @abstractmethod
    def set_feature_vote(self, pseudonym: str, choice: str) -> None:
        """Record the chatbot feature vote of a pseudonym ("want" or "dont").

        One vote per pseudonym: voting again replaces the earlier choice.

        Raises:
            ValidationError: Unknown choice
            StoreUnavailableError: Backend failure
        """
        ...

    @abstractmethod
    def get_feature_votes(self) -> VoteTally:
        ...

    @abstractmethod
    def subscribe_feature_votes(self, on_change: VoteListener) -> Subscription:
        """Call on_change with the full tally whenever a vote changes."""
        ...

    def close(self) -> None:
        """Release connections and background workers."""
