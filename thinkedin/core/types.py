"""Data Transfer Objects for Thinkedin."""

from dataclasses import dataclass, field
from typing import Optional

POST_KINDS = ("thought", "question", "story", "trigger")
REACTION_KINDS = ("inspired", "think", "relatable", "following")

RECORD_POST = "post"
RECORD_COMMENT = "comment"
RECORD_KINDS = (RECORD_POST, RECORD_COMMENT)

TOMBSTONE = "[deleted]"


def empty_reactions() -> dict[str, int]:
    """Zeroed counter set for a new post."""
    return {kind: 0 for kind in REACTION_KINDS}


@dataclass
class PostDTO:
    """A published thought."""

    id: str
    content: str
    pseudonym: str = ""
    owner_account_id: Optional[str] = None   # None for anonymous sessions
    created_at: float = 0.0                  # epoch seconds
    tags: list[str] = field(default_factory=list)
    kind: str = "thought"                    # one of POST_KINDS
    reactions: dict[str, int] = field(default_factory=empty_reactions)


@dataclass
class CommentDTO:
    """A comment or reply on a post."""

    id: str
    post_id: str
    content: str = ""
    pseudonym: str = ""
    owner_account_id: Optional[str] = None
    created_at: float = 0.0
    parent_comment_id: Optional[str] = None  # None = top-level
    depth: int = 0                           # computed by build_tree
    children: list['CommentDTO'] = field(default_factory=list)

    @property
    def is_tombstone(self) -> bool:
        return self.content == TOMBSTONE


@dataclass
class CommentThread:
    """Comments of one post, assembled for display."""

    post_id: str
    roots: list[CommentDTO] = field(default_factory=list)
    total_count: int = 0
    top_level_count: int = 0


@dataclass
class ModerationVerdict:
    """Outcome of a content check."""

    allowed: bool
    reason: str = ""                          # rule name when rejected


FEATURE_VOTE_CHOICES = ("want", "dont")


@dataclass
class VoteTally:
    """Pseudonyms for and against the proposed chatbot feature."""

    want: list[str] = field(default_factory=list)
    dont: list[str] = field(default_factory=list)

    def choice_of(self, pseudonym: str) -> Optional[str]:
        if pseudonym in self.want:
            return "want"
        if pseudonym in self.dont:
            return "dont"
        return None


@dataclass
class Recommendation:
    """LLM answer to a relevant-posts request."""

    prompt: str
    text: str                                 # raw model answer
    posts: list[PostDTO] = field(default_factory=list)
