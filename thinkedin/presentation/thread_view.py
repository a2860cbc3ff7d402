"""Text rendering of thoughts and comment threads."""

import datetime
from dataclasses import dataclass
from typing import Optional

from thinkedin.core.i18n_manager import I18nManager
from thinkedin.core.types import CommentDTO, CommentThread, PostDTO, REACTION_KINDS

INDENT = "    "


@dataclass
class CommentRow:
    """One displayable line of a thread."""

    comment: CommentDTO
    depth: int
    can_reply: bool
    can_edit: bool


def flatten_thread(forest: list[CommentDTO], viewer_account_id: Optional[str],
                   max_depth: int = 3) -> list[CommentRow]:
    """Walk the forest depth-first into display rows.

    Comments at depth >= max_depth lose the reply affordance but are still
    listed. Only the owner may edit, and never a deleted comment.
    """
    rows: list[CommentRow] = []
    stack = [(node, 0) for node in reversed(forest)]
    while stack:
        node, depth = stack.pop()
        can_edit = (
            viewer_account_id is not None
            and node.owner_account_id == viewer_account_id
            and not node.is_tombstone
        )
        rows.append(CommentRow(node, depth, depth < max_depth, can_edit))
        stack.extend((child, depth + 1) for child in reversed(node.children))
    return rows


def _timestamp(epoch: float) -> str:
    return datetime.datetime.fromtimestamp(epoch).strftime("%Y-%m-%d %H:%M")


def render_thread(thread: CommentThread, viewer_account_id: Optional[str] = None,
                  max_depth: int = 3, i18n: I18nManager = None) -> str:
    i18n = i18n or I18nManager()
    if not thread.roots:
        return i18n.get("thread.empty")

    lines = [i18n.plural("thread.count", thread.total_count)]

    for row in flatten_thread(thread.roots, viewer_account_id, max_depth):
        actions = []
        if row.can_reply and not row.comment.is_tombstone:
            actions.append(i18n.get("thread.reply"))
        if row.can_edit:
            actions.extend([i18n.get("thread.edit"), i18n.get("thread.delete")])
        indent = INDENT * min(row.depth, max_depth)
        line = f"{indent}{row.comment.pseudonym}: {row.comment.content}"
        if actions:
            line += f"  [{' | '.join(actions)}]"
        lines.append(line)
    return "\n".join(lines)


def render_thought(post: PostDTO, i18n: I18nManager = None) -> str:
    """Header line, content, tags and reaction counters of one post."""
    i18n = i18n or I18nManager()
    header = (
        f"{i18n.get(f'kinds.{post.kind}')} · "
        f"{i18n.get('feed.by', pseudonym=post.pseudonym)} · {_timestamp(post.created_at)}"
    )
    reactions = "  ".join(
        f"{i18n.get(f'reactions.{kind}')} {post.reactions.get(kind, 0)}" for kind in REACTION_KINDS
    )
    lines = [header, post.content]
    if post.tags:
        lines.append(" ".join(post.tags))
    lines.append(reactions)
    return "\n".join(lines)
