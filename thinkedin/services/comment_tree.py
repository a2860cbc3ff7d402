"""Assemble flat comment lists into nested reply trees."""

import dataclasses
import logging

from thinkedin.core.types import CommentDTO

logger = logging.getLogger("thinkedin")


def build_tree(comments: list[CommentDTO]) -> list[CommentDTO]:
    """Build a forest of comments from a flat list.

    Comments without a parent id are roots. A comment whose parent is missing
    from the list is promoted to root, as is the earliest member of any
    parent-link cycle, so every input comment appears exactly once.
    Siblings are ordered by ascending creation time.

    The input objects are left untouched; the returned nodes are copies with
    children and depth filled in.

    Args:
        comments: Flat comments of a single post, any order

    Returns:
        Root comments (with nested children)
    """
    ordered = sorted(comments, key=lambda c: c.created_at)
    by_id = {c.id: c for c in ordered}

    children_of: dict[str, list[str]] = {}
    root_ids = []
    for comment in ordered:
        parent_id = comment.parent_comment_id
        if parent_id is None or parent_id == comment.id:
            root_ids.append(comment.id)
        elif parent_id not in by_id:
            logger.debug(f"Comment {comment.id} has missing parent {parent_id}, promoting to root")
            root_ids.append(comment.id)
        else:
            children_of.setdefault(parent_id, []).append(comment.id)

    placed: set[str] = set()
    forest = [_attach(cid, by_id, children_of, placed) for cid in root_ids]

    # Whatever is left hangs off a cycle; promote in creation order
    for comment in ordered:
        if comment.id not in placed:
            logger.debug(f"Comment {comment.id} is part of a reply cycle, promoting to root")
            forest.append(_attach(comment.id, by_id, children_of, placed))

    forest.sort(key=lambda c: c.created_at)
    return forest


def _attach(root_id, by_id, children_of, placed) -> CommentDTO:
    """Copy the subtree under root_id, depth-first with an explicit stack.

    Reply chains have no depth limit in storage, so this must not recurse.
    """
    placed.add(root_id)
    root = dataclasses.replace(by_id[root_id], depth=0, children=[])
    stack = [root]
    while stack:
        node = stack.pop()
        for child_id in children_of.get(node.id, []):
            if child_id in placed:
                continue
            placed.add(child_id)
            child = dataclasses.replace(by_id[child_id], depth=node.depth + 1, children=[])
            node.children.append(child)
            stack.append(child)
    return root


def _walk(forest: list[CommentDTO]):
    stack = list(forest)
    while stack:
        node = stack.pop()
        yield node
        stack.extend(node.children)


def count_all(forest: list[CommentDTO]) -> int:
    """Total number of nodes in the forest, replies included."""
    return sum(1 for _ in _walk(forest))


def max_depth(forest: list[CommentDTO]) -> int:
    """Deepest nesting level (roots are depth 0); -1 for an empty forest."""
    return max((node.depth for node in _walk(forest)), default=-1)
