"""Tests for thread rendering and error messages."""

import pytest

from thinkedin.core.exceptions import (
    AccountExistsError,
    ConfigError,
    ContentRejectedError,
    DatabaseError,
    InvalidCredentialsError,
    LLMTimeoutError,
    LLMUnavailableError,
    ModelNotFoundError,
    NotFoundError,
    RateLimitError,
    UnauthorizedError,
    ValidationError,
)
from thinkedin.core.i18n_manager import I18nManager
from thinkedin.core.types import CommentDTO, CommentThread, PostDTO, TOMBSTONE
from thinkedin.presentation.messages import map_error_to_i18n_key
from thinkedin.presentation.thread_view import flatten_thread, render_thought, render_thread
from thinkedin.services.comment_tree import build_tree, count_all


def chain(*names, owner=None):
    comments = []
    for i, name in enumerate(names):
        comments.append(CommentDTO(
            id=name, post_id="p1", content=f"{name} says hi", pseudonym=f"User {name}",
            owner_account_id=owner, created_at=float(i),
            parent_comment_id=names[i - 1] if i else None,
        ))
    return build_tree(comments)


@pytest.fixture
def i18n():
    mgr = I18nManager()
    mgr.load_locale("en_US")
    return mgr


class TestFlattenThread:
    """Test reply and edit affordances."""

    def test_chain_of_four_last_cannot_reply(self):
        rows = flatten_thread(chain("A", "B", "C", "D"), viewer_account_id=None)

        assert [r.comment.id for r in rows] == ["A", "B", "C", "D"]
        assert [r.depth for r in rows] == [0, 1, 2, 3]
        assert [r.can_reply for r in rows] == [True, True, True, False]

    def test_custom_max_depth(self):
        rows = flatten_thread(chain("A", "B"), None, max_depth=1)
        assert [r.can_reply for r in rows] == [True, False]

    def test_owner_can_edit(self):
        rows = flatten_thread(chain("A", owner="me"), "me")
        assert rows[0].can_edit

    def test_other_viewer_cannot_edit(self):
        assert not flatten_thread(chain("A", owner="me"), "you")[0].can_edit

    def test_anonymous_viewer_cannot_edit_anonymous_comment(self):
        assert not flatten_thread(chain("A"), None)[0].can_edit

    def test_tombstone_not_editable(self):
        forest = [CommentDTO(id="x", post_id="p1", content=TOMBSTONE, owner_account_id="me")]
        assert not flatten_thread(forest, "me")[0].can_edit

    def test_siblings_keep_order(self):
        forest = build_tree([
            CommentDTO(id="a", post_id="p1", created_at=1.0),
            CommentDTO(id="a1", post_id="p1", created_at=2.0, parent_comment_id="a"),
            CommentDTO(id="a2", post_id="p1", created_at=3.0, parent_comment_id="a"),
            CommentDTO(id="b", post_id="p1", created_at=4.0),
        ])
        assert [r.comment.id for r in flatten_thread(forest, None)] == ["a", "a1", "a2", "b"]

    def test_very_deep_chain(self):
        forest = chain(*[f"n{i}" for i in range(2000)])
        rows = flatten_thread(forest, None)
        assert len(rows) == 2000
        assert rows[-1].depth == 1999
        assert not rows[-1].can_reply

    def test_row_count_matches_tree_count(self):
        forest = chain("A", "B", "C", "D", "E")
        assert len(flatten_thread(forest, None)) == count_all(forest)


class TestRender:
    """Test text rendering with bundled strings."""

    def test_render_thread(self, i18n):
        forest = chain("A", "B", "C", "D", owner="me")
        thread = CommentThread("p1", forest, total_count=4, top_level_count=1)

        text = render_thread(thread, "me", 3, i18n)
        lines = text.splitlines()

        assert lines[0] == "4 comments"
        assert lines[1].startswith("User A: A says hi")
        assert "Reply" in lines[1]
        assert "Edit" in lines[1]
        assert lines[4].startswith("            User D")
        assert "Reply" not in lines[4]

    def test_render_single_comment_count(self, i18n):
        thread = CommentThread("p1", chain("A"), total_count=1, top_level_count=1)
        assert render_thread(thread, None, 3, i18n).splitlines()[0] == "1 comment"

    def test_render_empty_thread(self, i18n):
        assert render_thread(CommentThread("p1"), None, 3, i18n) == "No comments yet."

    def test_render_thought(self, i18n):
        post = PostDTO(id="p1", content="Is time real?", pseudonym="Quiet Owl",
                       tags=["#philosophy"], kind="question",
                       reactions={"inspired": 2, "think": 5, "relatable": 0, "following": 1})

        text = render_thought(post, i18n)

        assert "by Quiet Owl" in text
        assert "Is time real?" in text
        assert "#philosophy" in text
        assert "🤔 5" in text


class TestErrorMessages:
    """Test exception to message key mapping."""

    @pytest.mark.parametrize("exc,key", [
        (ContentRejectedError(), "errors.content_rejected"),
        (ValidationError(), "errors.validation"),
        (UnauthorizedError(), "errors.unauthorized"),
        (NotFoundError(), "errors.not_found"),
        (RateLimitError(), "errors.rate_limited"),
        (DatabaseError(), "errors.store_unavailable"),
        (InvalidCredentialsError(), "errors.invalid_credentials"),
        (AccountExistsError(), "errors.account_exists"),
        (LLMTimeoutError(), "errors.llm_timeout"),
        (ModelNotFoundError(), "errors.model_not_found"),
        (LLMUnavailableError(), "errors.llm_unavailable"),
        (ConfigError(), "errors.config"),
        (RuntimeError("x"), "errors.unknown"),
    ])
    def test_mapping(self, exc, key):
        assert map_error_to_i18n_key(exc) == key

    def test_every_key_has_english_text(self, i18n):
        for exc in [ValidationError(), NotFoundError(), LLMTimeoutError(), ConfigError(), RuntimeError()]:
            key = map_error_to_i18n_key(exc)
            assert i18n.get(key) != key
