"""Tests for DatabaseManager."""

import threading

import pytest

from thinkedin.core.database import DatabaseManager
from thinkedin.core.exceptions import DatabaseError, ValidationError
from thinkedin.core.types import CommentDTO, PostDTO


def make_post(post_id: str = "p1", **kwargs) -> PostDTO:
    """Helper to create test PostDTO."""
    defaults = {
        "id": post_id,
        "content": "Thinking about thinking",
        "pseudonym": "Quiet Owl",
        "owner_account_id": "acct-1",
        "created_at": 1700000000.0,
        "tags": ["#philosophy"],
        "kind": "thought",
    }
    defaults.update(kwargs)
    return PostDTO(**defaults)


def make_comment(comment_id: str = "c1", post_id: str = "p1", **kwargs) -> CommentDTO:
    """Helper to create test CommentDTO."""
    defaults = {
        "id": comment_id,
        "post_id": post_id,
        "content": "Same here",
        "pseudonym": "Bold Fox",
        "owner_account_id": "acct-2",
        "created_at": 1700000100.0,
    }
    defaults.update(kwargs)
    return CommentDTO(**defaults)


class TestDatabaseManagerInit:
    """Test database initialization."""

    def test_creates_db_file(self, tmp_db_path):
        DatabaseManager(tmp_db_path)
        assert tmp_db_path.exists()

    def test_creates_parent_directory(self, tmp_dir):
        db_path = tmp_dir / "sub" / "dir" / "test.db"
        DatabaseManager(db_path)
        assert db_path.exists()

    def test_singleton(self, tmp_db_path):
        a = DatabaseManager(tmp_db_path)
        b = DatabaseManager()
        assert a is b

    def test_requires_path_on_first_init(self):
        with pytest.raises(DatabaseError):
            DatabaseManager()


class TestPosts:
    """Test post rows."""

    def test_insert_and_get_roundtrip(self, db):
        db.insert_post(make_post(tags=["#a", "#b"], kind="story"))
        post = db.get_post("p1")

        assert post.content == "Thinking about thinking"
        assert post.owner_account_id == "acct-1"
        assert post.tags == ["#a", "#b"]
        assert post.kind == "story"
        assert post.reactions == {"inspired": 0, "think": 0, "relatable": 0, "following": 0}

    def test_get_missing_returns_none(self, db):
        assert db.get_post("nope") is None

    def test_anonymous_owner_is_none(self, db):
        db.insert_post(make_post(owner_account_id=None))
        assert db.get_post("p1").owner_account_id is None

    def test_duplicate_id_raises(self, db):
        db.insert_post(make_post())
        with pytest.raises(DatabaseError):
            db.insert_post(make_post())

    def test_get_posts_newest_first_with_limit(self, db):
        for i in range(5):
            db.insert_post(make_post(f"p{i}", created_at=1700000000.0 + i))

        posts = db.get_posts(limit=3)

        assert [p.id for p in posts] == ["p4", "p3", "p2"]

    def test_get_posts_by_owner(self, db):
        db.insert_post(make_post("p1", owner_account_id="me"))
        db.insert_post(make_post("p2", owner_account_id="you"))
        db.insert_post(make_post("p3", owner_account_id="me", created_at=1700000500.0))

        assert [p.id for p in db.get_posts_by_owner("me")] == ["p3", "p1"]

    def test_delete_post_cascades_to_comments(self, db):
        db.insert_post(make_post())
        db.insert_comment(make_comment("c1"))
        db.insert_comment(make_comment("c2", parent_comment_id="c1"))
        db.insert_post(make_post("other"))
        db.insert_comment(make_comment("c3", post_id="other"))

        removed = db.delete_post("p1")

        assert removed == 2
        assert db.get_post("p1") is None
        assert db.get_comments("p1") == []
        assert len(db.get_comments("other")) == 1

    def test_delete_missing_post_returns_minus_one(self, db):
        assert db.delete_post("nope") == -1


class TestComments:
    """Test comment rows."""

    def test_insert_requires_existing_post(self, db):
        with pytest.raises(DatabaseError):
            db.insert_comment(make_comment(post_id="missing"))

    def test_get_comments_oldest_first(self, db):
        db.insert_post(make_post())
        db.insert_comment(make_comment("late", created_at=1700000300.0))
        db.insert_comment(make_comment("early", created_at=1700000200.0))

        assert [c.id for c in db.get_comments("p1")] == ["early", "late"]

    def test_parent_id_roundtrip(self, db):
        db.insert_post(make_post())
        db.insert_comment(make_comment("c1"))
        db.insert_comment(make_comment("c2", parent_comment_id="c1"))

        assert db.get_comment("c2").parent_comment_id == "c1"
        assert db.get_comment("c1").parent_comment_id is None

    def test_delete_comment(self, db):
        db.insert_post(make_post())
        db.insert_comment(make_comment())

        assert db.delete_comment("c1") is True
        assert db.delete_comment("c1") is False


class TestSharedOperations:
    """Test content update and duplicate counting."""

    def test_update_content_keeps_created_at(self, db):
        db.insert_post(make_post())

        assert db.update_content("post", "p1", "Edited") is True
        post = db.get_post("p1")
        assert post.content == "Edited"
        assert post.created_at == 1700000000.0

    def test_update_missing_returns_false(self, db):
        assert db.update_content("comment", "nope", "x") is False

    def test_unknown_kind_raises(self, db):
        with pytest.raises(ValidationError):
            db.update_content("reaction", "p1", "x")

    def test_count_content_since(self, db):
        db.insert_post(make_post("p1", content="same", created_at=100.0))
        db.insert_post(make_post("p2", content="same", created_at=200.0))
        db.insert_post(make_post("p3", content="other", created_at=200.0))

        assert db.count_content_since("post", "same", 150.0) == 1
        assert db.count_content_since("post", "same", 0.0) == 2


class TestReactions:
    """Test atomic reaction counters."""

    def test_increment_and_read(self, db):
        db.insert_post(make_post())
        db.increment_reaction("p1", "following", 1)
        db.increment_reaction("p1", "following", 1)

        assert db.get_reactions("p1")["following"] == 2

    def test_decrement_floors_at_zero(self, db):
        db.insert_post(make_post())
        db.increment_reaction("p1", "think", -1)

        assert db.get_reactions("p1")["think"] == 0

    def test_missing_post_returns_false(self, db):
        assert db.increment_reaction("nope", "think", 1) is False
        assert db.get_reactions("nope") is None

    def test_unknown_reaction_raises(self, db):
        db.insert_post(make_post())
        with pytest.raises(ValidationError):
            db.increment_reaction("p1", "love", 1)

    def test_concurrent_increments_are_not_lost(self, db):
        db.insert_post(make_post(reactions={"inspired": 5, "think": 0, "relatable": 0,
                                            "following": 0}))

        threads = [
            threading.Thread(target=db.increment_reaction, args=("p1", "inspired", 1))
            for _ in range(20)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert db.get_reactions("p1")["inspired"] == 25


class TestDatabaseReset:
    """Test singleton reset."""

    def test_reset_creates_fresh_instance(self, tmp_dir):
        a = DatabaseManager(tmp_dir / "a.db")
        DatabaseManager.reset()
        b = DatabaseManager(tmp_dir / "b.db")
        assert a is not b
        assert (tmp_dir / "b.db").exists()


class TestFeatureVotes:
    """Test the one-vote-per-pseudonym table."""

    def test_upsert_is_idempotent(self, db):
        db.upsert_feature_vote("Calm Oak", "want", 1.0)
        db.upsert_feature_vote("Calm Oak", "want", 2.0)
        assert db.get_feature_votes() == [("Calm Oak", "want")]

    def test_revote_switches_side(self, db):
        db.upsert_feature_vote("Calm Oak", "want", 1.0)
        db.upsert_feature_vote("Calm Oak", "dont", 2.0)
        assert db.get_feature_votes() == [("Calm Oak", "dont")]

    def test_ordered_by_pseudonym(self, db):
        db.upsert_feature_vote("Shy Fox", "dont", 1.0)
        db.upsert_feature_vote("Bold Elk", "want", 2.0)
        assert [p for p, _ in db.get_feature_votes()] == ["Bold Elk", "Shy Fox"]

    def test_unknown_vote_rejected_by_schema(self, db):
        with pytest.raises(ValidationError):
            db.upsert_feature_vote("Calm Oak", "maybe", 1.0)
        assert db.get_feature_votes() == []
