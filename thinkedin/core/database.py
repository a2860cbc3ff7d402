"""Thread-safe singleton DatabaseManager for SQLite operations."""

import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from thinkedin.core.exceptions import DatabaseError, ValidationError
from thinkedin.core.types import (
    CommentDTO,
    PostDTO,
    REACTION_KINDS,
    RECORD_COMMENT,
    RECORD_POST,
)

logger = logging.getLogger("thinkedin")

_TABLES = {RECORD_POST: "posts", RECORD_COMMENT: "comments"}
# "following" is an SQL keyword, so counter columns are always quoted
_REACTION_COLUMNS = ", ".join(f'"{kind}"' for kind in REACTION_KINDS)


def _table_for(kind: str) -> str:
    try:
        return _TABLES[kind]
    except KeyError:
        raise ValidationError(f"Unknown record kind '{kind}'")


class DatabaseManager:
    """Thread-safe singleton DatabaseManager for SQLite operations.

    Manages a single SQLite connection with proper thread synchronization.
    All public methods are protected with RLock for thread safety.
    """

    _instance: Optional['DatabaseManager'] = None
    _lock = threading.RLock()

    def __new__(cls, db_path: Optional[Path] = None):
        """Ensure only one instance exists (Singleton pattern)."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize DatabaseManager with SQLite connection.

        Args:
            db_path: Absolute path to SQLite database file.
                     Only used on first initialization.
        """
        if self._initialized:
            return

        if db_path is None:
            raise DatabaseError("db_path is required for first initialization")

        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)

            # check_same_thread=False: thread safety is enforced with RLock
            self._conn = sqlite3.connect(
                str(db_path),
                check_same_thread=False
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")

            self._init_schema()

            self._initialized = True
            logger.info(f"DatabaseManager initialized with db_path: {db_path}")

        except (sqlite3.Error, OSError) as e:
            raise DatabaseError(f"Failed to initialize database: {e}")

    def _init_schema(self) -> None:
        """Create database tables if they don't exist."""
        try:
            with self._lock:
                self._conn.execute("""
                    CREATE TABLE IF NOT EXISTS posts (
                        id          TEXT PRIMARY KEY,
                        content     TEXT NOT NULL,
                        pseudonym   TEXT NOT NULL DEFAULT '',
                        owner_id    TEXT,
                        created_at  REAL NOT NULL,
                        tags        TEXT NOT NULL DEFAULT '[]',
                        kind        TEXT NOT NULL DEFAULT 'thought',
                        "inspired"  INTEGER NOT NULL DEFAULT 0 CHECK ("inspired" >= 0),
                        "think"     INTEGER NOT NULL DEFAULT 0 CHECK ("think" >= 0),
                        "relatable" INTEGER NOT NULL DEFAULT 0 CHECK ("relatable" >= 0),
                        "following" INTEGER NOT NULL DEFAULT 0 CHECK ("following" >= 0)
                    )
                """)

                self._conn.execute("""
                    CREATE TABLE IF NOT EXISTS comments (
                        id          TEXT PRIMARY KEY,
                        post_id     TEXT NOT NULL,
                        parent_id   TEXT,
                        content     TEXT NOT NULL,
                        pseudonym   TEXT NOT NULL DEFAULT '',
                        owner_id    TEXT,
                        created_at  REAL NOT NULL,
                        FOREIGN KEY (post_id) REFERENCES posts(id) ON DELETE CASCADE
                    )
                """)

                self._conn.execute("""
                    CREATE TABLE IF NOT EXISTS feature_votes (
                        pseudonym   TEXT PRIMARY KEY,
                        vote        TEXT NOT NULL CHECK (vote IN ('want', 'dont')),
                        updated_at  REAL NOT NULL
                    )
                """)

                self._conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_posts_created ON posts(created_at)"
                )
                self._conn.execute(
                    "CREATE INDEX IF NOT EXISTS idx_comments_post ON comments(post_id, created_at)"
                )

                self._conn.commit()
                logger.debug("Database schema initialized")

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to initialize schema: {e}")

    # --- Posts ---

    def insert_post(self, post: PostDTO) -> None:
        """Insert a new post row.

        Raises:
            DatabaseError: If database operation fails.
        """
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO posts (
                        id, content, pseudonym, owner_id, created_at, tags, kind,
                        "inspired", "think", "relatable", "following"
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        post.id,
                        post.content,
                        post.pseudonym,
                        post.owner_account_id,
                        post.created_at,
                        json.dumps(post.tags),
                        post.kind,
                        *(max(post.reactions.get(kind, 0), 0) for kind in REACTION_KINDS),
                    )
                )
                self._conn.commit()
                logger.debug(f"Saved post: {post.id}")

        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to save post {post.id}: {e}")

    def get_post(self, post_id: str) -> Optional[PostDTO]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT * FROM posts WHERE id = ?", (post_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to load post {post_id}: {e}")
        return self._row_to_post(row) if row else None

    def get_posts(self, limit: int = 50) -> list[PostDTO]:
        """Newest posts first."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM posts ORDER BY created_at DESC, rowid DESC LIMIT ?",
                    (limit,)
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to list posts: {e}")
        return [self._row_to_post(row) for row in rows]

    def get_posts_by_owner(self, owner_id: str) -> list[PostDTO]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM posts WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",
                    (owner_id,)
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to list posts of {owner_id}: {e}")
        return [self._row_to_post(row) for row in rows]

    def delete_post(self, post_id: str) -> int:
        """Delete a post and all of its comments in one transaction.

        Returns:
            Number of comments removed, or -1 if the post did not exist.
        """
        try:
            with self._lock:
                with self._conn:
                    removed = self._conn.execute(
                        "DELETE FROM comments WHERE post_id = ?", (post_id,)
                    ).rowcount
                    cursor = self._conn.execute(
                        "DELETE FROM posts WHERE id = ?", (post_id,)
                    )
                if cursor.rowcount == 0:
                    return -1
                logger.debug(f"Deleted post {post_id} with {removed} comments")
                return removed
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to delete post {post_id}: {e}")

    # --- Comments ---

    def insert_comment(self, comment: CommentDTO) -> None:
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO comments (
                        id, post_id, parent_id, content, pseudonym, owner_id, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        comment.id,
                        comment.post_id,
                        comment.parent_comment_id,
                        comment.content,
                        comment.pseudonym,
                        comment.owner_account_id,
                        comment.created_at,
                    )
                )
                self._conn.commit()
                logger.debug(f"Saved comment {comment.id} on post {comment.post_id}")
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to save comment {comment.id}: {e}")

    def get_comment(self, comment_id: str) -> Optional[CommentDTO]:
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT * FROM comments WHERE id = ?", (comment_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to load comment {comment_id}: {e}")
        return self._row_to_comment(row) if row else None

    def get_comments(self, post_id: str) -> list[CommentDTO]:
        """Flat comment list of a post, oldest first."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM comments WHERE post_id = ? ORDER BY created_at ASC, rowid ASC",
                    (post_id,)
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to list comments of {post_id}: {e}")
        return [self._row_to_comment(row) for row in rows]

    def get_comments_by_owner(self, owner_id: str) -> list[CommentDTO]:
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT * FROM comments WHERE owner_id = ? ORDER BY created_at DESC, rowid DESC",
                    (owner_id,)
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to list comments of {owner_id}: {e}")
        return [self._row_to_comment(row) for row in rows]

    def delete_comment(self, comment_id: str) -> bool:
        try:
            with self._lock:
                cursor = self._conn.execute(
                    "DELETE FROM comments WHERE id = ?", (comment_id,)
                )
                self._conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to delete comment {comment_id}: {e}")

    # --- Shared ---

    def update_content(self, kind: str, record_id: str, content: str) -> bool:
        """Replace content in place. Returns False if no such record."""
        table = _table_for(kind)
        try:
            with self._lock:
                cursor = self._conn.execute(
                    f"UPDATE {table} SET content = ? WHERE id = ?",
                    (content, record_id)
                )
                self._conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to update {kind} {record_id}: {e}")

    def count_content_since(self, kind: str, content: str, since: float) -> int:
        table = _table_for(kind)
        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT COUNT(*) AS cnt FROM {table} WHERE content = ? AND created_at >= ?",
                    (content, since)
                ).fetchone()
                return row['cnt']
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to count {kind} content: {e}")

    # --- Reactions ---

    def increment_reaction(self, post_id: str, reaction: str, delta: int) -> bool:
        """Atomically add delta to a counter, flooring at zero.

        A single UPDATE statement, so concurrent callers never lose updates.
        Returns False if the post does not exist.
        """
        if reaction not in REACTION_KINDS:
            raise ValidationError(f"Unknown reaction '{reaction}'")
        try:
            with self._lock:
                cursor = self._conn.execute(
                    f'UPDATE posts SET "{reaction}" = MAX("{reaction}" + ?, 0) WHERE id = ?',
                    (delta, post_id)
                )
                self._conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to update reaction {reaction} on {post_id}: {e}")

    def get_reactions(self, post_id: str) -> Optional[dict[str, int]]:
        try:
            with self._lock:
                row = self._conn.execute(
                    f"SELECT {_REACTION_COLUMNS} FROM posts WHERE id = ?",
                    (post_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to load reactions of {post_id}: {e}")
        if row is None:
            return None
        return {kind: row[kind] for kind in REACTION_KINDS}

    # --- Feature votes ---

    def upsert_feature_vote(self, pseudonym: str, vote: str, updated_at: float) -> None:
        """Insert or replace the single vote of a pseudonym."""
        try:
            with self._lock:
                self._conn.execute(
                    """
                    INSERT INTO feature_votes (pseudonym, vote, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(pseudonym) DO UPDATE SET
                        vote = excluded.vote,
                        updated_at = excluded.updated_at
                    """,
                    (pseudonym, vote, updated_at)
                )
                self._conn.commit()
        except sqlite3.IntegrityError as e:
            raise ValidationError(f"Invalid vote '{vote}': {e}")
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to save vote of {pseudonym}: {e}")

    def get_feature_votes(self) -> list[tuple[str, str]]:
        """(pseudonym, vote) pairs ordered by pseudonym."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT pseudonym, vote FROM feature_votes ORDER BY pseudonym"
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(f"Failed to load feature votes: {e}")
        return [(row['pseudonym'], row['vote']) for row in rows]

    # --- Lifecycle ---

    def close(self) -> None:
        """Close the database connection."""
        try:
            with self._lock:
                if hasattr(self, '_conn') and self._conn:
                    self._conn.close()
                    logger.info("Database connection closed")

        except sqlite3.Error as e:
            logger.error(f"Error closing database connection: {e}")

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing).

        Closes the connection if open and clears the singleton instance.
        """
        with cls._lock:
            if cls._instance is not None:
                if hasattr(cls._instance, '_conn') and cls._instance._conn:
                    try:
                        cls._instance._conn.close()
                        logger.debug("Connection closed during reset")
                    except sqlite3.Error as e:
                        logger.error(f"Error closing connection during reset: {e}")

                cls._instance = None
                logger.debug("DatabaseManager singleton reset")

    @staticmethod
    def _row_to_post(row: sqlite3.Row) -> PostDTO:
        return PostDTO(
            id=row['id'],
            content=row['content'],
            pseudonym=row['pseudonym'],
            owner_account_id=row['owner_id'],
            created_at=row['created_at'],
            tags=json.loads(row['tags'] or '[]'),
            kind=row['kind'],
            reactions={kind: row[kind] for kind in REACTION_KINDS},
        )

    @staticmethod
    def _row_to_comment(row: sqlite3.Row) -> CommentDTO:
        return CommentDTO(
            id=row['id'],
            post_id=row['post_id'],
            parent_comment_id=row['parent_id'],
            content=row['content'],
            pseudonym=row['pseudonym'],
            owner_account_id=row['owner_id'],
            created_at=row['created_at'],
        )
