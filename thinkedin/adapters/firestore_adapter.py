"""Firestore REST adapter: the managed document store the web client talks to.

Collections and field names follow the web client's layout:

    thoughts/{id}: content, pseudonym, timestamp, uid, tags, type,
                   reactions.{inspired, think, relatable, following}
    comments/{id}: content, pseudonym, timestamp, uid, thoughtId, parentId
    chatbot_votes/{pseudonym}: pseudonym, vote

Counters are changed with server-side `increment` field transforms so that
concurrent reactors never lose updates.
"""

import copy
import logging
import re
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from urllib.parse import quote

import requests

from thinkedin.adapters.record_store import (
    ReactionListener,
    RecordStore,
    Subscription,
    VoteListener,
    ensure_owner,
)
from thinkedin.core.exceptions import (
    AuthError,
    NotFoundError,
    StoreUnavailableError,
    ThinkedinError,
    UnauthorizedError,
    ValidationError,
)
from thinkedin.core.types import (
    CommentDTO,
    FEATURE_VOTE_CHOICES,
    PostDTO,
    REACTION_KINDS,
    RECORD_COMMENT,
    RECORD_POST,
    TOMBSTONE,
    VoteTally,
    empty_reactions,
)

logger = logging.getLogger("thinkedin")

THOUGHTS_COLLECTION = "thoughts"
COMMENTS_COLLECTION = "comments"
FEATURE_VOTES_COLLECTION = "chatbot_votes"
_COLLECTIONS = {RECORD_POST: THOUGHTS_COLLECTION, RECORD_COMMENT: COMMENTS_COLLECTION}

# Firestore commits accept at most 500 writes
_MAX_BATCH_WRITES = 500

_POLLER_JOIN_TIMEOUT_SEC = 2.0

_TIMESTAMP_RE = re.compile(r'^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?Z$')


def encode_value(value: Any) -> dict:
    """Python value -> Firestore typed value."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": {k: encode_value(v) for k, v in value.items()}}}
    raise TypeError(f"Cannot encode {type(value).__name__} for Firestore")


def decode_value(value: dict) -> Any:
    """Firestore typed value -> Python value. Timestamps become epoch seconds."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return parse_timestamp(value["timestampValue"])
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        fields = value["mapValue"].get("fields", {})
        return {k: decode_value(v) for k, v in fields.items()}
    return None


def parse_timestamp(text: str) -> float:
    """RFC 3339 UTC timestamp (up to nanosecond precision) -> epoch seconds."""
    match = _TIMESTAMP_RE.match(text)
    if not match:
        return datetime.fromisoformat(text).timestamp()
    base = datetime.strptime(match.group(1), "%Y-%m-%dT%H:%M:%S").replace(tzinfo=timezone.utc)
    fraction = float(f"0.{match.group(2)}") if match.group(2) else 0.0
    return base.timestamp() + fraction


class _SnapshotPoller(threading.Thread):
    """Background thread re-reading one snapshot and reporting changes."""

    def __init__(self, name: str, fetch: Callable[[], Any],
                 on_change: Callable[[Any], None], interval_sec: float):
        super().__init__(name=name, daemon=True)
        self._fetch = fetch
        self._on_change = on_change
        self._interval = interval_sec
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        last_seen = None
        while not self._stop_event.is_set():
            try:
                snapshot = self._fetch()
            except ThinkedinError as e:
                logger.warning(f"Polling {self.name} failed: {e}")
                snapshot = None

            if snapshot is not None and snapshot != last_seen and not self._stop_event.is_set():
                last_seen = snapshot
                try:
                    self._on_change(copy.deepcopy(snapshot))
                except Exception as e:
                    logger.error(f"Listener for {self.name} failed: {e}")

            self._stop_event.wait(self._interval)


class FirestoreRecordStore(RecordStore):
    """RecordStore over the Firestore REST API (v1)."""

    BASE_URL = "https://firestore.googleapis.com/v1"

    def __init__(
        self,
        project_id: str,
        api_key: str = "",
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        token_refresher: Optional[Callable[[], None]] = None,
        timeout: int = 15,
        poll_interval_sec: float = 5.0,
        session: Optional[requests.Session] = None,
    ):
        self._root = f"projects/{project_id}/databases/(default)/documents"
        self._documents_url = f"{self.BASE_URL}/{self._root}"
        self._api_key = api_key
        self._token_provider = token_provider
        self._token_refresher = token_refresher
        self._timeout = timeout
        self._poll_interval = poll_interval_sec
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        self._pollers: dict[int, _SnapshotPoller] = {}
        self._pollers_lock = threading.Lock()

    # --- HTTP ---

    def _request(self, method: str, url: str, params: Optional[list] = None,
                 json_body: Optional[dict] = None, read_only: bool = False) -> Any:
        """Send one request and map failures onto the store error taxonomy.

        A 401 triggers one token refresh and retry. A read that is still
        denied means the store cannot be used right now (StoreUnavailableError);
        a denied write is UnauthorizedError.
        """
        response = self._send(method, url, params, json_body)
        if response.status_code == 401 and self._token_refresher is not None:
            if self._refresh_token():
                response = self._send(method, url, params, json_body)

        if response.status_code == 404:
            raise NotFoundError(f"Firestore document not found: {url}")
        if response.status_code in (401, 403):
            if read_only:
                raise StoreUnavailableError(
                    f"Firestore denied {method} {url} (HTTP {response.status_code})"
                )
            raise UnauthorizedError(f"Firestore denied {method} {url}")
        if response.status_code == 400:
            raise ValidationError(f"Firestore rejected request: {response.text[:200]}")
        if response.status_code >= 400:
            raise StoreUnavailableError(f"Firestore returned HTTP {response.status_code}")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise StoreUnavailableError(f"Malformed Firestore response: {e}")

    def _send(self, method: str, url: str, params: Optional[list],
              json_body: Optional[dict]) -> requests.Response:
        query = list(params or [])
        if self._api_key:
            query.append(("key", self._api_key))
        headers = {}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"

        try:
            return self._session.request(
                method, url, params=query, json=json_body,
                headers=headers, timeout=self._timeout,
            )
        except requests.Timeout:
            raise StoreUnavailableError(f"Firestore request timed out after {self._timeout}s")
        except requests.ConnectionError as e:
            raise StoreUnavailableError(f"Cannot connect to Firestore: {e}")
        except requests.RequestException as e:
            raise StoreUnavailableError(f"Firestore request failed: {e}")

    def _refresh_token(self) -> bool:
        try:
            self._token_refresher()
        except (AuthError, StoreUnavailableError) as e:
            logger.warning(f"Could not refresh Firestore credentials: {e}")
            return False
        logger.info("Refreshed Firestore credentials after HTTP 401")
        return True

    def _document_name(self, collection: str, doc_id: str) -> str:
        return f"{self._root}/{collection}/{doc_id}"

    def _document_url(self, collection: str, doc_id: str) -> str:
        return f"{self._documents_url}/{collection}/{doc_id}"

    def _commit(self, writes: list[dict]) -> None:
        self._request("POST", f"{self._documents_url}:commit", json_body={"writes": writes})

    def _run_query(self, structured_query: dict) -> list[dict]:
        results = self._request(
            "POST", f"{self._documents_url}:runQuery",
            json_body={"structuredQuery": structured_query}, read_only=True,
        )
        if not isinstance(results, list):
            return []
        # Entries without "document" only carry a readTime (empty result)
        return [entry["document"] for entry in results if "document" in entry]

    @staticmethod
    def _where_equal(field_path: str, value: Any) -> dict:
        return {
            "fieldFilter": {
                "field": {"fieldPath": field_path},
                "op": "EQUAL",
                "value": encode_value(value),
            }
        }

    def _get_document(self, collection: str, doc_id: str) -> Optional[dict]:
        try:
            return self._request(
                "GET", self._document_url(collection, doc_id), read_only=True
            )
        except NotFoundError:
            return None

    # --- Conversion ---

    @staticmethod
    def _fields(document: dict) -> dict:
        return {k: decode_value(v) for k, v in document.get("fields", {}).items()}

    @classmethod
    def _to_post(cls, document: dict) -> PostDTO:
        fields = cls._fields(document)
        stored = fields.get("reactions") or {}
        reactions = empty_reactions()
        for kind in REACTION_KINDS:
            # increments are unbounded server-side; never show negatives
            reactions[kind] = max(int(stored.get(kind) or 0), 0)
        return PostDTO(
            id=document["name"].rsplit("/", 1)[-1],
            content=fields.get("content") or "",
            pseudonym=fields.get("pseudonym") or "",
            owner_account_id=fields.get("uid"),
            created_at=fields.get("timestamp") or 0.0,
            tags=list(fields.get("tags") or []),
            kind=fields.get("type") or "thought",
            reactions=reactions,
        )

    @classmethod
    def _to_comment(cls, document: dict) -> CommentDTO:
        fields = cls._fields(document)
        return CommentDTO(
            id=document["name"].rsplit("/", 1)[-1],
            post_id=fields.get("thoughtId") or "",
            parent_comment_id=fields.get("parentId") or None,
            content=fields.get("content") or "",
            pseudonym=fields.get("pseudonym") or "",
            owner_account_id=fields.get("uid"),
            created_at=fields.get("timestamp") or 0.0,
        )

    def _create(self, collection: str, fields: dict) -> str:
        doc_id = uuid.uuid4().hex
        self._commit([{
            "update": {
                "name": self._document_name(collection, doc_id),
                "fields": {k: encode_value(v) for k, v in fields.items()},
            },
            "currentDocument": {"exists": False},
            "updateTransforms": [
                {"fieldPath": "timestamp", "setToServerValue": "REQUEST_TIME"},
            ],
        }])
        return doc_id

    # --- Posts ---

    def create_post(self, content, tags, kind, author_pseudonym, owner_account_id) -> str:
        post_id = self._create(THOUGHTS_COLLECTION, {
            "content": content,
            "pseudonym": author_pseudonym,
            "uid": owner_account_id,
            "tags": list(tags),
            "type": kind,
            "reactions": empty_reactions(),
        })
        logger.info(f"Created post {post_id} ({kind})")
        return post_id

    def get_post(self, post_id: str) -> Optional[PostDTO]:
        document = self._get_document(THOUGHTS_COLLECTION, post_id)
        return self._to_post(document) if document else None

    def list_posts(self, limit: int = 50) -> list[PostDTO]:
        documents = self._run_query({
            "from": [{"collectionId": THOUGHTS_COLLECTION}],
            "orderBy": [{"field": {"fieldPath": "timestamp"}, "direction": "DESCENDING"}],
            "limit": limit,
        })
        return [self._to_post(d) for d in documents]

    def list_posts_by_owner(self, owner_account_id: str) -> list[PostDTO]:
        # Sorted locally: equality + orderBy would need a composite index
        documents = self._run_query({
            "from": [{"collectionId": THOUGHTS_COLLECTION}],
            "where": self._where_equal("uid", owner_account_id),
        })
        posts = [self._to_post(d) for d in documents]
        return sorted(posts, key=lambda p: p.created_at, reverse=True)

    # --- Comments ---

    def create_comment(self, content, post_id, parent_comment_id, author_pseudonym,
                       owner_account_id) -> str:
        if self._get_document(THOUGHTS_COLLECTION, post_id) is None:
            raise NotFoundError(f"Post {post_id} not found")
        fields = {
            "content": content,
            "pseudonym": author_pseudonym,
            "uid": owner_account_id,
            "thoughtId": post_id,
        }
        if parent_comment_id:
            fields["parentId"] = parent_comment_id
        comment_id = self._create(COMMENTS_COLLECTION, fields)
        logger.info(f"Created comment {comment_id} on post {post_id}")
        return comment_id

    def get_comment(self, comment_id: str) -> Optional[CommentDTO]:
        document = self._get_document(COMMENTS_COLLECTION, comment_id)
        return self._to_comment(document) if document else None

    def _query_comments(self, field_path: str, value: str) -> list[CommentDTO]:
        documents = self._run_query({
            "from": [{"collectionId": COMMENTS_COLLECTION}],
            "where": self._where_equal(field_path, value),
        })
        return [self._to_comment(d) for d in documents]

    def list_comments(self, post_id: str) -> list[CommentDTO]:
        return sorted(self._query_comments("thoughtId", post_id), key=lambda c: c.created_at)

    def list_comments_by_owner(self, owner_account_id: str) -> list[CommentDTO]:
        comments = self._query_comments("uid", owner_account_id)
        return sorted(comments, key=lambda c: c.created_at, reverse=True)

    # --- Mutation ---

    def _collection_for(self, kind: str) -> str:
        try:
            return _COLLECTIONS[kind]
        except KeyError:
            raise ValidationError(f"Unknown record kind '{kind}'")

    def _load_owner(self, kind: str, record_id: str) -> Optional[str]:
        collection = self._collection_for(kind)
        document = self._get_document(collection, record_id)
        if document is None:
            raise NotFoundError(f"{kind} {record_id} not found")
        return self._fields(document).get("uid")

    def _set_content(self, kind: str, record_id: str, content: str) -> None:
        self._request(
            "PATCH",
            self._document_url(self._collection_for(kind), record_id),
            params=[("updateMask.fieldPaths", "content"), ("currentDocument.exists", "true")],
            json_body={"fields": {"content": encode_value(content)}},
        )

    def edit_record(self, kind, record_id, new_content, acting_account_id) -> None:
        owner = self._load_owner(kind, record_id)
        ensure_owner(kind, record_id, owner, acting_account_id)
        self._set_content(kind, record_id, new_content)
        logger.info(f"Edited {kind} {record_id}")

    def delete_record(self, kind, record_id, acting_account_id) -> None:
        owner = self._load_owner(kind, record_id)
        ensure_owner(kind, record_id, owner, acting_account_id)
        if kind == RECORD_POST:
            self._remove_post(record_id)
        else:
            self._set_content(kind, record_id, TOMBSTONE)
            logger.info(f"Tombstoned comment {record_id}")

    def purge_record(self, kind, record_id) -> None:
        self._load_owner(kind, record_id)
        if kind == RECORD_POST:
            self._remove_post(record_id)
        else:
            self._request("DELETE", self._document_url(COMMENTS_COLLECTION, record_id))
            logger.info(f"Purged comment {record_id}")

    def _remove_post(self, post_id: str) -> None:
        comments = self._query_comments("thoughtId", post_id)
        writes = [{"delete": self._document_name(THOUGHTS_COLLECTION, post_id)}]
        writes += [
            {"delete": self._document_name(COMMENTS_COLLECTION, c.id)} for c in comments
        ]
        for start in range(0, len(writes), _MAX_BATCH_WRITES):
            self._commit(writes[start:start + _MAX_BATCH_WRITES])
        logger.info(f"Deleted post {post_id} and {len(comments)} comments")

    # --- Reactions ---

    def increment_reaction_counter(self, post_id: str, kind: str, delta: int) -> None:
        if kind not in REACTION_KINDS:
            raise ValidationError(f"Unknown reaction '{kind}'")
        self._commit([{
            "transform": {
                "document": self._document_name(THOUGHTS_COLLECTION, post_id),
                "fieldTransforms": [{
                    "fieldPath": f"reactions.{kind}",
                    "increment": {"integerValue": str(delta)},
                }],
            },
            "currentDocument": {"exists": True},
        }])
        logger.debug(f"Reaction {kind} on {post_id} changed by {delta}")

    def count_recent_content(self, kind: str, content: str, since: float) -> int:
        # Range filtering is local: equality + range would need a composite index
        documents = self._run_query({
            "from": [{"collectionId": self._collection_for(kind)}],
            "where": self._where_equal("content", content),
        })
        count = 0
        for document in documents:
            created = self._fields(document).get("timestamp") or 0.0
            if created >= since:
                count += 1
        return count

    def subscribe(self, post_id: str, on_change: ReactionListener) -> Subscription:
        def fetch():
            post = self.get_post(post_id)
            return post.reactions if post is not None else None

        logger.debug(f"Polling reactions of {post_id} every {self._poll_interval}s")
        return self._start_poller(f"reactions-{post_id}", fetch, on_change)

    # --- Feature votes ---

    def _vote_url(self, pseudonym: str) -> str:
        return self._document_url(FEATURE_VOTES_COLLECTION, quote(pseudonym, safe=""))

    def set_feature_vote(self, pseudonym: str, choice: str) -> None:
        if choice not in FEATURE_VOTE_CHOICES:
            raise ValidationError(f"Unknown vote '{choice}'")
        # PATCH without an update mask replaces the whole document
        self._request("PATCH", self._vote_url(pseudonym), json_body={
            "fields": {"pseudonym": encode_value(pseudonym), "vote": encode_value(choice)},
        })
        logger.info(f"Recorded feature vote '{choice}' for {pseudonym}")

    def get_feature_votes(self) -> VoteTally:
        documents = self._run_query({"from": [{"collectionId": FEATURE_VOTES_COLLECTION}]})
        tally = VoteTally()
        for document in documents:
            fields = self._fields(document)
            pseudonym = fields.get("pseudonym")
            vote = fields.get("vote")
            if pseudonym and vote in FEATURE_VOTE_CHOICES:
                getattr(tally, vote).append(pseudonym)
        return tally

    def subscribe_feature_votes(self, on_change: VoteListener) -> Subscription:
        logger.debug(f"Polling feature votes every {self._poll_interval}s")
        return self._start_poller("feature-votes", self.get_feature_votes, on_change)

    # --- Lifecycle ---

    def _start_poller(self, name: str, fetch: Callable[[], Any],
                      on_change: Callable[[Any], None]) -> Subscription:
        poller = _SnapshotPoller(name, fetch, on_change, self._poll_interval)
        key = id(poller)
        with self._pollers_lock:
            self._pollers[key] = poller
        poller.start()

        def cancel():
            with self._pollers_lock:
                self._pollers.pop(key, None)
            poller.stop()

        return Subscription(cancel)

    def close(self) -> None:
        """Stop and join every poller, then close the HTTP session."""
        with self._pollers_lock:
            pollers = list(self._pollers.values())
            self._pollers.clear()
        for poller in pollers:
            poller.stop()
        current = threading.current_thread()
        for poller in pollers:
            if poller is current:
                continue
            poller.join(_POLLER_JOIN_TIMEOUT_SEC)
            if poller.is_alive():
                logger.warning(f"Poller {poller.name} still running after close")
        self._session.close()
