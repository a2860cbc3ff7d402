"""Post-creation moderation: validate new content and purge what fails."""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Callable

from thinkedin.adapters.record_store import RecordStore
from thinkedin.core.config_manager import ConfigManager
from thinkedin.core.types import ModerationVerdict, RECORD_POST

logger = logging.getLogger("thinkedin")

PROFANITY_WORDS = (
    "fuck", "shit", "bitch", "asshole", "bastard", "cunt", "dickhead",
    "motherfucker", "slut", "whore",
)

SPAM_PATTERNS = (
    re.compile(r'https?://\S+.*https?://\S+', re.IGNORECASE | re.DOTALL),  # several links
    re.compile(r'\b(buy now|click here|free money|limited offer|act now)\b', re.IGNORECASE),
    re.compile(r'(\S)\1{9,}'),                                             # aaaaaaaaaa
    re.compile(r'\b(?:whatsapp|telegram)\s*[:@]', re.IGNORECASE),
)


class ContentValidator(ABC):
    """Decides whether freshly created content may stay."""

    @abstractmethod
    def validate(self, kind: str, content: str) -> ModerationVerdict:
        ...


class StaticRuleValidator(ContentValidator):
    """Profanity, duplicate, length and spam checks.

    The duplicate count includes the record under review, so a post is
    rejected once the same text exists more than post_duplicate_limit times
    in the trailing window.
    """

    def __init__(self, store: RecordStore, config: ConfigManager,
                 clock: Callable[[], float] = time.time):
        self._store = store
        self._config = config
        self._clock = clock

    def validate(self, kind: str, content: str) -> ModerationVerdict:
        lowered = content.lower()
        for word in PROFANITY_WORDS:
            if word in lowered:
                return ModerationVerdict(False, "profanity")

        min_len, max_len = self._length_band(kind)
        if not min_len <= len(content) <= max_len:
            return ModerationVerdict(False, "length")

        for pattern in SPAM_PATTERNS:
            if pattern.search(content):
                return ModerationVerdict(False, "spam")

        window = self._config.get("moderation.duplicate_window_hours", 24) * 3600
        since = self._clock() - window
        if self._store.count_recent_content(kind, content, since) > self._duplicate_limit(kind):
            return ModerationVerdict(False, "duplicate")

        return ModerationVerdict(True)

    def _length_band(self, kind: str) -> tuple:
        if kind == RECORD_POST:
            return (self._config.get("moderation.post_min_length", 10),
                    self._config.get("moderation.post_max_length", 1000))
        return (self._config.get("moderation.comment_min_length", 1),
                self._config.get("moderation.comment_max_length", 500))

    def _duplicate_limit(self, kind: str) -> int:
        if kind == RECORD_POST:
            return self._config.get("moderation.post_duplicate_limit", 2)
        return self._config.get("moderation.comment_duplicate_limit", 3)


class ModerationService:
    """Runs a ContentValidator on every new record and removes rejects.

    Fail-open: if validation itself raises, the content stays.
    """

    def __init__(self, store: RecordStore, validator: ContentValidator):
        self._store = store
        self._validator = validator

    def review(self, kind: str, record_id: str, content: str) -> ModerationVerdict:
        """Check a record that was just created.

        Returns:
            The verdict; when not allowed, the record has already been purged
        """
        try:
            verdict = self._validator.validate(kind, content)
        except Exception as e:
            logger.error(f"Moderation check failed for {kind} {record_id}, allowing: {e}")
            return ModerationVerdict(True, "check_failed")

        if verdict.allowed:
            return verdict

        logger.warning(f"Moderation rejected {kind} {record_id}: {verdict.reason}")
        self._store.purge_record(kind, record_id)
        return verdict
