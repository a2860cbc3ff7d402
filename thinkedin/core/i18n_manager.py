"""Thread-safe singleton I18nManager for the bundled locale JSON files."""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Optional

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOCALE_DIR = PROJECT_ROOT / "thinkedin" / "resources" / "locales"

SUPPORTED_LOCALES = ("en_US", "ko_KR")
FALLBACK_LOCALE = "en_US"

logger = logging.getLogger("thinkedin")


class I18nManager:
    """Thread-safe singleton for user-visible strings.

    Keys use dot notation ("errors.unauthorized") with {placeholder}
    substitution. A key missing from the active locale is looked up in the
    English strings before giving up and returning the key itself.
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        """Ensure only one instance exists (singleton pattern)."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._initialized = False
            return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._data: dict[str, Any] = {}
        self._fallback: dict[str, Any] = {}
        self._locale: str = FALLBACK_LOCALE
        self._initialized = True

    def load_locale(self, locale: str) -> bool:
        """Switch to a supported locale.

        Returns:
            True if the locale is now active. Unsupported, missing or
            unparsable locales log a warning and keep the current strings.
        """
        if locale not in SUPPORTED_LOCALES:
            logger.warning(f"Unsupported locale '{locale}', expected one of {SUPPORTED_LOCALES}")
            return False

        with self._lock:
            data = self._read(locale)
            if data is None:
                return False
            if locale == FALLBACK_LOCALE:
                fallback = data
            else:
                fallback = self._read(FALLBACK_LOCALE) or {}
            self._data = data
            self._fallback = fallback
            self._locale = locale
            logger.info(f"Loaded locale: {locale}")
            return True

    def get(self, key: str, **kwargs) -> str:
        """Get translated string by dot-notation key. Never raises.

        Examples:
            get("thread.empty") -> "No comments yet."
            get("votes.summary", want=3, dont=1) -> "👍 3  👎 1"
        """
        with self._lock:
            template = self._resolve(key)
        return self._format(key, template, kwargs)

    def plural(self, key: str, count: int, **kwargs) -> str:
        """Pick "<key>_one" for a count of 1 when it exists, else key.

        The count is available to the template as {count}.
        """
        candidates = [f"{key}_one", key] if count == 1 else [key]
        template = None
        with self._lock:
            for data in (self._data, self._fallback):
                for candidate in candidates:
                    template = self._lookup(data, candidate)
                    if template is not None:
                        break
                if template is not None:
                    break
        return self._format(key, template, {**kwargs, "count": count})

    @property
    def locale(self) -> str:
        with self._lock:
            return self._locale

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _read(locale: str) -> Optional[dict]:
        locale_file = LOCALE_DIR / f"{locale}.json"
        if not locale_file.exists():
            logger.warning(f"Locale file not found: {locale_file}")
            return None
        try:
            with open(locale_file, "r", encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse locale file {locale_file}: {e}")
        except OSError as e:
            logger.warning(f"Failed to load locale file {locale_file}: {e}")
        return None

    def _resolve(self, key: str) -> Optional[str]:
        """Active locale first, then English. Caller must hold lock."""
        for data in (self._data, self._fallback):
            template = self._lookup(data, key)
            if template is not None:
                return template
        return None

    @staticmethod
    def _lookup(data: dict, key: str) -> Optional[str]:
        node = data
        for part in key.split("."):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return None
        return node if isinstance(node, str) else None

    @staticmethod
    def _format(key: str, template: Optional[str], values: dict) -> str:
        if template is None:
            return key
        if not values:
            return template
        try:
            return template.format_map(values)
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to format i18n string for key '{key}': {e}")
            return template
