"""Thread-safe singleton configuration manager for Thinkedin."""

import logging
import threading
from pathlib import Path
from typing import Any

import yaml

from thinkedin.core.exceptions import ConfigError
from thinkedin.core.i18n_manager import SUPPORTED_LOCALES

logger = logging.getLogger(__name__)


# Default configuration template
DEFAULT_CONFIG = {
    "app": {
        "locale": "en_US",
        "version": "1.0.0",
        "log_level": "INFO",
    },
    "store": {
        "backend": "sqlite",
        "db_path": "db/thinkedin.db",
    },
    "firestore": {
        "project_id": "",
        "api_key": "",
        "timeout": 15,
        "poll_interval_sec": 5,
    },
    "auth": {
        "email": "",
        "password": "",
    },
    "device": {
        "state_path": "db/device_state.json",
    },
    "content": {
        "post_max_length": 1000,
        "comment_max_length": 500,
        "max_render_depth": 3,
        "default_tag": "#general",
    },
    "rate_limit": {
        "post_interval_sec": 10,
    },
    "moderation": {
        "enabled": True,
        "post_min_length": 10,
        "post_max_length": 1000,
        "comment_min_length": 1,
        "comment_max_length": 500,
        "post_duplicate_limit": 2,
        "comment_duplicate_limit": 3,
        "duplicate_window_hours": 24,
    },
    "llm": {
        "api_key": "",
        "model": "gemini-2.0-flash",
        "timeout": 60,
        "temperature": 0.4,
        "max_tokens": 512,
    },
    "recommend": {
        "candidate_count": 20,
    },
    "feed": {
        "limit": 50,
    },
    "security": {
        "mask_logs": True,
    },
}


class ConfigManager:
    """Thread-safe singleton configuration manager.

    Manages application configuration with:
    - Singleton pattern ensuring only one instance exists
    - Thread-safe operations using RLock
    - Automatic settings.yaml creation if missing
    - Dot-notation key access (e.g., "store.backend")
    - Validation rules for critical settings
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls):
        """Ensure singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        """Initialize configuration manager."""
        # Prevent re-initialization
        if hasattr(self, '_initialized'):
            return

        with self._lock:
            if hasattr(self, '_initialized'):
                return

            self.PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
            self.CONFIG_PATH = self.PROJECT_ROOT / "config" / "settings.yaml"

            self._config = {}
            self._instance_lock = threading.RLock()

            self._load_or_create_config()

            self._initialized = True

    def _load_or_create_config(self):
        """Load settings.yaml or create it from defaults."""
        if self.CONFIG_PATH.exists():
            try:
                with open(self.CONFIG_PATH, 'r', encoding='utf-8') as f:
                    self._config = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {self.CONFIG_PATH}")
            except yaml.YAMLError as e:
                logger.error(f"Failed to parse YAML at {self.CONFIG_PATH}: {e}")
                logger.warning("Using DEFAULT_CONFIG due to parse error")
                self._config = self._deep_copy(DEFAULT_CONFIG)
            except OSError as e:
                logger.error(f"Unexpected error loading config: {e}")
                logger.warning("Using DEFAULT_CONFIG")
                self._config = self._deep_copy(DEFAULT_CONFIG)
        else:
            logger.info(f"Config file not found at {self.CONFIG_PATH}")
            self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
            self._config = self._deep_copy(DEFAULT_CONFIG)
            self.save()
            logger.info(f"Created default configuration at {self.CONFIG_PATH}")

    def get(self, key: str, default=None) -> Any:
        """Get configuration value using dot-notation key.

        Args:
            key: Dot-separated key path (e.g., "content.post_max_length")
            default: Value to return if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get("store.backend")
            'sqlite'
            >>> config.get("moderation.post_duplicate_limit")
            2
        """
        with self._instance_lock:
            parts = key.split('.')
            value = self._config

            for part in parts:
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    return default

            return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot-notation key.

        Note: This does NOT save to disk. Use save() to persist changes.
        """
        with self._instance_lock:
            parts = key.split('.')
            target = self._config

            for part in parts[:-1]:
                if part not in target:
                    target[part] = {}
                target = target[part]

            target[parts[-1]] = value

    def update(self, changes: dict) -> None:
        """Batch update configuration from flat dict of dot-notation keys.

        Applies validation rules and saves to disk once after all updates.

        Validation Rules:
            - app.locale: must be in SUPPORTED_LOCALES
            - store.backend: must be "sqlite" or "firestore"
            - content.max_render_depth: minimum 1
            - rate_limit.post_interval_sec: minimum 0
            - firestore.poll_interval_sec: minimum 1
            - firestore.timeout: minimum 5
            - llm.timeout: minimum 5
            - llm.max_tokens: minimum 16
            - recommend.candidate_count: minimum 1
        """
        with self._instance_lock:
            validated_changes = {}

            for key, value in changes.items():
                validated_value = self._validate_key_value(key, value)
                if validated_value is not None:
                    validated_changes[key] = validated_value

            for key, value in validated_changes.items():
                self.set(key, value)

            self.save()

    def _validate_key_value(self, key: str, value: Any) -> Any:
        """Apply validation rules to key-value pair.

        Returns:
            Validated value or None if invalid (will be ignored)
        """
        if key == "app.locale":
            if value not in SUPPORTED_LOCALES:
                logger.warning(f"Invalid locale '{value}'. Must be one of {SUPPORTED_LOCALES}. Ignoring.")
                return None
            return value

        if key == "store.backend":
            if value not in ["sqlite", "firestore"]:
                logger.warning(f"Invalid store backend '{value}'. Ignoring.")
                return None
            return value

        minimums = {
            "content.max_render_depth": 1,
            "rate_limit.post_interval_sec": 0,
            "firestore.poll_interval_sec": 1,
            "firestore.timeout": 5,
            "llm.timeout": 5,
            "llm.max_tokens": 16,
            "recommend.candidate_count": 1,
        }
        if key in minimums:
            floor = minimums[key]
            try:
                number = int(value)
            except (TypeError, ValueError):
                logger.warning(f"Invalid {key} '{value}'. Must be int. Ignoring.")
                return None
            if number < floor:
                logger.warning(f"{key} {number} < {floor}. Forcing to {floor}.")
                return floor
            return number

        return value

    def save(self) -> None:
        """Write current configuration to settings.yaml."""
        with self._instance_lock:
            try:
                self.CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
                with open(self.CONFIG_PATH, 'w', encoding='utf-8') as f:
                    yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
                logger.debug(f"Saved configuration to {self.CONFIG_PATH}")
            except (OSError, yaml.YAMLError) as e:
                logger.error(f"Failed to save configuration: {e}")
                raise ConfigError(f"Failed to save configuration: {e}")

    def get_db_path(self) -> Path:
        """Absolute SQLite path: PROJECT_ROOT / store.db_path."""
        with self._instance_lock:
            relative_db_path = self.get("store.db_path", "db/thinkedin.db")
            return self.PROJECT_ROOT / relative_db_path

    def get_device_state_path(self) -> Path:
        """Absolute device state path: PROJECT_ROOT / device.state_path."""
        with self._instance_lock:
            relative_path = self.get("device.state_path", "db/device_state.json")
            return self.PROJECT_ROOT / relative_path

    @classmethod
    def reset(cls) -> None:
        """Reset singleton instance (for testing)."""
        with cls._lock:
            cls._instance = None

    @staticmethod
    def _deep_copy(obj):
        """Create a deep copy of nested dict/list structures."""
        if isinstance(obj, dict):
            return {k: ConfigManager._deep_copy(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [ConfigManager._deep_copy(item) for item in obj]
        else:
            return obj
