"""Shared test fixtures for Thinkedin tests."""

import json
import shutil
import tempfile
import threading
from pathlib import Path

import pytest
import yaml

from thinkedin.adapters.sqlite_store import SQLiteRecordStore
from thinkedin.core.config_manager import ConfigManager, DEFAULT_CONFIG
from thinkedin.core.database import DatabaseManager
from thinkedin.core.device_state import InMemoryDeviceState
from thinkedin.core.i18n_manager import I18nManager


class FakeClock:
    """Manually advanced epoch-seconds clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset all singletons after each test."""
    yield
    ConfigManager.reset()
    DatabaseManager.reset()
    I18nManager.reset()


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def config_file(tmp_dir):
    """Create a temporary settings.yaml and return its path."""
    config_dir = tmp_dir / "config"
    config_dir.mkdir(parents=True)
    config_path = config_dir / "settings.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(dict(DEFAULT_CONFIG), f, default_flow_style=False, sort_keys=False)

    return config_path


@pytest.fixture
def config(tmp_dir):
    """In-memory ConfigManager with defaults, rooted at tmp_dir."""
    ConfigManager.reset()
    cm = ConfigManager.__new__(ConfigManager)
    cm._initialized = True
    cm._config = ConfigManager._deep_copy(DEFAULT_CONFIG)
    cm._instance_lock = threading.RLock()
    cm.PROJECT_ROOT = tmp_dir
    cm.CONFIG_PATH = tmp_dir / "config" / "settings.yaml"
    ConfigManager._instance = cm
    return cm


@pytest.fixture
def tmp_db_path(tmp_dir):
    """Provide a temporary database path."""
    return tmp_dir / "test.db"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def device_state():
    return InMemoryDeviceState()


@pytest.fixture
def db(tmp_db_path):
    return DatabaseManager(tmp_db_path)


@pytest.fixture
def store(db, clock):
    """SQLite record store on a fresh database with a fake clock."""
    return SQLiteRecordStore(db, clock=clock)


@pytest.fixture
def locale_dir(tmp_dir):
    """Create temporary locale directory with test JSON files."""
    loc_dir = tmp_dir / "locales"
    loc_dir.mkdir(parents=True)

    ko_data = {
        "app": {"title": "Thinkedin"},
        "thread": {"reply": "답글", "count": "댓글 {count}개"},
        "errors": {"not_found": "게시글이나 댓글이 더 이상 존재하지 않습니다."},
    }
    en_data = {
        "app": {"title": "Thinkedin"},
        "thread": {"reply": "Reply", "count": "{count} comments", "count_one": "1 comment"},
        "votes": {"summary": "want {want} / dont {dont}"},
        "errors": {"not_found": "That post or comment no longer exists."},
    }

    with open(loc_dir / "ko_KR.json", "w", encoding="utf-8") as f:
        json.dump(ko_data, f, ensure_ascii=False)
    with open(loc_dir / "en_US.json", "w", encoding="utf-8") as f:
        json.dump(en_data, f, ensure_ascii=False)

    return loc_dir


@pytest.fixture
def i18n_en():
    """I18nManager on the bundled English strings."""
    mgr = I18nManager()
    mgr.load_locale("en_US")
    return mgr
