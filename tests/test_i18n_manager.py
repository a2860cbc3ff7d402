"""Tests for I18nManager."""

import json
from unittest.mock import patch

from thinkedin.core.i18n_manager import I18nManager, LOCALE_DIR, SUPPORTED_LOCALES


class TestI18nManagerInit:
    """Test singleton behavior."""

    def test_singleton_returns_same_instance(self):
        a = I18nManager()
        b = I18nManager()
        assert a is b

    def test_reset_allows_new_instance(self):
        a = I18nManager()
        I18nManager.reset()
        b = I18nManager()
        assert a is not b

    def test_default_locale_is_english(self):
        assert I18nManager().locale == "en_US"


class TestI18nManagerLoadLocale:
    """Test locale loading."""

    def test_load_valid_locale(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("ko_KR")
        assert mgr.locale == "ko_KR"
        assert mgr.get("app.title") == "Thinkedin"

    def test_load_missing_locale_keeps_current(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("ko_KR")
            mgr.load_locale("zh_CN")  # doesn't exist
        assert mgr.locale == "ko_KR"
        assert mgr.get("thread.reply") == "답글"

    def test_load_invalid_json_keeps_current(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            assert mgr.load_locale("en_US")
            (locale_dir / "ko_KR.json").write_text("{{{invalid", encoding="utf-8")
            assert not mgr.load_locale("ko_KR")
        assert mgr.locale == "en_US"
        assert mgr.get("thread.reply") == "Reply"

    def test_unsupported_locale_rejected_even_if_file_exists(self, locale_dir):
        (locale_dir / "fr_FR.json").write_text('{"thread": {"reply": "Répondre"}}', encoding="utf-8")
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("en_US")
            assert not mgr.load_locale("fr_FR")
        assert mgr.locale == "en_US"
        assert mgr.get("thread.reply") == "Reply"

    def test_supported_locales(self):
        assert SUPPORTED_LOCALES == ("en_US", "ko_KR")

    def test_switch_locale(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("ko_KR")
            assert mgr.get("thread.reply") == "답글"
            mgr.load_locale("en_US")
        assert mgr.get("thread.reply") == "Reply"
        assert mgr.locale == "en_US"


class TestI18nManagerGet:
    """Test key resolution and formatting."""

    def test_get_missing_key_returns_key(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("en_US")
        assert mgr.get("nonexistent.key") == "nonexistent.key"

    def test_get_with_placeholder(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("ko_KR")
        assert mgr.get("thread.count", count=3) == "댓글 3개"

    def test_get_with_missing_placeholder_returns_template(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("en_US")
        result = mgr.get("thread.count", wrong_key="test")
        assert "{count}" in result

    def test_get_non_string_node_returns_key(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("en_US")
        assert mgr.get("thread") == "thread"

    def test_missing_korean_key_falls_back_to_english(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("ko_KR")
        assert mgr.get("votes.summary", want=2, dont=1) == "want 2 / dont 1"
        assert mgr.get("thread.reply") == "답글"


class TestI18nManagerPlural:
    """Test count-dependent strings."""

    def test_singular_form(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("en_US")
        assert mgr.plural("thread.count", 1) == "1 comment"
        assert mgr.plural("thread.count", 4) == "4 comments"
        assert mgr.plural("thread.count", 0) == "0 comments"

    def test_active_locale_general_form_beats_english_singular(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("ko_KR")
        assert mgr.plural("thread.count", 1) == "댓글 1개"

    def test_missing_key_returns_key(self, locale_dir):
        mgr = I18nManager()
        with patch("thinkedin.core.i18n_manager.LOCALE_DIR", locale_dir):
            mgr.load_locale("en_US")
        assert mgr.plural("nothing.here", 2) == "nothing.here"


class TestBundledLocales:
    """The shipped locale files must stay in sync."""

    def _keys(self, node, prefix=""):
        keys = set()
        for name, value in node.items():
            path = f"{prefix}{name}"
            if isinstance(value, dict):
                keys |= self._keys(value, f"{path}.")
            else:
                keys.add(path)
        return keys

    def test_en_and_ko_have_same_keys(self):
        with open(LOCALE_DIR / "en_US.json", encoding="utf-8") as f:
            en = json.load(f)
        with open(LOCALE_DIR / "ko_KR.json", encoding="utf-8") as f:
            ko = json.load(f)
        assert self._keys(en) == self._keys(ko)

    def test_bundled_english_loads(self):
        mgr = I18nManager()
        mgr.load_locale("en_US")
        assert mgr.get("feed.by", pseudonym="Quiet Owl") == "by Quiet Owl"

    def test_every_bundled_key_is_used(self):
        with open(LOCALE_DIR / "en_US.json", encoding="utf-8") as f:
            en = json.load(f)
        package_dir = LOCALE_DIR.parent.parent
        source = "\n".join(
            path.read_text(encoding="utf-8") for path in package_dir.rglob("*.py")
        )
        # Looked up through f-strings or plural()
        dynamic = {"thread.count_one", "votes.want", "votes.dont"}
        dynamic_families = ("kinds.", "reactions.")

        unused = [
            key for key in self._keys(en)
            if key not in dynamic
            and not key.startswith(dynamic_families)
            and f'"{key}"' not in source
            and f"'{key}'" not in source
        ]
        assert unused == []
