"""Thinkedin headless entry point: print the latest feed with comment threads.

Any command-line words form a free-text request; the LLM then picks the
latest thoughts relevant to it.
"""

import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from thinkedin.adapters.firebase_auth_adapter import FirebaseAuthAdapter
from thinkedin.adapters.firestore_adapter import FirestoreRecordStore
from thinkedin.adapters.gemini_adapter import GeminiAdapter
from thinkedin.adapters.sqlite_store import SQLiteRecordStore
from thinkedin.core.config_manager import ConfigManager
from thinkedin.core.database import DatabaseManager
from thinkedin.core.device_state import JsonFileDeviceState
from thinkedin.core.exceptions import AuthError, StoreUnavailableError, ThinkedinError
from thinkedin.core.i18n_manager import I18nManager
from thinkedin.core.logger import setup_logger
from thinkedin.presentation.feature_view import render_recommendation, render_votes
from thinkedin.presentation.messages import map_error_to_i18n_key
from thinkedin.presentation.thread_view import render_thought, render_thread
from thinkedin.services.comment_service import CommentService
from thinkedin.services.feature_vote_service import FeatureVoteService
from thinkedin.services.identity_service import IdentityService
from thinkedin.services.moderation_service import ModerationService, StaticRuleValidator
from thinkedin.services.reaction_service import ReactionService
from thinkedin.services.recommendation_service import RecommendationService
from thinkedin.services.thought_service import ThoughtService

# Environment overrides for secrets kept out of settings.yaml
EMAIL_ENV = "THINKEDIN_EMAIL"
PASSWORD_ENV = "THINKEDIN_PASSWORD"
GEMINI_KEY_ENV = "GEMINI_API_KEY"


def create_store(config: ConfigManager, auth: FirebaseAuthAdapter = None):
    """Build the record store selected by store.backend."""
    if config.get("store.backend", "sqlite") == "firestore":
        return FirestoreRecordStore(
            project_id=config.get("firestore.project_id", ""),
            api_key=config.get("firestore.api_key", ""),
            token_provider=auth.id_token if auth is not None else None,
            token_refresher=auth.refresh if auth is not None else None,
            timeout=config.get("firestore.timeout", 15),
            poll_interval_sec=config.get("firestore.poll_interval_sec", 5),
        )
    return SQLiteRecordStore(DatabaseManager(config.get_db_path()))


def sign_in_from_settings(auth: FirebaseAuthAdapter, config: ConfigManager,
                          logger: logging.Logger, i18n: I18nManager) -> Optional[str]:
    """Sign in with THINKEDIN_EMAIL/THINKEDIN_PASSWORD or auth.* settings.

    Returns the account id, or None when no credentials are configured or
    sign-in failed. A failure is reported and the session stays anonymous.
    """
    email = os.environ.get(EMAIL_ENV) or config.get("auth.email", "")
    password = os.environ.get(PASSWORD_ENV) or config.get("auth.password", "")
    if not email or not password:
        logger.info("No credentials configured, browsing anonymously")
        return None
    try:
        account_id = auth.sign_in(email, password)
    except (AuthError, StoreUnavailableError) as e:
        logger.warning(f"Sign-in failed, continuing anonymously: {e}")
        print(i18n.get(map_error_to_i18n_key(e)), file=sys.stderr)
        return None
    print(i18n.get("app.signed_in", email=email))
    return account_id


def main(argv: Optional[list[str]] = None):
    """Main entry point for Thinkedin.

    Startup sequence:
    1. ConfigManager init (loads or creates settings.yaml)
    2. Logger init (reads log_level from config)
    3. I18nManager init (reads locale from config)
    4. Sign-in and record store creation (per store.backend)
    5. Service creation
    6. Print feed, feature vote and optional recommendation
    7. Cleanup
    """
    if argv is None:
        argv = sys.argv[1:]

    # 1. ConfigManager (loads or creates settings.yaml)
    config = ConfigManager()

    # 2. Logger (reads log_level from config)
    logger = setup_logger(
        log_level=config.get("app.log_level", "INFO"),
        mask_logs=config.get("security.mask_logs", True),
    )
    logger.info("Thinkedin starting...")

    # 3. I18nManager (reads locale from config)
    i18n = I18nManager()
    locale = config.get("app.locale", "en_US")
    i18n.load_locale(locale)
    logger.info(f"Locale loaded: {locale}")

    # 4. Sign-in and record store
    auth = None
    if config.get("store.backend", "sqlite") == "firestore":
        auth = FirebaseAuthAdapter(
            api_key=config.get("firestore.api_key", ""),
            timeout=config.get("firestore.timeout", 15),
        )
        sign_in_from_settings(auth, config, logger, i18n)
    store = create_store(config, auth)
    logger.info(f"Record store ready: {type(store).__name__}")

    # 5. Services
    device_state = JsonFileDeviceState(config.get_device_state_path())
    identity = IdentityService(device_state)
    moderation = ModerationService(store, StaticRuleValidator(store, config))
    thoughts = ThoughtService(store, identity, config, moderation=moderation)
    comments = CommentService(store, identity, config, moderation=moderation)
    votes = FeatureVoteService(store, identity)
    executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="reactions")
    reactions = ReactionService(store, device_state, executor=executor)

    # 6. Print feed, feature vote and recommendation
    exit_code = 0
    max_depth = config.get("content.max_render_depth", 3)
    viewer = auth.current_account_id if auth is not None else None
    request = " ".join(argv).strip()
    try:
        print(i18n.get("app.title"))
        print(i18n.get("app.starting"))
        feed = thoughts.list_thoughts()
        if not feed:
            print(i18n.get("feed.empty"))
        for post in feed:
            reactions.load(post)
            print()
            print(render_thought(post, i18n))
            print(render_thread(comments.get_thread(post.id), viewer, max_depth, i18n))

        tally = votes.tally()
        print()
        print(render_votes(tally, votes.my_vote(tally), i18n))

        if request:
            llm = GeminiAdapter(
                api_key=config.get("llm.api_key", "") or os.environ.get(GEMINI_KEY_ENV, ""),
                timeout=config.get("llm.timeout", 60),
            )
            recommendation = RecommendationService(store, llm, config).recommend(request)
            print()
            print(render_recommendation(recommendation, i18n))
    except ThinkedinError as e:
        logger.error(f"Failed to show feed: {e}")
        print(i18n.get(map_error_to_i18n_key(e)), file=sys.stderr)
        exit_code = 1
    finally:
        # 7. Cleanup
        executor.shutdown(wait=True)
        store.close()
        logger.info("Thinkedin shutting down")

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
