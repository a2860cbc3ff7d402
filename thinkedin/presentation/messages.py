"""Map exceptions to user-facing i18n message keys."""

from thinkedin.core.exceptions import (
    AccountExistsError,
    AuthError,
    ConfigError,
    ContentRejectedError,
    InvalidCredentialsError,
    LLMError,
    LLMTimeoutError,
    ModelNotFoundError,
    NotFoundError,
    RateLimitError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)

# Subclasses before their bases
_ERROR_KEYS = (
    (ContentRejectedError, "errors.content_rejected"),
    (ValidationError, "errors.validation"),
    (UnauthorizedError, "errors.unauthorized"),
    (NotFoundError, "errors.not_found"),
    (RateLimitError, "errors.rate_limited"),
    (StoreUnavailableError, "errors.store_unavailable"),
    (InvalidCredentialsError, "errors.invalid_credentials"),
    (AccountExistsError, "errors.account_exists"),
    (AuthError, "errors.auth_failed"),
    (LLMTimeoutError, "errors.llm_timeout"),
    (ModelNotFoundError, "errors.model_not_found"),
    (LLMError, "errors.llm_unavailable"),
    (ConfigError, "errors.config"),
)


def map_error_to_i18n_key(exc: BaseException) -> str:
    for error_type, key in _ERROR_KEYS:
        if isinstance(exc, error_type):
            return key
    return "errors.unknown"
