"""Custom exception hierarchy for Thinkedin."""


class ThinkedinError(Exception):
    """Base exception for all Thinkedin errors."""

    def __init__(self, message: str = "An error occurred in Thinkedin"):
        self.message = message
        super().__init__(self.message)


class ValidationError(ThinkedinError):
    """Content or argument rejected before reaching the store."""

    def __init__(self, message: str = "Invalid content"):
        super().__init__(message)


class ContentRejectedError(ValidationError):
    """Content was removed by the moderation filter after creation."""

    def __init__(self, message: str = "Content rejected by moderation"):
        super().__init__(message)


class UnauthorizedError(ThinkedinError):
    """Acting account does not own the record."""

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFoundError(ThinkedinError):
    """Record does not exist (or vanished between read and mutate)."""

    def __init__(self, message: str = "Record not found"):
        super().__init__(message)


class RateLimitError(ThinkedinError):
    """Posting too frequently."""

    def __init__(self, message: str = "Posting rate limit exceeded"):
        super().__init__(message)


class StoreUnavailableError(ThinkedinError):
    """Base exception for network or backend failures."""

    def __init__(self, message: str = "Record store is unavailable"):
        super().__init__(message)


class DatabaseError(StoreUnavailableError):
    """Local database operation failed."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class AuthError(ThinkedinError):
    """Base exception for authentication errors."""

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """E-mail or password not accepted."""

    def __init__(self, message: str = "Invalid e-mail or password"):
        super().__init__(message)


class AccountExistsError(AuthError):
    """Sign-up for an e-mail that is already registered."""

    def __init__(self, message: str = "Account already exists"):
        super().__init__(message)


class LLMError(ThinkedinError):
    """Base exception for language model errors."""

    def __init__(self, message: str = "LLM request failed"):
        super().__init__(message)


class LLMUnavailableError(LLMError):
    """LLM API not reachable or returned an error."""

    def __init__(self, message: str = "LLM service is unavailable"):
        super().__init__(message)


class ModelNotFoundError(LLMError):
    """Requested model does not exist."""

    def __init__(self, message: str = "Model not found"):
        super().__init__(message)


class LLMTimeoutError(LLMError):
    """LLM request timed out."""

    def __init__(self, message: str = "LLM request timed out"):
        super().__init__(message)


class ConfigError(ThinkedinError):
    """Configuration is invalid or missing."""

    def __init__(self, message: str = "Configuration error"):
        super().__init__(message)
