"""Custom exceptions for LyricSeek."""

from enum import Enum


class LyricSeekError(Exception):
    """Base exception for LyricSeek."""
    pass

class ConfigError(LyricSeekError):
    """Invalid configuration value."""
    pass

class ValidationError(LyricSeekError):
    """Invalid input parameters."""
    pass

class CacheError(LyricSeekError):
    """Error with cache operations."""
    pass

class ProviderError(LyricSeekError):
    """Base class for failures raised by a single lyrics provider."""

    def __init__(self, provider_id: str, message: str = ""):
        self.provider_id = provider_id
        super().__init__(f"{provider_id}: {message}" if message else provider_id)

class ProviderUnavailable(ProviderError):
    """Provider is not configured or reports itself as not ready."""
    pass

class ProviderTransportFailure(ProviderError):
    """Network or HTTP level failure talking to a provider."""

    def __init__(self, provider_id: str, message: str = "", status_code=None):
        self.status_code = status_code
        super().__init__(provider_id, message)

class RateLimited(ProviderTransportFailure):
    """Upstream signalled throttling (HTTP 429)."""
    pass

class ValidationRejected(LyricSeekError):
    """Candidate text failed the quality floor."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class FailureKind(str, Enum):
    """Failure kinds reported in a result envelope."""

    NOT_FOUND = "not_found"
    GLOBAL_TIMEOUT = "global_timeout"
    INVALID_QUERY = "invalid_query"
