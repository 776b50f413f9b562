"""
Error Taxonomy

Errors raised inside the classification core. Every error carries a
``retryable`` flag so the retry executor can decide what to do without
looking at messages.
"""

from typing import Optional


class TuneMoodError(Exception):
    """Base class for all core errors."""

    retryable: bool = False


class ProviderError(TuneMoodError):
    """
    An external signal provider failed.

    Args:
        provider: Provider name (LastFM, Genius, DeepSeek)
        message: Human readable description
        status: HTTP status code, if the failure came from a response
        retryable: Whether another attempt may succeed
    """

    def __init__(
        self,
        provider: str,
        message: str,
        status: Optional[int] = None,
        retryable: bool = False
    ):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status = status
        self.retryable = retryable


class ProviderUnavailable(ProviderError):
    """Transient provider failure (429, 5xx, timeouts, connection resets)."""

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        super().__init__(provider, message, status=status, retryable=True)


class ProviderRejected(ProviderError):
    """Permanent provider failure (4xx other than 429, malformed payloads)."""

    def __init__(self, provider: str, message: str, status: Optional[int] = None):
        super().__init__(provider, message, status=status, retryable=False)


class DurableStoreError(TuneMoodError):
    """The durable record store failed to read or write."""

    retryable = True

    def __init__(self, operation: str, collection: str, cause: Exception):
        super().__init__(f"{operation} on {collection} failed: {cause}")
        self.operation = operation
        self.collection = collection
        self.cause = cause


# Retryable HTTP statuses
RETRYABLE_STATUSES = frozenset({429, 503, 504})


def error_for_status(provider: str, status: int, message: str = "") -> ProviderError:
    """
    Map an HTTP status code to the matching provider error.

    429, 503, 504 and any other 5xx are transient; all remaining
    statuses are treated as permanent rejections.
    """
    text = message or f"HTTP {status}"
    if status in RETRYABLE_STATUSES or status >= 500:
        return ProviderUnavailable(provider, text, status=status)
    return ProviderRejected(provider, text, status=status)
