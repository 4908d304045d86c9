"""
Custom exceptions for the stream-to-search service.
"""


from typing import Optional


class StreamerException(Exception):
    """Base exception for all streamer-related errors."""

    pass


class RetryableException(StreamerException):
    """Exception that indicates an operation may succeed if attempted again."""

    pass


class NonRetryableException(StreamerException):
    """Exception that indicates an operation must not be retried."""

    pass


class OpenSearchException(RetryableException):
    """Transport-level OpenSearch errors (connection failures, timeouts)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class EnrichmentException(RetryableException):
    """Errors raised while talking to the text-understanding service."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.error_code = error_code


class BulkDeliveryError(NonRetryableException):
    """A bulk batch could not be applied. Carries enough context to diagnose."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_snippet: str = "",
        attempts: int = 1,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_snippet = response_snippet
        self.attempts = attempts

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (status={self.status_code}, attempts={self.attempts}): {self.response_snippet}"


class BulkPartialFailureError(BulkDeliveryError):
    """The bulk endpoint answered 2xx but reported per-item errors."""

    pass


class ConfigurationException(NonRetryableException):
    """Configuration-related errors."""

    pass


class RecordParseException(NonRetryableException):
    """A stream record does not have the expected shape."""

    pass
