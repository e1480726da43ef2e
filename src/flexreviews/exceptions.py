"""
FlexReviews Exceptions
======================

Error taxonomy for the review pipeline.

    SourceUnavailableError  - upstream auth/network failure, recovered by fallback
    MalformedRecordError    - raw record field cannot be parsed, recovered by defaults
    QueryValidationError    - invalid filter value, surfaced to the caller
    PersistenceError        - approval-state write failure, logged and non-fatal
    ConfigurationError      - no review source configured at all, fatal for a request
"""

from typing import Any, Optional


class FlexReviewsError(Exception):
    """Base exception for the review pipeline."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class SourceError(FlexReviewsError):
    """Base class for errors raised while talking to a review source."""

    def __init__(self, message: str, source: Optional[str] = None, status_code: Optional[int] = None):
        self.source = source
        self.status_code = status_code
        super().__init__(message)


class SourceUnavailableError(SourceError):
    """Upstream auth failure, non-2xx response, timeout or network error."""
    pass


class MalformedRecordError(FlexReviewsError):
    """A raw record is missing or carries an unparseable field."""

    def __init__(self, message: str, field_name: Optional[str] = None, value: Any = None):
        self.field_name = field_name
        self.value = value
        super().__init__(message)


class QueryValidationError(FlexReviewsError):
    """An unrecognized or invalid filter value."""

    def __init__(self, message: str, param: Optional[str] = None):
        self.param = param
        super().__init__(message)


class PersistenceError(FlexReviewsError):
    """Durable write of the approval state failed."""
    pass


class ConfigurationError(FlexReviewsError):
    """No review source is configured."""
    pass
