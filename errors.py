"""
Exception hierarchy shared by the screening pipeline.

Every error carries a machine readable ``error_code`` and a short
``user_message`` suitable for printing at the CLI edge, while ``str(exc)``
keeps the detailed diagnostic for the log file.
"""

from __future__ import annotations

from typing import Optional


class ATSError(Exception):
    """Base class for all screening errors."""

    default_code = "ATS_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.error_code = error_code or self.default_code
        self.user_message = user_message or message


class ValidationError(ATSError):
    """Input has the wrong shape; never retried."""

    default_code = "VALIDATION_ERROR"


class TabularIngestError(ValidationError):
    """A job sheet could not be turned into postings."""

    default_code = "TABULAR_INGEST_ERROR"

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class FileProcessingError(ATSError):
    """A document could not be read or yielded no text."""

    default_code = "FILE_PROCESSING_ERROR"


class EvaluationCancelled(ATSError):
    """The caller abandoned an evaluation before it finished."""

    default_code = "CANCELLED"


class UpstreamServiceError(ATSError):
    """The generative service failed or answered with something unusable."""

    default_code = "UPSTREAM_SERVICE_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.status_code = status_code
        self.body = body


class UnauthorizedError(UpstreamServiceError):
    default_code = "UNAUTHORIZED"

    def __init__(self, message: str, status_code: Optional[int] = 401, body: Optional[str] = None) -> None:
        super().__init__(
            message,
            status_code=status_code,
            body=body,
            user_message="Invalid or missing API key for the generative service.",
        )


class RateLimitedError(UpstreamServiceError):
    default_code = "RATE_LIMITED"

    def __init__(self, message: str, status_code: Optional[int] = 429, body: Optional[str] = None) -> None:
        super().__init__(
            message,
            status_code=status_code,
            body=body,
            user_message="Rate limit exceeded. Please try again later.",
        )


class BadRequestError(UpstreamServiceError):
    default_code = "BAD_REQUEST"


class ServiceError(UpstreamServiceError):
    """5xx answers and connection failures."""

    default_code = "SERVICE_ERROR"
    retryable = True


class ServiceTimeoutError(UpstreamServiceError):
    default_code = "SERVICE_TIMEOUT"
    retryable = True


class ResponseFormatError(UpstreamServiceError):
    """The service answered 2xx but the body is not a usable completion."""

    default_code = "RESPONSE_FORMAT_ERROR"


class RetriesExhaustedError(UpstreamServiceError):
    """Every attempt failed with a retryable error."""

    default_code = "RETRIES_EXHAUSTED"

    def __init__(self, message: str, last_error: UpstreamServiceError) -> None:
        super().__init__(
            message,
            status_code=last_error.status_code,
            body=last_error.body,
            user_message="The generative service is unavailable. Please try again later.",
        )
        self.last_error = last_error
