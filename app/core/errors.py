"""Error taxonomy for the Smart Import pipeline.

Every error carries a machine-readable ``code``, a ``category`` telling the
caller what to do about it, and the HTTP status the API layer renders:

- ``input``: fix the request and resubmit; never retried.
- ``transient``: remote I/O failed; the caller may retry.
- ``degradable``: recovered inside the pipeline by a heuristic fallback.
- ``internal``: a broken invariant; fails loudly.
"""

from typing import Any


class SmartImportError(Exception):
    code = "IMPORT_FAILED"
    category = "input"
    status_code = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidSource(SmartImportError):
    code = "INVALID_SOURCE"


class EmptyContent(SmartImportError):
    code = "EMPTY_CONTENT"


class UnsupportedType(SmartImportError):
    code = "UNSUPPORTED_TYPE"
    status_code = 415


class TooLarge(SmartImportError):
    code = "TOO_LARGE"
    status_code = 413


class UnsafeFilename(SmartImportError):
    code = "UNSAFE_FILENAME"


class ValidationFailed(SmartImportError):
    code = "VALIDATION_FAILED"
    status_code = 422

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, field=field)
        self.field = field


class RateLimitExceeded(SmartImportError):
    code = "RATE_LIMIT_EXCEEDED"
    status_code = 429

    def __init__(self, action: str) -> None:
        super().__init__("Too many requests. Please try again later.", action=action)
        self.action = action


class FetchFailed(SmartImportError):
    code = "FETCH_FAILED"
    category = "transient"
    status_code = 502

    def __init__(self, message: str, status_code: int | None = None, status_text: str | None = None) -> None:
        super().__init__(message, upstream_status=status_code, upstream_status_text=status_text)
        self.upstream_status = status_code
        self.upstream_status_text = status_text


class FetchTimeout(SmartImportError):
    code = "TIMEOUT"
    category = "transient"
    status_code = 504


class ExtractionFailed(SmartImportError):
    code = "EXTRACTION_FAILED"
    status_code = 422

    def __init__(self, reason: str) -> None:
        super().__init__(f"Content extraction failed: {reason}", reason=reason)
        self.reason = reason


class AIUnavailable(SmartImportError):
    code = "AI_UNAVAILABLE"
    category = "degradable"
    status_code = 503


class AICallFailed(SmartImportError):
    code = "AI_CALL_FAILED"
    category = "degradable"
    status_code = 502

    def __init__(self, cause: str) -> None:
        super().__init__(f"AI call failed: {cause}", cause=cause)
        self.cause = cause


class ContentInvariantError(SmartImportError):
    code = "CONTENT_INVARIANT_VIOLATED"
    category = "internal"
    status_code = 500
