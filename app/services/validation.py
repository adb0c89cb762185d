"""Side-effect-free validators applied at the pipeline boundaries.

Each validator returns a :class:`ValidationResult`; :func:`ensure_valid` turns the
first failing result into the matching typed error.
"""

import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from urllib.parse import urlparse

from app.core.config import get_settings
from app.core.errors import (
    EmptyContent,
    InvalidSource,
    SmartImportError,
    TooLarge,
    UnsafeFilename,
    UnsupportedType,
    ValidationFailed,
)
from app.schemas.smart_import import ImportOptions, RawDocument
from app.utils.network import ALLOWED_SCHEMES, is_loopback_host

SUPPORTED_MIME_TYPES = frozenset(
    {
        "application/pdf",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
        "text/plain",
    }
)

TITLE_MAX_CHARS = 200
BODY_MAX_CHARS = 100_000
EXCERPT_MAX_CHARS = 500
AUTHOR_MAX_CHARS = 100
FUTURE_PUBLISH_LIMIT = timedelta(days=365)

_UNSAFE_FILENAME_PATTERNS = (
    re.compile(r"\.(exe|bat|cmd|com|scr|vbs|js|jar|msi|ps1|sh)$", re.IGNORECASE),
    re.compile(r'[<>:"|?*\x00-\x1f]'),
    re.compile(r"(^|[\\/])\.\.([\\/]|$)"),
    re.compile(r"[\\/]"),
)


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: str | None = None
    error_class: type[SmartImportError] = ValidationFailed
    field: str | None = None

    def __bool__(self) -> bool:
        return self.is_valid


VALID = ValidationResult(True)


def _fail(error: str, error_class: type[SmartImportError] = ValidationFailed, field: str | None = None) -> ValidationResult:
    return ValidationResult(False, error, error_class, field)


def ensure_valid(*results: ValidationResult) -> None:
    for result in results:
        if result.is_valid:
            continue
        if result.error_class is ValidationFailed:
            raise ValidationFailed(result.error or "Validation failed", field=result.field)
        raise result.error_class(result.error or "Validation failed")


def validate_url(url: str | None) -> ValidationResult:
    if not url or not url.strip():
        return _fail("URL is required", InvalidSource)
    try:
        parsed = urlparse(url.strip())
        host = parsed.hostname
    except ValueError:
        return _fail("Invalid URL format", InvalidSource)
    if parsed.scheme.lower() not in ALLOWED_SCHEMES:
        return _fail("Only HTTP and HTTPS URLs are supported", InvalidSource)
    if not host:
        return _fail("Invalid URL format", InvalidSource)
    if is_loopback_host(host):
        return _fail("Local URLs are not accessible for import", InvalidSource)
    return VALID


def validate_text_content(text: str | None) -> ValidationResult:
    settings = get_settings()
    if not text or not text.strip():
        return _fail("Text content is required", EmptyContent, "text")
    trimmed = text.strip()
    if len(trimmed) < settings.text_min_chars:
        return _fail(f"Text content must be at least {settings.text_min_chars} characters long", field="text")
    if len(trimmed) > settings.text_max_chars:
        return _fail(
            f"Text content exceeds maximum length of {settings.text_max_chars:,} characters", field="text"
        )
    if len(trimmed.split()) < settings.text_min_words:
        return _fail(f"Text content must contain at least {settings.text_min_words} words", field="text")
    return VALID


def validate_filename(filename: str | None) -> ValidationResult:
    if not filename or not filename.strip():
        return _fail("Filename is required", UnsafeFilename)
    for pattern in _UNSAFE_FILENAME_PATTERNS:
        if pattern.search(filename):
            return _fail("Invalid or potentially unsafe filename", UnsafeFilename)
    return VALID


def validate_file_upload(filename: str | None, mime_type: str | None, size: int) -> ValidationResult:
    max_bytes = get_settings().max_upload_bytes
    if size > max_bytes:
        return _fail(
            f"File too large: {size / 1024 / 1024:.1f}MB. Maximum size is {max_bytes / 1024 / 1024:.0f}MB",
            TooLarge,
        )
    if mime_type not in SUPPORTED_MIME_TYPES:
        return _fail(
            f"Unsupported file type: {mime_type}. Supported types: PDF, Word documents, and text files",
            UnsupportedType,
        )
    return validate_filename(filename)


def validate_import_options(options: ImportOptions) -> ValidationResult:
    limit = get_settings().custom_prompt_max_chars
    if options.custom_prompt and len(options.custom_prompt) > limit:
        return _fail(f"Custom prompt exceeds maximum length of {limit} characters", field="custom_prompt")
    return VALID


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def validate_parsed_content(content: RawDocument, now: datetime | None = None) -> ValidationResult:
    if not content.title or not content.title.strip():
        return _fail("Title is required", field="title")
    if len(content.title) > TITLE_MAX_CHARS:
        return _fail(f"Title exceeds maximum length of {TITLE_MAX_CHARS} characters", field="title")
    if not content.body or not content.body.strip():
        return _fail("Content is required", field="body")
    if len(content.body) > BODY_MAX_CHARS:
        return _fail(f"Content exceeds maximum length of {BODY_MAX_CHARS:,} characters", field="body")
    if content.excerpt and len(content.excerpt) > EXCERPT_MAX_CHARS:
        return _fail(f"Excerpt exceeds maximum length of {EXCERPT_MAX_CHARS} characters", field="excerpt")
    if content.author and len(content.author) > AUTHOR_MAX_CHARS:
        return _fail(f"Author name exceeds maximum length of {AUTHOR_MAX_CHARS} characters", field="author")
    if content.published_at is not None:
        reference = _as_aware(now) if now else datetime.now(UTC)
        if _as_aware(content.published_at) > reference + FUTURE_PUBLISH_LIMIT:
            return _fail("Publication date cannot be more than 1 year in the future", field="published_at")
    return VALID
