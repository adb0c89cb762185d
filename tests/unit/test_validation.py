from datetime import UTC, datetime, timedelta

import pytest

from app.core.errors import (
    EmptyContent,
    InvalidSource,
    TooLarge,
    UnsafeFilename,
    UnsupportedType,
    ValidationFailed,
)
from app.schemas import ImportOptions, RawDocument
from app.services.validation import (
    ensure_valid,
    validate_file_upload,
    validate_filename,
    validate_import_options,
    validate_parsed_content,
    validate_text_content,
    validate_url,
)

TEN_MIB = 10 * 1024 * 1024
TEXT_49 = " ".join(["word"] * 10)
TEXT_50 = " ".join(["words"] + ["word"] * 9)


def test_text_boundary_lengths():
    assert len(TEXT_49) == 49 and len(TEXT_50) == 50
    assert not validate_text_content(TEXT_49).is_valid
    assert validate_text_content(TEXT_50).is_valid


def test_short_text_raises_validation_failed_on_text_field():
    with pytest.raises(ValidationFailed) as excinfo:
        ensure_valid(validate_text_content(TEXT_49))
    assert excinfo.value.field == "text"


def test_empty_text_is_empty_content():
    with pytest.raises(EmptyContent):
        ensure_valid(validate_text_content("   \n "))


def test_text_needs_ten_words():
    result = validate_text_content("x" * 80 + " only three words")
    assert not result.is_valid
    assert "10 words" in result.error


def test_file_size_boundary():
    assert validate_file_upload("notes.pdf", "application/pdf", TEN_MIB).is_valid
    result = validate_file_upload("notes.pdf", "application/pdf", TEN_MIB + 1)
    assert result.error_class is TooLarge


@pytest.mark.parametrize(
    "mime_type",
    [
        "application/pdf",
        "application/msword",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "text/plain",
    ],
)
def test_supported_mime_types(mime_type):
    assert validate_file_upload("notes.bin", mime_type, 10).is_valid


def test_zip_is_unsupported():
    with pytest.raises(UnsupportedType):
        ensure_valid(validate_file_upload("archive.zip", "application/zip", 10))


@pytest.mark.parametrize("filename", ["../etc/passwd", "run.exe", "script.sh", "a/b.txt", "evil.bat"])
def test_unsafe_filenames(filename):
    assert validate_filename(filename).error_class is UnsafeFilename


@pytest.mark.parametrize("url", ["http://localhost/x", "ftp://example.com", "javascript:alert(1)", "", "file:///etc/hosts"])
def test_rejected_urls(url):
    with pytest.raises(InvalidSource):
        ensure_valid(validate_url(url))


def test_public_https_url_is_valid():
    assert validate_url("https://forgejournal.com/articles/lead").is_valid


def test_custom_prompt_limit():
    assert validate_import_options(ImportOptions(custom_prompt="x" * 1000)).is_valid
    result = validate_import_options(ImportOptions(custom_prompt="x" * 1001))
    assert not result.is_valid and result.field == "custom_prompt"


def _doc(**overrides):
    values = {"title": "A Title", "body": "Body text for the article."}
    values.update(overrides)
    return RawDocument(**values)


def test_parsed_content_limits():
    assert validate_parsed_content(_doc()).is_valid
    assert validate_parsed_content(_doc(title="t" * 201)).field == "title"
    assert validate_parsed_content(_doc(title="  ")).field == "title"
    assert validate_parsed_content(_doc(body="")).field == "body"
    assert validate_parsed_content(_doc(excerpt="e" * 501)).field == "excerpt"
    assert validate_parsed_content(_doc(author="a" * 101)).field == "author"


def test_publish_date_at_most_one_year_ahead():
    now = datetime(2026, 1, 1, tzinfo=UTC)
    assert validate_parsed_content(_doc(published_at=now + timedelta(days=365)), now=now).is_valid
    late = validate_parsed_content(_doc(published_at=now + timedelta(days=366)), now=now)
    assert late.field == "published_at"


def test_naive_publish_date_treated_as_utc():
    now = datetime(2026, 1, 1, tzinfo=UTC)
    assert validate_parsed_content(_doc(published_at=datetime(2026, 6, 1)), now=now).is_valid


def test_ensure_valid_stops_at_first_failure():
    with pytest.raises(InvalidSource):
        ensure_valid(validate_url("ftp://example.com"), validate_text_content(""))
