"""Smart Import orchestration.

Each import runs validate -> extract -> validate -> enrich -> validate as one
sequential chain. Nothing here persists; the sink is written by the caller
once the whole chain has produced a post record.
"""

import logging
from contextlib import contextmanager

import httpx

from app.core.errors import ContentInvariantError, SmartImportError
from app.core.observability import IMPORT_COUNT
from app.core.time import now_utc
from app.schemas.smart_import import (
    HeadingBlock,
    ImageBlock,
    ImportOptions,
    PostFormatOptions,
    PostRecord,
    PreviewOut,
    RawDocument,
)
from app.services.enhancement import enrich_metadata, format_content
from app.services.ingestion.fetcher import fetch_from_url
from app.services.ingestion.files import extract_from_file
from app.services.ingestion.html import extract_from_html
from app.services.ingestion.manual import extract_from_text
from app.services.validation import (
    ensure_valid,
    validate_file_upload,
    validate_import_options,
    validate_parsed_content,
    validate_text_content,
    validate_url,
)
from app.utils.text import count_words, normalize_whitespace, reading_time_minutes, sha256_text, slugify, truncate

logger = logging.getLogger(__name__)

SEO_TITLE_MAX_CHARS = 60
SEO_DESCRIPTION_BODY_CHARS = 155
SEO_DESCRIPTION_MAX_CHARS = 160
SHORT_CONTENT_CHARS = 500
LONG_CONTENT_CHARS = 10_000
HEADING_SUGGESTION_CHARS = 1000


@contextmanager
def _tracked(kind: str):
    try:
        yield
    except SmartImportError as exc:
        IMPORT_COUNT.labels(kind, "failed").inc()
        logger.info("%s import failed with %s: %s", kind, exc.code, exc.message)
        raise
    IMPORT_COUNT.labels(kind, "succeeded").inc()


async def _finish(doc: RawDocument, options: ImportOptions) -> RawDocument:
    ensure_valid(validate_parsed_content(doc))
    enriched = await enrich_metadata(doc, options)
    ensure_valid(validate_parsed_content(enriched))
    return enriched


async def import_from_url(
    url: str,
    options: ImportOptions | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> RawDocument:
    options = options or ImportOptions()
    with _tracked("url"):
        ensure_valid(validate_url(url), validate_import_options(options))
        markup, base_url = await fetch_from_url(url, transport=transport)
        doc = extract_from_html(markup, base_url, extract_images_enabled=options.extract_images)
        return await _finish(doc, options)


async def import_from_text(text: str, title: str | None = None, options: ImportOptions | None = None) -> RawDocument:
    options = options or ImportOptions()
    with _tracked("text"):
        ensure_valid(validate_text_content(text), validate_import_options(options))
        doc = extract_from_text(text, title)
        return await _finish(doc, options)


async def import_from_file(
    filename: str, mime_type: str, data: bytes, options: ImportOptions | None = None
) -> RawDocument:
    options = options or ImportOptions()
    with _tracked("file"):
        ensure_valid(validate_file_upload(filename, mime_type, len(data)), validate_import_options(options))
        doc = extract_from_file(filename, mime_type, data)
        return await _finish(doc, options)


def _seo_description(doc: RawDocument) -> str:
    if doc.excerpt:
        return truncate(doc.excerpt, SEO_DESCRIPTION_MAX_CHARS)
    plain = normalize_whitespace(doc.body)
    if len(plain) <= SEO_DESCRIPTION_BODY_CHARS:
        return plain
    return plain[:SEO_DESCRIPTION_BODY_CHARS].rstrip() + "..."


async def build_post_record(doc: RawDocument, options: PostFormatOptions | None = None) -> PostRecord:
    """Turn a parsed document into the record handed to the storage sink."""
    options = options or PostFormatOptions()
    ensure_valid(validate_parsed_content(doc))

    blocks = await format_content(doc.body, use_ai=options.format_with_ai)
    if not blocks:
        raise ContentInvariantError("Formatting produced no blocks for non-empty content")

    title = doc.title.strip()
    cover = doc.images[0] if doc.images else None
    trailing_images = [ImageBlock(url=image.url, alt=image.alt or "") for image in doc.images[1:]]
    word_count = count_words(doc.body)
    published_at = (doc.published_at or now_utc()) if options.status == "published" else None

    return PostRecord(
        title=title,
        slug=slugify(title),
        content=[*blocks, *trailing_images],
        excerpt=doc.excerpt,
        cover_image_url=cover.url if cover else None,
        cover_image_alt=(cover.alt or f"Cover image for {title}") if cover else None,
        author_name=(options.author_name or doc.author or None),
        published_at=published_at,
        seo_title=truncate(title, SEO_TITLE_MAX_CHARS),
        seo_description=_seo_description(doc),
        word_count=word_count,
        reading_time=reading_time_minutes(word_count),
        status=options.status,
        categories=list(doc.categories),
        content_hash=sha256_text(doc.body),
    )


def review_notes(doc: RawDocument, record: PostRecord) -> tuple[list[str], list[str]]:
    warnings: list[str] = []
    suggestions: list[str] = []
    if not doc.excerpt:
        warnings.append("No excerpt found. Consider adding a brief summary.")
    if not doc.author:
        warnings.append("No author detected. You may need to specify the author manually.")
    if not doc.images:
        suggestions.append("Consider adding a cover image to make the post more engaging.")
    if len(doc.body) < SHORT_CONTENT_CHARS:
        warnings.append("Content is quite short. Consider expanding for better engagement.")
    if len(doc.body) > LONG_CONTENT_CHARS:
        suggestions.append("Content is quite long. Consider breaking it into multiple posts or adding subheadings.")
    if not doc.categories:
        suggestions.append("Consider adding categories to help organize your content.")
    if len(record.slug) >= 96:
        warnings.append("Generated slug is quite long. Consider shortening the title.")
    has_headings = any(isinstance(block, HeadingBlock) for block in record.content)
    if not has_headings and len(doc.body) > HEADING_SUGGESTION_CHARS:
        suggestions.append("Consider adding headings to improve content structure and readability.")
    return warnings, suggestions


async def preview(doc: RawDocument, options: PostFormatOptions | None = None) -> PreviewOut:
    record = await build_post_record(doc, options)
    warnings, suggestions = review_notes(doc, record)
    return PreviewOut(parsed_content=doc, post=record, warnings=warnings, suggestions=suggestions)
