from datetime import datetime

from app.core.time import now_utc
from app.schemas.smart_import import DocumentMetadata, ExtractedImage, RawDocument
from app.utils.text import count_words, reading_time_minutes


def build_metadata(body: str, source_url: str | None = None) -> DocumentMetadata:
    word_count = count_words(body)
    return DocumentMetadata(
        word_count=word_count,
        reading_time_minutes=reading_time_minutes(word_count),
        source_url=source_url,
        extracted_at=now_utc(),
    )


def build_raw_document(
    title: str,
    body: str,
    source_url: str | None = None,
    author: str | None = None,
    published_at: datetime | None = None,
    images: list[ExtractedImage] | None = None,
) -> RawDocument:
    return RawDocument(
        title=title,
        body=body,
        author=author,
        published_at=published_at,
        images=images or [],
        metadata=build_metadata(body, source_url),
    )
