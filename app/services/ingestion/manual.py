from app.services.ingestion.common import build_raw_document
from app.schemas.smart_import import RawDocument
from app.services.ingestion.fetcher import accept_text
from app.utils.text import truncate

TITLE_MAX_CHARS = 100


def title_from_text(text: str) -> str:
    for line in text.splitlines():
        if line.strip():
            return truncate(line.strip(), TITLE_MAX_CHARS)
    return "Untitled"


def extract_from_text(text: str, title: str | None = None) -> RawDocument:
    body = accept_text(text)
    chosen = (title or "").strip() or title_from_text(body)
    return build_raw_document(title=chosen, body=body)
