"""Uploaded document extraction (PDF, Word, plain text)."""

from __future__ import annotations

import io
import logging
from pathlib import PurePath

import pymupdf
from docx import Document as load_docx
from docx.oxml.ns import qn
from docx.table import Table
from docx.text.paragraph import Paragraph

from app.core.errors import ExtractionFailed, UnsupportedType
from app.schemas.smart_import import RawDocument
from app.services.ingestion.common import build_raw_document
from app.services.ingestion.fetcher import accept_file
from app.utils.text import normalize_whitespace, truncate

logger = logging.getLogger(__name__)

PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC_MIME = "application/msword"
TEXT_MIME = "text/plain"

_OLE_MAGIC = b"\xd0\xcf\x11\xe0"
TITLE_MAX_CHARS = 100


def title_from_filename(filename: str) -> str:
    return truncate(PurePath(filename).stem or filename, TITLE_MAX_CHARS)


def pdf_to_text(data: bytes) -> str:
    paragraphs: list[str] = []
    with pymupdf.open(stream=data, filetype="pdf") as doc:
        for page in doc:
            # (x0, y0, x1, y1, text, block_no, block_type); sort top-to-bottom, left-to-right
            blocks = sorted(page.get_text("blocks"), key=lambda row: (row[1], row[0], row[5]))
            for block in blocks:
                if block[6] != 0:
                    continue
                text = normalize_whitespace(block[4])
                if text:
                    paragraphs.append(text)
    return "\n\n".join(paragraphs)


def word_to_text(data: bytes) -> str:
    if data.startswith(_OLE_MAGIC):
        raise ExtractionFailed("legacy binary .doc files are not supported; save the document as .docx")
    document = load_docx(io.BytesIO(data))
    paragraphs: list[str] = []
    for child in document.element.body.iterchildren():
        if child.tag == qn("w:p"):
            text = Paragraph(child, document).text.strip()
            if text:
                paragraphs.append(text)
        elif child.tag == qn("w:tbl"):
            for row in Table(child, document).rows:
                cells = [normalize_whitespace(cell.text) for cell in row.cells]
                line = " | ".join(cell for cell in cells if cell)
                if line:
                    paragraphs.append(line)
    return "\n\n".join(paragraphs)


def plain_to_text(data: bytes) -> str:
    return data.decode("utf-8-sig", errors="replace")


_DECODERS = {
    PDF_MIME: pdf_to_text,
    DOCX_MIME: word_to_text,
    DOC_MIME: word_to_text,
    TEXT_MIME: plain_to_text,
}


def extract_from_file(filename: str, mime_type: str, data: bytes) -> RawDocument:
    accept_file(data, mime_type, filename)
    decoder = _DECODERS.get(mime_type)
    if decoder is None:
        raise UnsupportedType(f"Unsupported file type: {mime_type}")

    try:
        text = decoder(data)
    except ExtractionFailed:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.warning("Decoding %s as %s failed: %s", filename, mime_type, exc)
        raise ExtractionFailed(f"could not read {mime_type} document: {exc}") from exc

    body = text.strip()
    if not body:
        raise ExtractionFailed("no text content found in file")
    return build_raw_document(title=title_from_filename(filename), body=body)
