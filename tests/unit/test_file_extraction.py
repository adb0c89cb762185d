import io

import pymupdf
import pytest
from docx import Document

from app.core.errors import ExtractionFailed, TooLarge, UnsafeFilename, UnsupportedType
from app.services.ingestion.files import (
    DOC_MIME,
    DOCX_MIME,
    PDF_MIME,
    TEXT_MIME,
    extract_from_file,
    title_from_filename,
)


def _docx_bytes(*paragraphs: str) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    table = document.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Cell A"
    table.rows[0].cells[1].text = "Cell B"
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def _pdf_bytes(*lines: str) -> bytes:
    doc = pymupdf.open()
    page = doc.new_page()
    y = 72
    for line in lines:
        page.insert_text((72, y), line)
        y += 60
    data = doc.tobytes()
    doc.close()
    return data


def test_title_from_filename():
    assert title_from_filename("Sermon Notes.final.pdf") == "Sermon Notes.final"
    long_title = title_from_filename("n" * 150 + ".txt")
    assert len(long_title) == 100 and long_title.endswith("...")


def test_plain_text_file():
    doc = extract_from_file("sermon-notes.txt", TEXT_MIME, "﻿Grace and peace to you.\n".encode("utf-8"))
    assert doc.title == "sermon-notes"
    assert doc.body == "Grace and peace to you."


def test_docx_paragraphs_and_tables_in_order():
    data = _docx_bytes("First paragraph.", "Second paragraph.")
    doc = extract_from_file("letter.docx", DOCX_MIME, data)
    assert doc.title == "letter"
    assert doc.body == "First paragraph.\n\nSecond paragraph.\n\nCell A | Cell B"


def test_pdf_text_top_to_bottom():
    doc = extract_from_file("talk.pdf", PDF_MIME, _pdf_bytes("Opening line", "Closing line"))
    assert doc.title == "talk"
    assert doc.body.index("Opening line") < doc.body.index("Closing line")


def test_legacy_doc_is_reported():
    with pytest.raises(ExtractionFailed):
        extract_from_file("old.doc", DOC_MIME, b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64)


def test_corrupt_pdf_is_extraction_failure():
    with pytest.raises(ExtractionFailed):
        extract_from_file("broken.pdf", PDF_MIME, b"not a pdf at all")


def test_empty_text_file():
    with pytest.raises(ExtractionFailed):
        extract_from_file("blank.txt", TEXT_MIME, b"  \n\n ")


def test_zip_rejected_as_unsupported():
    with pytest.raises(UnsupportedType):
        extract_from_file("bundle.zip", "application/zip", b"PK\x03\x04")


def test_unsafe_filename_rejected():
    with pytest.raises(UnsafeFilename):
        extract_from_file("../secret.txt", TEXT_MIME, b"text")


def test_size_ceiling(settings_env):
    settings_env(max_upload_bytes=8)
    with pytest.raises(TooLarge):
        extract_from_file("notes.txt", TEXT_MIME, b"123456789")
