"""HTML page extraction: title, readable body text, images, author and date."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Comment, Declaration, Doctype, NavigableString, ProcessingInstruction, Tag
from dateutil import parser as date_parser

from app.schemas.smart_import import ExtractedImage, RawDocument
from app.services.ingestion.common import build_raw_document
from app.utils.text import normalize_whitespace, truncate

logger = logging.getLogger(__name__)

FALLBACK_TITLE = "Untitled Article"
AUTHOR_MAX_CHARS = 100
TITLE_MAX_CHARS = 100

TITLE_SELECTORS = [
    "h1",
    "title",
    '[property="og:title"]',
    '[name="twitter:title"]',
    ".entry-title",
    ".post-title",
    ".article-title",
]

BOILERPLATE_SELECTORS = [
    "head",
    "title",
    "script",
    "style",
    "noscript",
    "template",
    "nav",
    "header",
    "footer",
    "aside",
    ".sidebar",
    ".advertisement",
    ".ad",
    ".ads",
    ".ad-container",
    ".ad-slot",
]

CONTENT_SELECTORS = [
    "article",
    ".entry-content",
    ".post-content",
    ".article-content",
    ".content",
    "main",
    ".main-content",
]

AUTHOR_SELECTORS = [
    '[rel="author"]',
    ".author",
    ".byline",
    '[property="article:author"]',
    '[name="author"]',
    ".post-author",
    ".entry-author",
]

DATE_SELECTORS = [
    '[property="article:published_time"]',
    '[property="article:modified_time"]',
    "time[datetime]",
    ".published",
    ".post-date",
    ".entry-date",
]

BLOCK_TAGS = {
    "address", "article", "blockquote", "dd", "details", "div", "dl", "dt",
    "figcaption", "figure", "form", "h1", "h2", "h3", "h4", "h5", "h6", "hr",
    "main", "p", "section", "summary", "table",
}
LINE_TAGS = {"tr", "caption"}
SKIPPED_STRINGS = (Comment, Declaration, Doctype, ProcessingInstruction)

_BYLINE_PREFIX_RE = re.compile(r"^by\s+", re.IGNORECASE)
_YEAR_RE = re.compile(r"\d{4}")
_LEADING_INT_RE = re.compile(r"^\s*(\d+)")
_EXCESS_BREAKS_RE = re.compile(r"\n{3,}")


def _attr_or_text(element: Tag) -> str:
    value = element.get("content") or element.get("datetime") or element.get_text(" ")
    if isinstance(value, list):
        value = " ".join(value)
    return normalize_whitespace(value)


def extract_title(soup: BeautifulSoup) -> str:
    for selector in TITLE_SELECTORS:
        element = soup.select_one(selector)
        if element is None:
            continue
        title = _attr_or_text(element)
        if title:
            return truncate(title, TITLE_MAX_CHARS)
    return FALLBACK_TITLE


def extract_author(soup: BeautifulSoup) -> str | None:
    for selector in AUTHOR_SELECTORS:
        for element in soup.select(selector):
            author = _BYLINE_PREFIX_RE.sub("", _attr_or_text(element)).strip()
            if author and len(author) <= AUTHOR_MAX_CHARS:
                return author
    return None


def parse_date(value: str) -> datetime | None:
    if not value or not _YEAR_RE.search(value):
        return None
    try:
        return date_parser.parse(value)
    except (ValueError, OverflowError):
        return None


def extract_published_date(soup: BeautifulSoup) -> datetime | None:
    for selector in DATE_SELECTORS:
        for element in soup.select(selector):
            candidate = _attr_or_text(element)
            parsed = parse_date(candidate)
            if parsed is not None:
                return parsed
            if candidate:
                logger.debug("Skipping unparseable date %r from %s", candidate, selector)
    return None


def _render(node: Tag, out: list[str]) -> None:
    for child in node.children:
        if isinstance(child, NavigableString):
            if not isinstance(child, SKIPPED_STRINGS):
                out.append(str(child))
            continue
        if not isinstance(child, Tag):
            continue
        name = child.name
        if name == "br":
            out.append("\n")
        elif name == "pre":
            out.append("\n\n" + child.get_text().strip("\n") + "\n\n")
        elif name in {"ul", "ol"}:
            out.append("\n\n")
            for index, item in enumerate(child.find_all("li", recursive=False), start=1):
                item_parts: list[str] = []
                _render(item, item_parts)
                item_text = normalize_whitespace("".join(item_parts))
                if item_text:
                    marker = f"{index}. " if name == "ol" else "- "
                    out.append("\n" + marker + item_text)
            out.append("\n\n")
        elif name in BLOCK_TAGS:
            out.append("\n\n")
            _render(child, out)
            out.append("\n\n")
        elif name in LINE_TAGS:
            out.append("\n")
            _render(child, out)
            out.append("\n")
        elif name in {"td", "th"}:
            out.append(" ")
            _render(child, out)
            out.append(" ")
        else:
            _render(child, out)


def html_to_text(node: Tag) -> str:
    """Flatten markup to plain text; block-level elements become blank-line breaks."""
    parts: list[str] = []
    _render(node, parts)
    lines = [" ".join(line.split()) for line in "".join(parts).split("\n")]
    text = "\n".join(lines)
    return _EXCESS_BREAKS_RE.sub("\n\n", text).strip()


def strip_boilerplate(soup: BeautifulSoup) -> None:
    for selector in BOILERPLATE_SELECTORS:
        for element in soup.select(selector):
            element.decompose()


def extract_main_content(soup: BeautifulSoup) -> str:
    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element is not None:
            return html_to_text(element)
    body = soup.body or soup
    return html_to_text(body)


def _dimension(value: object) -> int | None:
    if not isinstance(value, str):
        return None
    match = _LEADING_INT_RE.match(value)
    if not match:
        return None
    return int(match.group(1)) or None


def _caption(img: Tag) -> str | None:
    figure = img.find_parent("figure")
    if figure is None:
        return None
    caption = figure.find("figcaption")
    if caption is None:
        return None
    return normalize_whitespace(caption.get_text(" ")) or None


def extract_images(soup: BeautifulSoup, base_url: str) -> list[ExtractedImage]:
    images: list[ExtractedImage] = []
    seen: set[str] = set()
    for img in soup.find_all("img"):
        src = img.get("src") or img.get("data-src")
        if not isinstance(src, str) or not src.strip():
            continue
        try:
            resolved = urljoin(base_url, src.strip())
            parsed = urlparse(resolved)
        except ValueError:
            logger.debug("Skipping image with invalid src %r", src)
            continue
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            continue
        if resolved in seen:
            continue
        seen.add(resolved)
        alt = img.get("alt")
        images.append(
            ExtractedImage(
                url=resolved,
                alt=normalize_whitespace(alt) if isinstance(alt, str) else "",
                caption=_caption(img),
                width=_dimension(img.get("width")),
                height=_dimension(img.get("height")),
            )
        )
    return images


def _document_base(soup: BeautifulSoup, base_url: str) -> str:
    base = soup.find("base", href=True)
    if base is None:
        return base_url
    href = base.get("href")
    return urljoin(base_url, href) if isinstance(href, str) else base_url


def extract_from_html(markup: str, base_url: str, extract_images_enabled: bool = True) -> RawDocument:
    soup = BeautifulSoup(markup, "html.parser")
    resolved_base = _document_base(soup, base_url)

    # title and byline often sit in <header>, so read them before boilerplate removal
    title = extract_title(soup)
    author = extract_author(soup)
    published_at = extract_published_date(soup)

    strip_boilerplate(soup)
    body = extract_main_content(soup)
    images = extract_images(soup, resolved_base) if extract_images_enabled else []

    logger.info(
        "Extracted HTML document %s: %d chars, %d images", base_url, len(body), len(images)
    )
    return build_raw_document(
        title=title,
        body=body,
        source_url=base_url,
        author=author,
        published_at=published_at,
        images=images,
    )
