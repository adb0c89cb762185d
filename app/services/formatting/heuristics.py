"""Deterministic metadata used when the language model is unavailable or fails."""

import re

from app.utils.text import normalize_whitespace, truncate

NO_EXCERPT = "No excerpt available."
EXCERPT_SOFT_LIMIT = 150
EXCERPT_HARD_LIMIT = 200
EXCERPT_MAX_SENTENCES = 3
TITLE_MAX_CHARS = 100
MAX_CATEGORIES = 3
CATEGORY_MIN_HITS = 2
DEFAULT_CATEGORIES = ["Ministry", "Leadership"]

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Leadership": ["leader", "leadership", "manage", "vision", "strategy"],
    "Ministry": ["ministry", "minister", "serve", "service", "mission"],
    "Pastoral Care": ["pastoral", "pastor", "care", "counsel", "shepherd"],
    "Church Growth": ["growth", "evangelism", "outreach", "community", "discipleship"],
    "Theology": ["theology", "biblical", "scripture", "doctrine", "faith"],
    "Preaching": ["preach", "sermon", "teaching", "message", "pulpit"],
    "Prayer": ["prayer", "pray", "intercession", "worship"],
    "Family Ministry": ["family", "marriage", "children", "youth", "parenting"],
}

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*")
_LEADING_BULLET_RE = re.compile(r"^\s*[-•*]\s*")
_BYLINE_RE = re.compile(r"^(?i:by)\s+([A-Z][\w.'-]*(?:\s+[A-Z][\w.'-]*){1,3})\s*$")
BYLINE_SCAN_LINES = 5


def excerpt_from_text(text: str) -> str:
    """First one to three sentences, capped at 200 characters."""
    sentences = [part.strip() for part in _SENTENCE_RE.findall(normalize_whitespace(text))]
    sentences = [sentence for sentence in sentences if sentence.rstrip(".!?").strip()]
    if not sentences:
        return NO_EXCERPT

    excerpt = sentences[0]
    for sentence in sentences[1:EXCERPT_MAX_SENTENCES]:
        if len(excerpt) >= EXCERPT_SOFT_LIMIT:
            break
        excerpt = f"{excerpt} {sentence}"
    if not excerpt.endswith((".", "!", "?")):
        excerpt += "."
    return truncate(excerpt, EXCERPT_HARD_LIMIT)


def clean_title(title: str) -> str:
    cleaned = normalize_whitespace(_LEADING_BULLET_RE.sub("", title))
    return truncate(cleaned, TITLE_MAX_CHARS)


def suggest_categories(text: str) -> list[str]:
    lowered = text.lower()
    categories = [
        category
        for category, keywords in CATEGORY_KEYWORDS.items()
        if sum(1 for keyword in keywords if keyword in lowered) >= CATEGORY_MIN_HITS
    ]
    if not categories:
        categories = list(DEFAULT_CATEGORIES)
    return categories[:MAX_CATEGORIES]


def detect_author(text: str) -> str | None:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    for line in lines[:BYLINE_SCAN_LINES]:
        match = _BYLINE_RE.match(line)
        if match:
            return match.group(1)
    return None
