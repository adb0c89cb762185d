import hashlib
import json
import math
import re

WORDS_PER_MINUTE = 200
SLUG_MAX_LENGTH = 96

_WHITESPACE_RE = re.compile(r"\s+")
_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_HYPHENS_RE = re.compile(r"-+")


def normalize_whitespace(text: str | None) -> str:
    if not text:
        return ""
    return " ".join(text.split())


def count_words(text: str) -> int:
    return len(text.split())


def reading_time_minutes(word_count: int) -> int:
    return max(1, math.ceil(word_count / WORDS_PER_MINUTE))


def truncate(text: str, limit: int, suffix: str = "...") -> str:
    if len(text) <= limit:
        return text
    return text[: limit - len(suffix)].rstrip() + suffix


def slugify(title: str) -> str:
    slug = _SLUG_STRIP_RE.sub("", title.lower())
    slug = _WHITESPACE_RE.sub("-", slug)
    slug = _SLUG_HYPHENS_RE.sub("-", slug).strip("-")
    slug = slug[:SLUG_MAX_LENGTH].strip("-")
    return slug or "untitled"


def sha256_text(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def stable_request_hash(payload: dict) -> str:
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return sha256_text(body)
