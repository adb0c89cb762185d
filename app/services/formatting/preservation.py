"""Word-level comparison between source text and a block sequence.

Only words are compared: punctuation, whitespace and markdown emphasis
delimiters are structure, not content. List markers are structure too, but
only the source side carries them; block text never does.
"""

import re
from collections import Counter
from collections.abc import Iterable

from app.core.errors import ContentInvariantError
from app.schemas.smart_import import (
    BlockquoteBlock,
    HeadingBlock,
    ImageBlock,
    ListBlock,
    ParagraphBlock,
)

_LINE_MARKERS_RE = re.compile(r"^[ \t]*(?:(?:[-*•●▪◦+–]|\d{1,3}[.)])[ \t]+)+", re.MULTILINE)
_WORD_RE = re.compile(r"[^\W_]+")


def words(text: str) -> list[str]:
    return _WORD_RE.findall(text.casefold())


def content_words(text: str) -> list[str]:
    """Words of raw source text, with list markers at line starts dropped."""
    return words(_LINE_MARKERS_RE.sub("", text))


def block_text(block) -> str:
    if isinstance(block, HeadingBlock):
        return block.text
    if isinstance(block, ParagraphBlock):
        return block.text
    if isinstance(block, BlockquoteBlock):
        return "\n\n".join(paragraph.text for paragraph in block.paragraphs)
    if isinstance(block, ListBlock):
        return "\n".join(item.text for item in block.items)
    if isinstance(block, ImageBlock):
        return ""
    raise TypeError(f"Unknown content block: {type(block).__name__}")


def reconstruct(blocks: Iterable) -> str:
    return "\n\n".join(text for text in (block_text(block) for block in blocks) if text)


def block_words(blocks: Iterable) -> list[str]:
    return words(reconstruct(blocks))


def same_word_order(source: str, blocks: Iterable) -> bool:
    """The blocks carry exactly the source words, in source order."""
    return content_words(source) == block_words(blocks)


def word_diff(expected_words: list[str], blocks: Iterable) -> dict[str, int]:
    expected = Counter(expected_words)
    actual = Counter(block_words(blocks))
    added = actual - expected
    removed = expected - actual
    return {"added": sum(added.values()), "removed": sum(removed.values())}


def assert_reading_order_preserved(expected_text: str, blocks: list) -> None:
    """``expected_text`` is the source as the blocks should read, markers already removed."""
    expected = words(expected_text)
    if expected != block_words(blocks):
        raise ContentInvariantError(
            "Normalized blocks do not reproduce the source text in order",
            **word_diff(expected, blocks),
        )
