"""Deterministic text-to-blocks normalization.

Input text is split into segments on blank lines. Each segment is matched
against an ordered rule cascade; the first rule whose predicate holds builds
the block. The quote rule outranks everything that could turn quoted text
into a heading, so quoted material always lands in a blockquote.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from app.core.errors import ContentInvariantError
from app.schemas.smart_import import (
    BlockquoteBlock,
    HeadingBlock,
    ListBlock,
    ParagraphBlock,
    TextRun,
)
from app.services.formatting.preservation import assert_reading_order_preserved

MAIN_TITLE_MAX_CHARS = 100
BYLINE_MAX_CHARS = 50
SUBHEADING_MAX_CHARS = 50
QUESTION_SUBHEADING_MAX_CHARS = 60

_SEGMENT_SPLIT_RE = re.compile(r"\n[ \t]*\n")
_MARKDOWN_HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(\S.*?)[ \t#]*$")
_LIST_MARKER_RE = re.compile(r"^[ \t]*(?:(?P<bullet>[-*•●▪◦+–])|(?P<number>\d{1,3})[.)])[ \t]+")

_QUOTED_SPAN_RE = re.compile(r'"[^"\n]+"|“[^”]+”|‘[^’]+’|„[^“”]+[“”]|«[^»]+»')
_OPENING_QUOTES = ('"', "“", "„", "«", "‘", "'")
_CLOSING_QUOTES = ('"', "'", "”", "’", "»")
_ATTRIBUTION_RE = re.compile(r"[ \t][-–—]{1,2}[ \t]?[A-Z][\w.']*(?:[ \t]+[A-Z][\w.']*){0,4}$")
_SPEECH_LEAD_RE = re.compile(
    r"^(?:as the bible says|the bible says|scripture (?:says|tells us)|as scripture says|"
    r"(?:as )?jesus (?:said|says)|christ said|god says|paul (?:wrote|writes)|"
    r"(?:he|she|they|i|we|you) said\b)",
    re.IGNORECASE,
)
_SCRIPTURE_REF_RE = re.compile(
    r"\b(?:Genesis|Exodus|Leviticus|Numbers|Deuteronomy|Joshua|Judges|Ruth|Samuel|Kings|"
    r"Chronicles|Ezra|Nehemiah|Esther|Job|Psalms?|Proverbs|Ecclesiastes|Isaiah|Jeremiah|"
    r"Lamentations|Ezekiel|Daniel|Hosea|Joel|Amos|Obadiah|Jonah|Micah|Nahum|Habakkuk|"
    r"Zephaniah|Haggai|Zechariah|Malachi|Matthew|Mark|Luke|John|Acts|Romans|Corinthians|"
    r"Galatians|Ephesians|Philippians|Colossians|Thessalonians|Timothy|Titus|Philemon|"
    r"Hebrews|James|Peter|Jude|Revelation)\s+\d{1,3}:\d{1,3}"
)
_TITLE_LEAD_RE = re.compile(
    r"^(?:how|why|what|when|where|who|which|is|are|can|should|do|does|will|"
    r"make|build|create|discover|learn|find|stop|start|get|take|let|lead|grow)\b",
    re.IGNORECASE,
)

_EMPHASIS_RE = re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*|\*(?=[^\s*])(.+?)(?<=[^\s*])\*")
_FIRST_SENTENCE_RE = re.compile(r"^(.+?[.!?])(\s+\S.*)$", re.DOTALL)


@dataclass(frozen=True)
class Segment:
    text: str
    index: int

    @property
    def lines(self) -> list[str]:
        return [line.strip() for line in self.text.split("\n") if line.strip()]

    @property
    def single_line(self) -> bool:
        return "\n" not in self.text


@dataclass(frozen=True)
class Rule:
    name: str
    matches: Callable[[Segment], bool]
    build: Callable[[Segment], object]


def split_segments(text: str) -> list[Segment]:
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    parts = [part.strip() for part in _SEGMENT_SPLIT_RE.split(normalized)]
    return [Segment(text=part, index=index) for index, part in enumerate(p for p in parts if p)]


def is_quote(text: str) -> bool:
    """Quoted material: matched quote marks, quote marks at the edges, an
    attribution tail, or scripture and reported-speech lead-ins."""
    stripped = text.strip()
    if not stripped:
        return False
    if _QUOTED_SPAN_RE.search(stripped):
        return True
    if stripped.startswith(_OPENING_QUOTES) or stripped.endswith(_CLOSING_QUOTES):
        return True
    if _ATTRIBUTION_RE.search(stripped):
        return True
    if _SPEECH_LEAD_RE.match(stripped):
        return True
    return bool(_SCRIPTURE_REF_RE.search(stripped))


def _list_marker(line: str) -> re.Match[str] | None:
    return _LIST_MARKER_RE.match(line)


def is_list(segment: Segment) -> bool:
    lines = segment.lines
    if not lines:
        return False
    if _list_marker(lines[0]):
        return True
    marked = sum(1 for line in lines if _list_marker(line))
    return marked * 2 > len(lines)


def parse_runs(text: str) -> list[TextRun]:
    """Split inline ``**bold**`` and ``*italic*`` markup into runs."""
    runs: list[TextRun] = []
    position = 0
    for match in _EMPHASIS_RE.finditer(text):
        if match.start() > position:
            runs.append(TextRun(text=text[position:match.start()]))
        if match.group(1) is not None:
            runs.append(TextRun(text=match.group(1), emphasis="bold"))
        else:
            runs.append(TextRun(text=match.group(2), emphasis="italic"))
        position = match.end()
    if position < len(text):
        runs.append(TextRun(text=text[position:]))
    return runs or [TextRun(text=text)]


def _is_markdown_heading(segment: Segment) -> bool:
    return segment.single_line and bool(_MARKDOWN_HEADING_RE.match(segment.text)) and not is_quote(segment.text)


def _build_markdown_heading(segment: Segment) -> HeadingBlock:
    match = _MARKDOWN_HEADING_RE.match(segment.text)
    assert match is not None
    return HeadingBlock(level=len(match.group(1)), text=match.group(2))


def _is_main_title(segment: Segment) -> bool:
    text = segment.text
    if segment.index != 0 or not segment.single_line:
        return False
    if len(text) >= MAIN_TITLE_MAX_CHARS or text.endswith(".") or is_quote(text):
        return False
    return text[0].isupper() or "By " in text or bool(_TITLE_LEAD_RE.match(text))


def _is_byline(segment: Segment) -> bool:
    text = segment.text
    return (
        segment.single_line
        and text.startswith("By ")
        and len(text) < BYLINE_MAX_CHARS
        and not is_quote(text)
    )


def _is_subheading(segment: Segment) -> bool:
    text = segment.text
    if not segment.single_line:
        return False
    if text.endswith("?") and len(text) < QUESTION_SUBHEADING_MAX_CHARS:
        return True
    return len(text) < SUBHEADING_MAX_CHARS and not text.endswith((".", "!", "?"))


def _build_blockquote(segment: Segment) -> BlockquoteBlock:
    return BlockquoteBlock(paragraphs=[ParagraphBlock.plain(segment.text)])


def _list_item(line: str) -> tuple[str, str | None]:
    """Item text and marker kind ("number", "bullet" or None) of one list line."""
    marker = _list_marker(line)
    if marker is None:
        return line, None
    kind = "number" if marker.group("number") is not None else "bullet"
    return line[marker.end():].strip(), kind


def _build_list(segment: Segment) -> ListBlock:
    items: list[ParagraphBlock] = []
    numbered = bulleted = 0
    for line in segment.lines:
        item, kind = _list_item(line)
        if kind == "number":
            numbered += 1
        elif kind == "bullet":
            bulleted += 1
        if item:
            items.append(ParagraphBlock(runs=parse_runs(item)))
    return ListBlock(ordered=numbered > bulleted, items=items)


def _build_paragraph(segment: Segment) -> ParagraphBlock:
    return ParagraphBlock(runs=parse_runs(segment.text))


RULES: list[Rule] = [
    Rule("markdown_heading", _is_markdown_heading, _build_markdown_heading),
    Rule("main_title", _is_main_title, lambda s: HeadingBlock(level=1, text=s.text)),
    Rule("byline", _is_byline, lambda s: HeadingBlock(level=3, text=s.text)),
    Rule("quote", lambda s: is_quote(s.text), _build_blockquote),
    Rule("list", is_list, _build_list),
    Rule("subheading", _is_subheading, lambda s: HeadingBlock(level=2, text=s.text)),
    Rule("paragraph", lambda s: True, _build_paragraph),
]


def classify(segment: Segment) -> Rule:
    for rule in RULES:
        if rule.matches(segment):
            return rule
    raise ContentInvariantError("No rule matched segment", index=segment.index)


def _emphasize_first_sentence(block: ParagraphBlock) -> ParagraphBlock:
    if len(block.runs) != 1 or block.runs[0].emphasis != "none":
        return block
    match = _FIRST_SENTENCE_RE.match(block.runs[0].text)
    if match is None:
        return block
    return ParagraphBlock(
        runs=[TextRun(text=match.group(1), emphasis="bold"), TextRun(text=match.group(2))]
    )


def apply_auto_emphasis(blocks: list, interval: int) -> list:
    """Bold the lead sentence of every ``interval``-th plain paragraph."""
    if interval <= 0:
        return blocks
    result = []
    paragraph_count = 0
    for block in blocks:
        if isinstance(block, ParagraphBlock):
            paragraph_count += 1
            if paragraph_count % interval == 0:
                block = _emphasize_first_sentence(block)
        result.append(block)
    return result


def _expected_text(segment: Segment, rule: Rule) -> str:
    if rule.name == "list":
        return "\n".join(_list_item(line)[0] for line in segment.lines)
    return segment.text


def normalize(text: str, emphasis_interval: int = 0) -> list:
    """Turn plain text into an ordered block list that reproduces every source word."""
    blocks = []
    expected = []
    for segment in split_segments(text):
        rule = classify(segment)
        blocks.append(rule.build(segment))
        expected.append(_expected_text(segment, rule))
    blocks = apply_auto_emphasis(blocks, emphasis_interval)
    assert_reading_order_preserved("\n\n".join(expected), blocks)
    return blocks


def enforce_quote_blocks(blocks: list) -> list:
    """Wrap any heading or paragraph carrying quoted material in a blockquote."""
    result = []
    for block in blocks:
        if isinstance(block, HeadingBlock) and is_quote(block.text):
            block = BlockquoteBlock(paragraphs=[ParagraphBlock.plain(block.text)])
        elif isinstance(block, ParagraphBlock) and is_quote(block.text):
            block = BlockquoteBlock(paragraphs=[block])
        result.append(block)
    return result
