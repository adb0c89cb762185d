"""AI enhancement stage with mandatory heuristic fallback.

Both entry points recover from ``AIUnavailable`` and ``AICallFailed`` locally;
callers only ever see a result.
"""

import logging

from app.core.config import get_settings
from app.core.errors import AICallFailed, AIUnavailable
from app.core.observability import AI_FALLBACK_COUNT
from app.schemas.smart_import import EnrichmentOutput, ImageBlock, ImportOptions, RawDocument
from app.services.formatting import heuristics
from app.services.formatting.preservation import content_words, same_word_order, word_diff
from app.services.formatting.segmenter import enforce_quote_blocks, normalize
from app.services.llm.client import run_enrichment, run_formatting
from app.services.llm.router import ENRICHMENT_STAGE, FORMATTING_STAGE
from app.utils.text import truncate

logger = logging.getLogger(__name__)

AI_EXCERPT_MAX_CHARS = 500
AUTHOR_MAX_CHARS = 100


def _record_fallback(stage: str, exc: AIUnavailable | AICallFailed) -> None:
    AI_FALLBACK_COUNT.labels(stage, exc.code).inc()
    if isinstance(exc, AIUnavailable):
        logger.info("AI %s unavailable, using heuristics: %s", stage, exc.message)
    else:
        logger.warning("AI %s failed, using heuristics: %s", stage, exc.message)


def _enrichment_input(doc: RawDocument, options: ImportOptions) -> str:
    requested = ["title"]
    if options.generate_excerpt:
        requested.append("excerpt")
    if options.detect_author:
        requested.append("author")
    if options.suggest_categories:
        requested.append("categories")
    limit = get_settings().llm_content_char_limit
    lines = [f"Title: {doc.title}"]
    if doc.author:
        lines.append(f"Detected author: {doc.author}")
    lines.append(f"Requested: {', '.join(requested)}")
    lines.append("Content:")
    lines.append(doc.body[:limit])
    return "\n".join(lines)


def heuristic_enrichment(doc: RawDocument, options: ImportOptions) -> RawDocument:
    updates: dict = {"title": heuristics.clean_title(doc.title)}
    if options.generate_excerpt and not doc.excerpt:
        updates["excerpt"] = heuristics.excerpt_from_text(doc.body)
    if options.detect_author and not doc.author:
        updates["author"] = heuristics.detect_author(doc.body)
    if options.suggest_categories and not doc.categories:
        updates["categories"] = heuristics.suggest_categories(doc.body)
    return doc.model_copy(update=updates)


def _known_categories(labels: list[str]) -> list[str]:
    known = {name.lower(): name for name in heuristics.CATEGORY_KEYWORDS}
    result: list[str] = []
    for label in labels:
        name = known.get(label.strip().lower())
        if name and name not in result:
            result.append(name)
    return result[: heuristics.MAX_CATEGORIES]


def merge_enrichment(doc: RawDocument, output: EnrichmentOutput, options: ImportOptions) -> RawDocument:
    """Apply model suggestions to metadata fields only; the body is never replaced."""
    updates: dict = {}
    title = (output.title or "").strip()
    updates["title"] = heuristics.clean_title(title or doc.title)

    if options.generate_excerpt:
        excerpt = (output.excerpt or "").strip()
        updates["excerpt"] = (
            truncate(excerpt, AI_EXCERPT_MAX_CHARS)
            if excerpt
            else doc.excerpt or heuristics.excerpt_from_text(doc.body)
        )
    if options.detect_author:
        author = (output.author or "").strip()
        if author and author.lower() not in {"null", "none", "unknown"}:
            updates["author"] = truncate(author, AUTHOR_MAX_CHARS)
        elif not doc.author:
            updates["author"] = heuristics.detect_author(doc.body)
    if options.suggest_categories:
        updates["categories"] = _known_categories(output.categories) or (
            doc.categories[: heuristics.MAX_CATEGORIES] or heuristics.suggest_categories(doc.body)
        )
    return doc.model_copy(update=updates)


async def enrich_metadata(doc: RawDocument, options: ImportOptions) -> RawDocument:
    try:
        output, payload = await run_enrichment(_enrichment_input(doc, options), options.custom_prompt)
    except (AIUnavailable, AICallFailed) as exc:
        _record_fallback(ENRICHMENT_STAGE, exc)
        return heuristic_enrichment(doc, options)
    logger.info(
        "Enriched %r with %s:%s (confidence=%s)",
        doc.title,
        payload["provider"],
        payload["model"],
        output.confidence,
    )
    return merge_enrichment(doc, output, options)


async def _ai_blocks(text: str, custom_prompt: str | None) -> list:
    structured, _ = await run_formatting(text, custom_prompt)
    blocks = [block for block in structured.blocks if not isinstance(block, ImageBlock)]
    if not blocks:
        raise AICallFailed("model returned no content blocks")
    if not same_word_order(text, blocks):
        diff = word_diff(content_words(text), blocks)
        raise AICallFailed(f"model changed the source wording or order {diff}")
    return enforce_quote_blocks(blocks)


async def format_content(text: str, custom_prompt: str | None = None, use_ai: bool = True) -> list:
    """Structure body text into content blocks, via the model when possible."""
    interval = get_settings().auto_emphasis_interval
    if not use_ai:
        return normalize(text, interval)
    try:
        return await _ai_blocks(text, custom_prompt)
    except (AIUnavailable, AICallFailed) as exc:
        _record_fallback(FORMATTING_STAGE, exc)
        return normalize(text, interval)
