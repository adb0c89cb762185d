from dataclasses import dataclass

from app.core.config import get_settings

ENRICHMENT_STAGE = "enrichment"
FORMATTING_STAGE = "formatting"


@dataclass
class ModelSelection:
    provider: str
    model: str


def stage_candidates(stage: str) -> list[ModelSelection]:
    """Ordered provider/model candidates for a stage; empty when AI is off."""
    settings = get_settings()
    candidates: list[ModelSelection] = []
    if not settings.llm_enabled:
        return candidates

    if stage == ENRICHMENT_STAGE:
        if settings.openai_api_key:
            candidates.append(ModelSelection(provider="openai", model="gpt-4o-mini"))
        if settings.anthropic_api_key:
            candidates.append(ModelSelection(provider="anthropic", model="claude-3-5-haiku-latest"))
    elif stage == FORMATTING_STAGE:
        if settings.openai_api_key:
            candidates.append(ModelSelection(provider="openai", model="gpt-4o"))
        if settings.anthropic_api_key:
            candidates.append(ModelSelection(provider="anthropic", model="claude-sonnet-4-5"))
    else:
        raise ValueError(f"Unknown LLM stage: {stage}")
    return candidates


def select_model(stage: str) -> ModelSelection | None:
    candidates = stage_candidates(stage)
    return candidates[0] if candidates else None
