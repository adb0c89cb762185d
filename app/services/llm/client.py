import json
import logging
import re
from time import perf_counter
from typing import Any

import anthropic as anthropic_sdk
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError
from tenacity import retry, retry_if_exception_type, wait_exponential

from app.core.config import get_settings
from app.core.errors import AICallFailed, AIUnavailable
from app.core.observability import LLM_LATENCY
from app.schemas.smart_import import EnrichmentOutput, StructuredContent
from app.services.llm.prompts import (
    ENRICHMENT_PROMPT_VERSION,
    FORMATTING_PROMPT_VERSION,
    enrichment_prompt,
    formatting_prompt,
    prompt_checksum,
)
from app.services.llm.router import (
    ENRICHMENT_STAGE,
    FORMATTING_STAGE,
    ModelSelection,
    select_model,
    stage_candidates,
)

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


class LLMTransientError(RuntimeError):
    pass


class LLMSchemaError(RuntimeError):
    pass


def _coerce_json(text: str) -> dict[str, Any]:
    """Parse a JSON object, tolerating prose or code fences around it."""
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_RE.search(text)
        if match is None:
            raise LLMSchemaError("No JSON object found in response") from None
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            raise LLMSchemaError(f"Invalid JSON response: {exc}") from exc
    if not isinstance(parsed, dict):
        raise LLMSchemaError("Response JSON is not an object")
    return parsed


def _stop_after_configured_attempts(retry_state) -> bool:
    return retry_state.attempt_number >= max(1, get_settings().llm_max_retries)


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=_stop_after_configured_attempts,
    retry=retry_if_exception_type(LLMTransientError),
    reraise=True,
)
async def _call_openai(model: str, prompt: str, text: str, max_tokens: int) -> dict:
    settings = get_settings()
    if not settings.openai_api_key:
        raise AIUnavailable("OpenAI API key is not configured")

    client = AsyncOpenAI(api_key=settings.openai_api_key, timeout=settings.llm_timeout_seconds)
    started = perf_counter()
    try:
        result = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": prompt},
                {"role": "user", "content": text},
            ],
            response_format={"type": "json_object"},
            temperature=0.1,
            max_tokens=max_tokens,
        )
    except Exception as exc:  # noqa: BLE001
        raise LLMTransientError(str(exc)) from exc
    latency_ms = int((perf_counter() - started) * 1000)

    message = result.choices[0].message.content or ""
    parsed = _coerce_json(message)
    usage = result.usage
    return {
        "provider": "openai",
        "model": model,
        "raw": parsed,
        "input_tokens": getattr(usage, "prompt_tokens", None),
        "output_tokens": getattr(usage, "completion_tokens", None),
        "latency_ms": latency_ms,
    }


@retry(
    wait=wait_exponential(multiplier=1, min=1, max=8),
    stop=_stop_after_configured_attempts,
    retry=retry_if_exception_type(LLMTransientError),
    reraise=True,
)
async def _call_anthropic(model: str, prompt: str, text: str, max_tokens: int) -> dict:
    settings = get_settings()
    if not settings.anthropic_api_key:
        raise AIUnavailable("Anthropic API key is not configured")

    client = anthropic_sdk.AsyncAnthropic(
        api_key=settings.anthropic_api_key, timeout=settings.llm_timeout_seconds
    )
    started = perf_counter()
    try:
        result = await client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=0.1,
            system=prompt,
            messages=[{"role": "user", "content": text}],
        )
    except Exception as exc:  # noqa: BLE001
        raise LLMTransientError(str(exc)) from exc
    latency_ms = int((perf_counter() - started) * 1000)

    content = ""
    if result.content:
        text_blocks = [getattr(block, "text", "") for block in result.content]
        content = "\n".join([block for block in text_blocks if block])
    parsed = _coerce_json(content)
    usage = getattr(result, "usage", None)
    return {
        "provider": "anthropic",
        "model": model,
        "raw": parsed,
        "input_tokens": getattr(usage, "input_tokens", None),
        "output_tokens": getattr(usage, "output_tokens", None),
        "latency_ms": latency_ms,
    }


async def _call_candidate(candidate: ModelSelection, prompt: str, text: str, max_tokens: int) -> dict:
    if candidate.provider == "openai":
        return await _call_openai(candidate.model, prompt, text, max_tokens)
    if candidate.provider == "anthropic":
        return await _call_anthropic(candidate.model, prompt, text, max_tokens)
    raise AIUnavailable(f"Unsupported LLM provider: {candidate.provider}")


async def _run_stage(
    stage: str,
    prompt: str,
    prompt_version: str,
    text: str,
    parser: type[BaseModel],
    max_tokens: int,
):
    candidates = stage_candidates(stage)
    if not candidates:
        raise AIUnavailable("No language model is configured", stage=stage)

    errors: list[str] = []
    for candidate in candidates:
        try:
            payload = await _call_candidate(candidate, prompt, text, max_tokens)
            output = parser.model_validate(payload["raw"])
        except (LLMSchemaError, ValidationError) as exc:
            errors.append(f"{candidate.provider}:{candidate.model}:schema:{exc}")
            continue
        except Exception as exc:  # noqa: BLE001
            errors.append(f"{candidate.provider}:{candidate.model}:error:{exc}")
            continue
        LLM_LATENCY.labels(stage, payload["provider"], payload["model"]).observe(
            (payload.get("latency_ms") or 0) / 1000
        )
        payload["prompt_version"] = prompt_version
        payload["prompt_checksum"] = prompt_checksum(prompt_version)
        logger.info(
            "LLM stage %s answered by %s:%s in %sms",
            stage,
            payload["provider"],
            payload["model"],
            payload.get("latency_ms"),
        )
        return output, payload

    raise AICallFailed(" | ".join(errors))


async def run_enrichment(text: str, custom_prompt: str | None = None) -> tuple[EnrichmentOutput, dict]:
    return await _run_stage(
        ENRICHMENT_STAGE,
        enrichment_prompt(custom_prompt),
        ENRICHMENT_PROMPT_VERSION,
        text,
        EnrichmentOutput,
        max_tokens=1200,
    )


async def run_formatting(text: str, custom_prompt: str | None = None) -> tuple[StructuredContent, dict]:
    return await _run_stage(
        FORMATTING_STAGE,
        formatting_prompt(custom_prompt),
        FORMATTING_PROMPT_VERSION,
        text,
        StructuredContent,
        max_tokens=4000,
    )


def ai_status() -> dict[str, Any]:
    selection = select_model(FORMATTING_STAGE)
    return {
        "available": selection is not None,
        "provider": selection.provider if selection else None,
        "model": selection.model if selection else None,
    }
