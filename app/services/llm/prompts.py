from pathlib import Path

from app.utils.text import sha256_text

PROMPT_DIR = Path(__file__).resolve().parent / "prompt_templates"

ENRICHMENT_PROMPT_VERSION = "enrichment_v1"
ENRICHMENT_RULES_VERSION = "enrichment_rules_v1"
FORMATTING_PROMPT_VERSION = "formatting_v1"
FORMATTING_RULES_VERSION = "formatting_rules_v1"


def _load_prompt(version: str) -> str:
    path = PROMPT_DIR / f"{version}.txt"
    return path.read_text(encoding="utf-8").strip()


def prompt_for(version: str) -> str:
    return _load_prompt(version)


def prompt_checksum(version: str) -> str:
    return sha256_text(prompt_for(version))


def build_system_prompt(version: str, rules_version: str, custom_prompt: str | None = None) -> str:
    """Stage prompt, then editor instructions, then the stage's mandatory rules.

    The rules always come last so free-text instructions cannot override them.
    """
    sections = [prompt_for(version)]
    if custom_prompt:
        sections.append(
            "ADDITIONAL EDITOR INSTRUCTIONS (apply only where they do not conflict "
            "with the mandatory rules below):\n" + custom_prompt.strip()
        )
    sections.append(prompt_for(rules_version))
    return "\n\n".join(sections)


def enrichment_prompt(custom_prompt: str | None = None) -> str:
    return build_system_prompt(ENRICHMENT_PROMPT_VERSION, ENRICHMENT_RULES_VERSION, custom_prompt)


def formatting_prompt(custom_prompt: str | None = None) -> str:
    return build_system_prompt(FORMATTING_PROMPT_VERSION, FORMATTING_RULES_VERSION, custom_prompt)
