from app.services.llm.client import ai_status
from app.services.llm.router import ENRICHMENT_STAGE, FORMATTING_STAGE, select_model, stage_candidates


def test_no_candidates_when_llm_disabled(settings_env):
    settings_env(llm_enabled="false", openai_api_key="sk-test")
    assert stage_candidates(ENRICHMENT_STAGE) == []
    assert select_model(FORMATTING_STAGE) is None


def test_prefers_openai_when_both_keys_set(settings_env):
    settings_env(llm_enabled="true", openai_api_key="sk-test", anthropic_api_key="ak-test")
    candidates = stage_candidates(FORMATTING_STAGE)
    assert [c.provider for c in candidates] == ["openai", "anthropic"]


def test_anthropic_only(settings_env):
    settings_env(llm_enabled="true", openai_api_key="", anthropic_api_key="ak-test")
    candidates = stage_candidates(ENRICHMENT_STAGE)
    assert len(candidates) == 1
    assert candidates[0].provider == "anthropic"


def test_ai_status_reports_unavailable(settings_env):
    settings_env(llm_enabled="false")
    status = ai_status()
    assert status["available"] is False
    assert status["model"] is None
