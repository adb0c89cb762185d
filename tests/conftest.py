import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

TEST_DB = Path("./test.db")

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["REDIS_URL"] = "redis://localhost:6379/0"
os.environ["ENV"] = "test"
os.environ["API_AUTH_ENABLED"] = "false"
os.environ["LLM_ENABLED"] = "false"
os.environ["OBSERVABILITY_ENABLED"] = "false"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["OPENAI_API_KEY"] = ""
os.environ["ANTHROPIC_API_KEY"] = ""


@pytest.fixture(scope="session", autouse=True)
def setup_test_db_url():
    if TEST_DB.exists():
        TEST_DB.unlink()

    from app.core.config import get_settings
    from app.db.session import reset_session_for_tests

    get_settings.cache_clear()
    reset_session_for_tests()

    yield

    if TEST_DB.exists():
        TEST_DB.unlink()


@pytest.fixture(autouse=True)
def public_dns(monkeypatch):
    """Every hostname resolves to a public address unless a test says otherwise."""
    monkeypatch.setattr("app.utils.network.resolve_host", lambda host: ["93.184.216.34"])


@pytest.fixture
def settings_env(monkeypatch):
    """Override settings through the environment for one test."""
    from app.core.config import get_settings

    def apply(**values):
        for key, value in values.items():
            monkeypatch.setenv(key.upper(), str(value))
        get_settings.cache_clear()
        return get_settings()

    yield apply
    get_settings.cache_clear()


@pytest.fixture
def client(setup_test_db_url):
    from app.core.config import get_settings
    from app.main import app
    from app.services.rate_limit import build_rate_limiter

    app.state.rate_limiter = build_rate_limiter(get_settings())
    with TestClient(app) as test_client:
        yield test_client
