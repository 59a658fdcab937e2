import pytest

from submission_review.app.config import AppSettings
from submission_review.shared.errors import ConfigurationError


_SETTING_KEYS = (
    "LOG_LEVEL",
    "ENABLE_SUBMISSION_REVIEW",
    "REVIEW_DB_PATH",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "AI_MODEL",
    "LLM_MAX_TOKENS",
    "LLM_TIMEOUT_SECONDS",
    "AI_API_KEY",
    "ANTHROPIC_API_KEY",
    "AI_API_ENDPOINT",
    "ANTHROPIC_VERSION",
    "OPENAI_API_KEY",
    "GOOGLE_API_KEY",
    "OLLAMA_BASE_URL",
    "OPENROUTER_API_KEY",
    "OPENROUTER_BASE_URL",
    "REVIEW_WORKER_CONCURRENCY",
    "REVIEW_MAX_PENDING_JOBS",
    "REVIEW_STALE_PROCESSING_SECONDS",
    "REVIEW_QUESTION_FILTER_ENABLED",
    "LLM_MONITORING_WEBHOOK_URL",
    "LLM_MONITORING_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _SETTING_KEYS:
        monkeypatch.delenv(key, raising=False)


def test_app_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AI_API_KEY", "anthropic-key")

    settings = AppSettings.from_env()

    assert settings.llm_provider == "anthropic"
    assert settings.llm_model == "claude-sonnet-4-5"
    assert settings.anthropic_api_key == "anthropic-key"
    assert settings.anthropic_api_url == "https://api.anthropic.com/v1/messages"
    assert settings.llm_max_tokens == 4000
    assert settings.llm_timeout_seconds == 300.0
    assert settings.enable_submission_review is True
    assert settings.review_question_filter_enabled is False
    assert settings.stale_processing_seconds == 900.0
    assert settings.llm_monitoring_webhook_url is None


def test_app_settings_without_credentials_still_loads() -> None:
    settings = AppSettings.from_env()

    assert settings.anthropic_api_key is None


def test_app_settings_provider_default_model(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "OpenAI")

    settings = AppSettings.from_env()

    assert settings.llm_provider == "openai"
    assert settings.llm_model == "gpt-5-mini"


def test_app_settings_ai_model_alias(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AI_MODEL", "claude-opus-4-1")

    assert AppSettings.from_env().llm_model == "claude-opus-4-1"


def test_app_settings_unknown_provider_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "unknown-provider")

    with pytest.raises(ConfigurationError):
        AppSettings.from_env()


def test_app_settings_invalid_integer_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_MAX_TOKENS", "lots")

    with pytest.raises(ConfigurationError):
        AppSettings.from_env()


def test_app_settings_stale_window_must_exceed_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LLM_TIMEOUT_SECONDS", "300")
    monkeypatch.setenv("REVIEW_STALE_PROCESSING_SECONDS", "120")

    with pytest.raises(ConfigurationError):
        AppSettings.from_env()


def test_app_settings_stale_reclaim_can_be_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REVIEW_STALE_PROCESSING_SECONDS", "0")

    assert AppSettings.from_env().stale_processing_seconds is None


def test_app_settings_boolean_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENABLE_SUBMISSION_REVIEW", "false")
    monkeypatch.setenv("REVIEW_QUESTION_FILTER_ENABLED", "yes")

    settings = AppSettings.from_env()

    assert settings.enable_submission_review is False
    assert settings.review_question_filter_enabled is True
