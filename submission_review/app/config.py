from __future__ import annotations

import os
from dataclasses import dataclass

from submission_review.shared.errors import ConfigurationError


SUPPORTED_PROVIDERS = {"anthropic", "openai", "gemini", "ollama", "openrouter"}
DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-5",
    "openai": "gpt-5-mini",
    "gemini": "gemini-2.5-flash",
    "ollama": "llama3.1",
    "openrouter": "anthropic/claude-sonnet-4.5",
}


def _clean_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _get_optional_str(name: str) -> str | None:
    return _clean_optional(os.environ.get(name))


def _get_bool(name: str, default: bool) -> bool:
    raw = _clean_optional(os.environ.get(name))
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def _get_int(name: str, default: int, *, min_value: int | None = None) -> int:
    raw = _clean_optional(os.environ.get(name))
    if raw is None:
        value = default
    else:
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid integer for {name}: {raw}") from exc

    if min_value is not None and value < min_value:
        raise ConfigurationError(f"{name} must be >= {min_value}")
    return value


def _get_float(name: str, default: float, *, min_value: float | None = None) -> float:
    raw = _clean_optional(os.environ.get(name))
    if raw is None:
        value = default
    else:
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid float for {name}: {raw}") from exc

    if min_value is not None and value < min_value:
        raise ConfigurationError(f"{name} must be >= {min_value}")
    return value


@dataclass(frozen=True)
class AppSettings:
    log_level: str

    enable_submission_review: bool
    review_db_path: str

    llm_provider: str
    llm_model: str
    llm_max_tokens: int
    llm_timeout_seconds: float
    anthropic_api_key: str | None
    anthropic_api_url: str
    anthropic_version: str
    openai_api_key: str | None
    google_api_key: str | None
    ollama_base_url: str
    openrouter_api_key: str | None
    openrouter_base_url: str

    review_worker_concurrency: int
    review_max_pending_jobs: int
    review_stale_processing_seconds: float
    review_question_filter_enabled: bool

    llm_monitoring_webhook_url: str | None
    llm_monitoring_timeout_seconds: float

    @property
    def stale_processing_seconds(self) -> float | None:
        return self.review_stale_processing_seconds or None

    @classmethod
    def from_env(cls) -> "AppSettings":
        """Read settings from the environment.

        Generator credentials are optional here: without them the service
        reports itself unavailable instead of refusing to start.
        """
        provider = (_get_optional_str("LLM_PROVIDER") or "anthropic").lower()
        if provider not in SUPPORTED_PROVIDERS:
            raise ConfigurationError(f"Unsupported LLM_PROVIDER: {provider}")

        llm_model = (
            _get_optional_str("LLM_MODEL")
            or _get_optional_str("AI_MODEL")
            or DEFAULT_MODELS[provider]
        )

        settings = cls(
            log_level=(_get_optional_str("LOG_LEVEL") or "INFO").upper(),
            enable_submission_review=_get_bool("ENABLE_SUBMISSION_REVIEW", True),
            review_db_path=_get_optional_str("REVIEW_DB_PATH") or "data/academy.db",
            llm_provider=provider,
            llm_model=llm_model,
            llm_max_tokens=_get_int("LLM_MAX_TOKENS", 4000, min_value=1),
            llm_timeout_seconds=_get_float("LLM_TIMEOUT_SECONDS", 300.0, min_value=0.001),
            anthropic_api_key=_get_optional_str("AI_API_KEY")
            or _get_optional_str("ANTHROPIC_API_KEY"),
            anthropic_api_url=_get_optional_str("AI_API_ENDPOINT")
            or "https://api.anthropic.com/v1/messages",
            anthropic_version=_get_optional_str("ANTHROPIC_VERSION") or "2023-06-01",
            openai_api_key=_get_optional_str("OPENAI_API_KEY"),
            google_api_key=_get_optional_str("GOOGLE_API_KEY"),
            ollama_base_url=_get_optional_str("OLLAMA_BASE_URL") or "http://localhost:11434",
            openrouter_api_key=_get_optional_str("OPENROUTER_API_KEY"),
            openrouter_base_url=_get_optional_str("OPENROUTER_BASE_URL")
            or "https://openrouter.ai/api/v1",
            review_worker_concurrency=_get_int("REVIEW_WORKER_CONCURRENCY", 2, min_value=1),
            review_max_pending_jobs=_get_int("REVIEW_MAX_PENDING_JOBS", 100, min_value=1),
            review_stale_processing_seconds=_get_float(
                "REVIEW_STALE_PROCESSING_SECONDS", 900.0, min_value=0.0
            ),
            review_question_filter_enabled=_get_bool("REVIEW_QUESTION_FILTER_ENABLED", False),
            llm_monitoring_webhook_url=_get_optional_str("LLM_MONITORING_WEBHOOK_URL"),
            llm_monitoring_timeout_seconds=_get_float(
                "LLM_MONITORING_TIMEOUT_SECONDS", 3.0, min_value=0.001
            ),
        )

        if (
            settings.review_stale_processing_seconds
            and settings.review_stale_processing_seconds <= settings.llm_timeout_seconds
        ):
            raise ConfigurationError(
                "REVIEW_STALE_PROCESSING_SECONDS must be greater than LLM_TIMEOUT_SECONDS (or 0 to disable)"
            )

        return settings
