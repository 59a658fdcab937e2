from __future__ import annotations

from submission_review.app.config import AppSettings
from submission_review.domains.review.service import ReviewService
from submission_review.infra.clients.llm import LLMClient, LLMClientConfig
from submission_review.infra.monitoring.llm_webhook import LLMMonitoringWebhookClient
from submission_review.infra.repositories.review_repo import ReviewRepository
from submission_review.infra.repositories.submission_repo import SubmissionRepository


def build_llm_client(settings: AppSettings) -> LLMClient:
    return LLMClient(
        LLMClientConfig(
            provider=settings.llm_provider,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            timeout_seconds=settings.llm_timeout_seconds,
            anthropic_api_key=settings.anthropic_api_key,
            anthropic_api_url=settings.anthropic_api_url,
            anthropic_version=settings.anthropic_version,
            openai_api_key=settings.openai_api_key,
            google_api_key=settings.google_api_key,
            ollama_base_url=settings.ollama_base_url,
            openrouter_api_key=settings.openrouter_api_key,
            openrouter_base_url=settings.openrouter_base_url,
        )
    )


def build_review_service(settings: AppSettings) -> ReviewService:
    submission_repo = SubmissionRepository(settings.review_db_path)
    submission_repo.ensure_schema()

    return ReviewService(
        submission_repo=submission_repo,
        review_repo=ReviewRepository(settings.review_db_path),
        llm_client=build_llm_client(settings),
        monitoring_client=LLMMonitoringWebhookClient(
            webhook_url=settings.llm_monitoring_webhook_url,
            timeout_seconds=settings.llm_monitoring_timeout_seconds,
        ),
        question_filter_enabled=settings.review_question_filter_enabled,
        stale_processing_seconds=settings.stale_processing_seconds,
    )
