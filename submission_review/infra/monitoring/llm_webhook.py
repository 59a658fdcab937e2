from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

import requests

from submission_review.shared.time_utils import utc_now_iso
from submission_review.shared.types import LLMResult


logger = logging.getLogger(__name__)

EVENT_NAME = "submission_review"
EVENT_SOURCE = "submission-review-pipeline"


class LLMMonitoringWebhookClient:
    """Posts one event per finished review run; never raises."""

    def __init__(self, *, webhook_url: str | None, timeout_seconds: float) -> None:
        self._webhook_url = webhook_url.strip() if webhook_url else None
        self._timeout_seconds = timeout_seconds

    @staticmethod
    def _build_llm_section(result: LLMResult) -> Dict[str, Any]:
        return {
            "provider": result.get("provider"),
            "model": result.get("model"),
            "elapsed_seconds": result.get("elapsed_seconds"),
            "input_tokens": result.get("input_tokens"),
            "output_tokens": result.get("output_tokens"),
            "total_tokens": result.get("total_tokens"),
        }

    def _post_payload(self, payload: Dict[str, Any]) -> None:
        if self._webhook_url is None:
            return

        try:
            response = requests.post(
                self._webhook_url,
                json=payload,
                timeout=self._timeout_seconds,
            )
            if response.status_code >= 400:
                logger.warning(
                    "LLM monitoring webhook returned status_code=%s", response.status_code
                )
        except Exception:  # noqa: BLE001 - non-blocking monitoring
            logger.exception("Failed to send LLM monitoring webhook")

    def send_success(
        self,
        *,
        submission_id: str,
        review_id: str,
        llm_result: LLMResult,
        stage_durations: Mapping[str, float],
        question_count: int,
        confidence: int,
    ) -> None:
        if self._webhook_url is None:
            return

        payload: Dict[str, Any] = {
            "status": "success",
            "event": EVENT_NAME,
            "source": EVENT_SOURCE,
            "timestamp": utc_now_iso(),
            "review": {
                "submission_id": submission_id,
                "review_id": review_id,
                "question_count": question_count,
                "confidence": confidence,
            },
            "llm": self._build_llm_section(llm_result),
            "stages": dict(stage_durations),
        }
        self._post_payload(payload)

    def send_error(
        self,
        *,
        submission_id: str,
        review_id: str,
        provider: str,
        model: str,
        stage: str,
        stage_durations: Mapping[str, float],
        error: BaseException,
    ) -> None:
        if self._webhook_url is None:
            return

        payload: Dict[str, Any] = {
            "status": "error",
            "event": EVENT_NAME,
            "source": EVENT_SOURCE,
            "timestamp": utc_now_iso(),
            "review": {
                "submission_id": submission_id,
                "review_id": review_id,
                "failed_stage": stage,
            },
            "llm": {
                "provider": provider,
                "model": model,
            },
            "stages": dict(stage_durations),
            "error": {
                "type": type(error).__name__,
                "message": str(error),
                "detail": repr(error),
            },
        }
        self._post_payload(payload)
