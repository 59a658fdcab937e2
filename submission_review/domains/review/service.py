from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from time import perf_counter
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from submission_review.domains.review.collector import ContextCollector
from submission_review.domains.review.parser import (
    parse_review_response,
    validate_analysis,
    validate_coverage,
    validate_questions,
)
from submission_review.domains.review.prompt import build_review_request
from submission_review.domains.review.question_filter import filter_questions
from submission_review.domains.review.tasks import SubmissionReviewTask
from submission_review.domains.review.types import (
    ReviewCoverage,
    ReviewDTO,
    SourceCoverage,
)
from submission_review.infra.clients.llm import LLMClient
from submission_review.infra.monitoring.llm_webhook import LLMMonitoringWebhookClient
from submission_review.infra.repositories.review_repo import ReviewRepository
from submission_review.infra.repositories.submission_repo import SubmissionRepository
from submission_review.shared.errors import SubmissionNotFoundError
from submission_review.shared.time_utils import format_seconds, format_stage_durations


logger = logging.getLogger(__name__)

T = TypeVar("T")


class _StageTimer:
    def __init__(self) -> None:
        self.durations: Dict[str, float] = {}
        self.current: Optional[str] = None

    @contextmanager
    def stage(self, name: str) -> Iterator[None]:
        self.current = name
        started_at = perf_counter()
        try:
            yield
        finally:
            self.durations[name] = perf_counter() - started_at


def merge_coverage(collected: SourceCoverage, reported: ReviewCoverage) -> ReviewCoverage:
    """Keep the collector's flags; append the generator's own notes."""
    notes = collected.notes
    reported_notes = reported["notes"].strip()
    if reported_notes:
        notes = f"{notes}. AI: {reported_notes}"

    return {
        "submissionTextUsed": collected.submission_text_used,
        "fileUsed": collected.file_used,
        "moduleUsed": collected.module_used,
        "trailUsed": collected.trail_used,
        "notes": notes,
    }


def _decode_column(
    submission_id: str,
    column: str,
    payload: Optional[str],
    expected_type: type,
    validate: Callable[[Any], T],
) -> Optional[T]:
    if not payload:
        return None
    try:
        decoded = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning(
            "Stored review column is not valid JSON: submission_id=%s, column=%s",
            submission_id,
            column,
        )
        return None
    if not isinstance(decoded, expected_type):
        return None
    return validate(decoded)


class ReviewService:
    """Runs the review pipeline for one submission at a time.

    ``run_review`` is idempotent: a completed review is returned as is unless
    forced, and a review that is already processing is never started twice.
    """

    def __init__(
        self,
        *,
        submission_repo: SubmissionRepository,
        review_repo: ReviewRepository,
        llm_client: LLMClient,
        monitoring_client: LLMMonitoringWebhookClient,
        question_filter_enabled: bool = False,
        stale_processing_seconds: float | None = None,
    ) -> None:
        self._submission_repo = submission_repo
        self._review_repo = review_repo
        self._llm_client = llm_client
        self._monitoring_client = monitoring_client
        self._question_filter_enabled = question_filter_enabled
        self._stale_processing_seconds = stale_processing_seconds
        self._collector = ContextCollector(
            submission_reader=submission_repo,
            previous_questions_reader=review_repo,
        )

    def is_available(self) -> bool:
        return self._llm_client.is_configured

    def submission_exists(self, submission_id: str) -> bool:
        return self._submission_repo.exists(submission_id)

    def run_task(self, task: SubmissionReviewTask) -> None:
        self.run_review(task.submission_id, force=task.force)

    def run_review(self, submission_id: str, *, force: bool = False) -> str:
        if not self._submission_repo.exists(submission_id):
            raise SubmissionNotFoundError(submission_id)

        claim = self._review_repo.claim(
            submission_id,
            force=force,
            stale_after_seconds=self._stale_processing_seconds,
        )
        if not claim.acquired:
            logger.info(
                "Review already %s; not starting another run: submission_id=%s, review_id=%s",
                claim.status,
                submission_id,
                claim.review_id,
            )
            return claim.review_id

        review_id = claim.review_id
        logger.info(
            "Running submission review: submission_id=%s, review_id=%s, force=%s",
            submission_id,
            review_id,
            force,
        )

        timer = _StageTimer()
        started_at = perf_counter()
        try:
            with timer.stage("collect"):
                context, coverage = self._collector.collect(submission_id)

            with timer.stage("build_request"):
                request = build_review_request(context)

            with timer.stage("generate"):
                llm_result = self._llm_client.generate(request)

            with timer.stage("parse"):
                result = parse_review_response(llm_result.get("content", ""))

            if result["rejectedCandidates"]:
                logger.info(
                    "Generator rejected %s candidate questions: submission_id=%s",
                    len(result["rejectedCandidates"]),
                    submission_id,
                )

            if self._question_filter_enabled:
                with timer.stage("filter"):
                    filtered = filter_questions(
                        result["questions"],
                        submission_text=context.submission_text or "",
                        previous_questions=context.previous_questions,
                    )
                result["questions"] = filtered.accepted
                if filtered.rejected:
                    logger.info(
                        "Question filter dropped %s of %s questions: submission_id=%s, reasons=%s",
                        len(filtered.rejected),
                        filtered.total_candidates,
                        submission_id,
                        ",".join(filtered.rejected_reasons),
                    )

            with timer.stage("persist"):
                self._review_repo.mark_completed(
                    review_id,
                    run_started_at=claim.started_at,
                    result=result,
                    coverage=merge_coverage(coverage, result["coverage"]),
                )
        except Exception as error:
            failed_stage = timer.current or "unknown"
            logger.exception(
                "Submission review failed: submission_id=%s, review_id=%s, stage=%s",
                submission_id,
                review_id,
                failed_stage,
            )
            try:
                self._review_repo.mark_failed(
                    review_id,
                    str(error) or type(error).__name__,
                    run_started_at=claim.started_at,
                )
            except Exception:  # noqa: BLE001 - keep the original error
                logger.exception(
                    "Failed to record review failure: submission_id=%s, review_id=%s",
                    submission_id,
                    review_id,
                )
            self._monitoring_client.send_error(
                submission_id=submission_id,
                review_id=review_id,
                provider=self._llm_client.provider_name,
                model=self._llm_client.model_name,
                stage=failed_stage,
                stage_durations=timer.durations,
                error=error,
            )
            raise

        logger.info(
            "Submission review completed in %s: submission_id=%s, review_id=%s, questions=%s, %s",
            format_seconds(perf_counter() - started_at),
            submission_id,
            review_id,
            len(result["questions"]),
            format_stage_durations(timer.durations),
        )
        self._monitoring_client.send_success(
            submission_id=submission_id,
            review_id=review_id,
            llm_result=llm_result,
            stage_durations=timer.durations,
            question_count=len(result["questions"]),
            confidence=result["analysis"]["confidence"],
        )
        return review_id

    def get_review_dto(self, submission_id: str) -> ReviewDTO | None:
        record = self._review_repo.get_by_submission(submission_id)
        if record is None:
            return None

        return {
            "id": record.id,
            "submissionId": record.submission_id,
            "status": record.status,
            "analysis": _decode_column(
                submission_id, "analysis", record.analysis_json, dict, validate_analysis
            ),
            "questions": _decode_column(
                submission_id, "questions", record.questions_json, list, validate_questions
            ),
            "coverage": _decode_column(
                submission_id, "coverage", record.coverage_json, dict, validate_coverage
            ),
            "errorMessage": record.error_message,
            "startedAt": record.started_at,
            "finishedAt": record.finished_at,
        }
