from __future__ import annotations

import logging
from typing import Any, Dict, Tuple

from submission_review.domains.review.service import ReviewService
from submission_review.domains.review.tasks import SubmissionReviewTask
from submission_review.infra.queue.inprocess_queue import InProcessWorkerQueue


logger = logging.getLogger(__name__)

JsonResponse = Tuple[Dict[str, Any], int]


class ReviewDispatcher:
    """Answers HTTP requests right away and leaves the pipeline to the queue."""

    def __init__(
        self,
        *,
        enabled: bool,
        review_service: ReviewService,
        review_queue: InProcessWorkerQueue[SubmissionReviewTask] | None,
    ) -> None:
        self._enabled = enabled
        self._review_service = review_service
        self._review_queue = review_queue

    def is_available(self) -> bool:
        return self._enabled and self._review_service.is_available()

    def get_review(self, submission_id: str) -> JsonResponse:
        if not self._enabled:
            return {"error": "AI review is disabled"}, 404

        if not self._review_service.submission_exists(submission_id):
            return {"error": "Submission not found"}, 404

        return {"review": self._review_service.get_review_dto(submission_id)}, 200

    def trigger_review(self, submission_id: str, *, force: bool) -> JsonResponse:
        if not self._enabled or self._review_queue is None:
            return {"error": "AI review is disabled"}, 404

        if not self._review_service.is_available():
            return {"error": "AI service is not configured"}, 503

        if not self._review_service.submission_exists(submission_id):
            return {"error": "Submission not found"}, 404

        logger.info(
            "Queueing submission review: submission_id=%s, force=%s",
            submission_id,
            force,
        )
        self._review_queue.enqueue(SubmissionReviewTask(submission_id=submission_id, force=force))
        return {"status": "started", "submissionId": submission_id}, 202
