from __future__ import annotations

import logging

from flask import Flask

from submission_review.app.config import AppSettings
from submission_review.app.dispatcher import ReviewDispatcher
from submission_review.app.routes import register_review_routes
from submission_review.app.wiring import build_review_service
from submission_review.domains.review.tasks import SubmissionReviewTask
from submission_review.infra.queue.inprocess_queue import InProcessWorkerQueue


def setup_logging(log_level_name: str) -> None:
    level = getattr(logging, log_level_name.upper(), None)
    if not isinstance(level, int):
        logging.basicConfig(level=logging.INFO)
        logging.getLogger(__name__).warning(
            "Invalid LOG_LEVEL '%s', defaulting to INFO",
            log_level_name,
        )
        return

    logging.basicConfig(level=level)


def create_app(settings: AppSettings | None = None) -> Flask:
    settings = settings or AppSettings.from_env()
    setup_logging(settings.log_level)

    review_service = build_review_service(settings)
    if not review_service.is_available():
        logging.getLogger(__name__).warning(
            "Text generator credentials are missing for provider=%s; reviews cannot be triggered",
            settings.llm_provider,
        )

    review_queue: InProcessWorkerQueue[SubmissionReviewTask] | None = None
    if settings.enable_submission_review:
        review_queue = InProcessWorkerQueue(
            name="submission-review",
            handler=review_service.run_task,
            worker_concurrency=settings.review_worker_concurrency,
            max_pending_jobs_soft_limit=settings.review_max_pending_jobs,
        )

    dispatcher = ReviewDispatcher(
        enabled=settings.enable_submission_review,
        review_service=review_service,
        review_queue=review_queue,
    )

    app = Flask(__name__)
    register_review_routes(app, dispatcher=dispatcher)
    return app


if __name__ == "__main__":
    create_app().run(host="0.0.0.0", port=9655)
