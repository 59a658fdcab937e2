from __future__ import annotations

import json
import logging
import os
import sqlite3
import uuid
from datetime import datetime, timedelta, timezone

from submission_review.domains.review.types import (
    ReviewClaim,
    ReviewCoverage,
    ReviewRecord,
    ReviewResult,
    ReviewStatus,
)
from submission_review.shared.time_utils import utc_now_iso


logger = logging.getLogger(__name__)

MAX_ERROR_MESSAGE_LENGTH = 500

_SELECT_COLUMNS = """
    id, submission_id, status, analysis, questions, coverage,
    error_message, started_at, finished_at
"""


class ReviewRepository:
    """Persistence for review records, one row per submission.

    The review service is the only writer. Moving a row into ``processing``
    goes through :meth:`claim`, a single conditional statement, so two
    concurrent triggers for one submission can never both win.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _get_connection(self) -> sqlite3.Connection:
        directory = os.path.dirname(self._db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        conn = sqlite3.connect(self._db_path, timeout=10.0)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS ai_submission_reviews (
                id TEXT PRIMARY KEY,
                submission_id TEXT NOT NULL UNIQUE,
                status TEXT NOT NULL,
                analysis TEXT,
                questions TEXT,
                coverage TEXT,
                previous_questions TEXT,
                error_message TEXT,
                started_at TEXT,
                finished_at TEXT,
                created_at TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS ai_submission_reviews_status_idx "
            "ON ai_submission_reviews (status)"
        )
        return conn

    def claim(
        self,
        submission_id: str,
        *,
        force: bool,
        stale_after_seconds: float | None = None,
    ) -> ReviewClaim:
        """Try to start a run for ``submission_id``.

        Creates the row when absent. Otherwise restarts it when it is
        ``failed``, ``completed`` with ``force``, or ``processing`` with a
        ``started_at`` older than ``stale_after_seconds``. Restarting clears
        every result field and keeps the last questions in
        ``previous_questions``.
        """
        now = utc_now_iso()
        stale_before: str | None = None
        if stale_after_seconds:
            stale_before = (
                datetime.now(timezone.utc) - timedelta(seconds=stale_after_seconds)
            ).isoformat()

        conn = self._get_connection()
        try:
            review_id = uuid.uuid4().hex
            try:
                conn.execute(
                    """
                    INSERT INTO ai_submission_reviews (id, submission_id, status, started_at, updated_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (review_id, submission_id, ReviewStatus.PROCESSING.value, now, now),
                )
                conn.commit()
                return ReviewClaim(
                    review_id=review_id,
                    acquired=True,
                    status=ReviewStatus.PROCESSING.value,
                    started_at=now,
                )
            except sqlite3.IntegrityError:
                conn.rollback()

            cursor = conn.execute(
                """
                UPDATE ai_submission_reviews
                SET status = 'processing',
                    previous_questions = COALESCE(questions, previous_questions),
                    analysis = NULL,
                    questions = NULL,
                    coverage = NULL,
                    error_message = NULL,
                    started_at = ?,
                    finished_at = NULL,
                    updated_at = ?
                WHERE submission_id = ?
                  AND (
                    status = 'failed'
                    OR (status = 'completed' AND ? = 1)
                    OR (status = 'processing' AND ? IS NOT NULL AND started_at < ?)
                  )
                """,
                (now, now, submission_id, 1 if force else 0, stale_before, stale_before),
            )
            acquired = cursor.rowcount == 1
            conn.commit()

            row = conn.execute(
                "SELECT id, status, started_at FROM ai_submission_reviews WHERE submission_id = ?",
                (submission_id,),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            raise RuntimeError(f"Review row vanished while claiming submission {submission_id}")

        if acquired:
            logger.info("Restarting review record: submission_id=%s, review_id=%s", submission_id, row[0])
        return ReviewClaim(
            review_id=str(row[0]),
            acquired=acquired,
            status=str(row[1]),
            started_at=row[2],
        )

    def _log_stale_write(self, review_id: str, run_started_at: str | None, outcome: str) -> None:
        logger.warning(
            "Review run no longer owns the record; dropping %s result: review_id=%s, run_started_at=%s",
            outcome,
            review_id,
            run_started_at,
        )

    def mark_completed(
        self,
        review_id: str,
        *,
        run_started_at: str | None,
        result: ReviewResult,
        coverage: ReviewCoverage,
    ) -> bool:
        """Store the result of the run started at ``run_started_at``.

        Returns ``False`` when the row was reclaimed by a newer run.
        """
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                UPDATE ai_submission_reviews
                SET status = 'completed',
                    analysis = ?,
                    questions = ?,
                    coverage = ?,
                    error_message = NULL,
                    finished_at = ?,
                    updated_at = ?
                WHERE id = ? AND status = 'processing' AND started_at IS ?
                """,
                (
                    json.dumps(result["analysis"], ensure_ascii=False),
                    json.dumps(result["questions"], ensure_ascii=False),
                    json.dumps(coverage, ensure_ascii=False),
                    utc_now_iso(),
                    utc_now_iso(),
                    review_id,
                    run_started_at,
                ),
            )
            written = cursor.rowcount == 1
            conn.commit()
        finally:
            conn.close()

        if not written:
            self._log_stale_write(review_id, run_started_at, "completed")
        return written

    def mark_failed(
        self,
        review_id: str,
        error_message: str,
        *,
        run_started_at: str | None,
    ) -> bool:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                UPDATE ai_submission_reviews
                SET status = 'failed',
                    analysis = NULL,
                    questions = NULL,
                    coverage = NULL,
                    error_message = ?,
                    finished_at = ?,
                    updated_at = ?
                WHERE id = ? AND status = 'processing' AND started_at IS ?
                """,
                (
                    error_message[:MAX_ERROR_MESSAGE_LENGTH],
                    utc_now_iso(),
                    utc_now_iso(),
                    review_id,
                    run_started_at,
                ),
            )
            written = cursor.rowcount == 1
            conn.commit()
        finally:
            conn.close()

        if not written:
            self._log_stale_write(review_id, run_started_at, "failed")
        return written

    def get_by_submission(self, submission_id: str) -> ReviewRecord | None:
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT {_SELECT_COLUMNS} FROM ai_submission_reviews WHERE submission_id = ?",
                (submission_id,),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None

        return ReviewRecord(
            id=str(row[0]),
            submission_id=str(row[1]),
            status=str(row[2]),
            analysis_json=row[3],
            questions_json=row[4],
            coverage_json=row[5],
            error_message=row[6],
            started_at=row[7],
            finished_at=row[8],
        )

    def get_questions_json(self, submission_id: str) -> str | None:
        """Current questions, or the ones saved by the last restart."""
        conn = self._get_connection()
        try:
            row = conn.execute(
                """
                SELECT COALESCE(questions, previous_questions)
                FROM ai_submission_reviews
                WHERE submission_id = ?
                """,
                (submission_id,),
            ).fetchone()
        finally:
            conn.close()

        if row is None:
            return None
        return row[0]
