from __future__ import annotations

import logging
import os
import sqlite3

from submission_review.domains.review.types import SubmissionRecord


logger = logging.getLogger(__name__)

# Owned by the course/submission side of the platform; created here only so a
# fresh development database (and the test suite) has something to read.
SUBMISSION_SCHEMA = """
CREATE TABLE IF NOT EXISTS trails (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT ''
);
CREATE TABLE IF NOT EXISTS modules (
    id TEXT PRIMARY KEY,
    trail_id TEXT NOT NULL REFERENCES trails (id),
    title TEXT NOT NULL DEFAULT '',
    description TEXT NOT NULL DEFAULT '',
    type TEXT NOT NULL DEFAULT 'practice',
    content TEXT,
    requirements TEXT
);
CREATE TABLE IF NOT EXISTS submissions (
    id TEXT PRIMARY KEY,
    module_id TEXT NOT NULL REFERENCES modules (id),
    comment TEXT,
    file_url TEXT,
    github_url TEXT,
    deploy_url TEXT
);
"""


class SubmissionRepository:
    """Read-only access to submissions with their module and trail."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _get_connection(self) -> sqlite3.Connection:
        directory = os.path.dirname(self._db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return sqlite3.connect(self._db_path)

    def ensure_schema(self) -> None:
        conn = self._get_connection()
        try:
            conn.executescript(SUBMISSION_SCHEMA)
            conn.commit()
        finally:
            conn.close()

    def exists(self, submission_id: str) -> bool:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                "SELECT 1 FROM submissions WHERE id = ?",
                (submission_id,),
            )
            return cursor.fetchone() is not None
        finally:
            conn.close()

    def get_with_module_and_trail(self, submission_id: str) -> SubmissionRecord | None:
        conn = self._get_connection()
        try:
            cursor = conn.execute(
                """
                SELECT
                    s.id, s.comment, s.file_url, s.github_url, s.deploy_url,
                    m.title, m.description, m.type, m.content, m.requirements,
                    t.title, t.description
                FROM submissions AS s
                JOIN modules AS m ON m.id = s.module_id
                LEFT JOIN trails AS t ON t.id = m.trail_id
                WHERE s.id = ?
                """,
                (submission_id,),
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        if row is None:
            logger.info("Submission not found: submission_id=%s", submission_id)
            return None

        return SubmissionRecord(
            id=str(row[0]),
            comment=row[1],
            file_url=row[2],
            github_url=row[3],
            deploy_url=row[4],
            module_title=row[5] or "",
            module_description=row[6] or "",
            module_type=row[7] or "",
            module_content=row[8],
            module_requirements=row[9],
            trail_title=row[10] or "",
            trail_description=row[11] or "",
        )
