import json
import os
import sqlite3
from typing import Any, Callable, Dict

import pytest
from dotenv import load_dotenv

from submission_review.infra.repositories.review_repo import ReviewRepository
from submission_review.infra.repositories.submission_repo import SubmissionRepository


# Load the project .env so integration tests can reach real providers.
PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))
ENV_PATH = os.path.join(PROJECT_ROOT, ".env")

# A missing file is fine.
load_dotenv(dotenv_path=ENV_PATH, override=False)


_DEFAULT = object()


@pytest.fixture
def db_path(tmp_path) -> str:
    return str(tmp_path / "academy.db")


@pytest.fixture
def submission_repo(db_path: str) -> SubmissionRepository:
    repo = SubmissionRepository(db_path)
    repo.ensure_schema()
    return repo


@pytest.fixture
def review_repo(db_path: str) -> ReviewRepository:
    return ReviewRepository(db_path)


@pytest.fixture
def seed_submission(db_path: str, submission_repo: SubmissionRepository) -> Callable[..., str]:
    """Insert a submission with its module and trail; returns the submission id."""

    def _seed(
        submission_id: str = "sub-1",
        *,
        comment: Any = _DEFAULT,
        file_url: str | None = None,
        github_url: str | None = None,
        deploy_url: str | None = None,
        module_title: str = "REST APIs with Flask",
        module_description: str = "Build a small CRUD API.",
        module_type: str = "practice",
        module_content: str | None = "Routes, request parsing and status codes.",
        module_requirements: str | None = "Expose GET and POST endpoints for tasks.",
        trail_title: str = "Backend Basics",
        trail_description: str = "HTTP services from scratch.",
    ) -> str:
        if comment is _DEFAULT:
            comment = "I built the task API with Flask and stored tasks in SQLite."

        trail_id = f"trail-{submission_id}"
        module_id = f"module-{submission_id}"
        conn = sqlite3.connect(db_path)
        try:
            conn.execute(
                "INSERT INTO trails (id, title, description) VALUES (?, ?, ?)",
                (trail_id, trail_title, trail_description),
            )
            conn.execute(
                """
                INSERT INTO modules (id, trail_id, title, description, type, content, requirements)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    module_id,
                    trail_id,
                    module_title,
                    module_description,
                    module_type,
                    module_content,
                    module_requirements,
                ),
            )
            conn.execute(
                """
                INSERT INTO submissions (id, module_id, comment, file_url, github_url, deploy_url)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (submission_id, module_id, comment, file_url, github_url, deploy_url),
            )
            conn.commit()
        finally:
            conn.close()
        return submission_id

    return _seed


@pytest.fixture
def generator_payload() -> Dict[str, Any]:
    return {
        "status": "ok",
        "analysis": {
            "shortVerdict": "Solid API with a thin error-handling story.",
            "strengths": ["Clear route layout", "Uses parameterized SQL"],
            "weaknesses": ["No input validation"],
            "gaps": ["HTTP status code semantics"],
            "riskFlags": [],
            "confidence": 80,
        },
        "questions": [
            {
                "question": "How would your POST endpoint respond to a payload without a title?",
                "type": "application",
                "difficulty": "medium",
                "rationale": "Checks understanding of validation",
                "source": "submission",
            },
            {
                "question": "Explain why you chose SQLite over keeping tasks in memory.",
                "type": "reflection",
                "difficulty": "easy",
                "rationale": "Checks ownership of the design",
                "source": "submission",
            },
            {
                "question": "Which status code should a successful creation return, and why?",
                "type": "knowledge",
                "difficulty": "easy",
                "rationale": "Module theory on status codes",
                "source": "module",
            },
        ],
        "rejected_candidates": [
            {"question": "Did you use Flask?", "reason": "yes/no question"},
        ],
        "coverage": {
            "submissionTextUsed": True,
            "fileUsed": True,
            "moduleUsed": True,
            "trailUsed": True,
            "notes": "Repository contents were not visible",
        },
    }


@pytest.fixture
def generator_response(generator_payload: Dict[str, Any]) -> str:
    return json.dumps(generator_payload)
