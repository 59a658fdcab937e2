import json

import pytest

from submission_review.domains.review.collector import (
    ALL_SOURCES_AVAILABLE_NOTE,
    MAX_CONTENT_CHARS,
    MAX_TRAIL_DESCRIPTION_CHARS,
    ContextCollector,
    truncate_text,
    truncation_marker,
)
from submission_review.shared.errors import SubmissionNotFoundError


class _FakePreviousQuestions:
    def __init__(self, payload=None, error: Exception | None = None) -> None:
        self.payload = payload
        self.error = error

    def get_questions_json(self, submission_id: str):
        if self.error is not None:
            raise self.error
        return self.payload


def _collector(submission_repo, previous=None) -> ContextCollector:
    return ContextCollector(
        submission_reader=submission_repo,
        previous_questions_reader=previous or _FakePreviousQuestions(),
    )


def test_truncate_text_appends_marker_only_above_cap() -> None:
    exact = "a" * 100
    too_long = "a" * 101

    assert truncate_text(exact, 100) == exact
    truncated = truncate_text(too_long, 100)
    assert truncated is not None
    assert len(truncated) == 100 + len(truncation_marker(100))
    assert truncated.endswith("[...text truncated to 100 characters]")
    assert truncate_text("", 100) is None
    assert truncate_text(None, 100) is None


def test_collect_builds_context_with_all_sources(submission_repo, seed_submission) -> None:
    seed_submission("sub-1", github_url="https://github.com/student/tasks")

    context, coverage = _collector(submission_repo).collect("sub-1")

    assert context.submission_text.startswith("I built the task API")
    assert context.github_url == "https://github.com/student/tasks"
    assert context.module_title == "REST APIs with Flask"
    assert context.trail_title == "Backend Basics"
    assert context.previous_questions == []
    assert coverage.submission_text_used is True
    assert coverage.file_used is True
    assert coverage.module_used is True
    assert coverage.trail_used is True
    assert coverage.notes == ALL_SOURCES_AVAILABLE_NOTE


def test_collect_truncates_long_fields(submission_repo, seed_submission) -> None:
    seed_submission(
        "sub-long",
        comment="c" * (MAX_CONTENT_CHARS + 10),
        module_content="m" * (MAX_CONTENT_CHARS + 1),
        trail_description="t" * (MAX_TRAIL_DESCRIPTION_CHARS + 1),
    )

    context, _ = _collector(submission_repo).collect("sub-long")

    assert len(context.submission_text) == MAX_CONTENT_CHARS + len(
        truncation_marker(MAX_CONTENT_CHARS)
    )
    assert len(context.module_content) == MAX_CONTENT_CHARS + len(
        truncation_marker(MAX_CONTENT_CHARS)
    )
    assert len(context.trail_description) == MAX_TRAIL_DESCRIPTION_CHARS + len(
        truncation_marker(MAX_TRAIL_DESCRIPTION_CHARS)
    )


def test_collect_reports_missing_sources(submission_repo, seed_submission) -> None:
    seed_submission(
        "sub-bare",
        comment="   ",
        module_content=None,
        module_requirements=None,
        module_description="",
        trail_description="",
    )

    _, coverage = _collector(submission_repo).collect("sub-bare")

    assert coverage.submission_text_used is False
    assert coverage.file_used is False
    assert coverage.module_used is False
    assert coverage.trail_used is False
    assert coverage.notes == (
        "Student left no text comment; No file, GitHub or deploy links; "
        "Module has no content, requirements or description; "
        "Trail title or description is missing"
    )


def test_collect_unknown_submission_raises(submission_repo) -> None:
    with pytest.raises(SubmissionNotFoundError):
        _collector(submission_repo).collect("missing")


def test_collect_reads_previous_questions(submission_repo, seed_submission) -> None:
    seed_submission("sub-1")
    previous = _FakePreviousQuestions(
        json.dumps([{"question": "Why SQLite?"}, {"question": "  "}, "How do you test it?", 3])
    )

    context, _ = _collector(submission_repo, previous).collect("sub-1")

    assert context.previous_questions == ["Why SQLite?", "How do you test it?"]


@pytest.mark.parametrize(
    "previous",
    [
        _FakePreviousQuestions("not json"),
        _FakePreviousQuestions(json.dumps({"question": "x"})),
        _FakePreviousQuestions(error=RuntimeError("database is locked")),
    ],
)
def test_collect_ignores_unreadable_previous_questions(
    submission_repo, seed_submission, previous
) -> None:
    seed_submission("sub-1")

    context, _ = _collector(submission_repo, previous).collect("sub-1")

    assert context.previous_questions == []
