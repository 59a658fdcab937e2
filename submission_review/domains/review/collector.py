from __future__ import annotations

import json
import logging
from typing import List, Protocol, Tuple

from submission_review.domains.review.types import (
    SourceCoverage,
    SubmissionContext,
    SubmissionRecord,
)
from submission_review.shared.errors import SubmissionNotFoundError


logger = logging.getLogger(__name__)

MAX_CONTENT_CHARS = 50_000
MAX_TRAIL_DESCRIPTION_CHARS = 5_000
ALL_SOURCES_AVAILABLE_NOTE = "All main sources available"


class SubmissionReader(Protocol):
    def get_with_module_and_trail(self, submission_id: str) -> SubmissionRecord | None: ...


class PreviousQuestionsReader(Protocol):
    def get_questions_json(self, submission_id: str) -> str | None: ...


def truncation_marker(max_chars: int) -> str:
    return f"\n\n[...text truncated to {max_chars} characters]"


def truncate_text(text: str | None, max_chars: int) -> str | None:
    if not text:
        return None
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + truncation_marker(max_chars)


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def build_source_coverage(record: SubmissionRecord) -> SourceCoverage:
    submission_text_used = not _is_blank(record.comment)
    file_used = bool(record.file_url or record.github_url or record.deploy_url)
    module_used = bool(
        record.module_content or record.module_requirements or record.module_description
    )
    trail_used = bool(record.trail_title and record.trail_description)

    notes: List[str] = []
    if not submission_text_used:
        notes.append("Student left no text comment")
    if not file_used:
        notes.append("No file, GitHub or deploy links")
    if not module_used:
        notes.append("Module has no content, requirements or description")
    elif not record.module_content:
        notes.append("Module content is empty")
    if not trail_used:
        notes.append("Trail title or description is missing")

    return SourceCoverage(
        submission_text_used=submission_text_used,
        file_used=file_used,
        module_used=module_used,
        trail_used=trail_used,
        notes="; ".join(notes) or ALL_SOURCES_AVAILABLE_NOTE,
    )


class ContextCollector:
    """Gathers everything the generator needs to review one submission."""

    def __init__(
        self,
        *,
        submission_reader: SubmissionReader,
        previous_questions_reader: PreviousQuestionsReader,
    ) -> None:
        self._submission_reader = submission_reader
        self._previous_questions_reader = previous_questions_reader

    def collect(self, submission_id: str) -> Tuple[SubmissionContext, SourceCoverage]:
        record = self._submission_reader.get_with_module_and_trail(submission_id)
        if record is None:
            raise SubmissionNotFoundError(submission_id)

        previous_questions = self._load_previous_questions(submission_id)
        coverage = build_source_coverage(record)

        context = SubmissionContext(
            submission_text=truncate_text(record.comment, MAX_CONTENT_CHARS),
            file_url=record.file_url or None,
            github_url=record.github_url or None,
            deploy_url=record.deploy_url or None,
            module_title=record.module_title,
            module_description=record.module_description,
            module_type=record.module_type,
            module_content=truncate_text(record.module_content, MAX_CONTENT_CHARS),
            module_requirements=truncate_text(record.module_requirements, MAX_CONTENT_CHARS),
            trail_title=record.trail_title,
            trail_description=(
                truncate_text(record.trail_description, MAX_TRAIL_DESCRIPTION_CHARS)
                or record.trail_description
            ),
            previous_questions=previous_questions,
        )

        logger.info(
            "Collected review context: submission_id=%s, previous_questions=%s, coverage=%s",
            submission_id,
            len(previous_questions),
            coverage.notes,
        )
        return context, coverage

    def _load_previous_questions(self, submission_id: str) -> List[str]:
        try:
            payload = self._previous_questions_reader.get_questions_json(submission_id)
            if not payload:
                return []
            parsed = json.loads(payload)
        except Exception:  # noqa: BLE001 - optional deduplication context
            logger.warning(
                "Could not load previous questions; continuing without them: submission_id=%s",
                submission_id,
                exc_info=True,
            )
            return []

        if not isinstance(parsed, list):
            return []

        questions: List[str] = []
        for item in parsed:
            if isinstance(item, dict):
                text = str(item.get("question") or "").strip()
            elif isinstance(item, str):
                text = item.strip()
            else:
                continue
            if text:
                questions.append(text)
        return questions
