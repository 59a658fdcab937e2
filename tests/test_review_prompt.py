from dataclasses import replace

from submission_review.domains.review.prompt import (
    LIMITED_CONTEXT_MARKER,
    MAX_THEORY_CHARS,
    NO_COMMENT_PLACEHOLDER,
    NO_LINKS_PLACEHOLDER,
    THEORY_TRUNCATED_MARKER,
    build_review_request,
    build_system_instruction,
    build_user_prompt,
)
from submission_review.domains.review.schema import QUESTION_TYPES
from submission_review.domains.review.types import SubmissionContext


def _context(**overrides) -> SubmissionContext:
    base = SubmissionContext(
        submission_text="I used Flask blueprints and pytest.",
        file_url=None,
        github_url="https://github.com/student/tasks",
        deploy_url=None,
        module_title="REST APIs with Flask",
        module_description="Build a small CRUD API.",
        module_type="practice",
        module_content="Routes and status codes.",
        module_requirements="Expose GET and POST endpoints.",
        trail_title="Backend Basics",
        trail_description="HTTP services from scratch.",
    )
    return replace(base, **overrides)


def test_build_review_request_shape() -> None:
    request = build_review_request(_context())

    assert request["system"] == build_system_instruction()
    assert len(request["messages"]) == 1
    assert request["messages"][0]["role"] == "user"


def test_build_review_request_is_deterministic() -> None:
    ctx = _context(previous_questions=["Why blueprints?"])

    assert build_review_request(ctx) == build_review_request(ctx)


def test_system_instruction_embeds_output_contract() -> None:
    system = build_system_instruction()

    assert '"shortVerdict"' in system
    assert '"rejected_candidates"' in system
    assert "|".join(QUESTION_TYPES) in system


def test_user_prompt_contains_tagged_sections() -> None:
    prompt = build_user_prompt(_context())

    assert "<module_context>" in prompt
    assert "Expose GET and POST endpoints." in prompt
    assert "<student_work>" in prompt
    assert "I used Flask blueprints and pytest." in prompt
    assert "GitHub: https://github.com/student/tasks" in prompt
    assert "<previous_questions>" not in prompt
    assert LIMITED_CONTEXT_MARKER not in prompt


def test_user_prompt_lists_previous_questions() -> None:
    prompt = build_user_prompt(
        _context(previous_questions=["Why blueprints?", "How do you run the tests?"])
    )

    assert "<previous_questions>" in prompt
    assert "1. Why blueprints?" in prompt
    assert "2. How do you run the tests?" in prompt


def test_links_without_text_adds_limited_context_warning() -> None:
    prompt = build_user_prompt(_context(submission_text=None))

    assert NO_COMMENT_PLACEHOLDER in prompt
    assert LIMITED_CONTEXT_MARKER in prompt


def test_no_links_and_no_text_has_no_warning() -> None:
    prompt = build_user_prompt(_context(submission_text=None, github_url=None))

    assert NO_LINKS_PLACEHOLDER in prompt
    assert LIMITED_CONTEXT_MARKER not in prompt


def test_long_theory_is_cut() -> None:
    prompt = build_user_prompt(_context(module_content="t" * (MAX_THEORY_CHARS + 50)))

    assert THEORY_TRUNCATED_MARKER in prompt
    assert "t" * (MAX_THEORY_CHARS + 1) not in prompt


def test_whitespace_comment_with_links_counts_as_no_text() -> None:
    prompt = build_user_prompt(_context(submission_text="  \n\t "))

    assert NO_COMMENT_PLACEHOLDER in prompt
    assert LIMITED_CONTEXT_MARKER in prompt
