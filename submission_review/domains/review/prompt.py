from __future__ import annotations

from typing import List

from submission_review.domains.review.schema import (
    MAX_CONFIDENCE,
    MAX_QUESTIONS,
    MIN_CONFIDENCE,
    render_output_schema,
)
from submission_review.domains.review.types import SubmissionContext
from submission_review.shared.types import ReviewRequest


MAX_THEORY_CHARS = 10_000
THEORY_TRUNCATED_MARKER = "\n[...theory truncated]"
LIMITED_CONTEXT_MARKER = "LIMITED_CONTEXT"
NO_COMMENT_PLACEHOLDER = "The student did not provide a text comment."
NO_LINKS_PLACEHOLDER = "No links to the work were provided."


SYSTEM_INSTRUCTION_TEMPLATE = """
You are an assistant that reviews practical assignments submitted by students on an online learning platform.

TASK:
1. Analyze the submitted work against the module requirements.
2. Generate follow-up questions that check whether the student really understands and owns the work.

RULES:
- Address the student directly and informally ("How did you decide...", "Explain why you chose...").
- Be objective and constructive. Never use toxic wording.
- Never claim plagiarism outright. Only raise risk flags.
- Ask questions that test real understanding, not memorized definitions.
- Mix question types: knowledge, application, reflection, verification.
- Do not ask yes/no questions or questions already answered in the student's text.
- Put any candidate question you discard into "rejected_candidates" with a short reason.
- If previous questions are listed, do not repeat them or their semantic equivalents.

QUESTIONS:
- Generate between 3 and 7 questions (never more than {max_questions}).
- Start with questions about this specific work, then about the module and trail.
- Every question needs a rationale and a source.
- confidence: {min_confidence}-{max_confidence}, where {min_confidence} means no data to analyze and {max_confidence} means a complete analysis.

OUTPUT:
Reply with a single valid JSON object and nothing else: no markdown, no text around it.
It must have exactly this shape:
{schema}
"""


def build_system_instruction() -> str:
    return SYSTEM_INSTRUCTION_TEMPLATE.format(
        max_questions=MAX_QUESTIONS,
        min_confidence=MIN_CONFIDENCE,
        max_confidence=MAX_CONFIDENCE,
        schema=render_output_schema(),
    ).strip()


def _theory_excerpt(content: str) -> str:
    if len(content) <= MAX_THEORY_CHARS:
        return content
    return content[:MAX_THEORY_CHARS] + THEORY_TRUNCATED_MARKER


def _has_submission_text(ctx: SubmissionContext) -> bool:
    return bool((ctx.submission_text or "").strip())


def _build_module_section(ctx: SubmissionContext) -> str:
    lines = [
        "<module_context>",
        f'Trail: "{ctx.trail_title}" - {ctx.trail_description}',
        f'Module: "{ctx.module_title}" (type: {ctx.module_type})',
        f"Module description: {ctx.module_description}",
    ]
    if ctx.module_requirements:
        lines.append(f"\nAssignment requirements:\n{ctx.module_requirements}")
    if ctx.module_content:
        lines.append(f"\nModule theory (excerpt):\n{_theory_excerpt(ctx.module_content)}")
    lines.append("</module_context>")
    return "\n".join(lines)


def _build_student_section(ctx: SubmissionContext) -> str:
    lines = ["<student_work>"]
    if _has_submission_text(ctx):
        lines.append(f"Student comment / answer:\n{ctx.submission_text}")
    else:
        lines.append(NO_COMMENT_PLACEHOLDER)

    links: List[str] = []
    if ctx.github_url:
        links.append(f"GitHub: {ctx.github_url}")
    if ctx.deploy_url:
        links.append(f"Deploy: {ctx.deploy_url}")
    if ctx.file_url:
        links.append(f"Work file: {ctx.file_url}")

    if links:
        lines.append("\nLinks to the work:\n" + "\n".join(links))
    else:
        lines.append(NO_LINKS_PLACEHOLDER)
    lines.append("</student_work>")
    return "\n".join(lines)


def _build_previous_questions_section(previous_questions: List[str]) -> str:
    numbered = "\n".join(
        f"{index}. {question}" for index, question in enumerate(previous_questions, start=1)
    )
    return (
        "<previous_questions>\n"
        "These questions were already asked about this work. Do not repeat them "
        "and do not ask semantically equivalent questions:\n"
        f"{numbered}\n"
        "</previous_questions>"
    )


def _build_context_warning() -> str:
    return (
        "<context_warning>\n"
        f"{LIMITED_CONTEXT_MARKER}: the student submitted only links and no text. "
        "You cannot open links or see their contents. Base the analysis and the "
        "questions on the module requirements alone, lower the confidence "
        "accordingly, and ask the student to explain the work itself.\n"
        "</context_warning>"
    )


def build_user_prompt(ctx: SubmissionContext) -> str:
    sections = [_build_module_section(ctx), _build_student_section(ctx)]

    if ctx.previous_questions:
        sections.append(_build_previous_questions_section(ctx.previous_questions))

    if ctx.links and not _has_submission_text(ctx):
        sections.append(_build_context_warning())

    sections.append("Analyze the work and generate the questions. Reply with valid JSON only.")
    return "\n\n".join(sections)


def build_review_request(ctx: SubmissionContext) -> ReviewRequest:
    """Map a submission context to a provider-neutral generator request."""
    return {
        "system": build_system_instruction(),
        "messages": [
            {
                "role": "user",
                "content": build_user_prompt(ctx),
            }
        ],
    }
