"""Keyword-overlap quality filter for generated questions.

Drops questions that are empty, trivial, repeat earlier ones or are already
answered by the student's own text. The prompt asks the generator to avoid
all of these; this is a second pass over what it returns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Set

from submission_review.domains.review.types import RejectedCandidate, ReviewQuestion


MIN_QUESTION_CHARS = 10
MIN_SOURCE_TEXT_CHARS = 20
MIN_KEYWORDS = 3
ANSWERED_OVERLAP_RATIO = 0.7
DUPLICATE_OVERLAP_RATIO = 0.8
SHORT_DEFINITION_WORDS = 8

REASON_EMPTY = "EMPTY_OR_TOO_SHORT"
REASON_DUPLICATE_PREVIOUS = "DUPLICATE_SURFACE"
REASON_TRIVIAL = "TRIVIAL"
REASON_ALREADY_ANSWERED = "ALREADY_ANSWERED"
REASON_DUPLICATE_BATCH = "DUPLICATE_WITHIN_BATCH"

_NON_WORD_RE = re.compile(r"[^\w\s]|_")
_WHITESPACE_RE = re.compile(r"\s+")

_YES_NO_RE = re.compile(
    r"^(is it true|is it correct|is there|are there|is this|do you know|did you use|"
    r"did you apply|have you used|have you heard|are you familiar|do you use|can you)\b"
)
_DEFINITION_RE = re.compile(r"^what (is|are)\s")


@dataclass
class FilterResult:
    accepted: List[ReviewQuestion] = field(default_factory=list)
    rejected: List[RejectedCandidate] = field(default_factory=list)
    total_candidates: int = 0

    @property
    def rejected_reasons(self) -> List[str]:
        return list(dict.fromkeys(item["reason"] for item in self.rejected))


def normalize_text(text: str) -> str:
    lowered = _NON_WORD_RE.sub(" ", text.lower())
    return _WHITESPACE_RE.sub(" ", lowered).strip()


def extract_keywords(text: str) -> Set[str]:
    return {word for word in normalize_text(text).split(" ") if len(word) > 3}


def is_likely_answered_by_text(question: str, source_text: str) -> bool:
    if not source_text or len(source_text.strip()) < MIN_SOURCE_TEXT_CHARS:
        return False

    question_keywords = extract_keywords(question)
    if len(question_keywords) < MIN_KEYWORDS:
        return False

    overlap = len(question_keywords & extract_keywords(source_text))
    return overlap / len(question_keywords) > ANSWERED_OVERLAP_RATIO


def is_trivial_question(question: str) -> bool:
    normalized = normalize_text(question)
    if _YES_NO_RE.match(normalized):
        return True
    return bool(_DEFINITION_RE.match(normalized)) and len(normalized.split(" ")) < SHORT_DEFINITION_WORDS


def is_duplicate_of_previous(question: str, previous_questions: Iterable[str]) -> bool:
    normalized = normalize_text(question)
    keywords = extract_keywords(question)

    for previous in previous_questions:
        if normalized == normalize_text(previous):
            return True

        previous_keywords = extract_keywords(previous)
        if len(keywords) < MIN_KEYWORDS or len(previous_keywords) < MIN_KEYWORDS:
            continue

        overlap = len(keywords & previous_keywords)
        if overlap / max(len(keywords), len(previous_keywords)) > DUPLICATE_OVERLAP_RATIO:
            return True

    return False


def filter_questions(
    questions: List[ReviewQuestion],
    *,
    submission_text: str,
    previous_questions: List[str],
) -> FilterResult:
    result = FilterResult(total_candidates=len(questions))

    for item in questions:
        text = item["question"]
        reason: str | None = None

        if len(text.strip()) < MIN_QUESTION_CHARS:
            reason = REASON_EMPTY
        elif is_duplicate_of_previous(text, previous_questions):
            reason = REASON_DUPLICATE_PREVIOUS
        elif is_trivial_question(text):
            reason = REASON_TRIVIAL
        elif is_likely_answered_by_text(text, submission_text):
            reason = REASON_ALREADY_ANSWERED
        elif is_duplicate_of_previous(text, (accepted["question"] for accepted in result.accepted)):
            reason = REASON_DUPLICATE_BATCH

        if reason is None:
            result.accepted.append(item)
        else:
            result.rejected.append({"question": text, "reason": reason})

    return result
