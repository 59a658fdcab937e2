"""Defensive decoding of generator output.

Generator replies are treated as untrusted: once any JSON object can be
recovered, every field is coerced or defaulted instead of failing, so the
pipeline always ends with a bounded, usable result.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional, Sequence

from submission_review.domains.review.schema import (
    ANALYSIS_LIST_FIELDS,
    COVERAGE_FLAG_FIELDS,
    DEFAULT_CONFIDENCE,
    DEFAULT_QUESTION_DIFFICULTY,
    DEFAULT_QUESTION_SOURCE,
    DEFAULT_QUESTION_TYPE,
    DEFAULT_SHORT_VERDICT,
    MAX_CONFIDENCE,
    MAX_LIST_ITEMS,
    MAX_QUESTIONS,
    MIN_CONFIDENCE,
    QUESTION_DIFFICULTIES,
    QUESTION_SOURCES,
    QUESTION_TYPES,
)
from submission_review.domains.review.types import (
    RejectedCandidate,
    ReviewAnalysis,
    ReviewCoverage,
    ReviewQuestion,
    ReviewResult,
)
from submission_review.shared.errors import ReviewParseError


logger = logging.getLogger(__name__)

RAW_PREVIEW_CHARS = 200

_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$", flags=re.DOTALL)


def strip_markdown_fence(text: str) -> str:
    cleaned = text.strip()
    if cleaned.startswith("```") and cleaned.endswith("```") and len(cleaned) >= 6:
        cleaned = _CODE_FENCE_RE.sub("", cleaned).strip()
    return cleaned


def _parse_json_int(text: str) -> int | float:
    # Past the interpreter's int digit limit; the value only feeds clamped fields.
    try:
        return int(text)
    except ValueError:
        return float(text)


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text, parse_int=_parse_json_int)
    except ValueError:
        return None
    if isinstance(parsed, dict):
        return parsed
    return None


def extract_json_object(raw_text: str) -> Dict[str, Any]:
    parsed = _loads_object(strip_markdown_fence(raw_text))
    if parsed is not None:
        return parsed

    start = raw_text.find("{")
    end = raw_text.rfind("}")
    if start != -1 and end > start:
        parsed = _loads_object(raw_text[start : end + 1])
        if parsed is not None:
            logger.info("Recovered generator JSON from surrounding text")
            return parsed

    raise ReviewParseError(
        f"Generator response is not valid JSON. Raw: {raw_text[:RAW_PREVIEW_CHARS]}"
    )


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)


def ensure_string_list(value: Any, limit: int = MAX_LIST_ITEMS) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)][:limit]


def coerce_confidence(value: Any) -> int:
    number: float
    if isinstance(value, bool) or value is None:
        number = DEFAULT_CONFIDENCE
    elif isinstance(value, int):
        return min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, value))
    elif isinstance(value, float):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except (ValueError, OverflowError):
            number = DEFAULT_CONFIDENCE

    if math.isnan(number):
        number = DEFAULT_CONFIDENCE
    return int(round(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, number))))


def validate_enum(value: Any, allowed: Sequence[str], fallback: str) -> str:
    return value if isinstance(value, str) and value in allowed else fallback


def validate_analysis(value: Any) -> ReviewAnalysis:
    data = _as_dict(value)
    short_verdict = _as_text(data.get("shortVerdict")).strip() or DEFAULT_SHORT_VERDICT
    analysis: Dict[str, Any] = {"shortVerdict": short_verdict}
    for field_name in ANALYSIS_LIST_FIELDS:
        analysis[field_name] = ensure_string_list(data.get(field_name))
    analysis["confidence"] = coerce_confidence(data.get("confidence"))
    return analysis  # type: ignore[return-value]


def validate_question(value: Dict[str, Any]) -> ReviewQuestion:
    return {
        "question": _as_text(value.get("question")),
        "type": validate_enum(value.get("type"), QUESTION_TYPES, DEFAULT_QUESTION_TYPE),
        "difficulty": validate_enum(
            value.get("difficulty"), QUESTION_DIFFICULTIES, DEFAULT_QUESTION_DIFFICULTY
        ),
        "rationale": _as_text(value.get("rationale")),
        "source": validate_enum(value.get("source"), QUESTION_SOURCES, DEFAULT_QUESTION_SOURCE),
    }


def validate_questions(value: Any) -> List[ReviewQuestion]:
    if not isinstance(value, list):
        return []
    entries = [item for item in value if isinstance(item, dict)]
    if len(entries) > MAX_QUESTIONS:
        logger.info("Generator returned %s questions; keeping the first %s", len(entries), MAX_QUESTIONS)
    return [validate_question(item) for item in entries[:MAX_QUESTIONS]]


def validate_coverage(value: Any) -> ReviewCoverage:
    data = _as_dict(value)
    coverage: Dict[str, Any] = {name: bool(data.get(name)) for name in COVERAGE_FLAG_FIELDS}
    coverage["notes"] = _as_text(data.get("notes"))
    return coverage  # type: ignore[return-value]


def _validate_rejected_candidates(value: Any) -> List[RejectedCandidate]:
    if not isinstance(value, list):
        return []
    candidates: List[RejectedCandidate] = []
    for item in value:
        if isinstance(item, dict):
            candidates.append(
                {
                    "question": _as_text(item.get("question")),
                    "reason": _as_text(item.get("reason")),
                }
            )
        elif isinstance(item, str):
            candidates.append({"question": item, "reason": ""})
    return candidates


def validate_review_payload(data: Dict[str, Any]) -> ReviewResult:
    return {
        "analysis": validate_analysis(data.get("analysis")),
        "questions": validate_questions(data.get("questions")),
        "coverage": validate_coverage(data.get("coverage")),
        "rejectedCandidates": _validate_rejected_candidates(data.get("rejected_candidates")),
    }


def parse_review_response(raw_text: str) -> ReviewResult:
    """Turn raw generator text into a validated result.

    Raises :class:`ReviewParseError` only when no JSON object can be found.
    """
    return validate_review_payload(extract_json_object(raw_text))
