"""Output contract shared by the prompt builder and the response parser.

The generator is asked to return exactly ``OUTPUT_SCHEMA_EXAMPLE``; the parser
validates against the same enums and limits, so changing the contract only
happens here.
"""

from __future__ import annotations

import json
from typing import Any, Dict


QUESTION_TYPES = ("knowledge", "application", "reflection", "verification")
QUESTION_DIFFICULTIES = ("easy", "medium", "hard")
QUESTION_SOURCES = ("submission", "file", "module", "trail")

DEFAULT_QUESTION_TYPE = "knowledge"
DEFAULT_QUESTION_DIFFICULTY = "medium"
DEFAULT_QUESTION_SOURCE = "module"

DEFAULT_SHORT_VERDICT = "Analysis completed"
DEFAULT_CONFIDENCE = 50
MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100

MAX_QUESTIONS = 10
MAX_LIST_ITEMS = 10

ANALYSIS_LIST_FIELDS = ("strengths", "weaknesses", "gaps", "riskFlags")
COVERAGE_FLAG_FIELDS = ("submissionTextUsed", "fileUsed", "moduleUsed", "trailUsed")


OUTPUT_SCHEMA_EXAMPLE: Dict[str, Any] = {
    "status": "ok",
    "analysis": {
        "shortVerdict": "one or two sentence verdict",
        "strengths": ["strength 1", "strength 2"],
        "weaknesses": ["weakness 1"],
        "gaps": ["knowledge gap 1"],
        "riskFlags": ["risk flag, if any"],
        "confidence": 75,
    },
    "questions": [
        {
            "question": "question text",
            "type": "|".join(QUESTION_TYPES),
            "difficulty": "|".join(QUESTION_DIFFICULTIES),
            "rationale": "what this question checks",
            "source": "|".join(QUESTION_SOURCES),
        }
    ],
    "rejected_candidates": [
        {"question": "discarded candidate", "reason": "why it was discarded"}
    ],
    "coverage": {
        "submissionTextUsed": True,
        "fileUsed": False,
        "moduleUsed": True,
        "trailUsed": True,
        "notes": "what could be analyzed",
    },
}


def render_output_schema() -> str:
    return json.dumps(OUTPUT_SCHEMA_EXAMPLE, ensure_ascii=False, indent=2)
