import json

import pytest

from submission_review.domains.review.parser import (
    coerce_confidence,
    extract_json_object,
    parse_review_response,
    strip_markdown_fence,
    validate_analysis,
    validate_question,
)
from submission_review.shared.errors import ReviewParseError


def test_strip_markdown_fence() -> None:
    assert strip_markdown_fence('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_markdown_fence('```\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_markdown_fence('  {"a": 1}  ') == '{"a": 1}'


def test_parse_fenced_response(generator_payload) -> None:
    raw = f"```json\n{json.dumps(generator_payload)}\n```"

    result = parse_review_response(raw)

    assert result["analysis"]["confidence"] == 80
    assert len(result["questions"]) == 3
    assert result["rejectedCandidates"] == [
        {"question": "Did you use Flask?", "reason": "yes/no question"}
    ]


def test_parse_recovers_object_from_prose(generator_payload) -> None:
    raw = f"Sure! Here you go:\n{json.dumps(generator_payload)}\nLet me know."

    result = parse_review_response(raw)

    assert result["analysis"]["shortVerdict"] == generator_payload["analysis"]["shortVerdict"]


@pytest.mark.parametrize(
    "template",
    [
        "{body}",
        "```json\n{body}\n```",
        "```\n{body}\n```",
        "Sure! Here you go:\n{body}\nLet me know.",
    ],
    ids=["clean", "fenced", "bare-fence", "prose"],
)
def test_wrapped_json_parses_like_clean_json(generator_payload, template) -> None:
    body = json.dumps(generator_payload)

    assert parse_review_response(template.format(body=body)) == parse_review_response(body)


def test_parse_non_json_raises_with_preview() -> None:
    raw = "No JSON here. " * 40

    with pytest.raises(ReviewParseError) as exc_info:
        parse_review_response(raw)

    message = str(exc_info.value)
    assert message.startswith("Generator response is not valid JSON. Raw: No JSON here.")
    assert message.endswith(raw[:200])


def test_top_level_array_is_not_an_object() -> None:
    with pytest.raises(ReviewParseError):
        extract_json_object("[1, 2, 3]")


def test_empty_object_gets_defaults() -> None:
    result = parse_review_response("{}")

    assert result["analysis"] == {
        "shortVerdict": "Analysis completed",
        "strengths": [],
        "weaknesses": [],
        "gaps": [],
        "riskFlags": [],
        "confidence": 50,
    }
    assert result["questions"] == []
    assert result["coverage"]["notes"] == ""
    assert result["rejectedCandidates"] == []


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (250, 100),
        (-5, 0),
        (72.6, 73),
        ("64", 64),
        ("high", 50),
        (None, 50),
        (True, 50),
        (float("nan"), 50),
    ],
)
def test_coerce_confidence(raw, expected) -> None:
    assert coerce_confidence(raw) == expected


def test_invalid_enums_fall_back() -> None:
    question = validate_question(
        {"question": "Why?", "type": "trick", "difficulty": "extreme", "source": "internet"}
    )

    assert question == {
        "question": "Why?",
        "type": "knowledge",
        "difficulty": "medium",
        "rationale": "",
        "source": "module",
    }


def test_questions_are_capped_and_non_objects_dropped() -> None:
    questions = ["not a question"] + [{"question": f"Q{index}"} for index in range(15)]

    result = parse_review_response(json.dumps({"questions": questions}))

    assert len(result["questions"]) == 10
    assert result["questions"][0]["question"] == "Q0"


def test_analysis_lists_keep_strings_only() -> None:
    analysis = validate_analysis(
        {
            "shortVerdict": "  ",
            "strengths": ["good", 3, None, "clear"],
            "weaknesses": "not a list",
            "gaps": [f"gap {index}" for index in range(20)],
        }
    )

    assert analysis["shortVerdict"] == "Analysis completed"
    assert analysis["strengths"] == ["good", "clear"]
    assert analysis["weaknesses"] == []
    assert len(analysis["gaps"]) == 10


@pytest.mark.parametrize(
    "number, expected",
    [
        ("1" + "0" * 400, 100),
        ("-1" + "0" * 400, 0),
        ("1" + "0" * 5000, 100),
    ],
    ids=["huge", "huge-negative", "past-int-digit-limit"],
)
def test_huge_confidence_is_clamped(number, expected) -> None:
    result = parse_review_response('{"analysis": {"confidence": ' + number + "}}")

    assert result["analysis"]["confidence"] == expected
