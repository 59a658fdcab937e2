from typing import List, NotRequired, TypedDict


class ChatMessageDict(TypedDict):
    """Single chat message payload."""

    role: str
    content: str


class ReviewRequest(TypedDict):
    """Provider-neutral request for the text generator."""

    system: str
    messages: List[ChatMessageDict]


class LLMResult(TypedDict, total=False):
    """Generator response text plus metadata."""

    content: str
    provider: str
    model: str
    elapsed_seconds: float
    input_tokens: NotRequired[int]
    output_tokens: NotRequired[int]
    total_tokens: NotRequired[int]
