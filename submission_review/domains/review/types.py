from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, TypedDict


class ReviewStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ReviewAnalysis(TypedDict):
    """Structured critique of a submission."""

    shortVerdict: str
    strengths: List[str]
    weaknesses: List[str]
    gaps: List[str]
    riskFlags: List[str]
    confidence: int


class ReviewQuestion(TypedDict):
    """Follow-up question for the student."""

    question: str
    type: str
    difficulty: str
    rationale: str
    source: str


class ReviewCoverage(TypedDict):
    """Which inputs the analysis could rely on."""

    submissionTextUsed: bool
    fileUsed: bool
    moduleUsed: bool
    trailUsed: bool
    notes: str


class RejectedCandidate(TypedDict):
    question: str
    reason: str


class ReviewResult(TypedDict):
    """Validated generator output."""

    analysis: ReviewAnalysis
    questions: List[ReviewQuestion]
    coverage: ReviewCoverage
    rejectedCandidates: List[RejectedCandidate]


class ReviewDTO(TypedDict):
    """Serialization-safe projection of a review record."""

    id: str
    submissionId: str
    status: str
    analysis: Optional[ReviewAnalysis]
    questions: Optional[List[ReviewQuestion]]
    coverage: Optional[ReviewCoverage]
    errorMessage: Optional[str]
    startedAt: Optional[str]
    finishedAt: Optional[str]


@dataclass(frozen=True)
class SubmissionContext:
    submission_text: Optional[str]
    file_url: Optional[str]
    github_url: Optional[str]
    deploy_url: Optional[str]
    module_title: str
    module_description: str
    module_type: str
    module_content: Optional[str]
    module_requirements: Optional[str]
    trail_title: str
    trail_description: str
    previous_questions: List[str] = field(default_factory=list)

    @property
    def links(self) -> List[str]:
        return [url for url in (self.github_url, self.deploy_url, self.file_url) if url]


@dataclass(frozen=True)
class SourceCoverage:
    submission_text_used: bool
    file_used: bool
    module_used: bool
    trail_used: bool
    notes: str


@dataclass(frozen=True)
class SubmissionRecord:
    """Submission joined with its module and trail."""

    id: str
    comment: Optional[str]
    file_url: Optional[str]
    github_url: Optional[str]
    deploy_url: Optional[str]
    module_title: str
    module_description: str
    module_type: str
    module_content: Optional[str]
    module_requirements: Optional[str]
    trail_title: str
    trail_description: str


@dataclass(frozen=True)
class ReviewRecord:
    """Raw persisted review row; JSON columns are still text."""

    id: str
    submission_id: str
    status: str
    analysis_json: Optional[str]
    questions_json: Optional[str]
    coverage_json: Optional[str]
    error_message: Optional[str]
    started_at: Optional[str]
    finished_at: Optional[str]


@dataclass(frozen=True)
class ReviewClaim:
    """Outcome of trying to move a review into ``processing``.

    ``started_at`` identifies the run: result writes only land while the row
    still carries it.
    """

    review_id: str
    acquired: bool
    status: str
    started_at: Optional[str]
