from dataclasses import dataclass


@dataclass(frozen=True)
class SubmissionReviewTask:
    submission_id: str
    force: bool = False
