class ConfigurationError(ValueError):
    """Raised when required application settings are missing or invalid."""


class SubmissionNotFoundError(LookupError):
    """Raised when the submission to review does not exist."""

    def __init__(self, submission_id: str) -> None:
        super().__init__(f"Submission {submission_id} not found")
        self.submission_id = submission_id


class LLMInvocationError(RuntimeError):
    """Raised when the text generator fails or returns an unusable payload."""


class UpstreamTimeoutError(LLMInvocationError):
    """Raised when the text generator does not answer before the deadline."""


class ReviewParseError(ValueError):
    """Raised when no JSON object can be recovered from the generator output."""
