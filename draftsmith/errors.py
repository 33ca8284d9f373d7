"""
Exception hierarchy for the draft pipeline.

NotFound and Precondition errors surface directly to the caller. External
failures propagate out of stage workers so the queue can retry the job.
"""


class DraftsmithError(Exception):
    """Base exception for all draftsmith errors."""

    pass


class NotFoundError(DraftsmithError):
    """Raised when a referenced draft, keyword or job does not exist."""

    pass


class PreconditionError(DraftsmithError):
    """Raised when an operation is not allowed in the entity's current state."""

    pass


class InvalidTransitionError(PreconditionError):
    """Raised when a draft status change is not in the transition table."""

    def __init__(self, draft_id: str, current: str, target: str):
        self.draft_id = draft_id
        self.current = current
        self.target = target
        super().__init__(f"Draft {draft_id}: cannot move from {current} to {target}")


class ExternalServiceError(DraftsmithError):
    """Raised when a research, scrape or LLM call fails."""

    pass


class MalformedResponseError(ExternalServiceError):
    """Raised when a structured LLM response does not parse or validate."""

    pass


class PayloadValidationError(DraftsmithError):
    """Raised when a job payload does not match its stage schema. Not retried."""

    pass


class StaleJobError(DraftsmithError):
    """Raised when a job's draft has already moved past the job's stage."""

    pass
