"""Error taxonomy for the Tempo pipeline.

Every error is local to one operation; none of them implies that session or
note state was modified.
"""

from __future__ import annotations


class TempoError(Exception):
    code = "TEMPO_ERROR"
    retryable = False

    def __init__(self, message: str = "", *, code: str | None = None, retryable: bool | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable

    def to_detail(self) -> dict[str, object]:
        return {"code": self.code, "message": self.message, "retryable": self.retryable}


class NotFoundError(TempoError):
    code = "NOT_FOUND"


class SessionModeError(TempoError):
    code = "SESSION_MODE_MISMATCH"


class ValidationFailedError(TempoError):
    code = "VALIDATION_FAILED"


class ContextUnavailableError(TempoError):
    """The student context could not be loaded; nothing downstream may run."""

    code = "CONTEXT_UNAVAILABLE"


class ClarificationError(TempoError):
    code = "CLARIFY_FAILED"
    retryable = True


class ClarificationStateError(TempoError):
    code = "CLARIFY_STATE"


class GenerationError(TempoError):
    code = "GENERATION_FAILED"
    retryable = True


class GenerationTransportError(GenerationError):
    code = "GENERATION_FAILED"


class InvalidAxesError(GenerationError):
    code = "INVALID_AXES"

    def __init__(self, reason: str):
        super().__init__(f"Model output is not a valid 3-axis plan: {reason}")
        self.reason = reason


class GenerationInProgressError(GenerationError):
    code = "GENERATION_IN_PROGRESS"


class DecisionRunNotSavedError(GenerationError):
    """Axes were generated but the run could not be persisted; generate again."""

    code = "GENERATED_NOT_SAVED"


class DraftReportEmptyError(TempoError):
    code = "DRAFT_REPORT_EMPTY"


class DraftReportError(TempoError):
    code = "DRAFT_REPORT_FAILED"
    retryable = True
