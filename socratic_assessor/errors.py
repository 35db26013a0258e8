"""
Error taxonomy for the assessment pipeline.

Every error carries the accumulated list of human-readable reasons so a
caller can report several simultaneous issues from one unit of work.
"""
from typing import Iterable, List, Optional


class AssessmentError(Exception):
    """Base class for pipeline failures."""

    def __init__(self, message: str, reasons: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.message = message
        self.reasons: List[str] = list(reasons) if reasons else [message]

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            "error_type": self.error_type,
            "message": self.message,
            "reasons": list(self.reasons),
        }


class InputError(AssessmentError):
    """A required entity is missing or invalid."""


class PreconditionError(AssessmentError):
    """The entity is not in a state that allows the operation."""


class EvaluationInProgressError(PreconditionError):
    """An evaluation for the conversation is already running."""


class CapabilityError(AssessmentError):
    """The embedding or completion capability failed for a whole unit."""


class GenerationFailure(CapabilityError):
    """No usable evaluator turn could be generated."""


class ParseError(AssessmentError):
    """Structured model output could not be decoded."""
