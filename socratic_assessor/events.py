"""
Evaluation events handed to an external notifier.

The core only emits the fact; delivery (websocket broadcast, queue, email)
belongs to whoever supplies the notifier callable.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple
import logging

from .models import GradeReport

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationEvent:
    """Completion or failure of one conversation evaluation."""
    conversation_id: str
    grade_report: Optional[GradeReport] = None
    errors: Tuple[str, ...] = ()

    @property
    def kind(self) -> str:
        return "completed" if self.grade_report is not None else "failed"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "type": f"evaluation_{self.kind}",
            "conversation_id": self.conversation_id,
            "errors": list(self.errors),
        }
        if self.grade_report is not None:
            data["grade_report"] = self.grade_report.to_dict()
        return data


Notifier = Callable[[EvaluationEvent], None]


def log_notifier(event: EvaluationEvent):
    """Default notifier: write the event to the log."""
    if event.grade_report is not None:
        logger.info(
            f"Evaluation completed for conversation {event.conversation_id} "
            f"(overall {event.grade_report.overall_score})"
        )
    else:
        logger.warning(
            f"Evaluation failed for conversation {event.conversation_id}: {'; '.join(event.errors)}"
        )
