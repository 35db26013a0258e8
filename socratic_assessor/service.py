"""
Assessment Service - Work units over the whole pipeline.

Each method is one independently triggerable unit operating on a single
document or conversation. Raised AssessmentErrors are converted into result
dictionaries carrying a status, the accumulated reasons and the error type.
"""
import random
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union
from datetime import datetime
import logging

from config import DialogueConfig
from .agents import EvaluationOrchestrator, create_agent_system
from .dialogue import DialogueResponder
from .errors import AssessmentError, GenerationFailure
from .events import EvaluationEvent, Notifier, log_notifier
from .indexing import DocumentIndexer
from .llm import ModelCapability, create_capability
from .models import Conversation, Document, MisconceptionPattern, Role, SourceFile
from .storage import Repository
from .synthesis import RubricSynthesizer, SummarySynthesizer
from .vector_store import InMemoryVectorStore, VectorStore

logger = logging.getLogger(__name__)


def _failure(error: AssessmentError, **extra) -> Dict[str, Any]:
    result = {
        "status": "FAILED",
        "error_type": error.error_type,
        "message": error.message,
        "errors": list(error.reasons),
    }
    result.update(extra)
    return result


class AssessmentService:
    """Entry point for ingestion, synthesis, dialogue and evaluation."""

    def __init__(
        self,
        repository: Repository,
        indexer: DocumentIndexer,
        summary_synthesizer: SummarySynthesizer,
        rubric_synthesizer: RubricSynthesizer,
        responder: DialogueResponder,
        orchestrator: EvaluationOrchestrator,
        notifier: Notifier = log_notifier
    ):
        self.repository = repository
        self.indexer = indexer
        self.summary_synthesizer = summary_synthesizer
        self.rubric_synthesizer = rubric_synthesizer
        self.responder = responder
        self.orchestrator = orchestrator
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Entity helpers
    # ------------------------------------------------------------------

    def add_document(self, title: str, paths: Iterable[Union[str, Path]]) -> Document:
        files = [SourceFile(filename=Path(p).name, path=str(p)) for p in paths]
        return self.repository.add_document(Document(title=title, files=files))

    def add_misconception_pattern(
        self,
        document_id: str,
        concept: str,
        name: str,
        signal_phrases: Sequence[str],
        recommended_followups: Sequence[str] = ()
    ) -> MisconceptionPattern:
        self.repository.require_document(document_id)
        return self.repository.add_misconception_pattern(MisconceptionPattern(
            document_id=document_id,
            concept=concept,
            name=name,
            signal_phrases=list(signal_phrases),
            recommended_followups=list(recommended_followups)
        ))

    def start_conversation(self, document_id: str, learner_id: Optional[str] = None) -> Conversation:
        self.repository.require_document(document_id)
        return self.repository.create_conversation(document_id, learner_id)

    # ------------------------------------------------------------------
    # Document work units
    # ------------------------------------------------------------------

    def index_document(self, document_id: str) -> Dict[str, Any]:
        try:
            result = self.indexer.index(document_id)
        except AssessmentError as e:
            logger.error(f"Indexing failed for document {document_id}: {e.message}")
            return _failure(e, document_id=document_id)

        data = result.to_dict()
        data["status"] = "COMPLETE" if not result.errors else "PARTIAL"
        return data

    def generate_summary(self, document_id: str) -> Dict[str, Any]:
        try:
            result = self.summary_synthesizer.synthesize(document_id)
        except AssessmentError as e:
            logger.error(f"Summary generation failed for document {document_id}: {e.message}")
            return _failure(e, document_id=document_id)

        data = result.to_dict()
        data["status"] = "COMPLETE"
        return data

    def generate_rubrics(self, document_id: str) -> Dict[str, Any]:
        try:
            result = self.rubric_synthesizer.synthesize(document_id)
        except AssessmentError as e:
            logger.error(f"Rubric generation failed for document {document_id}: {e.message}")
            return _failure(e, document_id=document_id)

        data = result.to_dict()
        data["status"] = "COMPLETE" if not result.errors else "PARTIAL"
        return data

    # ------------------------------------------------------------------
    # Dialogue
    # ------------------------------------------------------------------

    def respond_to_learner(self, conversation_id: str, content: str) -> Dict[str, Any]:
        """
        Record a learner message and generate the evaluator reply.

        When generation fails, a fixed apology turn is appended instead so
        the learner always sees a response.
        """
        try:
            learner_message = self.repository.append_message(conversation_id, Role.LEARNER, content)
        except AssessmentError as e:
            return _failure(e, conversation_id=conversation_id)

        try:
            turn = self.responder.respond(conversation_id, learner_message.id)
        except GenerationFailure as e:
            logger.error(f"Evaluator response failed for conversation {conversation_id}: {e.message}")
            error_turn = self.repository.append_message(
                conversation_id, Role.EVALUATOR, DialogueConfig.ERROR_TURN
            )
            return _failure(
                e,
                conversation_id=conversation_id,
                learner_message_id=learner_message.id,
                message_id=error_turn.id,
                content=error_turn.content
            )
        except AssessmentError as e:
            return _failure(e, conversation_id=conversation_id, learner_message_id=learner_message.id)

        data = turn.to_dict()
        data["learner_message_id"] = learner_message.id
        data["status"] = "COMPLETE"
        return data

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate_conversation(self, conversation_id: str, progress_callback=None) -> Dict[str, Any]:
        """Run one evaluation guarded by the per-conversation in-flight marker."""
        try:
            self.repository.begin_evaluation(conversation_id)
        except AssessmentError as e:
            logger.warning(f"Evaluation not started for conversation {conversation_id}: {e.message}")
            return _failure(e, conversation_id=conversation_id)

        try:
            result = self.orchestrator.process(conversation_id, progress_callback)
        except AssessmentError as e:
            logger.error(f"Evaluation failed for conversation {conversation_id}: {e.message}")
            self.notifier(EvaluationEvent(conversation_id, errors=tuple(e.reasons)))
            return _failure(e, conversation_id=conversation_id)
        finally:
            self.repository.end_evaluation(conversation_id)

        report = result["grade_report"]
        self.notifier(EvaluationEvent(conversation_id, grade_report=report, errors=tuple(result["errors"])))

        return {
            "conversation_id": conversation_id,
            "status": result["status"],
            "grade_report": report.to_dict(),
            "analysis": result["analysis"].to_dict(),
            "concepts_evaluated": result["concepts_evaluated"],
            "errors": result["errors"],
            "warnings": result["warnings"],
        }

    def evaluate_conversations(self, conversation_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Independent evaluation runs, one result per id in input order."""
        return [self.evaluate_conversation(cid) for cid in conversation_ids]


def create_assessment_system(
    capability: Optional[ModelCapability] = None,
    vector_store: Optional[VectorStore] = None,
    notifier: Notifier = log_notifier,
    verbose: bool = False,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> AssessmentService:
    """
    Factory function to wire the complete pipeline.

    Args:
        capability: Model capability (built from config when omitted)
        vector_store: Chunk index (in-memory when omitted)
        notifier: Receives evaluation events
        verbose: Enable verbose logging
        rng: Random source for summary chunk sampling and follow-up suggestions
        clock: Timestamp source for grade reports

    Returns:
        Configured AssessmentService
    """
    capability = capability or create_capability()
    repository = Repository(vector_store or InMemoryVectorStore())

    summary_synthesizer = SummarySynthesizer(repository, capability, rng=rng, verbose=verbose)

    return AssessmentService(
        repository=repository,
        indexer=DocumentIndexer(repository, capability, verbose=verbose),
        summary_synthesizer=summary_synthesizer,
        rubric_synthesizer=RubricSynthesizer(repository, capability, summary_synthesizer, verbose=verbose),
        responder=DialogueResponder(repository, capability, rng=rng, verbose=verbose),
        orchestrator=create_agent_system(capability, repository, verbose=verbose, clock=clock),
        notifier=notifier
    )
