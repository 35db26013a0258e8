"""
Repository - In-process entity store for the assessment pipeline.

Holds documents, summaries, rubrics, misconception patterns, conversations,
messages and grade reports, and enforces the ownership and lifecycle rules
the pipeline relies on:

- Deleting a document removes its chunks, summary, rubrics and patterns
- Deleting a conversation removes its messages and grade reports
- At most one summary per document
- Messages and grade reports are append-only
- Message order is (created_at, sequence) with a lock-protected counter
"""
import itertools
import threading
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set
import logging

from ..errors import InputError, PreconditionError, EvaluationInProgressError
from ..models import (
    Chunk,
    Conversation,
    Document,
    DocumentStatus,
    GradeReport,
    Message,
    MisconceptionPattern,
    Role,
    Rubric,
    Summary,
    missing_rubric_levels,
    utcnow,
)
from ..vector_store import VectorStore

logger = logging.getLogger(__name__)


class Repository:
    """Reference implementation of the persistence boundary."""

    def __init__(self, vector_store: VectorStore):
        self.vector_store = vector_store

        self._lock = threading.RLock()
        self._sequence = itertools.count(1)

        self._documents: Dict[str, Document] = {}
        self._summaries: Dict[str, Summary] = {}
        self._rubrics: Dict[str, List[Rubric]] = {}
        self._patterns: Dict[str, List[MisconceptionPattern]] = {}
        self._conversations: Dict[str, Conversation] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._reports: Dict[str, List[GradeReport]] = {}
        self._in_flight: Set[str] = set()

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> Document:
        with self._lock:
            self._documents[document.id] = document
        logger.debug(f"Added document {document.id} ({len(document.files)} files)")
        return document

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            return self._documents.get(document_id)

    def require_document(self, document_id: str) -> Document:
        document = self.get_document(document_id)
        if document is None:
            raise InputError(f"Document {document_id} not found")
        return document

    def mark_processed(self, document_id: str) -> Document:
        """Move a document to the processed state (one-way)."""
        with self._lock:
            document = self.require_document(document_id)
            document.status = DocumentStatus.PROCESSED
        return document

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            document = self._documents.pop(document_id, None)
            if document is None:
                return False
            self._summaries.pop(document_id, None)
            self._rubrics.pop(document_id, None)
            self._patterns.pop(document_id, None)

        removed = self.vector_store.delete_document(document_id)
        logger.info(f"Deleted document {document_id} and {removed} chunks")
        return True

    # ------------------------------------------------------------------
    # Chunks (delegated to the vector store)
    # ------------------------------------------------------------------

    def add_chunks(self, chunks: Sequence[Chunk]) -> int:
        return self.vector_store.add_chunks(chunks)

    def list_chunks(self, document_id: str) -> List[Chunk]:
        return self.vector_store.get_chunks(document_id)

    def count_chunks(self, document_id: str) -> int:
        return self.vector_store.count(document_id)

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def get_summary(self, document_id: str) -> Optional[Summary]:
        with self._lock:
            return self._summaries.get(document_id)

    def save_summary(self, summary: Summary) -> Summary:
        with self._lock:
            self.require_document(summary.document_id)
            if summary.document_id in self._summaries:
                raise PreconditionError(
                    f"Summary already exists for document {summary.document_id}"
                )
            self._summaries[summary.document_id] = summary
        return summary

    # ------------------------------------------------------------------
    # Rubrics
    # ------------------------------------------------------------------

    def add_rubric(self, rubric: Rubric) -> Rubric:
        missing = missing_rubric_levels(rubric.levels)
        if missing:
            raise InputError(
                f"Rubric '{rubric.concept}' is missing levels",
                [f"Missing or empty level: {level}" for level in missing]
            )
        if not rubric.concept or not rubric.concept.strip():
            raise InputError("Rubric concept must not be empty")

        with self._lock:
            self.require_document(rubric.document_id)
            self._check_unique_concept(rubric.document_id, rubric.concept)
            self._rubrics.setdefault(rubric.document_id, []).append(rubric)
        return rubric

    def list_rubrics(self, document_id: str) -> List[Rubric]:
        """Rubrics of a document in creation order."""
        with self._lock:
            return list(self._rubrics.get(document_id, []))

    def update_rubric(self, rubric_id: str, concept: Optional[str] = None,
                      levels: Optional[Dict[str, str]] = None) -> Rubric:
        """Apply an instructor edit, keeping the four-level invariant."""
        with self._lock:
            rubric = self._find_rubric(rubric_id)
            new_levels = dict(levels) if levels is not None else rubric.levels
            missing = missing_rubric_levels(new_levels)
            if missing:
                raise InputError(
                    f"Rubric '{rubric.concept}' is missing levels",
                    [f"Missing or empty level: {level}" for level in missing]
                )
            if concept is not None:
                if not concept.strip():
                    raise InputError("Rubric concept must not be empty")
                self._check_unique_concept(rubric.document_id, concept, exclude_id=rubric.id)
                rubric.concept = concept
            rubric.levels = new_levels
        return rubric

    def _check_unique_concept(self, document_id: str, concept: str, exclude_id: Optional[str] = None):
        """Concept names are unique per document, ignoring case and outer whitespace."""
        key = concept.strip().lower()
        for existing in self._rubrics.get(document_id, []):
            if existing.id != exclude_id and existing.concept.strip().lower() == key:
                raise InputError(f"Rubric concept '{concept.strip()}' already exists for document {document_id}")

    def _find_rubric(self, rubric_id: str) -> Rubric:
        for rubrics in self._rubrics.values():
            for rubric in rubrics:
                if rubric.id == rubric_id:
                    return rubric
        raise InputError(f"Rubric {rubric_id} not found")

    # ------------------------------------------------------------------
    # Misconception patterns
    # ------------------------------------------------------------------

    def add_misconception_pattern(self, pattern: MisconceptionPattern) -> MisconceptionPattern:
        with self._lock:
            self.require_document(pattern.document_id)
            self._patterns.setdefault(pattern.document_id, []).append(pattern)
        return pattern

    def list_misconception_patterns(self, document_id: str) -> List[MisconceptionPattern]:
        with self._lock:
            return list(self._patterns.get(document_id, []))

    # ------------------------------------------------------------------
    # Conversations and messages
    # ------------------------------------------------------------------

    def create_conversation(self, document_id: str, learner_id: Optional[str] = None) -> Conversation:
        with self._lock:
            self.require_document(document_id)
            conversation = Conversation(document_id=document_id, learner_id=learner_id)
            self._conversations[conversation.id] = conversation
            self._messages[conversation.id] = []
            self._reports[conversation.id] = []
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[Conversation]:
        with self._lock:
            return self._conversations.get(conversation_id)

    def require_conversation(self, conversation_id: str) -> Conversation:
        conversation = self.get_conversation(conversation_id)
        if conversation is None:
            raise InputError(f"Conversation {conversation_id} not found")
        return conversation

    def delete_conversation(self, conversation_id: str) -> bool:
        with self._lock:
            if self._conversations.pop(conversation_id, None) is None:
                return False
            self._messages.pop(conversation_id, None)
            self._reports.pop(conversation_id, None)
            self._in_flight.discard(conversation_id)
        return True

    def append_message(self, conversation_id: str, role: Role, content: str,
                       created_at: Optional[datetime] = None) -> Message:
        with self._lock:
            self.require_conversation(conversation_id)
            message = Message(
                conversation_id=conversation_id,
                role=Role(role),
                content=content,
                created_at=created_at or utcnow(),
                sequence=next(self._sequence),
            )
            self._messages[conversation_id].append(message)
        return message

    def list_messages(self, conversation_id: str, role: Optional[Role] = None) -> List[Message]:
        """Transcript ordered by creation time, ties broken by sequence."""
        with self._lock:
            messages = list(self._messages.get(conversation_id, []))
        if role is not None:
            messages = [m for m in messages if m.role is Role(role)]
        return sorted(messages, key=lambda m: m.sort_key)

    def get_message(self, message_id: str) -> Optional[Message]:
        with self._lock:
            for messages in self._messages.values():
                for message in messages:
                    if message.id == message_id:
                        return message
        return None

    # ------------------------------------------------------------------
    # Grade reports
    # ------------------------------------------------------------------

    def add_grade_report(self, report: GradeReport) -> GradeReport:
        with self._lock:
            self.require_conversation(report.conversation_id)
            self._reports[report.conversation_id].append(report)
        return report

    def list_grade_reports(self, conversation_id: str) -> List[GradeReport]:
        with self._lock:
            return list(self._reports.get(conversation_id, []))

    def latest_grade_report(self, conversation_id: str) -> Optional[GradeReport]:
        reports = self.list_grade_reports(conversation_id)
        if not reports:
            return None
        return max(reports, key=lambda r: r.evaluated_at)

    def needs_grading(self, conversation_id: str) -> bool:
        """True when the conversation has learner messages and no report yet."""
        has_learner_turns = bool(self.list_messages(conversation_id, Role.LEARNER))
        return has_learner_turns and not self.list_grade_reports(conversation_id)

    # ------------------------------------------------------------------
    # In-flight evaluation marker
    # ------------------------------------------------------------------

    def begin_evaluation(self, conversation_id: str):
        with self._lock:
            self.require_conversation(conversation_id)
            if conversation_id in self._in_flight:
                raise EvaluationInProgressError(
                    f"Evaluation already in progress for conversation {conversation_id}"
                )
            self._in_flight.add(conversation_id)

    def end_evaluation(self, conversation_id: str):
        with self._lock:
            self._in_flight.discard(conversation_id)

    def evaluation_in_progress(self, conversation_id: str) -> bool:
        with self._lock:
            return conversation_id in self._in_flight
