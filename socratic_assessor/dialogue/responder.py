"""
Dialogue Responder - Generates the next Socratic evaluator turn.

Steps for each learner message:
1. Retrieve chunks and rubrics relevant to the message
2. Build the evaluator system instruction (plus misconception follow-ups
   when the message triggers a known pattern)
3. Append recent history and the new message, call the chat capability
4. Score confidence and persist the evaluator message
"""
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import logging

from config import DialogueConfig, LLMConfig, LOG_LEVEL
from ..errors import CapabilityError, GenerationFailure, InputError, PreconditionError
from ..llm import ModelCapability
from ..models import Message, MisconceptionPattern, Role
from ..prompts import PromptTemplates
from ..retrieval import ContextRetriever, RetrievalContext
from ..storage import Repository
from ..utils.logger import create_logger, LogLevel

logger = logging.getLogger(__name__)


@dataclass
class DialogueTurn:
    """A generated evaluator message and the context behind it."""
    message: Message
    confidence: float
    context: RetrievalContext
    misconception: Optional[str] = None
    suggested_followup: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'conversation_id': self.message.conversation_id,
            'message_id': self.message.id,
            'content': self.message.content,
            'confidence': self.confidence,
            'chunks_used': len(self.context.chunks),
            'rubrics_used': len(self.context.rubrics),
            'misconception': self.misconception,
            'suggested_followup': self.suggested_followup,
        }


def compute_confidence(context: RetrievalContext, response: str) -> float:
    """
    Heuristic confidence in a generated turn, in [0, 1].

    base 0.5
    + 0.3 * max(0, 1 - average chunk distance)
    + 0.2 if any rubric was returned
    + 0.1 if the response asks a question
    + 0.1 if the response length is within the preferred range
    """
    score = DialogueConfig.CONFIDENCE_BASE

    if context.chunks:
        similarity = min(1.0, max(0.0, 1.0 - context.average_distance))
        score += DialogueConfig.SIMILARITY_WEIGHT * similarity

    if context.rubrics:
        score += DialogueConfig.RUBRIC_BONUS

    if '?' in response:
        score += DialogueConfig.QUESTION_BONUS

    low, high = DialogueConfig.LENGTH_RANGE
    if low <= len(response) <= high:
        score += DialogueConfig.LENGTH_BONUS

    return round(min(1.0, max(0.0, score)), 2)


class DialogueResponder:
    """Generates evaluator turns grounded in retrieved course material."""

    def __init__(
        self,
        repository: Repository,
        capability: ModelCapability,
        retriever: Optional[ContextRetriever] = None,
        history_limit: int = DialogueConfig.HISTORY_LIMIT,
        rng: Optional[random.Random] = None,
        verbose: bool = False
    ):
        self.repository = repository
        self.capability = capability
        self.retriever = retriever or ContextRetriever(repository, capability)
        self.history_limit = history_limit
        self.rng = rng or random.Random()

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("DIALOGUE", log_level, verbose)

    def respond(self, conversation_id: str, learner_message_id: str) -> DialogueTurn:
        """
        Generate and persist the evaluator reply to a learner message.

        Raises:
            InputError: conversation or message missing, or message not learner-authored
            PreconditionError: the conversation's document is not processed
            GenerationFailure: no context, capability failure or empty output
        """
        conversation = self.repository.require_conversation(conversation_id)

        message = self.repository.get_message(learner_message_id)
        if message is None or message.conversation_id != conversation_id:
            raise InputError(f"Learner message {learner_message_id} not found in conversation {conversation_id}")
        if not message.from_learner:
            raise InputError("Message must be from the learner to generate an evaluator response")

        document = self.repository.require_document(conversation.document_id)
        if not document.processed:
            raise PreconditionError(f"Document {document.id} must be processed before dialogue")

        try:
            context = self.retriever.retrieve(message.content, document.id)
        except CapabilityError as e:
            raise GenerationFailure("Could not retrieve context for the learner message", e.reasons) from e

        self.enhanced_logger.retrieval_stats(
            message.content, len(context.chunks), len(context.matched_rubrics), context.average_distance
        )

        if not context.chunks:
            raise GenerationFailure(f"No course material chunks found for document {document.id}")

        pattern = self._detect_misconception(document.id, message.content)
        suggested = pattern.random_followup(self.rng) if pattern else None
        llm_messages = self._build_messages(context, message, pattern, suggested)

        logger.info(
            f"Generating evaluator response using {len(context.chunks)} chunks "
            f"and {len(context.rubrics)} rubrics"
        )

        try:
            response = self.capability.complete(llm_messages, temperature=LLMConfig.DIALOGUE_TEMPERATURE)
        except Exception as e:
            logger.error(f"Chat completion failed for conversation {conversation_id}: {e}")
            raise GenerationFailure("Chat completion failed", [f"LLM communication failed: {e}"]) from e

        content = (response or "").strip()
        if not content:
            raise GenerationFailure("Empty response from model")

        confidence = compute_confidence(context, content)
        reply = self.repository.append_message(conversation_id, Role.EVALUATOR, content)

        logger.info(f"Generated evaluator response for conversation {conversation_id} with confidence {confidence}")
        return DialogueTurn(
            message=reply,
            confidence=confidence,
            context=context,
            misconception=pattern.name if pattern else None,
            suggested_followup=suggested
        )

    def history_for(self, message: Message) -> List[Message]:
        """The most recent messages strictly preceding the given message."""
        transcript = self.repository.list_messages(message.conversation_id)
        preceding = [m for m in transcript if m.sort_key < message.sort_key]
        if self.history_limit <= 0:
            return []
        return preceding[-self.history_limit:]

    def _detect_misconception(self, document_id: str, text: str) -> Optional[MisconceptionPattern]:
        for pattern in self.repository.list_misconception_patterns(document_id):
            phrase = pattern.detected_in(text)
            if phrase:
                logger.info(f"Learner message matches misconception '{pattern.name}' via '{phrase}'")
                return pattern
        return None

    def _build_messages(
        self,
        context: RetrievalContext,
        message: Message,
        pattern: Optional[MisconceptionPattern],
        suggested: Optional[str] = None
    ) -> List[Dict[str, str]]:
        rubric_lines = [
            f"{r.concept}: {r.levels_summary(DialogueConfig.RUBRIC_LEVEL_PREVIEW_CHARS)}"
            for r in context.rubrics
        ]

        misconception = None
        if pattern:
            misconception = {
                "name": pattern.name,
                "concept": pattern.concept,
                "followups": list(pattern.recommended_followups),
                "suggested": suggested,
            }

        system_prompt = PromptTemplates.format_evaluator_system(
            [c.text for c in context.chunks], rubric_lines, misconception
        )

        messages = [{"role": "system", "content": system_prompt}]
        messages.extend(m.to_llm_message() for m in self.history_for(message))
        messages.append(message.to_llm_message())
        return messages
