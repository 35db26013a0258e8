"""
Tests for the DialogueResponder and its confidence heuristic.
"""
import random

import pytest

from socratic_assessor.dialogue import DialogueResponder, compute_confidence
from socratic_assessor.errors import GenerationFailure, InputError, PreconditionError
from socratic_assessor.models import MisconceptionPattern, Role, Rubric
from socratic_assessor.retrieval import RetrievalContext, RetrievedChunk

from conftest import make_rubric_levels

MATERIAL = [
    "Derivatives measure the instantaneous rate of change of a function.",
    "Limits describe the behaviour of a function near a point.",
]

FOLLOWUPS = [
    "Is the derivative the same at every point?",
    "What does the derivative tell you at x = 2 compared with x = 5?",
]


def retrieval_context(distances, overlaps=()):
    chunks = [RetrievedChunk(f"c{i}", "text", d, i) for i, d in enumerate(distances)]
    rubrics = [Rubric("d1", f"Concept {i}", make_rubric_levels()) for i in range(len(overlaps))]
    return RetrievalContext("query", chunks, rubrics, list(overlaps))


class TestConfidence:
    """Tests for the confidence heuristic."""

    def test_base_only(self):
        assert compute_confidence(retrieval_context([]), "Fine.") == 0.5

    def test_similarity_and_question(self):
        context = retrieval_context([0.4, 0.6])

        assert compute_confidence(context, "Why?") == pytest.approx(0.75)

    def test_rubric_bonus_for_any_returned_rubric(self):
        no_rubrics = retrieval_context([1.0])
        unmatched = retrieval_context([1.0], overlaps=[0])
        matched = retrieval_context([1.0], overlaps=[0, 2])

        assert compute_confidence(no_rubrics, "Fine.") == 0.5
        assert compute_confidence(unmatched, "Fine.") == pytest.approx(0.7)
        assert compute_confidence(matched, "Fine.") == pytest.approx(0.7)

    def test_length_bonus_and_clamp(self):
        context = retrieval_context([0.0], overlaps=[1])
        response = "What happens to the slope of the secant line as h approaches zero?"

        assert 50 <= len(response) <= 300
        assert compute_confidence(context, response) == 1.0


class TestDialogueResponder:
    """Tests for evaluator turn generation."""

    @pytest.fixture
    def conversation(self, repository, document, add_chunks):
        add_chunks(document.id, MATERIAL)
        return repository.create_conversation(document.id, learner_id="learner-1")

    def test_generates_and_persists_evaluator_turn(self, repository, capability, conversation):
        learner = repository.append_message(conversation.id, Role.LEARNER, "A derivative is a slope.")
        capability.queue("What does slope mean when the curve is not a straight line?")

        turn = DialogueResponder(repository, capability).respond(conversation.id, learner.id)

        assert turn.message.role is Role.EVALUATOR
        assert turn.message.content == "What does slope mean when the curve is not a straight line?"
        assert 0.0 <= turn.confidence <= 1.0
        assert len(turn.context.chunks) == 2

        transcript = repository.list_messages(conversation.id)
        assert [m.role for m in transcript] == [Role.LEARNER, Role.EVALUATOR]

        call = capability.completion_calls[-1]
        assert call["temperature"] == 0.4
        assert call["messages"][0]["role"] == "system"
        assert "Context 1:" in call["messages"][0]["content"]
        assert call["messages"][-1] == {"role": "user", "content": "A derivative is a slope."}

    def test_history_is_bounded_and_excludes_new_message(self, repository, capability, conversation):
        for i in range(4):
            repository.append_message(conversation.id, Role.LEARNER, f"Answer {i}")
            repository.append_message(conversation.id, Role.EVALUATOR, f"Question {i}?")
        learner = repository.append_message(conversation.id, Role.LEARNER, "Latest answer")
        capability.queue("Can you say more?")

        responder = DialogueResponder(repository, capability)
        history = responder.history_for(learner)
        responder.respond(conversation.id, learner.id)

        assert [m.content for m in history] == [
            "Answer 1", "Question 1?", "Answer 2", "Question 2?", "Answer 3", "Question 3?"
        ]
        assert learner.id not in [m.id for m in history]

        messages = capability.completion_calls[-1]["messages"]
        assert len(messages) == 8
        assert messages[1] == {"role": "user", "content": "Answer 1"}
        assert messages[2] == {"role": "assistant", "content": "Question 1?"}

    def test_misconception_followups_in_system_prompt(self, repository, capability, conversation):
        repository.add_misconception_pattern(MisconceptionPattern(
            document_id=conversation.document_id,
            concept="Derivatives",
            name="Derivative as a single number",
            signal_phrases=["just a number"],
            recommended_followups=FOLLOWUPS
        ))
        learner = repository.append_message(
            conversation.id, Role.LEARNER, "The derivative is Just A Number you compute once."
        )
        capability.queue("Would that number be the same everywhere on a curve?")

        turn = DialogueResponder(repository, capability, rng=random.Random(7)).respond(conversation.id, learner.id)

        system_prompt = capability.completion_calls[-1]["messages"][0]["content"]
        assert "Derivative as a single number" in system_prompt
        assert all(f in system_prompt for f in FOLLOWUPS)
        assert turn.misconception == "Derivative as a single number"
        assert turn.suggested_followup == random.Random(7).choice(FOLLOWUPS)
        assert f"Start with: {turn.suggested_followup}" in system_prompt
        assert turn.to_dict()["suggested_followup"] == turn.suggested_followup

    def test_rejects_evaluator_message(self, repository, capability, conversation):
        evaluator = repository.append_message(conversation.id, Role.EVALUATOR, "What is a limit?")

        with pytest.raises(InputError):
            DialogueResponder(repository, capability).respond(conversation.id, evaluator.id)

    def test_rejects_unknown_message(self, repository, capability, conversation):
        with pytest.raises(InputError):
            DialogueResponder(repository, capability).respond(conversation.id, "missing")

    def test_requires_processed_document(self, repository, capability, document):
        conversation = repository.create_conversation(document.id)
        learner = repository.append_message(conversation.id, Role.LEARNER, "Hello")

        with pytest.raises(PreconditionError):
            DialogueResponder(repository, capability).respond(conversation.id, learner.id)

    def test_empty_output_creates_no_message(self, repository, capability, conversation):
        learner = repository.append_message(conversation.id, Role.LEARNER, "Limits are values.")
        capability.queue("   ")

        with pytest.raises(GenerationFailure):
            DialogueResponder(repository, capability).respond(conversation.id, learner.id)

        assert len(repository.list_messages(conversation.id)) == 1

    def test_completion_error_is_generation_failure(self, repository, capability, conversation):
        learner = repository.append_message(conversation.id, Role.LEARNER, "Limits are values.")
        capability.queue(ConnectionError("server down"))

        with pytest.raises(GenerationFailure) as exc_info:
            DialogueResponder(repository, capability).respond(conversation.id, learner.id)

        assert "server down" in exc_info.value.reasons[0]

    def test_no_chunks_is_generation_failure(self, repository, capability, document):
        repository.mark_processed(document.id)
        conversation = repository.create_conversation(document.id)
        learner = repository.append_message(conversation.id, Role.LEARNER, "Hello")

        with pytest.raises(GenerationFailure):
            DialogueResponder(repository, capability).respond(conversation.id, learner.id)

        assert capability.completion_calls == []
