"""
Tests for the in-process Repository.
"""
from datetime import datetime, timedelta, timezone

import pytest

from socratic_assessor.errors import EvaluationInProgressError, InputError, PreconditionError
from socratic_assessor.models import (
    Document,
    GradeReport,
    MisconceptionPattern,
    Role,
    Rubric,
    Summary,
)

from conftest import make_rubric_levels


def make_report(conversation_id: str, score: float, evaluated_at=None) -> GradeReport:
    kwargs = {}
    if evaluated_at is not None:
        kwargs["evaluated_at"] = evaluated_at
    return GradeReport(
        conversation_id=conversation_id,
        overall_score=score,
        detailed_scores={"Limits": {"score": score}},
        feedback="Overall performance: fair.",
        recommendations=(),
        **kwargs
    )


class TestDocuments:
    """Tests for documents and their owned entities."""

    def test_mark_processed(self, repository, document):
        assert not document.processed

        repository.mark_processed(document.id)

        assert repository.get_document(document.id).processed

    def test_require_missing_document(self, repository):
        with pytest.raises(InputError):
            repository.require_document("missing")

    def test_single_summary_per_document(self, repository, document):
        repository.save_summary(Summary(document_id=document.id, content="First"))

        with pytest.raises(PreconditionError):
            repository.save_summary(Summary(document_id=document.id, content="Second"))

        assert repository.get_summary(document.id).content == "First"

    def test_delete_document_cascades(self, repository, document, add_chunks, add_rubric):
        add_chunks(document.id, ["Limits.", "Derivatives."])
        add_rubric(document.id, "Limits")
        repository.save_summary(Summary(document_id=document.id, content="Summary"))
        repository.add_misconception_pattern(MisconceptionPattern(
            document_id=document.id, concept="Limits", name="Limit equals value",
            signal_phrases=["limit is just the value"]
        ))

        assert repository.delete_document(document.id)

        assert repository.get_document(document.id) is None
        assert repository.count_chunks(document.id) == 0
        assert repository.list_rubrics(document.id) == []
        assert repository.get_summary(document.id) is None
        assert repository.list_misconception_patterns(document.id) == []

    def test_delete_unknown_document(self, repository):
        assert repository.delete_document("missing") is False


class TestRubrics:
    """Tests for rubric validation."""

    def test_rubric_missing_level_rejected(self, repository, document):
        levels = make_rubric_levels()
        del levels["mastery"]

        with pytest.raises(InputError) as exc_info:
            repository.add_rubric(Rubric(document_id=document.id, concept="Limits", levels=levels))

        assert exc_info.value.reasons == ["Missing or empty level: mastery"]
        assert repository.list_rubrics(document.id) == []

    def test_blank_level_rejected(self, repository, document):
        with pytest.raises(InputError):
            repository.add_rubric(Rubric(
                document_id=document.id, concept="Limits", levels=make_rubric_levels(beginner="  ")
            ))

    def test_rubrics_listed_in_creation_order(self, document, add_rubric, repository):
        for concept in ("Limits", "Derivatives", "Integrals"):
            add_rubric(document.id, concept)

        assert [r.concept for r in repository.list_rubrics(document.id)] == [
            "Limits", "Derivatives", "Integrals"
        ]

    def test_update_rubric_keeps_four_levels(self, repository, document, add_rubric):
        rubric = add_rubric(document.id, "Limits")

        with pytest.raises(InputError):
            repository.update_rubric(rubric.id, levels={"beginner": "only one"})

        updated = repository.update_rubric(rubric.id, concept="Limits and continuity")
        assert updated.concept == "Limits and continuity"
        assert updated.levels == make_rubric_levels()

    def test_duplicate_concept_rejected(self, repository, document, add_rubric):
        add_rubric(document.id, "Limits")

        with pytest.raises(InputError):
            add_rubric(document.id, " limits ")

        assert [r.concept for r in repository.list_rubrics(document.id)] == ["Limits"]

    def test_rename_onto_existing_concept_rejected(self, repository, document, add_rubric):
        add_rubric(document.id, "Limits")
        derivatives = add_rubric(document.id, "Derivatives")

        with pytest.raises(InputError):
            repository.update_rubric(derivatives.id, concept="LIMITS")

        assert derivatives.concept == "Derivatives"
        assert repository.update_rubric(derivatives.id, concept="Derivatives").concept == "Derivatives"

    def test_same_concept_allowed_across_documents(self, repository, document, add_rubric):
        other = repository.add_document(Document(title="Physics"))
        add_rubric(document.id, "Limits")

        add_rubric(other.id, "Limits")

        assert len(repository.list_rubrics(other.id)) == 1


class TestConversations:
    """Tests for messages, grade reports and the in-flight marker."""

    @pytest.fixture
    def conversation(self, repository, document):
        return repository.create_conversation(document.id, learner_id="learner-1")

    def test_conversation_requires_document(self, repository):
        with pytest.raises(InputError):
            repository.create_conversation("missing")

    def test_messages_ordered_by_time_then_sequence(self, repository, conversation):
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)
        second = repository.append_message(conversation.id, Role.EVALUATOR, "Why?", created_at=now)
        first = repository.append_message(
            conversation.id, Role.LEARNER, "Because.", created_at=now - timedelta(seconds=5)
        )
        third = repository.append_message(conversation.id, Role.LEARNER, "Also.", created_at=now)

        transcript = repository.list_messages(conversation.id)

        assert [m.id for m in transcript] == [first.id, second.id, third.id]

    def test_messages_filtered_by_role(self, repository, conversation):
        repository.append_message(conversation.id, Role.LEARNER, "A limit is a value.")
        repository.append_message(conversation.id, Role.EVALUATOR, "What value?")

        learner = repository.list_messages(conversation.id, Role.LEARNER)

        assert [m.content for m in learner] == ["A limit is a value."]

    def test_append_to_missing_conversation(self, repository):
        with pytest.raises(InputError):
            repository.append_message("missing", Role.LEARNER, "Hello")

    def test_needs_grading(self, repository, conversation):
        assert not repository.needs_grading(conversation.id)

        repository.append_message(conversation.id, Role.LEARNER, "Limits approach values.")
        assert repository.needs_grading(conversation.id)

        repository.add_grade_report(make_report(conversation.id, 0.5))
        assert not repository.needs_grading(conversation.id)

    def test_latest_grade_report(self, repository, conversation):
        now = datetime(2024, 5, 1, tzinfo=timezone.utc)
        repository.add_grade_report(make_report(conversation.id, 0.4, now))
        latest = repository.add_grade_report(make_report(conversation.id, 0.8, now + timedelta(minutes=1)))

        assert repository.latest_grade_report(conversation.id) is latest
        assert len(repository.list_grade_reports(conversation.id)) == 2

    def test_delete_conversation_cascades(self, repository, conversation):
        repository.append_message(conversation.id, Role.LEARNER, "Hello")
        repository.add_grade_report(make_report(conversation.id, 0.5))

        assert repository.delete_conversation(conversation.id)

        assert repository.list_messages(conversation.id) == []
        assert repository.list_grade_reports(conversation.id) == []

    def test_in_flight_marker(self, repository, conversation):
        repository.begin_evaluation(conversation.id)
        assert repository.evaluation_in_progress(conversation.id)

        with pytest.raises(EvaluationInProgressError):
            repository.begin_evaluation(conversation.id)

        repository.end_evaluation(conversation.id)
        assert not repository.evaluation_in_progress(conversation.id)
        repository.begin_evaluation(conversation.id)
