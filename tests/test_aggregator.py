"""
Tests for the Feedback Agent's grade aggregation.
"""
import pytest

from socratic_assessor.agents import (
    ConversationAnalysis,
    GradeAggregator,
    MisconceptionAnalysis,
    ProgressionAnalysis,
    ThemeAnalysis,
    performance_band,
)
from socratic_assessor.errors import InputError
from socratic_assessor.models import ConceptEvaluation, ProficiencyLevel


def evaluation(concept, score, level=ProficiencyLevel.DEVELOPING, feedback=None):
    return ConceptEvaluation(
        concept=concept,
        level=level,
        score=score,
        evidence="evidence",
        feedback=feedback or f"Revisit {concept.lower()}.",
        confidence=0.6,
    )


def analysis(trend="stable", repeated=(), matched=()):
    return ConversationAnalysis(
        total_learner_messages=4,
        total_evaluator_messages=4,
        themes=ThemeAnalysis(),
        progression=ProgressionAnalysis(score=0.0, trend=trend),
        misconceptions=MisconceptionAnalysis(repeated_themes=list(repeated), matched_patterns=list(matched)),
    )


@pytest.fixture
def evaluations():
    return {
        "Limits": evaluation("Limits", 0.75, ProficiencyLevel.PROFICIENT),
        "Derivatives": evaluation("Derivatives", 0.55),
        "Integrals": evaluation("Integrals", 0.25, ProficiencyLevel.NOVICE),
    }


class TestGradeAggregator:
    """Tests for aggregation into a GradeReport."""

    def test_overall_score_is_rounded_mean(self, evaluations, fixed_clock):
        report = GradeAggregator(clock=fixed_clock).aggregate("c1", evaluations)

        assert report.overall_score == 0.517
        assert report.conversation_id == "c1"
        assert report.evaluated_at == fixed_clock()

    def test_strengths_and_weaknesses(self, evaluations, fixed_clock):
        report = GradeAggregator(clock=fixed_clock).aggregate("c1", evaluations)

        assert report.strengths == ("Limits",)
        assert report.weaknesses == ("Integrals",)

    def test_feedback_sentences(self, evaluations, fixed_clock):
        report = GradeAggregator(clock=fixed_clock).aggregate(
            "c1", evaluations, analysis("strong_improvement", repeated=["derivative_polynomial"])
        )

        assert report.feedback == (
            "Overall performance: fair (52%)."
            " Strong understanding demonstrated in: Limits."
            " Areas needing attention: Integrals."
            " Great progress shown throughout the conversation!"
            " Some conceptual areas may benefit from additional clarification."
        )

    def test_no_trend_remark_for_insufficient_data(self, evaluations, fixed_clock):
        report = GradeAggregator(clock=fixed_clock).aggregate(
            "c1", evaluations, analysis("insufficient_data")
        )

        assert report.feedback.endswith("Areas needing attention: Integrals.")

    def test_recommendations_for_weak_concepts(self, evaluations, fixed_clock):
        report = GradeAggregator(clock=fixed_clock).aggregate("c1", evaluations)

        assert report.recommendations == ("Integrals: Revisit integrals.",)

    def test_foundational_recommendation_when_most_concepts_weak(self, fixed_clock):
        evaluations = {
            "Limits": evaluation("Limits", 0.25),
            "Derivatives": evaluation("Derivatives", 0.3),
            "Integrals": evaluation("Integrals", 0.9),
        }

        report = GradeAggregator(clock=fixed_clock).aggregate("c1", evaluations)

        assert report.recommendations[-1] == (
            "Consider reviewing foundational concepts before advancing to new material."
        )
        assert len(report.recommendations) == 3
        assert report.needs_attention

    def test_detailed_scores(self, evaluations, fixed_clock):
        report = GradeAggregator(clock=fixed_clock).aggregate("c1", evaluations)

        assert list(report.detailed_scores) == ["Limits", "Derivatives", "Integrals"]
        assert report.detailed_scores["Limits"] == {
            "level": "proficient",
            "score": 0.75,
            "evidence": "evidence",
            "feedback": "Revisit limits.",
            "confidence": 0.6,
        }
        assert report.follow_up_concepts == ["Derivatives", "Integrals"]

    def test_same_inputs_same_report(self, evaluations, fixed_clock):
        aggregator = GradeAggregator(clock=fixed_clock)

        first = aggregator.aggregate("c1", evaluations, analysis("slight_decline"))
        second = aggregator.aggregate("c1", evaluations, analysis("slight_decline"))

        assert first.to_dict(include_identity=False) == second.to_dict(include_identity=False)
        assert first.id != second.id

    def test_empty_evaluations_rejected(self):
        with pytest.raises(InputError):
            GradeAggregator().aggregate("c1", {})

    @pytest.mark.parametrize("score,band", [
        (0.95, "excellent"),
        (0.8, "excellent"),
        (0.6, "good"),
        (0.4, "fair"),
        (0.39, "needs improvement"),
    ])
    def test_performance_bands(self, score, band):
        assert performance_band(score) == band
