"""
Tests for the Analysis Agent and its heuristics.
"""
import json

import pytest

from socratic_assessor.agents import (
    AgentContext,
    ConversationAnalyzer,
    classify_trend,
    conceptual_depth,
    message_complexity,
    question_theme,
)
from socratic_assessor.agents import analysis_agent
from socratic_assessor.models import Conversation, Message, MisconceptionPattern, Role, utcnow

from conftest import FakeCapability

THEMES = json.dumps({"themes": ["derivatives"], "key_concepts": ["slope"], "confidence": 0.8})

SHALLOW = "ok. ok. ok. ok."
DEEP = (
    "Derivatives measure instantaneous change because limits formalize approaching behaviour. "
    "Therefore integration reverses differentiation."
)


def make_messages(role, texts, conversation_id="c1"):
    now = utcnow()
    return [Message(conversation_id, role, text, now, i) for i, text in enumerate(texts)]


def make_context(learner=(), evaluator=(), patterns=()):
    return AgentContext(
        conversation=Conversation(document_id="d1", id="c1"),
        learner_messages=make_messages(Role.LEARNER, learner),
        evaluator_messages=make_messages(Role.EVALUATOR, evaluator),
        misconception_patterns=list(patterns),
    )


class TestHeuristics:
    """Tests for the progression heuristics."""

    def test_complexity_of_empty_message(self):
        assert message_complexity("") == 0.0

    def test_complexity_formula(self):
        # 1 unique word of 4, 4 words per sentence
        assert message_complexity("Yes yes yes yes.") == pytest.approx(0.25 + 0.4)

    def test_complexity_is_capped(self):
        assert message_complexity(DEEP) == 1.0

    def test_depth_formula(self):
        text = "It works because of gravity."

        assert conceptual_depth(text) == pytest.approx(0.1 + 0.05 * len(text) / 100)

    def test_connectives_match_whole_words_only(self):
        text = "Read thusly, sincere."

        assert conceptual_depth(text) == pytest.approx(0.05 * len(text) / 100)

    def test_depth_counts_technical_patterns(self):
        text = "The API returns 3.14 approximately"

        # technical word, acronym and decimal each add 0.15
        assert conceptual_depth(text) == pytest.approx(0.45 + 0.05 * len(text) / 100)

    @pytest.mark.parametrize("score,trend", [
        (0.5, "strong_improvement"),
        (0.3, "strong_improvement"),
        (0.1, "moderate_improvement"),
        (0.0, "stable"),
        (-0.09, "stable"),
        (-0.1, "slight_decline"),
        (-0.29, "slight_decline"),
        (-0.3, "concerning_decline"),
    ])
    def test_trend_bands(self, score, trend):
        assert classify_trend(score) == trend

    def test_question_theme_uses_two_longest_words(self):
        assert question_theme("What is the derivative of a polynomial function?") == "derivative_polynomial"

    def test_question_theme_of_short_words(self):
        assert question_theme("Why is it so?") == ""


class TestConversationAnalyzer:
    """Tests for the full transcript analysis."""

    def test_no_learner_messages_skips_model(self):
        capability = FakeCapability()

        analysis = ConversationAnalyzer(capability).analyze(make_context(evaluator=["Hello?"]))

        assert analysis.total_learner_messages == 0
        assert analysis.progression.trend == "insufficient_data"
        assert analysis.themes.themes == []
        assert capability.completion_calls == []

    def test_single_message_is_insufficient_data(self):
        capability = FakeCapability([THEMES])

        analysis = ConversationAnalyzer(capability).analyze(make_context(learner=[DEEP]))

        assert analysis.progression.trend == "insufficient_data"
        assert analysis.progression.score == 0
        assert analysis.themes.themes == ["derivatives"]
        assert analysis.themes.ok
        assert len(capability.completion_calls) == 1
        assert capability.completion_calls[0]["temperature"] == 0.1

    def test_improving_answers(self):
        capability = FakeCapability([THEMES])

        analysis = ConversationAnalyzer(capability).analyze(
            make_context(learner=[SHALLOW, SHALLOW, DEEP, DEEP])
        )

        assert analysis.progression.score >= 0
        assert analysis.progression.trend in ("stable", "moderate_improvement", "strong_improvement")
        assert len(analysis.progression.message_scores) == 4

    def test_declining_answers(self):
        capability = FakeCapability([THEMES])

        analysis = ConversationAnalyzer(capability).analyze(
            make_context(learner=[DEEP, DEEP, SHALLOW, SHALLOW])
        )

        assert analysis.progression.score < 0
        assert analysis.progression.trend.endswith("decline")

    def test_odd_count_gives_extra_message_to_second_half(self):
        capability = FakeCapability([THEMES])

        analysis = ConversationAnalyzer(capability).analyze(
            make_context(learner=[SHALLOW, DEEP, DEEP])
        )

        scores = [s.combined for s in analysis.progression.message_scores]
        assert analysis.progression.early_average == pytest.approx(round(scores[0], 2))
        assert analysis.progression.late_average == pytest.approx(round((scores[1] + scores[2]) / 2, 2))

    def test_trend_classified_before_rounding(self, monkeypatch):
        values = {"early": 0.2, "late": 0.498}
        monkeypatch.setattr(analysis_agent, "message_complexity", lambda text: values[text])
        monkeypatch.setattr(analysis_agent, "conceptual_depth", lambda text: values[text])
        capability = FakeCapability([THEMES])

        analysis = ConversationAnalyzer(capability).analyze(make_context(learner=["early", "late"]))

        assert analysis.progression.score == 0.3
        assert analysis.progression.trend == "moderate_improvement"

    def test_unparsable_themes_use_defaults(self):
        capability = FakeCapability(["I think they talked about calculus."])
        context = make_context(learner=[SHALLOW])

        analysis = ConversationAnalyzer(capability).analyze(context)

        assert analysis.themes.themes == []
        assert analysis.themes.key_concepts == []
        assert analysis.themes.confidence == 0.0
        assert not analysis.themes.ok
        assert context.errors

    @pytest.mark.parametrize("payload", [
        {"themes": 3, "key_concepts": "slope", "confidence": 0.5},
        {"themes": {"main": "limits"}, "key_concepts": None, "confidence": 0.5},
    ])
    def test_wrongly_shaped_theme_fields_use_defaults(self, payload):
        capability = FakeCapability([json.dumps(payload)])

        analysis = ConversationAnalyzer(capability).analyze(make_context(learner=[SHALLOW, DEEP]))

        assert analysis.themes.themes == []
        assert analysis.themes.key_concepts == []
        assert analysis.themes.confidence == 0.5
        assert analysis.themes.ok

    def test_theme_items_kept_as_strings(self):
        capability = FakeCapability([json.dumps({"themes": ["limits", "", None, 3, ["x"]]})])

        analysis = ConversationAnalyzer(capability).analyze(make_context(learner=[SHALLOW]))

        assert analysis.themes.themes == ["limits", "3"]

    def test_theme_call_failure_does_not_raise(self):
        capability = FakeCapability([TimeoutError("slow model")])

        analysis = ConversationAnalyzer(capability).analyze(make_context(learner=[SHALLOW]))

        assert not analysis.themes.ok

    def test_theme_input_is_truncated(self):
        capability = FakeCapability([THEMES])

        ConversationAnalyzer(capability).analyze(make_context(learner=["a" * 5000]))

        assert "a" * 2000 in capability.last_prompt
        assert "a" * 2001 not in capability.last_prompt

    def test_repeated_question_themes_flagged(self):
        capability = FakeCapability([THEMES])
        context = make_context(
            learner=[SHALLOW],
            evaluator=[
                "What is the derivative of a polynomial?",
                "Can you explain limits?",
                "So what is the derivative of this polynomial?",
                "Derivative and polynomial, without a question mark.",
            ]
        )

        analysis = ConversationAnalyzer(capability).analyze(context)

        assert analysis.misconceptions.repeated_themes == ["derivative_polynomial"]

    def test_misconception_patterns_match_once(self):
        capability = FakeCapability([THEMES])
        pattern = MisconceptionPattern(
            document_id="d1", concept="Limits", name="Limit equals value",
            signal_phrases=["limit is the value"]
        )
        other = MisconceptionPattern(
            document_id="d1", concept="Derivatives", name="Unused", signal_phrases=["never said"]
        )
        context = make_context(
            learner=["The LIMIT IS THE VALUE at the point.", "Again, the limit is the value."],
            patterns=[pattern, other]
        )

        analysis = ConversationAnalyzer(capability).analyze(context)

        matches = analysis.misconceptions.matched_patterns
        assert len(matches) == 1
        assert matches[0]["pattern_id"] == pattern.id
        assert matches[0]["matched_in"] == "The LIMIT IS THE VALUE at the point."
        assert analysis.misconceptions.count == 1

    def test_process_sets_context_analysis(self):
        capability = FakeCapability([THEMES])
        context = make_context(learner=[SHALLOW, DEEP])

        result = ConversationAnalyzer(capability).process(context)

        assert result.analysis is not None
        assert result.analysis.to_dict()["progression"]["trend"] == result.analysis.progression.trend
