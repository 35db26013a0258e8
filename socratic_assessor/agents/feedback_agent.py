"""
Feedback Agent - Grade aggregation

Takes the per-concept evaluations and the transcript analysis to produce:
- Overall score (mean of concept scores)
- Strengths and weaknesses
- Narrative feedback (performance band, progression remark, misconception remark)
- Recommendations for weak concepts
"""
from typing import Callable, Dict, List, Optional, Tuple
from datetime import datetime
import logging

from config import EvaluationConfig, LOG_LEVEL
from .core import BaseAgent, BaseTool, AgentContext, AgentRole, ToolResult
from ..errors import InputError
from ..models import ConceptEvaluation, GradeReport, utcnow
from ..utils.logger import create_logger, LogLevel

logger = logging.getLogger(__name__)


FEEDBACK_TEMPLATES = {
    "overall": "Overall performance: {band} ({percent}%).",
    "strengths": " Strong understanding demonstrated in: {concepts}.",
    "weaknesses": " Areas needing attention: {concepts}.",
    "trend": {
        "strong_improvement": "Great progress shown throughout the conversation!",
        "moderate_improvement": "Your understanding developed steadily as the conversation went on.",
        "stable": "Your understanding stayed consistent throughout the conversation.",
        "slight_decline": "Your later answers were a little less developed than your earlier ones.",
        "concerning_decline": "Consider taking a break and reviewing earlier concepts.",
    },
    "misconceptions": "Some conceptual areas may benefit from additional clarification.",
    "review_foundations": "Consider reviewing foundational concepts before advancing to new material.",
}


def performance_band(score: float) -> str:
    for lower_bound, label in EvaluationConfig.PERFORMANCE_BANDS:
        if score >= lower_bound:
            return label
    return EvaluationConfig.DEFAULT_BAND


class StrengthWeaknessTool(BaseTool):
    """Splits evaluated concepts into strengths and weaknesses."""
    name = "classify_concepts"
    description = "Identify strong and weak concepts by score threshold"

    def execute(self, context: AgentContext,
                evaluations: Dict[str, ConceptEvaluation] = None) -> ToolResult:
        evaluations = evaluations or {}
        strengths = [c for c, e in evaluations.items() if e.score >= EvaluationConfig.STRENGTH_THRESHOLD]
        weaknesses = [c for c, e in evaluations.items() if e.score < EvaluationConfig.WEAKNESS_THRESHOLD]
        return ToolResult(self.name, True, {"strengths": strengths, "weaknesses": weaknesses})


class FeedbackComposerTool(BaseTool):
    """Composes the narrative feedback and recommendations."""
    name = "compose_feedback"
    description = "Write overall feedback and per-concept recommendations"

    def execute(self, context: AgentContext, overall_score: float = 0.0,
                evaluations: Dict[str, ConceptEvaluation] = None,
                strengths: List[str] = (), weaknesses: List[str] = (),
                trend: Optional[str] = None, misconception_count: int = 0) -> ToolResult:
        evaluations = evaluations or {}

        feedback = FEEDBACK_TEMPLATES["overall"].format(
            band=performance_band(overall_score),
            percent=round(overall_score * 100)
        )
        if strengths:
            feedback += FEEDBACK_TEMPLATES["strengths"].format(concepts=", ".join(strengths))
        if weaknesses:
            feedback += FEEDBACK_TEMPLATES["weaknesses"].format(concepts=", ".join(weaknesses))

        remark = FEEDBACK_TEMPLATES["trend"].get(trend)
        if remark:
            feedback += f" {remark}"
        if misconception_count > 0:
            feedback += f" {FEEDBACK_TEMPLATES['misconceptions']}"

        recommendations = [f"{c}: {evaluations[c].feedback}" for c in weaknesses]
        if len(weaknesses) > len(evaluations) / 2:
            recommendations.append(FEEDBACK_TEMPLATES["review_foundations"])

        return ToolResult(self.name, True, {"feedback": feedback, "recommendations": recommendations})


class GradeAggregator(BaseAgent):
    """
    Feedback Agent - turns concept evaluations into a GradeReport.

    The report is built here and persisted by the orchestrator; the same
    inputs always produce the same report content apart from id and timestamp.
    """

    def __init__(self, capability=None, verbose: bool = False,
                 clock: Callable[[], datetime] = utcnow):
        tools = [
            StrengthWeaknessTool(),
            FeedbackComposerTool(),
        ]
        super().__init__(capability, AgentRole.FEEDBACK, tools, verbose)
        self.clock = clock

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("FEEDBACK", log_level, verbose)

    def aggregate(
        self,
        conversation_id: str,
        evaluations: Dict[str, ConceptEvaluation],
        analysis=None,
        context: Optional[AgentContext] = None
    ) -> GradeReport:
        """
        Aggregate concept evaluations into a grade report.

        Raises:
            InputError: no evaluations to aggregate
        """
        if not evaluations:
            raise InputError(
                f"No concept evaluations for conversation {conversation_id}",
                ["No concept evaluations to aggregate"]
            )

        scores = [e.score for e in evaluations.values()]
        overall_score = round(sum(scores) / len(scores), 3)

        split = self.tools["classify_concepts"].execute(context, evaluations=evaluations)
        strengths, weaknesses = split.data["strengths"], split.data["weaknesses"]

        trend, misconception_count = self._analysis_signals(analysis)
        composed = self.tools["compose_feedback"].execute(
            context,
            overall_score=overall_score,
            evaluations=evaluations,
            strengths=strengths,
            weaknesses=weaknesses,
            trend=trend,
            misconception_count=misconception_count
        )

        self.enhanced_logger.metric("overall_score", overall_score)
        self.enhanced_logger.metric("weak_concepts", len(weaknesses))

        return GradeReport(
            conversation_id=conversation_id,
            overall_score=overall_score,
            detailed_scores={concept: e.to_dict() for concept, e in evaluations.items()},
            feedback=composed.data["feedback"],
            recommendations=tuple(composed.data["recommendations"]),
            strengths=tuple(strengths),
            weaknesses=tuple(weaknesses),
            evaluated_at=self.clock()
        )

    @staticmethod
    def _analysis_signals(analysis) -> Tuple[Optional[str], int]:
        if analysis is None:
            return None, 0
        return analysis.progression.trend, analysis.misconceptions.count

    def process(self, context: AgentContext) -> AgentContext:
        self.enhanced_logger.phase("Aggregating grade report...")

        context.grade_report = self.aggregate(
            context.conversation.id, context.concept_evaluations, context.analysis, context
        )

        self.enhanced_logger.success(
            f"Overall score {context.grade_report.overall_score} "
            f"({performance_band(context.grade_report.overall_score)})"
        )
        return context
