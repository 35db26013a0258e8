"""
Scoring Agent - Per-rubric concept evaluation

For every rubric of the conversation's document:
- Selects learner messages that mention the concept as evidence
- Asks the model for a level, score, evidence, feedback and confidence
- Substitutes a worst-case fallback when the output is unusable
"""
from typing import Dict, Any, Optional, Sequence
import logging

from config import EvaluationConfig, LLMConfig, LOG_LEVEL
from .core import BaseAgent, BaseTool, AgentContext, AgentRole, ToolResult, call_model
from ..models import ConceptEvaluation, Message, ProficiencyLevel, Rubric, RUBRIC_LEVELS, level_to_score
from ..prompts import PromptTemplates
from ..retrieval import word_set
from ..errors import ParseError
from ..validation import require_structured
from ..utils.logger import create_logger, LogLevel

logger = logging.getLogger(__name__)

FALLBACK_EVIDENCE = "unable to parse"
FALLBACK_FEEDBACK = "Evaluation parsing failed"


def fallback_evaluation(concept: str) -> ConceptEvaluation:
    """Deterministic worst-case evaluation used when model output is unusable."""
    return ConceptEvaluation(
        concept=concept,
        level=ProficiencyLevel.NOVICE,
        score=ProficiencyLevel.NOVICE.score,
        evidence=FALLBACK_EVIDENCE,
        feedback=FALLBACK_FEEDBACK,
        confidence=0.0,
        fallback=True
    )


def concept_keywords(concept: str) -> set:
    return {w for w in word_set(concept) if len(w) >= EvaluationConfig.CONCEPT_KEYWORD_MIN_LENGTH}


def _unit_number(value: Any) -> Optional[float]:
    """Return value as a float if it is a real number in [0, 1]."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    if 0.0 <= value <= 1.0:
        return value
    return None


class EvidenceSelectorTool(BaseTool):
    """Selects the learner messages relevant to one concept."""
    name = "select_evidence"
    description = "Find learner messages sharing keywords with the rubric concept"

    def execute(self, context: AgentContext, rubric: Rubric = None,
                messages: Sequence[Message] = ()) -> ToolResult:
        keywords = concept_keywords(rubric.concept)
        evidence = [m for m in messages if keywords & word_set(m.content)]
        evidence = evidence[:EvaluationConfig.MAX_EVIDENCE_MESSAGES]
        return ToolResult(self.name, True, {"evidence": evidence, "keywords": sorted(keywords)})


class ConceptScorerTool(BaseTool):
    """Scores one concept against its rubric levels."""
    name = "score_concept"
    description = "Evaluate the learner's proficiency for a rubric concept"

    def __init__(self, capability):
        self.capability = capability

    def execute(self, context: AgentContext, rubric: Rubric = None,
                evidence: Sequence[Message] = (), message_count: int = 0,
                trend: str = "insufficient_data") -> ToolResult:
        levels = {level: rubric.levels.get(level, "") for level in RUBRIC_LEVELS}
        prompt = PromptTemplates.format_concept_evaluation(
            concept=rubric.concept,
            levels=levels,
            evidence=[m.content for m in evidence],
            message_count=message_count,
            trend=trend
        )

        try:
            response = call_model(self.capability, prompt, LLMConfig.EVALUATION_TEMPERATURE)
        except Exception as e:
            return ToolResult(self.name, False, {}, f"LLM communication failed: {e}")

        if not (response or "").strip():
            return ToolResult(self.name, False, {}, "Empty response from model")

        try:
            parsed = require_structured(response, "object", "concept evaluation")
        except ParseError as e:
            return ToolResult(self.name, False, {}, e.message)

        level = ProficiencyLevel.parse(parsed.get("level"))
        if level is None:
            logger.warning(f"Unrecognised level for '{rubric.concept}': {parsed.get('level')!r}")
            level = ProficiencyLevel.UNKNOWN

        # An unrecognised level always scores 0.0
        score = _unit_number(parsed.get("score"))
        if score is None or level is ProficiencyLevel.UNKNOWN:
            score = level_to_score(level.value)

        confidence = _unit_number(parsed.get("confidence"))
        evaluation = ConceptEvaluation(
            concept=rubric.concept,
            level=level,
            score=score,
            evidence=str(parsed.get("evidence") or ""),
            feedback=str(parsed.get("feedback") or ""),
            confidence=confidence if confidence is not None else 0.0,
        )
        return ToolResult(self.name, True, {"evaluation": evaluation})


class ConceptEvaluator(BaseAgent):
    """Scoring Agent - evaluates every rubric concept, never failing on bad output."""

    def __init__(self, capability, verbose: bool = False):
        tools = [
            EvidenceSelectorTool(),
            ConceptScorerTool(capability),
        ]
        super().__init__(capability, AgentRole.SCORING, tools, verbose)

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("SCORING", log_level, verbose)

    def evaluate(
        self,
        rubric: Rubric,
        learner_messages: Sequence[Message],
        analysis=None,
        context: Optional[AgentContext] = None
    ) -> ConceptEvaluation:
        """
        Evaluate one rubric concept against the learner's messages.

        Always returns a ConceptEvaluation with a score in [0, 1]; problems
        are recorded on context.errors when a context is given.
        """
        evidence_result = self.tools["select_evidence"].execute(
            context, rubric=rubric, messages=learner_messages
        )
        evidence = evidence_result.data["evidence"]

        trend = analysis.progression.trend if analysis is not None else "insufficient_data"

        self._log_tool_call("score_concept", {"rubric": rubric.concept, "evidence": len(evidence)})
        result = self.tools["score_concept"].execute(
            context,
            rubric=rubric,
            evidence=evidence,
            message_count=len(learner_messages),
            trend=trend
        )
        self._log_tool_call("score_concept", result=result)

        if result.success:
            evaluation = result.data["evaluation"]
        else:
            logger.warning(f"Fallback evaluation for '{rubric.concept}': {result.error}")
            if context is not None:
                context.errors.append(f"{rubric.concept}: {result.error}")
            evaluation = fallback_evaluation(rubric.concept)

        self.enhanced_logger.concept_decision(
            rubric.concept, evaluation.level.value, evaluation.score, len(evidence), evaluation.fallback
        )
        return evaluation

    def process(self, context: AgentContext) -> AgentContext:
        self.enhanced_logger.phase(f"Scoring {len(context.rubrics)} concepts...")

        evaluations: Dict[str, ConceptEvaluation] = {}
        with self.enhanced_logger.timer("Concept scoring", warn_threshold_ms=60000):
            for i, rubric in enumerate(context.rubrics, 1):
                self.enhanced_logger.progress(i, len(context.rubrics), rubric.concept)
                evaluations[rubric.concept] = self.evaluate(
                    rubric, context.learner_messages, context.analysis, context
                )

        context.concept_evaluations = evaluations

        fallbacks = sum(1 for e in evaluations.values() if e.fallback)
        self.enhanced_logger.success(
            f"Scored {len(evaluations)} concepts ({fallbacks} fallback)"
        )
        return context
