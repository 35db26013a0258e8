"""
Conversation Evaluation - Core Architecture

Three-agent pipeline turning a transcript into a grade report:
1. Analysis Agent - Themes, understanding progression, misconception signals
2. Scoring Agent - Per-rubric concept evaluation
3. Feedback Agent - Aggregation into an overall score, feedback and recommendations
"""
import logging
import time
from abc import abstractmethod
from typing import Dict, Any, List, Optional, TYPE_CHECKING
from dataclasses import dataclass, field
from enum import Enum

from ..errors import InputError
from ..models import ConceptEvaluation, Conversation, GradeReport, Message, MisconceptionPattern, Role, Rubric

# Type hints only - avoids circular imports
if TYPE_CHECKING:
    from ..storage import Repository
    from .analysis_agent import ConversationAnalyzer, ConversationAnalysis
    from .scoring_agent import ConceptEvaluator
    from .feedback_agent import GradeAggregator

logger = logging.getLogger(__name__)


class AgentRole(Enum):
    ANALYSIS = "analysis"
    SCORING = "scoring"
    FEEDBACK = "feedback"


@dataclass
class AgentContext:
    """Shared context passed between agents for one evaluation run."""
    # Input data
    conversation: Conversation
    rubrics: List[Rubric] = field(default_factory=list)
    learner_messages: List[Message] = field(default_factory=list)
    evaluator_messages: List[Message] = field(default_factory=list)
    misconception_patterns: List[MisconceptionPattern] = field(default_factory=list)

    # Populated by the Analysis Agent
    analysis: Optional["ConversationAnalysis"] = None

    # Populated by the Scoring Agent, in rubric order
    concept_evaluations: Dict[str, ConceptEvaluation] = field(default_factory=dict)

    # Populated by the Feedback Agent
    grade_report: Optional[GradeReport] = None

    # Recoverable problems recorded by any agent
    errors: List[str] = field(default_factory=list)


@dataclass
class ToolResult:
    """Result from a tool execution."""
    tool_name: str
    success: bool
    data: Dict[str, Any]
    error: Optional[str] = None


class BaseTool:
    """Base class for agent tools."""
    name: str = "base_tool"
    description: str = "Base tool"

    def execute(self, context: AgentContext, **kwargs) -> ToolResult:
        raise NotImplementedError


class BaseAgent:
    """Base class for all agents."""

    def __init__(self, capability, role: AgentRole, tools: List[BaseTool], verbose: bool = False):
        self.capability = capability
        self.role = role
        self.tools = {tool.name: tool for tool in tools}
        self.verbose = verbose

    def _log_verbose(self, message: str):
        if self.verbose:
            logger.info(f"[{self.role.value.upper()}] {message}")

    def _log_tool_call(self, tool_name: str, inputs: Dict = None, result: 'ToolResult' = None):
        if self.verbose:
            if inputs:
                self._log_verbose(f"🔧 {tool_name}({list(inputs.keys())})")
            if result:
                status = "✓" if result.success else "✗"
                self._log_verbose(f"   {status} {tool_name} → {list(result.data.keys())[:3]}...")

    @abstractmethod
    def process(self, context: AgentContext) -> AgentContext:
        """Process the context and return updated context."""
        raise NotImplementedError


def call_model(capability, prompt: str, temperature: float, system_prompt: str = "") -> str:
    """Single-turn completion helper shared by the agent tools."""
    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})
    return capability.complete(messages, temperature=temperature)


class EvaluationOrchestrator:
    """
    Orchestrates analysis -> scoring -> aggregation for one conversation.

    The orchestrator is the single writer of GradeReport: it persists exactly
    one new report per successful run and never touches earlier reports.
    """

    def __init__(
        self,
        repository: "Repository",
        analysis_agent: "ConversationAnalyzer",
        scoring_agent: "ConceptEvaluator",
        feedback_agent: "GradeAggregator",
        verbose: bool = False
    ):
        self.repository = repository
        self.analysis_agent = analysis_agent
        self.scoring_agent = scoring_agent
        self.feedback_agent = feedback_agent
        self.verbose = verbose

    def build_context(self, conversation_id: str) -> AgentContext:
        """
        Load everything an evaluation run needs.

        Raises:
            InputError: conversation missing, no learner messages, or no rubrics
        """
        conversation = self.repository.require_conversation(conversation_id)

        reasons = []
        learner_messages = self.repository.list_messages(conversation_id, Role.LEARNER)
        if not learner_messages:
            reasons.append("No learner messages found in conversation to evaluate")

        rubrics = self.repository.list_rubrics(conversation.document_id)
        if not rubrics:
            reasons.append("No rubrics found for document - cannot evaluate")

        if reasons:
            raise InputError(f"Conversation {conversation_id} cannot be evaluated", reasons)

        return AgentContext(
            conversation=conversation,
            rubrics=rubrics,
            learner_messages=learner_messages,
            evaluator_messages=self.repository.list_messages(conversation_id, Role.EVALUATOR),
            misconception_patterns=self.repository.list_misconception_patterns(conversation.document_id),
        )

    def process(self, conversation_id: str, progress_callback=None) -> Dict[str, Any]:
        """
        Run the full evaluation pipeline.

        Returns:
            Result dict with the grade report, the per-phase warnings and errors
            and a status. Raises InputError before any phase runs.
        """
        warnings = []

        context = self.build_context(conversation_id)
        logger.info(f"Starting conversation evaluation for {conversation_id}")

        # Phase 1: Analysis
        if progress_callback:
            progress_callback("Analysis Agent: Reading transcript...", 0.1)
        logger.info("Phase 1: Analysis Agent")

        start_time = time.time()
        context = self.analysis_agent.process(context)
        logger.info(f"Analysis complete in {time.time() - start_time:.1f}s")

        if not context.analysis.themes.ok:
            warnings.append("Theme extraction returned no usable output")

        # Phase 2: Scoring, one evaluation per rubric in rubric order
        if progress_callback:
            progress_callback("Scoring Agent: Applying rubrics...", 0.4)
        logger.info("Phase 2: Scoring Agent")

        start_time = time.time()
        context = self.scoring_agent.process(context)
        logger.info(f"Scoring complete in {time.time() - start_time:.1f}s")

        fallbacks = [c for c, e in context.concept_evaluations.items() if e.fallback]
        for concept in fallbacks:
            warnings.append(f"Concept '{concept}' scored with fallback evaluation")

        # Phase 3: Aggregation
        if progress_callback:
            progress_callback("Feedback Agent: Aggregating grade...", 0.8)
        logger.info("Phase 3: Feedback Agent")

        context = self.feedback_agent.process(context)
        report = self.repository.add_grade_report(context.grade_report)

        if progress_callback:
            progress_callback("Complete!", 1.0)

        logger.info(
            f"Created grade report {report.id} for conversation {conversation_id} "
            f"(overall {report.overall_score})"
        )

        return {
            "conversation_id": conversation_id,
            "grade_report": report,
            "analysis": context.analysis,
            "concepts_evaluated": len(context.concept_evaluations),
            "errors": list(context.errors),
            "warnings": warnings,
            "status": "COMPLETE" if not fallbacks else "PARTIAL",
        }
