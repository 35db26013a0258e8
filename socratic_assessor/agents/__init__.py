"""
Agents Module - Three-agent system for conversation evaluation.

Architecture:
┌─────────────────────────────────────────────────────────────────┐
│                      ORCHESTRATOR                                │
│                                                                  │
│  ┌──────────────┐    ┌──────────────┐    ┌──────────────┐       │
│  │   ANALYSIS   │───▶│   SCORING    │───▶│   FEEDBACK   │       │
│  │    AGENT     │    │    AGENT     │    │    AGENT     │       │
│  │      🔍      │    │      📊      │    │      💬      │       │
│  │              │    │              │    │              │       │
│  │ • Themes     │    │ • Evidence   │    │ • Overall    │       │
│  │ • Progression│    │ • Levels     │    │ • Strengths  │       │
│  │ • Miscon-    │    │ • Scores     │    │ • Weaknesses │       │
│  │   ceptions   │    │ • Fallbacks  │    │ • Feedback   │       │
│  └──────────────┘    └──────────────┘    └──────────────┘       │
│                                                                  │
│                       Shared Context                             │
└─────────────────────────────────────────────────────────────────┘
"""

from .core import (
    AgentRole,
    AgentContext,
    EvaluationOrchestrator,
    BaseAgent,
    BaseTool,
    ToolResult,
    call_model
)

from .analysis_agent import (
    ConversationAnalyzer,
    ConversationAnalysis,
    ThemeAnalysis,
    ProgressionAnalysis,
    MisconceptionAnalysis,
    MessageScore,
    ThemeExtractorTool,
    ProgressionTrackerTool,
    MisconceptionDetectorTool,
    message_complexity,
    conceptual_depth,
    classify_trend,
    question_theme
)

from .scoring_agent import (
    ConceptEvaluator,
    EvidenceSelectorTool,
    ConceptScorerTool,
    fallback_evaluation
)

from .feedback_agent import (
    GradeAggregator,
    StrengthWeaknessTool,
    FeedbackComposerTool,
    FEEDBACK_TEMPLATES,
    performance_band
)


def create_agent_system(capability, repository, verbose: bool = False, clock=None):
    """
    Factory function to create the complete three-agent system.

    Args:
        capability: ModelCapability used for theme extraction and concept scoring
        repository: Repository the orchestrator reads from and writes reports to
        verbose: Enable verbose logging
        clock: Optional timestamp source for grade reports

    Returns:
        Configured EvaluationOrchestrator
    """
    analysis_agent = ConversationAnalyzer(capability, verbose)
    scoring_agent = ConceptEvaluator(capability, verbose)
    if clock is not None:
        feedback_agent = GradeAggregator(capability, verbose, clock=clock)
    else:
        feedback_agent = GradeAggregator(capability, verbose)

    return EvaluationOrchestrator(
        repository=repository,
        analysis_agent=analysis_agent,
        scoring_agent=scoring_agent,
        feedback_agent=feedback_agent,
        verbose=verbose
    )


__all__ = [
    # Core
    'AgentRole',
    'AgentContext',
    'EvaluationOrchestrator',
    'BaseAgent',
    'BaseTool',
    'ToolResult',
    'call_model',

    # Agents
    'ConversationAnalyzer',
    'ConceptEvaluator',
    'GradeAggregator',

    # Analysis results and heuristics
    'ConversationAnalysis',
    'ThemeAnalysis',
    'ProgressionAnalysis',
    'MisconceptionAnalysis',
    'MessageScore',
    'message_complexity',
    'conceptual_depth',
    'classify_trend',
    'question_theme',

    # Analysis Tools
    'ThemeExtractorTool',
    'ProgressionTrackerTool',
    'MisconceptionDetectorTool',

    # Scoring Tools
    'EvidenceSelectorTool',
    'ConceptScorerTool',
    'fallback_evaluation',

    # Feedback Tools
    'StrengthWeaknessTool',
    'FeedbackComposerTool',
    'FEEDBACK_TEMPLATES',
    'performance_band',

    # Factory
    'create_agent_system'
]
