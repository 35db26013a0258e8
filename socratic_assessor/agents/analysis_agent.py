"""
Analysis Agent - Transcript analysis ahead of concept scoring

Reads the learner's side of a conversation and produces:
- Themes and key concepts (one structured-output model call)
- Understanding progression (lexical complexity and conceptual depth heuristics)
- Misconception signals (repeated evaluator question themes, known patterns)
"""
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Sequence
import logging

from config import AnalysisConfig, LLMConfig, LOG_LEVEL
from .core import BaseAgent, BaseTool, AgentContext, AgentRole, ToolResult, call_model
from ..models import Message, MisconceptionPattern
from ..prompts import PromptTemplates
from ..errors import ParseError
from ..validation import list_field, require_structured
from ..utils.logger import create_logger, LogLevel

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "insufficient_data"

_CONNECTIVE_PATTERNS = [
    re.compile(rf'\b{re.escape(word)}\b') for word in AnalysisConfig.DISCOURSE_CONNECTIVES
]
_TECHNICAL_PATTERNS = [re.compile(p) for p in AnalysisConfig.TECHNICAL_PATTERNS]


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class ThemeAnalysis:
    themes: List[str] = field(default_factory=list)
    key_concepts: List[str] = field(default_factory=list)
    confidence: float = 0.0
    ok: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "themes": list(self.themes),
            "key_concepts": list(self.key_concepts),
            "confidence": self.confidence,
        }


@dataclass
class MessageScore:
    index: int
    complexity: float
    depth: float

    @property
    def combined(self) -> float:
        return (self.complexity + self.depth) / 2


@dataclass
class ProgressionAnalysis:
    score: float = 0.0
    trend: str = INSUFFICIENT_DATA
    message_scores: List[MessageScore] = field(default_factory=list)
    early_average: Optional[float] = None
    late_average: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "progression_score": self.score,
            "trend": self.trend,
            "early_average": self.early_average,
            "late_average": self.late_average,
            "message_scores": [
                {"index": s.index, "complexity": round(s.complexity, 3),
                 "depth": round(s.depth, 3), "combined": round(s.combined, 3)}
                for s in self.message_scores
            ],
        }


@dataclass
class MisconceptionAnalysis:
    repeated_themes: List[str] = field(default_factory=list)
    matched_patterns: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.repeated_themes) + len(self.matched_patterns)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repeated_themes": list(self.repeated_themes),
            "matched_patterns": [dict(m) for m in self.matched_patterns],
            "misconception_count": self.count,
        }


@dataclass
class ConversationAnalysis:
    total_learner_messages: int
    total_evaluator_messages: int
    themes: ThemeAnalysis
    progression: ProgressionAnalysis
    misconceptions: MisconceptionAnalysis
    conversation_length: int = 0

    @property
    def has_learner_input(self) -> bool:
        return self.total_learner_messages > 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_learner_messages": self.total_learner_messages,
            "total_evaluator_messages": self.total_evaluator_messages,
            "themes": self.themes.to_dict(),
            "progression": self.progression.to_dict(),
            "misconceptions": self.misconceptions.to_dict(),
            "conversation_length": self.conversation_length,
        }


# =============================================================================
# HEURISTICS
# =============================================================================

def message_complexity(text: str) -> float:
    """unique word ratio + average words per sentence / 10, capped at 1.0"""
    words = text.split()
    if not words:
        return 0.0

    unique_words = {w for w in re.split(r'\W+', text.lower()) if w}
    sentences = [s for s in re.split(r'[.!?]+', text) if s.strip()]
    sentence_count = max(1, len(sentences))

    complexity = len(unique_words) / len(words) + (len(words) / sentence_count) / 10
    return min(1.0, complexity)


def conceptual_depth(text: str) -> float:
    """
    0.1 per discourse connective used, 0.15 per technical pattern matched,
    plus 0.05 per 100 characters, capped at 1.0.
    """
    lowered = text.lower()
    connectives = sum(1 for pattern in _CONNECTIVE_PATTERNS if pattern.search(lowered))
    technical = sum(1 for pattern in _TECHNICAL_PATTERNS if pattern.search(text))

    depth = connectives * 0.1 + technical * 0.15 + (len(text) / 100) * 0.05
    return min(1.0, depth)


def classify_trend(score: float) -> str:
    if score >= AnalysisConfig.STRONG_IMPROVEMENT:
        return "strong_improvement"
    if score >= AnalysisConfig.MODERATE_IMPROVEMENT:
        return "moderate_improvement"
    if score > AnalysisConfig.STABLE_FLOOR:
        return "stable"
    if score > AnalysisConfig.SLIGHT_DECLINE_FLOOR:
        return "slight_decline"
    return "concerning_decline"


def question_theme(text: str) -> str:
    """Coarse theme key: the two longest words (longer than 4 chars), in text order."""
    words = [w for w in re.split(r'\W+', text.lower()) if len(w) >= AnalysisConfig.THEME_WORD_MIN_LENGTH]
    longest = sorted(range(len(words)), key=lambda i: -len(words[i]))[:2]
    return "_".join(words[i] for i in sorted(longest))


# =============================================================================
# TOOLS
# =============================================================================

class ThemeExtractorTool(BaseTool):
    """Extracts themes and key concepts from the learner's messages."""
    name = "extract_themes"
    description = "Identify themes and key concepts discussed by the learner"

    def __init__(self, capability):
        self.capability = capability

    def execute(self, context: AgentContext, messages: Sequence[Message] = ()) -> ToolResult:
        combined = " ".join(m.content for m in messages)[:AnalysisConfig.THEME_INPUT_CHARS]
        prompt = PromptTemplates.format_theme_extraction(combined)

        try:
            response = call_model(self.capability, prompt, LLMConfig.EXTRACTION_TEMPERATURE)
        except Exception as e:
            logger.error(f"Theme extraction failed: {e}")
            return ToolResult(self.name, False, {"themes": ThemeAnalysis()}, str(e))

        try:
            parsed = require_structured(response, "object", "theme output")
        except ParseError as e:
            return ToolResult(self.name, False, {"themes": ThemeAnalysis()}, e.message)

        confidence = parsed.get("confidence")
        themes = ThemeAnalysis(
            themes=list_field(parsed, "themes"),
            key_concepts=list_field(parsed, "key_concepts"),
            confidence=float(confidence) if isinstance(confidence, (int, float)) and not isinstance(confidence, bool) else 0.0,
            ok=True,
        )
        return ToolResult(self.name, True, {"themes": themes})


class ProgressionTrackerTool(BaseTool):
    """Measures how the learner's answers develop over the conversation."""
    name = "track_progression"
    description = "Score each learner message and compare the second half with the first"

    def execute(self, context: AgentContext, messages: Sequence[Message] = ()) -> ToolResult:
        if len(messages) < 2:
            return ToolResult(self.name, True, {"progression": ProgressionAnalysis()})

        scores = [
            MessageScore(i, message_complexity(m.content), conceptual_depth(m.content))
            for i, m in enumerate(messages)
        ]

        # Odd counts give the extra message to the second half
        half = len(scores) // 2
        early = [s.combined for s in scores[:half]]
        late = [s.combined for s in scores[half:]]
        early_average = sum(early) / len(early)
        late_average = sum(late) / len(late)

        difference = late_average - early_average
        progression = ProgressionAnalysis(
            score=round(difference, 2),
            trend=classify_trend(difference),
            message_scores=scores,
            early_average=round(early_average, 2),
            late_average=round(late_average, 2),
        )
        return ToolResult(self.name, True, {"progression": progression})


class MisconceptionDetectorTool(BaseTool):
    """Flags repeated evaluator probing and known misconception phrases."""
    name = "detect_misconceptions"
    description = "Find repeated question themes and matched misconception patterns"

    def execute(self, context: AgentContext, learner_messages: Sequence[Message] = (),
                evaluator_messages: Sequence[Message] = (),
                patterns: Sequence[MisconceptionPattern] = ()) -> ToolResult:
        keys = [question_theme(m.content) for m in evaluator_messages if '?' in m.content]
        counts = Counter(k for k in keys if k)
        repeated = [k for k in dict.fromkeys(keys) if k and counts[k] > 1]

        matched = []
        for pattern in patterns:
            for message in learner_messages:
                phrase = pattern.detected_in(message.content)
                if phrase:
                    matched.append({
                        "pattern_id": pattern.id,
                        "name": pattern.name,
                        "concept": pattern.concept,
                        "phrase": phrase,
                        "matched_in": message.content[:100],
                    })
                    break

        return ToolResult(self.name, True, {
            "misconceptions": MisconceptionAnalysis(repeated_themes=repeated, matched_patterns=matched)
        })


# =============================================================================
# AGENT
# =============================================================================

class ConversationAnalyzer(BaseAgent):
    """Analysis Agent - themes, progression and misconceptions for one transcript."""

    def __init__(self, capability, verbose: bool = False):
        tools = [
            ThemeExtractorTool(capability),
            ProgressionTrackerTool(),
            MisconceptionDetectorTool(),
        ]
        super().__init__(capability, AgentRole.ANALYSIS, tools, verbose)

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("ANALYSIS", log_level, verbose)

    def analyze(
        self,
        context: AgentContext
    ) -> ConversationAnalysis:
        """
        Analyze the transcript held in context.

        With no learner messages, returns neutral sentinel values without
        calling the model.
        """
        learner = context.learner_messages
        evaluator = context.evaluator_messages

        if not learner:
            self.enhanced_logger.warning("No learner messages - returning insufficient-data analysis")
            return ConversationAnalysis(
                total_learner_messages=0,
                total_evaluator_messages=len(evaluator),
                themes=ThemeAnalysis(),
                progression=ProgressionAnalysis(),
                misconceptions=MisconceptionAnalysis(),
            )

        self._log_tool_call("extract_themes", {"messages": len(learner)})
        theme_result = self.tools["extract_themes"].execute(context, messages=learner)
        self._log_tool_call("extract_themes", result=theme_result)
        if not theme_result.success:
            context.errors.append(f"Theme extraction failed: {theme_result.error}")

        progression_result = self.tools["track_progression"].execute(context, messages=learner)

        misconception_result = self.tools["detect_misconceptions"].execute(
            context,
            learner_messages=learner,
            evaluator_messages=evaluator,
            patterns=context.misconception_patterns
        )

        analysis = ConversationAnalysis(
            total_learner_messages=len(learner),
            total_evaluator_messages=len(evaluator),
            themes=theme_result.data["themes"],
            progression=progression_result.data["progression"],
            misconceptions=misconception_result.data["misconceptions"],
            conversation_length=sum(len(m.content) for m in learner),
        )

        self.enhanced_logger.metric("progression_trend", analysis.progression.trend)
        self.enhanced_logger.metric("misconception_count", analysis.misconceptions.count)
        return analysis

    def process(self, context: AgentContext) -> AgentContext:
        self.enhanced_logger.phase("Starting analysis phase...")

        with self.enhanced_logger.timer("Conversation analysis", warn_threshold_ms=30000):
            context.analysis = self.analyze(context)

        self.enhanced_logger.success(
            f"Analysis complete: trend {context.analysis.progression.trend}, "
            f"{context.analysis.misconceptions.count} misconception signals"
        )
        return context
