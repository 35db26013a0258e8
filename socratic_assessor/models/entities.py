"""
Domain entities for the assessment pipeline.

Ownership:
- A Document owns its Chunks, Summary, Rubrics and MisconceptionPatterns
- A Conversation owns its Messages and GradeReports

Chunks, Messages and GradeReports are immutable once created.
"""
import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from config import EvaluationConfig


RUBRIC_LEVELS = ("beginner", "developing", "proficient", "mastery")

# Canonical 0-1 score for each evaluated proficiency level
LEVEL_SCORES = {
    "advanced": 0.95,
    "proficient": 0.75,
    "developing": 0.55,
    "novice": 0.25,
    "unknown": 0.0,
}


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def level_to_score(level: Optional[str]) -> float:
    """Map an evaluated level to its canonical score (unknown levels score 0.0)."""
    if not level:
        return 0.0
    return LEVEL_SCORES.get(str(level).strip().lower(), 0.0)


def missing_rubric_levels(levels: Any) -> List[str]:
    """Return the rubric level keys that are absent or have blank descriptions."""
    if not isinstance(levels, dict):
        return list(RUBRIC_LEVELS)
    missing = []
    for level in RUBRIC_LEVELS:
        description = levels.get(level)
        if not isinstance(description, str) or not description.strip():
            missing.append(level)
    return missing


class Role(str, Enum):
    LEARNER = "learner"
    EVALUATOR = "evaluator"

    @property
    def llm_role(self) -> str:
        return "user" if self is Role.LEARNER else "assistant"


class DocumentStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSED = "processed"


class ProficiencyLevel(str, Enum):
    NOVICE = "novice"
    DEVELOPING = "developing"
    PROFICIENT = "proficient"
    ADVANCED = "advanced"
    UNKNOWN = "unknown"

    @property
    def score(self) -> float:
        return level_to_score(self.value)

    @classmethod
    def parse(cls, value: Any) -> Optional["ProficiencyLevel"]:
        """Parse a model-supplied level, accepting the rubric level names as aliases."""
        if not isinstance(value, str):
            return None
        normalized = value.strip().lower()
        aliases = {"beginner": "novice", "mastery": "advanced"}
        normalized = aliases.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError:
            return None


@dataclass
class SourceFile:
    """A file attached to a document."""
    filename: str
    path: Optional[str] = None


@dataclass
class Document:
    """Instructional material made of one or more attached files."""
    title: str
    files: List[SourceFile] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    status: DocumentStatus = DocumentStatus.UPLOADED
    created_at: datetime = field(default_factory=utcnow)

    @property
    def processed(self) -> bool:
        return self.status is DocumentStatus.PROCESSED


@dataclass(frozen=True)
class Chunk:
    """A bounded segment of document text paired with its embedding."""
    document_id: str
    text: str
    embedding: Tuple[float, ...]
    sequence_hint: int
    filename: str = ""
    file_index: int = 0
    id: str = field(default_factory=new_id)

    @property
    def dimension(self) -> int:
        return len(self.embedding)


@dataclass(frozen=True)
class Summary:
    document_id: str
    content: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Rubric:
    """A concept with four ordered proficiency-level descriptions."""
    document_id: str
    concept: str
    levels: Dict[str, str]
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def levels_summary(self, preview_chars: int = 100) -> str:
        parts = []
        for level in RUBRIC_LEVELS:
            description = self.levels.get(level, "")
            if len(description) > preview_chars:
                description = description[:preview_chars - 3].rstrip() + "..."
            parts.append(f"{level.capitalize()}: {description}")
        return "; ".join(parts)


@dataclass
class MisconceptionPattern:
    """A named, phrase-triggered signal of a known incorrect understanding."""
    document_id: str
    concept: str
    name: str
    signal_phrases: List[str]
    recommended_followups: List[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def detected_in(self, text: str) -> Optional[str]:
        """Return the first signal phrase found in text (case-insensitive), if any."""
        normalized = text.lower()
        for phrase in self.signal_phrases:
            if phrase and phrase.lower() in normalized:
                return phrase
        return None

    def random_followup(self, rng: Optional[random.Random] = None) -> Optional[str]:
        if not self.recommended_followups:
            return None
        return (rng or random).choice(self.recommended_followups)


@dataclass
class Conversation:
    document_id: str
    learner_id: Optional[str] = None
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Message:
    """One transcript turn. Ordered by (created_at, sequence)."""
    conversation_id: str
    role: Role
    content: str
    created_at: datetime
    sequence: int
    id: str = field(default_factory=new_id)

    @property
    def from_learner(self) -> bool:
        return self.role is Role.LEARNER

    @property
    def from_evaluator(self) -> bool:
        return self.role is Role.EVALUATOR

    @property
    def sort_key(self) -> Tuple[datetime, int]:
        return (self.created_at, self.sequence)

    def to_llm_message(self) -> Dict[str, str]:
        return {"role": self.role.llm_role, "content": self.content}


@dataclass
class ConceptEvaluation:
    """Scored assessment of one rubric concept. Not persisted on its own."""
    concept: str
    level: ProficiencyLevel
    score: float
    evidence: str = ""
    feedback: str = ""
    confidence: float = 0.0
    fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level.value,
            "score": self.score,
            "evidence": self.evidence,
            "feedback": self.feedback,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class GradeReport:
    """Aggregated outcome of one evaluation run. Never mutated after creation."""
    conversation_id: str
    overall_score: float
    detailed_scores: Dict[str, Dict[str, Any]]
    feedback: str
    recommendations: Tuple[str, ...]
    strengths: Tuple[str, ...] = ()
    weaknesses: Tuple[str, ...] = ()
    evaluated_at: datetime = field(default_factory=utcnow)
    id: str = field(default_factory=new_id)

    @property
    def performance_level(self) -> str:
        score = self.overall_score
        if score < 0.375:
            return "beginner"
        if score < 0.625:
            return "developing"
        if score < 0.875:
            return "proficient"
        return "mastery"

    @property
    def needs_attention(self) -> bool:
        return (
            self.overall_score < EvaluationConfig.WEAKNESS_THRESHOLD
            or len(self.weaknesses) > len(self.detailed_scores) / 2
        )

    @property
    def follow_up_concepts(self) -> List[str]:
        return [
            concept for concept, data in self.detailed_scores.items()
            if data.get("score", 0.0) < EvaluationConfig.FOLLOW_UP_THRESHOLD
        ]

    def to_dict(self, include_identity: bool = True) -> Dict[str, Any]:
        data = {
            "conversation_id": self.conversation_id,
            "overall_score": self.overall_score,
            "performance_level": self.performance_level,
            "detailed_scores": {k: dict(v) for k, v in self.detailed_scores.items()},
            "feedback": self.feedback,
            "recommendations": list(self.recommendations),
            "strengths": list(self.strengths),
            "weaknesses": list(self.weaknesses),
            "needs_attention": self.needs_attention,
        }
        if include_identity:
            data["id"] = self.id
            data["evaluated_at"] = self.evaluated_at.isoformat()
        return data
