"""
Models Module - Domain entities shared by every pipeline stage.
"""
from .entities import (
    RUBRIC_LEVELS,
    LEVEL_SCORES,
    level_to_score,
    missing_rubric_levels,
    new_id,
    utcnow,
    Role,
    DocumentStatus,
    ProficiencyLevel,
    SourceFile,
    Document,
    Chunk,
    Summary,
    Rubric,
    MisconceptionPattern,
    Conversation,
    Message,
    ConceptEvaluation,
    GradeReport,
)

__all__ = [
    "RUBRIC_LEVELS",
    "LEVEL_SCORES",
    "level_to_score",
    "missing_rubric_levels",
    "new_id",
    "utcnow",
    "Role",
    "DocumentStatus",
    "ProficiencyLevel",
    "SourceFile",
    "Document",
    "Chunk",
    "Summary",
    "Rubric",
    "MisconceptionPattern",
    "Conversation",
    "Message",
    "ConceptEvaluation",
    "GradeReport",
]
