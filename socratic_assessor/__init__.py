"""
Socratic Assessor - Source Package

Retrieval-grounded Socratic dialogue and conversation grading with a
three-agent evaluation system.
"""
from .errors import (
    AssessmentError,
    InputError,
    PreconditionError,
    EvaluationInProgressError,
    CapabilityError,
    GenerationFailure,
    ParseError
)
from .models import (
    Document,
    SourceFile,
    Chunk,
    Summary,
    Rubric,
    MisconceptionPattern,
    Conversation,
    Message,
    ConceptEvaluation,
    GradeReport,
    Role,
    ProficiencyLevel
)
from .chunking import TextChunker
from .document_processing import DocxProcessor, PDFProcessor, extract_text
from .embeddings import Embedder
from .vector_store import ChromaStore, InMemoryVectorStore
from .storage import Repository
from .llm import ModelCapability, OllamaClient, LocalModelCapability, create_capability
from .indexing import DocumentIndexer
from .retrieval import ContextRetriever
from .dialogue import DialogueResponder
from .synthesis import SummarySynthesizer, RubricSynthesizer
from .prompts import PromptTemplates

# Agentic evaluation system
from .agents import (
    EvaluationOrchestrator,
    ConversationAnalyzer,
    ConceptEvaluator,
    GradeAggregator,
    create_agent_system
)

from .events import EvaluationEvent, log_notifier
from .service import AssessmentService, create_assessment_system

__all__ = [
    # Errors
    "AssessmentError",
    "InputError",
    "PreconditionError",
    "EvaluationInProgressError",
    "CapabilityError",
    "GenerationFailure",
    "ParseError",

    # Entities
    "Document",
    "SourceFile",
    "Chunk",
    "Summary",
    "Rubric",
    "MisconceptionPattern",
    "Conversation",
    "Message",
    "ConceptEvaluation",
    "GradeReport",
    "Role",
    "ProficiencyLevel",

    # Processing
    "TextChunker",
    "DocxProcessor",
    "PDFProcessor",
    "extract_text",
    "Embedder",
    "ChromaStore",
    "InMemoryVectorStore",
    "Repository",
    "ModelCapability",
    "OllamaClient",
    "LocalModelCapability",
    "create_capability",
    "DocumentIndexer",
    "ContextRetriever",
    "DialogueResponder",
    "SummarySynthesizer",
    "RubricSynthesizer",
    "PromptTemplates",

    # Agents
    "EvaluationOrchestrator",
    "ConversationAnalyzer",
    "ConceptEvaluator",
    "GradeAggregator",
    "create_agent_system",

    # Work units
    "EvaluationEvent",
    "log_notifier",
    "AssessmentService",
    "create_assessment_system",
]
