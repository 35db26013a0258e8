"""
Configuration settings for the Socratic Assessor.

Deployment concerns (model names, server URLs, log level) can be overridden
from the environment; pipeline constants live in the *Config classes.
"""
import os
from pathlib import Path

# Base paths
BASE_DIR = Path(__file__).parent
DATA_DIR = BASE_DIR / "data"
INDEX_DIR = DATA_DIR / "indexes"


# Ollama settings
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "mistral:7b")
OLLAMA_EMBEDDING_MODEL = os.getenv("OLLAMA_EMBEDDING_MODEL", "nomic-embed-text")
OLLAMA_TIMEOUT = int(os.getenv("OLLAMA_TIMEOUT", "180"))

# Embedding settings
# "sentence-transformers" embeds locally, "ollama" asks the Ollama server
EMBEDDING_BACKEND = os.getenv("EMBEDDING_BACKEND", "sentence-transformers")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-MiniLM-L6-v2")
EMBEDDING_DIMENSION = 384
EMBEDDING_BATCH_SIZE = 32

# Vector store settings
CHROMA_PERSIST_DIR = os.getenv("CHROMA_PERSIST_DIR", str(INDEX_DIR))
CHROMA_COLLECTION = "chunks"

# Logging: minimal | standard | verbose
LOG_LEVEL = os.getenv("LOG_LEVEL", "standard")


class ChunkingConfig:
    """Chunk size bounds, derived from a 1 token ~ 4 characters heuristic."""
    CHARS_PER_TOKEN = 4
    MIN_CHUNK_TOKENS = 200
    MAX_CHUNK_TOKENS = 500
    MIN_CHUNK_CHARS = MIN_CHUNK_TOKENS * CHARS_PER_TOKEN   # 800
    MAX_CHUNK_CHARS = MAX_CHUNK_TOKENS * CHARS_PER_TOKEN   # 2000


class RetrievalConfig:
    """Configuration for context retrieval."""
    CHUNK_TOP_K = 5
    RUBRIC_TOP_K = 3
    ADD_BATCH_SIZE = 100


class DialogueConfig:
    """Configuration for evaluator turn generation."""
    HISTORY_LIMIT = 6
    RUBRIC_LEVEL_PREVIEW_CHARS = 100

    # Confidence heuristic
    CONFIDENCE_BASE = 0.5
    SIMILARITY_WEIGHT = 0.3
    RUBRIC_BONUS = 0.2
    QUESTION_BONUS = 0.1
    LENGTH_BONUS = 0.1
    LENGTH_RANGE = (50, 300)

    ERROR_TURN = (
        "I apologize, but I encountered an error while processing your message. "
        "Please try again or contact support if the problem persists."
    )


class AnalysisConfig:
    """Configuration for conversation analysis."""
    THEME_INPUT_CHARS = 2000
    DISCOURSE_CONNECTIVES = [
        'because', 'therefore', 'however', 'although',
        'since', 'thus', 'hence', 'consequently'
    ]
    TECHNICAL_PATTERNS = [r'\w{8,}', r'[A-Z]{2,}', r'\d+\.\d+']
    THEME_WORD_MIN_LENGTH = 5

    # Lower bounds of each trend band, checked in order
    STRONG_IMPROVEMENT = 0.3
    MODERATE_IMPROVEMENT = 0.1
    STABLE_FLOOR = -0.1
    SLIGHT_DECLINE_FLOOR = -0.3


class EvaluationConfig:
    """Configuration for concept scoring and grade aggregation."""
    STRENGTH_THRESHOLD = 0.7
    WEAKNESS_THRESHOLD = 0.5
    FOLLOW_UP_THRESHOLD = 0.6
    CONCEPT_KEYWORD_MIN_LENGTH = 3
    MAX_EVIDENCE_MESSAGES = 15

    # (lower bound, label), checked top-down
    PERFORMANCE_BANDS = [
        (0.8, "excellent"),
        (0.6, "good"),
        (0.4, "fair"),
    ]
    DEFAULT_BAND = "needs improvement"


class SynthesisConfig:
    """Configuration for summary and rubric synthesis."""
    MAX_SUMMARY_CHUNKS = 15
    USE_ALL_CHUNKS_THRESHOLD = 10
    INTERVAL_SHARE = 0.7
    MIN_CONCEPTS = 3
    MAX_CONCEPTS = 7


class LLMConfig:
    """Configuration for LLM generation."""
    DIALOGUE_TEMPERATURE = 0.4
    EXTRACTION_TEMPERATURE = 0.1
    EVALUATION_TEMPERATURE = 0.2
    SUMMARY_TEMPERATURE = 0.3
    MAX_OUTPUT_TOKENS = 2000
    MAX_RETRIES = 3
    RETRY_DELAY = 2
