"""
Synthesis Module - Document summaries and assessment rubrics.
"""
from .summary import SummarySynthesizer, SummaryResult, select_diverse_chunks
from .rubrics import RubricSynthesizer, RubricResult, valid_concepts

__all__ = [
    "SummarySynthesizer",
    "SummaryResult",
    "select_diverse_chunks",
    "RubricSynthesizer",
    "RubricResult",
    "valid_concepts",
]
