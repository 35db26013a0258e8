"""
Retrieval Module - Similarity-ranked chunks and overlap-ranked rubrics.
"""
from .retriever import ContextRetriever, RetrievalContext, RetrievedChunk, word_set

__all__ = ["ContextRetriever", "RetrievalContext", "RetrievedChunk", "word_set"]
