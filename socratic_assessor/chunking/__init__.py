"""
Chunking Module - Boundary-aware document chunking.

Features:
- Paragraph, sentence and word level splitting
- Hard upper bound on chunk size
- Undersized chunk merging
- Token estimates for chunk statistics
"""
from .chunker import TextChunker, TextChunk

__all__ = ["TextChunker", "TextChunk"]
