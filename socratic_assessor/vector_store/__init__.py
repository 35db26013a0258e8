"""
Vector Store Module - Chunk embedding storage with similarity ranking.

Features:
- Per-document cosine-distance queries
- Fixed embedding dimension per index
- ChromaDB persistence or in-memory numpy backend
"""
from .base import VectorStore, ScoredChunk
from .chroma_store import ChromaStore
from .memory_store import InMemoryVectorStore

__all__ = ["VectorStore", "ScoredChunk", "ChromaStore", "InMemoryVectorStore"]
