"""
In-memory vector store with brute-force cosine distance.
"""
import threading
from typing import Any, Dict, List, Optional, Sequence
import logging

import numpy as np

from ..models import Chunk
from .base import ScoredChunk, VectorStore

logger = logging.getLogger(__name__)


class InMemoryVectorStore(VectorStore):
    """Keeps chunks per document and ranks them with numpy."""

    def __init__(self, dimension: Optional[int] = None):
        self.dimension = dimension
        self._chunks: Dict[str, List[Chunk]] = {}
        self._lock = threading.RLock()

    def _check_dimension(self, size: int):
        if self.dimension is None:
            self.dimension = size
        elif size != self.dimension:
            raise ValueError(
                f"Embedding dimension {size} does not match index dimension {self.dimension}"
            )

    def add_chunks(self, chunks: Sequence[Chunk]) -> int:
        with self._lock:
            for chunk in chunks:
                self._check_dimension(chunk.dimension)
            for chunk in chunks:
                self._chunks.setdefault(chunk.document_id, []).append(chunk)

        logger.debug(f"Added {len(chunks)} chunks to in-memory store")
        return len(chunks)

    def query(self, document_id: str, embedding: Sequence[float], n_results: int = 5) -> List[ScoredChunk]:
        with self._lock:
            chunks = list(self._chunks.get(document_id, []))

        if not chunks or n_results <= 0:
            return []

        self._check_dimension(len(embedding))

        matrix = np.array([c.embedding for c in chunks], dtype=float)
        query = np.asarray(embedding, dtype=float)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        norms[norms == 0] = 1.0
        distances = 1.0 - (matrix @ query) / norms

        # Stable sort keeps insertion order for equal distances
        order = np.argsort(distances, kind="stable")[:n_results]

        return [ScoredChunk(chunks[i], float(distances[i])) for i in order]

    def get_chunks(self, document_id: str) -> List[Chunk]:
        with self._lock:
            chunks = list(self._chunks.get(document_id, []))
        return sorted(chunks, key=lambda c: c.sequence_hint)

    def count(self, document_id: str) -> int:
        with self._lock:
            return len(self._chunks.get(document_id, []))

    def delete_document(self, document_id: str) -> int:
        with self._lock:
            removed = self._chunks.pop(document_id, [])
        return len(removed)

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'backend': 'memory',
                'documents': len(self._chunks),
                'chunk_count': sum(len(v) for v in self._chunks.values()),
                'dimension': self.dimension,
            }
