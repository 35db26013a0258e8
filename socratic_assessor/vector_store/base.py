"""
Vector store interface for chunk embeddings.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ..models import Chunk


@dataclass(frozen=True)
class ScoredChunk:
    """A stored chunk with its cosine distance to a query."""
    chunk: Chunk
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


class VectorStore(ABC):
    """
    Chunk lookup by document with similarity ranking.

    The embedding dimension is fixed for the lifetime of an index; vectors of
    any other dimension are rejected.
    """

    @abstractmethod
    def add_chunks(self, chunks: Sequence[Chunk]) -> int:
        """Store chunks and return how many were added."""
        raise NotImplementedError

    @abstractmethod
    def query(self, document_id: str, embedding: Sequence[float], n_results: int = 5) -> List[ScoredChunk]:
        """Return up to n_results chunks of the document by ascending distance."""
        raise NotImplementedError

    @abstractmethod
    def get_chunks(self, document_id: str) -> List[Chunk]:
        """Return all chunks of a document in sequence order."""
        raise NotImplementedError

    @abstractmethod
    def count(self, document_id: str) -> int:
        raise NotImplementedError

    @abstractmethod
    def delete_document(self, document_id: str) -> int:
        """Remove every chunk of a document and return how many were removed."""
        raise NotImplementedError

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        raise NotImplementedError
