"""
Context Retriever - Query-time grounding for evaluator turns.

Strategy:
1. Embed the query and rank the document's chunks by cosine distance
2. Independently rank rubrics by word overlap with their concept names
3. Return both rankings; nothing is persisted
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set
import logging

from config import RetrievalConfig
from ..errors import CapabilityError
from ..llm import ModelCapability
from ..models import Rubric
from ..storage import Repository

logger = logging.getLogger(__name__)


def word_set(text: str) -> Set[str]:
    """Case-folded set of word tokens."""
    return {token for token in re.split(r'\W+', (text or "").lower()) if token}


@dataclass
class RetrievedChunk:
    """A chunk returned for a query, with its distance to the query."""
    chunk_id: str
    text: str
    distance: float
    sequence_hint: int
    filename: str = ""

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance


@dataclass
class RetrievalContext:
    """Chunks and rubrics relevant to one query."""
    query: str
    chunks: List[RetrievedChunk] = field(default_factory=list)
    rubrics: List[Rubric] = field(default_factory=list)
    rubric_overlaps: List[int] = field(default_factory=list)

    @property
    def average_distance(self) -> Optional[float]:
        if not self.chunks:
            return None
        return sum(c.distance for c in self.chunks) / len(self.chunks)

    @property
    def matched_rubrics(self) -> List[Rubric]:
        """Returned rubrics that share at least one word with the query."""
        return [r for r, overlap in zip(self.rubrics, self.rubric_overlaps) if overlap > 0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'query': self.query,
            'chunks': [
                {'chunk_id': c.chunk_id, 'distance': round(c.distance, 4), 'sequence_hint': c.sequence_hint}
                for c in self.chunks
            ],
            'rubrics': [
                {'concept': r.concept, 'overlap': overlap}
                for r, overlap in zip(self.rubrics, self.rubric_overlaps)
            ],
            'average_distance': self.average_distance,
        }


class ContextRetriever:
    """Retrieves top-K chunks and top rubrics for a learner message."""

    def __init__(
        self,
        repository: Repository,
        capability: ModelCapability,
        chunk_top_k: int = RetrievalConfig.CHUNK_TOP_K,
        rubric_top_k: int = RetrievalConfig.RUBRIC_TOP_K
    ):
        """
        Initialize the retriever.

        Args:
            repository: Entity store with the vector store attached
            capability: Model capability used to embed queries
            chunk_top_k: Number of chunks to return
            rubric_top_k: Number of rubrics to return
        """
        self.repository = repository
        self.capability = capability
        self.chunk_top_k = chunk_top_k
        self.rubric_top_k = rubric_top_k

    def retrieve(self, query: str, document_id: str) -> RetrievalContext:
        """
        Retrieve context for a query within one document.

        Raises:
            CapabilityError: the query could not be embedded
        """
        try:
            embedding = self.capability.embed(query)
        except Exception as e:
            logger.error(f"Query embedding failed for document {document_id}: {e}")
            raise CapabilityError("Query embedding failed", [f"Query embedding failed: {e}"]) from e

        scored = self.repository.vector_store.query(document_id, embedding, self.chunk_top_k)
        chunks = [
            RetrievedChunk(
                chunk_id=s.chunk.id,
                text=s.chunk.text,
                distance=s.distance,
                sequence_hint=s.chunk.sequence_hint,
                filename=s.chunk.filename,
            )
            for s in scored
        ]

        rubrics, overlaps = self.rank_rubrics(query, self.repository.list_rubrics(document_id))

        logger.debug(
            f"Retrieved {len(chunks)} chunks and {len(rubrics)} rubrics for document {document_id}"
        )
        return RetrievalContext(query=query, chunks=chunks, rubrics=rubrics, rubric_overlaps=overlaps)

    def rank_rubrics(self, query: str, rubrics: List[Rubric]):
        """
        Rank rubrics by the number of words their concept shares with the query.

        Ties keep creation order (sorted() is stable).

        Returns:
            (top rubrics, their overlap counts)
        """
        query_words = word_set(query)
        scored = [(len(query_words & word_set(r.concept)), r) for r in rubrics]
        ranked = sorted(scored, key=lambda item: -item[0])[:self.rubric_top_k]
        return [r for _, r in ranked], [overlap for overlap, _ in ranked]
