"""
ChromaDB Vector Store - Persistent storage for chunk embeddings.
"""
from typing import List, Dict, Any, Optional, Sequence
from pathlib import Path
import logging

try:
    import chromadb
    from chromadb.config import Settings
except ImportError:
    chromadb = None

import numpy as np

from config import RetrievalConfig
from ..models import Chunk
from .base import ScoredChunk, VectorStore

logger = logging.getLogger(__name__)


class ChromaStore(VectorStore):
    """
    ChromaDB-based vector store.

    Features:
    - One cosine-space collection, chunks keyed by document_id metadata
    - Batch adds with per-chunk fallback
    - Fixed embedding dimension per index
    """

    def __init__(
        self,
        persist_directory: str = "./data/indexes",
        collection_name: str = "chunks",
        dimension: Optional[int] = None
    ):
        if chromadb is None:
            raise ImportError("chromadb is required. Install with: pip install chromadb")

        self.persist_directory = Path(persist_directory)
        self.persist_directory.mkdir(parents=True, exist_ok=True)

        self.collection_name = collection_name
        self.dimension = dimension

        self.client = chromadb.PersistentClient(
            path=str(self.persist_directory),
            settings=Settings(anonymized_telemetry=False, allow_reset=True)
        )

        self._collection = None

        logger.info(f"ChromaDB initialized at {self.persist_directory}")

    @property
    def collection(self):
        """Get or create the chunk collection."""
        if self._collection is None:
            self._collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"description": "Document chunks", "hnsw:space": "cosine"}
            )
        return self._collection

    def _check_dimension(self, size: int):
        if self.dimension is None:
            self.dimension = size
        elif size != self.dimension:
            raise ValueError(
                f"Embedding dimension {size} does not match index dimension {self.dimension}"
            )

    def _prepare_metadata(self, chunk: Chunk) -> Dict[str, Any]:
        return {
            'document_id': chunk.document_id,
            'sequence_hint': int(chunk.sequence_hint),
            'filename': str(chunk.filename)[:500],
            'file_index': int(chunk.file_index),
        }

    def add_chunks(self, chunks: Sequence[Chunk], batch_size: int = RetrievalConfig.ADD_BATCH_SIZE) -> int:
        """Add chunks to the collection in batches."""
        if not chunks:
            return 0

        for chunk in chunks:
            self._check_dimension(chunk.dimension)

        total_added = 0

        for i in range(0, len(chunks), batch_size):
            batch = chunks[i:i + batch_size]

            ids = [c.id for c in batch]
            documents = [c.text for c in batch]
            metadatas = [self._prepare_metadata(c) for c in batch]
            embeddings_list = [list(c.embedding) for c in batch]

            try:
                self.collection.add(
                    ids=ids,
                    documents=documents,
                    metadatas=metadatas,
                    embeddings=embeddings_list
                )
                total_added += len(batch)
            except Exception as e:
                logger.error(f"Error adding batch to collection: {e}")
                for id_, doc, meta, emb in zip(ids, documents, metadatas, embeddings_list):
                    try:
                        self.collection.add(
                            ids=[id_], documents=[doc],
                            metadatas=[meta], embeddings=[emb]
                        )
                        total_added += 1
                    except Exception as e2:
                        logger.error(f"Error adding chunk {id_}: {e2}")

        logger.info(f"Added {total_added} chunks to {self.collection.name}")
        return total_added

    def query(self, document_id: str, embedding: Sequence[float], n_results: int = 5) -> List[ScoredChunk]:
        """Query one document's chunks by cosine distance."""
        if isinstance(embedding, np.ndarray):
            embedding = embedding.tolist()

        available = self.count(document_id)
        if available == 0 or n_results <= 0:
            return []

        self._check_dimension(len(embedding))

        results = self.collection.query(
            query_embeddings=[list(embedding)],
            n_results=min(n_results, available),
            where={"document_id": document_id},
            include=["documents", "metadatas", "distances", "embeddings"]
        )
        return self._format_results(results)

    def _format_results(self, results: Dict) -> List[ScoredChunk]:
        formatted = []

        if results['ids'] and results['ids'][0]:
            embeddings = results.get('embeddings')
            for i in range(len(results['ids'][0])):
                distance = results['distances'][0][i] if results.get('distances') else 0.0
                vector = embeddings[0][i] if embeddings is not None else []

                chunk = self._to_chunk(
                    results['ids'][0][i],
                    results['documents'][0][i],
                    results['metadatas'][0][i] if results.get('metadatas') else {},
                    vector
                )
                formatted.append(ScoredChunk(chunk, float(distance)))

        return formatted

    def _to_chunk(self, chunk_id: str, text: str, metadata: Dict[str, Any], vector) -> Chunk:
        return Chunk(
            id=chunk_id,
            document_id=metadata.get('document_id', ''),
            text=text,
            embedding=tuple(float(x) for x in vector),
            sequence_hint=int(metadata.get('sequence_hint', 0)),
            filename=metadata.get('filename', ''),
            file_index=int(metadata.get('file_index', 0)),
        )

    def get_chunks(self, document_id: str) -> List[Chunk]:
        """Get all chunks of a document in sequence order."""
        result = self.collection.get(
            where={"document_id": document_id},
            include=["documents", "metadatas", "embeddings"]
        )

        chunks = []
        if result['ids']:
            embeddings = result.get('embeddings')
            for i in range(len(result['ids'])):
                chunks.append(self._to_chunk(
                    result['ids'][i],
                    result['documents'][i],
                    result['metadatas'][i] if result.get('metadatas') else {},
                    embeddings[i] if embeddings is not None else []
                ))

        return sorted(chunks, key=lambda c: c.sequence_hint)

    def count(self, document_id: str) -> int:
        result = self.collection.get(where={"document_id": document_id}, include=[])
        return len(result['ids'])

    def delete_document(self, document_id: str) -> int:
        removed = self.count(document_id)
        if removed:
            self.collection.delete(where={"document_id": document_id})
            logger.info(f"Deleted {removed} chunks of document {document_id}")
        return removed

    def clear_all(self):
        """Drop the whole collection."""
        try:
            existing = [getattr(c, "name", c) for c in self.client.list_collections()]
            if self.collection_name in existing:
                self.client.delete_collection(self.collection_name)
                logger.info("Chunk collection cleared")
        except Exception as e:
            logger.warning(f"Could not clear chunk collection: {e}")
        self._collection = None

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about stored data."""
        try:
            chunk_count = self.collection.count()
        except Exception:
            chunk_count = 0

        return {
            'backend': 'chroma',
            'chunk_count': chunk_count,
            'dimension': self.dimension,
            'persist_directory': str(self.persist_directory),
        }
