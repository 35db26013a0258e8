"""
Embedder - Local embedding generation using sentence-transformers.

Chunks and learner queries go through the same model so their vectors live
in one space; the model's dimension becomes the index dimension.
"""
from typing import List, Sequence
import logging
import numpy as np

try:
    from sentence_transformers import SentenceTransformer
except ImportError:
    SentenceTransformer = None

logger = logging.getLogger(__name__)


class Embedder:
    """
    Wraps a SentenceTransformer model for chunk and query embedding.

    Vectors are L2-normalized, so cosine distance in the vector store is
    1 - dot product.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        device: str = "cpu",
        batch_size: int = 32
    ):
        """
        Args:
            model_name: HuggingFace model name or local path
            device: 'cpu' or 'cuda'
            batch_size: Texts per encode call when embedding in bulk
        """
        if SentenceTransformer is None:
            raise ImportError(
                "sentence-transformers is required. "
                "Install with: pip install sentence-transformers"
            )

        self.model_name = model_name
        self.device = device
        self.batch_size = batch_size

        logger.info(f"Loading embedding model: {model_name}")
        self.model = SentenceTransformer(model_name, device=device)
        self.dimension = self.model.get_sentence_embedding_dimension()
        logger.info(f"Embedding model ready ({self.dimension} dimensions)")

    def embed_batch(self, texts: Sequence[str], show_progress: bool = False) -> np.ndarray:
        """Embed many texts; returns an array of shape (len(texts), dimension)."""
        texts = list(texts)
        if not texts:
            return np.zeros((0, self.dimension))

        return self.model.encode(
            texts,
            batch_size=self.batch_size,
            show_progress_bar=show_progress,
            normalize_embeddings=True,
            convert_to_numpy=True
        )

    def embed_text(self, text: str) -> List[float]:
        """Embed one chunk or query."""
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")
        return self.embed_batch([text])[0].tolist()
