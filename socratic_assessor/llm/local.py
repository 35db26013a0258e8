"""
Local capability wiring: sentence-transformers embeddings plus Ollama chat.
"""
from typing import Dict, List, Optional
import logging

import config
from config import LLMConfig
from .capability import ModelCapability
from .ollama_client import OllamaClient

logger = logging.getLogger(__name__)


class LocalModelCapability(ModelCapability):
    """Pairs a local Embedder with an OllamaClient used for chat only."""

    def __init__(self, embedder, chat_client: OllamaClient):
        self.embedder = embedder
        self.chat_client = chat_client

    def embed(self, text: str) -> List[float]:
        return self.embedder.embed_text(text)

    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        return self.chat_client.complete(messages, temperature=temperature, max_tokens=max_tokens)

    def describe(self) -> Dict[str, str]:
        info = self.chat_client.describe()
        info["capability"] = "local"
        info["embedding_model"] = self.embedder.model_name
        return info


def create_capability(
    backend: Optional[str] = None,
    verify_connection: bool = True
) -> ModelCapability:
    """
    Build the model capability described by config.

    Args:
        backend: "sentence-transformers" or "ollama" (defaults to EMBEDDING_BACKEND)
        verify_connection: Check the Ollama server on construction
    """
    backend = backend or config.EMBEDDING_BACKEND

    client = OllamaClient(
        base_url=config.OLLAMA_BASE_URL,
        model=config.OLLAMA_MODEL,
        embedding_model=config.OLLAMA_EMBEDDING_MODEL,
        timeout=config.OLLAMA_TIMEOUT,
        max_retries=LLMConfig.MAX_RETRIES,
        retry_delay=LLMConfig.RETRY_DELAY,
        verify_connection=verify_connection
    )

    if backend == "ollama":
        logger.info(f"Using Ollama for chat and embeddings ({config.OLLAMA_EMBEDDING_MODEL})")
        return client

    if backend != "sentence-transformers":
        raise ValueError(f"Unknown embedding backend: {backend}")

    from ..embeddings import Embedder

    embedder = Embedder(
        model_name=config.EMBEDDING_MODEL,
        batch_size=config.EMBEDDING_BATCH_SIZE
    )
    logger.info(f"Using local embeddings ({config.EMBEDDING_MODEL}) with Ollama chat")
    return LocalModelCapability(embedder, client)
