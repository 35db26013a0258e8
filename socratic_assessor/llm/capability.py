"""
Model Capability - The embedding and chat-completion contract.

Every pipeline component receives a capability object through its
constructor; nothing reaches for a module-level client.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, Optional


class ModelCapability(ABC):
    """Interface for embedding generation and chat completion."""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Returns:
            Vector of fixed dimension for the lifetime of an index

        Raises:
            Any exception on failure; callers treat it as a per-item error.
        """
        raise NotImplementedError

    @abstractmethod
    def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Run a chat completion.

        Args:
            messages: Sequence of {"role", "content"} dicts
            temperature: Optional sampling temperature
            max_tokens: Optional output token limit

        Returns:
            The model's reply text
        """
        raise NotImplementedError

    def describe(self) -> Dict[str, str]:
        return {"capability": type(self).__name__}
