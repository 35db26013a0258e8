"""
Ollama Client - Local chat completion and embeddings over HTTP.
"""
import time
from typing import Optional, Dict, Any, List
import logging

try:
    import requests
except ImportError:
    requests = None

from config import LLMConfig
from .capability import ModelCapability

logger = logging.getLogger(__name__)


class OllamaClient(ModelCapability):
    """Client for Ollama local inference (/api/chat and /api/embeddings)."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "mistral:7b",
        embedding_model: str = "nomic-embed-text",
        timeout: int = 120,
        max_retries: int = LLMConfig.MAX_RETRIES,
        retry_delay: float = LLMConfig.RETRY_DELAY,
        verify_connection: bool = True
    ):
        if requests is None:
            raise ImportError("requests is required. Install with: pip install requests")

        self.base_url = base_url.rstrip('/')
        self.model = model
        self.embedding_model = embedding_model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        if verify_connection:
            self._verify_connection()

    def _verify_connection(self):
        """Check the server answers and warn about models it has not pulled."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=10)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"Could not connect to Ollama at {self.base_url}: {e}")
            raise ConnectionError(
                f"Ollama is not reachable at {self.base_url}. Start it with: ollama serve"
            ) from e

        pulled = [m.get('name', '') for m in response.json().get('models', [])]
        for wanted in (self.model, self.embedding_model):
            if not any(wanted.split(':')[0] in name for name in pulled):
                logger.warning(f"Model '{wanted}' not found on the Ollama server (pulled: {pulled})")

        logger.info(f"Ollama connected at {self.base_url}. Chat model: {self.model}")

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
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate

        Returns:
            Generated reply text
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": False,
            "options": {
                "temperature": 0.3 if temperature is None else temperature,
                "num_predict": max_tokens or LLMConfig.MAX_OUTPUT_TOKENS,
            }
        }

        result = self._post_with_retries("/api/chat", payload)
        return result.get('message', {}).get('content', '')

    def embed(self, text: str) -> List[float]:
        """Embed text with the configured Ollama embedding model."""
        payload = {"model": self.embedding_model, "prompt": text}

        result = self._post_with_retries("/api/embeddings", payload)
        embedding = result.get('embedding')
        if not embedding:
            raise ValueError(f"Ollama returned no embedding for model {self.embedding_model}")
        return [float(x) for x in embedding]

    def _post_with_retries(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        last_error = None

        for attempt in range(self.max_retries):
            try:
                response = requests.post(
                    f"{self.base_url}{path}",
                    json=payload,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                last_error = e
                logger.warning(
                    f"Request to {path} failed (attempt {attempt + 1}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay)

        raise RuntimeError(f"Failed after {self.max_retries} attempts: {last_error}")

    def is_available(self) -> bool:
        """Check if Ollama is reachable."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False

    def describe(self) -> Dict[str, str]:
        return {
            "capability": "ollama",
            "model": self.model,
            "embedding_model": self.embedding_model,
            "base_url": self.base_url,
        }
