"""
LLM Module - Model capability contract and Ollama-backed implementations.
"""
from .capability import ModelCapability
from .ollama_client import OllamaClient
from .local import LocalModelCapability, create_capability

__all__ = ["ModelCapability", "OllamaClient", "LocalModelCapability", "create_capability"]
