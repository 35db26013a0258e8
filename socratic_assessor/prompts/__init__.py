"""
Prompts Module - Prompt templates for dialogue, evaluation and synthesis.
"""
from .templates import PromptTemplates

__all__ = ["PromptTemplates"]
