"""
Dialogue Module - Retrieval-grounded Socratic evaluator turns.
"""
from .responder import DialogueResponder, DialogueTurn, compute_confidence

__all__ = ["DialogueResponder", "DialogueTurn", "compute_confidence"]
