"""
Storage Module - In-process entity store with cascade deletes.
"""
from .repository import Repository

__all__ = ["Repository"]
