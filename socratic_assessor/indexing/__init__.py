"""
Indexing Module - Extract, chunk, embed and store document files.
"""
from .indexer import DocumentIndexer, IndexingResult

__all__ = ["DocumentIndexer", "IndexingResult"]
