"""
Text Chunker - Boundary-aware splitting of extracted document text.

Targets chunks of 200-500 tokens (~800-2000 characters at 4 characters per
token) while keeping paragraphs and sentences intact wherever possible:

1. Accumulate blank-line separated paragraphs up to the maximum size
2. Split oversized paragraphs into sentences
3. Split oversized sentences into words
4. Merge undersized chunks into their predecessor when they fit
5. Merge any remaining undersized chunk forward into its successor when they fit
"""
import re
from typing import List, Dict, Any, Optional
from dataclasses import dataclass
import logging

from config import ChunkingConfig

logger = logging.getLogger(__name__)

PARAGRAPH_SEPARATOR = "\n\n"
SENTENCE_SEPARATOR = " "
WORD_SEPARATOR = " "


@dataclass
class TextChunk:
    """A chunk of text tagged with its source file and position."""
    content: str
    filename: str
    file_index: int
    chunk_index: int
    char_count: int
    token_estimate: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'content': self.content,
            'filename': self.filename,
            'file_index': self.file_index,
            'chunk_index': self.chunk_index,
            'char_count': self.char_count,
            'token_estimate': self.token_estimate,
        }


class TextChunker:
    """
    Splits raw text into bounded, coherent segments suitable for embedding.

    Guarantees:
    - Every chunk is at most max_chars long
    - Chunks shorter than min_chars are merged into the previous or the next
      chunk when the result still fits, otherwise kept standalone (no text
      is dropped)
    - Blank input yields no chunks

    The chunker keeps no state between calls.
    """

    def __init__(
        self,
        min_chars: Optional[int] = None,
        max_chars: Optional[int] = None,
        chars_per_token: Optional[int] = None
    ):
        """
        Initialize the chunker.

        Args:
            min_chars: Minimum preferred chunk size in characters
            max_chars: Hard upper bound on chunk size in characters
            chars_per_token: Characters per token for token estimates
        """
        self.min_chars = min_chars if min_chars is not None else ChunkingConfig.MIN_CHUNK_CHARS
        self.max_chars = max_chars if max_chars is not None else ChunkingConfig.MAX_CHUNK_CHARS
        self.chars_per_token = chars_per_token or ChunkingConfig.CHARS_PER_TOKEN

        if self.max_chars <= 0:
            raise ValueError("max_chars must be positive")
        if self.min_chars > self.max_chars:
            raise ValueError(
                f"min_chars ({self.min_chars}) cannot exceed max_chars ({self.max_chars})"
            )

    def chunk(self, text: Optional[str]) -> List[str]:
        """
        Split text into chunks.

        Args:
            text: Extracted document text (None and blank text yield [])

        Returns:
            List of chunk strings in document order
        """
        if not text or not text.strip():
            return []

        chunks: List[str] = []
        buffer = ""

        for paragraph in self._split_paragraphs(text):
            if len(paragraph) > self.max_chars:
                self._flush(chunks, buffer)
                buffer = ""
                self._split_large_paragraph(paragraph, chunks)
            else:
                buffer = self._accumulate(chunks, buffer, paragraph, PARAGRAPH_SEPARATOR)

        self._flush(chunks, buffer)
        return self._merge_forward(chunks)

    def chunk_with_metadata(
        self,
        text: Optional[str],
        filename: str = "",
        file_index: int = 0
    ) -> List[TextChunk]:
        """Chunk text and tag each chunk with its source file and ordinal."""
        return [
            TextChunk(
                content=content,
                filename=filename,
                file_index=file_index,
                chunk_index=index,
                char_count=len(content),
                token_estimate=self.estimate_tokens(content)
            )
            for index, content in enumerate(self.chunk(text))
        ]

    def estimate_tokens(self, text: str) -> int:
        """Estimate token count (rounded up)."""
        return -(-len(text) // self.chars_per_token)

    def get_chunking_stats(self, chunks: List[str]) -> Dict[str, Any]:
        """Get statistics about a chunked document."""
        if not chunks:
            return {'total_chunks': 0}

        sizes = [len(c) for c in chunks]

        return {
            'total_chunks': len(chunks),
            'total_chars': sum(sizes),
            'avg_chars': sum(sizes) / len(chunks),
            'min_chars': min(sizes),
            'max_chars': max(sizes),
            'total_tokens': sum(self.estimate_tokens(c) for c in chunks),
            'undersized_chunks': sum(1 for s in sizes if s < self.min_chars),
        }

    def _split_paragraphs(self, text: str) -> List[str]:
        paragraphs = (p.strip() for p in re.split(r'\n\s*\n', text))
        return [p for p in paragraphs if p]

    def _split_sentences(self, paragraph: str) -> List[str]:
        sentences = (s.strip() for s in re.split(r'(?<=[.!?])\s+', paragraph))
        return [s for s in sentences if s]

    def _split_large_paragraph(self, paragraph: str, chunks: List[str]):
        buffer = ""

        for sentence in self._split_sentences(paragraph):
            if len(sentence) > self.max_chars:
                self._flush(chunks, buffer)
                buffer = ""
                self._split_large_sentence(sentence, chunks)
            else:
                buffer = self._accumulate(chunks, buffer, sentence, SENTENCE_SEPARATOR)

        self._flush(chunks, buffer)

    def _split_large_sentence(self, sentence: str, chunks: List[str]):
        buffer = ""

        for word in sentence.split():
            if len(word) > self.max_chars:
                # A single token longer than the bound is cut into slices
                self._flush(chunks, buffer)
                slices = [
                    word[i:i + self.max_chars]
                    for i in range(0, len(word), self.max_chars)
                ]
                for piece in slices[:-1]:
                    self._flush(chunks, piece)
                buffer = slices[-1]
            else:
                buffer = self._accumulate(chunks, buffer, word, WORD_SEPARATOR)

        self._flush(chunks, buffer)

    def _accumulate(self, chunks: List[str], buffer: str, piece: str, separator: str) -> str:
        """Append piece to buffer, flushing first when the result would be too large."""
        if not buffer:
            return piece

        if len(buffer) + len(separator) + len(piece) > self.max_chars:
            self._flush(chunks, buffer)
            return piece

        return f"{buffer}{separator}{piece}"

    def _flush(self, chunks: List[str], text: str):
        cleaned = text.strip()
        if not cleaned:
            return

        if len(cleaned) >= self.min_chars or not chunks:
            chunks.append(cleaned)
            return

        last = chunks[-1]
        if len(last) + len(PARAGRAPH_SEPARATOR) + len(cleaned) <= self.max_chars:
            chunks[-1] = f"{last}{PARAGRAPH_SEPARATOR}{cleaned}"
        else:
            chunks.append(cleaned)

    def _merge_forward(self, chunks: List[str]) -> List[str]:
        """Fold undersized chunks into the following chunk where the bound allows."""
        i = 0
        while i < len(chunks) - 1:
            current, following = chunks[i], chunks[i + 1]
            if (len(current) < self.min_chars
                    and len(current) + len(PARAGRAPH_SEPARATOR) + len(following) <= self.max_chars):
                chunks[i + 1] = f"{current}{PARAGRAPH_SEPARATOR}{following}"
                del chunks[i]
            else:
                i += 1
        return chunks
