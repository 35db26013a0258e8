"""
Document Indexer - Turns a document's attached files into embedded chunks.

For each file: extract text, chunk it, embed every chunk and store the
(text, embedding) pairs. Per-file and per-chunk failures are recorded and
skipped; the run only fails when no chunk at all could be embedded.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from config import LOG_LEVEL
from ..chunking import TextChunker
from ..document_processing import extract_text
from ..errors import CapabilityError, InputError
from ..llm import ModelCapability
from ..models import Chunk, SourceFile
from ..storage import Repository
from ..utils.logger import create_logger, LogLevel

logger = logging.getLogger(__name__)

Extractor = Callable[[SourceFile], Tuple[Optional[str], List[str]]]


@dataclass
class IndexingResult:
    """Outcome of one indexing run."""
    document_id: str
    chunks_created: int = 0
    files_processed: int = 0
    errors: List[str] = field(default_factory=list)
    success: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'chunks_created': self.chunks_created,
            'files_processed': self.files_processed,
            'errors': list(self.errors),
            'success': self.success,
        }


class DocumentIndexer:
    """Indexes documents into the repository's vector store."""

    def __init__(
        self,
        repository: Repository,
        capability: ModelCapability,
        chunker: Optional[TextChunker] = None,
        extractor: Extractor = extract_text,
        verbose: bool = False
    ):
        self.repository = repository
        self.capability = capability
        self.chunker = chunker or TextChunker()
        self.extractor = extractor

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("INDEXING", log_level, verbose)

    def index(self, document_id: str) -> IndexingResult:
        """
        Index every attached file of a document.

        Raises:
            InputError: document missing or has no files
            CapabilityError: zero chunks were embedded (reasons attached)
        """
        document = self.repository.require_document(document_id)
        if not document.files:
            raise InputError(f"Document {document_id} has no attached files")

        self.enhanced_logger.phase(f"Indexing document {document_id} ({len(document.files)} files)")
        result = IndexingResult(document_id=document_id)
        pending: List[Chunk] = []
        sequence = 0
        dimension = None

        with self.enhanced_logger.timer(f"Indexing {len(document.files)} files",
                                        warn_threshold_ms=len(document.files) * 30000):
            for file_index, source in enumerate(document.files):
                text, extraction_errors = self.extractor(source)
                result.errors.extend(f"{source.filename}: {e}" for e in extraction_errors)

                if text is None:
                    logger.warning(f"Skipping {source.filename}: no text extracted")
                    continue

                result.files_processed += 1
                pieces = self.chunker.chunk_with_metadata(text, source.filename, file_index)

                if not pieces:
                    result.errors.append(f"No chunks could be created from the text in {source.filename}")
                    continue

                file_chunks = 0
                for piece in pieces:
                    self.enhanced_logger.progress(piece.chunk_index + 1, len(pieces), f"chunk of {source.filename}")
                    try:
                        vector = [float(x) for x in self.capability.embed(piece.content)]
                    except Exception as e:
                        logger.error(f"Embedding failed for chunk {piece.chunk_index} of {source.filename}: {e}")
                        result.errors.append(
                            f"{source.filename}: embedding failed for chunk {piece.chunk_index}: {e}"
                        )
                        continue

                    if dimension is None:
                        dimension = len(vector)
                    elif len(vector) != dimension:
                        result.errors.append(
                            f"{source.filename}: chunk {piece.chunk_index} has embedding dimension "
                            f"{len(vector)}, expected {dimension}"
                        )
                        continue

                    pending.append(Chunk(
                        document_id=document_id,
                        text=piece.content,
                        embedding=tuple(vector),
                        sequence_hint=sequence,
                        filename=source.filename,
                        file_index=file_index,
                    ))
                    sequence += 1
                    file_chunks += 1

                logger.info(f"Created {file_chunks} chunks from file {source.filename} in document {document_id}")

        if not pending:
            reasons = result.errors + ["No chunks were successfully processed"]
            logger.error(f"Indexing failed for document {document_id}: {len(reasons)} errors")
            raise CapabilityError(f"Indexing failed for document {document_id}", reasons)

        result.chunks_created = self.repository.add_chunks(pending)
        self.repository.mark_processed(document_id)
        result.success = True

        self.enhanced_logger.metric("chunks_created", result.chunks_created)
        self.enhanced_logger.metric("files_processed", result.files_processed)
        self.enhanced_logger.success(
            f"Indexed document {document_id}: {result.chunks_created} chunks, {len(result.errors)} errors"
        )
        self.enhanced_logger.debug(self.enhanced_logger.summary())
        return result
