"""
Summary Synthesizer - One structured summary per processed document.

Chunk selection keeps the prompt bounded while covering the whole document:
regular positional samples first, then a seeded random fill, restored to
document order before prompting.
"""
import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, TypeVar
import logging

from config import LLMConfig, SynthesisConfig, LOG_LEVEL
from ..errors import CapabilityError, PreconditionError
from ..llm import ModelCapability
from ..models import Summary
from ..prompts import PromptTemplates
from ..storage import Repository
from ..utils.logger import create_logger, LogLevel

logger = logging.getLogger(__name__)

T = TypeVar("T")


def select_diverse_chunks(
    chunks: Sequence[T],
    rng: random.Random,
    max_chunks: int = SynthesisConfig.MAX_SUMMARY_CHUNKS,
    use_all_threshold: int = SynthesisConfig.USE_ALL_CHUNKS_THRESHOLD,
    interval_share: float = SynthesisConfig.INTERVAL_SHARE
) -> List[T]:
    """
    Pick up to max_chunks chunks spread across the document.

    Small documents are used whole. Otherwise ~70% of the target comes from
    evenly spaced positions and the rest is sampled without replacement from
    the remaining chunks. The result is in original order.
    """
    if len(chunks) <= use_all_threshold:
        return list(chunks)

    interval_target = max(1, int(max_chunks * interval_share))
    interval = max(1, len(chunks) // interval_target)
    selected = list(range(0, len(chunks), interval))[:interval_target]

    chosen = set(selected)
    remaining = [i for i in range(len(chunks)) if i not in chosen]
    fill = min(max_chunks - len(selected), len(remaining))
    if fill > 0:
        selected.extend(rng.sample(remaining, fill))

    return [chunks[i] for i in sorted(selected)]


@dataclass
class SummaryResult:
    """Outcome of one summary synthesis run."""
    document_id: str
    chunks_analyzed: int = 0
    summary: Optional[Summary] = None
    success: bool = False
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'summary_id': self.summary.id if self.summary else None,
            'chunks_analyzed': self.chunks_analyzed,
            'success': self.success,
            'errors': list(self.errors),
        }


class SummarySynthesizer:
    """Creates the single Summary of a processed document."""

    def __init__(
        self,
        repository: Repository,
        capability: ModelCapability,
        rng: Optional[random.Random] = None,
        verbose: bool = False
    ):
        self.repository = repository
        self.capability = capability
        self.rng = rng or random.Random()

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("SUMMARY", log_level, verbose)

    def synthesize(self, document_id: str) -> SummaryResult:
        """
        Summarize a document from a diverse selection of its chunks.

        Raises:
            InputError: document not found
            PreconditionError: document unprocessed, summary already exists, or no chunks
            CapabilityError: the completion failed or returned nothing
        """
        document = self.repository.require_document(document_id)
        if not document.processed:
            raise PreconditionError(f"Document {document_id} must be processed before summarization")
        if self.repository.get_summary(document_id) is not None:
            raise PreconditionError(f"Summary already exists for document {document_id}")

        chunks = self.repository.list_chunks(document_id)
        if not chunks:
            raise PreconditionError(f"No chunks found for document {document_id}")

        selected = select_diverse_chunks(chunks, self.rng)
        self.enhanced_logger.info(f"📝 Summarizing {len(selected)} of {len(chunks)} chunks")

        messages = PromptTemplates.format_summary([c.text for c in selected])
        with self.enhanced_logger.timer("Summary generation", warn_threshold_ms=60000):
            try:
                content = self.capability.complete(
                    messages,
                    temperature=LLMConfig.SUMMARY_TEMPERATURE,
                    max_tokens=LLMConfig.MAX_OUTPUT_TOKENS
                )
            except Exception as e:
                logger.error(f"Summary generation failed for document {document_id}: {e}")
                raise CapabilityError("Summary generation failed", [f"LLM communication failed: {e}"]) from e

        content = (content or "").strip()
        if not content:
            raise CapabilityError("Summary generation failed", ["Failed to generate summary content"])

        summary = self.repository.save_summary(Summary(document_id=document_id, content=content))
        logger.info(f"Created summary {summary.id} for document {document_id} from {len(selected)} chunks")

        return SummaryResult(
            document_id=document_id,
            chunks_analyzed=len(selected),
            summary=summary,
            success=True
        )
