"""
Rubric Synthesizer - Concept extraction and four-level rubric generation.

Steps:
1. Use the document's summary (synthesizing it first if absent)
2. One concept-extraction call returning a JSON array of concepts
3. One rubric-generation call per valid concept
4. Persist every rubric that defines all four levels
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from config import LLMConfig, SynthesisConfig, LOG_LEVEL
from ..errors import CapabilityError, InputError, PreconditionError
from ..llm import ModelCapability
from ..models import Rubric, RUBRIC_LEVELS, missing_rubric_levels
from ..prompts import PromptTemplates
from ..storage import Repository
from ..validation import decode_array, decode_object
from ..utils.logger import create_logger, LogLevel
from .summary import SummarySynthesizer

logger = logging.getLogger(__name__)

CONCEPT_FIELDS = ("name", "description", "assessment_focus")


def valid_concepts(entries: List[Any], max_concepts: int = SynthesisConfig.MAX_CONCEPTS) -> List[Dict[str, str]]:
    """Keep entries defining every concept field as a non-empty string."""
    concepts = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        if all(isinstance(entry.get(f), str) and entry[f].strip() for f in CONCEPT_FIELDS):
            concepts.append({f: entry[f].strip() for f in CONCEPT_FIELDS})
    return concepts[:max_concepts]


@dataclass
class RubricResult:
    """Outcome of one rubric synthesis run."""
    document_id: str
    rubrics: List[Rubric] = field(default_factory=list)
    concepts_covered: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    success: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_id': self.document_id,
            'rubrics_created': len(self.rubrics),
            'concepts_covered': list(self.concepts_covered),
            'errors': list(self.errors),
            'success': self.success,
        }


class RubricSynthesizer:
    """Generates assessment rubrics for a processed document."""

    def __init__(
        self,
        repository: Repository,
        capability: ModelCapability,
        summary_synthesizer: Optional[SummarySynthesizer] = None,
        verbose: bool = False
    ):
        self.repository = repository
        self.capability = capability
        self.summary_synthesizer = summary_synthesizer or SummarySynthesizer(repository, capability, verbose=verbose)

        log_level = LogLevel.VERBOSE if verbose else LogLevel.from_name(LOG_LEVEL)
        self.enhanced_logger = create_logger("RUBRICS", log_level, verbose)

    def synthesize(self, document_id: str) -> RubricResult:
        """
        Generate and persist rubrics for a document.

        Raises:
            InputError: document not found
            PreconditionError: document not processed
            CapabilityError: no concepts could be extracted or no rubric persisted
        """
        document = self.repository.require_document(document_id)
        if not document.processed:
            raise PreconditionError(f"Document {document_id} must be processed before generating rubrics")

        summary = self.repository.get_summary(document_id)
        if summary is None:
            self.enhanced_logger.info("No summary yet - synthesizing one first")
            summary = self.summary_synthesizer.synthesize(document_id).summary

        self.enhanced_logger.phase("Extracting key concepts...")
        concepts = self._extract_concepts(summary.content)
        self.enhanced_logger.metric("concepts_extracted", len(concepts))

        result = RubricResult(document_id=document_id)
        for i, concept in enumerate(concepts, 1):
            self.enhanced_logger.progress(i, len(concepts), concept["name"])
            rubric = self._generate_rubric(document_id, concept, result.errors)
            if rubric is not None:
                result.rubrics.append(rubric)
                result.concepts_covered.append(rubric.concept)

        if not result.rubrics:
            raise CapabilityError(
                f"No rubrics were generated for document {document_id}",
                result.errors or ["No rubrics were generated"]
            )

        result.success = True
        self.enhanced_logger.success(f"Generated {len(result.rubrics)} rubrics for document {document_id}")
        return result

    def _extract_concepts(self, summary_text: str) -> List[Dict[str, str]]:
        messages = PromptTemplates.format_concept_extraction(
            summary_text, SynthesisConfig.MIN_CONCEPTS, SynthesisConfig.MAX_CONCEPTS
        )
        try:
            response = self.capability.complete(messages, temperature=LLMConfig.EXTRACTION_TEMPERATURE)
        except Exception as e:
            logger.error(f"Concept extraction failed: {e}")
            raise CapabilityError("Concept extraction failed", [f"LLM communication failed: {e}"]) from e

        entries, ok = decode_array(response)
        if not ok:
            raise CapabilityError("Concept extraction failed", ["Could not parse concepts from model output"])

        concepts = valid_concepts(entries)
        discarded = len(entries) - len(concepts)
        if discarded > 0:
            logger.warning(f"Discarded {discarded} concept entries missing required fields or over the limit")

        if not concepts:
            raise CapabilityError("Concept extraction failed", ["No valid concepts extracted from summary"])
        return concepts

    def _generate_rubric(self, document_id: str, concept: Dict[str, str], errors: List[str]) -> Optional[Rubric]:
        name = concept["name"]
        try:
            response = self.capability.complete(
                PromptTemplates.format_rubric_generation(concept),
                temperature=LLMConfig.SUMMARY_TEMPERATURE
            )
        except Exception as e:
            errors.append(f"{name}: LLM communication failed: {e}")
            return None

        levels, ok = decode_object(response)
        if not ok:
            errors.append(f"{name}: could not parse rubric levels")
            return None

        missing = missing_rubric_levels(levels)
        if missing:
            errors.append(f"{name}: rubric missing levels {', '.join(missing)}")
            return None

        try:
            return self.repository.add_rubric(Rubric(
                document_id=document_id,
                concept=name,
                levels={level: levels[level].strip() for level in RUBRIC_LEVELS}
            ))
        except InputError as e:
            errors.extend(f"{name}: {reason}" for reason in e.reasons or [str(e)])
            return None
