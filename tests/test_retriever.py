"""
Tests for the ContextRetriever.
"""
import math

import pytest

from socratic_assessor.errors import CapabilityError
from socratic_assessor.models import Chunk
from socratic_assessor.retrieval import ContextRetriever, word_set

from conftest import FakeCapability


def unit_vector(cosine: float):
    return (cosine, math.sqrt(1.0 - cosine * cosine))


@pytest.fixture
def distance_document(repository, document):
    """Chunks at cosine distances 0.9, 0.1 and 0.4 from the query [1, 0]."""
    for hint, (text, cosine) in enumerate([("far", 0.1), ("near", 0.9), ("middle", 0.6)]):
        repository.add_chunks([Chunk(
            document_id=document.id, text=text, embedding=unit_vector(cosine), sequence_hint=hint
        )])
    repository.mark_processed(document.id)
    return document


class TestContextRetriever:
    """Tests for chunk and rubric ranking."""

    def test_returns_lowest_distance_chunks_in_order(self, repository, distance_document):
        capability = FakeCapability(embeddings={"derivatives": [1.0, 0.0]})
        retriever = ContextRetriever(repository, capability, chunk_top_k=2)

        context = retriever.retrieve("derivatives", distance_document.id)

        assert [c.text for c in context.chunks] == ["near", "middle"]
        assert [c.distance for c in context.chunks] == pytest.approx([0.1, 0.4])
        assert context.average_distance == pytest.approx(0.25)

    def test_query_is_scoped_to_document(self, repository, distance_document):
        from socratic_assessor.models import Document

        other = repository.add_document(Document(title="Other"))
        repository.add_chunks([Chunk(
            document_id=other.id, text="other", embedding=(1.0, 0.0), sequence_hint=0
        )])
        capability = FakeCapability(embeddings={"derivatives": [1.0, 0.0]})

        context = ContextRetriever(repository, capability).retrieve("derivatives", distance_document.id)

        assert "other" not in [c.text for c in context.chunks]

    def test_rubrics_ranked_by_word_overlap(self, repository, document, add_rubric):
        add_rubric(document.id, "Chain rule derivatives")
        add_rubric(document.id, "Limits")
        add_rubric(document.id, "Derivatives of polynomials")
        add_rubric(document.id, "Integrals")

        retriever = ContextRetriever(repository, FakeCapability())
        rubrics, overlaps = retriever.rank_rubrics(
            "derivatives of sums", repository.list_rubrics(document.id)
        )

        assert [r.concept for r in rubrics] == [
            "Derivatives of polynomials", "Chain rule derivatives", "Limits"
        ]
        assert overlaps == [2, 1, 0]

    def test_rubric_ties_keep_creation_order(self, repository, document, add_rubric):
        for concept in ("Area under curves", "Rate of change", "Limits", "Tangent lines"):
            add_rubric(document.id, concept)

        retriever = ContextRetriever(repository, FakeCapability())
        rubrics, overlaps = retriever.rank_rubrics("nothing shared", repository.list_rubrics(document.id))

        assert [r.concept for r in rubrics] == ["Area under curves", "Rate of change", "Limits"]
        assert overlaps == [0, 0, 0]

    def test_matched_rubrics_need_overlap(self, repository, distance_document, add_rubric):
        add_rubric(distance_document.id, "Derivatives")
        add_rubric(distance_document.id, "Limits")
        capability = FakeCapability(embeddings={"derivatives": [1.0, 0.0]})

        context = ContextRetriever(repository, capability).retrieve("derivatives", distance_document.id)

        assert [r.concept for r in context.rubrics] == ["Derivatives", "Limits"]
        assert [r.concept for r in context.matched_rubrics] == ["Derivatives"]

    def test_embedding_failure_raises_capability_error(self, repository, distance_document):
        capability = FakeCapability(fail_embedding_on=["derivatives"])

        with pytest.raises(CapabilityError):
            ContextRetriever(repository, capability).retrieve("derivatives", distance_document.id)

    def test_word_set_is_case_folded(self):
        assert word_set("The Chain-Rule, the chain rule!") == {"the", "chain", "rule"}
