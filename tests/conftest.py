"""
Shared fixtures for the Socratic Assessor tests.

FakeCapability stands in for the model server: completions are scripted
in order and embeddings are deterministic bag-of-words vectors.
"""
import hashlib
import re
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from socratic_assessor.llm import ModelCapability
from socratic_assessor.models import Chunk, Document, Rubric, SourceFile
from socratic_assessor.storage import Repository
from socratic_assessor.vector_store import InMemoryVectorStore


class FakeCapability(ModelCapability):
    """Scripted completions and deterministic embeddings."""

    def __init__(
        self,
        completions: Optional[Sequence[object]] = None,
        embeddings: Optional[Dict[str, List[float]]] = None,
        dimension: int = 8,
        fail_embedding_on: Sequence[str] = ()
    ):
        self.completions = list(completions or [])
        self.embeddings = dict(embeddings or {})
        self.dimension = dimension
        self.fail_embedding_on = list(fail_embedding_on)
        self.calls = []

    def queue(self, *responses):
        self.completions.extend(responses)

    def embed(self, text: str) -> List[float]:
        self.calls.append({"kind": "embed", "text": text})
        for marker in self.fail_embedding_on:
            if marker in text:
                raise RuntimeError("embedding service unavailable")
        if text in self.embeddings:
            return list(self.embeddings[text])

        vector = [0.0] * self.dimension
        for word in re.findall(r'\w+', text.lower()):
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dimension
            vector[bucket] += 1.0
        return vector

    def complete(self, messages, temperature=None, max_tokens=None) -> str:
        self.calls.append({
            "kind": "complete",
            "messages": [dict(m) for m in messages],
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if not self.completions:
            return ""
        response = self.completions.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def completion_calls(self):
        return [c for c in self.calls if c["kind"] == "complete"]

    @property
    def last_prompt(self) -> str:
        return "\n".join(m["content"] for m in self.completion_calls[-1]["messages"])


LEVELS = {
    "beginner": "Recognises the term but cannot explain it.",
    "developing": "Explains the idea with some errors.",
    "proficient": "Explains and applies the idea correctly.",
    "mastery": "Applies and extends the idea to new problems.",
}


def make_rubric_levels(**overrides) -> Dict[str, str]:
    levels = dict(LEVELS)
    levels.update(overrides)
    return levels


@pytest.fixture
def capability():
    return FakeCapability()


@pytest.fixture
def repository():
    return Repository(InMemoryVectorStore())


@pytest.fixture
def document(repository):
    return repository.add_document(Document(title="Calculus", files=[SourceFile("notes.txt")]))


@pytest.fixture
def add_chunks(repository, capability):
    """Store chunks for a document, embedded with the fake capability."""
    def _add(document_id: str, texts: Sequence[str], process: bool = True) -> List[Chunk]:
        chunks = [
            Chunk(
                document_id=document_id,
                text=text,
                embedding=tuple(capability.embed(text)),
                sequence_hint=i,
                filename="notes.txt",
            )
            for i, text in enumerate(texts)
        ]
        repository.add_chunks(chunks)
        if process:
            repository.mark_processed(document_id)
        capability.calls.clear()
        return chunks
    return _add


@pytest.fixture
def add_rubric(repository):
    def _add(document_id: str, concept: str, **level_overrides) -> Rubric:
        return repository.add_rubric(Rubric(
            document_id=document_id,
            concept=concept,
            levels=make_rubric_levels(**level_overrides)
        ))
    return _add


@pytest.fixture
def fixed_clock():
    moment = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    return lambda: moment


@pytest.fixture
def ticking_clock():
    """A clock advancing one second per call."""
    state = {"now": datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)}

    def _tick():
        state["now"] += timedelta(seconds=1)
        return state["now"]
    return _tick
