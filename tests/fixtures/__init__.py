"""
Test doubles and sample data for memorybank tests.
"""

from memorybank.memory.base import MemoryRecord
from memorybank.memory.embeddings import EmbeddingService
from memorybank.reasoning.base import (
    ActionKind,
    DecisionService,
    ExtractionService,
    MergeAction,
    OldMemory,
)


class KeywordEmbeddingService(EmbeddingService):
    """
    Deterministic embedder: a text containing a known keyword maps to that
    keyword's axis, so texts sharing a keyword are identical (distance 0).
    Unknown texts each get a fresh axis of their own (distance 1 to all else).
    """

    def __init__(self, axes: dict[str, int] | None = None, dimension: int = 32):
        self.axes = dict(axes or {})
        self._dimension = dimension
        self._next_axis = max(self.axes.values(), default=-1) + 1
        self._unknown: dict[str, int] = {}
        self.calls: list[str] = []

    @property
    def dimension(self) -> int:
        return self._dimension

    def _axis_for(self, text: str) -> int:
        for keyword, axis in self.axes.items():
            if keyword in text:
                return axis
        if text not in self._unknown:
            self._unknown[text] = self._next_axis
            self._next_axis += 1
        return self._unknown[text]

    def vector(self, text: str) -> list[float]:
        embedding = [0.0] * self._dimension
        embedding[self._axis_for(text) % self._dimension] = 1.0
        return embedding

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.calls.extend(texts)
        return [self.vector(text) for text in texts]


class ScriptedExtractionService(ExtractionService):
    """Returns a fixed fact list and records every request."""

    def __init__(self, facts: list[str] | None = None, error: Exception | None = None):
        self.facts = list(facts or [])
        self.error = error
        self.requests: list[str] = []

    async def extract(self, content: str) -> list[str]:
        self.requests.append(content)
        if self.error is not None:
            raise self.error
        return list(self.facts)


class ScriptedDecisionService(DecisionService):
    """Returns a fixed action list and records every request."""

    def __init__(self, actions: list[MergeAction] | None = None, error: Exception | None = None):
        self.actions = list(actions or [])
        self.error = error
        self.requests: list[tuple[list[str], list[OldMemory]]] = []

    async def decide(self, new_facts, old_memory):
        self.requests.append((list(new_facts), list(old_memory)))
        if self.error is not None:
            raise self.error
        return list(self.actions)


def action(kind: str, text: str, reference: int | None = None) -> MergeAction:
    """Shorthand for building a MergeAction."""
    return MergeAction(reference=reference, text=text, action=ActionKind(kind))


def make_record(
    id: str = "rec-1",
    content: str = "lives in Berlin",
    embedding: list[float] | None = None,
    metadata: dict | None = None,
    created_at: int = 1_700_000_000_000,
    updated_at: int | None = None,
) -> MemoryRecord:
    """Create a sample MemoryRecord for testing."""
    return MemoryRecord(
        id=id,
        content=content,
        embedding=embedding if embedding is not None else [1.0, 0.0, 0.0],
        metadata=metadata or {},
        created_at=created_at,
        updated_at=updated_at,
    )
