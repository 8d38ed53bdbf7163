"""
Base interfaces and data structures for the similarity store.

Defines the record shape and the abstract contract that every vector store
backend must implement.
"""

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

DEFAULT_TOP_K = 5
# Cosine distance; 0.5 on unit vectors matches a Euclidean radius of 1.0
DEFAULT_THRESHOLD = 0.5


def now_ms() -> int:
    """Current time as integer epoch milliseconds."""
    return int(time.time() * 1000)


def new_record_id() -> str:
    """Store-assigned identifier for a new record."""
    return uuid.uuid4().hex


def paginate(
    records: list["MemoryRecord"],
    cursor: Optional[str] = None,
    offset: int = 0,
    limit: Optional[int] = None,
) -> list["MemoryRecord"]:
    """Order by id, keep ids >= cursor, then apply offset and limit."""
    ordered = sorted(records, key=lambda r: r.id)
    if cursor is not None:
        ordered = [r for r in ordered if r.id >= cursor]
    ordered = ordered[offset:]
    if limit is not None:
        ordered = ordered[:limit]
    return ordered


@dataclass
class Entry:
    """A record to be inserted; the store assigns id and timestamps."""
    embedding: list[float]
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class MemoryRecord:
    """
    One persisted fact.

    Owned by the store: created by an ADD action, rewritten by UPDATE,
    removed by DELETE.
    """
    id: str
    content: str
    embedding: list[float]
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: int = field(default_factory=now_ms)  # epoch ms
    updated_at: Optional[int] = None  # epoch ms, set only on mutation

    def to_dict(self) -> dict[str, Any]:
        """External representation (no embedding)."""
        data = {
            "id": self.id,
            "content": self.content,
            "metadata": dict(self.metadata),
            "createdAt": self.created_at,
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at
        return data


class VectorStore(ABC):
    """
    Abstract interface for similarity store backends.

    Implementations: in-memory (tests), ChromaDB (local), pgvector (production).

    Distances are cosine distances: lower is closer. A single update or
    delete on one id must be atomic; nothing stronger is assumed.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the vector store (create collections, etc.)."""
        pass

    @abstractmethod
    async def get(self, id: str) -> Optional[MemoryRecord]:
        """Point lookup; None if absent."""
        pass

    @abstractmethod
    async def add(self, entries: list[Entry]) -> list[MemoryRecord]:
        """
        Insert new records.

        Args:
            entries: Content, embedding and metadata for each new record

        Returns:
            The created records, in input order, with store-assigned ids
        """
        pass

    @abstractmethod
    async def update(
        self,
        id: str,
        embedding: list[float],
        content: str,
        metadata: dict[str, Any],
    ) -> MemoryRecord:
        """
        Replace content, embedding and metadata of an existing record.

        Keeps created_at and sets updated_at to now.

        Raises:
            RecordNotFound: if no record has this id
        """
        pass

    @abstractmethod
    async def delete(self, id: str) -> None:
        """Remove a record. Deleting a missing id is a no-op."""
        pass

    @abstractmethod
    async def search(
        self,
        embedding: list[float],
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[MemoryRecord]:
        """
        Search for similar memories.

        Args:
            embedding: The embedding to search for
            top_k: Maximum number of results
            threshold: Maximum distance for a record to be returned

        Returns:
            Records within threshold, closest first, at most top_k
        """
        pass

    @abstractmethod
    async def list(
        self,
        cursor: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[MemoryRecord]:
        """
        Page through records ordered by id.

        Args:
            cursor: Only ids >= cursor
            offset: Records to skip after the cursor
            limit: Maximum records to return (None for all)
        """
        pass

    @abstractmethod
    async def count(self) -> int:
        """Get total number of stored memories."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Clean up resources."""
        pass
