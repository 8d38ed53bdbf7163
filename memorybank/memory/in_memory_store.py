"""
In-process Vector Store Implementation.

Keeps every record in a dict and scores searches by brute force. Nothing is
persisted; use it for tests and throwaway sessions.
"""

import copy
import logging
import math
from typing import Any, Optional

from ..errors import RecordNotFound
from .base import (
    DEFAULT_THRESHOLD,
    DEFAULT_TOP_K,
    Entry,
    MemoryRecord,
    VectorStore,
    new_record_id,
    now_ms,
    paginate,
)

logger = logging.getLogger("memorybank.memory.in_memory")


def cosine_distance(a: list[float], b: list[float]) -> float:
    """1 - cosine similarity; 1.0 when either vector is all zeros."""
    if len(a) != len(b):
        raise ValueError(f"Embedding dimension mismatch: {len(a)} != {len(b)}")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 1.0
    return 1.0 - dot / (norm_a * norm_b)


class InMemoryVectorStore(VectorStore):
    """Dict-backed vector store."""

    def __init__(self):
        self._records: dict[str, MemoryRecord] = {}

    async def initialize(self) -> None:
        logger.info("InMemoryVectorStore ready")

    async def get(self, id: str) -> Optional[MemoryRecord]:
        record = self._records.get(id)
        return copy.deepcopy(record) if record else None

    async def add(self, entries: list[Entry]) -> list[MemoryRecord]:
        created = []
        now = now_ms()
        for entry in entries:
            record = MemoryRecord(
                id=new_record_id(),
                content=entry.content,
                embedding=list(entry.embedding),
                metadata=dict(entry.metadata or {}),
                created_at=now,
            )
            self._records[record.id] = record
            created.append(copy.deepcopy(record))
        logger.debug(f"Added {len(created)} memories")
        return created

    async def update(
        self,
        id: str,
        embedding: list[float],
        content: str,
        metadata: dict[str, Any],
    ) -> MemoryRecord:
        existing = self._records.get(id)
        if existing is None:
            raise RecordNotFound(id)
        updated = MemoryRecord(
            id=id,
            content=content,
            embedding=list(embedding),
            metadata=dict(metadata or {}),
            created_at=existing.created_at,
            updated_at=now_ms(),
        )
        self._records[id] = updated
        return copy.deepcopy(updated)

    async def delete(self, id: str) -> None:
        self._records.pop(id, None)

    async def search(
        self,
        embedding: list[float],
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[MemoryRecord]:
        scored = [
            (cosine_distance(embedding, record.embedding), record)
            for record in self._records.values()
        ]
        scored = [item for item in scored if item[0] <= threshold]
        # Closest first; ties broken by id so results are stable
        scored.sort(key=lambda item: (item[0], item[1].id))
        return [copy.deepcopy(record) for _, record in scored[:top_k]]

    async def list(
        self,
        cursor: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[MemoryRecord]:
        page = paginate(list(self._records.values()), cursor, offset, limit)
        return [copy.deepcopy(record) for record in page]

    async def count(self) -> int:
        return len(self._records)

    async def close(self) -> None:
        self._records.clear()
