"""
ChromaDB Vector Store Implementation.

ChromaDB is the default backend for local use:
- No server required
- Stores everything in a local directory
- Built-in persistence
- Good performance for moderate scale (< 1M vectors)
"""

import json
import logging
from pathlib import Path
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

logger = logging.getLogger("memorybank.memory.chroma")

_INCLUDE = ["documents", "metadatas", "embeddings"]


class ChromaVectorStore(VectorStore):
    """
    ChromaDB implementation of the vector store.

    Record content is the Chroma document. Chroma metadata only holds flat
    scalars, so the record's own metadata map is kept as a JSON string next
    to the timestamps.
    """

    def __init__(
        self,
        persist_directory: str = "./memory_store",
        collection_name: str = "memories",
    ):
        self.persist_directory = Path(persist_directory)
        self.collection_name = collection_name
        self._client = None
        self._collection = None
        logger.info(f"ChromaVectorStore configured with directory: {persist_directory}")

    async def initialize(self) -> None:
        """Initialize ChromaDB client and collection."""
        try:
            import chromadb
            from chromadb.config import Settings
        except ImportError:
            raise RuntimeError(
                "chromadb not installed. Install with: pip install chromadb"
            )

        # Create persist directory if needed
        self.persist_directory.mkdir(parents=True, exist_ok=True)

        self._client = chromadb.PersistentClient(
            path=str(self.persist_directory),
            settings=Settings(
                anonymized_telemetry=False,
                allow_reset=True,
            ),
        )

        # Cosine space so distances line up with the other backends
        self._collection = self._client.get_or_create_collection(
            name=self.collection_name,
            metadata={"hnsw:space": "cosine", "description": "Fact memory store"},
        )

        count = self._collection.count()
        logger.info(f"ChromaDB initialized with {count} existing memories")

    def _ensure_initialized(self) -> None:
        """Ensure the store is initialized."""
        if self._collection is None:
            raise RuntimeError("ChromaVectorStore not initialized. Call initialize() first.")

    @staticmethod
    def _to_chroma_metadata(
        metadata: dict[str, Any],
        created_at: int,
        updated_at: Optional[int] = None,
    ) -> dict:
        """Flatten a record's metadata into Chroma's scalar-only metadata."""
        chroma_metadata = {
            "metadata": json.dumps(metadata or {}),
            "created_at": created_at,
        }
        # Chroma rejects None values
        if updated_at is not None:
            chroma_metadata["updated_at"] = updated_at
        return chroma_metadata

    @staticmethod
    def _to_record(id: str, document: str, metadata: dict, embedding) -> MemoryRecord:
        """Convert a ChromaDB row back to a MemoryRecord."""
        metadata = metadata or {}
        return MemoryRecord(
            id=id,
            content=document,
            embedding=[float(x) for x in embedding] if embedding is not None else [],
            metadata=json.loads(metadata.get("metadata") or "{}"),
            created_at=int(metadata.get("created_at", 0)),
            updated_at=int(metadata["updated_at"]) if "updated_at" in metadata else None,
        )

    def _rows_to_records(self, results: dict) -> list[MemoryRecord]:
        """Convert a flat collection.get() result to records."""
        embeddings = results.get("embeddings")
        return [
            self._to_record(
                id=id,
                document=results["documents"][i],
                metadata=results["metadatas"][i],
                embedding=embeddings[i] if embeddings is not None else None,
            )
            for i, id in enumerate(results["ids"])
        ]

    async def get(self, id: str) -> Optional[MemoryRecord]:
        """Get a specific memory by id."""
        self._ensure_initialized()

        results = self._collection.get(ids=[id], include=_INCLUDE)
        records = self._rows_to_records(results)
        return records[0] if records else None

    async def add(self, entries: list[Entry]) -> list[MemoryRecord]:
        """Store new memories with their embeddings."""
        self._ensure_initialized()

        if not entries:
            return []

        now = now_ms()
        records = [
            MemoryRecord(
                id=new_record_id(),
                content=entry.content,
                embedding=list(entry.embedding),
                metadata=dict(entry.metadata or {}),
                created_at=now,
            )
            for entry in entries
        ]

        self._collection.add(
            ids=[r.id for r in records],
            embeddings=[r.embedding for r in records],
            documents=[r.content for r in records],
            metadatas=[self._to_chroma_metadata(r.metadata, r.created_at) for r in records],
        )
        logger.info(f"Stored {len(records)} new memories")
        return records

    async def update(
        self,
        id: str,
        embedding: list[float],
        content: str,
        metadata: dict[str, Any],
    ) -> MemoryRecord:
        """Rewrite an existing memory in place."""
        self._ensure_initialized()

        existing = await self.get(id)
        if existing is None:
            raise RecordNotFound(id)

        record = MemoryRecord(
            id=id,
            content=content,
            embedding=list(embedding),
            metadata=dict(metadata or {}),
            created_at=existing.created_at,
            updated_at=now_ms(),
        )
        self._collection.update(
            ids=[id],
            embeddings=[record.embedding],
            documents=[record.content],
            metadatas=[
                self._to_chroma_metadata(record.metadata, record.created_at, record.updated_at)
            ],
        )
        logger.info(f"Updated memory: {id}")
        return record

    async def delete(self, id: str) -> None:
        """Delete a memory if it exists."""
        self._ensure_initialized()

        existing = self._collection.get(ids=[id], include=[])
        if not existing["ids"]:
            return
        self._collection.delete(ids=[id])
        logger.info(f"Deleted memory: {id}")

    async def search(
        self,
        embedding: list[float],
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[MemoryRecord]:
        """Search for similar memories."""
        self._ensure_initialized()

        total = self._collection.count()
        if total == 0:
            return []

        results = self._collection.query(
            query_embeddings=[embedding],
            n_results=min(top_k, total),
            include=["documents", "metadatas", "distances", "embeddings"],
        )

        scored = []
        if results["ids"] and results["ids"][0]:
            embeddings = results.get("embeddings")
            for i, id in enumerate(results["ids"][0]):
                distance = results["distances"][0][i]
                if distance > threshold:
                    continue
                record = self._to_record(
                    id=id,
                    document=results["documents"][0][i],
                    metadata=results["metadatas"][0][i],
                    embedding=embeddings[0][i] if embeddings is not None else None,
                )
                scored.append((distance, record))

        # Closest first
        scored.sort(key=lambda item: item[0])
        return [record for _, record in scored[:top_k]]

    async def list(
        self,
        cursor: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[MemoryRecord]:
        """Page through memories ordered by id."""
        self._ensure_initialized()

        # Chroma has no ordered range scans; fetch all and page in Python
        results = self._collection.get(include=_INCLUDE)
        return paginate(self._rows_to_records(results), cursor, offset, limit)

    async def count(self) -> int:
        """Get total number of stored memories."""
        self._ensure_initialized()
        return self._collection.count()

    async def close(self) -> None:
        """Clean up resources."""
        # ChromaDB PersistentClient handles cleanup automatically
        self._client = None
        self._collection = None
        logger.info("ChromaDB connection closed")
