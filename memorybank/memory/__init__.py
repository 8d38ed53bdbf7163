"""
Fact memory: similarity stores, embeddings and the reconciliation engine.

New content is broken into facts, compared against what is already stored,
and merged in so the bank stays free of duplicate and stale facts.
"""

from .base import Entry, MemoryRecord, VectorStore
from .embeddings import EmbeddingService, create_embedding_service
from .in_memory_store import InMemoryVectorStore
from .chroma_store import ChromaVectorStore
from .engine import CallScope, MemoryEngine, create_memory_engine

__all__ = [
    "Entry",
    "MemoryRecord",
    "VectorStore",
    "EmbeddingService",
    "create_embedding_service",
    "InMemoryVectorStore",
    "ChromaVectorStore",
    "CallScope",
    "MemoryEngine",
    "create_memory_engine",
]
