"""
Memory Engine - reconciles new content with the stored fact bank.

This is the high-level interface callers use. For one piece of content it:
- Extracts atomic facts
- Embeds each fact and retrieves similar stored memories
- Numbers the retrieved memories 0..k-1 for the decision step
- Applies the returned ADD/UPDATE/DELETE/NONE actions in order

Action application is not transactional. If an action fails, the ones
before it stay applied and are reported on the raised error. Concurrent
add() calls that touch the same records are not coordinated here; callers
that need that should serialize add() per subject.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Literal, Optional

from ..config import call_context
from ..errors import (
    CollaboratorError,
    MemoryBankError,
    RecordNotFound,
    ReferenceNotFound,
    StoreError,
)
from ..reasoning.base import (
    ActionKind,
    DecisionService,
    ExtractionService,
    MergeAction,
    OldMemory,
)
from .base import DEFAULT_THRESHOLD, DEFAULT_TOP_K, Entry, MemoryRecord, VectorStore
from .embeddings import EmbeddingService, create_embedding_service
from .in_memory_store import InMemoryVectorStore
from .chroma_store import ChromaVectorStore

logger = logging.getLogger("memorybank.memory.engine")


@dataclass
class CallScope:
    """
    Scratch state for exactly one add() call.

    Created when the call starts and dropped when it returns, so temporary
    ids and cached embeddings never leak between calls.
    """
    # Fact (or action) text -> embedding already computed in this call
    embeddings: dict[str, list[float]] = field(default_factory=dict)
    # Retrieved records: facts in extraction order, each fact's hits in rank order.
    # The same record may appear more than once.
    candidates: list[MemoryRecord] = field(default_factory=list)
    # Temporary id -> persisted record id
    temporary_ids: dict[int, str] = field(default_factory=dict)

    def issue_temporary_ids(self) -> list[OldMemory]:
        """Number the candidates densely from zero, in candidate order."""
        self.temporary_ids = {i: record.id for i, record in enumerate(self.candidates)}
        return [
            OldMemory(id=i, content=record.content, metadata=record.metadata)
            for i, record in enumerate(self.candidates)
        ]

    def resolve(self, reference: Optional[int]) -> str:
        """Map a temporary id back to the persisted id."""
        if reference is None or reference not in self.temporary_ids:
            raise ReferenceNotFound(reference)
        return self.temporary_ids[reference]

    def metadata_for(self, reference: int) -> dict[str, Any]:
        """Metadata of the candidate behind a temporary id."""
        return dict(self.candidates[reference].metadata)


class MemoryEngine:
    """
    Deduplicating fact memory on top of a similarity store.

    All four collaborators are injected; test doubles make the otherwise
    non-deterministic pipeline reproducible.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_service: EmbeddingService,
        extraction_service: ExtractionService,
        decision_service: DecisionService,
        top_k: int = DEFAULT_TOP_K,
        threshold: float = DEFAULT_THRESHOLD,
        concurrent_retrieval: bool = True,
        collaborator_timeout: float | None = None,
    ):
        self.vector_store = vector_store
        self.embedding_service = embedding_service
        self.extraction_service = extraction_service
        self.decision_service = decision_service
        self.top_k = top_k
        self.threshold = threshold
        self.concurrent_retrieval = concurrent_retrieval
        self.collaborator_timeout = collaborator_timeout
        self._initialized = False
        logger.info("MemoryEngine created")

    async def initialize(self) -> None:
        """Initialize the underlying store."""
        await self.vector_store.initialize()
        self._initialized = True
        count = await self.vector_store.count()
        logger.info(f"MemoryEngine initialized with {count} stored memories")

    def _ensure_initialized(self) -> None:
        """Ensure the engine is initialized."""
        if not self._initialized:
            raise RuntimeError("MemoryEngine not initialized. Call initialize() first.")

    async def _guarded(self, service: str, awaitable: Awaitable, store_error: bool = False):
        """
        Await one collaborator call under the configured timeout.

        Our own errors pass through untouched. Anything else (including a
        timeout) is wrapped as CollaboratorError, or StoreError when
        store_error is set. Cancellation is never wrapped.
        """
        try:
            if self.collaborator_timeout is None:
                return await awaitable
            return await asyncio.wait_for(awaitable, timeout=self.collaborator_timeout)
        except MemoryBankError:
            raise
        except asyncio.TimeoutError as e:
            detail = f"timed out after {self.collaborator_timeout}s"
            raise self._wrap_error(service, detail, store_error) from e
        except Exception as e:
            detail = f"{type(e).__name__}: {e}"
            raise self._wrap_error(service, detail, store_error) from e

    @staticmethod
    def _wrap_error(service: str, detail: str, store_error: bool) -> MemoryBankError:
        if store_error:
            return StoreError(f"{service}: {detail}")
        return CollaboratorError(service, detail)

    async def _search_candidates(self, embedding: list[float]) -> list[MemoryRecord]:
        return await self._guarded(
            "store",
            self.vector_store.search(embedding, top_k=self.top_k, threshold=self.threshold),
        )

    async def _collect_candidates(self, scope: CallScope, facts: list[str]) -> None:
        """Embed every fact and gather similar memories into the scope."""
        if not facts:
            return

        embeddings = await self._guarded("embedding", self.embedding_service.embed_batch(list(facts)))
        if len(embeddings) != len(facts):
            raise CollaboratorError(
                "embedding", f"expected {len(facts)} embeddings, got {len(embeddings)}"
            )
        for fact, embedding in zip(facts, embeddings):
            scope.embeddings[fact] = embedding

        # gather() returns results in argument order, whatever finishes first
        if self.concurrent_retrieval:
            per_fact = await asyncio.gather(*(self._search_candidates(e) for e in embeddings))
        else:
            per_fact = []
            for embedding in embeddings:
                per_fact.append(await self._search_candidates(embedding))

        for fact, hits in zip(facts, per_fact):
            logger.debug(f"Fact {fact!r} retrieved {len(hits)} memories")
            scope.candidates.extend(hits)

    async def _embedding_for(self, scope: CallScope, text: str) -> list[float]:
        """Reuse an embedding computed earlier in this call, else compute it."""
        if text in scope.embeddings:
            return scope.embeddings[text]
        embedding = await self._guarded("embedding", self.embedding_service.embed(text))
        scope.embeddings[text] = embedding
        return embedding

    async def _apply_action(self, scope: CallScope, action: MergeAction) -> list[MemoryRecord]:
        """Apply one merge action; returns the records it created or updated."""
        if action.action == ActionKind.ADD:
            embedding = await self._embedding_for(scope, action.text)
            return await self._guarded(
                "store",
                self.vector_store.add([Entry(embedding=embedding, content=action.text, metadata={})]),
                store_error=True,
            )

        if action.action == ActionKind.UPDATE:
            record_id = scope.resolve(action.reference)
            embedding = await self._embedding_for(scope, action.text)
            try:
                updated = await self._guarded(
                    "store",
                    self.vector_store.update(
                        record_id,
                        embedding,
                        action.text,
                        scope.metadata_for(action.reference),
                    ),
                    store_error=True,
                )
            except RecordNotFound as e:
                raise ReferenceNotFound(action.reference, record_id) from e
            return [updated]

        if action.action == ActionKind.DELETE:
            record_id = scope.resolve(action.reference)
            await self._guarded("store", self.vector_store.delete(record_id), store_error=True)
            return []

        # NONE
        return []

    async def _apply_actions(self, scope: CallScope, actions: list[MergeAction]) -> list[MemoryRecord]:
        """Apply actions strictly in order, stopping at the first failure."""
        applied: list[MemoryRecord] = []
        for position, action in enumerate(actions):
            logger.debug(
                f"Applying {action.action.value} (reference={action.reference}): {action.text!r}"
            )
            try:
                applied.extend(await self._apply_action(scope, action))
            except MemoryBankError as e:
                e.applied = list(applied)
                logger.error(
                    f"Aborted at action {position + 1}/{len(actions)} "
                    f"({action.action.value}): {e}. "
                    f"{position} earlier action(s) stay applied; "
                    f"committed records: {[r.id for r in applied]}"
                )
                raise
        return applied

    async def add(self, content: str) -> list[MemoryRecord]:
        """
        Reconcile content into the store.

        Args:
            content: Arbitrary input text

        Returns:
            Records created or updated by this call, in application order.
            Deletions and no-ops are not included.

        Raises:
            CollaboratorError: extraction, embedding, retrieval or decision
                failed; nothing was written.
            ReferenceNotFound: an action named a temporary id that was not
                issued, or an UPDATE target vanished; earlier actions stay.
            StoreError: a write failed; earlier actions stay.
        """
        self._ensure_initialized()

        token = call_context.set(uuid.uuid4().hex[:8])
        try:
            scope = CallScope()

            facts = await self._guarded("extraction", self.extraction_service.extract(content))
            logger.info(f"Extracted {len(facts)} facts")

            await self._collect_candidates(scope, facts)
            old_memory = scope.issue_temporary_ids()
            logger.info(f"Retrieved {len(old_memory)} candidate memories")

            actions = await self._guarded(
                "decision", self.decision_service.decide(list(facts), old_memory)
            )
            logger.info(f"Decision returned {len(actions)} actions")

            applied = await self._apply_actions(scope, actions)
            logger.info(f"Reconciled content: {len(applied)} memories added or updated")
            return applied
        finally:
            call_context.reset(token)

    async def search(
        self,
        content: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
    ) -> list[MemoryRecord]:
        """Memories closest to content, most similar first. No reconciliation."""
        self._ensure_initialized()

        embedding = await self._guarded("embedding", self.embedding_service.embed(content))
        return await self._guarded(
            "store",
            self.vector_store.search(
                embedding,
                top_k=self.top_k if top_k is None else top_k,
                threshold=self.threshold if threshold is None else threshold,
            ),
            store_error=True,
        )

    async def get(self, id: str) -> Optional[MemoryRecord]:
        """Point lookup by persisted id."""
        self._ensure_initialized()
        return await self._guarded("store", self.vector_store.get(id), store_error=True)

    async def list(
        self,
        cursor: Optional[str] = None,
        offset: int = 0,
        limit: Optional[int] = None,
    ) -> list[MemoryRecord]:
        """Page through stored memories ordered by id."""
        self._ensure_initialized()
        return await self._guarded(
            "store",
            self.vector_store.list(cursor=cursor, offset=offset, limit=limit),
            store_error=True,
        )

    async def count(self) -> int:
        """Number of stored memories."""
        self._ensure_initialized()
        return await self.vector_store.count()

    async def close(self) -> None:
        """Clean up resources."""
        await self.vector_store.close()
        self._initialized = False
        logger.info("MemoryEngine closed")


async def create_memory_engine(
    extraction_service: ExtractionService,
    decision_service: DecisionService,
    store_type: Literal["memory", "chroma", "pgvector"] = "chroma",
    embedding_provider: Literal["openai", "google", "local"] = "google",
    embedding_api_key: str = "",
    embedding_model: str = "",
    embedding_dimensions: int | None = None,
    postgres_url: str = "",
    chroma_path: str = "./memory_store",
    collection_name: str = "memories",
    top_k: int = DEFAULT_TOP_K,
    threshold: float = DEFAULT_THRESHOLD,
    concurrent_retrieval: bool = True,
    collaborator_timeout: float | None = None,
) -> MemoryEngine:
    """
    Factory function to create a configured, initialized MemoryEngine.

    Args:
        extraction_service: Fact extraction collaborator
        decision_service: Merge decision collaborator
        store_type: "memory" for ephemeral, "chroma" for local, "pgvector" for production
        embedding_provider: "openai", "google" or "local"
        embedding_api_key: Key for the hosted embedding provider
        embedding_model: Embedding model override
        embedding_dimensions: Output dimension override
        postgres_url: Required for pgvector store
        chroma_path: Path for ChromaDB storage
        collection_name: Chroma collection / Postgres table name
        top_k: Default search result cap
        threshold: Default maximum cosine distance
        concurrent_retrieval: Run per-fact searches concurrently
        collaborator_timeout: Seconds allowed per collaborator call

    Returns:
        Initialized MemoryEngine
    """
    embedding_service = create_embedding_service(
        provider=embedding_provider,
        api_key=embedding_api_key,
        model=embedding_model,
        dimensions=embedding_dimensions,
    )

    if store_type == "memory":
        vector_store = InMemoryVectorStore()
    elif store_type == "chroma":
        vector_store = ChromaVectorStore(
            persist_directory=chroma_path,
            collection_name=collection_name,
        )
    elif store_type == "pgvector":
        if not postgres_url:
            raise ValueError("postgres_url required for pgvector store")
        from .pgvector_store import PgVectorStore
        vector_store = PgVectorStore(
            connection_string=postgres_url,
            table_name=collection_name,
            embedding_dimension=embedding_service.dimension,
        )
    else:
        raise ValueError(f"Unknown store type: {store_type}")

    engine = MemoryEngine(
        vector_store=vector_store,
        embedding_service=embedding_service,
        extraction_service=extraction_service,
        decision_service=decision_service,
        top_k=top_k,
        threshold=threshold,
        concurrent_retrieval=concurrent_retrieval,
        collaborator_timeout=collaborator_timeout,
    )

    await engine.initialize()
    return engine
