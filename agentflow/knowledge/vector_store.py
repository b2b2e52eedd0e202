"""
In-memory vector store adapter.

Mirrors the contract of a durable store: each sync replaces a source's rows
wholesale, and searches return hits already ranked and truncated. Entries
without an embedding are not stored.
"""

import asyncio
import logging
from typing import Optional

from agentflow.knowledge.scorer import cosine_similarity
from agentflow.shared.config import AppConfig
from agentflow.shared.interfaces import IVectorStore
from agentflow.shared.models import IndexedKnowledgeEntry, VectorSearchResult

logger = logging.getLogger(__name__)


class InMemoryVectorStore(IVectorStore):
    """Process-local semantic index keyed by knowledge source."""

    def __init__(self, enabled: bool = True):
        self._enabled = enabled
        self._rows: dict[str, list[tuple[VectorSearchResult, list[float]]]] = {}
        self._lock = asyncio.Lock()

    def is_enabled(self) -> bool:
        return self._enabled

    async def sync_sources(self, index: dict[str, list[IndexedKnowledgeEntry]]) -> None:
        if not self.is_enabled() or not index:
            return

        async with self._lock:
            for source, entries in index.items():
                rows = []
                for entry in entries:
                    if not entry.embedding:
                        continue
                    row = VectorSearchResult(
                        id=entry.label,
                        title=entry.title,
                        content=entry.content,
                        score=0.0,
                        metadata={
                            "summary": entry.summary,
                            "tags": entry.tags,
                            "keywords": entry.keywords,
                            "priority": entry.priority if entry.priority is not None else entry.weight,
                        },
                    )
                    rows.append((row, list(entry.embedding)))
                self._rows[source] = rows
                logger.info(f"Vector store synced source '{source}': {len(rows)} rows")

    async def semantic_search(
        self,
        source: str,
        embedding: list[float],
        top_k: int,
    ) -> list[VectorSearchResult]:
        if not self.is_enabled() or not embedding:
            return []

        rows = self._rows.get(source, [])
        hits = [
            VectorSearchResult(
                id=row.id,
                title=row.title,
                content=row.content,
                metadata=dict(row.metadata),
                score=cosine_similarity(embedding, vector),
            )
            for row, vector in rows
            if len(vector) == len(embedding)
        ]
        # Unrelated rows are not hits, so an all-miss search falls back to lexical scoring
        hits = [hit for hit in hits if hit.score > 0]
        hits.sort(key=lambda hit: hit.score, reverse=True)
        return hits[:top_k]

    def get_row_count(self, source: str) -> int:
        return len(self._rows.get(source, []))


def create_vector_store(config: AppConfig) -> Optional[IVectorStore]:
    """Factory: the in-memory store when VECTOR_STORE_ENABLED is set, else None."""
    if not config.retrieval.vector_store_enabled:
        logger.info("Vector store disabled (set VECTOR_STORE_ENABLED=true to enable)")
        return None
    logger.info("Using in-memory vector store")
    return InMemoryVectorStore()
