"""
Knowledge base indexer - turns raw configuration entries into indexed entries.

Each entry gets its distinct token set and, when an embedding provider is
available, one embedding of its concatenated text. A failed embedding only
affects that entry; indexing of the rest of the source continues.
"""

import asyncio
import logging
from typing import Optional

from agentflow.knowledge.tokenizer import token_set
from agentflow.orchestrator.schemas import KnowledgeBaseEntry
from agentflow.shared.interfaces import IEmbeddingProvider
from agentflow.shared.models import IndexedKnowledgeEntry

logger = logging.getLogger(__name__)


def _entry_parts(entry: KnowledgeBaseEntry) -> list[str]:
    """Title, summary, content, tags and keywords, empty parts dropped."""
    parts = [entry.title, entry.summary, entry.content]
    parts.extend(entry.tags or [])
    parts.extend(entry.keywords or [])
    return [part for part in parts if part]


class KnowledgeBaseIndexer:
    """Builds the in-memory knowledge index consumed by retriever nodes."""

    async def build_index(
        self,
        sources: dict[str, list[KnowledgeBaseEntry]],
        embeddings: Optional[IEmbeddingProvider] = None,
    ) -> dict[str, list[IndexedKnowledgeEntry]]:
        """Index every source. Returns a fresh mapping; nothing is updated in place."""
        if not sources:
            return {}

        index: dict[str, list[IndexedKnowledgeEntry]] = {}
        for source, entries in sources.items():
            index[source] = list(await asyncio.gather(
                *(self._enrich_entry(entry, embeddings) for entry in entries or [])
            ))
            logger.info(f"Indexed knowledge source '{source}': {len(index[source])} entries")
        return index

    async def _enrich_entry(
        self,
        entry: KnowledgeBaseEntry,
        embeddings: Optional[IEmbeddingProvider],
    ) -> IndexedKnowledgeEntry:
        parts = _entry_parts(entry)
        return IndexedKnowledgeEntry(
            id=entry.id,
            title=entry.title,
            content=entry.content,
            summary=entry.summary,
            tags=list(entry.tags) if entry.tags is not None else None,
            keywords=list(entry.keywords) if entry.keywords is not None else None,
            priority=entry.priority,
            weight=entry.weight,
            tokens=token_set(parts),
            embedding=await self._embed_entry(entry, parts, embeddings),
        )

    async def _embed_entry(
        self,
        entry: KnowledgeBaseEntry,
        parts: list[str],
        embeddings: Optional[IEmbeddingProvider],
    ) -> Optional[list[float]]:
        if embeddings is None:
            return None

        text = "\n".join(parts)
        if not text.strip():
            return None

        label = entry.id or entry.title or "knowledge-entry"
        try:
            vector = await embeddings.embed(text)
        except Exception as e:
            logger.warning(f"Vectorization failed for {label}: {e}")
            return None
        logger.debug(f"Embedded entry: {label}")
        return list(vector) if vector else None
