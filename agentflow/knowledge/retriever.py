"""
Knowledge retriever used by retriever nodes.

Resolution order for a query:
  1. Vector store hits (when a query embedding and an enabled store exist)
  2. Local hybrid scoring over the in-memory index
Embedding and vector store failures are soft degrades: logged, then the
lexical path is taken.
"""

import logging
from typing import Callable, Optional

from agentflow.knowledge.scorer import rank_entries
from agentflow.knowledge.tokenizer import tokenize
from agentflow.shared.constants import NO_KNOWLEDGE_MESSAGE
from agentflow.shared.errors import NotFoundError
from agentflow.shared.interfaces import IEmbeddingProvider, IVectorStore
from agentflow.shared.models import (
    IndexedKnowledgeEntry, PipelineState, ScoredMatch, VectorSearchResult,
)

logger = logging.getLogger(__name__)


def _build_context(matches: list[ScoredMatch]) -> str:
    if not matches:
        return NO_KNOWLEDGE_MESSAGE
    return "\n\n".join(
        f"Snippet {match.rank} - {match.title}\n"
        f"Summary: {match.summary or 'n/a'}\n"
        f"{match.content}"
        for match in matches
    )


def _vector_hit_to_match(rank: int, hit: VectorSearchResult) -> ScoredMatch:
    metadata = hit.metadata or {}
    return ScoredMatch(
        rank=rank,
        id=hit.id,
        title=hit.title,
        content=hit.content,
        summary=metadata.get("summary"),
        tags=metadata.get("tags"),
        keywords=metadata.get("keywords"),
        score=hit.score,
    )


class KnowledgeRetriever:
    """Ranks knowledge entries of one source against the run's input and intent."""

    def __init__(
        self,
        index_provider: Callable[[], dict[str, list[IndexedKnowledgeEntry]]],
        embeddings: Optional[IEmbeddingProvider] = None,
        vector_store: Optional[IVectorStore] = None,
    ):
        # A callable so retrieval always sees the engine's current index after a reload
        self._index_provider = index_provider
        self._embeddings = embeddings
        self._vector_store = vector_store

    async def retrieve(self, source: str, state: PipelineState, top_k: int) -> dict:
        """Return {"source", "matches", "context"} for the given source."""
        entries = self._index_provider().get(source)
        if not entries:
            raise NotFoundError(f'Knowledge source "{source}" is not configured or empty.')

        query_tokens = tokenize(state.query_text(" "))
        query_embedding = await self._embed_query(state)

        matches = await self._search_vector_store(source, query_embedding, top_k)
        if matches:
            logger.info(f"Retriever used vector store for '{source}': {len(matches)} hits")
        else:
            matches = rank_entries(query_tokens, entries, query_embedding, top_k)
            logger.info(
                f"Retriever scored '{source}' locally: {len(matches)} of {len(entries)} entries "
                f"(semantic={'yes' if query_embedding else 'no'})"
            )

        return {
            "source": source,
            "matches": [match.to_dict() for match in matches],
            "context": _build_context(matches),
        }

    async def _embed_query(self, state: PipelineState) -> Optional[list[float]]:
        text = state.query_text("\n")
        if self._embeddings is None or not text.strip():
            return None
        try:
            return await self._embeddings.embed(text)
        except Exception as e:
            logger.warning(f"Vectorization failed for retriever-query: {e}")
            return None

    async def _search_vector_store(
        self,
        source: str,
        query_embedding: Optional[list[float]],
        top_k: int,
    ) -> list[ScoredMatch]:
        if not query_embedding or self._vector_store is None or not self._vector_store.is_enabled():
            return []
        try:
            hits = await self._vector_store.semantic_search(source, query_embedding, top_k)
        except Exception as e:
            logger.warning(f"Vector similarity search failed for '{source}': {e}")
            return []
        return [_vector_hit_to_match(rank, hit) for rank, hit in enumerate(hits, start=1)]
