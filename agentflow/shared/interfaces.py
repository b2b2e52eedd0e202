"""
Abstract interfaces (Ports) for agentflow.
Following Dependency Inversion Principle - depend on abstractions, not concretions.

The engine consumes these collaborators; concrete adapters live in
orchestrator.llm_client, knowledge.embeddings, knowledge.vector_store and tools.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from .models import IndexedKnowledgeEntry, InvocationOptions, VectorSearchResult


class IModelInvoker(ABC):
    """Interface for large-language-model invocation."""

    @abstractmethod
    async def invoke(self, prompt: str, options: Optional[InvocationOptions] = None) -> str:
        """Send a prompt and return the model's text. Failures propagate."""


class IEmbeddingProvider(ABC):
    """Interface for text embedding."""

    @abstractmethod
    async def embed(self, text: str) -> Optional[list[float]]:
        """Return an embedding vector for the text, or None if unavailable."""


class IVectorStore(ABC):
    """Interface for a durable semantic index of knowledge entries."""

    @abstractmethod
    def is_enabled(self) -> bool:
        """Return True when the store can answer searches."""

    @abstractmethod
    async def sync_sources(self, index: dict[str, list[IndexedKnowledgeEntry]]) -> None:
        """Replace stored rows for every source in the index."""

    @abstractmethod
    async def semantic_search(
        self,
        source: str,
        embedding: list[float],
        top_k: int,
    ) -> list[VectorSearchResult]:
        """Return up to top_k hits, best first. Empty list on miss or unavailability."""


class IToolRegistry(ABC):
    """Interface for tool-calling backends."""

    @abstractmethod
    def is_registered(self, tool_name: str) -> bool:
        """Check whether a tool name can be invoked."""

    @abstractmethod
    async def invoke(self, tool_name: str, query: str) -> Any:
        """Run a tool. Returns a structured result or a plain-text "no match" string."""
