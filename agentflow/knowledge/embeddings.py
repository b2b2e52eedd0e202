"""
Embedding providers.

Primary:  deterministic signed feature hashing over tokens (offline, no model).
Optional: sentence-transformers local model (install the `embeddings` extra).
"""

import asyncio
import hashlib
import logging
from threading import Lock
from typing import Optional

from agentflow.knowledge.tokenizer import tokenize
from agentflow.shared.config import AppConfig, EmbeddingBackend
from agentflow.shared.constants import DEFAULT_EMBEDDING_DIMENSIONS
from agentflow.shared.interfaces import IEmbeddingProvider

logger = logging.getLogger(__name__)


class HashEmbeddingProvider(IEmbeddingProvider):
    """Bag-of-tokens vectors: each token adds +/-1 to a hashed bucket, then L2-normalized."""

    def __init__(self, dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS):
        if dimensions <= 0:
            raise ValueError("dimensions must be positive")
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    async def embed(self, text: str) -> Optional[list[float]]:
        tokens = tokenize(text)
        if not tokens:
            return None

        values = [0.0] * self._dimensions
        for token in tokens:
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            idx = int.from_bytes(digest[:4], "big") % self._dimensions
            values[idx] += 1.0 if digest[4] % 2 == 0 else -1.0

        norm = sum(v * v for v in values) ** 0.5
        if norm == 0:
            return None
        return [v / norm for v in values]


class SentenceTransformerEmbeddingProvider(IEmbeddingProvider):
    """Local sentence-transformers model, loaded on first use."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self._model_name = model_name
        self._model = None
        self._lock = Lock()

    def _get_model(self):
        if self._model is None:
            with self._lock:
                if self._model is None:
                    from sentence_transformers import SentenceTransformer
                    self._model = SentenceTransformer(self._model_name)
                    logger.info(f"Embedder backend: sentence_transformers ({self._model_name})")
        return self._model

    def _encode(self, text: str) -> list[float]:
        vector = self._get_model().encode(
            [text],
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=True,
        )[0]
        return vector.tolist()

    async def embed(self, text: str) -> Optional[list[float]]:
        if not text or not text.strip():
            return None
        return await asyncio.to_thread(self._encode, text)


def create_embedding_provider(config: AppConfig) -> Optional[IEmbeddingProvider]:
    """
    Factory: create the embedding provider selected by configuration.

    Returns None for EMBEDDING_PROVIDER=none, which makes retrieval lexical-only.
    """
    backend = config.embedding.backend
    if backend == EmbeddingBackend.NONE:
        logger.info("Embeddings disabled - retrieval will be lexical-only")
        return None
    if backend == EmbeddingBackend.SENTENCE_TRANSFORMERS:
        logger.info(f"Using sentence-transformers embeddings (model: {config.embedding.local_model})")
        return SentenceTransformerEmbeddingProvider(config.embedding.local_model)

    logger.info(f"Using hashing embeddings ({config.embedding.dimensions} dimensions)")
    return HashEmbeddingProvider(config.embedding.dimensions)
