"""Knowledge layer: tokenization, indexing, hybrid scoring, retrieval, vector store."""

__all__ = [
    "embeddings",
    "indexer",
    "retriever",
    "scorer",
    "tokenizer",
    "vector_store",
]
