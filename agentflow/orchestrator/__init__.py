"""Core pipeline engine: scheduler, interpolation, LangGraph executor, model client, schemas."""

__all__ = [
    "engine",
    "graph",
    "interpolation",
    "llm_client",
    "scheduler",
    "schemas",
]
