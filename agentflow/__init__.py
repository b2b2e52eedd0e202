"""agentflow - configurable LLM/retriever/tool pipeline engine with hybrid knowledge retrieval."""

__version__ = "0.1.0"
