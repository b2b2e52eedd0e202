"""
Named constants for the pipeline engine and retrieval scorer.

Tunable weights and defaults live here so the scoring and execution code
reads as formulas rather than magic numbers.
"""

# ── Pipeline Execution ───────────────────────────────────────

DEFAULT_PROMPT_TEMPLATE = "{input}"
"""Prompt used by an llm node that declares no prompt of its own."""

INTENT_ROLE = "intent"
"""Node role whose output is stored as the run's intent."""

MIN_GRAPH_RECURSION_LIMIT = 25
"""Lower bound for the LangGraph recursion limit of a compiled pipeline."""

# ── Retrieval ────────────────────────────────────────────────

DEFAULT_TOP_K = 3
"""Number of knowledge matches returned when a retriever sets no top_k."""

TAG_WEIGHT = 0.1
"""Lexical bonus contributed by each tag on a knowledge entry."""

LEXICAL_BLEND_WEIGHT = 0.25
"""Share of the lexical score added to the semantic score when blending."""

DEFAULT_PRIORITY = 1.0
"""Priority assumed for entries that declare neither priority nor weight."""

NO_KNOWLEDGE_MESSAGE = "No relevant knowledge found in the configured knowledge base."
"""Context returned by a retriever that produced no matches."""

# ── Model Invocation ─────────────────────────────────────────

LLM_CALL_TIMEOUT_SECONDS = 120
"""Max time for a single model call."""

# ── Embeddings ───────────────────────────────────────────────

DEFAULT_EMBEDDING_DIMENSIONS = 256
"""Vector size produced by the hashing embedding provider."""
