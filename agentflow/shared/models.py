"""
Domain models for agentflow.
Pure data classes with no external dependencies (Clean Architecture inner layer).
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from .constants import DEFAULT_PRIORITY


def to_text(value: Any) -> str:
    """Render a node output as text: strings as-is, structures as compact JSON."""
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, bool)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


@dataclass
class PipelineState:
    """Per-run mutable context threaded across node executions.

    Owned by exactly one run. `variables` maps node ids (and their lowercased
    form) to the raw output each node produced.
    """
    input: str
    context: str = ""
    intent: str = ""
    last_output: str = ""
    variables: dict = field(default_factory=dict)

    def record_output(self, node_id: str, output: Any) -> None:
        """Store a node's output as the latest output and as a named variable."""
        self.last_output = "" if output is None else to_text(output)
        self.variables[node_id] = output
        self.variables[node_id.lower()] = output

    def lookup_variable(self, token: str) -> Any:
        """Case-insensitive variable lookup: exact key first, then lowercased."""
        if token in self.variables and self.variables[token] is not None:
            return self.variables[token]
        return self.variables.get(token.lower())

    def query_text(self, separator: str = " ") -> str:
        """Join input and intent (non-empty parts only) for retrieval/tool queries."""
        return separator.join(part for part in (self.input, self.intent) if part)


@dataclass
class IndexedKnowledgeEntry:
    """A knowledge entry with derived tokens and an optional embedding.

    Built once per configuration load and shared read-only across runs.
    """
    title: str
    content: str
    id: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[list] = None
    keywords: Optional[list] = None
    priority: Optional[float] = None
    weight: Optional[float] = None
    tokens: frozenset = field(default_factory=frozenset)
    embedding: Optional[list] = None

    @property
    def effective_priority(self) -> float:
        if self.priority is not None:
            return self.priority
        if self.weight is not None:
            return self.weight
        return DEFAULT_PRIORITY

    @property
    def tag_count(self) -> int:
        return len(self.tags or [])

    @property
    def label(self) -> str:
        """Identifier used in logs and as the vector row id."""
        return self.id or self.title


@dataclass
class ScoredMatch:
    """A ranked retrieval result. Produced per call, never persisted."""
    rank: int
    id: Optional[str]
    title: str
    content: str
    score: float
    summary: Optional[str] = None
    tags: Optional[list] = None
    keywords: Optional[list] = None

    def to_dict(self) -> dict:
        return {
            "rank": self.rank,
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "summary": self.summary,
            "tags": self.tags,
            "keywords": self.keywords,
            "score": self.score,
        }


@dataclass
class VectorSearchResult:
    """A hit returned by a vector store adapter, already ranked."""
    id: str
    title: str
    content: str
    score: float
    metadata: dict = field(default_factory=dict)


@dataclass
class InvocationOptions:
    """Per-node overrides for a model invocation."""
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None


@dataclass
class PipelineStep:
    """Trace record of one executed node."""
    node_id: str
    type: str
    output: Any
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "nodeId": self.node_id,
            "type": self.type,
            "output": self.output,
            "metadata": self.metadata,
        }


@dataclass
class PipelineRunResult:
    """Outcome of a completed pipeline run, consumed by the API layer."""
    pipeline_name: str
    final_output: str
    intent: str = ""
    context: str = ""
    steps: list = field(default_factory=list)  # list[PipelineStep]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "pipelineName": self.pipeline_name,
            "finalOutput": self.final_output,
            "intent": self.intent,
            "context": self.context,
            "steps": [step.to_dict() for step in self.steps],
            "timestamp": self.timestamp.isoformat(),
        }
