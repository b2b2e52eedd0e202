"""
Pydantic schemas for the pipeline configuration document and typed node configs.

The document is validated once per load. Node configs stay opaque dicts on
the loaded definition and are resolved into typed variants when a run is
built, so a broken node rejects the run that uses it rather than the whole
configuration.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from agentflow.shared.constants import DEFAULT_PROMPT_TEMPLATE, DEFAULT_TOP_K, INTENT_ROLE
from agentflow.shared.errors import InvalidConfigurationError


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


# ---------------------------------------------------------------------------
# Configuration document
# ---------------------------------------------------------------------------

class PipelineNode(BaseModel):
    """A single step of a pipeline; `config` shape depends on `type`."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    type: str
    role: Optional[str] = Field(default=None, description="Explicit node role, e.g. 'intent'")
    config: dict = Field(default_factory=dict)

    @field_validator("config", mode="before")
    @classmethod
    def _none_config_is_empty(cls, value):
        return {} if value is None else value

    @property
    def is_intent_node(self) -> bool:
        """Explicit role wins; without one, ids containing 'intent' qualify."""
        if self.role is not None:
            return self.role.lower() == INTENT_ROLE
        return INTENT_ROLE in self.id.lower()


class PipelineEdge(BaseModel):
    """Ordering constraint: `from_` runs before `to`."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_: str = Field(alias="from")
    to: str


class PipelineDefinition(BaseModel):
    """A named workflow of nodes and optional edges."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    nodes: list[PipelineNode] = Field(default_factory=list)
    edges: list[PipelineEdge] = Field(default_factory=list)

    @field_validator("edges", mode="before")
    @classmethod
    def _none_edges_is_empty(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def _unique_node_ids(self):
        seen = set()
        for node in self.nodes:
            if node.id in seen:
                raise ValueError(f'Duplicate node id "{node.id}" in pipeline "{self.name}"')
            seen.add(node.id)
        return self

    def get_node(self, node_id: str) -> Optional[PipelineNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None


class KnowledgeBaseEntry(BaseModel):
    """A raw knowledge entry as written in the configuration document."""
    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    title: str
    content: str
    summary: Optional[str] = None
    tags: Optional[list[str]] = None
    keywords: Optional[list[str]] = None
    priority: Optional[float] = None
    weight: Optional[float] = None


class PipelineConfigDocument(BaseModel):
    """Root of the pipeline configuration JSON."""
    model_config = ConfigDict(populate_by_name=True)

    pipelines: list[PipelineDefinition] = Field(default_factory=list)
    knowledge_bases: dict[str, list[KnowledgeBaseEntry]] = Field(
        default_factory=dict, alias="knowledgeBases",
    )

    @field_validator("pipelines", mode="before")
    @classmethod
    def _pipelines_must_be_list(cls, value):
        return value if isinstance(value, list) else []

    @field_validator("knowledge_bases", mode="before")
    @classmethod
    def _knowledge_bases_must_be_mapping(cls, value):
        if not isinstance(value, dict):
            return {}
        return {source: entries if isinstance(entries, list) else [] for source, entries in value.items()}


# ---------------------------------------------------------------------------
# Typed node configs (one variant per node type)
# ---------------------------------------------------------------------------

class LlmNodeConfig(BaseModel):
    """Config of an llm node."""
    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["llm"] = "llm"
    prompt: str = DEFAULT_PROMPT_TEMPLATE
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = Field(default=None, alias="maxOutputTokens", gt=0)

    @field_validator("prompt", mode="before")
    @classmethod
    def _default_prompt(cls, value):
        return DEFAULT_PROMPT_TEMPLATE if value is None else value

    @field_validator("temperature", mode="before")
    @classmethod
    def _numeric_temperature_only(cls, value):
        # Non-numeric temperatures are ignored and the default model is used
        return value if _is_number(value) else None


class RetrieverNodeConfig(BaseModel):
    """Config of a retriever node. `source` is checked by the executor."""
    kind: Literal["retriever"] = "retriever"
    source: Optional[str] = None
    top_k: int = Field(default=DEFAULT_TOP_K, ge=1)

    @model_validator(mode="before")
    @classmethod
    def _accept_top_k_spellings(cls, data):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        top_k = data.get("top_k")
        if not _is_number(top_k):
            top_k = data.get("topK")
        data["top_k"] = DEFAULT_TOP_K if top_k is None else top_k
        data.pop("topK", None)
        return data


class ToolNodeConfig(BaseModel):
    """Config of a tool node. `tool_name` is checked by the executor."""
    model_config = ConfigDict(populate_by_name=True)

    kind: Literal["tool"] = "tool"
    tool_name: Optional[str] = Field(default=None, alias="toolName")


NodeConfig = Union[LlmNodeConfig, RetrieverNodeConfig, ToolNodeConfig]

NODE_CONFIG_MODELS: dict[str, type] = {
    "llm": LlmNodeConfig,
    "retriever": RetrieverNodeConfig,
    "tool": ToolNodeConfig,
}


def resolve_node_config(node: PipelineNode) -> NodeConfig:
    """Map a node to its typed config variant, or reject it as invalid configuration."""
    model = NODE_CONFIG_MODELS.get(node.type)
    if model is None:
        raise InvalidConfigurationError(
            f'Unsupported pipeline node type "{node.type}" on node "{node.id}".'
        )
    raw = {k: v for k, v in node.config.items() if k != "kind"}
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        errors = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}" for err in e.errors()
        )
        raise InvalidConfigurationError(
            f'Invalid config on {node.type} node "{node.id}": {errors}'
        ) from e
