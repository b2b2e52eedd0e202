"""
LangGraph-based pipeline executor.

The scheduler fixes the node order once per run; the builder then compiles a
linear StateGraph in that order so nodes run strictly one after another,
each seeing the PipelineState mutations of the nodes before it:

  step_0 -> step_1 -> ... -> step_n -> END

Node configs are resolved into their typed variants before the graph is
compiled, so an invalid pipeline is rejected before any node runs.
"""

import logging
from typing import Any, TypedDict

from langgraph.graph import END, StateGraph

from agentflow.knowledge.retriever import KnowledgeRetriever
from agentflow.orchestrator.interpolation import interpolate
from agentflow.orchestrator.scheduler import build_execution_order
from agentflow.orchestrator.schemas import (
    LlmNodeConfig, NodeConfig, PipelineDefinition, PipelineNode,
    RetrieverNodeConfig, ToolNodeConfig, resolve_node_config,
)
from agentflow.shared.constants import MIN_GRAPH_RECURSION_LIMIT
from agentflow.shared.errors import InvalidConfigurationError, PipelineError, UpstreamError
from agentflow.shared.interfaces import IModelInvoker, IToolRegistry
from agentflow.shared.models import InvocationOptions, PipelineState, PipelineStep, to_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Graph State: typed dict that flows through every node
# ---------------------------------------------------------------------------

class PipelineGraphState(TypedDict, total=False):
    """State that flows through the LangGraph nodes."""
    pipeline_state: PipelineState  # Per-run variables, context and intent
    steps: list                    # list[PipelineStep], one per executed node


class CompiledPipeline:
    """A pipeline compiled for one run: ordered executable nodes plus the graph."""

    def __init__(self, pipeline: PipelineDefinition, node_ids: list[str], graph):
        self.pipeline = pipeline
        self.node_ids = node_ids
        self._graph = graph

    async def run(self, state: PipelineState) -> PipelineGraphState:
        initial: PipelineGraphState = {"pipeline_state": state, "steps": []}
        if self._graph is None:
            return initial
        recursion_limit = max(MIN_GRAPH_RECURSION_LIMIT, len(self.node_ids) + 1)
        return await self._graph.ainvoke(initial, config={"recursion_limit": recursion_limit})


# ---------------------------------------------------------------------------
# Graph Builder - creates the compiled LangGraph for a pipeline
# ---------------------------------------------------------------------------

class PipelineGraphBuilder:
    """
    Builds a linear LangGraph StateGraph from a pipeline definition.

    Each graph node wraps one pipeline node and dispatches on its typed
    config: LlmNodeConfig, RetrieverNodeConfig or ToolNodeConfig.
    """

    def __init__(
        self,
        llm: IModelInvoker,
        retriever: KnowledgeRetriever,
        tools: IToolRegistry,
    ):
        self._llm = llm
        self._retriever = retriever
        self._tools = tools

    def build(self, pipeline: PipelineDefinition) -> CompiledPipeline:
        """Order, validate and compile the pipeline. Raises InvalidConfigurationError."""
        order = build_execution_order(pipeline)

        resolved: list[tuple[PipelineNode, NodeConfig]] = []
        for node_id in order:
            node = pipeline.get_node(node_id)
            if node is None:
                logger.warning(
                    f'Node "{node_id}" was referenced in pipeline edges but not found in nodes array.'
                )
                continue
            config = resolve_node_config(node)
            self._validate(node, config)
            resolved.append((node, config))

        node_ids = [node.id for node, _ in resolved]
        if not resolved:
            return CompiledPipeline(pipeline, node_ids, None)

        graph = StateGraph(PipelineGraphState)
        names = [f"step_{index}" for index in range(len(resolved))]
        for name, (node, config) in zip(names, resolved):
            graph.add_node(name, self._make_step(node, config))

        graph.set_entry_point(names[0])
        for current, following in zip(names, names[1:]):
            graph.add_edge(current, following)
        graph.add_edge(names[-1], END)

        logger.info(f'Compiled pipeline "{pipeline.name}": {" -> ".join(node_ids)}')
        return CompiledPipeline(pipeline, node_ids, graph.compile())

    def _validate(self, node: PipelineNode, config: NodeConfig) -> None:
        """Reject config errors up front so a broken pipeline spends no model calls."""
        if isinstance(config, RetrieverNodeConfig) and not config.source:
            raise InvalidConfigurationError(
                f'Retriever node "{node.id}" is missing a source configuration.'
            )
        if isinstance(config, ToolNodeConfig):
            if not config.tool_name:
                raise InvalidConfigurationError(
                    f"Tool node \"{node.id}\" is missing 'toolName' config."
                )
            if not self._tools.is_registered(config.tool_name):
                raise InvalidConfigurationError(
                    f'Unknown tool name "{config.tool_name}" requested by node "{node.id}".'
                )

    def _make_step(self, node: PipelineNode, config: NodeConfig):
        async def _step(graph_state: PipelineGraphState) -> PipelineGraphState:
            state = graph_state["pipeline_state"]
            output = await self._execute(node, config, state)

            state.record_output(node.id, output)
            step = PipelineStep(
                node_id=node.id,
                type=node.type,
                output=output,
                metadata={
                    "model": node.config.get("model"),
                    "temperature": node.config.get("temperature"),
                },
            )
            logger.info(f"Node {node.id} ({node.type}) completed: {state.last_output[:120]}")
            return {"pipeline_state": state, "steps": [*graph_state.get("steps", []), step]}

        return _step

    async def _execute(self, node: PipelineNode, config: NodeConfig, state: PipelineState) -> Any:
        if isinstance(config, LlmNodeConfig):
            return await self._llm_node(node, config, state)
        if isinstance(config, RetrieverNodeConfig):
            return await self._retriever_node(config, state)
        if isinstance(config, ToolNodeConfig):
            return await self._tool_node(node, config, state)
        raise InvalidConfigurationError(
            f'Unsupported pipeline node type "{node.type}" on node "{node.id}".'
        )

    # ── Node implementations ─────────────────────────────

    async def _llm_node(self, node: PipelineNode, config: LlmNodeConfig, state: PipelineState) -> str:
        prompt = interpolate(config.prompt, state)
        options = InvocationOptions(
            model=config.model,
            temperature=config.temperature,
            max_output_tokens=config.max_output_tokens,
        )
        try:
            output = (await self._llm.invoke(prompt, options) or "").strip()
        except PipelineError:
            raise
        except Exception as e:
            logger.error(f"Model invocation failed for node {node.id}: {e}")
            raise UpstreamError(f'Model invocation failed for node "{node.id}": {e}') from e

        if node.is_intent_node:
            state.intent = output
        if not state.context:
            state.context = output
        return output

    async def _retriever_node(self, config: RetrieverNodeConfig, state: PipelineState) -> dict:
        output = await self._retriever.retrieve(config.source, state, config.top_k)
        if output.get("context"):
            state.context = output["context"]
        return output

    async def _tool_node(self, node: PipelineNode, config: ToolNodeConfig, state: PipelineState) -> Any:
        query = f"{state.input} {state.intent}".lower()
        output = await self._tools.invoke(config.tool_name, query)
        if isinstance(output, (str, dict, list)):
            block = f"Tool Output ({node.id}): {to_text(output)}"
            state.context = f"{state.context}\n\n{block}" if state.context else block
        return output
