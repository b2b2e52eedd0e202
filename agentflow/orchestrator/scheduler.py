"""
Pipeline scheduler - execution order for a pipeline's nodes.

Kahn's algorithm over an indegree/adjacency table, iterative so malformed
graphs cannot recurse or loop forever:
  - no edges              -> declaration order
  - DAG                   -> topological order, ties broken by declaration order
  - cycle / unreachable   -> the unordered remainder appended in declaration
                             order, with a warning
Ids that appear only in edges are tolerated as extra vertices; the executor
skips them because they have no node.
"""

import logging
from collections import deque

from agentflow.orchestrator.schemas import PipelineDefinition

logger = logging.getLogger(__name__)


def build_execution_order(pipeline: PipelineDefinition) -> list[str]:
    """Return node ids in execution order. Never raises on a malformed graph."""
    declared = [node.id for node in pipeline.nodes]
    if not pipeline.edges:
        return declared

    indegree: dict[str, int] = {node_id: 0 for node_id in declared}
    adjacency: dict[str, list[str]] = {node_id: [] for node_id in declared}

    for edge in pipeline.edges:
        indegree[edge.to] = indegree.get(edge.to, 0) + 1
        adjacency.setdefault(edge.from_, []).append(edge.to)

    queue = deque(node_id for node_id in declared if indegree[node_id] == 0)
    order: list[str] = []
    while queue:
        current = queue.popleft()
        order.append(current)
        for neighbor in adjacency.get(current, []):
            indegree[neighbor] -= 1
            if indegree[neighbor] == 0:
                queue.append(neighbor)

    scheduled = set(order)
    remaining = [node_id for node_id in declared if node_id not in scheduled]
    if remaining:
        logger.warning(
            f'Pipeline "{pipeline.name}" contains disconnected or cyclic nodes '
            f"({', '.join(remaining)}). Executing remaining nodes in declaration order."
        )
        order.extend(remaining)

    return order
