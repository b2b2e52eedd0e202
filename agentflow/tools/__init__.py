"""
Tool backends for tool nodes.

Tool nodes name a tool; the registry maps that name to an async handler that
receives the run's query (input + intent) and returns a structured result or
a plain-text "no match" answer.
"""

from agentflow.tools.registry import ToolDefinition, ToolRegistry, create_default_registry

__all__ = [
    "ToolDefinition",
    "ToolRegistry",
    "create_default_registry",
]
