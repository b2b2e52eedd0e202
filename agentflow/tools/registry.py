"""
Tool Registry - allowlist of tools that pipeline tool nodes may call.

Pipelines can only reference tools registered here. An unknown tool name is
a broken pipeline definition, so invoking one raises
InvalidConfigurationError instead of degrading.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from agentflow.shared.errors import InvalidConfigurationError
from agentflow.shared.interfaces import IToolRegistry
from agentflow.tools.catalog import ProductCatalogTool, StoreLocatorTool

logger = logging.getLogger(__name__)

ToolHandler = Callable[[str], Awaitable[Any]]


@dataclass
class ToolDefinition:
    """A registered tool and the coroutine function that runs it."""
    name: str
    handler: ToolHandler
    description: str = ""


class ToolRegistry(IToolRegistry):
    """
    Central registry of callable tools.

    The executor checks this registry before running a tool node.
    Unregistered tools are always rejected.
    """

    def __init__(self):
        self._tools: dict[str, ToolDefinition] = {}

    def register(self, name: str, handler: ToolHandler, description: str = "") -> None:
        """Register (or replace) a tool under the given name."""
        if name in self._tools:
            logger.warning(f"Replacing registered tool: {name}")
        self._tools[name] = ToolDefinition(name=name, handler=handler, description=description)
        logger.info(f"Registered tool: {name}")

    def is_registered(self, tool_name: str) -> bool:
        return tool_name in self._tools

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        """Get a tool definition by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[ToolDefinition]:
        """Get all registered tools."""
        return list(self._tools.values())

    async def invoke(self, tool_name: str, query: str) -> Any:
        tool = self._tools.get(tool_name)
        if tool is None:
            logger.warning(f"BLOCKED: Unregistered tool '{tool_name}'")
            raise InvalidConfigurationError(f'Unknown tool name "{tool_name}".')
        logger.info(f"Invoking tool {tool_name} (query={query[:80]!r})")
        return await tool.handler(query)


def create_default_registry() -> ToolRegistry:
    """
    Factory: create the standard registry with the built-in catalog tools.

      - mock_product_api: product search over the parts catalog
      - mock_location_api: store locator over the branch list
    """
    registry = ToolRegistry()
    registry.register(
        name="mock_product_api",
        handler=ProductCatalogTool().search,
        description="Search the product catalog by name, description or category keyword",
    )
    registry.register(
        name="mock_location_api",
        handler=StoreLocatorTool().search,
        description="Find store branches by name, address, state or a generic location request",
    )
    return registry
