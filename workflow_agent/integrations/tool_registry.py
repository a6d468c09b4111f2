"""
In-memory business tool registry.

Tools are async callables taking keyword parameters. Unknown tools and
raising tools produce an unsuccessful ``ToolResult`` rather than an
exception.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from workflow_agent.agent.contracts import ToolRegistry
from workflow_agent.models.tools import BusinessTool, ToolResult

logger = logging.getLogger(__name__)

ToolFunction = Callable[..., Awaitable[Any]]


class InMemoryToolRegistry(ToolRegistry):
    def __init__(self) -> None:
        self._tools: Dict[str, BusinessTool] = {}
        self._functions: Dict[str, ToolFunction] = {}

    def register(
        self,
        tool_id: str,
        function: ToolFunction,
        description: str = "",
        category: str = "general",
        input_schema: Optional[Dict[str, Any]] = None,
        deprecated: bool = False,
    ) -> BusinessTool:
        tool = BusinessTool(
            id=tool_id,
            name=tool_id.replace("_", " ").title(),
            description=description,
            category=category,
            input_schema=input_schema or {"type": "object", "properties": {}},
            deprecated=deprecated,
        )
        self._tools[tool_id] = tool
        self._functions[tool_id] = function
        logger.debug(f"Registered tool {tool_id}")
        return tool

    def unregister(self, tool_id: str) -> None:
        self._tools.pop(tool_id, None)
        self._functions.pop(tool_id, None)

    async def list_available_tools(self) -> List[BusinessTool]:
        return list(self._tools.values())

    async def execute_tool(self, name: str, parameters: Dict[str, Any]) -> ToolResult:
        function = self._functions.get(name)
        if function is None:
            return ToolResult(success=False, error=f"Unknown tool: {name}")

        try:
            data = await function(**parameters)
        except Exception as e:
            logger.warning(f"Tool {name} raised: {e}")
            return ToolResult(success=False, error=str(e) or type(e).__name__)
        return ToolResult(success=True, data=data)
