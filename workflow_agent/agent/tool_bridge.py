"""
Tool Bridge

Shared helper between the pattern handlers and the external tool
registry: decides whether a step should be tool-augmented, translates
business tools into LLM tool definitions and executes the tool calls a
model requests.
"""

import logging
from typing import List, Optional, Sequence

from workflow_agent.agent.contracts import ToolRegistry
from workflow_agent.models.tools import BusinessTool, ToolCall, ToolCallResult, ToolDefinition

logger = logging.getLogger(__name__)

# Lower-case cues that a step needs business data
BUSINESS_KEYWORDS = (
    "analyze",
    "analysis",
    "data",
    "revenue",
    "sales",
    "profit",
    "seo",
    "product",
    "inventory",
    "performance",
    "metrics",
    "report",
    "calculate",
    "list",
    "show",
    "get",
    "find",
    "search",
    "marketing",
    "campaign",
    "email",
    "optimization",
    "score",
    "rating",
    "comparison",
)


class ToolBridge:
    """Connects pattern handlers to the tool registry."""

    def __init__(self, tool_registry: Optional[ToolRegistry] = None):
        self.tool_registry = tool_registry

    async def available_tools(self) -> List[BusinessTool]:
        """List non-deprecated tools; registry failures yield an empty list."""
        if self.tool_registry is None:
            return []
        try:
            tools = await self.tool_registry.list_available_tools()
        except Exception as e:
            logger.warning(f"Failed to list available tools: {e}")
            return []
        return [tool for tool in tools if not tool.deprecated]

    @staticmethod
    def should_use_tools(step_text: str, available_tools: Sequence[BusinessTool]) -> bool:
        if not available_tools:
            return False
        text = step_text.lower()
        return any(keyword in text for keyword in BUSINESS_KEYWORDS)

    @staticmethod
    def to_tool_definitions(tools: Sequence[BusinessTool]) -> List[ToolDefinition]:
        return [
            ToolDefinition(
                name=tool.id,
                description=tool.description or tool.name,
                parameters=tool.input_schema,
            )
            for tool in tools
        ]

    async def execute_tool_calls(self, calls: Sequence[ToolCall]) -> List[ToolCallResult]:
        """Execute requested tool calls one after another.

        A failing call produces an unsuccessful record instead of aborting
        the batch. Results are returned in request order.
        """
        results: List[ToolCallResult] = []
        for call in calls:
            if self.tool_registry is None:
                results.append(
                    ToolCallResult(
                        tool_call_id=call.id,
                        success=False,
                        error="No tool registry available",
                    )
                )
                continue

            try:
                result = await self.tool_registry.execute_tool(call.name, call.parameters)
                results.append(
                    ToolCallResult(
                        tool_call_id=call.id,
                        result=result.data,
                        success=result.success,
                        error=result.error,
                    )
                )
            except Exception as e:
                logger.warning(
                    f"Tool call {call.name} failed: {e}",
                    extra={"tool_call_id": call.id, "tool": call.name},
                )
                results.append(
                    ToolCallResult(
                        tool_call_id=call.id,
                        success=False,
                        error=str(e) or type(e).__name__,
                    )
                )
        return results


__all__ = ["BUSINESS_KEYWORDS", "ToolBridge"]
