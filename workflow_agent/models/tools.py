"""
Tool Schemas

Business tools advertised to the LLM, tool calls requested by the model
and the per-call results fed back into the conversation.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class BusinessTool(BaseModel):
    """A tool exposed by the tool registry."""

    id: str = Field(..., description="Tool identifier, used as the LLM tool name")
    name: str = Field(default="")
    description: str = Field(default="")
    category: str = Field(default="general")
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}
    )
    deprecated: bool = False


class ToolDefinition(BaseModel):
    """Tool description in the shape LLM providers expect."""

    name: str
    description: str = ""
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Outcome reported by the tool registry."""

    success: bool
    data: Any = None
    error: Optional[str] = None


class ToolCallResult(BaseModel):
    """Per-call record returned by the tool bridge."""

    tool_call_id: str
    result: Any = None
    success: bool
    error: Optional[str] = None
