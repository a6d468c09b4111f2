"""
Collaborator Contracts

Narrow interfaces the workflow engine consumes from external services:
flow routing, tool execution and conversation-context persistence. The
LLM provider contracts live in ``workflow_agent.core.llm_client``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from workflow_agent.core.llm_client import BaseLLMProvider, LLMProviderRegistry
from workflow_agent.models.conversation import ConversationContext, UserInput
from workflow_agent.models.intent import (
    ConversationFlow,
    FlowParameters,
    FlowResult,
    IntentClassification,
)
from workflow_agent.models.tools import BusinessTool, ToolResult


class FlowRouter(ABC):
    """Classifies intents and executes catalogued conversation flows."""

    @abstractmethod
    async def classify_intent(
        self, user_input: UserInput, context: ConversationContext
    ) -> IntentClassification:
        pass

    @abstractmethod
    def select_flow(self, intent: IntentClassification) -> ConversationFlow:
        pass

    @abstractmethod
    async def execute_flow(self, flow: ConversationFlow, parameters: FlowParameters) -> FlowResult:
        pass


class ToolRegistry(ABC):
    """Registry of business tools the model may call."""

    @abstractmethod
    async def list_available_tools(self) -> List[BusinessTool]:
        pass

    @abstractmethod
    async def execute_tool(self, name: str, parameters: Dict[str, Any]) -> ToolResult:
        pass


class ContextManager(ABC):
    """Persists conversation context between requests."""

    @abstractmethod
    async def update_context(self, context: ConversationContext) -> None:
        pass


__all__ = [
    "BaseLLMProvider",
    "LLMProviderRegistry",
    "FlowRouter",
    "ToolRegistry",
    "ContextManager",
]
