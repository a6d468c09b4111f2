"""
Shared Pattern Logic

Building blocks reused by every built-in pattern handler:

- ``StepRunner`` executes a single step against the first LLM provider,
  optionally tool-augmented through the tool bridge.
- ``generate_next_step_actions`` derives follow-up actions from text cues.
- ``aggregate_responses`` merges several responses into one.
- ``StepLog`` records the ordered step log kept in execution metadata.
"""

import json
import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, FrozenSet, List, Optional, Sequence

from workflow_agent.agent.contracts import LLMProviderRegistry
from workflow_agent.agent.errors import AgentError, ErrorCode
from workflow_agent.agent.registry import WorkflowHandler
from workflow_agent.agent.tool_bridge import ToolBridge
from workflow_agent.core.llm_client import (
    BaseLLMProvider,
    LLMResponse,
    TextGenerationRequest,
    ToolGenerationRequest,
)
from workflow_agent.models.conversation import (
    ActionType,
    ConversationContext,
    Message,
    MessageRole,
    NextStepAction,
)
from workflow_agent.models.tools import BusinessTool
from workflow_agent.models.workflow import (
    AgentResponse,
    ExecutionMetadata,
    PatternType,
    ResponseMetadata,
    WorkflowResult,
    WorkflowStep,
)

logger = logging.getLogger(__name__)

HISTORY_WINDOW = 3
MAX_NEXT_ACTIONS = 4
STEP_CONFIDENCE = 0.8

STEP_PROMPT = (
    "You are a helpful business assistant. "
    "Execute this step clearly and provide 2-4 specific next actions."
)
TOOL_STEP_PROMPT = (
    "You are a helpful business assistant. Use the available tools when they can help "
    "answer the user's request. Execute this step clearly and provide 2-4 specific next actions."
)
ROUTED_TOOL_PROMPT = (
    "You are a helpful business assistant. Use the available tools when they can help "
    "answer the user's request. Provide a comprehensive response and 2-4 specific next actions."
)
TOOL_FOLLOW_UP_PROMPT = "Based on the tool results above, provide a comprehensive response to the user."

# (cue words, action id, title, description, action type)
ACTION_CUES = (
    (
        ("product", "inventory"),
        "analyze_product",
        "Analyze Product Performance",
        "Get detailed insights about product performance",
        ActionType.ANALYZE_PRODUCT,
    ),
    (
        ("seo", "optimization"),
        "open_seo_optimizer",
        "Open SEO Optimizer",
        "Optimize your product for search engines",
        ActionType.OPEN_SEO_OPTIMIZER,
    ),
    (
        ("marketing", "campaign"),
        "create_campaign",
        "Create Marketing Campaign",
        "Set up a new marketing campaign",
        ActionType.CREATE_CAMPAIGN,
    ),
    (
        ("analytics", "performance"),
        "view_analytics",
        "View Analytics Dashboard",
        "Check your business performance metrics",
        ActionType.VIEW_ANALYTICS,
    ),
)


def generate_next_step_actions(content: str) -> List[NextStepAction]:
    """Derive up to four follow-up actions from cues in ``content``."""
    text = content.lower()
    actions = [
        NextStepAction(id=action_id, title=title, description=description, action_type=action_type)
        for cues, action_id, title, description, action_type in ACTION_CUES
        if any(cue in text for cue in cues)
    ]

    if len(actions) < 2:
        actions.append(
            NextStepAction(
                id="ask_question",
                title="Ask Another Question",
                description="Get more help with your business",
                action_type=ActionType.ASK_QUESTION,
            )
        )
    return actions[:MAX_NEXT_ACTIONS]


def aggregate_responses(
    responses: Sequence[AgentResponse],
    pattern: PatternType = PatternType.PARALLEL_FANOUT,
) -> AgentResponse:
    """Merge responses into a numbered list.

    Raises:
        AgentError: NO_RESPONSES_TO_AGGREGATE when ``responses`` is empty
    """
    if not responses:
        raise AgentError(
            code=ErrorCode.NO_RESPONSES_TO_AGGREGATE,
            message="No responses available for aggregation",
            recoverable=False,
        )

    if len(responses) == 1:
        return responses[0]

    content = "\n\n".join(f"{i + 1}. {r.content}" for i, r in enumerate(responses))

    seen = set()
    actions: List[NextStepAction] = []
    for response in responses:
        for action in response.next_step_actions:
            if action.id not in seen:
                seen.add(action.id)
                actions.append(action)

    return AgentResponse(
        content=content,
        next_step_actions=actions[:MAX_NEXT_ACTIONS],
        metadata=ResponseMetadata(
            processing_time=max(r.metadata.processing_time for r in responses),
            provider="aggregated",
            workflow=pattern,
            confidence=sum(r.metadata.confidence for r in responses) / len(responses),
        ),
    )


def summarize(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


@dataclass
class PendingStep:
    result: Any = None


class StepLog:
    """Ordered log of the steps one handler run went through."""

    def __init__(self, pattern: PatternType):
        self.pattern = pattern
        self.steps: List[WorkflowStep] = []

    @contextmanager
    def step(self, step_type: str):
        pending = PendingStep()
        start_time = datetime.now()
        try:
            yield pending
        finally:
            self.steps.append(
                WorkflowStep(
                    id=f"{self.pattern.value}-{len(self.steps) + 1}",
                    type=step_type,
                    start_time=start_time,
                    end_time=datetime.now(),
                    result=pending.result,
                )
            )


class StepRunner:
    """Runs single steps against the first available LLM provider."""

    def __init__(self, llm_registry: LLMProviderRegistry, tool_bridge: Optional[ToolBridge] = None):
        self.llm_registry = llm_registry
        self.tool_bridge = tool_bridge or ToolBridge()

    async def first_provider(self) -> Optional[BaseLLMProvider]:
        providers = await self.llm_registry.list_providers()
        return providers[0] if providers else None

    async def require_provider(self, step: str) -> BaseLLMProvider:
        provider = await self.first_provider()
        if provider is None:
            raise AgentError(
                code=ErrorCode.LLM_PROVIDER_UNAVAILABLE,
                message="No LLM provider available for step execution",
                details={"step": step},
                recoverable=True,
            )
        return provider

    @staticmethod
    def build_messages(system_prompt: str, context: ConversationContext, step: str) -> List[Message]:
        return [
            Message(role=MessageRole.SYSTEM, content=system_prompt),
            *context.recent_history(HISTORY_WINDOW),
            Message(role=MessageRole.USER, content=step),
        ]

    async def generate_lines(self, system_prompt: str, task: str) -> List[str]:
        """Ask the model for one item per line.

        Falls back to ``[task]`` when no provider is available, the call
        fails, or fewer than two lines come back.
        """
        provider = await self.first_provider()
        if provider is None:
            return [task]

        request = TextGenerationRequest(
            messages=[
                Message(role=MessageRole.SYSTEM, content=system_prompt),
                Message(role=MessageRole.USER, content=f"Task: {task}"),
            ]
        )
        try:
            response = await provider.generate_text(request)
        except Exception as e:
            logger.warning(f"Task breakdown failed, using the task as a single item: {e}")
            return [task]

        lines = [line for line in response.content.split("\n") if line.strip()]
        return lines if len(lines) > 1 else [task]

    async def execute_step(
        self,
        step: str,
        context: ConversationContext,
        pattern: PatternType = PatternType.SEQUENTIAL_CHAINING,
    ) -> AgentResponse:
        """Execute one step, using tools when the step calls for them.

        Raises:
            AgentError: LLM_PROVIDER_UNAVAILABLE when no provider is registered
        """
        start_time = time.perf_counter()
        provider = await self.require_provider(step)

        available_tools = await self.tool_bridge.available_tools()
        tool_definitions = self.tool_bridge.to_tool_definitions(available_tools)
        use_tools = self.tool_bridge.should_use_tools(step, available_tools)

        logger.debug(
            f"Processing step '{summarize(step, 50)}'",
            extra={
                "available_tools": len(available_tools),
                "use_tools": use_tools,
                "provider_supports_tools": provider.supports_tools,
            },
        )

        if use_tools and tool_definitions and provider.supports_tools:
            messages = self.build_messages(TOOL_STEP_PROMPT, context, step)
            response, _ = await self._generate_with_tools(provider, messages, available_tools)
        else:
            messages = self.build_messages(STEP_PROMPT, context, step)
            response = await provider.generate_text(TextGenerationRequest(messages=messages))

        return AgentResponse(
            content=response.content,
            next_step_actions=generate_next_step_actions(step),
            metadata=ResponseMetadata(
                processing_time=(time.perf_counter() - start_time) * 1000,
                provider=provider.name,
                workflow=pattern,
                confidence=STEP_CONFIDENCE,
                tools_used=bool(use_tools and tool_definitions),
            ),
        )

    async def execute_step_with_tools(
        self,
        step: str,
        context: ConversationContext,
        available_tools: Sequence[BusinessTool],
        pattern: PatternType = PatternType.ROUTING,
    ) -> AgentResponse:
        """Execute one step with tools advertised regardless of provider support."""
        start_time = time.perf_counter()
        provider = await self.require_provider(step)

        messages = self.build_messages(ROUTED_TOOL_PROMPT, context, step)
        response, calls_executed = await self._generate_with_tools(provider, messages, available_tools)

        return AgentResponse(
            content=response.content,
            next_step_actions=generate_next_step_actions(step),
            metadata=ResponseMetadata(
                processing_time=(time.perf_counter() - start_time) * 1000,
                provider=provider.name,
                workflow=pattern,
                confidence=STEP_CONFIDENCE,
                tools_used=True,
                tool_calls_executed=calls_executed,
            ),
        )

    async def _generate_with_tools(
        self,
        provider: BaseLLMProvider,
        messages: List[Message],
        available_tools: Sequence[BusinessTool],
    ):
        """Tool-augmented generation followed by at most one follow-up call.

        Returns:
            (final LLM response, number of tool calls executed)
        """
        request = ToolGenerationRequest(
            messages=messages,
            tools=self.tool_bridge.to_tool_definitions(available_tools),
            tool_choice="auto",
        )
        tool_response = await provider.generate_with_tools(request)
        if not tool_response.tool_calls:
            return tool_response, 0

        logger.info(f"Executing {len(tool_response.tool_calls)} tool calls")
        results = await self.tool_bridge.execute_tool_calls(tool_response.tool_calls)

        follow_up = [
            *messages,
            Message(
                role=MessageRole.ASSISTANT,
                content=tool_response.content,
                metadata={"tool_calls": [call.model_dump() for call in tool_response.tool_calls]},
            ),
            *(
                Message(
                    role=MessageRole.TOOL,
                    content=json.dumps(result.model_dump(), default=str),
                    metadata={"tool_call_id": result.tool_call_id},
                )
                for result in results
            ),
            Message(role=MessageRole.USER, content=TOOL_FOLLOW_UP_PROMPT),
        ]
        final: LLMResponse = await provider.generate_text(TextGenerationRequest(messages=follow_up))
        return final, len(tool_response.tool_calls)


class PatternHandler(WorkflowHandler):
    """Base for the built-in handlers; shares one step runner."""

    pattern: PatternType
    capabilities: FrozenSet[str] = frozenset()

    def __init__(self, runner: StepRunner):
        self.runner = runner

    def required_capabilities(self) -> FrozenSet[str]:
        return self.capabilities

    def new_log(self) -> StepLog:
        return StepLog(self.pattern)

    @staticmethod
    def build_result(
        response: AgentResponse, context: ConversationContext, log: StepLog
    ) -> WorkflowResult:
        return WorkflowResult(
            response=response,
            updated_context=context,
            execution_metadata=ExecutionMetadata(steps=log.steps),
        )


__all__ = [
    "HISTORY_WINDOW",
    "MAX_NEXT_ACTIONS",
    "STEP_CONFIDENCE",
    "generate_next_step_actions",
    "aggregate_responses",
    "StepLog",
    "StepRunner",
    "PatternHandler",
]
