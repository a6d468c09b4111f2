"""
Workflow Agent Orchestrator

Composes intent classification, pattern selection, workflow execution,
metrics and error recovery into a single entry point that always
produces a response.
"""

import logging
import time
from typing import Optional

from workflow_agent.agent.config import AgentConfig
from workflow_agent.agent.contracts import (
    ContextManager,
    FlowRouter,
    LLMProviderRegistry,
    ToolRegistry,
)
from workflow_agent.agent.error_handler import ErrorRecoveryCoordinator, create_fallback_response
from workflow_agent.agent.errors import AgentError, as_agent_error
from workflow_agent.agent.executor import WorkflowExecutor
from workflow_agent.agent.metrics import PatternMetricsTracker, StatusAggregator
from workflow_agent.agent.observability_hooks import ObservabilityHooks
from workflow_agent.agent.registry import HandlerRegistry, WorkflowHandler
from workflow_agent.agent.selector import select_pattern
from workflow_agent.agent.tool_bridge import ToolBridge
from workflow_agent.core.observability import ObservabilityConfig, ObservabilityManager, log_execution
from workflow_agent.models.conversation import ConversationContext, UserInput
from workflow_agent.models.workflow import (
    AgentResponse,
    AgentStatus,
    ErrorResponse,
    PatternMetrics,
    PatternType,
    WorkflowParameters,
    WorkflowResult,
)
from workflow_agent.patterns import StepRunner, builtin_handlers

logger = logging.getLogger(__name__)


class WorkflowAgent:
    """
    Main workflow agent.

    Request flow:
    1. Classify intent and select a flow (flow router)
    2. Select an execution pattern
    3. Execute the pattern's handler
    4. Persist the updated context
    Any failure along the way is turned into a recovery response.
    """

    def __init__(
        self,
        flow_router: FlowRouter,
        llm_registry: LLMProviderRegistry,
        context_manager: ContextManager,
        tool_registry: Optional[ToolRegistry] = None,
        config: Optional[AgentConfig] = None,
    ):
        """Initialize the workflow agent.

        Args:
            flow_router: Intent classification and flow execution
            llm_registry: Source of LLM providers (first one is used)
            context_manager: Conversation context persistence
            tool_registry: Optional business tool registry
            config: Agent configuration (defaults enable every built-in pattern)
        """
        self.flow_router = flow_router
        self.llm_registry = llm_registry
        self.context_manager = context_manager
        self.tool_registry = tool_registry
        self.config = config or AgentConfig.default()

        self.handlers = HandlerRegistry()
        self.metrics = PatternMetricsTracker()
        self.status = StatusAggregator()
        self.error_coordinator = ErrorRecoveryCoordinator()
        self.observability_hooks = ObservabilityHooks(
            enable_tracing=self.config.enable_tracing,
            enable_metrics=self.config.enable_metrics,
        )
        self.executor = WorkflowExecutor(self.handlers, self.metrics, self.observability_hooks)

        self.step_runner = StepRunner(llm_registry, ToolBridge(tool_registry))
        for pattern, handler in builtin_handlers(self.step_runner, flow_router).items():
            self.handlers.register(pattern, handler)

    async def initialize(self, config: Optional[AgentConfig] = None) -> None:
        """Start the agent and create metrics for every enabled pattern."""
        if config is not None:
            self.config = config
            self.observability_hooks.enable_tracing = config.enable_tracing
            self.observability_hooks.enable_metrics = config.enable_metrics

        if self.config.enable_logging:
            ObservabilityManager.initialize(
                ObservabilityConfig(
                    log_level=self.config.log_level,
                    json_logs=self.config.json_logs,
                    enable_tracing=self.config.enable_tracing,
                    enable_metrics=self.config.enable_metrics,
                )
            )

        for workflow in self.config.workflows:
            handler = self.handlers.get(workflow.type)
            if handler is not None and workflow.parameters:
                handler.configure(workflow.parameters)

        self.metrics.enable(self.config.enabled_patterns)
        self.status.start()

        logger.info(
            "WorkflowAgent initialized",
            extra={
                "llm_provider": self.config.llm_provider,
                "workflows": [pattern.value for pattern in self.config.enabled_patterns],
            },
        )

    async def shutdown(self) -> None:
        """Stop the agent and close the LLM providers."""
        self.status.stop()
        await self.llm_registry.close()
        logger.info("WorkflowAgent shut down")

    def get_status(self) -> AgentStatus:
        return self.status.snapshot()

    def register_workflow_handler(self, pattern: PatternType, handler: WorkflowHandler) -> None:
        """Bind ``handler`` to ``pattern``, replacing any previous binding."""
        self.handlers.register(pattern, handler)

    def get_workflow_metrics(self, pattern: PatternType) -> PatternMetrics:
        """Metrics snapshot for ``pattern``.

        Raises:
            AgentError: WORKFLOW_METRICS_NOT_FOUND if the pattern is not enabled
        """
        return self.metrics.get(pattern)

    async def execute_workflow(self, pattern: PatternType, params: WorkflowParameters) -> WorkflowResult:
        """Execute one pattern directly. Errors propagate to the caller."""
        return await self.executor.execute(pattern, params)

    async def handle_error(self, error: BaseException, context: ConversationContext) -> ErrorResponse:
        return await self.error_coordinator.handle_error(error, context)

    @log_execution(include_args=False, include_duration=True)
    async def process_user_input(self, user_input: UserInput, context: ConversationContext) -> AgentResponse:
        """
        Answer one user request.

        Never raises: every failure is converted into a recovery response.

        Args:
            user_input: Raw user request
            context: Current conversation context

        Returns:
            AgentResponse
        """
        start_time = time.perf_counter()
        self.status.request_started()
        pattern: Optional[PatternType] = None

        try:
            intent = await self.flow_router.classify_intent(user_input, context)
            flow = self.flow_router.select_flow(intent)
            pattern = select_pattern(intent, context)

            logger.info(
                f"Selected workflow {pattern.value}",
                extra={"intent": intent.name, "confidence": intent.confidence, "flow": flow.id},
            )

            params = WorkflowParameters(
                input=user_input,
                context=context,
                options={"flow": flow, "intent": intent},
            )
            result = await self.execute_workflow(pattern, params)
            await self.context_manager.update_context(result.updated_context)

            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.status.request_completed(elapsed_ms)
            self.observability_hooks.record_request(elapsed_ms, True, pattern.value)

            return result.response

        except Exception as e:
            self.status.request_failed()
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            agent_error = as_agent_error(e)
            workflow_name = pattern.value if pattern else None

            logger.error(f"Request failed: {agent_error.message}", extra={"error": agent_error.to_dict()})
            self.observability_hooks.record_request(elapsed_ms, False, workflow_name)
            self.observability_hooks.record_error(agent_error.code, agent_error.message, workflow_name)

            return await self._recover(agent_error, context)

    async def _recover(self, error: AgentError, context: ConversationContext) -> AgentResponse:
        try:
            error_response = await self.handle_error(error, context)
        except Exception:
            logger.exception("Error recovery failed")
            error_response = None

        if error_response is not None and error_response.fallback_response is not None:
            self.observability_hooks.record_fallback("graceful", error.code)
            return error_response.fallback_response

        self.observability_hooks.record_fallback("generic", error.code)
        return create_fallback_response()


__all__ = ["WorkflowAgent"]
