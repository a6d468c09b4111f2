"""
Workflow Agent Orchestration

Pattern selection, handler registry, workflow execution, metrics and
error recovery around the public ``WorkflowAgent`` entry point.
"""

from workflow_agent.agent.config import AgentConfig, WorkflowConfig, parse_workflows
from workflow_agent.agent.contracts import ContextManager, FlowRouter, ToolRegistry
from workflow_agent.agent.error_handler import (
    ErrorRecoveryCoordinator,
    ErrorStats,
    create_fallback_response,
)
from workflow_agent.agent.errors import AgentError, ErrorCode, as_agent_error
from workflow_agent.agent.executor import WorkflowExecutor
from workflow_agent.agent.joins import gather_fail_fast, gather_settled
from workflow_agent.agent.metrics import PatternMetricsTracker, StatusAggregator
from workflow_agent.agent.observability_hooks import ObservabilityHooks
from workflow_agent.agent.registry import HandlerRegistry, WorkflowHandler
from workflow_agent.agent.selector import select_pattern
from workflow_agent.agent.tool_bridge import ToolBridge
from workflow_agent.agent.orchestrator import WorkflowAgent

__all__ = [
    # Configuration
    "AgentConfig",
    "WorkflowConfig",
    "parse_workflows",
    # Contracts
    "FlowRouter",
    "ToolRegistry",
    "ContextManager",
    # Errors
    "AgentError",
    "ErrorCode",
    "as_agent_error",
    "ErrorRecoveryCoordinator",
    "ErrorStats",
    "create_fallback_response",
    # Execution
    "WorkflowAgent",
    "WorkflowExecutor",
    "WorkflowHandler",
    "HandlerRegistry",
    "select_pattern",
    "gather_settled",
    "gather_fail_fast",
    "ToolBridge",
    # Metrics
    "PatternMetricsTracker",
    "StatusAggregator",
    "ObservabilityHooks",
]
