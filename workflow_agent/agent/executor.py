"""
Workflow Executor

Looks up the handler for a pattern, validates the parameters, times the
run, folds the outcome into the pattern metrics and rewraps failures.
The executor never swallows errors.
"""

import logging
import time
from typing import Optional

from workflow_agent.agent.errors import AgentError, ErrorCode, as_agent_error
from workflow_agent.agent.metrics import PatternMetricsTracker
from workflow_agent.agent.observability_hooks import ObservabilityHooks
from workflow_agent.agent.registry import HandlerRegistry
from workflow_agent.models.workflow import (
    ExecutionMetadata,
    PatternType,
    WorkflowParameters,
    WorkflowResult,
)

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Runs registered workflow handlers."""

    def __init__(
        self,
        registry: HandlerRegistry,
        metrics: PatternMetricsTracker,
        hooks: Optional[ObservabilityHooks] = None,
    ):
        self.registry = registry
        self.metrics = metrics
        self.hooks = hooks or ObservabilityHooks(enable_tracing=False, enable_metrics=False)

    async def execute(self, pattern: PatternType, params: WorkflowParameters) -> WorkflowResult:
        """Execute the handler registered for ``pattern``.

        Args:
            pattern: Pattern to execute
            params: Workflow parameters

        Returns:
            WorkflowResult with execution metadata attached

        Raises:
            AgentError: WORKFLOW_NOT_FOUND, INVALID_WORKFLOW_PARAMETERS or
                WORKFLOW_EXECUTION_FAILED wrapping the handler's error
        """
        handler = self.registry.get(pattern)
        if handler is None:
            raise AgentError(
                code=ErrorCode.WORKFLOW_NOT_FOUND,
                message=f"No handler registered for workflow type: {pattern.value}",
                details={"type": pattern.value},
                recoverable=True,
            )

        start_time = time.perf_counter()
        try:
            valid = handler.validate(params)
        except Exception as e:
            raise self._failure(pattern, start_time, e) from e

        if not valid:
            self.metrics.record(pattern, 0.0, success=False)
            raise AgentError(
                code=ErrorCode.INVALID_WORKFLOW_PARAMETERS,
                message=f"Invalid parameters for workflow type: {pattern.value}",
                details={"type": pattern.value},
                recoverable=True,
            )

        start_time = time.perf_counter()
        try:
            with self.hooks.track_workflow(pattern.value) as run:
                result = await handler.execute(params)
                run.step_count = len(result.execution_metadata.steps)
        except Exception as e:
            raise self._failure(pattern, start_time, e) from e

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self.metrics.record(pattern, elapsed_ms, success=True)

        logger.debug(
            f"Workflow {pattern.value} completed in {elapsed_ms:.1f}ms",
            extra={"workflow": pattern.value, "steps": len(result.execution_metadata.steps)},
        )
        return result.model_copy(
            update={
                "execution_metadata": ExecutionMetadata(
                    steps=result.execution_metadata.steps,
                    total_time=elapsed_ms,
                    tokens_used=0,
                    errors=[],
                )
            }
        )

    def _failure(self, pattern: PatternType, start_time: float, error: Exception) -> AgentError:
        """Record a failed run and build the WORKFLOW_EXECUTION_FAILED wrapper."""
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        self.metrics.record(pattern, elapsed_ms, success=False)

        logger.error(
            f"Workflow {pattern.value} failed after {elapsed_ms:.1f}ms: {error}",
            extra={"workflow": pattern.value, "error_type": type(error).__name__},
        )
        cause = as_agent_error(error)
        metadata = ExecutionMetadata(total_time=elapsed_ms, errors=[cause])
        return AgentError(
            code=ErrorCode.WORKFLOW_EXECUTION_FAILED,
            message=f"Workflow {pattern.value} execution failed: {error}",
            details={
                "workflow": pattern.value,
                "original_error": error,
                "execution_metadata": metadata,
            },
            recoverable=cause.recoverable,
        )


__all__ = ["WorkflowExecutor"]
