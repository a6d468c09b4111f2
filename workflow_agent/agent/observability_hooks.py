"""
Observability Hooks for Workflow Execution

Provides metrics collection, tracing, and performance monitoring for:
- Workflow pattern execution
- Top-level request outcomes
- Error recovery and fallback responses

Each agent owns its own hooks instance.
"""

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from loguru import logger

from workflow_agent.core.observability import record_metric, span


class WorkflowMetricType(str, Enum):
    """Types of workflow-level metrics."""

    EXECUTION_TIME = "workflow_execution_time_ms"
    EXECUTION_TOTAL = "workflow_execution_total"
    FAILURE_TOTAL = "workflow_failure_total"
    REQUEST_TIME = "request_duration_ms"
    REQUEST_TOTAL = "request_total"


class RecoveryMetricType(str, Enum):
    """Types of recovery-related metrics."""

    ERROR_TOTAL = "error_total"
    FALLBACK_USED = "fallback_used_total"


@dataclass
class WorkflowRun:
    """Metrics collected for a single workflow execution."""

    pattern: str
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    duration_ms: float = 0.0
    success: bool = False
    step_count: int = 0
    error_message: Optional[str] = None

    def finalize(self) -> None:
        """Finalize metrics collection."""
        if self.end_time is None:
            self.end_time = time.time()
        self.duration_ms = (self.end_time - self.start_time) * 1000

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": self.pattern,
            "duration_ms": self.duration_ms,
            "success": self.success,
            "step_count": self.step_count,
            "error_message": self.error_message,
        }


@dataclass
class HookCounters:
    """Running totals kept by one hooks instance."""

    workflows_started: int = 0
    workflows_failed: int = 0
    requests: int = 0
    errors: int = 0
    fallbacks: int = 0
    errors_by_code: Dict[str, int] = field(default_factory=dict)


class ObservabilityHooks:
    """Manages observability hooks for one agent."""

    def __init__(self, enable_tracing: bool = True, enable_metrics: bool = True):
        """Initialize observability hooks.

        Args:
            enable_tracing: Enable OpenTelemetry tracing
            enable_metrics: Enable metrics collection
        """
        self.enable_tracing = enable_tracing
        self.enable_metrics = enable_metrics
        self.counters = HookCounters()

    @contextmanager
    def track_workflow(self, pattern: str, attributes: Optional[Dict[str, Any]] = None):
        """Context manager for tracking one workflow execution.

        Args:
            pattern: Pattern value being executed
            attributes: Optional attributes for tracing

        Yields:
            WorkflowRun object for this execution
        """
        run = WorkflowRun(pattern=pattern)
        self.counters.workflows_started += 1

        span_attrs = {"workflow": pattern}
        if attributes:
            span_attrs.update(attributes)

        try:
            if self.enable_tracing:
                with span(f"workflow_{pattern}", attributes=span_attrs) as span_obj:
                    yield run
                    run.success = True
                    run.finalize()
                    if span_obj:
                        span_obj.set_attribute("duration_ms", run.duration_ms)
                        span_obj.set_attribute("step_count", run.step_count)
            else:
                yield run
                run.success = True
                run.finalize()
        except Exception as e:
            run.finalize()
            run.error_message = str(e)
            self.counters.workflows_failed += 1
            if self.enable_metrics:
                record_metric(WorkflowMetricType.FAILURE_TOTAL.value, 1, attributes={"workflow": pattern})
            raise
        finally:
            if self.enable_metrics:
                record_metric(
                    WorkflowMetricType.EXECUTION_TIME.value,
                    float(run.duration_ms),
                    attributes={"workflow": pattern, "success": str(run.success)},
                )
                record_metric(WorkflowMetricType.EXECUTION_TOTAL.value, 1, attributes={"workflow": pattern})
            logger.debug(f"Workflow '{pattern}' finished", extra=run.to_dict())

    def record_request(self, duration_ms: float, success: bool, pattern: Optional[str] = None) -> None:
        """Record the outcome of one top-level request."""
        self.counters.requests += 1
        if self.enable_metrics:
            status = "success" if success else "failure"
            record_metric(
                WorkflowMetricType.REQUEST_TIME.value,
                float(duration_ms),
                attributes={"status": status, "workflow": pattern or "none"},
            )
            record_metric(WorkflowMetricType.REQUEST_TOTAL.value, 1, attributes={"status": status})

    def record_error(self, error_code: str, error_message: str, pattern: Optional[str] = None) -> None:
        """Record an error handed to the recovery coordinator."""
        self.counters.errors += 1
        self.counters.errors_by_code[error_code] = self.counters.errors_by_code.get(error_code, 0) + 1

        if self.enable_metrics:
            record_metric(
                RecoveryMetricType.ERROR_TOTAL.value,
                1,
                attributes={"error_code": error_code, "workflow": pattern or "none"},
            )

        logger.warning(
            f"Error recorded: {error_code}",
            extra={"error_code": error_code, "error_message": error_message, "workflow": pattern},
        )

    def record_fallback(self, fallback_type: str, error_code: Optional[str] = None) -> None:
        """Record that a fallback response was returned instead of a workflow result."""
        self.counters.fallbacks += 1

        if self.enable_metrics:
            record_metric(
                RecoveryMetricType.FALLBACK_USED.value,
                1,
                attributes={"type": fallback_type, "error_code": error_code or "none"},
            )

        logger.info(
            f"Fallback returned: {fallback_type}",
            extra={"fallback_type": fallback_type, "error_code": error_code},
        )


__all__ = [
    "WorkflowMetricType",
    "RecoveryMetricType",
    "WorkflowRun",
    "HookCounters",
    "ObservabilityHooks",
]
