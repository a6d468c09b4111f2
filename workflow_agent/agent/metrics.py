"""
Workflow Metrics and Agent Status

Per-pattern running statistics and the process-wide request counters.
Both are owned by one agent instance. Every mutation goes through a
lock so that requests driven from several threads cannot lose updates;
the lock is never held across an ``await``.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, Optional

from workflow_agent.agent.errors import AgentError, ErrorCode
from workflow_agent.models.workflow import AgentStatus, PatternMetrics, PatternType

logger = logging.getLogger(__name__)


def running_mean(previous: float, value: float, count: int) -> float:
    """Incremental mean ``(previous * (count - 1) + value) / count``.

    ``count`` is the number of samples including ``value``.
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    return (previous * (count - 1) + value) / count


class PatternMetricsTracker:
    """Running count, mean duration and mean success per pattern."""

    def __init__(self) -> None:
        self._metrics: Dict[PatternType, PatternMetrics] = {}
        self._lock = threading.Lock()

    def enable(self, patterns: Iterable[PatternType]) -> None:
        """Create metric records for ``patterns``.

        Existing records are kept untouched; records are never deleted.
        """
        with self._lock:
            for pattern in patterns:
                if pattern not in self._metrics:
                    self._metrics[pattern] = PatternMetrics(type=pattern)

    def is_tracked(self, pattern: PatternType) -> bool:
        with self._lock:
            return pattern in self._metrics

    def record(
        self, pattern: PatternType, elapsed_ms: float, success: bool
    ) -> Optional[PatternMetrics]:
        """Fold one execution into the pattern's running statistics.

        Returns a snapshot of the updated record, or None when the pattern
        was not enabled at initialization.
        """
        with self._lock:
            metrics = self._metrics.get(pattern)
            if metrics is None:
                logger.debug(f"No metrics tracked for pattern {pattern.value}")
                return None

            metrics.execution_count += 1
            n = metrics.execution_count
            metrics.average_execution_time = running_mean(
                metrics.average_execution_time, max(0.0, elapsed_ms), n
            )
            metrics.success_rate = running_mean(metrics.success_rate, 1.0 if success else 0.0, n)
            metrics.last_executed = datetime.now()
            return replace(metrics)

    def get(self, pattern: PatternType) -> PatternMetrics:
        """Return a snapshot of the pattern's metrics.

        Raises:
            AgentError: WORKFLOW_METRICS_NOT_FOUND if the pattern was never enabled
        """
        with self._lock:
            metrics = self._metrics.get(pattern)
            if metrics is None:
                raise AgentError(
                    code=ErrorCode.WORKFLOW_METRICS_NOT_FOUND,
                    message=f"No metrics found for workflow type: {pattern.value}",
                    details={"type": pattern.value},
                    recoverable=False,
                )
            return replace(metrics)

    def snapshot(self) -> Dict[PatternType, PatternMetrics]:
        with self._lock:
            return {pattern: replace(metrics) for pattern, metrics in self._metrics.items()}


class StatusAggregator:
    """Process-wide request counters for one agent."""

    def __init__(self) -> None:
        self._status = AgentStatus()
        self._lock = threading.Lock()

    def start(self) -> None:
        with self._lock:
            self._status.is_running = True

    def stop(self) -> None:
        """Mark the agent as stopped; request counters are kept."""
        with self._lock:
            self._status.is_running = False
            self._status.active_workflows = 0

    def request_started(self) -> None:
        with self._lock:
            self._status.total_requests += 1
            self._status.active_workflows += 1

    def request_completed(self, elapsed_ms: float) -> None:
        with self._lock:
            self._release()
            self._status.average_response_time = running_mean(
                self._status.average_response_time,
                max(0.0, elapsed_ms),
                max(1, self._status.total_requests),
            )

    def request_failed(self) -> None:
        with self._lock:
            self._release()
            # Uses the current request total; not a cumulative error ratio
            total = max(1, self._status.total_requests)
            self._status.error_rate = (total * self._status.error_rate + 1) / total

    def _release(self) -> None:
        self._status.active_workflows = max(0, self._status.active_workflows - 1)

    def snapshot(self) -> AgentStatus:
        with self._lock:
            return replace(self._status)


__all__ = ["running_mean", "PatternMetricsTracker", "StatusAggregator"]
