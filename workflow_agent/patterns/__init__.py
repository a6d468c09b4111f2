"""
Built-in workflow patterns.
"""

from typing import Dict, Optional

from workflow_agent.agent.contracts import FlowRouter
from workflow_agent.models.workflow import PatternType
from workflow_agent.patterns.base import (
    PatternHandler,
    StepLog,
    StepRunner,
    aggregate_responses,
    generate_next_step_actions,
)
from workflow_agent.patterns.evaluator_optimizer import (
    EvaluatorOptimizerHandler,
    evaluate_response,
)
from workflow_agent.patterns.orchestrator_workers import (
    OrchestratorWorkersHandler,
    analyze_task_complexity,
    select_workers,
)
from workflow_agent.patterns.parallel import ParallelFanoutHandler
from workflow_agent.patterns.routing import RoutingHandler
from workflow_agent.patterns.sequential import SequentialChainingHandler


def builtin_handlers(
    runner: StepRunner, flow_router: FlowRouter
) -> Dict[PatternType, PatternHandler]:
    """Create one instance of every built-in handler."""
    return {
        PatternType.SEQUENTIAL_CHAINING: SequentialChainingHandler(runner),
        PatternType.ROUTING: RoutingHandler(runner, flow_router),
        PatternType.PARALLEL_FANOUT: ParallelFanoutHandler(runner),
        PatternType.ORCHESTRATOR_WORKERS: OrchestratorWorkersHandler(runner),
        PatternType.EVALUATOR_OPTIMIZER: EvaluatorOptimizerHandler(runner),
    }


__all__ = [
    "PatternHandler",
    "StepLog",
    "StepRunner",
    "aggregate_responses",
    "generate_next_step_actions",
    "SequentialChainingHandler",
    "RoutingHandler",
    "ParallelFanoutHandler",
    "OrchestratorWorkersHandler",
    "EvaluatorOptimizerHandler",
    "evaluate_response",
    "analyze_task_complexity",
    "select_workers",
    "builtin_handlers",
]
