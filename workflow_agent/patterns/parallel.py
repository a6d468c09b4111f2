"""
Parallel fan-out: split a task into independent subtasks, run them
concurrently and aggregate whichever succeed.
"""

import logging

from workflow_agent.agent.joins import gather_settled
from workflow_agent.models.workflow import PatternType, WorkflowParameters, WorkflowResult
from workflow_agent.patterns.base import PatternHandler, aggregate_responses, summarize

logger = logging.getLogger(__name__)

SUBTASK_PROMPT = (
    "Identify independent subtasks that can be executed in parallel. "
    "Return each subtask on a new line."
)


class ParallelFanoutHandler(PatternHandler):
    pattern = PatternType.PARALLEL_FANOUT
    capabilities = frozenset({"concurrent_execution"})

    async def execute(self, params: WorkflowParameters) -> WorkflowResult:
        log = self.new_log()

        with log.step("identify_subtasks") as entry:
            subtasks = await self.runner.generate_lines(SUBTASK_PROMPT, params.input.content)
            entry.result = {"subtasks": len(subtasks)}

        with log.step("fan_out") as entry:
            responses, failures = await gather_settled(
                [self.runner.execute_step(subtask, params.context, self.pattern) for subtask in subtasks]
            )
            entry.result = {"succeeded": len(responses), "failed": len(failures)}

        if failures:
            logger.warning(f"{len(failures)} of {len(subtasks)} subtasks failed")

        with log.step("aggregate") as entry:
            response = aggregate_responses(responses, self.pattern)
            entry.result = summarize(response.content)

        return self.build_result(response, params.context, log)
