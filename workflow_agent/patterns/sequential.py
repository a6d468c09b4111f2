"""
Sequential chaining: decompose a task into ordered steps and run them
one after another, each step seeing the previous step's output.
"""

from workflow_agent.models.conversation import Message, MessageRole
from workflow_agent.models.workflow import PatternType, WorkflowParameters, WorkflowResult
from workflow_agent.patterns.base import PatternHandler, summarize

DECOMPOSE_PROMPT = "Break down this complex task into 2-4 sequential steps. Return each step on a new line."


class SequentialChainingHandler(PatternHandler):
    pattern = PatternType.SEQUENTIAL_CHAINING
    capabilities = frozenset({"text_generation"})

    async def execute(self, params: WorkflowParameters) -> WorkflowResult:
        log = self.new_log()

        with log.step("decompose") as entry:
            steps = await self.runner.generate_lines(DECOMPOSE_PROMPT, params.input.content)
            entry.result = {"steps": len(steps)}

        # Local copy only; the caller's context is never mutated
        context = params.context
        response = None
        for step in steps:
            with log.step("execute_step") as entry:
                response = await self.runner.execute_step(step, context, self.pattern)
                entry.result = summarize(response.content)
            context = context.with_message(
                Message(role=MessageRole.ASSISTANT, content=response.content)
            )

        return self.build_result(response, context, log)
