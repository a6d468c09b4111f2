"""
Orchestrator-workers: analyse task complexity, delegate the task to a
roster of specialised workers running concurrently, then synthesise
their answers.
"""

import logging
import re
from typing import List, Sequence

from workflow_agent.agent.joins import gather_fail_fast
from workflow_agent.core.llm_client import TextGenerationRequest
from workflow_agent.models.conversation import Message, MessageRole
from workflow_agent.models.workflow import (
    AgentResponse,
    ComplexityTier,
    PatternType,
    ResponseMetadata,
    TaskAnalysis,
    WorkflowParameters,
    WorkflowResult,
    Worker,
)
from workflow_agent.patterns.base import (
    PatternHandler,
    aggregate_responses,
    generate_next_step_actions,
    summarize,
)

logger = logging.getLogger(__name__)

CONJUNCTIONS = re.compile(r"\b(and|or|but|also|additionally)\b", re.IGNORECASE)
SYNTHESIS_PROMPT = "Synthesize these worker results into a coherent, comprehensive response."
SYNTHESIS_CONFIDENCE = 0.85

ESTIMATED_TIME_MS = {
    ComplexityTier.LOW: 1000,
    ComplexityTier.MEDIUM: 3000,
    ComplexityTier.HIGH: 5000,
}

SPECIALIZED_TASKS = {
    "analysis": "Analyze the following request and provide data-driven insights: {task}",
    "synthesis": "Synthesize and summarize the following request: {task}",
}


def analyze_task_complexity(task: str) -> TaskAnalysis:
    """Classify a task by lexical heuristics.

    Medium: more than 20 words, several questions, or a conjunction.
    High: more than 50 words, or several questions joined by a conjunction.
    """
    word_count = len(task.split(" "))
    multiple_questions = task.count("?") > 1
    has_conjunction = CONJUNCTIONS.search(task) is not None

    complexity = ComplexityTier.LOW
    capabilities = ["text_generation"]

    if word_count > 20 or multiple_questions or has_conjunction:
        complexity = ComplexityTier.MEDIUM
        capabilities.append("task_decomposition")

    if word_count > 50 or (multiple_questions and has_conjunction):
        complexity = ComplexityTier.HIGH
        capabilities.extend(["parallel_processing", "result_synthesis"])

    return TaskAnalysis(
        complexity=complexity,
        required_capabilities=capabilities,
        estimated_time=ESTIMATED_TIME_MS[complexity],
    )


def select_workers(analysis: TaskAnalysis) -> List[Worker]:
    workers = [
        Worker(
            id="general_worker",
            capabilities=["text_generation", "general_assistance"],
            specialization="general",
        )
    ]
    if analysis.complexity == ComplexityTier.HIGH:
        workers.append(
            Worker(
                id="analysis_worker",
                capabilities=["data_analysis", "business_insights"],
                specialization="analysis",
            )
        )
        workers.append(
            Worker(
                id="synthesis_worker",
                capabilities=["result_synthesis", "report_generation"],
                specialization="synthesis",
            )
        )
    return workers


def specialize_task(worker: Worker, task: str) -> str:
    template = SPECIALIZED_TASKS.get(worker.specialization)
    return template.format(task=task) if template else task


class OrchestratorWorkersHandler(PatternHandler):
    pattern = PatternType.ORCHESTRATOR_WORKERS
    capabilities = frozenset({"task_delegation", "result_aggregation"})

    async def execute(self, params: WorkflowParameters) -> WorkflowResult:
        log = self.new_log()
        task = params.input.content

        with log.step("analyze_task") as entry:
            analysis = analyze_task_complexity(task)
            workers = select_workers(analysis)
            entry.result = {
                "complexity": analysis.complexity.value,
                "workers": [worker.id for worker in workers],
            }

        with log.step("delegate") as entry:
            results = await gather_fail_fast(
                [
                    self.runner.execute_step(specialize_task(worker, task), params.context, self.pattern)
                    for worker in workers
                ]
            )
            entry.result = {"results": len(results)}

        with log.step("synthesize") as entry:
            response = await self.orchestrate_results(results)
            entry.result = summarize(response.content)

        return self.build_result(response, params.context, log)

    async def orchestrate_results(self, results: Sequence[AgentResponse]) -> AgentResponse:
        """Merge worker answers with one synthesis call, falling back to aggregation."""
        if len(results) == 1:
            return results[0]

        provider = await self.runner.first_provider()
        if provider is None:
            return aggregate_responses(results, self.pattern)

        combined = "\n\n".join(f"Worker {i + 1}: {r.content}" for i, r in enumerate(results))
        request = TextGenerationRequest(
            messages=[
                Message(role=MessageRole.SYSTEM, content=SYNTHESIS_PROMPT),
                Message(role=MessageRole.USER, content=combined),
            ]
        )
        try:
            response = await provider.generate_text(request)
        except Exception as e:
            logger.warning(f"Synthesis failed, aggregating worker results: {e}")
            return aggregate_responses(results, self.pattern)

        return AgentResponse(
            content=response.content,
            next_step_actions=generate_next_step_actions(response.content),
            metadata=ResponseMetadata(
                processing_time=max(r.metadata.processing_time for r in results),
                provider=provider.name,
                workflow=self.pattern,
                confidence=SYNTHESIS_CONFIDENCE,
            ),
        )
