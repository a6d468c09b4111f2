"""
Evaluator-optimizer: generate a response, then score and rewrite it
until it passes the rubric or the iteration budget is spent.
"""

import inspect
import logging
from typing import Awaitable, Callable, Optional, Union

from workflow_agent.core.llm_client import TextGenerationRequest
from workflow_agent.models.conversation import Message, MessageRole
from workflow_agent.models.workflow import (
    AgentResponse,
    PatternType,
    ResponseEvaluation,
    WorkflowParameters,
    WorkflowResult,
)
from workflow_agent.patterns.base import (
    PatternHandler,
    StepRunner,
    generate_next_step_actions,
    summarize,
)

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 3
SCORE_THRESHOLD = 0.8
CONFIDENCE_INCREMENT = 0.1

OPTIMIZE_PROMPT = (
    "Improve the given response based on the feedback provided. "
    "Maintain the core message while addressing the improvement areas."
)

Evaluator = Callable[
    [AgentResponse, WorkflowParameters],
    Union[ResponseEvaluation, Awaitable[ResponseEvaluation]],
]


def evaluate_response(response: AgentResponse, params: Optional[WorkflowParameters] = None) -> ResponseEvaluation:
    """Score a response with the fixed rubric.

    Starts at 0.5; length and next-step-action bands move the score, which
    is then averaged with the response's own confidence when it has one.
    """
    score = 0.5
    feedback = []
    areas = []

    length = len(response.content)
    if length < 50:
        score -= 0.2
        areas.append("response_length")
        feedback.append("Response is too brief")
    elif length > 1000:
        score -= 0.1
        areas.append("response_conciseness")
        feedback.append("Response could be more concise")
    else:
        score += 0.2

    action_count = len(response.next_step_actions)
    if action_count == 0:
        score -= 0.3
        areas.append("next_step_actions")
        feedback.append("Missing next step actions")
    elif 2 <= action_count <= 4:
        score += 0.2

    if response.metadata.confidence:
        score = (score + response.metadata.confidence) / 2

    return ResponseEvaluation(
        score=max(0.0, min(1.0, score)),
        feedback="; ".join(feedback),
        improvement_areas=areas,
    )


class EvaluatorOptimizerHandler(PatternHandler):
    pattern = PatternType.EVALUATOR_OPTIMIZER
    capabilities = frozenset({"response_evaluation", "iterative_improvement"})

    def __init__(
        self,
        runner: StepRunner,
        evaluator: Optional[Evaluator] = None,
        max_iterations: int = MAX_ITERATIONS,
        score_threshold: float = SCORE_THRESHOLD,
    ):
        super().__init__(runner)
        self.evaluator = evaluator or evaluate_response
        self.max_iterations = max_iterations
        self.score_threshold = score_threshold

    async def evaluate(self, response: AgentResponse, params: WorkflowParameters) -> ResponseEvaluation:
        evaluation = self.evaluator(response, params)
        if inspect.isawaitable(evaluation):
            evaluation = await evaluation
        return evaluation

    async def execute(self, params: WorkflowParameters) -> WorkflowResult:
        log = self.new_log()

        with log.step("initial_response") as entry:
            response = await self.runner.execute_step(params.input.content, params.context, self.pattern)
            entry.result = summarize(response.content)

        iterations = 0
        while iterations < self.max_iterations:
            with log.step("evaluate") as entry:
                evaluation = await self.evaluate(response, params)
                entry.result = {"score": evaluation.score, "areas": evaluation.improvement_areas}

            if evaluation.score >= self.score_threshold:
                break

            with log.step("optimize") as entry:
                response = await self.optimize(response, evaluation)
                entry.result = summarize(response.content)
            iterations += 1

        logger.debug(f"Evaluator-optimizer finished after {iterations} rewrites")
        return self.build_result(response, params.context, log)

    async def optimize(self, response: AgentResponse, evaluation: ResponseEvaluation) -> AgentResponse:
        """Rewrite ``response`` to address the evaluation's deficiencies.

        The response is returned unchanged when there is nothing to improve,
        no provider, or the rewrite call fails.
        """
        if not evaluation.improvement_areas:
            return response

        provider = await self.runner.first_provider()
        if provider is None:
            return response

        prompt = (
            f"Improve this response based on the following feedback: {evaluation.feedback}.\n"
            f"Areas to improve: {', '.join(evaluation.improvement_areas)}.\n\n"
            f"Original response: {response.content}"
        )
        request = TextGenerationRequest(
            messages=[
                Message(role=MessageRole.SYSTEM, content=OPTIMIZE_PROMPT),
                Message(role=MessageRole.USER, content=prompt),
            ]
        )
        try:
            improved = await provider.generate_text(request)
        except Exception as e:
            logger.warning(f"Response optimization failed, keeping current response: {e}")
            return response

        actions = response.next_step_actions
        if "next_step_actions" in evaluation.improvement_areas:
            actions = generate_next_step_actions(improved.content)

        metadata = response.metadata.model_copy(
            update={"confidence": min(1.0, response.metadata.confidence + CONFIDENCE_INCREMENT)}
        )
        return AgentResponse(content=improved.content, next_step_actions=actions, metadata=metadata)
