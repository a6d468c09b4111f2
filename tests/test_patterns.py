"""
Tests for the built-in workflow patterns.

Drives every handler with a scripted provider so that each LLM call is
predictable.
"""

import pytest
from conftest import ScriptedProvider, StaticFlowRouter, last_user_message

from workflow_agent.agent.errors import AgentError, ErrorCode
from workflow_agent.agent.tool_bridge import ToolBridge
from workflow_agent.core.llm_client import InMemoryProviderRegistry, LLMResponse
from workflow_agent.integrations import InMemoryToolRegistry
from workflow_agent.models import (
    ActionType,
    AgentResponse,
    ComplexityTier,
    ConversationFlow,
    IntentClassification,
    Message,
    MessageRole,
    NextStepAction,
    PatternType,
    ResponseEvaluation,
    ResponseMetadata,
    ToolCall,
)
from workflow_agent.patterns import (
    EvaluatorOptimizerHandler,
    OrchestratorWorkersHandler,
    ParallelFanoutHandler,
    RoutingHandler,
    SequentialChainingHandler,
    StepRunner,
    aggregate_responses,
    analyze_task_complexity,
    builtin_handlers,
    evaluate_response,
    generate_next_step_actions,
    select_workers,
)
from workflow_agent.patterns.base import TOOL_FOLLOW_UP_PROMPT


def make_runner(provider=None, tool_registry=None) -> StepRunner:
    providers = [provider] if provider is not None else []
    return StepRunner(InMemoryProviderRegistry(providers), ToolBridge(tool_registry))


def make_response(content="answer", actions=(), confidence=0.8, processing_time=1.0) -> AgentResponse:
    return AgentResponse(
        content=content,
        next_step_actions=[NextStepAction(id=a, title=a.title()) for a in actions],
        metadata=ResponseMetadata(confidence=confidence, processing_time=processing_time),
    )


def echo_user(request):
    return f"done {last_user_message(request)}"


# ==================
# Shared Helpers
# ==================


class TestNextStepActions:
    """Test cue-based follow-up actions."""

    def test_two_cues(self):
        """Test two matching cue groups need no generic action."""
        actions = generate_next_step_actions("Improve product SEO")
        assert [a.id for a in actions] == ["analyze_product", "open_seo_optimizer"]

    def test_single_cue_gets_generic_action(self):
        """Test fewer than two cue actions adds the ask-question action."""
        actions = generate_next_step_actions("Check inventory")
        assert [a.id for a in actions] == ["analyze_product", "ask_question"]

    def test_no_cues(self):
        """Test text without cues yields only the generic action."""
        actions = generate_next_step_actions("hello")
        assert len(actions) == 1
        assert actions[0].action_type == ActionType.ASK_QUESTION

    def test_capped_at_four(self):
        """Test all cue groups yield at most four actions."""
        actions = generate_next_step_actions("product seo marketing analytics")
        assert len(actions) == 4


class TestAggregateResponses:
    """Test merging several responses."""

    def test_empty_raises(self):
        """Test nothing to aggregate is a non-recoverable error."""
        with pytest.raises(AgentError) as exc_info:
            aggregate_responses([])
        assert exc_info.value.code == ErrorCode.NO_RESPONSES_TO_AGGREGATE.value
        assert exc_info.value.recoverable is False

    def test_single_response_passes_through(self):
        """Test a single response is returned as-is."""
        response = make_response()
        assert aggregate_responses([response]) is response

    def test_merge(self):
        """Test numbering, action de-duplication and metadata merging."""
        responses = [
            make_response("first", actions=("a", "b"), confidence=0.6, processing_time=5.0),
            make_response("second", actions=("b", "c", "d", "e"), confidence=1.0, processing_time=9.0),
        ]
        merged = aggregate_responses(responses)

        assert merged.content == "1. first\n\n2. second"
        assert [a.id for a in merged.next_step_actions] == ["a", "b", "c", "d"]
        assert merged.metadata.provider == "aggregated"
        assert merged.metadata.workflow == PatternType.PARALLEL_FANOUT
        assert merged.metadata.confidence == pytest.approx(0.8)
        assert merged.metadata.processing_time == 9.0


# ==================
# Step Runner
# ==================


class TestStepRunner:
    """Test single-step execution."""

    async def test_missing_provider(self, context):
        """Test steps fail with LLM_PROVIDER_UNAVAILABLE without providers."""
        with pytest.raises(AgentError) as exc_info:
            await make_runner().execute_step("do it", context)
        assert exc_info.value.code == ErrorCode.LLM_PROVIDER_UNAVAILABLE.value
        assert exc_info.value.recoverable is True
        assert exc_info.value.details == {"step": "do it"}

    async def test_plain_step(self, context):
        """Test a step without tools uses plain generation."""
        provider = ScriptedProvider(replies=["Result text"])
        response = await make_runner(provider).execute_step("write a summary", context)

        assert response.content == "Result text"
        assert response.metadata.provider == "scripted"
        assert response.metadata.confidence == 0.8
        assert response.metadata.workflow == PatternType.SEQUENTIAL_CHAINING
        assert response.metadata.tools_used is False
        assert last_user_message(provider.text_requests[0]) == "write a summary"
        assert provider.tool_requests == []

    async def test_history_window(self, context):
        """Test only the last three turns are sent."""
        for i in range(5):
            context = context.with_message(Message(role=MessageRole.USER, content=f"turn {i}"))
        provider = ScriptedProvider()
        await make_runner(provider).execute_step("next", context)

        sent = [m.content for m in provider.text_requests[0].messages]
        assert sent[1:] == ["turn 2", "turn 3", "turn 4", "next"]
        assert provider.text_requests[0].messages[0].role == MessageRole.SYSTEM

    async def test_generate_lines_fallback(self):
        """Test a failing or single-line breakdown falls back to the task."""
        failing = ScriptedProvider(replies=[RuntimeError("down")])
        assert await make_runner(failing).generate_lines("split", "task") == ["task"]

        single = ScriptedProvider(replies=["one line only"])
        assert await make_runner(single).generate_lines("split", "task") == ["task"]

        assert await make_runner().generate_lines("split", "task") == ["task"]

    async def test_generate_lines_drops_blank_lines(self):
        """Test blank lines are ignored."""
        provider = ScriptedProvider(replies=["a\n\n  \nb"])
        assert await make_runner(provider).generate_lines("split", "task") == ["a", "b"]
        assert last_user_message(provider.text_requests[0]) == "Task: task"


# ==================
# Sequential Chaining
# ==================


class TestSequentialChaining:
    """Test ordered step execution."""

    async def test_steps_run_in_order(self, make_params, context):
        """Test each step sees the previous step's output."""
        provider = ScriptedProvider(replies=["Collect data\nWrite report", "data collected", "report written"])
        handler = SequentialChainingHandler(make_runner(provider))

        result = await handler.execute(make_params("Prepare the quarterly report"))

        assert result.response.content == "report written"
        second_step = provider.text_requests[2]
        assert "data collected" in [m.content for m in second_step.messages]
        assert [s.type for s in result.execution_metadata.steps] == ["decompose", "execute_step", "execute_step"]
        assert result.execution_metadata.steps[0].id == "sequential_chaining-1"

    async def test_context_is_not_mutated(self, make_params, context):
        """Test outputs land in the updated copy only."""
        provider = ScriptedProvider(replies=["one\ntwo", "out one", "out two"])
        handler = SequentialChainingHandler(make_runner(provider))

        result = await handler.execute(make_params("task"))

        assert context.conversation_history == []
        history = result.updated_context.conversation_history
        assert [m.content for m in history] == ["out one", "out two"]
        assert all(m.role == MessageRole.ASSISTANT for m in history)

    async def test_single_step_fallback(self, make_params):
        """Test a failed decomposition runs the whole task as one step."""
        provider = ScriptedProvider(replies=["no breakdown"], default=echo_user)
        handler = SequentialChainingHandler(make_runner(provider))

        result = await handler.execute(make_params("Do the thing"))
        assert result.response.content == "done Do the thing"

    async def test_step_failure_propagates(self, make_params):
        """Test a failing step aborts the chain."""
        provider = ScriptedProvider(replies=["a\nb", RuntimeError("llm down")])
        handler = SequentialChainingHandler(make_runner(provider))

        with pytest.raises(RuntimeError, match="llm down"):
            await handler.execute(make_params("task"))


# ==================
# Routing
# ==================


class TestRouting:
    """Test flow routing and the tool-augmented path."""

    async def test_flow_path(self, make_params):
        """Test requests without business cues go to the flow router."""
        router = StaticFlowRouter()
        handler = RoutingHandler(make_runner(ScriptedProvider()), router)

        result = await handler.execute(make_params("hello there"))

        assert result.response.content == "flow:general_assistance"
        assert router.classify_calls == 1
        assert len(router.executed) == 1

    async def test_reuses_selected_intent_and_flow(self, make_params):
        """Test intent and flow in the options skip classification."""
        router = StaticFlowRouter()
        handler = RoutingHandler(make_runner(ScriptedProvider()), router)
        intent = IntentClassification(name="custom", confidence=0.9)
        flow = ConversationFlow(id="custom_flow", name="Custom")

        result = await handler.execute(make_params("hello", intent=intent, flow=flow))

        assert router.classify_calls == 0
        assert result.response.content == "flow:custom_flow"
        assert router.executed[0].intent.name == "custom"

    async def test_tool_path(self, make_params):
        """Test business requests run tool calls and a follow-up generation."""
        calls = []

        async def get_sales(period="month"):
            calls.append(period)
            return {"total": 42}

        tools = InMemoryToolRegistry()
        tools.register("get_sales", get_sales, description="Sales totals")

        provider = ScriptedProvider(
            replies=["Sales were 42"],
            supports_tools=True,
            tool_replies=[
                LLMResponse(
                    content="",
                    tool_calls=[ToolCall(id="call-1", name="get_sales", parameters={"period": "week"})],
                )
            ],
        )
        router = StaticFlowRouter()
        handler = RoutingHandler(make_runner(provider, tools), router)

        result = await handler.execute(make_params("show my sales this week"))

        assert result.response.content == "Sales were 42"
        assert result.response.metadata.tools_used is True
        assert result.response.metadata.tool_calls_executed == 1
        assert calls == ["week"]
        assert router.executed == []

        tool_request = provider.tool_requests[0]
        assert [t.name for t in tool_request.tools] == ["get_sales"]

        follow_up = provider.text_requests[0].messages
        assert follow_up[-1].content == TOOL_FOLLOW_UP_PROMPT
        tool_messages = [m for m in follow_up if m.role == MessageRole.TOOL]
        assert tool_messages[0].metadata["tool_call_id"] == "call-1"
        assistant = [m for m in follow_up if m.role == MessageRole.ASSISTANT][-1]
        assert assistant.metadata["tool_calls"][0]["name"] == "get_sales"

    async def test_tool_path_without_calls(self, make_params):
        """Test a model answering directly needs no follow-up."""
        tools = InMemoryToolRegistry()
        tools.register("get_sales", lambda: None)
        provider = ScriptedProvider(supports_tools=True, tool_replies=["Direct answer"])
        handler = RoutingHandler(make_runner(provider, tools), StaticFlowRouter())

        result = await handler.execute(make_params("show revenue"))

        assert result.response.content == "Direct answer"
        assert result.response.metadata.tool_calls_executed == 0
        assert provider.text_requests == []


# ==================
# Parallel Fan-out
# ==================


class TestParallelFanout:
    """Test concurrent subtasks with settled joins."""

    async def test_partial_failure(self, make_params):
        """Test surviving subtasks are aggregated when one fails."""

        def reply(request):
            text = last_user_message(request)
            return RuntimeError("subtask failed") if text == "b" else f"done {text}"

        provider = ScriptedProvider(replies=["a\nb\nc"], default=reply)
        handler = ParallelFanoutHandler(make_runner(provider))

        result = await handler.execute(make_params("do a, b and c"))

        assert result.response.content == "1. done a\n\n2. done c"
        assert result.response.metadata.workflow == PatternType.PARALLEL_FANOUT
        fan_out = result.execution_metadata.steps[1]
        assert fan_out.result == {"succeeded": 2, "failed": 1}

    async def test_all_failing(self, make_params):
        """Test no surviving subtask raises NO_RESPONSES_TO_AGGREGATE."""
        provider = ScriptedProvider(replies=["a\nb"], default=RuntimeError("down"))
        handler = ParallelFanoutHandler(make_runner(provider))

        with pytest.raises(AgentError) as exc_info:
            await handler.execute(make_params("do a and b"))
        assert exc_info.value.code == ErrorCode.NO_RESPONSES_TO_AGGREGATE.value

    async def test_single_subtask(self, make_params):
        """Test a single subtask response passes through unchanged."""
        provider = ScriptedProvider(replies=["one line"], default=echo_user)
        handler = ParallelFanoutHandler(make_runner(provider))

        result = await handler.execute(make_params("just this"))
        assert result.response.content == "done just this"


# ==================
# Orchestrator-Workers
# ==================


class TestTaskAnalysis:
    """Test complexity heuristics and worker selection."""

    def test_low(self):
        """Test a short single question."""
        analysis = analyze_task_complexity("What is my revenue?")
        assert analysis.complexity == ComplexityTier.LOW
        assert analysis.estimated_time == 1000
        assert analysis.required_capabilities == ["text_generation"]

    @pytest.mark.parametrize(
        "task",
        ["revenue and profit", "What? Why?", " ".join(["word"] * 21)],
    )
    def test_medium(self, task):
        """Test conjunctions, several questions or long text."""
        analysis = analyze_task_complexity(task)
        assert analysis.complexity == ComplexityTier.MEDIUM
        assert analysis.estimated_time == 3000

    @pytest.mark.parametrize("task", ["What sold? And why?", " ".join(["word"] * 51)])
    def test_high(self, task):
        """Test questions joined by a conjunction or very long text."""
        analysis = analyze_task_complexity(task)
        assert analysis.complexity == ComplexityTier.HIGH
        assert "result_synthesis" in analysis.required_capabilities

    def test_conjunction_needs_word_boundary(self):
        """Test 'android' does not count as 'and'."""
        assert analyze_task_complexity("android apps").complexity == ComplexityTier.LOW

    def test_worker_roster(self):
        """Test only high complexity adds specialists."""
        low = select_workers(analyze_task_complexity("hi"))
        high = select_workers(analyze_task_complexity("What sold? And why?"))
        assert [w.id for w in low] == ["general_worker"]
        assert [w.id for w in high] == ["general_worker", "analysis_worker", "synthesis_worker"]


class TestOrchestratorWorkers:
    """Test delegation, fail-fast joins and synthesis."""

    async def test_single_worker(self, make_params):
        """Test a simple task needs no synthesis."""
        provider = ScriptedProvider(default=echo_user)
        handler = OrchestratorWorkersHandler(make_runner(provider))

        result = await handler.execute(make_params("What is my revenue?"))

        assert result.response.content == "done What is my revenue?"
        assert len(provider.text_requests) == 1

    async def test_synthesis(self, make_params):
        """Test complex tasks run three workers and one synthesis call."""
        provider = ScriptedProvider(default=echo_user)
        handler = OrchestratorWorkersHandler(make_runner(provider))

        result = await handler.execute(make_params("What sold? And why?"))

        assert len(provider.text_requests) == 4
        worker_prompts = [last_user_message(r) for r in provider.text_requests[:3]]
        assert worker_prompts[0] == "What sold? And why?"
        assert worker_prompts[1].startswith("Analyze the following request")
        assert worker_prompts[2].startswith("Synthesize and summarize")

        assert result.response.content.startswith("done Worker 1: done What sold?")
        assert result.response.metadata.confidence == 0.85
        assert result.response.metadata.workflow == PatternType.ORCHESTRATOR_WORKERS
        assert [s.type for s in result.execution_metadata.steps] == ["analyze_task", "delegate", "synthesize"]

    async def test_worker_failure_aborts(self, make_params):
        """Test one failing worker fails the whole run."""

        def reply(request):
            if last_user_message(request).startswith("Analyze"):
                return RuntimeError("analysis worker crashed")
            return echo_user(request)

        handler = OrchestratorWorkersHandler(make_runner(ScriptedProvider(default=reply)))

        with pytest.raises(RuntimeError, match="analysis worker crashed"):
            await handler.execute(make_params("What sold? And why?"))

    async def test_synthesis_failure_aggregates(self, make_params):
        """Test a failing synthesis call falls back to aggregation."""

        def reply(request):
            if last_user_message(request).startswith("Worker 1:"):
                return RuntimeError("synthesis failed")
            return echo_user(request)

        handler = OrchestratorWorkersHandler(make_runner(ScriptedProvider(default=reply)))

        result = await handler.execute(make_params("What sold? And why?"))

        assert result.response.content.startswith("1. done What sold?")
        assert result.response.metadata.provider == "aggregated"


# ==================
# Evaluator-Optimizer
# ==================


class ScriptedEvaluator:
    def __init__(self, scores):
        self.scores = list(scores)
        self.calls = 0

    def __call__(self, response, params):
        score = self.scores[min(self.calls, len(self.scores) - 1)]
        self.calls += 1
        return ResponseEvaluation(score=score, feedback="Response is too brief", improvement_areas=["response_length"])


class TestEvaluateResponse:
    """Test the fixed rubric."""

    def test_good_response(self):
        """Test a mid-length response with actions scores high."""
        response = make_response("x" * 60, actions=("a", "b"), confidence=0.8)
        evaluation = evaluate_response(response)
        assert evaluation.score == pytest.approx(0.85)
        assert evaluation.improvement_areas == []

    def test_brief_response_without_actions(self):
        """Test penalties accumulate and the score is clamped."""
        evaluation = evaluate_response(make_response("short", confidence=0.0))
        assert evaluation.score == pytest.approx(0.0)
        assert evaluation.improvement_areas == ["response_length", "next_step_actions"]
        assert evaluation.feedback == "Response is too brief; Missing next step actions"

    def test_long_response(self):
        """Test overly long responses ask for conciseness."""
        evaluation = evaluate_response(make_response("x" * 1001, actions=("a",), confidence=0.0))
        assert evaluation.score == pytest.approx(0.4)
        assert evaluation.improvement_areas == ["response_conciseness"]


class TestEvaluatorOptimizer:
    """Test the evaluate-and-rewrite loop."""

    async def test_rewrites_until_threshold(self, make_params):
        """Test three evaluations and two rewrites for a scripted score sequence."""
        evaluator = ScriptedEvaluator([0.3, 0.5, 0.9])
        provider = ScriptedProvider(replies=["draft", "better", "best"])
        handler = EvaluatorOptimizerHandler(make_runner(provider), evaluator=evaluator)

        result = await handler.execute(make_params("Improve my listing"))

        assert evaluator.calls == 3
        assert result.response.content == "best"
        step_types = [s.type for s in result.execution_metadata.steps]
        assert step_types == ["initial_response", "evaluate", "optimize", "evaluate", "optimize", "evaluate"]
        # Two rewrites, each adding 0.1 to the 0.8 step confidence
        assert result.response.metadata.confidence == pytest.approx(1.0)

    async def test_passing_first_evaluation(self, make_params):
        """Test a good first draft is not rewritten."""
        evaluator = ScriptedEvaluator([0.85])
        provider = ScriptedProvider(replies=["draft"])
        handler = EvaluatorOptimizerHandler(make_runner(provider), evaluator=evaluator)

        result = await handler.execute(make_params("Improve my listing"))

        assert evaluator.calls == 1
        assert result.response.content == "draft"
        assert len(provider.text_requests) == 1

    async def test_iteration_budget(self, make_params):
        """Test the loop stops after the maximum number of rewrites."""
        evaluator = ScriptedEvaluator([0.1])
        handler = EvaluatorOptimizerHandler(make_runner(ScriptedProvider()), evaluator=evaluator, max_iterations=3)

        await handler.execute(make_params("Improve my listing"))
        assert evaluator.calls == 3

    async def test_async_evaluator(self, make_params):
        """Test coroutine evaluators are awaited."""

        async def evaluator(response, params):
            return ResponseEvaluation(score=0.95)

        handler = EvaluatorOptimizerHandler(make_runner(ScriptedProvider(replies=["draft"])), evaluator=evaluator)
        result = await handler.execute(make_params("Improve"))
        assert result.response.content == "draft"

    async def test_optimize_regenerates_actions(self):
        """Test missing actions are derived from the rewritten content."""
        provider = ScriptedProvider(replies=["Launch a marketing campaign for this product"])
        handler = EvaluatorOptimizerHandler(make_runner(provider))
        evaluation = ResponseEvaluation(
            score=0.2, feedback="Missing next step actions", improvement_areas=["next_step_actions"]
        )

        improved = await handler.optimize(make_response("draft", confidence=0.95), evaluation)

        assert [a.id for a in improved.next_step_actions] == ["analyze_product", "create_campaign"]
        assert improved.metadata.confidence == 1.0
        assert "Original response: draft" in last_user_message(provider.text_requests[0])

    async def test_optimize_keeps_response_on_failure(self):
        """Test a failing rewrite keeps the current response."""
        handler = EvaluatorOptimizerHandler(make_runner(ScriptedProvider(replies=[RuntimeError("down")])))
        response = make_response("draft")
        evaluation = ResponseEvaluation(score=0.1, improvement_areas=["response_length"])

        assert await handler.optimize(response, evaluation) is response

    async def test_optimize_without_areas(self):
        """Test nothing to improve returns the response unchanged."""
        provider = ScriptedProvider()
        handler = EvaluatorOptimizerHandler(make_runner(provider))
        response = make_response("draft")

        assert await handler.optimize(response, ResponseEvaluation(score=0.5)) is response
        assert provider.text_requests == []


# ==================
# Built-in Handlers
# ==================


class TestBuiltinHandlers:
    """Test the built-in handler set."""

    def test_one_handler_per_pattern(self):
        """Test every built-in pattern has a handler declaring capabilities."""
        handlers = builtin_handlers(make_runner(), StaticFlowRouter())
        assert set(handlers) == {
            PatternType.SEQUENTIAL_CHAINING,
            PatternType.ROUTING,
            PatternType.PARALLEL_FANOUT,
            PatternType.ORCHESTRATOR_WORKERS,
            PatternType.EVALUATOR_OPTIMIZER,
        }
        for pattern, handler in handlers.items():
            assert handler.pattern == pattern
            assert handler.required_capabilities()
