"""
Routing: hand the request to the flow router, or answer it with
tool-augmented generation when it asks for business data.
"""

import logging

from workflow_agent.agent.contracts import FlowRouter
from workflow_agent.models.intent import ConversationFlow, FlowParameters, IntentClassification
from workflow_agent.models.workflow import PatternType, WorkflowParameters, WorkflowResult
from workflow_agent.patterns.base import PatternHandler, StepRunner, summarize

logger = logging.getLogger(__name__)


class RoutingHandler(PatternHandler):
    pattern = PatternType.ROUTING
    capabilities = frozenset({"intent_classification"})

    def __init__(self, runner: StepRunner, flow_router: FlowRouter):
        super().__init__(runner)
        self.flow_router = flow_router

    async def execute(self, params: WorkflowParameters) -> WorkflowResult:
        log = self.new_log()

        with log.step("select_flow") as entry:
            intent = params.options.get("intent")
            if not isinstance(intent, IntentClassification):
                intent = await self.flow_router.classify_intent(params.input, params.context)
            flow = params.options.get("flow")
            if not isinstance(flow, ConversationFlow):
                flow = self.flow_router.select_flow(intent)
            entry.result = {"intent": intent.name, "flow": flow.id}

        logger.info(f"Flow selected: {flow.name}", extra={"intent": intent.name})

        tool_bridge = self.runner.tool_bridge
        available_tools = await tool_bridge.available_tools()
        use_tools = tool_bridge.should_use_tools(params.input.content, available_tools)

        if use_tools:
            with log.step("tool_generation") as entry:
                response = await self.runner.execute_step_with_tools(
                    params.input.content, params.context, available_tools, self.pattern
                )
                entry.result = summarize(response.content)
        else:
            with log.step("execute_flow") as entry:
                flow_result = await self.flow_router.execute_flow(
                    flow,
                    FlowParameters(input=params.input, context=params.context, intent=intent),
                )
                response = flow_result.response
                entry.result = {"flow": flow.id, "state": flow_result.flow_state.current_step}

        return self.build_result(response, params.context, log)
