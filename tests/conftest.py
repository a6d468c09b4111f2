"""Pytest configuration for workflow-agent tests."""

import sys
from pathlib import Path
from typing import Callable, List, Optional, Union

import pytest

# Add the project root to the path
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from workflow_agent.agent import AgentConfig, WorkflowAgent  # noqa: E402
from workflow_agent.agent.contracts import ContextManager, FlowRouter  # noqa: E402
from workflow_agent.core.llm_client import (  # noqa: E402
    BaseLLMProvider,
    InMemoryProviderRegistry,
    LLMResponse,
    TextGenerationRequest,
    ToolGenerationRequest,
)
from workflow_agent.models import (  # noqa: E402
    ConversationContext,
    ConversationFlow,
    FlowCategory,
    FlowParameters,
    FlowResult,
    IntentClassification,
    MessageRole,
    PatternType,
    UserInput,
    WorkflowParameters,
)
from workflow_agent.models.workflow import AgentResponse, ResponseMetadata  # noqa: E402

# Configure pytest-asyncio
pytest_plugins = ("pytest_asyncio",)


def pytest_configure(config):
    """Configure pytest with asyncio support."""
    config.option.asyncio_mode = "auto"


# ===========================
# Test doubles
# ===========================


Reply = Union[str, LLMResponse, Exception]


class ScriptedProvider(BaseLLMProvider):
    """LLM provider answering from a script.

    ``replies`` is consumed in order; once exhausted, ``default`` is used.
    A callable ``default`` receives the request and returns a reply.
    """

    def __init__(
        self,
        replies: Optional[List[Reply]] = None,
        default: Union[Reply, Callable[[TextGenerationRequest], Reply]] = "Scripted answer",
        supports_tools: bool = False,
        tool_replies: Optional[List[Reply]] = None,
        name: str = "scripted",
    ):
        self.name = name
        self.replies = list(replies or [])
        self.tool_replies = list(tool_replies or [])
        self.default = default
        self._supports_tools = supports_tools
        self.text_requests: List[TextGenerationRequest] = []
        self.tool_requests: List[ToolGenerationRequest] = []

    @property
    def supports_tools(self) -> bool:
        return self._supports_tools

    def _next(self, queue: List[Reply], request) -> LLMResponse:
        if queue:
            reply = queue.pop(0)
        elif callable(self.default) and not isinstance(self.default, Exception):
            reply = self.default(request)
        else:
            reply = self.default
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, LLMResponse):
            return reply
        return LLMResponse(content=reply, model="scripted")

    async def generate_text(self, request: TextGenerationRequest) -> LLMResponse:
        self.text_requests.append(request)
        return self._next(self.replies, request)

    async def generate_with_tools(self, request: ToolGenerationRequest) -> LLMResponse:
        self.tool_requests.append(request)
        return self._next(self.tool_replies, request)


def last_user_message(request: TextGenerationRequest) -> str:
    users = [m for m in request.messages if m.role == MessageRole.USER]
    return users[-1].content if users else ""


class StaticFlowRouter(FlowRouter):
    """Flow router that always returns the same intent."""

    def __init__(self, intent: Optional[IntentClassification] = None):
        self.intent = intent or IntentClassification(
            name="general_inquiry", confidence=0.9, category=FlowCategory.GENERAL
        )
        self.flow = ConversationFlow(id="general_assistance", name="General Assistance")
        self.classify_calls = 0
        self.executed: List[FlowParameters] = []

    async def classify_intent(self, user_input, context) -> IntentClassification:
        self.classify_calls += 1
        return self.intent

    def select_flow(self, intent) -> ConversationFlow:
        return self.flow

    async def execute_flow(self, flow, parameters) -> FlowResult:
        self.executed.append(parameters)
        return FlowResult(
            response=AgentResponse(
                content=f"flow:{flow.id}",
                metadata=ResponseMetadata(workflow=PatternType.ROUTING, confidence=0.7),
            )
        )


class RecordingContextManager(ContextManager):
    def __init__(self):
        self.updates: List[ConversationContext] = []

    async def update_context(self, context: ConversationContext) -> None:
        self.updates.append(context)


# ===========================
# Fixtures
# ===========================


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def llm_registry(provider):
    return InMemoryProviderRegistry([provider])


@pytest.fixture
def flow_router():
    return StaticFlowRouter()


@pytest.fixture
def context_manager():
    return RecordingContextManager()


@pytest.fixture
def agent_config():
    return AgentConfig(enable_logging=False, enable_metrics=False, enable_tracing=False)


@pytest.fixture
async def agent(flow_router, llm_registry, context_manager, agent_config):
    """Initialized agent wired to test doubles."""
    workflow_agent = WorkflowAgent(
        flow_router=flow_router,
        llm_registry=llm_registry,
        context_manager=context_manager,
        config=agent_config,
    )
    await workflow_agent.initialize()
    yield workflow_agent
    await workflow_agent.shutdown()


@pytest.fixture
def user_input():
    return UserInput(content="How can I help my store?", user_id="user-1", session_id="session-1")


@pytest.fixture
def context():
    return ConversationContext(user_id="user-1", session_id="session-1")


@pytest.fixture
def make_params(user_input, context):
    def _make(content: Optional[str] = None, **options) -> WorkflowParameters:
        input_ = user_input if content is None else UserInput(content=content)
        return WorkflowParameters(input=input_, context=context, options=options)

    return _make
