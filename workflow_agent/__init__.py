"""
Workflow Agent: pattern-based orchestration for an LLM business assistant

Routes classified user requests through one of several execution patterns
(sequential chaining, routing, parallel fan-out, orchestrator-workers,
evaluator-optimizer), tracks per-pattern metrics, and always answers with
a valid response.
"""

__version__ = "0.1.0"

# Core components
from workflow_agent.core.llm_client import (
    EchoLLMProvider,
    InMemoryProviderRegistry,
    LLMConfig,
    LLMProviderFactory,
)
from workflow_agent.core.observability import ObservabilityConfig, ObservabilityManager

# Agent framework
from workflow_agent.agent import (
    AgentConfig,
    AgentError,
    ErrorCode,
    WorkflowAgent,
    WorkflowConfig,
    WorkflowHandler,
    select_pattern,
)

# Models
from workflow_agent.models import (
    AgentResponse,
    ConversationContext,
    IntentClassification,
    PatternType,
    UserInput,
    WorkflowParameters,
    WorkflowResult,
)

__all__ = [
    "__version__",
    "EchoLLMProvider",
    "InMemoryProviderRegistry",
    "LLMConfig",
    "LLMProviderFactory",
    "ObservabilityConfig",
    "ObservabilityManager",
    "AgentConfig",
    "AgentError",
    "ErrorCode",
    "WorkflowAgent",
    "WorkflowConfig",
    "WorkflowHandler",
    "select_pattern",
    "AgentResponse",
    "ConversationContext",
    "IntentClassification",
    "PatternType",
    "UserInput",
    "WorkflowParameters",
    "WorkflowResult",
]
