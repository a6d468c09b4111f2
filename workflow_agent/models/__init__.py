"""
Data models for the workflow agent.
"""

from workflow_agent.models.conversation import (
    ActionType,
    ConversationContext,
    Message,
    MessageRole,
    NextStepAction,
    UserInput,
)
from workflow_agent.models.intent import (
    ConversationFlow,
    Entity,
    FlowCategory,
    FlowParameters,
    FlowResult,
    FlowState,
    IntentClassification,
)
from workflow_agent.models.tools import (
    BusinessTool,
    ToolCall,
    ToolCallResult,
    ToolDefinition,
    ToolResult,
)
from workflow_agent.models.workflow import (
    BUILTIN_PATTERNS,
    AgentResponse,
    AgentStatus,
    ComplexityTier,
    ErrorResponse,
    ExecutionMetadata,
    PatternMetrics,
    PatternType,
    ResponseEvaluation,
    ResponseMetadata,
    TaskAnalysis,
    Worker,
    WorkflowParameters,
    WorkflowResult,
    WorkflowStep,
)

__all__ = [
    # Conversation
    "ActionType",
    "ConversationContext",
    "Message",
    "MessageRole",
    "NextStepAction",
    "UserInput",
    # Intent and flows
    "ConversationFlow",
    "Entity",
    "FlowCategory",
    "FlowParameters",
    "FlowResult",
    "FlowState",
    "IntentClassification",
    # Tools
    "BusinessTool",
    "ToolCall",
    "ToolCallResult",
    "ToolDefinition",
    "ToolResult",
    # Workflow
    "BUILTIN_PATTERNS",
    "AgentResponse",
    "AgentStatus",
    "ComplexityTier",
    "ErrorResponse",
    "ExecutionMetadata",
    "PatternMetrics",
    "PatternType",
    "ResponseEvaluation",
    "ResponseMetadata",
    "TaskAnalysis",
    "Worker",
    "WorkflowParameters",
    "WorkflowResult",
    "WorkflowStep",
]
