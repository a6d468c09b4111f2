"""
Workflow Schemas

Defines the execution pattern enumeration, workflow parameters and
results, the agent response envelope, and the runtime records kept for
per-pattern metrics and process-wide status.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from workflow_agent.models.conversation import ConversationContext, NextStepAction, UserInput


class PatternType(str, Enum):
    """Execution patterns the agent can route a request through."""
    SEQUENTIAL_CHAINING = "sequential_chaining"
    ROUTING = "routing"
    PARALLEL_FANOUT = "parallel_fanout"
    ORCHESTRATOR_WORKERS = "orchestrator_workers"
    EVALUATOR_OPTIMIZER = "evaluator_optimizer"
    AUTONOMOUS = "autonomous"  # Extension point, no built-in handler


BUILTIN_PATTERNS = (
    PatternType.SEQUENTIAL_CHAINING,
    PatternType.ROUTING,
    PatternType.PARALLEL_FANOUT,
    PatternType.ORCHESTRATOR_WORKERS,
    PatternType.EVALUATOR_OPTIMIZER,
)


class ComplexityTier(str, Enum):
    """Complexity tiers assigned by the orchestrator-workers task analysis."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResponseMetadata(BaseModel):
    """Metadata attached to every agent response.

    Extra keys (``tools_used``, ``error_recovery``, ``flow_id`` ...) are
    kept as-is.
    """

    model_config = ConfigDict(extra="allow")

    processing_time: float = Field(default=0.0, ge=0.0, description="Elapsed milliseconds")
    provider: str = Field(default="unknown", description="Name of the LLM provider used")
    workflow: PatternType = Field(default=PatternType.ROUTING)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class AgentResponse(BaseModel):
    """Response returned to the caller of the agent."""

    content: str = Field(..., description="Response text")
    next_step_actions: List[NextStepAction] = Field(default_factory=list)
    metadata: ResponseMetadata = Field(default_factory=ResponseMetadata)


class WorkflowParameters(BaseModel):
    """Inputs handed to a pattern handler."""

    input: UserInput
    context: ConversationContext
    options: Dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form options, e.g. the selected flow and intent",
    )


class WorkflowStep(BaseModel):
    """One entry of the ordered step log kept by a handler."""

    id: str
    type: str
    start_time: datetime
    end_time: datetime
    result: Any = None


class ExecutionMetadata(BaseModel):
    """Execution details attached to a workflow result."""

    steps: List[WorkflowStep] = Field(default_factory=list)
    total_time: float = Field(default=0.0, description="Elapsed milliseconds")
    tokens_used: int = Field(default=0, description="Not computed, always 0")
    errors: List[Any] = Field(default_factory=list, description="AgentError instances")


class WorkflowResult(BaseModel):
    """Result produced by a pattern handler."""

    response: AgentResponse
    updated_context: ConversationContext
    execution_metadata: ExecutionMetadata = Field(default_factory=ExecutionMetadata)


class ErrorResponse(BaseModel):
    """Outcome of routing an error through the recovery coordinator."""

    message: str
    suggested_actions: List[NextStepAction] = Field(default_factory=list)
    fallback_response: Optional[AgentResponse] = None
    error_code: str


@dataclass
class PatternMetrics:
    """Running statistics for one pattern."""

    type: PatternType
    execution_count: int = 0
    average_execution_time: float = 0.0
    success_rate: float = 1.0
    last_executed: datetime = field(default_factory=datetime.now)


@dataclass
class AgentStatus:
    """Process-wide request counters."""

    is_running: bool = False
    active_workflows: int = 0
    total_requests: int = 0
    error_rate: float = 0.0
    average_response_time: float = 0.0


@dataclass
class TaskAnalysis:
    """Heuristic complexity analysis of a task."""

    complexity: ComplexityTier
    required_capabilities: List[str] = field(default_factory=list)
    estimated_time: int = 0


@dataclass
class Worker:
    """A worker created for one orchestrator-workers run."""

    id: str
    capabilities: List[str] = field(default_factory=list)
    specialization: str = "general"


@dataclass
class ResponseEvaluation:
    """Rubric evaluation of a candidate response."""

    score: float
    feedback: str = ""
    improvement_areas: List[str] = field(default_factory=list)
