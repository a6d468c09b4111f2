"""
Intent and Flow Schemas

Records exchanged with the flow router: the intent classification that
drives pattern selection and the conversation flows it executes.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from workflow_agent.models.conversation import ConversationContext, NextStepAction, UserInput
from workflow_agent.models.workflow import AgentResponse


class FlowCategory(str, Enum):
    """Business areas a request can be classified into."""
    BUSINESS_PERFORMANCE = "business_performance"
    PRODUCT_MANAGEMENT = "product_management"
    MARKETING = "marketing"
    ACCOUNT_MANAGEMENT = "account_management"
    GENERAL = "general"


class Entity(BaseModel):
    """An entity extracted from the user request."""

    name: str = Field(..., description="Entity type, e.g. 'product_list'")
    value: str = Field(default="")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class IntentClassification(BaseModel):
    """Intent inferred for a user request."""

    name: str = Field(..., description="Intent name, e.g. 'seo_analysis'")
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    entities: List[Entity] = Field(default_factory=list)
    category: FlowCategory = Field(default=FlowCategory.GENERAL)


class ConversationFlow(BaseModel):
    """A catalogued conversation flow."""

    id: str
    name: str
    description: str = ""
    category: FlowCategory = FlowCategory.GENERAL
    required_tools: List[str] = Field(default_factory=list)
    next_step_actions: List[NextStepAction] = Field(default_factory=list)


class FlowState(BaseModel):
    """Progress of a flow execution."""

    current_step: str = "initialize"
    completed_steps: List[str] = Field(default_factory=list)
    variables: Dict[str, Any] = Field(default_factory=dict)


class FlowParameters(BaseModel):
    """Inputs for executing a flow."""

    input: UserInput
    context: ConversationContext
    intent: IntentClassification


class FlowResult(BaseModel):
    """Result of executing a flow."""

    response: AgentResponse
    flow_state: FlowState = Field(default_factory=FlowState)
    next_flow: Optional[str] = None
