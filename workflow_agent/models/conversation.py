"""
Conversation Schemas

Defines the user-facing conversation records shared by every workflow
pattern: user input, conversation context, chat messages and the
next-step actions attached to agent responses.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class MessageRole(str, Enum):
    """Role of a conversation message."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class ActionType(str, Enum):
    """Kinds of follow-up actions offered to the user."""
    ANALYZE_PRODUCT = "analyze_product"
    VIEW_RECOMMENDATIONS = "view_recommendations"
    OPEN_SEO_OPTIMIZER = "open_seo_optimizer"
    CREATE_CAMPAIGN = "create_campaign"
    VIEW_ANALYTICS = "view_analytics"
    MANAGE_INVENTORY = "manage_inventory"
    UPDATE_PROFILE = "update_profile"
    ASK_QUESTION = "ask_question"


class Message(BaseModel):
    """A single conversation turn, also used as an LLM request message."""

    id: str = Field(default_factory=lambda: f"msg-{uuid.uuid4().hex[:12]}")
    role: MessageRole = Field(..., description="Author role of the message")
    content: str = Field(default="", description="Message text")
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)


class NextStepAction(BaseModel):
    """A suggested follow-up action rendered alongside a response."""

    id: str = Field(..., description="Stable action identifier, used for de-duplication")
    title: str = Field(..., description="Short label")
    description: str = Field(default="", description="Longer explanation")
    action_type: ActionType = Field(default=ActionType.ASK_QUESTION)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class UserInput(BaseModel):
    """Raw user request plus the identifiers it arrived with."""

    content: str = Field(..., description="Raw user text")
    user_id: str = Field(default="anonymous")
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = Field(default_factory=datetime.now)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Reject blank user input."""
        if not v or not v.strip():
            raise ValueError("User input content cannot be empty")
        return v


class ConversationContext(BaseModel):
    """Conversation state owned by the context manager.

    Pattern handlers receive it by reference for the duration of one
    request and only ever build local copies of it.
    """

    user_id: str = Field(default="anonymous")
    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    conversation_history: List[Message] = Field(default_factory=list)
    business_data: Dict[str, Any] = Field(default_factory=dict)
    current_flow: Optional[str] = None
    active_product: Optional[str] = None
    user_preferences: Dict[str, Any] = Field(default_factory=dict)
    last_updated: datetime = Field(default_factory=datetime.now)

    def with_message(self, message: Message) -> "ConversationContext":
        """Return a copy of this context with ``message`` appended to the history."""
        return self.model_copy(
            update={
                "conversation_history": [*self.conversation_history, message],
                "last_updated": datetime.now(),
            }
        )

    def recent_history(self, limit: int = 3) -> List[Message]:
        """Return the last ``limit`` conversation turns."""
        if limit <= 0:
            return []
        return list(self.conversation_history[-limit:])
