"""
Error Recovery Coordination

Turns any agent error into a user-facing response with suggested next
steps, plus a best-effort fallback response for recoverable errors.
Custom per-code handlers can be registered and run before the built-in
mapping. ``handle_error`` always returns a value.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional

from workflow_agent.agent.errors import AgentError, ErrorCode, as_agent_error
from workflow_agent.models.conversation import ActionType, ConversationContext, NextStepAction
from workflow_agent.models.workflow import AgentResponse, ErrorResponse, PatternType, ResponseMetadata

logger = logging.getLogger(__name__)

CustomErrorHandler = Callable[[AgentError, ConversationContext], Awaitable[ErrorResponse]]

GENERIC_FALLBACK_MESSAGE = (
    "I'm having trouble processing your request right now. "
    "Could you please rephrase or try a different approach?"
)

FRIENDLY_MESSAGES = {
    ErrorCode.LLM_PROVIDER_UNAVAILABLE.value: (
        "The AI service is temporarily unavailable. Please try again in a moment."
    ),
    ErrorCode.TOOL_EXECUTION_FAILED.value: (
        "I had trouble accessing the requested information. Let me try a different approach."
    ),
    ErrorCode.CONTEXT_UNAVAILABLE.value: "I need a bit more context to help you effectively.",
    ErrorCode.WORKFLOW_EXECUTION_FAILED.value: "I encountered an issue processing your request.",
}
DEFAULT_FRIENDLY_MESSAGE = "Something unexpected happened, but I'm still here to help."

# code -> (action id, title, description)
SUGGESTED_ACTIONS = {
    ErrorCode.LLM_PROVIDER_UNAVAILABLE.value: (
        "retry_request",
        "Try again",
        "Retry your request with a different approach",
    ),
    ErrorCode.TOOL_EXECUTION_FAILED.value: (
        "manual_alternative",
        "Manual approach",
        "Let me help you accomplish this manually",
    ),
    ErrorCode.CONTEXT_UNAVAILABLE.value: (
        "provide_context",
        "Provide more details",
        "Share more information about what you need",
    ),
}
DEFAULT_SUGGESTED_ACTION = ("general_help", "Get help", "Let me know how I can assist you differently")


@dataclass
class ErrorStats:
    """Counters over every error routed through the coordinator."""

    total_errors: int = 0
    errors_by_code: Dict[str, int] = field(default_factory=dict)
    recovery_rate: float = 0.0
    last_error: Optional[datetime] = None


def user_friendly_message(error: AgentError) -> str:
    return FRIENDLY_MESSAGES.get(error.code, DEFAULT_FRIENDLY_MESSAGE)


def suggested_actions(error: AgentError):
    action_id, title, description = SUGGESTED_ACTIONS.get(error.code, DEFAULT_SUGGESTED_ACTION)
    return [
        NextStepAction(
            id=action_id,
            title=title,
            description=description,
            action_type=ActionType.ASK_QUESTION,
        )
    ]


def create_fallback_response() -> AgentResponse:
    """Generic response used when no recovery response could be built."""
    return AgentResponse(
        content=GENERIC_FALLBACK_MESSAGE,
        next_step_actions=[
            NextStepAction(
                id="rephrase",
                title="Rephrase request",
                description="Try asking in a different way",
                action_type=ActionType.ASK_QUESTION,
            )
        ],
        metadata=ResponseMetadata(
            processing_time=0.0,
            provider="fallback",
            workflow=PatternType.ROUTING,
            confidence=0.3,
        ),
    )


def create_graceful_fallback_response(error: AgentError) -> AgentResponse:
    return AgentResponse(
        content=f"I encountered an issue, but I'm here to help. {user_friendly_message(error)}",
        next_step_actions=[
            NextStepAction(
                id="retry",
                title="Try again",
                description="Rephrase your request and try again",
                action_type=ActionType.ASK_QUESTION,
            ),
            NextStepAction(
                id="help",
                title="Get help",
                description="Learn about what I can help you with",
                action_type=ActionType.VIEW_ANALYTICS,
            ),
        ],
        metadata=ResponseMetadata(
            processing_time=0.0,
            provider="fallback",
            workflow=PatternType.ROUTING,
            confidence=0.5,
            error_recovery=True,
        ),
    )


class ErrorRecoveryCoordinator:
    """
    Maps errors to user-facing recovery responses.

    Supports:
    - Per-code custom handlers, tried before the built-in mapping
    - A fallback response for recoverable errors
    - Running error statistics
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, CustomErrorHandler] = {}
        self._stats = ErrorStats()
        self._recovered = 0
        self._lock = threading.Lock()

    def register_error_handler(self, code, handler: CustomErrorHandler) -> None:
        """Register a custom async handler for one error code.

        Args:
            code: ErrorCode or raw code string
            handler: ``async (error, context) -> ErrorResponse``
        """
        key = code.value if isinstance(code, ErrorCode) else str(code)
        self._handlers[key] = handler
        logger.debug(f"Registered custom error handler for {key}")

    async def handle_error(self, error: BaseException, context: ConversationContext) -> ErrorResponse:
        """Build the recovery response for ``error``. Never raises.

        Untagged exceptions are converted to ``UNKNOWN_ERROR`` first.
        """
        error = as_agent_error(error)
        logger.warning(
            f"Handling agent error {error.code}: {error.message}",
            extra={"error": error.to_dict()},
        )

        response = None
        custom = self._handlers.get(error.code)
        if custom is not None:
            try:
                response = await custom(error, context)
            except Exception as e:
                logger.error(f"Custom error handler for {error.code} failed: {e}", exc_info=True)

        if response is None:
            try:
                response = self._builtin_response(error)
            except Exception as e:
                logger.error(f"Building recovery response for {error.code} failed: {e}", exc_info=True)
                response = ErrorResponse(
                    message=DEFAULT_FRIENDLY_MESSAGE,
                    fallback_response=create_fallback_response(),
                    error_code=str(error.code),
                )

        try:
            self._record(error, recovered=response.fallback_response is not None)
        except Exception as e:
            logger.error(f"Recording error statistics failed: {e}", exc_info=True)
        return response

    def _builtin_response(self, error: AgentError) -> ErrorResponse:
        fallback = create_graceful_fallback_response(error) if error.recoverable else None
        return ErrorResponse(
            message=user_friendly_message(error),
            suggested_actions=suggested_actions(error),
            fallback_response=fallback,
            error_code=error.code,
        )

    def _record(self, error: AgentError, recovered: bool) -> None:
        with self._lock:
            self._stats.total_errors += 1
            self._stats.errors_by_code[error.code] = self._stats.errors_by_code.get(error.code, 0) + 1
            if recovered:
                self._recovered += 1
            self._stats.recovery_rate = self._recovered / self._stats.total_errors
            self._stats.last_error = error.timestamp

    def get_error_stats(self) -> ErrorStats:
        with self._lock:
            return ErrorStats(
                total_errors=self._stats.total_errors,
                errors_by_code=dict(self._stats.errors_by_code),
                recovery_rate=self._stats.recovery_rate,
                last_error=self._stats.last_error,
            )


__all__ = [
    "ErrorStats",
    "ErrorRecoveryCoordinator",
    "create_fallback_response",
    "create_graceful_fallback_response",
    "user_friendly_message",
]
