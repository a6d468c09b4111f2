"""
Agent Errors

Tagged error values raised inside the workflow engine. Every error carries
its code and whether the orchestrator may recover from it with a
generated fallback response.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union


class ErrorCode(str, Enum):
    """Error codes produced or recognised by the agent."""

    WORKFLOW_NOT_FOUND = "WORKFLOW_NOT_FOUND"
    INVALID_WORKFLOW_PARAMETERS = "INVALID_WORKFLOW_PARAMETERS"
    WORKFLOW_EXECUTION_FAILED = "WORKFLOW_EXECUTION_FAILED"
    LLM_PROVIDER_UNAVAILABLE = "LLM_PROVIDER_UNAVAILABLE"
    NO_RESPONSES_TO_AGGREGATE = "NO_RESPONSES_TO_AGGREGATE"
    WORKFLOW_METRICS_NOT_FOUND = "WORKFLOW_METRICS_NOT_FOUND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    # Raised by collaborators, understood by the recovery coordinator
    TOOL_EXECUTION_FAILED = "TOOL_EXECUTION_FAILED"
    CONTEXT_UNAVAILABLE = "CONTEXT_UNAVAILABLE"
    FLOW_EXECUTION_ERROR = "FLOW_EXECUTION_ERROR"


class AgentError(Exception):
    """Error carrying a code, details and recovery intent."""

    def __init__(
        self,
        code: Union[ErrorCode, str],
        message: str,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        timestamp: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.code = code.value if isinstance(code, ErrorCode) else code
        self.message = message
        self.details: Dict[str, Any] = details or {}
        self.recoverable = recoverable
        self.timestamp = timestamp or datetime.now()

    @property
    def original_error(self) -> Optional[BaseException]:
        """The wrapped error, if this error wraps another one."""
        return self.details.get("original_error")

    def root_cause(self) -> BaseException:
        """Follow ``original_error`` links down to the innermost error."""
        error: BaseException = self
        while isinstance(error, AgentError) and error.original_error is not None:
            error = error.original_error
        return error

    def to_dict(self) -> Dict[str, Any]:
        """Log-friendly representation."""
        return {
            "code": self.code,
            "message": self.message,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
            "details": {key: str(value)[:200] for key, value in self.details.items()},
        }

    def __repr__(self) -> str:
        return f"AgentError(code={self.code!r}, message={self.message!r}, recoverable={self.recoverable})"


def as_agent_error(error: BaseException) -> AgentError:
    """Return ``error`` itself if tagged, otherwise wrap it as ``UNKNOWN_ERROR``."""
    if isinstance(error, AgentError):
        return error
    return AgentError(
        code=ErrorCode.UNKNOWN_ERROR,
        message=str(error) or "Unknown error occurred",
        details={"original_error": error},
        recoverable=True,
    )


__all__ = ["ErrorCode", "AgentError", "as_agent_error"]
