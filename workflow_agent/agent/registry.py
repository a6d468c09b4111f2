"""
Workflow Handler Registry

A handler implements one execution pattern behind a small interface:
``validate`` the parameters, ``execute`` them, and report its
``required_capabilities``. Built-in patterns and custom extensions
register the same way; registering a second handler for a pattern
replaces the first.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, FrozenSet, List, Optional

from workflow_agent.models.workflow import PatternType, WorkflowParameters, WorkflowResult

logger = logging.getLogger(__name__)


class WorkflowHandler(ABC):
    """Pluggable implementation of one execution pattern."""

    pattern: Optional[PatternType] = None

    def validate(self, params: WorkflowParameters) -> bool:
        """Return True when ``params`` can be executed by this handler."""
        return bool(params.input.content and params.input.content.strip())

    @abstractmethod
    async def execute(self, params: WorkflowParameters) -> WorkflowResult:
        """Run the pattern. Failures propagate to the executor."""
        pass

    def required_capabilities(self) -> FrozenSet[str]:
        return frozenset()

    def configure(self, parameters: Dict[str, Any]) -> None:
        """Apply per-pattern configuration to the handler's tunable attributes.

        Names that are not plain public attributes of the handler are skipped
        with a warning.
        """
        for name, value in parameters.items():
            if name.startswith("_") or not hasattr(self, name) or callable(getattr(self, name)):
                logger.warning(
                    f"Ignoring unknown parameter '{name}' for {type(self).__name__}",
                    extra={"parameter": name},
                )
                continue
            setattr(self, name, value)


class HandlerRegistry:
    """Mapping from pattern to its active handler, owned by one agent."""

    def __init__(self) -> None:
        self._handlers: Dict[PatternType, WorkflowHandler] = {}

    def register(self, pattern: PatternType, handler: WorkflowHandler) -> None:
        previous = self._handlers.get(pattern)
        self._handlers[pattern] = handler
        if previous is not None and previous is not handler:
            logger.info(
                f"Replaced handler for {pattern.value}",
                extra={"previous": type(previous).__name__, "handler": type(handler).__name__},
            )
        else:
            logger.debug(f"Registered handler for {pattern.value}")

    def get(self, pattern: PatternType) -> Optional[WorkflowHandler]:
        return self._handlers.get(pattern)

    def patterns(self) -> List[PatternType]:
        return list(self._handlers)

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)


__all__ = ["WorkflowHandler", "HandlerRegistry"]
