"""
In-memory conversation context store keyed by session id.
"""

import logging
import threading
from typing import Dict, Optional

from workflow_agent.agent.contracts import ContextManager
from workflow_agent.models.conversation import ConversationContext

logger = logging.getLogger(__name__)


class InMemoryContextManager(ContextManager):
    """Keeps the latest context per session, optionally trimming history."""

    def __init__(self, max_history: Optional[int] = None):
        self.max_history = max_history
        self._contexts: Dict[str, ConversationContext] = {}
        self._lock = threading.Lock()

    async def update_context(self, context: ConversationContext) -> None:
        if self.max_history is not None and len(context.conversation_history) > self.max_history:
            context = context.model_copy(
                update={"conversation_history": context.conversation_history[-self.max_history:]}
            )
        with self._lock:
            self._contexts[context.session_id] = context
        logger.debug(
            f"Stored context for session {context.session_id}",
            extra={"turns": len(context.conversation_history)},
        )

    def get_context(self, session_id: str) -> Optional[ConversationContext]:
        with self._lock:
            return self._contexts.get(session_id)

    def get_or_create(self, session_id: str, user_id: str = "anonymous") -> ConversationContext:
        with self._lock:
            context = self._contexts.get(session_id)
            if context is None:
                context = ConversationContext(user_id=user_id, session_id=session_id)
                self._contexts[session_id] = context
            return context

    def clear(self, session_id: Optional[str] = None) -> None:
        with self._lock:
            if session_id is None:
                self._contexts.clear()
            else:
                self._contexts.pop(session_id, None)
