"""
In-process default collaborators for the workflow agent.
"""

from workflow_agent.integrations.context_store import InMemoryContextManager
from workflow_agent.integrations.flow_router import KeywordFlowRouter, default_flows
from workflow_agent.integrations.tool_registry import InMemoryToolRegistry

__all__ = [
    "InMemoryContextManager",
    "KeywordFlowRouter",
    "default_flows",
    "InMemoryToolRegistry",
]
