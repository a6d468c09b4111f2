"""
Agent Configuration Schema

Defines configuration for the WorkflowAgent including provider
preferences, the enabled workflow patterns, and observability flags.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from workflow_agent.models.workflow import BUILTIN_PATTERNS, PatternType

logger = logging.getLogger(__name__)


@dataclass
class WorkflowConfig:
    """Configuration for one workflow pattern."""

    type: PatternType
    enabled: bool = True
    parameters: Dict[str, Any] = field(default_factory=dict)


def _default_workflows() -> List[WorkflowConfig]:
    return [WorkflowConfig(type=pattern) for pattern in BUILTIN_PATTERNS]


@dataclass
class AgentConfig:
    """Complete agent configuration."""

    # LLM provider preferences
    llm_provider: str = "echo"

    # Workflow patterns with metrics tracking
    workflows: List[WorkflowConfig] = field(default_factory=_default_workflows)

    # Observability
    enable_logging: bool = True
    enable_metrics: bool = True
    enable_tracing: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    @property
    def enabled_patterns(self) -> List[PatternType]:
        """Patterns whose metrics are tracked after initialization."""
        return [workflow.type for workflow in self.workflows if workflow.enabled]

    def workflow_parameters(self, pattern: PatternType) -> Dict[str, Any]:
        """Configured parameters for ``pattern`` (empty when unconfigured)."""
        for workflow in self.workflows:
            if workflow.type == pattern:
                return dict(workflow.parameters)
        return {}

    @classmethod
    def default(cls) -> "AgentConfig":
        """Configuration with every built-in pattern enabled."""
        return cls()

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Create agent config from environment variables.

        Returns:
            AgentConfig instance
        """
        return cls(
            llm_provider=os.getenv("WORKFLOW_AGENT_PROVIDER", "echo"),
            workflows=parse_workflows(os.getenv("WORKFLOW_AGENT_ENABLED_WORKFLOWS")),
            log_level=os.getenv("WORKFLOW_AGENT_LOG_LEVEL", "INFO").upper(),
        )


def parse_workflows(value: Optional[str]) -> List[WorkflowConfig]:
    """Parse a comma separated list of pattern names.

    Unknown names are skipped. ``None`` or an empty value enables every
    built-in pattern.
    """
    if not value or not value.strip():
        return _default_workflows()

    workflows: List[WorkflowConfig] = []
    for name in value.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            workflows.append(WorkflowConfig(type=PatternType(name)))
        except ValueError:
            logger.warning(f"Ignoring unknown workflow pattern '{name}'")
    return workflows
