"""
Tests for agent and LLM configuration.
"""

from unittest.mock import patch

import pytest

from workflow_agent.agent.config import AgentConfig, WorkflowConfig, parse_workflows
from workflow_agent.core.llm_client import LLMConfig, LLMProviderType
from workflow_agent.models import BUILTIN_PATTERNS, PatternType


class TestAgentConfig:
    """Test AgentConfig."""

    def test_default_config(self):
        """Test default configuration enables every built-in pattern."""
        config = AgentConfig.default()
        assert config.llm_provider == "echo"
        assert config.enable_logging is True
        assert config.enabled_patterns == list(BUILTIN_PATTERNS)

    def test_disabled_workflows_are_skipped(self):
        """Test disabled workflows are not part of the enabled patterns."""
        config = AgentConfig(
            workflows=[
                WorkflowConfig(type=PatternType.ROUTING),
                WorkflowConfig(type=PatternType.PARALLEL_FANOUT, enabled=False),
            ]
        )
        assert config.enabled_patterns == [PatternType.ROUTING]

    def test_workflow_parameters(self):
        """Test per-pattern parameters are returned as a copy."""
        config = AgentConfig(
            workflows=[WorkflowConfig(type=PatternType.EVALUATOR_OPTIMIZER, parameters={"max_iterations": 2})]
        )
        params = config.workflow_parameters(PatternType.EVALUATOR_OPTIMIZER)
        params["max_iterations"] = 9
        assert config.workflow_parameters(PatternType.EVALUATOR_OPTIMIZER) == {"max_iterations": 2}
        assert config.workflow_parameters(PatternType.ROUTING) == {}

    def test_from_env(self):
        """Test loading configuration from environment."""
        with patch.dict(
            "os.environ",
            {
                "WORKFLOW_AGENT_PROVIDER": "openai",
                "WORKFLOW_AGENT_ENABLED_WORKFLOWS": "routing,evaluator_optimizer",
                "WORKFLOW_AGENT_LOG_LEVEL": "debug",
            },
        ):
            config = AgentConfig.from_env()

        assert config.llm_provider == "openai"
        assert config.enabled_patterns == [PatternType.ROUTING, PatternType.EVALUATOR_OPTIMIZER]
        assert config.log_level == "DEBUG"

    def test_from_env_defaults(self):
        """Test defaults when nothing is set."""
        with patch.dict("os.environ", {}, clear=True):
            config = AgentConfig.from_env()
        assert config.llm_provider == "echo"
        assert config.enabled_patterns == list(BUILTIN_PATTERNS)


class TestParseWorkflows:
    """Test the comma separated pattern list parser."""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_empty_enables_everything(self, value):
        """Test missing values enable all built-in patterns."""
        assert [w.type for w in parse_workflows(value)] == list(BUILTIN_PATTERNS)

    def test_unknown_names_are_skipped(self):
        """Test unknown names are ignored and case is normalised."""
        workflows = parse_workflows("ROUTING, teleport ,parallel_fanout")
        assert [w.type for w in workflows] == [PatternType.ROUTING, PatternType.PARALLEL_FANOUT]


class TestLLMConfig:
    """Test LLMConfig."""

    def test_base_url_trailing_slash(self):
        """Test trailing slashes are stripped."""
        assert LLMConfig(base_url="http://localhost:8080/v1/").base_url == "http://localhost:8080/v1"

    def test_from_env(self):
        """Test loading LLM configuration from environment."""
        with patch.dict(
            "os.environ",
            {
                "LLM_PROVIDER": "OpenAI",
                "LLM_BASE_URL": "http://llm.local/v1",
                "LLM_MODEL": "small-model",
                "LLM_TEMPERATURE": "0.2",
                "LLM_MAX_TOKENS": "256",
            },
        ):
            config = LLMConfig.from_env()

        assert config.provider == LLMProviderType.OPENAI
        assert config.base_url == "http://llm.local/v1"
        assert config.model == "small-model"
        assert config.temperature == 0.2
        assert config.max_tokens == 256

    def test_zero_max_tokens_means_unset(self):
        """Test LLM_MAX_TOKENS=0 leaves the limit unset."""
        with patch.dict("os.environ", {"LLM_MAX_TOKENS": "0"}, clear=True):
            assert LLMConfig.from_env().max_tokens is None
