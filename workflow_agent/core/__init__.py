"""
Core infrastructure module for the workflow agent.

Provides the LLM provider abstraction, logging and observability.
"""

from .llm_client import (
    BaseLLMProvider,
    EchoLLMProvider,
    InMemoryProviderRegistry,
    LLMConfig,
    LLMProviderFactory,
    LLMProviderRegistry,
    LLMProviderType,
    LLMResponse,
    OpenAICompatibleProvider,
    TextGenerationRequest,
    ToolGenerationRequest,
)
from .observability import (
    LogLevel,
    ObservabilityConfig,
    ObservabilityManager,
    log_execution,
    record_metric,
    span,
)

__all__ = [
    # LLM
    "BaseLLMProvider",
    "EchoLLMProvider",
    "InMemoryProviderRegistry",
    "LLMConfig",
    "LLMProviderFactory",
    "LLMProviderRegistry",
    "LLMProviderType",
    "LLMResponse",
    "OpenAICompatibleProvider",
    "TextGenerationRequest",
    "ToolGenerationRequest",
    # Observability
    "LogLevel",
    "ObservabilityConfig",
    "ObservabilityManager",
    "log_execution",
    "record_metric",
    "span",
]
