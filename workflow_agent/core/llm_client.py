"""
LLM Provider Abstraction Layer

Narrow provider contract consumed by the workflow patterns, plus:
- Configuration management via environment variables and explicit parameters
- An ordered in-memory provider registry (the agent always uses the first entry)
- An offline echo provider for demos and local runs
- An OpenAI-compatible chat-completions provider with tool calling
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import aiohttp
from loguru import logger
from pydantic import BaseModel, Field, field_validator

from workflow_agent.models.conversation import Message, MessageRole
from workflow_agent.models.tools import ToolCall, ToolDefinition


class LLMProviderType(str, Enum):
    """Supported LLM provider types."""
    ECHO = "echo"
    OPENAI = "openai"
    OPENAI_COMPATIBLE = "openai_compatible"


class LLMConfig(BaseModel):
    """Configuration for an LLM provider."""

    provider: LLMProviderType = Field(
        default=LLMProviderType.ECHO,
        description="LLM provider type"
    )
    base_url: str = Field(
        default="https://api.openai.com/v1",
        description="Base URL for OpenAI-compatible providers"
    )
    api_key: Optional[str] = Field(
        default=None,
        description="API key for authentication"
    )
    model: str = Field(
        default="gpt-4o-mini",
        description="Model name or ID"
    )
    temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature (0.0 to 2.0)"
    )
    max_tokens: Optional[int] = Field(
        default=None,
        description="Maximum tokens in response"
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="Request timeout in seconds"
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url is properly formatted."""
        return v.rstrip("/")

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Load configuration from environment variables."""
        config_data = {
            "provider": os.getenv("LLM_PROVIDER", "echo").lower(),
            "base_url": os.getenv("LLM_BASE_URL", "https://api.openai.com/v1"),
            "api_key": os.getenv("LLM_API_KEY"),
            "model": os.getenv("LLM_MODEL", "gpt-4o-mini"),
            "temperature": float(os.getenv("LLM_TEMPERATURE", "0.7")),
            "max_tokens": int(os.getenv("LLM_MAX_TOKENS", "0")) or None,
            "timeout": float(os.getenv("LLM_TIMEOUT", "60")),
        }
        return cls(**config_data)


class TextGenerationRequest(BaseModel):
    """Plain text generation request."""
    messages: List[Message] = Field(..., description="Conversation sent to the model")
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


class ToolGenerationRequest(TextGenerationRequest):
    """Generation request that advertises tools to the model."""
    tools: List[ToolDefinition] = Field(default_factory=list)
    tool_choice: str = Field(default="auto")


class LLMResponse(BaseModel):
    """Structured LLM response."""
    content: str = Field(default="", description="Response content")
    model: str = Field(default="", description="Model that generated the response")
    tool_calls: List[ToolCall] = Field(
        default_factory=list,
        description="Tool calls requested by the model"
    )
    usage: Dict[str, int] = Field(
        default_factory=dict,
        description="Token usage: prompt_tokens, completion_tokens, total_tokens"
    )
    finish_reason: Optional[str] = Field(
        default=None,
        description="Reason for completion: 'stop', 'tool_calls', 'length', etc."
    )


class BaseLLMProvider(ABC):
    """Abstract base class for LLM providers."""

    name: str = "base"

    @property
    def supports_tools(self) -> bool:
        """Whether the provider can run tool-augmented generation."""
        return False

    @abstractmethod
    async def generate_text(self, request: TextGenerationRequest) -> LLMResponse:
        """Generate a text completion."""
        pass

    async def generate_with_tools(self, request: ToolGenerationRequest) -> LLMResponse:
        """Generate a completion that may request tool calls.

        Providers without tool support answer with plain text.
        """
        return await self.generate_text(request)

    async def close(self) -> None:
        """Release provider resources."""
        return None


class EchoLLMProvider(BaseLLMProvider):
    """Deterministic offline provider.

    Echoes the last user message back, which is enough to drive every
    workflow pattern end to end without network access.
    """

    name = "echo"

    def __init__(self, prefix: str = "", supports_tools: bool = False):
        self.prefix = prefix
        self._supports_tools = supports_tools

    @property
    def supports_tools(self) -> bool:
        return self._supports_tools

    async def generate_text(self, request: TextGenerationRequest) -> LLMResponse:
        user_messages = [m for m in request.messages if m.role == MessageRole.USER]
        last = user_messages[-1].content if user_messages else ""
        return LLMResponse(
            content=f"{self.prefix}{last}",
            model="echo",
            finish_reason="stop",
        )


class OpenAICompatibleProvider(BaseLLMProvider):
    """OpenAI-compatible chat-completions provider with async support."""

    def __init__(self, config: LLMConfig, name: Optional[str] = None):
        self.config = config
        self.name = name or config.provider.value
        self.session: Optional[aiohttp.ClientSession] = None
        logger.info(
            f"Initializing {self.__class__.__name__} with provider={config.provider}, "
            f"model={config.model}"
        )

    @property
    def supports_tools(self) -> bool:
        return True

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            timeout = aiohttp.ClientTimeout(total=self.config.timeout)
            self.session = aiohttp.ClientSession(timeout=timeout)
        return self.session

    async def close(self) -> None:
        """Close aiohttp session."""
        if self.session and not self.session.closed:
            await self.session.close()

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    def build_payload(self, request: TextGenerationRequest) -> Dict[str, Any]:
        """Translate a generation request into a chat-completions payload."""
        payload: Dict[str, Any] = {
            "model": self.config.model,
            "messages": [format_message(m) for m in request.messages],
            "temperature": request.temperature
            if request.temperature is not None
            else self.config.temperature,
        }
        max_tokens = request.max_tokens or self.config.max_tokens
        if max_tokens:
            payload["max_tokens"] = max_tokens

        if isinstance(request, ToolGenerationRequest) and request.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters or {"type": "object", "properties": {}},
                    },
                }
                for tool in request.tools
            ]
            payload["tool_choice"] = request.tool_choice
        return payload

    async def generate_text(self, request: TextGenerationRequest) -> LLMResponse:
        return await self._post(self.build_payload(request))

    async def generate_with_tools(self, request: ToolGenerationRequest) -> LLMResponse:
        return await self._post(self.build_payload(request))

    async def _post(self, payload: Dict[str, Any]) -> LLMResponse:
        try:
            session = await self._get_session()
            async with session.post(
                f"{self.config.base_url}/chat/completions",
                json=payload,
                headers=self._get_headers(),
                timeout=aiohttp.ClientTimeout(total=self.config.timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"API error: HTTP {response.status} - {error_text}")
                    raise RuntimeError(f"API error: {response.status}")

                data = await response.json()
                return parse_chat_completion(data, self.config.model)
        except asyncio.TimeoutError:
            logger.error("Timeout calling API")
            raise
        except aiohttp.ClientError as e:
            logger.error(f"API call failed: {e}")
            raise


def format_message(message: Message) -> Dict[str, Any]:
    """Render a conversation message in chat-completions form."""
    formatted: Dict[str, Any] = {"role": message.role.value, "content": message.content}
    if message.role == MessageRole.TOOL and "tool_call_id" in message.metadata:
        formatted["tool_call_id"] = message.metadata["tool_call_id"]
    tool_calls = message.metadata.get("tool_calls")
    if message.role == MessageRole.ASSISTANT and tool_calls:
        formatted["tool_calls"] = [
            {
                "id": call["id"],
                "type": "function",
                "function": {"name": call["name"], "arguments": json.dumps(call["parameters"])},
            }
            for call in tool_calls
        ]
    return formatted


def parse_chat_completion(data: Dict[str, Any], model: str) -> LLMResponse:
    """Parse a chat-completions response body, including requested tool calls."""
    choice = data["choices"][0]
    message = choice.get("message", {})

    tool_calls = []
    for raw_call in message.get("tool_calls") or []:
        function = raw_call.get("function", {})
        arguments = function.get("arguments") or "{}"
        try:
            parameters = json.loads(arguments) if isinstance(arguments, str) else dict(arguments)
        except json.JSONDecodeError:
            logger.warning(f"Failed to parse tool arguments: {arguments}")
            parameters = {}
        tool_calls.append(
            ToolCall(id=raw_call.get("id", ""), name=function.get("name", ""), parameters=parameters)
        )

    usage = data.get("usage", {})
    return LLMResponse(
        content=message.get("content") or "",
        model=data.get("model", model),
        tool_calls=tool_calls,
        usage={
            "prompt_tokens": usage.get("prompt_tokens", 0),
            "completion_tokens": usage.get("completion_tokens", 0),
            "total_tokens": usage.get("total_tokens", 0),
        },
        finish_reason=choice.get("finish_reason", "stop"),
    )


class LLMProviderFactory:
    """Factory for creating LLM providers."""

    @classmethod
    def create(cls, config: LLMConfig) -> BaseLLMProvider:
        """Create LLM provider based on configuration."""
        if config.provider == LLMProviderType.ECHO:
            return EchoLLMProvider()
        if config.provider in (LLMProviderType.OPENAI, LLMProviderType.OPENAI_COMPATIBLE):
            return OpenAICompatibleProvider(config)
        raise ValueError(f"Unsupported LLM provider: {config.provider}")

    @classmethod
    def create_from_env(cls) -> BaseLLMProvider:
        """Create LLM provider from environment variables."""
        return cls.create(LLMConfig.from_env())


class LLMProviderRegistry(ABC):
    """Source of LLM providers, listed in preference order."""

    @abstractmethod
    async def list_providers(self) -> List[BaseLLMProvider]:
        """Return the available providers, most preferred first."""
        pass

    async def close(self) -> None:
        """Release every listed provider's resources."""
        for provider in await self.list_providers():
            await provider.close()


class InMemoryProviderRegistry(LLMProviderRegistry):
    """Ordered provider registry; registration order is preference order."""

    def __init__(self, providers: Optional[List[BaseLLMProvider]] = None):
        self._providers: List[BaseLLMProvider] = list(providers or [])

    def register(self, provider: BaseLLMProvider) -> None:
        self._providers = [p for p in self._providers if p.name != provider.name]
        self._providers.append(provider)
        logger.debug(f"Registered LLM provider {provider.name}")

    def unregister(self, name: str) -> None:
        self._providers = [p for p in self._providers if p.name != name]

    async def list_providers(self) -> List[BaseLLMProvider]:
        return list(self._providers)


__all__ = [
    "LLMProviderType",
    "LLMConfig",
    "TextGenerationRequest",
    "ToolGenerationRequest",
    "LLMResponse",
    "BaseLLMProvider",
    "EchoLLMProvider",
    "OpenAICompatibleProvider",
    "LLMProviderFactory",
    "LLMProviderRegistry",
    "InMemoryProviderRegistry",
    "format_message",
    "parse_chat_completion",
]
