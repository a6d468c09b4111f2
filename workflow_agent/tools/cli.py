"""
Workflow Agent CLI Interface

Command-line tool for asking the agent questions and inspecting which
workflow pattern a request would be routed through.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click

from workflow_agent.agent import AgentConfig, WorkflowAgent, select_pattern
from workflow_agent.core.llm_client import (
    EchoLLMProvider,
    InMemoryProviderRegistry,
    LLMConfig,
    LLMProviderFactory,
    LLMProviderType,
)
from workflow_agent.core.observability import LogLevel, ObservabilityConfig, ObservabilityManager
from workflow_agent.integrations import InMemoryContextManager, InMemoryToolRegistry, KeywordFlowRouter
from workflow_agent.models import ConversationContext, Message, MessageRole, UserInput

# Setup logging
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """Workflow Agent CLI - route business questions through workflow patterns."""
    pass


@cli.command()
@click.argument("text")
@click.option(
    "--provider",
    type=click.Choice(["echo", "openai"]),
    default="echo",
    help="LLM provider",
)
@click.option("--llm-base-url", default=None, help="LLM base URL (openai provider)")
@click.option("--llm-model", default=None, help="LLM model name (openai provider)")
@click.option("--llm-api-key", default=None, help="LLM API key (openai provider)")
@click.option(
    "--json-output",
    is_flag=True,
    help="Output in JSON format (includes metadata)",
)
@click.option(
    "--verbose/--quiet",
    default=False,
    help="Verbose logging output",
)
def ask(
    text: str,
    provider: str,
    llm_base_url: Optional[str],
    llm_model: Optional[str],
    llm_api_key: Optional[str],
    json_output: bool,
    verbose: bool,
) -> None:
    """
    Ask the agent a question and print its response.

    \b
    Examples:
        workflow-agent ask "How are my sales doing?"
        workflow-agent ask "Improve my product listing" --json-output
        workflow-agent ask "Show revenue" --provider openai --llm-model gpt-4o-mini
    """
    ObservabilityManager.initialize(
        ObservabilityConfig(
            service_name="workflow-agent-cli",
            log_level=LogLevel.DEBUG if verbose else LogLevel.WARNING,
            json_logs=json_output,
            enable_tracing=False,
        )
    )

    if not text.strip():
        click.echo("Error: No input text provided", err=True)
        sys.exit(1)

    try:
        registry = InMemoryProviderRegistry([_create_provider(provider, llm_base_url, llm_model, llm_api_key)])
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    agent = WorkflowAgent(
        flow_router=KeywordFlowRouter(registry),
        llm_registry=registry,
        context_manager=InMemoryContextManager(),
        tool_registry=InMemoryToolRegistry(),
        config=AgentConfig(llm_provider=provider, enable_logging=False),
    )

    async def _run():
        await agent.initialize()
        try:
            return await agent.process_user_input(UserInput(content=text), ConversationContext())
        finally:
            await agent.shutdown()

    response = asyncio.run(_run())

    if json_output:
        click.echo(json.dumps(response.model_dump(mode="json"), indent=2))
        return

    click.echo(response.content)
    if response.next_step_actions:
        click.echo("\nNext steps:")
        for action in response.next_step_actions:
            click.echo(f"  - {action.title}: {action.description}")
    click.echo(
        f"\n[workflow={response.metadata.workflow.value} "
        f"confidence={response.metadata.confidence:.2f}]",
        err=True,
    )


@cli.command()
@click.argument("text")
@click.option("--history", type=click.IntRange(min=0), default=0, help="Number of prior conversation turns")
@click.option(
    "--confidence",
    type=click.FloatRange(0.0, 1.0),
    default=None,
    help="Override the classified intent confidence",
)
def select(text: str, history: int, confidence: Optional[float]) -> None:
    """
    Show which workflow pattern a request would be routed through.

    \b
    Examples:
        workflow-agent select "show my revenue"
        workflow-agent select "analyze and compare products" --history 12
    """
    router = KeywordFlowRouter()
    context = ConversationContext(
        conversation_history=[
            Message(role=MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT, content=f"turn {i + 1}")
            for i in range(history)
        ]
    )

    intent = asyncio.run(router.classify_intent(UserInput(content=text), context))
    if confidence is not None:
        intent = intent.model_copy(update={"confidence": confidence})

    flow = router.select_flow(intent)
    pattern = select_pattern(intent, context)

    click.echo(
        json.dumps(
            {
                "intent": intent.name,
                "confidence": intent.confidence,
                "category": intent.category.value,
                "flow": flow.id,
                "pattern": pattern.value,
            },
            indent=2,
        )
    )


@cli.command()
def info() -> None:
    """Show agent version and available workflow patterns."""
    from workflow_agent import __version__

    config = AgentConfig.default()
    info_dict = {
        "name": "Workflow Agent",
        "version": __version__,
        "patterns": [pattern.value for pattern in config.enabled_patterns],
        "llm_providers": ["echo", "openai"],
    }
    click.echo(json.dumps(info_dict, indent=2))


# ==================
# Helper Functions
# ==================


def _create_provider(
    provider: str,
    base_url: Optional[str],
    model: Optional[str],
    api_key: Optional[str],
):
    """Build the LLM provider selected on the command line."""
    if provider == "echo":
        return EchoLLMProvider()

    config = LLMConfig.from_env()
    updates = {"provider": LLMProviderType.OPENAI}
    if base_url:
        updates["base_url"] = base_url.rstrip("/")
    if model:
        updates["model"] = model
    if api_key:
        updates["api_key"] = api_key
    return LLMProviderFactory.create(config.model_copy(update=updates))


if __name__ == "__main__":
    cli()
