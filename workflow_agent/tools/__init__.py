"""
Workflow Agent Tools

CLI entry point for the workflow agent.
"""

from workflow_agent.tools.cli import cli

__all__ = ["cli"]
