"""Agentic Orchestrator - dispatch state machine for externally executed coding tasks."""

__version__ = "0.1.0"

# Export main CLI for convenience
from .cli.main import cli

__all__ = ['cli']
