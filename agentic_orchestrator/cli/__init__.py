"""Command line interface for the orchestrator."""
