"""Core dispatch logic for the orchestrator."""
