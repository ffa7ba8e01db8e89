"""Utilities for the orchestrator."""

from .config_manager import ConfigManager

__all__ = [
    'ConfigManager',
]
