"""Configuration management utilities."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from ..core.constants import (
    CONFIG_FILE,
    ENV_COOLDOWN_SECONDS,
    ENV_NOTIFY_COMMAND,
    STEP_RULES_FILE,
)
from ..core.rules_table import RuleRegistry
from ..models.config import OrchestratorConfig
from ..services.exceptions import ConfigError

logger = logging.getLogger(__name__)


def _get_env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise ConfigError(f"Environment variable {name} must be an integer, got {raw!r}")


class ConfigManager:
    """Loads per-project orchestrator settings and rule overrides."""

    def __init__(self, project_root: Path):
        """Initialize config manager."""
        self.project_root = Path(project_root)
        self.config_file = self.project_root / CONFIG_FILE
        self.rules_file = self.project_root / STEP_RULES_FILE

    def load_config(self) -> OrchestratorConfig:
        """Load orchestrator.json with environment overrides applied.

        Raises:
            ConfigError: If the file or an override is invalid.
        """
        data: Dict[str, Any] = {}
        if self.config_file.exists():
            try:
                data = json.loads(self.config_file.read_text(encoding="utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as e:
                raise ConfigError(f"Invalid JSON in {self.config_file}: {e}") from e
            if not isinstance(data, dict):
                raise ConfigError(f"{self.config_file} must contain a JSON object")

        notify_command = os.environ.get(ENV_NOTIFY_COMMAND)
        if notify_command:
            data["notify_command"] = notify_command
        cooldown = _get_env_int(ENV_COOLDOWN_SECONDS)
        if cooldown is not None:
            data["cooldown_seconds"] = cooldown

        try:
            return OrchestratorConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid orchestrator config: {e}") from e

    def save_config(self, config: OrchestratorConfig) -> None:
        """Save orchestrator configuration."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)
        self.config_file.write_text(config.model_dump_json(indent=2), encoding="utf-8")

    def load_rule_overrides(self) -> Dict[str, Dict[str, Any]]:
        """Load the step-rules overlay, or an empty mapping when absent."""
        if not self.rules_file.exists():
            return {}
        try:
            data = yaml.safe_load(self.rules_file.read_text(encoding="utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError) as e:
            raise ConfigError(f"Invalid YAML in {self.rules_file}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"{self.rules_file} must map step names to rule fields")
        logger.debug(f"Loaded rule overrides for: {', '.join(map(str, data))}")
        return data

    def build_registry(self) -> RuleRegistry:
        """Rule registry with this project's overlay applied."""
        return RuleRegistry(self.load_rule_overrides())
