"""Config loader for YAML configuration files."""

from pathlib import Path
from typing import Any

import pydantic
import yaml

from chatflow.config.models import ChatflowConfig
from chatflow.core.errors import ConfigError


class ConfigLoader:
    """Load ChatflowConfig from YAML files."""

    @staticmethod
    def load(path: Path | str) -> ChatflowConfig:
        """Load configuration from YAML file.

        Args:
            path: Path to config directory or chatflow.yaml file

        Returns:
            Parsed ChatflowConfig instance

        Raises:
            FileNotFoundError: If no config file exists at path
            ConfigError: If the file is not valid YAML or fails validation
        """
        config_path = Path(path)

        if config_path.is_dir():
            config_path = config_path / "chatflow.yaml"

        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            try:
                data: dict[str, Any] = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {config_path}: {e}") from e

        # Relative flow directories are resolved against the config file
        flows = data.get("flows")
        if isinstance(flows, dict) and isinstance(flows.get("directory"), str):
            directory = Path(flows["directory"])
            if not directory.is_absolute():
                flows["directory"] = str(config_path.parent / directory)

        try:
            return ChatflowConfig.model_validate(data)
        except pydantic.ValidationError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
