"""Configuration loading and saving."""

import logging
import shutil
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from crittertaxa.config.models import ToolboxConfig
from crittertaxa.system.path_resolver import PathResolver

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages configuration loading and saving."""

    CURRENT_VERSION = "1.0.0"

    def __init__(self, path_resolver: PathResolver | None = None, config_path: Path | None = None):
        """Initialize ConfigManager.

        Args:
            path_resolver: Optional PathResolver instance. If None, creates a new one.
            config_path: Explicit config file, overrides the resolver's location
        """
        self.path_resolver = path_resolver or PathResolver()
        self.config_path = config_path or self.path_resolver.get_config_path()

    def load(self) -> ToolboxConfig:
        """Load and validate the configuration.

        A missing file is created from defaults first.

        Returns:
            ToolboxConfig: Loaded and validated configuration

        Raises:
            ValueError: If the file does not describe a valid configuration
        """
        self._ensure_config_exists()
        raw_config = self._read_yaml()

        config_version = raw_config.get("config_version", self.CURRENT_VERSION)
        if config_version != self.CURRENT_VERSION:
            logger.warning(
                "Config version %s differs from supported version %s",
                config_version,
                self.CURRENT_VERSION,
            )
            raw_config["config_version"] = self.CURRENT_VERSION

        return self._create_config_object(raw_config)

    def save(self, config: ToolboxConfig) -> None:
        """Save configuration to file with backup.

        Args:
            config: Configuration to save

        Raises:
            PermissionError: If config file cannot be written
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            backup_path = self.config_path.with_suffix(".yaml.backup")
            try:
                shutil.copy2(self.config_path, backup_path)
            except PermissionError:
                logger.warning("Could not create backup at %s", backup_path)

        config_yaml = yaml.safe_dump(
            self._config_to_dict(config), default_flow_style=False, sort_keys=False
        )
        self.config_path.write_text(config_yaml)
        logger.info("Configuration saved successfully to %s", self.config_path)

    def _ensure_config_exists(self) -> None:
        """Ensure config file exists, create from defaults if needed."""
        if not self.config_path.exists():
            logger.info("No configuration found, writing defaults to %s", self.config_path)
            self.save(ToolboxConfig(config_version=self.CURRENT_VERSION))

    def _read_yaml(self) -> dict[str, Any]:
        """Read YAML config file.

        Returns:
            dict: Raw configuration dictionary
        """
        config_text = self.config_path.read_text()
        data = yaml.safe_load(config_text) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {self.config_path} must contain a mapping")
        return data

    def _create_config_object(self, raw_config: dict[str, Any]) -> ToolboxConfig:
        """Create ToolboxConfig object from dictionary.

        Args:
            raw_config: Configuration dictionary

        Returns:
            ToolboxConfig: Typed configuration object
        """
        expected_fields = set(ToolboxConfig.model_fields.keys())
        unexpected_fields = set(raw_config.keys()) - expected_fields
        if unexpected_fields:
            logger.warning("Ignoring unknown config fields: %s", sorted(unexpected_fields))

        filtered_config = {k: v for k, v in raw_config.items() if k in expected_fields}
        try:
            return ToolboxConfig(**filtered_config)
        except ValidationError as e:
            raise ValueError(f"Configuration validation failed: {e}") from e

    def _config_to_dict(self, config: ToolboxConfig) -> dict[str, Any]:
        """Convert ToolboxConfig to dictionary for serialization."""
        return config.model_dump(mode="json")
