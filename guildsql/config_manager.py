"""Configuration loading for guildsql.

This module provides:
- YAML configuration loading with defaults
- Environment variable overrides for credentials and connection details
- Configuration schema validation
- Secrets redaction for display
"""

import os
from copy import deepcopy
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml
from jsonschema import validate, ValidationError

from .config.db_config import ConnectionConfig, get_default_config, validate_config
from .exceptions import ConfigurationError
from .security import setup_secure_logging

logger = setup_secure_logging(__name__)


# Configuration schema for validation
CONFIG_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["database"],
    "properties": {
        "database": {
            "type": "object",
            "required": ["dialect"],
            "properties": {
                "dialect": {"type": "string", "minLength": 1},
                "host": {"type": "string"},
                "port": {"type": ["integer", "string"]},
                "name": {"type": "string"},
                "user": {"type": "string"},
                "password": {"type": ["string", "null"]},
                "pool_size": {"type": "integer", "minimum": 1},
                "pool_timeout": {"type": "number", "exclusiveMinimum": 0},
                "storage_path": {"type": "string", "minLength": 1},
                "slow_query_threshold": {"type": "number", "exclusiveMinimum": 0},
                "engine_args": {"type": "object"}
            }
        },
        "logging": {
            "type": "object",
            "properties": {
                "level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL",
                                                     "debug", "info", "warning", "error", "critical"]},
                "file": {"type": ["string", "null"]}
            }
        }
    }
}


class DatabaseConfigManager:
    """Loads guildsql.yaml, applies environment overrides and validates it."""

    # Environment variable mappings for connection details
    ENV_MAPPINGS = {
        'database.dialect': 'GUILDSQL_DB_DIALECT',
        'database.host': 'GUILDSQL_DB_HOST',
        'database.port': 'GUILDSQL_DB_PORT',
        'database.name': 'GUILDSQL_DB_NAME',
        'database.user': 'GUILDSQL_DB_USER',
        'database.password': 'GUILDSQL_DB_PASSWORD',
    }

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """Initialize the manager.

        Args:
            config_path: Path to a YAML configuration file. Without one the
                built-in defaults are used.
        """
        self.config_path = Path(config_path) if config_path else None
        self.merged_config = get_default_config()

        if self.config_path is not None:
            if not self.config_path.exists():
                raise FileNotFoundError(f"Config not found: {self.config_path}")
            self.merged_config = self._deep_merge(self.merged_config, self._load_yaml_file(self.config_path))

        self._apply_env_overrides()

    def _load_yaml_file(self, path: Path) -> Dict[str, Any]:
        """Safely load a YAML file."""
        try:
            with open(path, 'r') as f:
                config = yaml.safe_load(f) or {}

            if not isinstance(config, dict):
                raise ConfigurationError(f"Config file must contain a mapping, got {type(config).__name__}")

            return config

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML file {path}: {e}")
            raise ConfigurationError(f"Invalid YAML in {path}") from e

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = deepcopy(base)

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = deepcopy(value)

        return result

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to the configuration."""
        for config_path, env_var in self.ENV_MAPPINGS.items():
            env_value = os.environ.get(env_var)
            if env_value:
                self._set_nested_value(self.merged_config, config_path, env_value)
                logger.info(f"Applied environment override for {config_path}")

    def _set_nested_value(self, config: Dict[str, Any], path: str, value: Any) -> None:
        """Set a nested configuration value using dot notation."""
        keys = path.split('.')
        current = config

        for key in keys[:-1]:
            current = current.setdefault(key, {})

        current[keys[-1]] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get a configuration value using dot notation (e.g. 'database.dialect')."""
        current = self.merged_config

        for key in path.split('.'):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        return current

    def validate(self) -> None:
        """Validate the merged configuration against the schema.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        try:
            validate(self.merged_config, CONFIG_SCHEMA)
        except ValidationError as e:
            where = '.'.join(str(p) for p in e.path)
            logger.error(f"Configuration validation failed at '{where}': {e.message}")
            raise ConfigurationError(f"Invalid configuration at '{where}': {e.message}") from e

    def get_connection_config(self) -> ConnectionConfig:
        """Validate and build the immutable connection configuration."""
        self.validate()
        try:
            config = ConnectionConfig.from_section(self.merged_config['database'])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid database configuration: {e}") from e
        validate_config(config)
        return config

    def get_config(self, redact_secrets: bool = True) -> Dict[str, Any]:
        """Get the merged configuration, optionally with secrets redacted."""
        config = deepcopy(self.merged_config)
        if redact_secrets:
            return self._redact_secrets(config)
        return config

    def _redact_secrets(self, config: Dict[str, Any]) -> Dict[str, Any]:
        sensitive_keys = ['password', 'secret', 'token', 'credential']

        for key, value in config.items():
            if any(sensitive in key.lower() for sensitive in sensitive_keys):
                config[key] = '***REDACTED***'
            elif isinstance(value, dict):
                config[key] = self._redact_secrets(value)

        return config


def load_config(config_path: Optional[Union[str, Path]] = None) -> DatabaseConfigManager:
    """Load configuration, falling back to ./guildsql.yaml when it exists.

    Args:
        config_path: Explicit configuration file

    Returns:
        Loaded configuration manager
    """
    if config_path is None and Path('guildsql.yaml').exists():
        config_path = 'guildsql.yaml'
    return DatabaseConfigManager(config_path)
