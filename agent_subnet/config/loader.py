"""
Configuration loader for agent subnet provisioning.

Handles loading from multiple sources with proper priority:
CLI Args > Environment Variables > Config File > Defaults
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import ValidationError

from ..exceptions import ConfigurationError
from .models import AgentSubnetConfig


class ConfigError(ConfigurationError):
    """Configuration loading or validation error."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("error_code", "CONFIG_LOAD_FAILED")
        super().__init__(message, **kwargs)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Priority order (highest to lowest):
    1. CLI arguments (passed directly to methods)
    2. Environment variables (AGENT_SUBNET_*)
    3. Configuration file
    4. Default values
    """

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "agent-subnet"
    DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
    ENV_PREFIX = "AGENT_SUBNET_"
    CONFIG_PATH_ENV = "AGENT_SUBNET_CONFIG_PATH"

    def __init__(self, config_path: Optional[Path] = None, load_env_file: bool = True):
        """
        Initialize configuration loader.

        Args:
            config_path: Path to configuration file. If None, uses default location.
            load_env_file: Read a .env file from the working directory first
        """
        if load_env_file:
            # Real environment variables win over .env entries
            load_dotenv(find_dotenv(usecwd=True), override=False)
        self.config_path = (
            Path(config_path).expanduser()
            if config_path
            else self._get_config_path_from_env()
        )

    @classmethod
    def _get_config_path_from_env(cls) -> Path:
        """Get configuration path from environment variable or default."""
        env_path = os.environ.get(cls.CONFIG_PATH_ENV)
        if env_path:
            return Path(env_path).expanduser()
        return cls.DEFAULT_CONFIG_FILE

    def load_dict(self) -> dict[str, Any]:
        """
        Merge file and environment sources without validating.

        Returns:
            Raw configuration dictionary
        """
        config_dict: dict[str, Any] = {}

        if self.config_path.exists():
            file_config = self._load_file(self.config_path)
            config_dict = self._deep_merge(config_dict, file_config)

        env_config = self._load_from_env()
        return self._deep_merge(config_dict, env_config)

    def load(self, cli_args: Optional[dict[str, Any]] = None) -> AgentSubnetConfig:
        """
        Load configuration from all sources and merge.

        Args:
            cli_args: CLI arguments to merge (highest priority, None values ignored)

        Returns:
            Validated AgentSubnetConfig object

        Raises:
            ConfigError: If configuration is invalid
        """
        config_dict = self.load_dict()
        if cli_args:
            config_dict = self._deep_merge(
                config_dict, self._filter_none_values(cli_args)
            )

        try:
            return AgentSubnetConfig.model_validate(config_dict)
        except ValidationError as e:
            raise ConfigError(
                f"Configuration validation failed: {e}",
                context={"config_path": str(self.config_path)},
                recovery_suggestion=(
                    "Set network.virtual_network_name, network.resource_group_name "
                    "and test_run_id via the config file, AGENT_SUBNET_* variables "
                    "or CLI options"
                ),
            ) from e

    def _load_file(self, path: Path) -> dict[str, Any]:
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Configuration dictionary

        Raises:
            ConfigError: If file cannot be read or parsed
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}", cause=e) from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}", cause=e) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return data

    def _load_from_env(self) -> dict[str, Any]:
        """
        Load configuration from environment variables.

        Environment variable format:
        - AGENT_SUBNET_TEST_RUN_ID
        - AGENT_SUBNET_NETWORK__VIRTUAL_NETWORK_NAME
        - AGENT_SUBNET_LIFECYCLE__DESTROY_WAIT
        - AGENT_SUBNET_SUBNET__DELEGATION_ACTIONS='["a", "b"]'

        Double underscore (__) separates nested keys.

        Returns:
            Configuration dictionary
        """
        config: dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.ENV_PREFIX) or key == self.CONFIG_PATH_ENV:
                continue

            config_key = key[len(self.ENV_PREFIX) :].lower()
            parts = config_key.split("__")

            current = config
            for part in parts[:-1]:
                current = current.setdefault(part, {})

            current[parts[-1]] = self._convert_env_value(value)

        return config

    def _convert_env_value(self, value: str) -> Any:
        """
        Convert environment variable string to appropriate type.

        Scalars stay strings so pydantic coerces them against the field type
        ("172.16" must not become a float). Bracketed values are read as
        YAML flow sequences.

        Args:
            value: Environment variable value as string

        Returns:
            List for bracketed values, otherwise the stripped string
        """
        stripped = value.strip()
        if stripped.startswith("[") and stripped.endswith("]"):
            try:
                parsed = yaml.safe_load(stripped)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid list value '{value}': {e}", cause=e) from e
            if isinstance(parsed, list):
                return [str(item) for item in parsed]
        return stripped

    def _deep_merge(
        self, base: dict[str, Any], update: dict[str, Any]
    ) -> dict[str, Any]:
        """
        Deep merge two dictionaries.

        Args:
            base: Base dictionary
            update: Dictionary with updates

        Returns:
            Merged dictionary (base is not modified)
        """
        result = base.copy()

        for key, value in update.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def _filter_none_values(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Recursively filter out None values from a dictionary.

        Args:
            data: Dictionary to filter

        Returns:
            New dictionary without None values
        """
        result = {}
        for key, value in data.items():
            if value is None:
                continue
            elif isinstance(value, dict):
                filtered = self._filter_none_values(value)
                if filtered:  # Only include non-empty dicts
                    result[key] = filtered
            else:
                result[key] = value
        return result

    def create_default_config(self, force: bool = False) -> Path:
        """
        Create default configuration file with comments.

        Args:
            force: Overwrite existing file if True

        Returns:
            Path to created configuration file

        Raises:
            ConfigError: If file exists and force=False
        """
        if self.config_path.exists() and not force:
            raise ConfigError(
                f"Configuration file already exists at {self.config_path}. "
                "Use force=True to overwrite."
            )

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, "w") as f:
                f.write(self._get_default_config_yaml())
        except OSError as e:
            raise ConfigError(
                f"Cannot write config file {self.config_path}: {e}", cause=e
            ) from e

        return self.config_path

    def _get_default_config_yaml(self) -> str:
        """
        Get default configuration as commented YAML.

        Returns:
            YAML string with inline documentation
        """
        return """\
# agent-subnet configuration
# ==========================

# Identifier of the test run. Usually supplied per run via
# AGENT_SUBNET_TEST_RUN_ID or --test-run-id.
# test_run_id: 5

# Existing virtual network the agent subnet is created in (looked up, never owned)
network:
  virtual_network_name: "vnet-ephemeral-tests"
  resource_group_name: "rg-ephemeral-tests"

subnet:
  # Subnet name is <name_prefix><test_run_id>, e.g. agent-5
  name_prefix: "agent-"

  # Ranges are <address_base>.<(test_run_id mod 254) + 2>.0/<prefix_length>
  address_base: "172.16"
  prefix_length: 24

  # Delegation granting the managed service access to the subnet
  delegation_name: "delegation"
  delegation_service: "Microsoft.DevOpsInfrastructure/pools"
  delegation_actions:
    - "Microsoft.Network/virtualNetworks/subnets/join/action"

  # Optional service endpoints
  service_endpoints: []

lifecycle:
  # Wait before the subnet may be deleted, so service association links
  # held by the delegated service are released first
  destroy_wait: "60s"

  # Replace the delay on every apply so it re-arms for the next destroy
  recreate_on_apply: true

terraform:
  binary: "terraform"
  working_dir: "./agent-subnet-tf"
  required_version: ">= 1.5.0"
  azurerm_version: "~> 3.80"
  time_version: "~> 0.9"
  timeout_seconds: 1800
  output_filename: "main.tf.json"
"""


def load_config(
    config_path: Optional[Path] = None,
    cli_args: Optional[dict[str, Any]] = None,
) -> AgentSubnetConfig:
    """
    Convenience function to load configuration.

    Args:
        config_path: Path to configuration file
        cli_args: CLI arguments to merge (highest priority)

    Returns:
        Validated AgentSubnetConfig object

    Raises:
        ConfigError: If configuration is invalid
    """
    return ConfigLoader(config_path).load(cli_args)


def create_default_config(
    config_path: Optional[Path] = None,
    force: bool = False,
) -> Path:
    """
    Create default configuration file.

    Args:
        config_path: Path to configuration file
        force: Overwrite existing file if True

    Returns:
        Path to created configuration file

    Raises:
        ConfigError: If file exists and force=False
    """
    loader = ConfigLoader(config_path)
    return loader.create_default_config(force=force)
