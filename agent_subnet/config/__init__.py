"""
Configuration management for agent subnet provisioning.

Provides type-safe configuration loading and validation with support
for multiple configuration sources and priority-based merging.
"""

from .loader import ConfigError, ConfigLoader, create_default_config, load_config
from .models import (
    AgentSubnetConfig,
    LifecycleConfig,
    NetworkConfig,
    SubnetConfig,
    TerraformConfig,
)

__all__ = [
    # Models
    "AgentSubnetConfig",
    "ConfigError",
    # Loader
    "ConfigLoader",
    "LifecycleConfig",
    "NetworkConfig",
    "SubnetConfig",
    "TerraformConfig",
    "create_default_config",
    "load_config",
]
