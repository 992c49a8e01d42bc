"""Configuration system for tm-backup-ng.

This module provides TOML-based configuration loading, validation,
and schema definitions.
"""

from .loader import ConfigError, find_config_file, generate_example_config, load_config
from .schema import Config, GlobalConfig, RsyncConfig, SSHConfig

__all__ = [
    "Config",
    "GlobalConfig",
    "RsyncConfig",
    "SSHConfig",
    "load_config",
    "find_config_file",
    "generate_example_config",
    "ConfigError",
]
