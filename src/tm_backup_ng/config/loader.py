"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import tomllib
from pathlib import Path
from typing import Any

from .schema import Config, GlobalConfig, RsyncConfig, SSHConfig


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "tm-backup-ng" / "config.toml",
    Path("/etc/tm-backup-ng/config.toml"),
]

KNOWN_SECTIONS = {"global", "rsync", "ssh"}


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path).expanduser()
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _expect(section: str, data: dict[str, Any], key: str, kind, default):
    value = data.get(key, default)
    if value is default:
        return value
    if kind is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if not isinstance(value, kind) or isinstance(value, bool) and kind is not bool:
        raise ConfigError(
            f"[{section}] {key} must be of type {kind.__name__}, got {value!r}"
        )
    return value


def _string_list(section: str, data: dict[str, Any], key: str) -> list[str]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"[{section}] {key} must be a list of strings")
    return list(value)


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    defaults = GlobalConfig()
    lock_timeout = _expect("global", data, "lock_timeout", float, defaults.lock_timeout)
    if lock_timeout < 0:
        raise ConfigError("[global] lock_timeout must not be negative")
    lock_dir = _expect("global", data, "lock_dir", str, defaults.lock_dir)
    if not lock_dir.strip():
        raise ConfigError("[global] lock_dir must not be empty")
    return GlobalConfig(
        log_file=_expect("global", data, "log_file", str, None),
        transaction_log=_expect("global", data, "transaction_log", str, None),
        lock_timeout=lock_timeout,
        lock_dir=lock_dir,
    )


def _parse_rsync(data: dict[str, Any]) -> RsyncConfig:
    """Parse rsync configuration from dict."""
    return RsyncConfig(
        binary=_expect("rsync", data, "binary", str, "rsync"),
        options=_string_list("rsync", data, "options"),
    )


def _parse_ssh(data: dict[str, Any]) -> SSHConfig:
    """Parse SSH configuration from dict."""
    port = _expect("ssh", data, "port", int, None)
    if port is not None and not 0 < port < 65536:
        raise ConfigError(f"[ssh] port out of range: {port}")
    return SSHConfig(
        port=port,
        identity_file=_expect("ssh", data, "identity_file", str, None),
        options=_string_list("ssh", data, "options"),
    )


def _validate_config(config: Config, data: dict[str, Any]) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    for section in sorted(set(data) - KNOWN_SECTIONS):
        warnings.append(f"Unknown section [{section}] ignored")

    for option in config.rsync.options:
        if option.startswith(("--link-dest", "--partial-dir")):
            warnings.append(
                f"rsync option {option!r} conflicts with the options set for every backup"
            )

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    for section in KNOWN_SECTIONS:
        if not isinstance(data.get(section, {}), dict):
            raise ConfigError(f"[{section}] must be a table")

    config = Config(
        global_config=_parse_global(data.get("global", {})),
        rsync=_parse_rsync(data.get("rsync", {})),
        ssh=_parse_ssh(data.get("ssh", {})),
    )

    # Validate and collect warnings
    warnings = _validate_config(config, data)

    return config, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# tm-backup-ng configuration
# Command line flags take precedence over these settings.

[global]
# log_file = "/var/log/tm-backup-ng.log"
# transaction_log = "~/.local/state/tm-backup-ng/transactions.log"
lock_timeout = 0        # seconds to wait if another backup holds the destination
lock_dir = "~/.cache/tm-backup-ng/locks"   # locks for ssh:// destinations

[rsync]
binary = "rsync"
# Added after the fixed options, before anything given after "--"
# options = ["--exclude-from=/home/me/.backup-excludes"]

[ssh]
# port = 22
# identity_file = "~/.ssh/backup_key"
# options = ["-o", "BatchMode=yes"]
"""
