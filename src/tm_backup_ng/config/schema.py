"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class RsyncConfig:
    """Sync primitive configuration.

    Attributes:
        binary: rsync executable name or path
        options: Options added after the fixed set, before per-run extras
    """

    binary: str = "rsync"
    options: list[str] = field(default_factory=list)


@dataclass
class SSHConfig:
    """Settings for ssh:// sources and destinations.

    Attributes:
        port: Default SSH port when the URL has none
        identity_file: Path to SSH private key
        options: Extra options passed to ssh verbatim
    """

    port: Optional[int] = None
    identity_file: Optional[str] = None
    options: list[str] = field(default_factory=list)


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        log_file: Path to log file (None for no file logging)
        transaction_log: Path to the JSON-lines transaction journal
        lock_timeout: Seconds to wait for a busy destination (0 fails at once)
        lock_dir: Local directory holding locks for remote destinations
    """

    log_file: Optional[str] = None
    transaction_log: Optional[str] = None
    lock_timeout: float = 0
    lock_dir: str = "~/.cache/tm-backup-ng/locks"


@dataclass
class Config:
    """Root configuration object."""

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    rsync: RsyncConfig = field(default_factory=RsyncConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)

    def endpoint_config(self) -> dict:
        """Common settings handed to every endpoint."""
        return {
            "lock_dir": self.global_config.lock_dir,
            "ssh_port": self.ssh.port,
            "ssh_identity_file": self.ssh.identity_file,
            "ssh_opts": list(self.ssh.options),
        }
