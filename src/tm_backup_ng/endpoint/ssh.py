# pyright: standard

"""tm-backup-ng: SSH endpoint for remote sources and destinations.

Filesystem operations are run as plain POSIX commands (``test``, ``ls``,
``readlink``, ``mv``, ``ln``) on the remote host through ``ssh``. The sync
primitive reaches the same host with the matching remote shell command.
"""

import getpass
import shlex
import subprocess
from typing import Any, Dict, List, Optional

from tm_backup_ng import __util__
from tm_backup_ng.__logger__ import logger

from .common import Endpoint


class SSHEndpoint(Endpoint):
    """SSH-based endpoint for remote operations.

    SSH username can be specified in two ways, in order of precedence:
    1. In the URI (e.g., ssh://user@host/path)
    2. Current local user (fallback)
    """

    _is_remote = True

    def __init__(
        self,
        hostname: str,
        config: Optional[Dict[str, Any]] = None,
        *,
        username: Optional[str] = None,
        port: Optional[int] = None,
        ssh_identity_file: Optional[str] = None,
        ssh_opts: Optional[List[str]] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the SSH endpoint.

        Args:
            hostname: Remote hostname
            config: Configuration dictionary
            username: Remote user (defaults to the local user)
            port: SSH port
            ssh_identity_file: Private key passed to ssh with -i
            ssh_opts: Extra options passed to ssh verbatim
            **kwargs: Additional keyword arguments passed to parent class
        """
        super().__init__(config=config, **kwargs)
        if not hostname:
            raise ValueError("No hostname for SSH specified.")
        self.hostname = hostname
        self.username = username or getpass.getuser()
        self.port = port
        self.ssh_identity_file = ssh_identity_file
        self.ssh_opts = list(ssh_opts or [])
        self.config["path"] = str(self.config["path"] or "/")

    def __repr__(self) -> str:
        return f"ssh://{self.username}@{self.hostname}{self._port_suffix()}{self.path}"

    def _port_suffix(self) -> str:
        return f":{self.port}" if self.port else ""

    def get_id(self) -> str:
        """Return an id string to identify this endpoint over multiple runs."""
        return f"ssh://{self.username}@{self.hostname}{self._port_suffix()}{self.path}"

    def _ssh_options(self) -> List[str]:
        opts = []
        if self.port:
            opts += ["-p", str(self.port)]
        if self.ssh_identity_file:
            opts += ["-i", str(self.ssh_identity_file)]
        return opts + self.ssh_opts

    def _ssh_base_cmd(self) -> List[str]:
        return ["ssh", *self._ssh_options(), f"{self.username}@{self.hostname}"]

    def remote_shell(self) -> str:
        return shlex.join(["ssh", *self._ssh_options()])

    def sync_path(self, path, directory=False) -> str:
        return f"{self.username}@{self.hostname}:{super().sync_path(path, directory)}"

    def _exec_remote_command(
        self, command: List[str], check: bool = False
    ) -> "subprocess.CompletedProcess[str]":
        """Run ``command`` on the remote host and return the completed process."""
        return self._exec_remote_script(shlex.join(command), check=check)

    def _exec_remote_script(
        self, script: str, check: bool = False
    ) -> "subprocess.CompletedProcess[str]":
        cmd = self._ssh_base_cmd() + ["--", script]
        result = __util__.exec_subprocess(
            cmd, capture_output=True, text=True, check=False
        )
        # ssh itself reports connection failures with 255
        if result.returncode == 255:
            logger.error("SSH connection to %s failed: %s", self.hostname, result.stderr.strip())
            raise __util__.AbortError(f"SSH connection to {self.hostname} failed")
        if check and result.returncode != 0:
            raise OSError(
                f"Remote command failed on {self.hostname} ({result.returncode}): "
                f"{result.stderr.strip()}"
            )
        return result

    def exists(self, path) -> bool:
        cmd = ["sh", "-c", 'test -e "$1" || test -L "$1"', "sh", str(path)]
        return self._exec_remote_command(cmd).returncode == 0

    def is_dir(self, path) -> bool:
        return self._exec_remote_command(["test", "-d", str(path)]).returncode == 0

    def is_symlink(self, path) -> bool:
        return self._exec_remote_command(["test", "-L", str(path)]).returncode == 0

    def listdir(self, path) -> List[str]:
        result = self._exec_remote_command(["ls", "-A", "--", str(path)])
        if result.returncode != 0:
            return []
        return [line for line in result.stdout.splitlines() if line]

    def read_pointer(self, path) -> Optional[str]:
        result = self._exec_remote_command(["readlink", "--", str(path)])
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def rename(self, src, dst) -> None:
        logger.debug("Renaming %s:%s -> %s", self.hostname, src, dst)
        self._exec_remote_command(["mv", "-T", "--", str(src), str(dst)], check=True)

    def replace_symlink(self, target, link_path, swap_path) -> None:
        logger.debug(
            "Pointing %s:%s at %s (via %s)", self.hostname, link_path, target, swap_path
        )
        script = " && ".join(
            [
                shlex.join(["ln", "-sfn", "--", str(target), str(swap_path)]),
                shlex.join(["mv", "-Tf", "--", str(swap_path), str(link_path)]),
            ]
        )
        self._exec_remote_script(script, check=True)
