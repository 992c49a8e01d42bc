"""rsync as the sync primitive."""

import logging
import shutil
import subprocess
from typing import Optional

from .. import __logger__, __util__
from .common import SyncPrimitive, SyncRequest, SyncResult

logger = logging.getLogger(__name__)

# Ownership, group, permission bits and symlinks are not preserved; add them
# after "--" where the destination storage supports them.
FIXED_OPTIONS = (
    "--recursive",
    "--times",
    "--delete",
    "--delete-excluded",
)


class RsyncPrimitive(SyncPrimitive):
    """Run rsync with a fixed, safety-first option set."""

    name = "rsync"

    def __init__(self, binary: str = "rsync", options: Optional[list[str]] = None) -> None:
        """
        Args:
            binary: rsync executable name or path
            options: Configured options placed after the fixed ones and
                before the per-run extra options
        """
        self.binary = binary
        self.options = list(options or [])

    def __repr__(self) -> str:
        return f"RsyncPrimitive({self.binary!r})"

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    def build_command(self, request: SyncRequest) -> list[str]:
        cmd = [self.binary, *FIXED_OPTIONS, f"--partial-dir={request.partial_dir}"]
        if request.link_dest:
            cmd += [f"--link-dest={request.link_dest}"]
        if request.remote_shell:
            cmd += ["-e", request.remote_shell]
        cmd += self.options
        cmd += request.extra_options
        cmd += [request.source, request.destination]
        return cmd

    def run(self, request: SyncRequest) -> SyncResult:
        cmd = self.build_command(request)
        logger.info("Running: %s", " ".join(cmd))
        loglevel = __logger__.logger.getEffectiveLevel()
        stdout = subprocess.DEVNULL if loglevel >= logging.WARNING else None
        result = __util__.exec_subprocess(
            cmd,
            stdout=stdout,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            check=False,
        )
        stderr = result.stderr or ""
        for line in stderr.splitlines():
            logger.warning("rsync: %s", line)
        if result.returncode != 0:
            logger.debug("rsync exited with %d", result.returncode)
        return SyncResult(returncode=result.returncode, stderr=stderr)
