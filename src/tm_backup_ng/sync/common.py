"""Interface of the bulk file-transfer mechanism a backup runs on.

The transaction only needs four capabilities from it: copy a tree into the
staging entry, resume partial files from a residue directory, hardlink files
unchanged against a baseline, and honour include/exclude filters passed as
extra options. Anything providing those can stand in for rsync.
"""

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SyncRequest:
    """One invocation of the sync primitive.

    Attributes:
        source: Source tree, addressed the way the primitive expects
        destination: Staging entry, addressed the way the primitive expects
        link_dest: Baseline path relative to the destination, or None for a full copy
        partial_dir: Name of the residue directory for interrupted files
        extra_options: User options, appended after the fixed ones
        remote_shell: Remote shell command for remote endpoints
    """

    source: str
    destination: str
    link_dest: Optional[str] = None
    partial_dir: str = ".partial"
    extra_options: list[str] = field(default_factory=list)
    remote_shell: Optional[str] = None


@dataclass
class SyncResult:
    """Outcome of one sync invocation."""

    returncode: int
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


class SyncPrimitive:
    """Generic structure of a sync primitive."""

    name = "sync"

    def is_available(self) -> bool:
        """Return whether the primitive can run in this environment."""
        raise NotImplementedError

    def build_command(self, request: SyncRequest) -> list[str]:
        raise NotImplementedError

    def run(self, request: SyncRequest) -> SyncResult:
        """Invoke the primitive once, blocking until it exits."""
        raise NotImplementedError
