"""Naming and lookup rules for a backup destination root.

A destination root holds committed snapshots named by timestamp, one
fixed-name staging entry for the transfer in progress, and a ``current``
symlink pointing at the newest snapshot::

    <root>/
      current -> 2026-10-18__03-00-00
      2026-10-18__03-00-00/
      .inprogress/
        .partial/

Nothing in this module touches the filesystem directly; lookups that need to
see the destination go through an endpoint.
"""

import logging
import re
from datetime import datetime
from typing import Optional

logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT = "%Y-%m-%d__%H-%M-%S"
SNAPSHOT_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}__\d{2}-\d{2}-\d{2}$")

STAGING_NAME = ".inprogress"
PARTIAL_DIR_NAME = ".partial"
LATEST_POINTER_NAME = "current"
POINTER_SWAP_NAME = ".current.new"
LOCK_FILE_NAME = ".tm-backup-ng.lock"


def snapshot_name(now: Optional[datetime] = None) -> str:
    """Return the snapshot name for ``now`` (default: the current local time)."""
    return (now or datetime.now()).strftime(SNAPSHOT_FORMAT)


def is_snapshot_name(name: str) -> bool:
    """Check whether ``name`` is a well-formed, valid snapshot timestamp."""
    if not SNAPSHOT_PATTERN.match(name):
        return False
    try:
        parse_snapshot_name(name)
    except ValueError:
        return False
    return True


def parse_snapshot_name(name: str) -> datetime:
    """Return the point in time a snapshot name stands for.

    Raises:
        ValueError: If ``name`` is not a snapshot name
    """
    return datetime.strptime(name, SNAPSHOT_FORMAT)


class BackupSet:
    """Path computations for one destination root."""

    # Staging and pointer are siblings, so the baseline is always reachable
    # from inside the staging entry through this fixed relative path.
    link_dest = f"../{LATEST_POINTER_NAME}"

    def __init__(self, root: str) -> None:
        self.root = str(root).rstrip("/") or "/"

    def __repr__(self) -> str:
        return f"BackupSet({self.root!r})"

    def _join(self, name: str) -> str:
        if self.root == "/":
            return f"/{name}"
        return f"{self.root}/{name}"

    @property
    def staging_path(self) -> str:
        return self._join(STAGING_NAME)

    @property
    def partial_path(self) -> str:
        return f"{self.staging_path}/{PARTIAL_DIR_NAME}"

    @property
    def pointer_path(self) -> str:
        return self._join(LATEST_POINTER_NAME)

    @property
    def pointer_swap_path(self) -> str:
        return self._join(POINTER_SWAP_NAME)

    def snapshot_path(self, name: str) -> str:
        if not is_snapshot_name(name):
            raise ValueError(f"Not a snapshot name: {name!r}")
        return self._join(name)

    def baseline(self, endpoint) -> Optional[str]:
        """Return the snapshot the latest pointer targets, or None.

        A missing pointer, a pointer to something that is not a snapshot name,
        and a dangling pointer all mean there is no baseline and the next
        transfer is a full copy.
        """
        target = endpoint.read_pointer(self.pointer_path)
        if target is None:
            logger.debug("No latest pointer in %s", self.root)
            return None
        # The target must be a bare snapshot name so ../current resolves inside the root
        name = target
        if not is_snapshot_name(name):
            logger.warning(
                "Latest pointer %s targets %r, which is not a snapshot in %s; ignoring it",
                self.pointer_path,
                target,
                self.root,
            )
            return None
        if not endpoint.is_dir(self.snapshot_path(name)):
            logger.warning(
                "Latest pointer %s is dangling (%s is missing); ignoring it",
                self.pointer_path,
                name,
            )
            return None
        return name

    def list_snapshots(self, endpoint) -> list[str]:
        """Return committed snapshot names, oldest first."""
        return sorted(name for name in endpoint.listdir(self.root) if is_snapshot_name(name))
