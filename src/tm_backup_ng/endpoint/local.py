# pyright: standard

"""tm-backup-ng: tm_backup_ng/endpoint/local.py
Filesystem operations on local endpoints.
"""

import contextlib
import os
from pathlib import Path

from tm_backup_ng.__logger__ import logger
from tm_backup_ng.backupset import LOCK_FILE_NAME

from .common import Endpoint


class LocalEndpoint(Endpoint):
    """Operate on a local path."""

    def __init__(self, config=None, **kwargs) -> None:
        """
        Initialize the LocalEndpoint with a configuration dictionary.

        Args:
            config (dict): Configuration dictionary containing endpoint settings.
            kwargs: Additional keyword arguments overriding config entries.
        """
        super().__init__(config=config, **kwargs)

        # Resolve paths
        self.config["path"] = Path(self.config["path"]).expanduser().absolute()

    def get_id(self):
        """Return an id string to identify this endpoint over multiple runs."""
        return str(self.config["path"])

    def get_lock_path(self) -> Path:
        """The lock lives inside the destination root itself."""
        return Path(self.config["path"]) / LOCK_FILE_NAME

    def exists(self, path) -> bool:
        return os.path.lexists(path)

    def is_dir(self, path) -> bool:
        return os.path.isdir(path)

    def is_symlink(self, path) -> bool:
        return os.path.islink(path)

    def listdir(self, path) -> list[str]:
        try:
            return os.listdir(path)
        except FileNotFoundError:
            return []

    def read_pointer(self, path):
        try:
            return os.readlink(path)
        except OSError as e:
            if os.path.lexists(path):
                logger.debug("Cannot read link %s: %s", path, e)
            return None

    def rename(self, src, dst) -> None:
        logger.debug("Renaming %s -> %s", src, dst)
        os.rename(src, dst)

    def replace_symlink(self, target, link_path, swap_path) -> None:
        logger.debug("Pointing %s at %s (via %s)", link_path, target, swap_path)
        # A leftover swap link from an interrupted run is safe to drop
        if os.path.islink(swap_path):
            os.unlink(swap_path)
        os.symlink(target, swap_path)
        try:
            os.replace(swap_path, link_path)
        except OSError:
            with contextlib.suppress(OSError):
                os.unlink(swap_path)
            raise
