# pyright: standard

"""tm-backup-ng: tm_backup_ng/endpoint/common.py
Common functionality among endpoints.
"""

from pathlib import Path

from tm_backup_ng import __util__, encode_path_for_file
from tm_backup_ng.__logger__ import logger


class Endpoint:
    """Generic structure of a filesystem endpoint.

    An endpoint is either the source tree or the destination root of a
    backup. Subclasses implement the handful of filesystem operations the
    transaction needs, locally or on a remote host.
    """

    _is_remote = False

    def __init__(self, config=None, **kwargs) -> None:
        """
        Initialize the Endpoint with a configuration dictionary.

        Args:
            config (dict): Configuration dictionary containing endpoint settings.
            kwargs: Additional keyword arguments overriding config entries.
        """
        config = config or {}
        self.config = {}

        self.config["path"] = config.get("path")
        self.config["lock_dir"] = config.get("lock_dir")

        for key, value in kwargs.items():
            self.config[key] = value

    @property
    def path(self) -> str:
        return str(self.config["path"])

    def prepare(self) -> None:
        """Check that the endpoint path exists before any transaction starts."""
        logger.debug("Preparing endpoint %r ...", self)
        return self._prepare()

    def get_lock_path(self) -> Path:
        """Return the local path of the advisory lock guarding this endpoint."""
        lock_dir = self.config.get("lock_dir")
        if not lock_dir:
            raise ValueError(f"No lock directory configured for {self!r}")
        lock_dir = Path(lock_dir).expanduser()
        lock_dir.mkdir(parents=True, exist_ok=True)
        return lock_dir / f"{encode_path_for_file(self.get_id())}.lock"

    # The following methods may be implemented by endpoints unless the
    # default behaviour is wanted.

    def __repr__(self) -> str:
        return f"{self.config['path']}"

    def get_id(self) -> str:
        """Return an id string to identify this endpoint over multiple runs."""
        return f"unknown://{self.config['path']}"

    def remote_shell(self):
        """Return the remote shell command the sync primitive should use, if any."""
        return None

    def sync_path(self, path, directory=False) -> str:
        """Return ``path`` in the form the sync primitive addresses it."""
        path = str(path)
        if directory and not path.endswith("/"):
            path += "/"
        return path

    def _prepare(self) -> None:
        if not self.exists(self.path):
            logger.error("Path does not exist: %s", self.path)
            raise __util__.UsageError(f"Path does not exist: {self.path}")

    def exists(self, path) -> bool:
        raise NotImplementedError

    def is_dir(self, path) -> bool:
        raise NotImplementedError

    def is_symlink(self, path) -> bool:
        raise NotImplementedError

    def listdir(self, path) -> list[str]:
        raise NotImplementedError

    def read_pointer(self, path):
        """Return the target of the symlink at ``path``, or None if there is none."""
        raise NotImplementedError

    def rename(self, src, dst) -> None:
        """Rename ``src`` to ``dst`` in one atomic step; raise OSError on failure."""
        raise NotImplementedError

    def replace_symlink(self, target, link_path, swap_path) -> None:
        """Point ``link_path`` at ``target`` by renaming a fresh link over it."""
        raise NotImplementedError
