# pyright: standard

"""tm-backup-ng: tm_backup_ng/__util__.py
Common errors and helpers shared by the modules.
"""

import subprocess

from .__logger__ import logger


class AbortError(Exception):
    """Fatal error that stops the current run."""


class UsageError(AbortError):
    """Invalid input detected before any transaction starts."""


class SyncUnavailableError(AbortError):
    """The external sync primitive cannot be found."""


class LockError(AbortError):
    """Another writer holds the destination."""


class TransferError(AbortError):
    """The sync primitive exited unsuccessfully."""

    def __init__(self, message, returncode=None) -> None:
        super().__init__(message)
        self.returncode = returncode


class CommitError(AbortError):
    """The staging entry could not be renamed to its snapshot name."""


class PointerUpdateError(AbortError):
    """The snapshot is committed but the latest pointer could not be updated."""

    def __init__(self, message, snapshot_name=None) -> None:
        super().__init__(message)
        self.snapshot_name = snapshot_name


def exec_subprocess(command, method="run", **kwargs):
    """Run ``command`` with the given subprocess method and return its result."""
    logger.debug("Executing: %s", command)
    try:
        return getattr(subprocess, method)(command, **kwargs)
    except FileNotFoundError as e:
        logger.error("Command not found: %s", command[0])
        raise AbortError(f"Command not found: {command[0]}") from e


def log_heading(caption) -> str:
    """Formatted heading for logging output sections."""
    return f"--[ {caption} ]--"
