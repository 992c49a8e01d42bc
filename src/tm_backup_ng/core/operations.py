"""Core backup operations: the backup transaction and run_backup.

A backup runs as one transaction in three strictly sequential phases:

1. transfer: the sync primitive fills the fixed-name staging entry,
   hardlinking unchanged files against the snapshot ``current`` points at;
2. commit: the staging entry is renamed to its timestamped snapshot name;
3. pointer update: ``current`` is swapped to the new snapshot.

There is no rollback. A failure before the commit leaves the staging entry
and the primitive's partial residue in place, and running the same backup
again resumes from them.
"""

import contextlib
import enum
import logging
import time
from datetime import datetime
from typing import Callable, Iterator, Optional, Sequence

from filelock import FileLock, Timeout

from .. import __util__
from ..backupset import PARTIAL_DIR_NAME, BackupSet, snapshot_name
from ..config import Config
from ..endpoint import choose_endpoint
from ..sync import RsyncPrimitive, SyncPrimitive, SyncRequest
from ..transaction import TransactionContext

logger = logging.getLogger(__name__)


class TransactionState(enum.Enum):
    """Progress of a backup transaction."""

    IDLE = "idle"
    TRANSFERRING = "transferring"
    TRANSFERRED = "transferred"
    COMMITTING = "committing"
    POINTER_UPDATE = "pointer-update"
    DONE = "done"
    FAILED = "failed"


class BackupTransaction:
    """One backup of ``source`` into the destination root ``destination``.

    The destination is assumed to have a single writer; an advisory lock is
    held for the whole transaction to enforce that on this host.
    """

    def __init__(
        self,
        source,
        destination,
        primitive: SyncPrimitive,
        extra_options: Sequence[str] = (),
        clock: Callable[[], datetime] = datetime.now,
        lock_timeout: float = 0,
    ) -> None:
        """
        Args:
            source: Endpoint of the tree to back up
            destination: Endpoint of the destination root
            primitive: Sync primitive performing the transfer
            extra_options: Options handed to the primitive after the fixed ones
            clock: Source of the commit timestamp
            lock_timeout: Seconds to wait for a busy destination
        """
        self.source = source
        self.destination = destination
        self.primitive = primitive
        self.extra_options = list(extra_options)
        self.clock = clock
        self.lock_timeout = lock_timeout
        self.backup_set = BackupSet(destination.path)
        self.state = TransactionState.IDLE
        self.baseline: Optional[str] = None
        self.snapshot_name: Optional[str] = None

    def __repr__(self) -> str:
        return f"<BackupTransaction {self.source!r} -> {self.destination!r} [{self.state.value}]>"

    def run(self) -> str:
        """Run all phases and return the name of the committed snapshot.

        Raises:
            LockError: Another backup holds the destination
            TransferError: The sync primitive failed; staging is kept
            CommitError: The staging entry could not be committed; it is kept
            PointerUpdateError: The snapshot is committed but ``current`` is stale
        """
        if self.state is not TransactionState.IDLE:
            raise RuntimeError(f"Transaction already run: {self!r}")
        try:
            with self._locked():
                self._transfer()
                self._commit()
                self._update_pointer()
        except Exception:
            self.state = TransactionState.FAILED
            raise
        self.state = TransactionState.DONE
        logger.info("Backup %s complete", self.snapshot_name)
        return self.snapshot_name

    @contextlib.contextmanager
    def _locked(self) -> Iterator[None]:
        lock_path = None
        try:
            lock_path = self.destination.get_lock_path()
            lock = FileLock(str(lock_path), timeout=self.lock_timeout)
            lock.acquire()
        except Timeout as e:
            raise __util__.LockError(
                f"Another backup is running against {self.destination!r} (lock {lock_path})"
            ) from e
        except (OSError, ValueError) as e:
            raise __util__.LockError(
                f"Cannot lock {self.destination!r} (lock {lock_path or 'unset'}): {e}"
            ) from e
        logger.debug("Acquired lock %s", lock_path)
        try:
            yield
        finally:
            lock.release()
            logger.debug("Released lock %s", lock_path)

    def _transfer(self) -> None:
        self.state = TransactionState.TRANSFERRING
        dest = self.destination
        staging = self.backup_set.staging_path

        self.baseline = self.backup_set.baseline(dest)
        if self.baseline:
            logger.info("Baseline: %s", self.baseline)
        else:
            logger.info("No previous backup found, copying everything")
        resumed = dest.exists(staging)
        if resumed:
            logger.info("Resuming interrupted backup in %s", staging)
            if dest.exists(self.backup_set.partial_path):
                logger.info("Partially transferred files will be completed")

        request = SyncRequest(
            source=self.source.sync_path(
                self.source.path, directory=self.source.is_dir(self.source.path)
            ),
            destination=dest.sync_path(staging, directory=True),
            link_dest=BackupSet.link_dest if self.baseline else None,
            partial_dir=PARTIAL_DIR_NAME,
            extra_options=self.extra_options,
            remote_shell=self.source.remote_shell() or dest.remote_shell(),
        )

        with TransactionContext(
            "transfer",
            source=self.source.get_id(),
            destination=dest.get_id(),
            baseline=self.baseline,
        ) as tx:
            tx.add_detail("resumed", resumed)
            start = time.monotonic()
            result = self.primitive.run(request)
            if not result.success:
                raise __util__.TransferError(
                    f"{self.primitive.name} failed with exit code {result.returncode}; "
                    f"{staging} is kept, run the backup again to resume",
                    returncode=result.returncode,
                )
            logger.info(
                "Transfer finished in %.1f seconds", time.monotonic() - start
            )
        self.state = TransactionState.TRANSFERRED

    def _commit(self) -> None:
        self.state = TransactionState.COMMITTING
        dest = self.destination
        staging = self.backup_set.staging_path
        name = snapshot_name(self.clock())
        target = self.backup_set.snapshot_path(name)

        with TransactionContext(
            "commit", destination=dest.get_id(), snapshot=name, baseline=self.baseline
        ):
            try:
                collision = dest.exists(target)
            except __util__.AbortError as e:
                raise __util__.CommitError(
                    f"Cannot check for {target}: {e}; {staging} is kept"
                ) from e
            if collision:
                raise __util__.CommitError(
                    f"Snapshot {name} already exists; {staging} is kept, "
                    "run the backup again to commit it under a new name"
                )
            if self.baseline and name < self.baseline:
                logger.warning(
                    "Snapshot %s sorts before the previous snapshot %s; "
                    "has the clock gone backwards?",
                    name,
                    self.baseline,
                )
            try:
                dest.rename(staging, target)
            except (OSError, __util__.AbortError) as e:
                raise __util__.CommitError(
                    f"Cannot rename {staging} to {target}: {e}"
                ) from e
        self.snapshot_name = name
        logger.info("Committed snapshot %s", target)

    def _update_pointer(self) -> None:
        self.state = TransactionState.POINTER_UPDATE
        dest = self.destination
        name = self.snapshot_name
        pointer = self.backup_set.pointer_path

        with TransactionContext("pointer", destination=dest.get_id(), snapshot=name):
            try:
                blocked = dest.exists(pointer) and not dest.is_symlink(pointer)
                if not blocked:
                    dest.replace_symlink(name, pointer, self.backup_set.pointer_swap_path)
            except (OSError, __util__.AbortError) as e:
                raise __util__.PointerUpdateError(
                    f"Cannot point {pointer} at {name}: {e}. Snapshot {name} is complete",
                    snapshot_name=name,
                ) from e
            if blocked:
                raise __util__.PointerUpdateError(
                    f"{pointer} exists and is not a symlink; leaving it alone. "
                    f"Snapshot {name} is complete",
                    snapshot_name=name,
                )
        logger.info("%s -> %s", pointer, name)


def run_backup(
    source_spec: str,
    destination_spec: str,
    extra_options: Sequence[str] = (),
    config: Optional[Config] = None,
    primitive: Optional[SyncPrimitive] = None,
    clock: Callable[[], datetime] = datetime.now,
) -> str:
    """Validate the endpoints and run one backup transaction.

    Args:
        source_spec: Local path or ssh:// URL of the tree to back up
        destination_spec: Local path or ssh:// URL of the destination root
        extra_options: Options passed verbatim to the sync primitive
        config: Loaded configuration (defaults when None)
        primitive: Sync primitive to use instead of the configured rsync
        clock: Source of the commit timestamp

    Returns:
        Name of the committed snapshot
    """
    config = config or Config()
    common_config = config.endpoint_config()

    try:
        source = choose_endpoint(source_spec, common_config)
        destination = choose_endpoint(destination_spec, common_config)
    except ValueError as e:
        raise __util__.UsageError(str(e)) from e

    if source._is_remote and destination._is_remote:
        raise __util__.UsageError(
            "Source and destination cannot both be remote"
        )

    source.prepare()
    destination.prepare()
    if not destination.is_dir(destination.path):
        raise __util__.UsageError(f"Destination is not a directory: {destination!r}")

    if primitive is None:
        primitive = RsyncPrimitive(config.rsync.binary, config.rsync.options)
    if not primitive.is_available():
        raise __util__.SyncUnavailableError(
            f"{primitive.name} is not available in this environment"
        )

    logger.info(__util__.log_heading(f"Backup {source!r} -> {destination!r}"))
    transaction = BackupTransaction(
        source,
        destination,
        primitive,
        extra_options=extra_options,
        clock=clock,
        lock_timeout=config.global_config.lock_timeout,
    )
    with TransactionContext(
        "backup", source=source.get_id(), destination=destination.get_id()
    ) as tx:
        name = transaction.run()
        tx.set_snapshot(name)
        tx.set_baseline(transaction.baseline)
    return name
