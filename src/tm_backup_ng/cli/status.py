"""Read-only views: snapshots in a destination and the transaction journal."""

import argparse
import logging

from .. import __util__
from ..backupset import BackupSet
from ..config import Config
from ..endpoint import choose_endpoint
from ..transaction import get_transaction_stats, read_transaction_log

logger = logging.getLogger(__name__)


def execute_list(args: argparse.Namespace, config: Config) -> int:
    """Print the committed snapshots of a destination, oldest first.

    The snapshot ``current`` points at is marked, and an interrupted
    backup waiting to be resumed is reported.

    Args:
        args: Parsed command line arguments
        config: Loaded configuration

    Returns:
        Exit code
    """
    try:
        endpoint = choose_endpoint(args.list_destination, config.endpoint_config())
        endpoint.prepare()
        backup_set = BackupSet(endpoint.path)
        latest = backup_set.baseline(endpoint)
        names = backup_set.list_snapshots(endpoint)
        interrupted = endpoint.exists(backup_set.staging_path)
    except ValueError as e:
        logger.error("%s", e)
        return 1
    except __util__.AbortError as e:
        logger.error("%s", e)
        return 1

    for name in names:
        print(f"{name}  (current)" if name == latest else name)
    if not names:
        print(f"No snapshots in {endpoint!r}")
    if interrupted:
        print(f"{backup_set.staging_path}: interrupted backup, resumed by the next run")
    return 0


def execute_history(args: argparse.Namespace, config: Config) -> int:
    """Print a summary and the most recent records of the transaction journal.

    Args:
        args: Parsed command line arguments
        config: Loaded configuration

    Returns:
        Exit code
    """
    path = args.transaction_log or config.global_config.transaction_log
    if not path:
        logger.error("No transaction log configured; use --transaction-log FILE")
        return 1

    stats = get_transaction_stats(path)
    records = read_transaction_log(path, limit=args.limit)

    print(f"Transaction log: {path}")
    print("=" * 60)
    for label, key in (
        ("Backups", "backups"),
        ("Transfers", "transfers"),
        ("Commits", "commits"),
        ("Pointer updates", "pointer_updates"),
    ):
        counts = stats[key]
        print(f"{label}: {counts['completed']} completed, {counts['failed']} failed")
    if stats["last_snapshot"]:
        print(f"Last snapshot: {stats['last_snapshot']}")
    print("")

    for record in records:
        line = "{}  {:<8} {:<9}".format(
            record.get("timestamp", "?"), record.get("action", "?"), record.get("status", "?")
        )
        if record.get("snapshot"):
            line += f" {record['snapshot']}"
        if record.get("error"):
            line += f"  error: {record['error']}"
        print(line)
    return 0
