"""Core backup operations for tm-backup-ng."""

from .operations import BackupTransaction, TransactionState, run_backup

__all__ = [
    "BackupTransaction",
    "TransactionState",
    "run_backup",
]
