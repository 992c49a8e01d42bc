"""Structured journal of backup transactions.

Each record is one JSON object per line, appended to the configured file::

    {"timestamp": "...", "pid": 1234, "action": "commit", "status": "completed",
     "destination": "/mnt/backup", "snapshot": "2026-10-18__03-00-00"}

Journaling is disabled until :func:`set_transaction_log` is given a path.
"""

import json
import logging
import os
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

_transaction_log_path: Optional[Path] = None
_lock = threading.Lock()


def set_transaction_log(path) -> None:
    """Set (or with None, unset) the journal file, creating its directory."""
    global _transaction_log_path
    if path is None:
        _transaction_log_path = None
        return
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    _transaction_log_path = path


def log_transaction(
    action: str,
    status: str,
    source: Optional[str] = None,
    destination: Optional[str] = None,
    snapshot: Optional[str] = None,
    baseline: Optional[str] = None,
    duration_seconds: Optional[float] = None,
    error: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> None:
    """Append one record to the journal; fields left as None are omitted."""
    path = _transaction_log_path
    if path is None:
        return

    record: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "pid": os.getpid(),
        "action": action,
        "status": status,
    }
    optional = {
        "source": source,
        "destination": destination,
        "snapshot": snapshot,
        "baseline": baseline,
        "duration_seconds": (
            round(duration_seconds, 3) if duration_seconds is not None else None
        ),
        "error": error,
        "details": details,
    }
    record.update({k: v for k, v in optional.items() if v is not None})

    try:
        with _lock:
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record) + "\n")
    except OSError as e:
        logger.warning("Could not write transaction log %s: %s", path, e)


class TransactionContext:
    """Journal the start and the outcome of a block of work.

    Exceptions raised inside the block are recorded as failures and
    re-raised.
    """

    def __init__(
        self,
        action: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        snapshot: Optional[str] = None,
        baseline: Optional[str] = None,
    ) -> None:
        self.action = action
        self.source = source
        self.destination = destination
        self.snapshot = snapshot
        self.baseline = baseline
        self.details: dict[str, Any] = {}
        self._start: Optional[float] = None

    def set_snapshot(self, snapshot: str) -> None:
        self.snapshot = snapshot

    def set_baseline(self, baseline: Optional[str]) -> None:
        self.baseline = baseline

    def add_detail(self, key: str, value: Any) -> None:
        self.details[key] = value

    def _log(self, status: str, **kwargs: Any) -> None:
        log_transaction(
            action=self.action,
            status=status,
            source=self.source,
            destination=self.destination,
            snapshot=self.snapshot,
            baseline=self.baseline,
            details=self.details or None,
            **kwargs,
        )

    def __enter__(self) -> "TransactionContext":
        self._start = time.monotonic()
        self._log("started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        duration = time.monotonic() - (self._start or time.monotonic())
        if exc_type is None:
            self._log("completed", duration_seconds=duration)
        else:
            self._log("failed", duration_seconds=duration, error=str(exc_val))
        return False


def read_transaction_log(
    path=None,
    limit: Optional[int] = None,
    action_filter: Optional[str] = None,
    status_filter: Optional[str] = None,
) -> list[dict[str, Any]]:
    """Return journal records, most recent first.

    Unparseable and empty lines are skipped.
    """
    path = Path(path) if path is not None else _transaction_log_path
    if path is None or not path.exists():
        return []

    records = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                continue
            if action_filter and record.get("action") != action_filter:
                continue
            if status_filter and record.get("status") != status_filter:
                continue
            records.append(record)

    records.reverse()
    if limit is not None:
        records = records[:limit]
    return records


def get_transaction_stats(path=None) -> dict[str, Any]:
    """Summarize the journal by action and outcome."""
    records = read_transaction_log(path)
    stats: dict[str, Any] = {"total_records": len(records)}
    for action, key in (
        ("backup", "backups"),
        ("transfer", "transfers"),
        ("commit", "commits"),
        ("pointer", "pointer_updates"),
    ):
        stats[key] = {"completed": 0, "failed": 0}
        for record in records:
            if record.get("action") == action and record.get("status") in stats[key]:
                stats[key][record["status"]] += 1

    backups = [
        r for r in records if r.get("action") == "backup" and r.get("status") == "completed"
    ]
    stats["last_snapshot"] = backups[0].get("snapshot") if backups else None
    return stats
