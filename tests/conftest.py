"""Pytest configuration and shared fixtures."""

import os
import shutil
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from tm_backup_ng.sync import SyncPrimitive, SyncResult


class FakeSyncPrimitive(SyncPrimitive):
    """In-process stand-in for rsync on local paths.

    Copies the source tree into the destination, hardlinking files whose
    size and mtime match the link-dest baseline and skipping files already
    complete in the destination. ``fail_after`` stops the transfer with a
    non-zero code after that many files were copied, leaving a truncated
    file in the partial directory like an interrupted rsync would.
    """

    name = "fake-sync"

    def __init__(self, fail_after=None, during_transfer=None, available=True):
        self.fail_after = fail_after
        self.during_transfer = during_transfer
        self.available = available
        self.requests = []
        self.copied = []
        self.linked = []
        self.skipped = []

    def is_available(self):
        return self.available

    def build_command(self, request):
        return ["fake-sync", request.source, request.destination]

    @staticmethod
    def _unchanged(a: Path, b: Path) -> bool:
        sa, sb = a.stat(), b.stat()
        return sa.st_size == sb.st_size and int(sa.st_mtime) == int(sb.st_mtime)

    def run(self, request):
        self.requests.append(request)
        source = Path(request.source.rstrip("/"))
        dest = Path(request.destination.rstrip("/"))
        dest.mkdir(exist_ok=True)
        baseline = None
        if request.link_dest:
            candidate = dest / request.link_dest
            if candidate.is_dir():
                baseline = candidate

        files = (
            sorted(p.relative_to(source) for p in source.rglob("*") if p.is_file())
            if source.is_dir()
            else [Path(source.name)]
        )
        root = source if source.is_dir() else source.parent

        copied_now = 0
        for rel in files:
            src = root / rel
            target = dest / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            if target.exists() and self._unchanged(src, target):
                self.skipped.append(str(rel))
                continue
            if baseline is not None and (baseline / rel).is_file() and self._unchanged(
                src, baseline / rel
            ):
                if target.exists():
                    target.unlink()
                os.link(baseline / rel, target)
                self.linked.append(str(rel))
                continue
            if self.fail_after is not None and copied_now >= self.fail_after:
                partial = dest / request.partial_dir
                partial.mkdir(exist_ok=True)
                (partial / rel.name).write_bytes(src.read_bytes()[:1])
                return SyncResult(returncode=20, stderr="rsync error: received SIGINT")
            if target.exists():
                target.unlink()
            shutil.copy2(src, target)
            self.copied.append(str(rel))
            copied_now += 1
            if self.during_transfer is not None:
                self.during_transfer(dest)

        # --delete: drop files the source no longer has
        wanted = {str(rel) for rel in files}
        for p in sorted(dest.rglob("*"), reverse=True):
            rel = p.relative_to(dest)
            if rel.parts[0] == request.partial_dir:
                continue
            if p.is_file() and str(rel) not in wanted:
                p.unlink()
        shutil.rmtree(dest / request.partial_dir, ignore_errors=True)
        return SyncResult(returncode=0)


class StepClock:
    """Clock advancing by a fixed step on every call."""

    def __init__(self, start=datetime(2026, 10, 18, 3, 0, 0), step=timedelta(minutes=1)):
        self.now = start
        self.step = step

    def __call__(self):
        current = self.now
        self.now += self.step
        return current


@pytest.fixture
def fake_sync():
    """A fake sync primitive that succeeds."""
    return FakeSyncPrimitive()


@pytest.fixture
def clock():
    """Deterministic commit clock, one minute per backup."""
    return StepClock()


@pytest.fixture
def source_tree(tmp_path):
    """A small source tree."""
    src = tmp_path / "src"
    (src / "docs").mkdir(parents=True)
    (src / "a.txt").write_text("alpha\n")
    (src / "docs" / "b.txt").write_text("bravo\n")
    (src / "docs" / "c.txt").write_text("charlie\n")
    return src


@pytest.fixture
def dest_root(tmp_path):
    """An empty destination root."""
    dst = tmp_path / "dst"
    dst.mkdir()
    return dst


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
log_file = "/var/log/tm-backup-ng.log"
transaction_log = "/var/lib/tm-backup-ng/transactions.log"
lock_timeout = 30
lock_dir = "/run/tm-backup-ng"

[rsync]
binary = "/usr/local/bin/rsync"
options = ["--exclude-from=/etc/tm-backup-ng/excludes", "--one-file-system"]

[ssh]
port = 2222
identity_file = "/root/.ssh/backup_key"
options = ["-o", "BatchMode=yes"]
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def make_sync():
    """Factory for fake sync primitives with custom failure behaviour."""
    return FakeSyncPrimitive
