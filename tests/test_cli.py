"""Tests for the command-line entry point."""

import json
import os
from unittest.mock import patch

import pytest

from tm_backup_ng import __util__, __version__
from tm_backup_ng.backupset import is_snapshot_name
from tm_backup_ng.cli.dispatcher import create_parser, main, split_extra_options


@pytest.fixture(autouse=True)
def no_system_config(monkeypatch, tmp_path):
    """Keep the host's configuration files out of the tests."""
    monkeypatch.setattr(
        "tm_backup_ng.config.loader.CONFIG_PATHS", [tmp_path / "no-such-config.toml"]
    )


class TestSplitExtraOptions:
    """Tests for split_extra_options."""

    def test_no_separator(self):
        assert split_extra_options(["-v", "src", "dst"]) == (["-v", "src", "dst"], [])

    def test_separator(self):
        """Test everything after the first "--" is passed through verbatim."""
        own, extra = split_extra_options(["src", "dst", "--", "--exclude=*.o", "--", "-v"])

        assert own == ["src", "dst"]
        assert extra == ["--exclude=*.o", "--", "-v"]

    def test_trailing_separator(self):
        assert split_extra_options(["src", "dst", "--"]) == (["src", "dst"], [])


class TestParser:
    """Tests for the argument parser."""

    def test_positionals(self):
        args = create_parser().parse_args(["-v", "/src", "/dst"])

        assert args.source == "/src"
        assert args.destination == "/dst"
        assert args.verbose is True

    def test_help_exits_zero(self, capsys):
        """Test --help prints usage and exits successfully."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--help"])

        assert exc_info.value.code == 0
        assert "tm-backup-ng" in capsys.readouterr().out

    def test_unknown_flag_exits_one(self):
        """Test usage errors exit with 1, not argparse's 2."""
        with pytest.raises(SystemExit) as exc_info:
            main(["--no-such-flag", "/src", "/dst"])

        assert exc_info.value.code == 1


class TestMain:
    """Tests for main."""

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert capsys.readouterr().out.strip() == f"tm-backup-ng {__version__}"

    @pytest.mark.parametrize("argv", [[], ["/src"]])
    def test_missing_arguments(self, argv):
        """Test source and destination are both required."""
        with pytest.raises(SystemExit) as exc_info:
            main(argv)

        assert exc_info.value.code == 1

    @patch("tm_backup_ng.cli.dispatcher.run_backup", return_value="2026-10-18__03-00-00")
    def test_extra_options_reach_backup(self, mock_backup):
        """Test options after "--" are handed to the backup unchanged."""
        assert main(["/src", "/dst", "--", "--exclude=*.tmp", "--perms"]) == 0

        args, kwargs = mock_backup.call_args
        assert args == ("/src", "/dst")
        assert kwargs["extra_options"] == ["--exclude=*.tmp", "--perms"]

    def test_missing_source(self, tmp_path, dest_root):
        """Test a source that does not exist fails with 1."""
        assert main([str(tmp_path / "missing"), str(dest_root)]) == 1

    def test_destination_not_directory(self, source_tree, tmp_path):
        """Test a destination that is a file fails with 1."""
        not_dir = tmp_path / "file"
        not_dir.write_text("x")

        assert main([str(source_tree), str(not_dir)]) == 1

    def test_invalid_config(self, tmp_config_dir):
        """Test a broken config file fails with 1 before any backup."""
        bad = tmp_config_dir / "bad.toml"
        bad.write_text("[ssh]\nport = 0\n")

        with patch("tm_backup_ng.cli.dispatcher.run_backup") as mock_backup:
            assert main(["-c", str(bad), "/src", "/dst"]) == 1

        mock_backup.assert_not_called()

    @pytest.mark.parametrize(
        "error",
        [
            __util__.TransferError("rsync failed with exit code 23", returncode=23),
            __util__.CommitError("Snapshot already exists"),
            __util__.LockError("Another backup is running"),
            __util__.SyncUnavailableError("rsync is not available"),
            __util__.PointerUpdateError("current is not a symlink", snapshot_name="x"),
        ],
    )
    def test_failures_exit_one(self, error):
        """Test every kind of backup failure maps to exit code 1."""
        with patch("tm_backup_ng.cli.dispatcher.run_backup", side_effect=error):
            assert main(["/src", "/dst"]) == 1

    def test_interrupted(self):
        with patch("tm_backup_ng.cli.dispatcher.run_backup", side_effect=KeyboardInterrupt):
            assert main(["/src", "/dst"]) == 1


class TestEndToEnd:
    """main driving a real transaction with the fake sync primitive."""

    def test_backup_and_journal(self, source_tree, dest_root, fake_sync, tmp_path, monkeypatch):
        """Test a backup is committed and every phase lands in the journal."""
        monkeypatch.setattr(
            "tm_backup_ng.core.operations.RsyncPrimitive", lambda *args, **kwargs: fake_sync
        )
        journal = tmp_path / "journal" / "transactions.log"

        code = main(["--transaction-log", str(journal), str(source_tree), str(dest_root)])

        assert code == 0
        (name,) = [n for n in os.listdir(dest_root) if is_snapshot_name(n)]
        assert os.readlink(dest_root / "current") == name
        assert (dest_root / name / "docs" / "b.txt").read_text() == "bravo\n"

        records = [json.loads(line) for line in journal.read_text().splitlines()]
        completed = [r["action"] for r in records if r["status"] == "completed"]
        assert completed == ["transfer", "commit", "pointer", "backup"]
        assert records[-1]["snapshot"] == name

    def test_pointer_failure_exits_one(self, source_tree, dest_root, fake_sync, monkeypatch):
        """Test a stale pointer after a good commit still exits 1, data kept."""
        monkeypatch.setattr(
            "tm_backup_ng.core.operations.RsyncPrimitive", lambda *args, **kwargs: fake_sync
        )
        (dest_root / "current").mkdir()

        assert main([str(source_tree), str(dest_root)]) == 1

        (name,) = [n for n in os.listdir(dest_root) if is_snapshot_name(n)]
        assert (dest_root / name / "a.txt").read_text() == "alpha\n"
        assert (dest_root / "current").is_dir()
        assert not (dest_root / ".inprogress").exists()

    def test_config_options_reach_rsync(self, source_tree, dest_root, tmp_config_dir, monkeypatch):
        """Test the configured rsync binary and options are used."""
        config_path = tmp_config_dir / "config.toml"
        config_path.write_text(
            '[rsync]\nbinary = "/opt/rsync"\noptions = ["--one-file-system"]\n'
        )
        seen = {}

        class Recorder:
            name = "rsync"

            def __init__(self, binary, options):
                seen["binary"] = binary
                seen["options"] = options

            def is_available(self):
                return False

        monkeypatch.setattr("tm_backup_ng.core.operations.RsyncPrimitive", Recorder)

        assert main(["-c", str(config_path), str(source_tree), str(dest_root)]) == 1
        assert seen == {"binary": "/opt/rsync", "options": ["--one-file-system"]}


class TestInspection:
    """The read-only --list, --history and --print-config views."""

    def test_print_config(self, capsys):
        """Test the example configuration is printed without a backup."""
        with patch("tm_backup_ng.cli.dispatcher.run_backup") as mock_backup:
            assert main(["--print-config"]) == 0

        assert "[rsync]" in capsys.readouterr().out
        mock_backup.assert_not_called()

    def test_list(self, dest_root, capsys):
        """Test snapshots are listed oldest first with current marked."""
        for name in ("2026-10-19__03-00-00", "2026-10-18__03-00-00"):
            (dest_root / name).mkdir()
        os.symlink("2026-10-19__03-00-00", dest_root / "current")
        (dest_root / ".inprogress").mkdir()

        assert main(["--list", str(dest_root)]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines[0] == "2026-10-18__03-00-00"
        assert lines[1] == "2026-10-19__03-00-00  (current)"
        assert "interrupted backup" in lines[2]

    def test_list_empty(self, dest_root, capsys):
        assert main(["--list", str(dest_root)]) == 0
        assert "No snapshots" in capsys.readouterr().out

    def test_list_missing_destination(self, tmp_path):
        assert main(["--list", str(tmp_path / "missing")]) == 1

    def test_history(self, source_tree, dest_root, fake_sync, tmp_path, monkeypatch, capsys):
        """Test the journal of a finished backup is summarized."""
        monkeypatch.setattr(
            "tm_backup_ng.core.operations.RsyncPrimitive", lambda *args, **kwargs: fake_sync
        )
        journal = tmp_path / "transactions.log"
        assert main(["--transaction-log", str(journal), str(source_tree), str(dest_root)]) == 0
        capsys.readouterr()

        assert main(["--history", "-n", "2", "--transaction-log", str(journal)]) == 0

        out = capsys.readouterr().out
        assert "Backups: 1 completed, 0 failed" in out
        assert "Last snapshot: " in out
        records = [line for line in out.splitlines() if line[:1].isdigit()]
        assert len(records) == 2
        assert "backup" in records[0]

    def test_history_without_log(self):
        """Test --history needs a journal to read."""
        assert main(["--history"]) == 1
