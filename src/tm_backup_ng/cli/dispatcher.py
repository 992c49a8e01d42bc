"""CLI entry point: parse arguments and run one backup.

    tm-backup-ng [flags] <source> <destination> [-- <extra rsync options>]
    tm-backup-ng --list <destination>
    tm-backup-ng --history [-n N]
    tm-backup-ng --print-config
"""

import argparse
import logging
import sys

from .. import __util__, __version__
from ..__logger__ import create_logger
from ..config import (
    Config,
    ConfigError,
    find_config_file,
    generate_example_config,
    load_config,
)
from ..core.operations import run_backup
from ..transaction import set_transaction_log
from .common import create_global_parser, get_log_level
from .status import execute_history, execute_list

logger = logging.getLogger(__name__)

EXTRA_OPTIONS_SEPARATOR = "--"


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports usage errors with exit code 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        logger.error("%s", message)
        self.exit(1)


def split_extra_options(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split the command line at the first "--".

    Args:
        argv: Command line arguments (without program name)

    Returns:
        Tuple of (own arguments, options passed through to rsync)
    """
    if EXTRA_OPTIONS_SEPARATOR not in argv:
        return list(argv), []
    index = argv.index(EXTRA_OPTIONS_SEPARATOR)
    return list(argv[:index]), list(argv[index + 1 :])


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = _ArgumentParser(
        prog="tm-backup-ng",
        parents=[create_global_parser()],
        description=(
            "Incremental, resumable, atomic time-machine style backups with rsync. "
            "Anything after '--' is passed to rsync."
        ),
        epilog=(
            "Backups are committed as <destination>/YYYY-MM-DD__HH-MM-SS with "
            "<destination>/current pointing at the newest one. An interrupted "
            "backup resumes when the same command is run again."
        ),
    )

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )
    parser.add_argument(
        "--transaction-log",
        metavar="FILE",
        help="Append JSON-lines records of each backup phase to FILE",
    )

    views = parser.add_argument_group("Inspection (no backup is run)")
    views.add_argument(
        "--list",
        dest="list_destination",
        metavar="DESTINATION",
        help="List the snapshots in DESTINATION, marking the current one",
    )
    views.add_argument(
        "--history",
        action="store_true",
        help="Show a summary and recent records of the transaction log",
    )
    views.add_argument(
        "-n",
        "--limit",
        type=int,
        default=10,
        metavar="N",
        help="Number of records --history shows (default: 10)",
    )
    views.add_argument(
        "--print-config",
        action="store_true",
        help="Print an example configuration file and exit",
    )
    parser.add_argument(
        "source",
        nargs="?",
        help="Directory or file to back up (local path or ssh://[user@]host[:port]/path)",
    )
    parser.add_argument(
        "destination",
        nargs="?",
        help="Destination root holding the snapshots (local path or ssh:// URL)",
    )

    return parser


def _load_config(args: argparse.Namespace) -> Config:
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is None:
        return Config()
    logger.debug("Loading configuration from: %s", config_path)
    config, warnings = load_config(config_path)
    for warning in warnings:
        logger.warning("Config: %s", warning)
    return config


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the tm-backup-ng CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code: 0 on success, 1 on any failure
    """
    if argv is None:
        argv = sys.argv[1:]

    # Errors raised while parsing still need timestamped output
    create_logger("WARNING")

    own_args, extra_options = split_extra_options(argv)
    parser = create_parser()
    args = parser.parse_args(own_args)

    if args.version:
        print(f"tm-backup-ng {__version__}")
        return 0

    if args.print_config:
        print(generate_example_config(), end="")
        return 0

    inspecting = args.list_destination is not None or args.history
    if not inspecting and (args.source is None or args.destination is None):
        parser.error("the following arguments are required: source, destination")

    try:
        config = _load_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return 1

    try:
        create_logger(get_log_level(args), log_file=config.global_config.log_file)
    except OSError as e:
        logger.error("Cannot open log file: %s", e)
        return 1

    if args.list_destination is not None:
        return execute_list(args, config)
    if args.history:
        return execute_history(args, config)

    transaction_log = args.transaction_log or config.global_config.transaction_log
    try:
        set_transaction_log(transaction_log)
    except OSError as e:
        logger.error("Cannot use transaction log %s: %s", transaction_log, e)
        return 1

    try:
        name = run_backup(
            args.source, args.destination, extra_options=extra_options, config=config
        )
    except __util__.PointerUpdateError as e:
        logger.error("%s", e)
        logger.error(
            "The backup data is safe; the next backup will not be incremental "
            "until the latest pointer is fixed"
        )
        return 1
    except __util__.AbortError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted; run the same command again to resume")
        return 1
    finally:
        set_transaction_log(None)

    logger.info("Backup complete: %s", name)
    return 0
