# pyright: standard

"""tm-backup-ng: tm_backup_ng/__logger__.py
A common logger writing timestamped lines through rich.

Informational records go to standard output, warnings and errors to standard
error, so unattended runs stay silent unless something goes wrong.
"""

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Initialize basic consoles and handlers
cons = Console()
err_cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)
# Package logger; module loggers (logging.getLogger(__name__)) propagate here
logger = logging.getLogger("tm_backup_ng")


class _BelowLevelFilter(logging.Filter):
    """Only let records below a given level through."""

    def __init__(self, level: int) -> None:
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


def _make_handler(console: Console) -> RichHandler:
    return RichHandler(
        console=console,
        show_path=False,
        omit_repeated_times=False,
        log_time_format=TIME_FORMAT,
    )


def create_logger(level="WARNING", log_file=None) -> None:
    """Helper function to setup logging for a run.

    Args:
        level: Log level name or number for the console handlers
        log_file: Optional path of a plain-text log file receiving every emitted record
    """
    # pylint: disable=global-statement
    global cons, err_cons, rich_handler

    cons = Console()
    err_cons = Console(stderr=True)
    rich_handler = _make_handler(cons)
    rich_handler.addFilter(_BelowLevelFilter(logging.WARNING))
    error_handler = _make_handler(err_cons)
    error_handler.setLevel(logging.WARNING)

    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(level)
    logger.addHandler(rich_handler)
    logger.addHandler(error_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.WatchedFileHandler(path, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s %(name)s: %(message)s", datefmt=TIME_FORMAT
            )
        )
        logger.addHandler(file_handler)
