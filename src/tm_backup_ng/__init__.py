"""tm-backup-ng: tm_backup_ng/__init__.py."""

__version__ = "0.1.0"


def encode_path_for_file(spec: str) -> str:
    """Replace path and URL separators so a destination spec can name a file."""
    return (
        spec.replace("://", "_").lstrip("/").replace("/", "_").replace(":", "_")
        or "root"
    )
