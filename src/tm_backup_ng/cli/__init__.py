"""Command line interface for tm-backup-ng."""

from .dispatcher import main

__all__ = ["main"]
