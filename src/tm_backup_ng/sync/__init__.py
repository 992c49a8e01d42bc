"""Sync primitives: the external bulk transfer a backup orchestrates."""

from .common import SyncPrimitive, SyncRequest, SyncResult
from .rsync import FIXED_OPTIONS, RsyncPrimitive

__all__ = [
    "FIXED_OPTIONS",
    "RsyncPrimitive",
    "SyncPrimitive",
    "SyncRequest",
    "SyncResult",
]
