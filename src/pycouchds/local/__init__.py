"""Indexed key-value persistence for small local tables."""

from pycouchds.local.adapter import IndexedLocalStore
from pycouchds.local.backends import (
    GLOBAL_SLOT,
    BlobSlot,
    DbmStorage,
    MemoryStorage,
    StorageBackend,
    open_backend,
)

__all__ = [
    "GLOBAL_SLOT",
    "BlobSlot",
    "DbmStorage",
    "IndexedLocalStore",
    "MemoryStorage",
    "StorageBackend",
    "open_backend",
]
