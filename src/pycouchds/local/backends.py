"""Key-value backends for :class:`pycouchds.local.IndexedLocalStore`.

Two implementations share the :class:`StorageBackend` protocol:

* :class:`DbmStorage` - the platform's native key-value file (``dbm``).
* :class:`MemoryStorage` - a dict mirrored as one JSON blob into a
  :class:`BlobSlot` after every mutation.

:func:`open_backend` picks one at construction time and falls back to
memory when the native store cannot be opened.
"""

from __future__ import annotations

import dbm
import json
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from pycouchds.config import LocalStoreConfig

_logger = logging.getLogger(__name__)


class StorageBackend(Protocol):
    """String-to-string key-value storage."""

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...

    def clear(self) -> None: ...


@dataclass
class BlobSlot:
    """A single named string slot holding a serialized mapping."""

    value: str = ""


#: Process-wide slot used by :class:`MemoryStorage` when none is given.
GLOBAL_SLOT = BlobSlot()


class MemoryStorage:
    """In-memory backend persisted as one serialized blob.

    The slot is the only copy of the data: every read decodes it and every
    write re-serializes the whole mapping into it, so all
    :class:`MemoryStorage` instances built on the same slot share one view.
    """

    def __init__(self, slot: BlobSlot | None = None) -> None:
        self._slot = slot if slot is not None else GLOBAL_SLOT

    def _load(self) -> dict[str, str]:
        return json.loads(self._slot.value) if self._slot.value else {}

    def _persist(self, data: dict[str, str]) -> None:
        self._slot.value = json.dumps(data, separators=(",", ":"))

    def get_item(self, key: str) -> str | None:
        return self._load().get(key) or None

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = str(value)
        self._persist(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._persist(data)

    def clear(self) -> None:
        self._slot.value = ""


class DbmStorage:
    """Backend over a ``dbm`` database file."""

    def __init__(self, path: str) -> None:
        self._path = path
        self._db: Any = dbm.open(path, "c")

    def get_item(self, key: str) -> str | None:
        value = self._db.get(key.encode("utf-8"))
        if value is None:
            return None
        return bytes(value).decode("utf-8")

    def set_item(self, key: str, value: str) -> None:
        self._db[key.encode("utf-8")] = str(value).encode("utf-8")

    def remove_item(self, key: str) -> None:
        try:
            del self._db[key.encode("utf-8")]
        except KeyError:
            pass

    def clear(self) -> None:
        for key in list(self._db.keys()):
            del self._db[key]

    def close(self) -> None:
        self._db.close()


def open_backend(config: LocalStoreConfig) -> StorageBackend:
    """Native ``dbm`` storage when a path is configured and opens, else memory."""
    if config.path:
        try:
            return DbmStorage(config.path)
        except dbm.error as exc:
            _logger.warning("Native storage at %s unavailable (%s); using in-memory storage", config.path, exc)
    return MemoryStorage()
