"""Indexed table storage over a flat key-value backend.

Records of one table live under ``table:id`` keys.  A JSON array stored
under ``table:index`` lists those keys in insertion order and is the only
way to enumerate the table.  The index is always rewritten as a whole.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Sequence
from typing import Any

from pycouchds.config import LocalStoreConfig
from pycouchds.exceptions import CouchInvalidInputError
from pycouchds.local.backends import StorageBackend, open_backend

_logger = logging.getLogger(__name__)

#: Record id under which each table keeps its index.
INDEX_ID = "index"


class IndexedLocalStore:
    """Table of JSON records with an ordered key index.

    Parameters
    ----------
    backend : StorageBackend
        Where the records and the index are kept.
    table : str
        Table name used as the key prefix.
    legacy_zero_index_check : bool
        When ``True``, :meth:`save_all` treats an index hit at position 0
        as a miss (the historical ``pos <= 0`` check), so the first key of
        the index gets appended again instead of replaced.
    prune_index_on_remove : bool
        When ``False`` (default), :meth:`remove` leaves the key in the index
        and :meth:`all` silently skips it afterwards.
    """

    def __init__(
        self,
        backend: StorageBackend,
        table: str = "field",
        *,
        legacy_zero_index_check: bool = False,
        prune_index_on_remove: bool = False,
    ) -> None:
        self._storage = backend
        self.table = table
        self._legacy_zero_index_check = legacy_zero_index_check
        self._prune_index_on_remove = prune_index_on_remove
        self._index_key = f"{table}:{INDEX_ID}"

        if self._storage.get_item(self._index_key) is None:
            self._write_index([])

    @classmethod
    def open(cls, config: LocalStoreConfig | None = None) -> IndexedLocalStore:
        config = config or LocalStoreConfig()
        return cls(
            open_backend(config),
            config.table,
            legacy_zero_index_check=config.legacy_zero_index_check,
            prune_index_on_remove=config.prune_index_on_remove,
        )

    @property
    def backend(self) -> StorageBackend:
        return self._storage

    def close(self) -> None:
        """Close the backend if it holds a resource (``DbmStorage``)."""
        close = getattr(self._storage, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> IndexedLocalStore:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    def _key(self, record_id: str) -> str:
        if record_id == INDEX_ID:
            raise CouchInvalidInputError(f"{INDEX_ID!r} is reserved for the index of table {self.table}")
        return f"{self.table}:{record_id}"

    def _read_index(self) -> list[str]:
        raw = self._storage.get_item(self._index_key)
        if raw is None:
            return []
        index = json.loads(raw)
        return index if isinstance(index, list) else []

    def _write_index(self, index: list[str]) -> None:
        self._storage.set_item(self._index_key, json.dumps(index))

    def _upsert_key(self, index: list[str], key: str) -> None:
        try:
            position = index.index(key)
        except ValueError:
            position = -1
        missing = position <= 0 if self._legacy_zero_index_check else position < 0
        if missing:
            index.append(key)
        else:
            index[position] = key

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def save(self, record: Any, key: str | None = None) -> str:
        """Store one record under ``key`` (a fresh uuid when omitted) and return the key."""
        record_id = key if key is not None else uuid.uuid4().hex
        storage_key = self._key(record_id)

        index = self._read_index()
        self._upsert_key(index, storage_key)
        self._write_index(index)

        self._storage.set_item(storage_key, json.dumps(record))
        return record_id

    def save_all(self, keys: Sequence[str], records: Sequence[Any]) -> None:
        """Store a batch of records.

        The index is updated for the whole batch and written once, before
        any record of the batch.
        """
        if len(keys) != len(records):
            raise CouchInvalidInputError(f"save_all got {len(keys)} keys but {len(records)} records")

        index = self._read_index()
        storage_keys = [self._key(record_id) for record_id in keys]
        for storage_key in storage_keys:
            self._upsert_key(index, storage_key)
        self._write_index(index)

        for storage_key, record in zip(storage_keys, records):
            self._storage.set_item(storage_key, json.dumps(record))
        _logger.debug("Saved %d records to table %s", len(keys), self.table)

    def get(self, record_id: str) -> Any:
        """Return the record stored under ``record_id``, or ``None``.

        Mapping records get their id added under ``"key"``.
        """
        raw = self._storage.get_item(self._key(record_id))
        if raw is None:
            return None
        record = json.loads(raw)
        if isinstance(record, dict):
            record["key"] = record_id
        return record

    def all(self) -> list[Any]:
        """Return every indexed record in index order.

        The stored JSON fragments are joined and decoded in one pass;
        keys whose record is gone are skipped.
        """
        fragments: list[str] = []
        for storage_key in self._read_index():
            raw = self._storage.get_item(storage_key)
            if raw:
                fragments.append(raw)
        return json.loads("[" + ",".join(fragments) + "]")

    def keys(self) -> list[str]:
        """Record ids listed by the index, in order (duplicates included)."""
        prefix = f"{self.table}:"
        return [key[len(prefix):] for key in self._read_index() if key.startswith(prefix)]

    def remove(self, record_id: str) -> None:
        storage_key = self._key(record_id)
        self._storage.remove_item(storage_key)
        if self._prune_index_on_remove:
            index = [key for key in self._read_index() if key != storage_key]
            self._write_index(index)

    def nuke(self) -> None:
        """Remove every indexed record, then the index itself."""
        for storage_key in self._read_index():
            self._storage.remove_item(storage_key)
        self._storage.remove_item(self._index_key)
        _logger.debug("Cleared table %s", self.table)
