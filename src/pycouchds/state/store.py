"""In-memory record store.

Keeps one data hash per integer store key and tracks the lifecycle status
the data source reports back for each record and each query.
"""

from __future__ import annotations

import copy
import itertools
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pycouchds._constants import ID_FIELD
from pycouchds.models.query import Query
from pycouchds.models.record_type import RecordType


class RecordStatus(StrEnum):
    READY_NEW = "ready_new"
    READY_CLEAN = "ready_clean"
    DESTROYED = "destroyed"
    ERROR = "error"


class QueryStatus(StrEnum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class RecordEntry(BaseModel):
    model_config = ConfigDict(extra="forbid")

    record_type: RecordType
    id: str | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    status: RecordStatus = RecordStatus.READY_NEW
    error: Any = None


class MemoryRecordStore:
    """Dictionary-backed :class:`pycouchds.state.protocol.RecordStore`.

    ``read_data_hash`` returns a copy; ``read_editable_data_hash`` returns
    the stored dict itself so that completion handlers can patch ``_id`` and
    ``_rev`` in place before calling ``data_source_did_complete``.
    """

    def __init__(self) -> None:
        self._keys = itertools.count(1)
        self._records: dict[int, RecordEntry] = {}
        self._ids: dict[tuple[str, str], int] = {}
        self._queries: dict[int, QueryStatus] = {}
        self.query_errors: list[tuple[Query, Any]] = []

    # ------------------------------------------------------------------
    # Record bookkeeping
    # ------------------------------------------------------------------

    def _entry(self, store_key: int) -> RecordEntry:
        try:
            return self._records[store_key]
        except KeyError:
            raise KeyError(f"unknown store key {store_key!r}") from None

    def store_key_for(self, record_type: RecordType, record_id: str) -> int:
        """Return the store key for ``(record_type, record_id)``, allocating one if needed."""
        lookup = (record_type.name, record_id)
        store_key = self._ids.get(lookup)
        if store_key is None:
            store_key = next(self._keys)
            self._records[store_key] = RecordEntry(record_type=record_type, id=record_id)
            self._ids[lookup] = store_key
        return store_key

    def create_record(self, record_type: RecordType, data: dict[str, Any], record_id: str | None = None) -> int:
        """Add a new, not yet persisted record and return its store key."""
        if record_id is None:
            record_id = data.get(record_type.primary_key)
        if record_id is not None:
            store_key = self.store_key_for(record_type, str(record_id))
        else:
            store_key = next(self._keys)
            self._records[store_key] = RecordEntry(record_type=record_type)
        entry = self._records[store_key]
        entry.data = copy.deepcopy(data)
        entry.status = RecordStatus.READY_NEW
        return store_key

    def status_for(self, store_key: int) -> RecordStatus:
        return self._entry(store_key).status

    def error_for(self, store_key: int) -> Any:
        return self._entry(store_key).error

    def find(self, record_type: RecordType) -> list[dict[str, Any]]:
        """Return copies of every live record of ``record_type``."""
        return [
            copy.deepcopy(entry.data)
            for entry in self._records.values()
            if entry.record_type.name == record_type.name and entry.status != RecordStatus.DESTROYED
        ]

    def query_status(self, query: Query) -> QueryStatus | None:
        return self._queries.get(id(query))

    def mark_query_loading(self, query: Query) -> None:
        self._queries[id(query)] = QueryStatus.LOADING

    # ------------------------------------------------------------------
    # RecordStore protocol
    # ------------------------------------------------------------------

    def record_type_for(self, store_key: int) -> RecordType:
        return self._entry(store_key).record_type

    def id_for(self, store_key: int) -> str | None:
        return self._entry(store_key).id

    def replace_id_for(self, store_key: int, new_id: str) -> None:
        entry = self._entry(store_key)
        if entry.id is not None:
            self._ids.pop((entry.record_type.name, entry.id), None)
        entry.id = new_id
        if new_id is not None:
            self._ids[(entry.record_type.name, new_id)] = store_key

    def read_data_hash(self, store_key: int) -> dict[str, Any] | None:
        entry = self._records.get(store_key)
        if entry is None:
            return None
        return copy.deepcopy(entry.data)

    def read_editable_data_hash(self, store_key: int) -> dict[str, Any] | None:
        entry = self._records.get(store_key)
        if entry is None:
            return None
        return entry.data

    def load_records(self, record_type: RecordType, docs: Sequence[dict[str, Any]]) -> list[int]:
        keys: list[int] = []
        for doc in docs:
            record_id = doc.get(record_type.primary_key, doc.get(ID_FIELD))
            if record_id is None:
                store_key = next(self._keys)
                self._records[store_key] = RecordEntry(record_type=record_type)
            else:
                store_key = self.store_key_for(record_type, str(record_id))
            entry = self._records[store_key]
            entry.data = copy.deepcopy(doc)
            entry.status = RecordStatus.READY_CLEAN
            entry.error = None
            keys.append(store_key)
        return keys

    def data_source_did_complete(self, store_key: int, doc: dict[str, Any]) -> None:
        entry = self._entry(store_key)
        if doc is not entry.data:
            entry.data = copy.deepcopy(doc)
        entry.status = RecordStatus.READY_CLEAN
        entry.error = None

    def data_source_did_destroy(self, store_key: int) -> None:
        entry = self._entry(store_key)
        entry.status = RecordStatus.DESTROYED
        entry.error = None

    def data_source_did_error(self, store_key: int, detail: Any) -> None:
        entry = self._entry(store_key)
        entry.status = RecordStatus.ERROR
        entry.error = detail

    def data_source_did_fetch_query(self, query: Query) -> None:
        self._queries[id(query)] = QueryStatus.READY

    def data_source_did_error_query(self, query: Query, response: Any) -> None:
        self._queries[id(query)] = QueryStatus.ERROR
        self.query_errors.append((query, response))
