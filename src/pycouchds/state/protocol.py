"""Structural interface of the record store driven by the data source."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from pycouchds.models.query import Query
from pycouchds.models.record_type import RecordType


class RecordStore(Protocol):
    """Extension points the data source calls into.

    Store keys are opaque to the data source; it only hands them back.
    """

    def record_type_for(self, store_key: Any) -> RecordType: ...

    def id_for(self, store_key: Any) -> str | None: ...

    def replace_id_for(self, store_key: Any, new_id: str) -> None: ...

    def read_data_hash(self, store_key: Any) -> dict[str, Any] | None: ...

    def read_editable_data_hash(self, store_key: Any) -> dict[str, Any] | None: ...

    def load_records(self, record_type: RecordType, docs: Sequence[dict[str, Any]]) -> list[Any]: ...

    def data_source_did_complete(self, store_key: Any, doc: dict[str, Any]) -> None: ...

    def data_source_did_destroy(self, store_key: Any) -> None: ...

    def data_source_did_error(self, store_key: Any, detail: Any) -> None: ...

    def data_source_did_fetch_query(self, query: Query) -> None: ...

    def data_source_did_error_query(self, query: Query, response: Any) -> None: ...
