from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import pytest

from pycouchds.client import CouchDataSource
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchTransportError
from pycouchds.models.query import Query
from pycouchds.models.record_type import RecordType
from pycouchds.models.transaction import DocumentRequest, DocumentResponse, TransactionParams
from pycouchds.state.store import MemoryRecordStore

INVOICE = RecordType(name="Invoice", all_view="all_invoices")
CUSTOMER = RecordType(name="Customer", all_view="all_customers")

INVOICE_VIEW = "data/_design/data/_view/all_invoices"
CUSTOMER_VIEW = "data/_design/data/_view/all_customers"


@dataclass
class FakeCouchTransport:
    """Scripted transport: replies are keyed by ``(method, path)``; unknown paths get a 404."""

    replies: dict[tuple[str, str], DocumentResponse] = field(default_factory=dict)
    requests: list[DocumentRequest] = field(default_factory=list)
    gates: dict[str, asyncio.Event] = field(default_factory=dict)
    unreachable: set[str] = field(default_factory=set)

    def reply(self, method: str, path: str, status: int, body: Any = None) -> None:
        self.replies[(method, path)] = DocumentResponse.from_status(status, body)

    def hold(self, path: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[path] = gate
        return gate

    async def send(self, request: DocumentRequest) -> DocumentResponse:
        self.requests.append(request)
        gate = self.gates.get(request.path)
        if gate is not None:
            await gate.wait()
        if request.path in self.unreachable:
            raise CouchTransportError("connection refused", endpoint=request.path)
        reply = self.replies.get((request.method, request.path))
        if reply is None:
            return DocumentResponse.from_status(404, {"error": "not_found", "reason": "missing"})
        return reply


class RecordingStore(MemoryRecordStore):
    """MemoryRecordStore that also logs every data-source callback."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[Any, ...]] = []

    def load_records(self, record_type: RecordType, docs: Sequence[dict[str, Any]]) -> list[int]:
        self.calls.append(("load_records", record_type.name, [dict(doc) for doc in docs]))
        return super().load_records(record_type, docs)

    def data_source_did_fetch_query(self, query: Query) -> None:
        self.calls.append(("did_fetch_query", query))
        super().data_source_did_fetch_query(query)

    def data_source_did_error_query(self, query: Query, response: Any) -> None:
        self.calls.append(("did_error_query", query, response))
        super().data_source_did_error_query(query, response)


class RecordingSource(CouchDataSource):
    """Data source that records which lifecycle hook ran."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.hooks: list[tuple[str, Any, int]] = []

    def successful_fetch(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("successful_fetch", store_key, status))

    def successful_create(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("successful_create", store_key, status))

    def successful_update(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("successful_update", store_key, status))

    def successful_delete(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("successful_delete", store_key, status))

    def failure_fetch(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("failure_fetch", store_key, status))

    def failure_create(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("failure_create", store_key, status))

    def failure_update(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("failure_update", store_key, status))

    def failure_delete(self, store_key: Any, params: TransactionParams, status: int) -> None:
        self.hooks.append(("failure_delete", store_key, status))


@pytest.fixture
def transport() -> FakeCouchTransport:
    return FakeCouchTransport()


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def source(transport: FakeCouchTransport) -> RecordingSource:
    return RecordingSource(CouchConfig(), transport=transport)
