from __future__ import annotations

import pytest
from conftest import INVOICE, FakeCouchTransport, RecordingSource, RecordingStore

from pycouchds.client import CouchDataSource
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchError
from pycouchds.models.record_type import RecordType
from pycouchds.state.store import RecordStatus

BILLING_INVOICE = RecordType(name="Billing.Invoice", primary_key="number")


@pytest.mark.asyncio
async def test_create_posts_marker_and_writes_back_identity(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("POST", "data/", 201, {"ok": True, "id": "inv-7", "rev": "1-a"})
    key = store.create_record(BILLING_INVOICE, {"number": "inv-7", "total": 12})

    assert source.create_record(store, key) is True
    await source.join()

    request = transport.requests[0]
    assert (request.method, request.path) == ("POST", "data/")
    assert request.body == {"number": "inv-7", "total": 12, "_id": "inv-7", "billing_invoice": True}
    assert store.read_data_hash(key) == {"number": "inv-7", "total": 12, "_id": "inv-7", "_rev": "1-a"}
    assert store.id_for(key) == "inv-7"
    assert store.status_for(key) == RecordStatus.READY_CLEAN
    assert source.hooks == [("successful_create", key, 201)]


@pytest.mark.asyncio
async def test_create_without_primary_key_lets_server_assign_id(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("POST", "data/", 201, {"ok": True, "id": "5f1c", "rev": "1-x"})
    key = store.create_record(INVOICE, {"total": 3})

    source.create_record(store, key)
    await source.join()

    assert "_id" not in transport.requests[0].body
    assert transport.requests[0].body["invoice"] is True
    assert store.id_for(key) == "5f1c"
    assert store.read_data_hash(key)["_rev"] == "1-x"


@pytest.mark.asyncio
async def test_create_without_database_fails_locally(store: RecordingStore, transport: FakeCouchTransport) -> None:
    source = RecordingSource(CouchConfig(database=None), transport=transport)
    key = store.create_record(INVOICE, {"total": 1})

    assert source.create_record(store, key) is False
    await source.join()

    assert transport.requests == []
    assert source.hooks == []
    assert store.status_for(key) == RecordStatus.READY_NEW


@pytest.mark.asyncio
async def test_create_failure_marks_record_error(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("POST", "data/", 409, {"error": "conflict", "reason": "Document update conflict."})
    key = store.create_record(INVOICE, {"_id": "inv-1"})

    source.create_record(store, key)
    await source.join()

    assert store.status_for(key) == RecordStatus.ERROR
    assert store.error_for(key) == {"error": "conflict", "reason": "Document update conflict."}
    assert source.hooks == [("failure_create", key, 409)]


@pytest.mark.asyncio
async def test_update_refreshes_revision_only(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("PUT", "data/inv-1", 201, {"ok": True, "id": "something-else", "rev": "2-b"})
    key = store.create_record(INVOICE, {"_id": "inv-1", "_rev": "1-a", "total": 5})

    assert source.update_record(store, key) is True
    await source.join()

    assert transport.requests[0].body == {"_id": "inv-1", "_rev": "1-a", "total": 5}
    assert store.read_data_hash(key) == {"_id": "inv-1", "_rev": "2-b", "total": 5}
    assert store.id_for(key) == "inv-1"
    assert source.hooks == [("successful_update", key, 201)]


@pytest.mark.asyncio
async def test_update_conflict_marks_record_error(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("PUT", "data/inv-1", 409, {"error": "conflict"})
    key = store.create_record(INVOICE, {"_id": "inv-1", "_rev": "1-stale"})

    source.update_record(store, key)
    await source.join()

    assert store.status_for(key) == RecordStatus.ERROR
    assert store.read_data_hash(key)["_rev"] == "1-stale"
    assert source.hooks == [("failure_update", key, 409)]


@pytest.mark.asyncio
async def test_update_without_id_fails_locally(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    key = store.create_record(INVOICE, {"total": 5})

    assert source.update_record(store, key) is False
    assert transport.requests == []


@pytest.mark.asyncio
async def test_destroy_sends_current_revision(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("DELETE", "data/inv-1?rev=1-a", 200, {"ok": True, "id": "inv-1", "rev": "2-d"})
    key = store.create_record(INVOICE, {"_id": "inv-1", "_rev": "1-a"})

    assert source.destroy_record(store, key) is True
    await source.join()

    assert transport.requests[0].method == "DELETE"
    assert transport.requests[0].body is None
    assert store.status_for(key) == RecordStatus.DESTROYED
    assert store.find(INVOICE) == []
    assert source.hooks == [("successful_delete", key, 200)]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "data",
    [
        pytest.param({"_id": "inv-1"}, id="no-revision"),
        pytest.param({"_rev": "1-a"}, id="no-id"),
    ],
)
async def test_destroy_without_identity_fails_locally(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
    data: dict[str, str],
) -> None:
    key = store.create_record(INVOICE, data)

    assert source.destroy_record(store, key) is False
    await source.join()

    assert transport.requests == []
    assert source.hooks == []


@pytest.mark.asyncio
async def test_destroy_failure_keeps_record(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("DELETE", "data/inv-1?rev=1-a", 409, {"error": "conflict"})
    key = store.create_record(INVOICE, {"_id": "inv-1", "_rev": "1-a"})

    source.destroy_record(store, key)
    await source.join()

    assert store.status_for(key) == RecordStatus.ERROR
    assert source.hooks == [("failure_delete", key, 409)]


@pytest.mark.asyncio
async def test_retrieve_loads_document(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    doc = {"_id": "inv-1", "_rev": "3-c", "total": 9}
    transport.reply("GET", "data/inv-1", 200, doc)
    key = store.store_key_for(INVOICE, "inv-1")

    assert source.retrieve_record(store, key) is True
    await source.join()

    assert store.read_data_hash(key) == doc
    assert store.status_for(key) == RecordStatus.READY_CLEAN
    assert source.hooks == [("successful_fetch", key, 200)]


@pytest.mark.asyncio
async def test_retrieve_with_explicit_id_adopts_it(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("GET", "data/inv-2", 200, {"_id": "inv-2", "_rev": "1-z"})
    key = store.store_key_for(INVOICE, "inv-1")

    source.retrieve_record(store, key, "inv-2")
    await source.join()

    assert transport.requests[0].path == "data/inv-2"
    assert store.id_for(key) == "inv-2"


@pytest.mark.asyncio
async def test_retrieve_quotes_document_id(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    key = store.store_key_for(INVOICE, "2024/07 #1")

    source.retrieve_record(store, key)
    await source.join()

    assert transport.requests[0].path == "data/2024%2F07%20%231"
    assert source.hooks == [("failure_fetch", key, 404)]


@pytest.mark.asyncio
async def test_retrieve_unreachable_reports_status_zero(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.unreachable.add("data/inv-1")
    key = store.store_key_for(INVOICE, "inv-1")

    source.retrieve_record(store, key)
    await source.join()

    assert store.status_for(key) == RecordStatus.ERROR
    assert store.error_for(key)["error"] == "transport_error"
    assert source.hooks == [("failure_fetch", key, 0)]


@pytest.mark.asyncio
async def test_retrieve_records_sends_one_request_each(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    keys = [store.store_key_for(INVOICE, "inv-1"), store.store_key_for(INVOICE, "inv-2")]

    assert source.retrieve_records(store, keys) is True
    assert source.retrieve_records(store, keys, ["only-one"]) is False
    await source.join()

    assert sorted(r.path for r in transport.requests) == ["data/inv-1", "data/inv-2"]


@pytest.mark.asyncio
async def test_create_then_retrieve_round_trip(
    source: RecordingSource,
    store: RecordingStore,
    transport: FakeCouchTransport,
) -> None:
    transport.reply("POST", "data/", 201, {"ok": True, "id": "inv-9", "rev": "1-a"})
    transport.reply("GET", "data/inv-9", 200, {"_id": "inv-9", "_rev": "1-a", "total": 4, "invoice": True})
    key = store.create_record(INVOICE, {"total": 4})

    source.create_record(store, key)
    await source.join()
    source.retrieve_record(store, key)
    await source.join()

    assert store.read_data_hash(key) == {"_id": "inv-9", "_rev": "1-a", "total": 4, "invoice": True}
    assert [hook for hook, _key, _status in source.hooks] == ["successful_create", "successful_fetch"]


def test_operations_require_an_open_source() -> None:
    store = RecordingStore()
    key = store.create_record(INVOICE, {"_id": "inv-1", "_rev": "1-a"})
    source = CouchDataSource(CouchConfig())

    with pytest.raises(CouchError, match="not initialized"):
        source.update_record(store, key)
