"""Async CouchDB data source for record stores."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Mapping, Sequence
from typing import Any

import aiohttp

from pycouchds._api._common import send_request
from pycouchds._api.documents import (
    build_create_request,
    build_destroy_request,
    build_retrieve_request,
    build_update_request,
)
from pycouchds._client.dispatch import TransactionDispatcher, TransactionHooks
from pycouchds._client.sync import QuerySynchronizer
from pycouchds._transport import HttpTransport, Transport
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchError, CouchInvalidInputError, CouchInvalidTargetError
from pycouchds.models.query import Query, QueryState
from pycouchds.models.transaction import DocumentRequest, Operation, TransactionParams
from pycouchds.state.protocol import RecordStore

_logger = logging.getLogger(__name__)


def _validate_query(query: Any) -> None:
    if not isinstance(query, Query):
        raise CouchInvalidInputError(f"invalid query {query!r}")


class CouchDataSource(TransactionHooks):
    """Maps record-store operations onto the CouchDB view/document API.

    Every operation validates its input, schedules exactly one request per
    target on the running event loop and returns ``True``; it returns
    ``False`` (and logs) when nothing could be sent.  Results reach the
    store through its ``data_source_did_*`` hooks.

    Usage::

        async with CouchDataSource(config) as source:
            source.fetch(store, Query(record_types=[Invoice]))
            await source.join()

    Override the ``successful_*`` / ``failure_*`` methods to observe
    single-record transactions.
    """

    def __init__(
        self,
        config: CouchConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        transport: Transport | None = None,
    ) -> None:
        self._config = config or CouchConfig()
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        self._owns_transport = transport is None
        self._tasks: set[asyncio.Task[None]] = set()
        self._dispatcher = TransactionDispatcher(self)
        self._synchronizer: QuerySynchronizer | None = None
        if transport is not None:
            self._synchronizer = QuerySynchronizer(self._config, transport, self._spawn)

    @property
    def config(self) -> CouchConfig:
        return self._config

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> CouchDataSource:
        if self._transport is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            self._transport = HttpTransport(self._config, self._http_session)
            self._synchronizer = QuerySynchronizer(self._config, self._transport, self._spawn)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Wait for in-flight requests, then release the HTTP session if we created it.

        The session is released even when a completion handler raised; that
        error is re-raised afterwards.
        """
        try:
            await self.join()
        finally:
            if not self._external_session and self._http_session is not None:
                await self._http_session.close()
                self._http_session = None
            if self._owns_transport:
                self._transport = None
                self._synchronizer = None

    async def join(self) -> None:
        """Wait until every scheduled request and its completion handler has run."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise CouchError("Data source not initialized. Use 'async with CouchDataSource(...) as source:'")
        return self._transport

    def _require_synchronizer(self) -> QuerySynchronizer:
        self._require_transport()
        assert self._synchronizer is not None  # noqa: S101
        return self._synchronizer

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _start_transaction(self, request: DocumentRequest, params: TransactionParams) -> None:
        transport = self._require_transport()

        async def _run() -> None:
            response = await send_request(transport, request)
            self._dispatcher.complete(response, params)

        self._spawn(_run())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def fetch(self, store: RecordStore, query: Query) -> bool:
        """Fetch every record type of ``query``; see :meth:`start_query`."""
        return self.start_query(store, query) is not None

    def start_query(self, store: RecordStore, query: Query) -> QueryState | None:
        """Start a query and return its tracking state, or ``None`` if it is invalid.

        ``state.done`` resolves once every record type has reported back.
        """
        try:
            _validate_query(query)
        except CouchInvalidInputError as exc:
            _logger.error("Error retrieving records: %s", exc)
            return None
        return self._require_synchronizer().start(store, query)

    # ------------------------------------------------------------------
    # Single records
    # ------------------------------------------------------------------

    def retrieve_record(self, store: RecordStore, store_key: Any, record_id: str | None = None) -> bool:
        """Load one document into the store by id (defaults to the store's id)."""
        try:
            record_type = store.record_type_for(store_key)
            if record_id is None:
                record_id = store.id_for(store_key)
            request = build_retrieve_request(self._config, record_type, record_id, store_key=store_key)
        except CouchInvalidTargetError as exc:
            _logger.error("Cannot retrieve record: %s", exc)
            return False

        _logger.debug("Retrieve record with ID %s and path %s", record_id, request.path)
        params = TransactionParams(store=store, store_key=store_key, record_type=record_type, operation=Operation.FETCH)
        self._start_transaction(request, params)
        return True

    def retrieve_records(
        self,
        store: RecordStore,
        store_keys: Sequence[Any],
        ids: Sequence[str | None] | None = None,
    ) -> bool:
        """Retrieve several records, one request each; ``True`` only if all were sent."""
        if ids is not None and len(ids) != len(store_keys):
            _logger.error("Cannot retrieve records: %d store keys but %d ids", len(store_keys), len(ids))
            return False
        results = [
            self.retrieve_record(store, store_key, ids[i] if ids is not None else None)
            for i, store_key in enumerate(store_keys)
        ]
        return all(results)

    def create_record(self, store: RecordStore, store_key: Any, params: Mapping[str, Any] | None = None) -> bool:
        """POST the record as a new document; the server's id and revision are written back."""
        try:
            record_type = store.record_type_for(store_key)
            data = store.read_editable_data_hash(store_key)
            request = build_create_request(self._config, record_type, data, store_key=store_key)
        except CouchInvalidTargetError as exc:
            _logger.error("Cannot create record: %s", exc)
            return False

        _logger.debug("Creating record of type %s with path %s", record_type, request.path)
        self._start_transaction(
            request,
            TransactionParams(
                store=store,
                store_key=store_key,
                record_type=record_type,
                operation=Operation.CREATE,
                extra=dict(params or {}),
            ),
        )
        return True

    def update_record(self, store: RecordStore, store_key: Any, params: Mapping[str, Any] | None = None) -> bool:
        """PUT the record's current data; only ``_rev`` is refreshed on success."""
        try:
            record_type = store.record_type_for(store_key)
            record_id = store.id_for(store_key)
            data = store.read_data_hash(store_key)
            request = build_update_request(self._config, record_type, record_id, data, store_key=store_key)
        except CouchInvalidTargetError as exc:
            _logger.error("Cannot update record: %s", exc)
            return False

        _logger.debug(
            "Updating record %s with ID %s and revision %s",
            record_type,
            record_id,
            (data or {}).get("_rev"),
        )
        self._start_transaction(
            request,
            TransactionParams(
                store=store,
                store_key=store_key,
                record_type=record_type,
                operation=Operation.UPDATE,
                extra=dict(params or {}),
            ),
        )
        return True

    def destroy_record(self, store: RecordStore, store_key: Any, params: Mapping[str, Any] | None = None) -> bool:
        """DELETE the document at its current revision."""
        try:
            record_type = store.record_type_for(store_key)
            record_id = store.id_for(store_key)
            data = store.read_data_hash(store_key)
            request = build_destroy_request(self._config, record_type, record_id, data, store_key=store_key)
        except CouchInvalidTargetError as exc:
            _logger.error("Cannot delete record: %s", exc)
            return False

        _logger.debug("Deleting record with ID %s and path %s", record_id, request.path)
        self._start_transaction(
            request,
            TransactionParams(
                store=store,
                store_key=store_key,
                record_type=record_type,
                operation=Operation.DELETE,
                extra=dict(params or {}),
            ),
        )
        return True

