"""Fan-out/fan-in synchronization of multi-record-type queries.

A query spanning N record types issues one view call per type.  Each
completion, successful or not, bumps ``handled_count``; the query is
finalized once ``handled_count >= expected_count``.  Completions may
arrive in any order.  Finalization removes the state from the in-flight
table, and that removal is what keeps it from firing twice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from pydantic import ValidationError

from pycouchds._api._common import send_request
from pycouchds._api.views import build_view_request, parse_view_response
from pycouchds._transport import Transport
from pycouchds.config import CouchConfig
from pycouchds.exceptions import (
    CouchInvalidRecordTypeError,
    CouchInvalidTargetError,
    CouchResponseError,
)
from pycouchds.models.query import Query, QueryState
from pycouchds.models.record_type import RecordType
from pycouchds.models.transaction import DocumentRequest, DocumentResponse
from pycouchds.state.protocol import RecordStore

_logger = logging.getLogger(__name__)

Spawn = Callable[[Coroutine[Any, Any, None]], Any]


def coerce_record_type(entry: Any) -> RecordType:
    """Validate one query entry into a :class:`RecordType`."""
    if isinstance(entry, RecordType):
        return entry
    try:
        return RecordType.model_validate(entry)
    except ValidationError as exc:
        raise CouchInvalidRecordTypeError(f"Invalid record type {entry!r}: {exc.error_count()} error(s)") from exc


class QuerySynchronizer:
    """Tracks in-flight queries and joins their per-type fetches."""

    def __init__(self, config: CouchConfig, transport: Transport, spawn: Spawn) -> None:
        self._config = config
        self._transport = transport
        self._spawn = spawn
        self._in_flight: dict[int, tuple[QueryState, RecordStore]] = {}

    @property
    def in_flight(self) -> list[QueryState]:
        return [state for state, _store in self._in_flight.values()]

    def start(self, store: RecordStore, query: Query) -> QueryState:
        """Dispatch one view call per distinct record type of ``query``.

        A query without record types is returned as-is: nothing is sent
        and neither the store nor the callbacks are ever notified.
        """
        expanded = query.expanded_record_types()
        state = QueryState(
            query=query,
            expected_count=len(expanded),
            done=asyncio.get_running_loop().create_future(),
        )
        if not expanded:
            _logger.debug("Query %r targets no record types; nothing to fetch", query)
            return state

        self._in_flight[id(state)] = (state, store)
        for entry in expanded:
            try:
                self._fetch_record_type(entry, store, state)
            except (CouchInvalidRecordTypeError, CouchInvalidTargetError) as exc:
                # This slot never completes, so the query never finalizes.
                _logger.error("Error retrieving records from data source: %s", exc)
        return state

    def _fetch_record_type(self, entry: Any, store: RecordStore, state: QueryState) -> None:
        record_type = coerce_record_type(entry)
        request = build_view_request(self._config, record_type, state.query.view)
        _logger.debug("Fetching records of type %s from %s", record_type, request.path)
        self._spawn(self._fetch_records_call(request, record_type, store, state))

    async def _fetch_records_call(
        self,
        request: DocumentRequest,
        record_type: RecordType,
        store: RecordStore,
        state: QueryState,
    ) -> None:
        response = await send_request(self._transport, request)
        self.data_fetch_complete(response, record_type, store, state)

    def data_fetch_complete(
        self,
        response: DocumentResponse,
        record_type: RecordType,
        store: RecordStore,
        state: QueryState,
    ) -> None:
        """Account for one per-type completion and finalize if it was the last.

        The finalization check runs even when the store or a callback
        raises, so a failing handler cannot leave the query unfinished.
        """
        if id(state) not in self._in_flight:
            _logger.debug("Ignoring late %s completion for a finished query", record_type)
            return
        state.handled_count += 1

        try:
            if response.ok:
                try:
                    docs = parse_view_response(record_type, response.body)
                except CouchResponseError as exc:
                    _logger.warning("%s", exc)
                    response = DocumentResponse(
                        status=response.status,
                        ok=False,
                        body={"error": "bad_response", "reason": str(exc)},
                    )
                else:
                    _logger.debug("Fetched %d records of type %s", len(docs), record_type)
                    keys = store.load_records(record_type, docs)
                    state.record_keys[record_type.name] = list(keys or [])

            if not response.ok:
                state.is_stale = True
                state.errors[record_type.name] = response
                store.data_source_did_error_query(state.query, response)
                if state.query.on_failure is not None:
                    state.query.on_failure(response)
        finally:
            self.finish(state)

    def finish(self, state: QueryState) -> bool:
        """Finalize ``state`` if every slot has reported; ``True`` only the first time."""
        if not state.is_complete:
            return False
        entry = self._in_flight.pop(id(state), None)
        if entry is None:
            return False
        _state, store = entry

        try:
            store.data_source_did_fetch_query(state.query)
            if state.query.on_success is not None:
                state.query.on_success(state)
        finally:
            if state.done is not None and not state.done.done():
                state.done.set_result(state)
        return True
