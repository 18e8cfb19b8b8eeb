"""Completion handling for single-record transactions.

Every finished create/update/fetch/delete exchange is classified as a
success or a failure, the store is updated accordingly, and then exactly
one lifecycle hook runs.  Hooks are looked up in a fixed
``(Operation, Outcome)`` table.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from operator import attrgetter
from typing import Any

from pycouchds._constants import ID_FIELD, REV_FIELD
from pycouchds.models.transaction import DocumentResponse, Operation, Outcome, TransactionParams

_logger = logging.getLogger(__name__)


class TransactionHooks:
    """No-op lifecycle hooks; subclass and override the ones you need.

    Each hook receives the store key, the transaction params and the
    HTTP status of the response (``0`` for transport failures).
    """

    def successful_fetch(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def successful_create(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def successful_update(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def successful_delete(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def failure_fetch(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def failure_create(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def failure_update(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass

    def failure_delete(self, store_key: Any, params: TransactionParams, status: int) -> None:
        pass


_HookGetter = Callable[[TransactionHooks], Callable[[Any, TransactionParams, int], None]]

HOOK_TABLE: dict[tuple[Operation, Outcome], _HookGetter] = {
    (Operation.FETCH, Outcome.SUCCESS): attrgetter("successful_fetch"),
    (Operation.CREATE, Outcome.SUCCESS): attrgetter("successful_create"),
    (Operation.UPDATE, Outcome.SUCCESS): attrgetter("successful_update"),
    (Operation.DELETE, Outcome.SUCCESS): attrgetter("successful_delete"),
    (Operation.FETCH, Outcome.FAILURE): attrgetter("failure_fetch"),
    (Operation.CREATE, Outcome.FAILURE): attrgetter("failure_create"),
    (Operation.UPDATE, Outcome.FAILURE): attrgetter("failure_update"),
    (Operation.DELETE, Outcome.FAILURE): attrgetter("failure_delete"),
}


class TransactionDispatcher:
    """Routes completed record transactions to the store and the hooks."""

    def __init__(self, hooks: TransactionHooks) -> None:
        self._hooks = hooks

    def complete(self, response: DocumentResponse, params: TransactionParams) -> Outcome:
        store = params.store
        store_key = params.store_key

        if response.ok:
            outcome = Outcome.SUCCESS
            body = response.body if isinstance(response.body, dict) else {}
            if params.operation == Operation.CREATE:
                self._did_create(params, body)
            elif params.operation == Operation.UPDATE:
                self._did_update(params, body)
            elif params.operation == Operation.DELETE:
                _logger.debug("Deleted %s record %r", params.record_type, store_key)
                store.data_source_did_destroy(store_key)
            else:
                self._did_fetch(params, body)
        else:
            outcome = Outcome.FAILURE
            _logger.debug(
                "%s of %s record %r failed with HTTP %s",
                params.operation,
                params.record_type,
                store_key,
                response.status,
            )
            store.data_source_did_error(store_key, response.body)

        hook = HOOK_TABLE[(params.operation, outcome)](self._hooks)
        hook(store_key, params, response.status)
        return outcome

    def _did_create(self, params: TransactionParams, body: dict[str, Any]) -> None:
        store = params.store
        new_id = body.get("id")
        _logger.debug("Created record %s with id %s and revision %s", params.record_type, new_id, body.get("rev"))
        local_doc = store.read_editable_data_hash(params.store_key)
        if local_doc is None:
            local_doc = {}
        if new_id is not None:
            store.replace_id_for(params.store_key, new_id)
            local_doc[ID_FIELD] = new_id
        else:
            _logger.warning("Create of %s record %r returned no id", params.record_type, params.store_key)
        _apply_revision(params, body, local_doc)
        store.data_source_did_complete(params.store_key, local_doc)

    def _did_update(self, params: TransactionParams, body: dict[str, Any]) -> None:
        # The identity never changes on update, whatever the response says.
        store = params.store
        _logger.debug("Updated record %s with id %s and revision %s", params.record_type, body.get("id"), body.get("rev"))
        local_doc = store.read_editable_data_hash(params.store_key)
        if local_doc is None:
            local_doc = {}
        _apply_revision(params, body, local_doc)
        store.data_source_did_complete(params.store_key, local_doc)

    def _did_fetch(self, params: TransactionParams, body: dict[str, Any]) -> None:
        store = params.store
        doc_id = body.get(ID_FIELD)
        _logger.debug("Retrieved record %s with id %s and revision %s", params.record_type, doc_id, body.get(REV_FIELD))
        if doc_id is not None:
            store.replace_id_for(params.store_key, doc_id)
        store.data_source_did_complete(params.store_key, body)


def _apply_revision(params: TransactionParams, body: dict[str, Any], local_doc: dict[str, Any]) -> None:
    """Store the revision from ``body``; keep the current one when the server sent none."""
    rev = body.get("rev")
    if rev is None:
        _logger.warning(
            "%s of %s record %r returned no revision; keeping %s",
            params.operation,
            params.record_type,
            params.store_key,
            local_doc.get(REV_FIELD),
        )
        return
    local_doc[REV_FIELD] = rev
