"""Single-document endpoints.

Endpoints:
  - GET    {db}/{id}             retrieve
  - POST   {db}/                 create
  - PUT    {db}/{id}             update
  - DELETE {db}/{id}?rev={rev}   delete

Every builder raises :class:`CouchInvalidTargetError` when the target
cannot be resolved, before anything is sent.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import urlencode

from pycouchds._api._common import quote_segment, resolve_database, resolve_document_id
from pycouchds._constants import ID_FIELD, REV_FIELD
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchInvalidTargetError
from pycouchds.models.record_type import RecordType
from pycouchds.models.transaction import DocumentRequest


def build_retrieve_request(
    config: CouchConfig,
    record_type: RecordType,
    record_id: Any,
    *,
    store_key: Any = None,
) -> DocumentRequest:
    database = resolve_database(config, record_type, store_key=store_key)
    doc_id = resolve_document_id(record_id, record_type, store_key=store_key)
    return DocumentRequest(method="GET", path=f"{quote_segment(database)}/{quote_segment(doc_id)}")


def build_create_request(
    config: CouchConfig,
    record_type: RecordType,
    data: dict[str, Any] | None,
    *,
    store_key: Any = None,
) -> DocumentRequest:
    """Build the POST for a new document.

    The local primary key is copied into ``_id`` (left out when unset so
    the server assigns one) and the type marker field is set to ``True``.
    """
    database = resolve_database(config, record_type, store_key=store_key)
    doc = dict(data or {})
    doc.pop(ID_FIELD, None)
    record_id = (data or {}).get(record_type.primary_key)
    if record_id is not None and record_id != "":
        doc[ID_FIELD] = record_id
    doc[record_type.type_marker] = True
    return DocumentRequest(method="POST", path=f"{quote_segment(database)}/", body=doc)


def build_update_request(
    config: CouchConfig,
    record_type: RecordType,
    record_id: Any,
    data: dict[str, Any] | None,
    *,
    store_key: Any = None,
) -> DocumentRequest:
    database = resolve_database(config, record_type, store_key=store_key)
    doc_id = resolve_document_id(record_id, record_type, store_key=store_key)
    doc = dict(data or {})
    doc[ID_FIELD] = doc_id
    return DocumentRequest(method="PUT", path=f"{quote_segment(database)}/{quote_segment(doc_id)}", body=doc)


def build_destroy_request(
    config: CouchConfig,
    record_type: RecordType,
    record_id: Any,
    data: dict[str, Any] | None,
    *,
    store_key: Any = None,
) -> DocumentRequest:
    """Build the DELETE; the server only accepts it with the current revision."""
    database = resolve_database(config, record_type, store_key=store_key)
    doc_id = resolve_document_id(record_id, record_type, store_key=store_key)
    rev = (data or {}).get(REV_FIELD)
    if not rev:
        raise CouchInvalidTargetError(
            f"No revision for {record_type.name} document {doc_id}",
            store_key=store_key,
        )
    path = f"{quote_segment(database)}/{quote_segment(doc_id)}?{urlencode({'rev': rev})}"
    return DocumentRequest(method="DELETE", path=path)
