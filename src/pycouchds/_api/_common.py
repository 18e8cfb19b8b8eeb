"""Shared helpers for the document and view request builders.

It is internal to pycouchds and may change at any time.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from pycouchds._transport import Transport
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchInvalidTargetError, CouchTransportError
from pycouchds.models.record_type import RecordType
from pycouchds.models.transaction import DocumentRequest, DocumentResponse

_logger = logging.getLogger(__name__)


def quote_segment(value: Any) -> str:
    """Percent-encode one path segment (``/`` included)."""
    return quote(str(value), safe="")


def resolve_database(config: CouchConfig, record_type: RecordType, *, store_key: Any = None) -> str:
    """Database for ``record_type``: its own, else the configured default."""
    database = record_type.database or config.database
    if not database:
        raise CouchInvalidTargetError(
            f"No database configured for record type {record_type.name}",
            store_key=store_key,
        )
    return database


def resolve_document_id(record_id: Any, record_type: RecordType, *, store_key: Any = None) -> str:
    if record_id is None or record_id == "":
        raise CouchInvalidTargetError(
            f"No document id for {record_type.name} record {store_key!r}",
            store_key=store_key,
        )
    return str(record_id)


async def send_request(transport: Transport, request: DocumentRequest) -> DocumentResponse:
    """Send ``request`` and fold transport failures into a not-ok response.

    Completion handlers only ever see a :class:`DocumentResponse`, so a
    refused connection reaches the store's error hooks like an HTTP error.
    """
    try:
        return await transport.send(request)
    except CouchTransportError as exc:
        _logger.debug("%s %s failed: %s", request.method, request.path, exc)
        return DocumentResponse(
            status=exc.status_code or 0,
            ok=False,
            body={"error": "transport_error", "reason": str(exc)},
        )
