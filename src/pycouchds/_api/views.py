"""View query endpoint: ``GET {db}/_design/{doc}/_view/{view}``."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from pycouchds._api._common import quote_segment, resolve_database
from pycouchds._constants import ID_FIELD
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchResponseError
from pycouchds.models.record_type import RecordType
from pycouchds.models.transaction import DocumentRequest
from pycouchds.models.view import ViewResponse


def resolve_view(config: CouchConfig, record_type: RecordType, view: str | None = None) -> str:
    """Explicit view, else the record type's default view, else the configured one."""
    return view or record_type.all_view or config.default_view


def build_view_request(config: CouchConfig, record_type: RecordType, view: str | None = None) -> DocumentRequest:
    database = resolve_database(config, record_type)
    design_document = record_type.design_document or config.design_document
    path = "{}/_design/{}/_view/{}".format(
        quote_segment(database),
        quote_segment(design_document),
        quote_segment(resolve_view(config, record_type, view)),
    )
    return DocumentRequest(method="GET", path=path)


def parse_view_response(record_type: RecordType, body: Any) -> list[dict[str, Any]]:
    """Flatten a view response into document bodies, one per row.

    Each row's ``value`` is copied and its ``_id`` (or the row ``id``
    when the value carries none) is mirrored into the record type's
    primary key field.  The input body is left untouched.
    """
    if body is None:
        return []
    try:
        parsed = ViewResponse.model_validate(body)
    except ValidationError as exc:
        raise CouchResponseError(f"Malformed view response for {record_type.name}: {exc}") from exc

    docs: list[dict[str, Any]] = []
    for row in parsed.rows or []:
        doc = dict(row.value)
        doc[record_type.primary_key] = doc.get(ID_FIELD, row.id)
        docs.append(doc)
    return docs
