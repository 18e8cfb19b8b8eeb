"""Typed models for pycouchds."""

from pycouchds.models.query import Query, QueryState
from pycouchds.models.record_type import RecordType
from pycouchds.models.transaction import (
    DocumentRequest,
    DocumentResponse,
    Operation,
    Outcome,
    TransactionParams,
)
from pycouchds.models.view import ViewResponse, ViewRow

__all__ = [
    "DocumentRequest",
    "DocumentResponse",
    "Operation",
    "Outcome",
    "Query",
    "QueryState",
    "RecordType",
    "TransactionParams",
    "ViewResponse",
    "ViewRow",
]
