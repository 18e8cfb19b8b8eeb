"""Custom exception hierarchy for pycouchds."""

from __future__ import annotations

from typing import Any


class CouchError(Exception):
    """Base exception for all pycouchds errors."""


class CouchConfigError(CouchError):
    """Invalid or missing configuration."""


class CouchInvalidInputError(CouchError):
    """Malformed query or record type supplied by the caller.

    Detected before any request is issued.  The public data-source methods
    log it and return ``False`` instead of letting it propagate.
    """


class CouchInvalidRecordTypeError(CouchInvalidInputError):
    """A query entry could not be validated into a :class:`RecordType`."""


class CouchInvalidTargetError(CouchError):
    """No database, document id or revision could be resolved for an operation."""

    def __init__(self, message: str, *, store_key: Any = None) -> None:
        self.store_key = store_key
        super().__init__(message)


class CouchTransportError(CouchError):
    """HTTP-level failure (network, timeout, undecodable body)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class CouchResponseError(CouchError):
    """A successful response did not have the expected shape."""
