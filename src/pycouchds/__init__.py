"""pycouchds - Async CouchDB data source for record stores."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pycouchds")
except PackageNotFoundError:
    __version__ = "0+local"
from pycouchds._client.dispatch import TransactionHooks
from pycouchds.client import CouchDataSource
from pycouchds.config import CouchConfig, LocalStoreConfig
from pycouchds.exceptions import (
    CouchConfigError,
    CouchError,
    CouchInvalidInputError,
    CouchInvalidRecordTypeError,
    CouchInvalidTargetError,
    CouchResponseError,
    CouchTransportError,
)
from pycouchds.local import IndexedLocalStore
from pycouchds.models import (
    DocumentRequest,
    DocumentResponse,
    Operation,
    Outcome,
    Query,
    QueryState,
    RecordType,
    TransactionParams,
)
from pycouchds.state import MemoryRecordStore, QueryStatus, RecordStatus, RecordStore

__all__ = [
    "__version__",
    "CouchConfig",
    "CouchConfigError",
    "CouchDataSource",
    "CouchError",
    "CouchInvalidInputError",
    "CouchInvalidRecordTypeError",
    "CouchInvalidTargetError",
    "CouchResponseError",
    "CouchTransportError",
    "DocumentRequest",
    "DocumentResponse",
    "IndexedLocalStore",
    "LocalStoreConfig",
    "MemoryRecordStore",
    "Operation",
    "Outcome",
    "Query",
    "QueryState",
    "QueryStatus",
    "RecordStatus",
    "RecordStore",
    "RecordType",
    "TransactionHooks",
    "TransactionParams",
]
