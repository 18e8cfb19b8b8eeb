"""Request/response shapes threaded through one document transaction."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from pycouchds.models.record_type import RecordType

if TYPE_CHECKING:
    from pycouchds.state.protocol import RecordStore


class Operation(StrEnum):
    FETCH = "fetch"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Outcome(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


HttpMethod = Literal["GET", "POST", "PUT", "DELETE"]


class DocumentRequest(BaseModel):
    """One outbound call against the document API."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    method: HttpMethod
    path: str
    """Path relative to the server root, including any query string."""
    body: dict[str, Any] | None = None


class DocumentResponse(BaseModel):
    """A completed exchange as seen by the completion handlers.

    ``status`` is ``0`` when the request never produced an HTTP response
    (connection refused, timeout).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: int = Field(ge=0)
    ok: bool
    body: Any = None

    @classmethod
    def from_status(cls, status: int, body: Any = None) -> DocumentResponse:
        return cls(status=status, ok=200 <= status < 300, body=body)


@dataclass(slots=True)
class TransactionParams:
    """Context for a single in-flight record transaction."""

    store: RecordStore
    store_key: Any
    record_type: RecordType
    operation: Operation
    extra: dict[str, Any] = field(default_factory=dict)
