"""Query descriptor and per-query tracking state."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pycouchds.models.record_type import RecordType

if TYPE_CHECKING:
    from pycouchds.models.transaction import DocumentResponse


def _dedupe_key(entry: Any) -> Any:
    if isinstance(entry, RecordType):
        return ("record_type", entry.name)
    if isinstance(entry, dict) and isinstance(entry.get("name"), str):
        return ("record_type", entry["name"].strip())
    return ("object", id(entry))


class Query(BaseModel):
    """A request for the documents of one or more record types.

    Entries of :attr:`record_types` are validated into :class:`RecordType`
    only when the query is dispatched, so that one malformed entry fails
    its own slot without rejecting the whole query.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    record_types: tuple[Any, ...] = Field(default_factory=tuple)
    view: str | None = None
    """View overriding every record type's default view."""
    on_success: Callable[..., None] | None = None
    """Called with the finalized :class:`QueryState`."""
    on_failure: Callable[..., None] | None = None
    """Called with the failed :class:`DocumentResponse` of one record type."""

    @field_validator("record_types", mode="before")
    @classmethod
    def _coerce_sequence(cls, value: Any) -> Any:
        if isinstance(value, (RecordType, dict)):
            return (value,)
        if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
            return tuple(value)
        return value

    @field_validator("view")
    @classmethod
    def _empty_view_is_none(cls, value: str | None) -> str | None:
        return value or None

    def expanded_record_types(self) -> list[Any]:
        """Distinct record types targeted by this query, in first-seen order."""
        seen: set[Any] = set()
        expanded: list[Any] = []
        for entry in self.record_types:
            key = _dedupe_key(entry)
            if key in seen:
                continue
            seen.add(key)
            expanded.append(entry)
        return expanded


@dataclass(slots=True, eq=False)
class QueryState:
    """Tracking state for one in-flight query.

    Owned by :class:`pycouchds._client.sync.QuerySynchronizer` until the
    query is finalized; ``done`` resolves with the state itself.
    """

    query: Query
    expected_count: int
    handled_count: int = 0
    is_stale: bool = False
    record_keys: dict[str, list[Any]] = field(default_factory=dict)
    errors: dict[str, DocumentResponse] = field(default_factory=dict)
    done: asyncio.Future[QueryState] | None = None

    @property
    def is_complete(self) -> bool:
        return self.handled_count >= self.expected_count

