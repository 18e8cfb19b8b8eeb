"""View query response models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ViewRow(BaseModel):
    """A single ``rows[]`` entry of a CouchDB view response."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str | None = None
    key: Any = None
    value: dict[str, Any]


class ViewResponse(BaseModel):
    """Body of ``GET {db}/_design/{doc}/_view/{view}``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    total_rows: int | None = None
    offset: int | None = None
    rows: list[ViewRow] | None = Field(default=None)
