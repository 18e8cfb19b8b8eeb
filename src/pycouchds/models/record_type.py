"""Record type descriptor."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from pycouchds._constants import DEFAULT_PRIMARY_KEY


class RecordType(BaseModel):
    """Schema descriptor for one kind of document.

    ``database``, ``design_document`` and ``all_view`` are optional; when
    unset the data source falls back to :class:`pycouchds.config.CouchConfig` defaults.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    name: str
    """Type name, e.g. ``"Billing.Invoice"``."""
    database: str | None = None
    """Database holding documents of this type."""
    design_document: str | None = None
    """Design document containing the type's views."""
    all_view: str | None = None
    """View listing every document of this type."""
    primary_key: str = DEFAULT_PRIMARY_KEY
    """Local field mirroring the document ``_id``."""

    @field_validator("name", "primary_key")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("must be non-empty")
        return value

    @field_validator("database", "design_document", "all_view")
    @classmethod
    def _empty_is_none(cls, value: str | None) -> str | None:
        return value or None

    @property
    def type_marker(self) -> str:
        """Field name set to ``True`` on created documents (``billing_invoice``)."""
        return self.name.replace(".", "_").lower()

    def __str__(self) -> str:
        return self.name
