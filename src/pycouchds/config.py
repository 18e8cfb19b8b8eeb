"""Client configuration for pycouchds."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pycouchds._constants import (
    DEFAULT_DATABASE,
    DEFAULT_DESIGN_DOCUMENT,
    DEFAULT_LOCAL_TABLE,
    DEFAULT_SERVER,
    DEFAULT_VIEW,
)
from pycouchds.exceptions import CouchConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class CouchConfig:
    """Remote document-API configuration.

    Parameters
    ----------
    server : str
        Base URL of the CouchDB server. Request paths are appended to it.
    database : str or None
        Database used when a record type does not name its own. ``None``
        (or empty) means record types without a database cannot be
        resolved and their operations fail locally.
    design_document : str
        Design document used when a record type does not name its own.
    default_view : str
        View queried when neither the query nor the record type names one.
    username : str or None
        Optional HTTP basic-auth user.
    password : str or None
        Optional HTTP basic-auth password.
    request_timeout : float
        Total per-request timeout in seconds.
    """

    server: str = DEFAULT_SERVER
    database: str | None = DEFAULT_DATABASE
    design_document: str = DEFAULT_DESIGN_DOCUMENT
    default_view: str = DEFAULT_VIEW
    username: str | None = None
    password: str | None = None
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if not self.server:
            raise CouchConfigError("server must be non-empty")
        if self.request_timeout <= 0:
            raise CouchConfigError(f"request_timeout must be positive, got {self.request_timeout}")
        if (self.username is None) != (self.password is None):
            raise CouchConfigError("username and password must be set together")

    @classmethod
    def from_env(cls, **overrides: Any) -> CouchConfig:
        """Create configuration from ``COUCH_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "COUCH_SERVER": "server",
            "COUCH_DATABASE": "database",
            "COUCH_DESIGN_DOCUMENT": "design_document",
            "COUCH_DEFAULT_VIEW": "default_view",
            "COUCH_USERNAME": "username",
            "COUCH_PASSWORD": "password",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # request_timeout is numeric, handle separately
        timeout_env = env.get("COUCH_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise CouchConfigError(f"COUCH_REQUEST_TIMEOUT is not a number: {timeout_env!r}") from exc

        config_kwargs.update(overrides)

        return cls(**config_kwargs)


@dataclasses.dataclass(frozen=True)
class LocalStoreConfig:
    """Configuration for :class:`pycouchds.local.IndexedLocalStore`.

    Parameters
    ----------
    table : str
        Logical table name; prefixes every storage key (``table:id``).
    path : str or None
        File for the native ``dbm`` backend. ``None`` selects the
        in-memory backend directly.
    legacy_zero_index_check : bool
        Reproduce the historical batch-save duplicate check that treats
        index position 0 as "not found".
    prune_index_on_remove : bool
        Drop a key from the index when its record is removed.
    """

    table: str = DEFAULT_LOCAL_TABLE
    path: str | None = None
    legacy_zero_index_check: bool = False
    prune_index_on_remove: bool = False

    def __post_init__(self) -> None:
        if not self.table or ":" in self.table:
            raise CouchConfigError(f"table must be non-empty and must not contain ':', got {self.table!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> LocalStoreConfig:
        """Create configuration from ``COUCH_LOCAL_*`` environment variables."""
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        table = env.get("COUCH_LOCAL_TABLE")
        if table is not None:
            config_kwargs["table"] = table
        path = env.get("COUCH_LOCAL_PATH")
        if path:
            config_kwargs["path"] = path

        if "legacy_zero_index_check" not in overrides:
            config_kwargs["legacy_zero_index_check"] = _env_bool(env.get("COUCH_LOCAL_LEGACY_INDEX_CHECK"), False)
        if "prune_index_on_remove" not in overrides:
            config_kwargs["prune_index_on_remove"] = _env_bool(env.get("COUCH_LOCAL_PRUNE_INDEX"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
