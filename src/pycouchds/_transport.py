"""HTTP transport for the CouchDB document API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Protocol

import aiohttp

from pycouchds._constants import ACCEPT_HEADER, USER_AGENT
from pycouchds.config import CouchConfig
from pycouchds.exceptions import CouchTransportError
from pycouchds.models.transaction import DocumentRequest, DocumentResponse

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by the data source.

    Having a protocol here makes it easy to pass test doubles while
    keeping the production implementation (`HttpTransport`) concrete.
    """

    async def send(self, request: DocumentRequest) -> DocumentResponse:
        ...


class HttpTransport:
    """Sends :class:`DocumentRequest` objects over an aiohttp session.

    Any HTTP status is returned as a :class:`DocumentResponse`; only
    failures that never produced a usable response raise
    :class:`CouchTransportError`.
    """

    def __init__(self, config: CouchConfig, http_session: aiohttp.ClientSession) -> None:
        self._config = config
        self._http = http_session
        self._auth: aiohttp.BasicAuth | None = None
        if config.username is not None and config.password is not None:
            self._auth = aiohttp.BasicAuth(config.username, config.password)
        self._timeout = aiohttp.ClientTimeout(total=config.request_timeout)

    def url_for(self, path: str) -> str:
        return f"{self._config.server.rstrip('/')}/{path.lstrip('/')}"

    async def send(self, request: DocumentRequest) -> DocumentResponse:
        headers: dict[str, str] = {
            "accept": ACCEPT_HEADER,
            "user-agent": USER_AGENT,
        }
        data: str | None = None
        if request.body is not None:
            headers["content-type"] = "application/json"
            data = json.dumps(request.body, separators=(",", ":"))

        url = self.url_for(request.path)
        _logger.debug("%s %s", request.method, url)

        try:
            async with self._http.request(
                request.method,
                url,
                data=data,
                headers=headers,
                auth=self._auth,
                timeout=self._timeout,
            ) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise CouchTransportError(
                f"{request.method} {request.path} failed: {exc}",
                endpoint=request.path,
            ) from exc
        except asyncio.TimeoutError as exc:
            raise CouchTransportError(
                f"{request.method} {request.path} timed out after {self._config.request_timeout}s",
                endpoint=request.path,
            ) from exc

        _logger.debug("%s %s -> HTTP %s", request.method, url, status)
        return DocumentResponse.from_status(status, _decode_body(request, status, text))


def _decode_body(request: DocumentRequest, status: int, text: str) -> Any:
    if not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        if 200 <= status < 300:
            raise CouchTransportError(
                f"Invalid JSON from {request.path}: {text[:200]}",
                status_code=status,
                endpoint=request.path,
            ) from exc
        # Error pages from proxies are surfaced verbatim.
        return text
