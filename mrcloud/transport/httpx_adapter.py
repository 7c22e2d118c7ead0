"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Connection-pooled HTTP transport adapter (default).
"""

from __future__ import annotations

import time
from typing import AsyncIterator, Optional

import httpx

from mrcloud.exceptions import TransportError
from mrcloud.logging_config import get_logger, log_request
from mrcloud.transport.base import BaseAdapter, ResponseEnvelope, TransportRequest

logger = get_logger(__name__)


class HttpxAdapter(BaseAdapter):
    """HTTP transport using a shared, pooled ``httpx.AsyncClient``.

    Args:
        base_url: Root URL of the cloud web API.
        user_agent: ``User-Agent`` sent on every request.
        timeout: Connect/read/write timeout in seconds.
        max_connections: Upper bound on pooled connections.
        transport: Optional ``httpx`` transport, e.g. ``httpx.MockTransport``.
    """

    name = "httpx"

    def __init__(
        self,
        base_url: str,
        user_agent: Optional[str] = None,
        timeout: float = 30.0,
        max_connections: int = 20,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(base_url=base_url, user_agent=user_agent)
        self._timeout = timeout
        self._max_connections = max_connections
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._closed = False

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._closed:
            raise TransportError("Adapter has been closed")
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.default_headers(),
                timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_connections=self._max_connections),
                transport=self._transport,
            )
        return self._client

    async def send(self, request: TransportRequest) -> ResponseEnvelope:
        client = self._ensure_client()
        url = self.resolve_url(request.url)

        if request.expect_continue:
            # httpx has no 100-continue negotiation; the body is sent eagerly
            logger.debug("expect_continue_unsupported", url=url)

        timeout = httpx.Timeout(request.timeout) if request.timeout else httpx.USE_CLIENT_DEFAULT
        http_request = client.build_request(
            method=request.method,
            url=url,
            params=request.params or None,
            headers=request.headers,
            content=request.content,
            data=request.form,
            timeout=timeout,
        )

        start = time.monotonic()
        try:
            resp = await client.send(http_request, stream=True)
        except httpx.TimeoutException as e:
            logger.warning("request_timeout", method=request.method, url=url)
            raise TransportError(f"Request timed out: {request.method} {url}") from e
        except httpx.TransportError as e:
            logger.warning("request_failed", method=request.method, url=url, error=str(e))
            raise TransportError(f"Request failed: {request.method} {url}: {e}") from e
        elapsed = round((time.monotonic() - start) * 1000, 2)

        log_request(logger, request.method, url, resp.status_code, elapsed, backend=self.name)

        return ResponseEnvelope(
            status_code=resp.status_code,
            headers=dict(resp.headers),
            stream=self._iter_body(resp, url),
            release=resp.aclose,
            elapsed_ms=elapsed,
        )

    async def _iter_body(self, resp: httpx.Response, url: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.aiter_bytes():
                yield chunk
        except httpx.TransportError as e:
            raise TransportError(f"Failed reading response body from {url}: {e}") from e

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        self._closed = True

    @property
    def is_connected(self) -> bool:
        return not self._closed
