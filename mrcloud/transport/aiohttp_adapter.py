"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Per-request connection HTTP transport adapter.

Opens a dedicated connection for every request and closes it together with
the response. Useful behind proxies and load balancers that mishandle
kept-alive connections during long uploads.
"""

from __future__ import annotations

import asyncio
import time
from typing import AsyncIterator, Optional

import aiohttp
from aiohttp import ClientTimeout, TCPConnector

from mrcloud.exceptions import TransportError
from mrcloud.logging_config import get_logger, log_request
from mrcloud.transport.base import BaseAdapter, ResponseEnvelope, TransportRequest

logger = get_logger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class AiohttpAdapter(BaseAdapter):
    """HTTP transport using one ``aiohttp`` session and socket per request.

    Args:
        base_url: Root URL of the cloud web API.
        user_agent: ``User-Agent`` sent on every request.
        timeout: Connect and socket-read timeout in seconds.
    """

    name = "aiohttp"

    def __init__(
        self,
        base_url: str,
        user_agent: Optional[str] = None,
        timeout: float = 30.0,
    ) -> None:
        super().__init__(base_url=base_url, user_agent=user_agent)
        self._timeout = timeout
        self._closed = False

    def _client_timeout(self, override: Optional[float]) -> ClientTimeout:
        seconds = override or self._timeout
        return ClientTimeout(total=None, connect=seconds, sock_read=seconds)

    async def send(self, request: TransportRequest) -> ResponseEnvelope:
        if self._closed:
            raise TransportError("Adapter has been closed")

        url = self.resolve_url(request.url)
        session = aiohttp.ClientSession(
            connector=TCPConnector(force_close=True, limit=1),
            headers=self.default_headers(),
            timeout=self._client_timeout(request.timeout),
        )

        data = request.form if request.form is not None else request.content
        start = time.monotonic()
        try:
            resp = await session.request(
                method=request.method,
                url=url,
                params=request.params or None,
                headers=request.headers,
                data=data,
                expect100=request.expect_continue,
            )
        except asyncio.TimeoutError as e:
            await session.close()
            logger.warning("request_timeout", method=request.method, url=url)
            raise TransportError(f"Request timed out: {request.method} {url}") from e
        except aiohttp.ClientError as e:
            await session.close()
            logger.warning("request_failed", method=request.method, url=url, error=str(e))
            raise TransportError(f"Request failed: {request.method} {url}: {e}") from e
        except BaseException:
            await session.close()
            raise
        elapsed = round((time.monotonic() - start) * 1000, 2)

        log_request(logger, request.method, url, resp.status, elapsed, backend=self.name)

        async def release() -> None:
            resp.close()
            await session.close()

        return ResponseEnvelope(
            status_code=resp.status,
            headers={k: v for k, v in resp.headers.items()},
            stream=self._iter_body(resp, url),
            release=release,
            elapsed_ms=elapsed,
        )

    async def _iter_body(self, resp: aiohttp.ClientResponse, url: str) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.content.iter_chunked(READ_CHUNK_SIZE):
                yield chunk
        except asyncio.TimeoutError as e:
            raise TransportError(f"Timed out reading response body from {url}") from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Failed reading response body from {url}: {e}") from e

    async def close(self) -> None:
        # Nothing pooled; sessions are closed with their responses
        self._closed = True

    @property
    def is_connected(self) -> bool:
        return not self._closed
