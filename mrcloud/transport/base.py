"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Transport Adapter base class and data structures.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import (
    AsyncIterable,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Union,
)

Content = Union[bytes, AsyncIterable[bytes]]


@dataclass
class TransportRequest:
    """Fully-formed outbound request handed to an adapter.

    ``url`` is either an absolute URL or a path relative to the adapter's
    ``base_url``. At most one of ``content`` and ``form`` is set.
    """
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, str] = field(default_factory=dict)
    content: Optional[Content] = None
    form: Optional[Dict[str, str]] = None
    expect_continue: bool = False
    timeout: Optional[float] = None


class ResponseEnvelope:
    """Inbound response: status, headers and a streamed body.

    The body can be consumed once, either with :meth:`aiter_bytes` or
    :meth:`read`. The underlying connection is released when the body is
    exhausted or :meth:`aclose` is called, whichever comes first.
    """

    def __init__(
        self,
        status_code: int,
        headers: Mapping[str, str],
        stream: AsyncIterator[bytes],
        release: Callable[[], Awaitable[None]],
        elapsed_ms: float = 0.0,
    ) -> None:
        self.status_code = status_code
        self.headers: Dict[str, str] = {k.lower(): v for k, v in headers.items()}
        self.elapsed_ms = elapsed_ms
        self._stream = stream
        self._release = release
        self._consumed = False
        self._closed = False

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def aiter_bytes(self) -> AsyncIterator[bytes]:
        """Yield the body in chunks as they arrive."""
        if self._consumed:
            raise RuntimeError("Response body has already been consumed")
        self._consumed = True
        try:
            async for chunk in self._stream:
                if chunk:
                    yield chunk
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        """Read the whole body into memory."""
        parts: List[bytes] = []
        async for chunk in self.aiter_bytes():
            parts.append(chunk)
        return b"".join(parts)

    async def aclose(self) -> None:
        if not self._closed:
            self._closed = True
            await self._release()

    async def __aenter__(self) -> ResponseEnvelope:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<ResponseEnvelope [{self.status_code}]>"


class BaseAdapter(ABC):
    """Abstract base for all transport adapters.

    Args:
        base_url: Root URL that relative request paths are resolved against.
        user_agent: Optional ``User-Agent`` sent on every request.
    """

    name = "base"

    def __init__(self, base_url: str = "", user_agent: Optional[str] = None) -> None:
        self._base_url = base_url.rstrip("/")
        self._user_agent = user_agent

    @property
    def base_url(self) -> str:
        return self._base_url

    def resolve_url(self, url: str) -> str:
        """Return ``url`` unchanged if absolute, else join it to ``base_url``."""
        if url.startswith(("http://", "https://")):
            return url
        if not url.startswith("/"):
            url = "/" + url
        return f"{self._base_url}{url}"

    def default_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._user_agent:
            headers["User-Agent"] = self._user_agent
        return headers

    @abstractmethod
    async def send(self, request: TransportRequest) -> ResponseEnvelope:
        """Send a request and return the response with an unread body.

        Raises:
            TransportError: On connection failure, reset, DNS error or timeout.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release adapter resources."""
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the adapter is in a usable state."""
        ...

    async def __aenter__(self) -> BaseAdapter:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
