"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Mock transport adapter for local testing.
"""

from __future__ import annotations

import inspect
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple, Union

from mrcloud.transport.base import BaseAdapter, ResponseEnvelope, TransportRequest


@dataclass
class MockResponse:
    """Canned response returned by :class:`MockAdapter`."""
    status_code: int = 200
    body: Union[bytes, str, Dict[str, Any], List[Any], None] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def body_bytes(self) -> bytes:
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return json.dumps(self.body).encode("utf-8")


@dataclass
class SentRequest:
    """A request observed by the mock, with its body fully read."""
    request: TransportRequest
    body: bytes = b""

    @property
    def method(self) -> str:
        return self.request.method

    @property
    def url(self) -> str:
        return self.request.url

    @property
    def headers(self) -> Dict[str, str]:
        return self.request.headers


# An entry is a response, an exception to raise, or a list of either
# consumed one per call.
MockEntry = Union[MockResponse, Exception, List[Union[MockResponse, Exception]]]
MockHandler = Callable[[SentRequest], Any]


class MockAdapter(BaseAdapter):
    """In-memory mock adapter for unit tests.

    Args:
        responses: Mapping from ``(method, url)`` tuples to a
            :class:`MockResponse`, an exception to raise, or a list of those
            consumed in order (the last one repeats).
        handler: Optional callable (sync or async) receiving each
            :class:`SentRequest` and returning a :class:`MockResponse` or
            raising. Used when no ``responses`` entry matches.

    Example::

        adapter = MockAdapter({
            ("GET", "/api/v2/folder"): MockResponse(200, {"status": 200, "body": {}}),
        })
    """

    name = "mock"

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, str], MockEntry]] = None,
        handler: Optional[MockHandler] = None,
        base_url: str = "http://mock.invalid",
    ) -> None:
        super().__init__(base_url=base_url)
        self._responses: Dict[Tuple[str, str], MockEntry] = dict(responses or {})
        self._handler = handler
        self._sent: List[SentRequest] = []
        self.released = 0

    def add(self, method: str, url: str, entry: MockEntry) -> None:
        self._responses[(method.upper(), url)] = entry

    async def send(self, request: TransportRequest) -> ResponseEnvelope:
        sent = SentRequest(request=request, body=await self._read_body(request))
        self._sent.append(sent)

        outcome = self._match(request)
        if outcome is None and self._handler is not None:
            outcome = self._handler(sent)
            if inspect.isawaitable(outcome):
                outcome = await outcome
        if outcome is None:
            outcome = MockResponse(status_code=404, body={"error": "not mocked"})
        if isinstance(outcome, Exception):
            raise outcome

        body = outcome.body_bytes()

        async def stream() -> AsyncIterator[bytes]:
            yield body

        async def release() -> None:
            self.released += 1

        return ResponseEnvelope(
            status_code=outcome.status_code,
            headers=outcome.headers,
            stream=stream(),
            release=release,
        )

    def _match(self, request: TransportRequest) -> Optional[Union[MockResponse, Exception]]:
        entry = self._responses.get((request.method.upper(), request.url))
        if isinstance(entry, list):
            if not entry:
                return None
            return entry.pop(0) if len(entry) > 1 else entry[0]
        return entry

    @staticmethod
    async def _read_body(request: TransportRequest) -> bytes:
        if request.content is None:
            return b""
        if isinstance(request.content, bytes):
            return request.content
        parts = [bytes(part) async for part in request.content]
        return b"".join(parts)

    async def close(self) -> None:
        self._responses.clear()

    @property
    def is_connected(self) -> bool:
        return True

    @property
    def sent_requests(self) -> List[SentRequest]:
        """All requests that have been sent through this adapter."""
        return list(self._sent)
