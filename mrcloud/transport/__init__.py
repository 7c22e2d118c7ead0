"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Transport Adapters.
"""

from mrcloud.transport.aiohttp_adapter import AiohttpAdapter
from mrcloud.transport.base import BaseAdapter, ResponseEnvelope, TransportRequest
from mrcloud.transport.httpx_adapter import HttpxAdapter
from mrcloud.transport.mock import MockAdapter, MockResponse, SentRequest

__all__ = [
    "BaseAdapter",
    "TransportRequest",
    "ResponseEnvelope",
    "HttpxAdapter",
    "AiohttpAdapter",
    "MockAdapter",
    "MockResponse",
    "SentRequest",
]
