"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Core components for MrCloud.

This module contains the core primitives:
- Request descriptors and response decoding
- Token manager with single-flight refresh
- Authenticated request pipeline
- Resumable chunked upload stream
- Retry with exponential backoff
"""

from mrcloud.core.pipeline import RequestPipeline
from mrcloud.core.request import RequestDescriptor, ResponseShape, decode_body, decode_structured
from mrcloud.core.retry import RetryPolicy, retry_async
from mrcloud.core.tokens import TokenManager, TokenState, TokenStatus
from mrcloud.core.upload import UploadSession, UploadState, UploadStream

__all__ = [
    "RequestDescriptor",
    "ResponseShape",
    "decode_body",
    "decode_structured",
    "RequestPipeline",
    "RetryPolicy",
    "retry_async",
    "TokenManager",
    "TokenState",
    "TokenStatus",
    "UploadSession",
    "UploadState",
    "UploadStream",
]
