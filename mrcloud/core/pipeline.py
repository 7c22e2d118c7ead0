"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Authenticated request pipeline.

Turns a RequestDescriptor into a decoded result:
    1. Attach the current access token (refreshing first if needed)
    2. Hand the request to the injected transport adapter
    3. On 401, refresh once and replay the request once
    4. Map error statuses to RemoteRejectedError
    5. Decode the body by the descriptor's response shape

Network failures propagate as TransportError. The pipeline never retries them
itself; retry policy belongs to the caller.
"""

import json
from typing import Any, Optional

from mrcloud.core.request import RequestDescriptor, decode_body
from mrcloud.core.tokens import TokenManager
from mrcloud.exceptions import AuthError, RemoteRejectedError
from mrcloud.logging_config import get_logger
from mrcloud.transport.base import BaseAdapter, ResponseEnvelope, TransportRequest

logger = get_logger(__name__)

UNAUTHORIZED = 401

# Longest error body quoted in exception messages
MAX_ERROR_TEXT = 200


class RequestPipeline:
    """
    Executes request descriptors over a transport adapter.

    The same pipeline logic runs unchanged over any BaseAdapter
    implementation.

    Args:
        adapter: Transport adapter performing the physical exchange
        tokens: Token manager for authenticated descriptors
    """

    def __init__(self, adapter: BaseAdapter, tokens: Optional[TokenManager] = None):
        self._adapter = adapter
        self._tokens = tokens

    @property
    def adapter(self) -> BaseAdapter:
        return self._adapter

    @property
    def tokens(self) -> Optional[TokenManager]:
        return self._tokens

    async def execute(self, descriptor: RequestDescriptor) -> Any:
        """
        Execute a descriptor and decode its response.

        Returns:
            bytes, str, parsed JSON, or an instance of ``descriptor.result_type``

        Raises:
            TransportError: On network failure or timeout
            AuthError: If no valid token can be obtained or the service
                rejects a freshly refreshed token
            RemoteRejectedError: On any other non-2xx response
            DecodeError: If the body does not match the expected shape
        """
        envelope = await self.execute_envelope(descriptor)
        async with envelope:
            raw = await envelope.read()
        return decode_body(raw, descriptor.shape, descriptor.result_type)

    async def execute_envelope(self, descriptor: RequestDescriptor) -> ResponseEnvelope:
        """
        Execute a descriptor and return the successful response unread.

        The caller owns the envelope and must consume or close it.
        """
        token: Optional[str] = None
        if descriptor.authenticated:
            token = await self._require_tokens().get_valid_token()

        envelope = await self._adapter.send(self._build(descriptor, token))

        if descriptor.authenticated and envelope.status_code == UNAUTHORIZED:
            await envelope.aclose()
            logger.info(
                "access_token_rejected",
                method=descriptor.method,
                endpoint=descriptor.endpoint,
            )
            token = await self._require_tokens().refresh(stale_token=token)
            envelope = await self._adapter.send(self._build(descriptor, token))
            if envelope.status_code == UNAUTHORIZED:
                await envelope.aclose()
                logger.error(
                    "access_token_rejected_after_refresh",
                    method=descriptor.method,
                    endpoint=descriptor.endpoint,
                )
                raise AuthError(
                    f"Authorization failed for {descriptor.method} {descriptor.endpoint} "
                    "after token refresh; re-authentication required"
                )

        if not envelope.is_success:
            async with envelope:
                raw = await envelope.read()
            raise self._rejection(descriptor, envelope.status_code, raw)

        return envelope

    def _require_tokens(self) -> TokenManager:
        if self._tokens is None:
            raise AuthError("Authenticated request issued on a pipeline without a token manager")
        return self._tokens

    def _build(self, descriptor: RequestDescriptor, token: Optional[str]) -> TransportRequest:
        headers = dict(descriptor.headers)
        if token is not None:
            headers["Authorization"] = f"Bearer {token}"
        return TransportRequest(
            method=descriptor.method,
            url=descriptor.endpoint,
            headers=headers,
            params=dict(descriptor.params),
            content=descriptor.open_body(),
            form=dict(descriptor.form) if descriptor.form is not None else None,
            expect_continue=descriptor.expect_continue,
            timeout=descriptor.timeout,
        )

    @staticmethod
    def _rejection(descriptor: RequestDescriptor, status_code: int, raw: bytes) -> RemoteRejectedError:
        text = raw.decode("utf-8", errors="replace")
        payload: Any = None
        message = text.strip()[:MAX_ERROR_TEXT] or "no response body"
        try:
            payload = json.loads(text)
        except ValueError:
            pass
        else:
            message = _error_message(payload) or message

        logger.warning(
            "request_rejected",
            method=descriptor.method,
            endpoint=descriptor.endpoint,
            status_code=status_code,
            reason=message,
        )
        return RemoteRejectedError(status_code, message, payload)


def _error_message(payload: Any) -> Optional[str]:
    """Find a human-readable error in the service's JSON error shapes."""
    if isinstance(payload, str):
        return payload
    if not isinstance(payload, dict):
        return None
    for key in ("error_description", "message", "error"):
        value = payload.get(key)
        if isinstance(value, str) and value:
            return value
    body = payload.get("body")
    if isinstance(body, dict):
        # {"body": {"home": {"error": "exists"}}}
        for name, detail in body.items():
            if isinstance(detail, dict) and isinstance(detail.get("error"), str):
                return f"{name}: {detail['error']}"
        return _error_message(body)
    if isinstance(body, str) and body:
        return body
    return None
