"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

OAuth token lifecycle for MrCloud Core.

The TokenManager owns the access/refresh token pair of one authenticated
session. It refreshes lazily when the access token is missing or about to
expire, and at most one refresh call is in flight at any time: concurrent
callers await the same refresh and receive its result.

States:
- UNAUTHENTICATED: No access token yet
- VALID: Access token usable beyond the safety margin
- EXPIRING: Access token within the safety margin (or past expiry)
- REFRESHING: A refresh call is in flight
- FAILED: Refresh rejected; sticky until a new refresh token is supplied
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
from urllib.parse import urlsplit

from mrcloud.config.settings import AuthConfig, CloudConfig
from mrcloud.core.request import ResponseShape, decode_body
from mrcloud.exceptions import AuthError, DecodeError, TransportError
from mrcloud.logging_config import get_logger, log_token_refresh, mask_token
from mrcloud.transport.base import BaseAdapter, TransportRequest

logger = get_logger(__name__)


class TokenStatus(Enum):
    """Token lifecycle states."""
    UNAUTHENTICATED = "unauthenticated"
    VALID = "valid"
    EXPIRING = "expiring"
    REFRESHING = "refreshing"
    FAILED = "failed"


@dataclass
class TokenState:
    """
    Mutable token state of one authenticated session.

    Attributes:
        access_token: Current access token, empty if none
        expires_at: Epoch seconds after which the access token is unusable,
            already reduced by the safety margin
        refresh_token: Long-lived token used to obtain access tokens
        last_error: Message of the last failed refresh, if any
    """
    access_token: str = ""
    expires_at: float = 0.0
    refresh_token: str = ""
    last_error: Optional[str] = None


@dataclass
class RefreshResult:
    """Token endpoint response body."""
    access_token: Optional[str] = None
    expires_in: Optional[int] = None
    error: Optional[str] = None
    error_code: Optional[int] = None
    error_description: Optional[str] = None


class TokenManager:
    """
    Owns and renews the OAuth access token of a cloud session.

    Args:
        adapter: Transport used for calls to the token endpoint
        cloud: Endpoint and client identity settings
        refresh_token: Refresh token for the session
        access_token: Optional access token already known to be valid
        expires_in: Remaining lifetime of ``access_token`` in seconds
        safety_margin: Seconds before expiry at which a token is renewed
        clock: Time source returning epoch seconds
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        cloud: Optional[CloudConfig] = None,
        refresh_token: str = "",
        access_token: str = "",
        expires_in: Optional[float] = None,
        safety_margin: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self._adapter = adapter
        self._cloud = cloud or CloudConfig()
        self._safety_margin = safety_margin
        self._clock = clock

        self._state = TokenState(refresh_token=refresh_token)
        self._failed = False
        if access_token:
            lifetime = expires_in if expires_in is not None else 0.0
            self._state.access_token = access_token
            self._state.expires_at = clock() + lifetime - safety_margin

        self._lock = asyncio.Lock()
        self._inflight: Optional["asyncio.Task[str]"] = None
        self.refresh_count = 0

    @classmethod
    def from_config(
        cls,
        adapter: BaseAdapter,
        cloud: CloudConfig,
        auth: AuthConfig,
    ) -> "TokenManager":
        return cls(
            adapter=adapter,
            cloud=cloud,
            refresh_token=auth.refresh_token,
            access_token=auth.access_token,
            safety_margin=auth.safety_margin_seconds,
        )

    @property
    def state(self) -> TokenState:
        return self._state

    @property
    def status(self) -> TokenStatus:
        if self._failed:
            return TokenStatus.FAILED
        if self._inflight is not None and not self._inflight.done():
            return TokenStatus.REFRESHING
        if not self._state.access_token:
            return TokenStatus.UNAUTHENTICATED
        if self._is_fresh():
            return TokenStatus.VALID
        return TokenStatus.EXPIRING

    def _is_fresh(self) -> bool:
        return bool(self._state.access_token) and self._clock() < self._state.expires_at

    def set_refresh_token(self, refresh_token: str) -> None:
        """
        Supply a new refresh token.

        Clears a FAILED state and drops the current access token, so that the
        next call refreshes with the new credentials.
        """
        self._state = TokenState(refresh_token=refresh_token)
        self._failed = False
        logger.info("refresh_token_replaced", refresh_token=mask_token(refresh_token))

    async def get_valid_token(self) -> str:
        """
        Return an access token valid beyond the safety margin.

        Refreshes when needed; concurrent callers share one refresh.

        Raises:
            AuthError: If the manager is FAILED or the refresh is rejected
        """
        self._raise_if_failed()
        if self._is_fresh():
            return self._state.access_token
        return await self._join_refresh()

    async def refresh(self, stale_token: Optional[str] = None) -> str:
        """
        Force a refresh after the service rejected ``stale_token``.

        If the current access token already differs from ``stale_token``,
        another caller has refreshed in the meantime and the current token is
        returned without a new refresh call.

        Raises:
            AuthError: If the manager is FAILED or the refresh is rejected
        """
        self._raise_if_failed()
        if (
            stale_token is not None
            and self._state.access_token
            and self._state.access_token != stale_token
            and self._is_fresh()
        ):
            return self._state.access_token
        self._state.expires_at = 0.0
        return await self._join_refresh()

    def _raise_if_failed(self) -> None:
        if self._failed:
            raise AuthError(
                f"Re-authentication required: {self._state.last_error or 'token refresh failed'}"
            )

    async def _join_refresh(self) -> str:
        async with self._lock:
            # Another caller may have completed a refresh while we waited
            self._raise_if_failed()
            if self._is_fresh():
                return self._state.access_token
            if self._inflight is None or self._inflight.done():
                self._inflight = asyncio.ensure_future(self._do_refresh())
            task = self._inflight
        # Shield so that one cancelled waiter does not cancel the shared refresh
        return await asyncio.shield(task)

    async def _do_refresh(self) -> str:
        if not self._state.refresh_token:
            raise self._failure("no refresh token available")

        self.refresh_count += 1
        url = self._cloud.token_url
        request = TransportRequest(
            method="POST",
            url=url,
            headers={
                "Host": urlsplit(url).netloc,
                "User-Agent": self._cloud.user_agent,
                "Accept": "*/*",
            },
            form={
                "client_id": self._cloud.client_id,
                "grant_type": "refresh_token",
                "refresh_token": self._state.refresh_token,
            },
            expect_continue=False,
        )

        logger.debug("token_refresh_started", refresh_token=mask_token(self._state.refresh_token))

        try:
            async with await self._adapter.send(request) as response:
                raw = await response.read()
                status_code = response.status_code
        except TransportError as e:
            raise self._failure(f"token endpoint unreachable: {e}") from e

        try:
            result = decode_body(raw, ResponseShape.JSON, RefreshResult)
        except DecodeError as e:
            raise self._failure(f"unreadable token response (status {status_code}): {e}") from e

        if result.error:
            # The service reports refresh errors inside an otherwise successful response
            raise self._failure(
                f"{result.error}: {result.error_description or 'no description'}",
                error_code=result.error_code,
                error_description=result.error_description,
            )
        if status_code >= 400:
            raise self._failure(f"token endpoint returned status {status_code}")
        if not result.access_token or result.expires_in is None:
            raise self._failure("token response is missing access_token or expires_in")

        self._state.access_token = result.access_token
        self._state.expires_at = self._clock() + result.expires_in - self._safety_margin
        self._state.last_error = None

        log_token_refresh(
            logger,
            success=True,
            expires_in=result.expires_in,
            access_token=mask_token(result.access_token),
        )
        return result.access_token

    def _failure(
        self,
        reason: str,
        error_code: Optional[int] = None,
        error_description: Optional[str] = None,
    ) -> AuthError:
        """Enter the sticky FAILED state and build the error to raise."""
        self._failed = True
        self._state.access_token = ""
        self._state.expires_at = 0.0
        self._state.last_error = reason
        log_token_refresh(logger, success=False, reason=reason, error_code=error_code)
        return AuthError(
            f"Token refresh failed, re-authentication required: {reason}",
            error_code=error_code,
            error_description=error_description,
        )
