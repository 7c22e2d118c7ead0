"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Transport adapter selection.

The backend is a deployment decision taken once, from configuration; the
request pipeline and upload stream never branch on it.
"""

from typing import Callable, Dict

from mrcloud.config.settings import CloudConfig, TransportConfig
from mrcloud.exceptions import InvalidConfigurationError
from mrcloud.transport.aiohttp_adapter import AiohttpAdapter
from mrcloud.transport.base import BaseAdapter
from mrcloud.transport.httpx_adapter import HttpxAdapter


def _build_httpx(cloud: CloudConfig, transport: TransportConfig) -> BaseAdapter:
    return HttpxAdapter(
        base_url=cloud.base_url,
        user_agent=cloud.user_agent,
        timeout=transport.timeout_seconds,
        max_connections=transport.max_connections,
    )


def _build_aiohttp(cloud: CloudConfig, transport: TransportConfig) -> BaseAdapter:
    return AiohttpAdapter(
        base_url=cloud.base_url,
        user_agent=cloud.user_agent,
        timeout=transport.timeout_seconds,
    )


_BACKENDS: Dict[str, Callable[[CloudConfig, TransportConfig], BaseAdapter]] = {
    "httpx": _build_httpx,
    "aiohttp": _build_aiohttp,
}


def available_backends() -> list:
    return sorted(_BACKENDS)


def create_adapter(cloud: CloudConfig, transport: TransportConfig) -> BaseAdapter:
    """
    Build the transport adapter named by ``transport.backend``.

    Raises:
        InvalidConfigurationError: If the backend name is unknown.
    """
    try:
        builder = _BACKENDS[transport.backend]
    except KeyError:
        raise InvalidConfigurationError(
            f"Unknown transport backend '{transport.backend}'. "
            f"Available: {', '.join(available_backends())}"
        )
    return builder(cloud, transport)
