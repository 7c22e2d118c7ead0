"""
Pytest configuration and shared fixtures for MrCloud tests.
"""

import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from mrcloud.config.settings import CloudConfig
from mrcloud.core.pipeline import RequestPipeline
from mrcloud.core.tokens import TokenManager
from mrcloud.transport.mock import MockAdapter


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory that is cleaned up after test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cloud_config() -> CloudConfig:
    return CloudConfig()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter()


@pytest.fixture
def token_manager(mock_adapter: MockAdapter, cloud_config: CloudConfig, clock: FakeClock) -> TokenManager:
    """Token manager holding an access token valid for an hour."""
    return TokenManager(
        adapter=mock_adapter,
        cloud=cloud_config,
        refresh_token="refresh-token-0001",
        access_token="access-token-0001",
        expires_in=3600,
        clock=clock,
    )


@pytest.fixture
def pipeline(mock_adapter: MockAdapter, token_manager: TokenManager) -> RequestPipeline:
    return RequestPipeline(mock_adapter, token_manager)
