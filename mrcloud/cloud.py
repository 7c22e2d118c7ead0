"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Cloud session: high-level operations over the request pipeline.

A CloudSession bundles one transport adapter, one token manager and one
request pipeline. It is created explicitly and passed to whoever needs it;
there is no process-wide session.

Usage::

    config = load_config()
    async with CloudSession.from_config(config) as cloud:
        listing = await cloud.list_folder("/")
        async with cloud.open_upload_stream("/docs/a.txt", size=5) as stream:
            await stream.write(b"hello")
"""

import asyncio
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, AsyncIterator, List, Optional

from mrcloud import paths
from mrcloud.config.settings import MrCloudConfig
from mrcloud.core.pipeline import RequestPipeline
from mrcloud.core.request import RequestDescriptor, ResponseShape, decode_structured
from mrcloud.core.retry import RetryPolicy, retry_async
from mrcloud.core.tokens import TokenManager
from mrcloud.core.upload import ProgressCallback, UploadStream
from mrcloud.exceptions import DecodeError, RemoteRejectedError
from mrcloud.logging_config import get_logger
from mrcloud.transport.base import BaseAdapter
from mrcloud.transport.factory import create_adapter

logger = get_logger(__name__)

NOT_FOUND = 404


@dataclass
class ApiResponse:
    """Envelope of every web API response."""
    status: int
    body: Any = None


@dataclass
class CloudItem:
    """A file or folder as reported by the service."""
    name: str
    home: str
    kind: str = "file"
    size: int = 0
    mtime: int = 0
    weblink: str = ""

    @property
    def path(self) -> str:
        return self.home

    @property
    def is_folder(self) -> bool:
        return self.kind == "folder"


@dataclass
class FolderCount:
    folders: int = 0
    files: int = 0


@dataclass
class FolderListing:
    """Contents of one folder."""
    path: str
    folders_count: int = 0
    files_count: int = 0
    entries: List[CloudItem] = field(default_factory=list)

    @property
    def folders(self) -> List[CloudItem]:
        return [item for item in self.entries if item.is_folder]

    @property
    def files(self) -> List[CloudItem]:
        return [item for item in self.entries if not item.is_folder]


class CloudSession:
    """
    Authenticated session against the cloud web API.

    Args:
        pipeline: Request pipeline carrying adapter and token manager
        config: Full configuration (endpoints, upload tuning)
    """

    def __init__(self, pipeline: RequestPipeline, config: Optional[MrCloudConfig] = None):
        self._pipeline = pipeline
        self._config = config or MrCloudConfig()
        upload = self._config.upload
        self._read_retry = RetryPolicy(
            max_attempts=upload.max_attempts,
            base_delay=upload.base_delay,
            backoff_factor=upload.backoff_factor,
        )

    @classmethod
    def from_config(
        cls,
        config: MrCloudConfig,
        adapter: Optional[BaseAdapter] = None,
    ) -> "CloudSession":
        """
        Build a session from configuration.

        Args:
            config: Loaded configuration
            adapter: Transport override; defaults to the configured backend
        """
        adapter = adapter or create_adapter(config.cloud, config.transport)
        tokens = TokenManager.from_config(adapter, config.cloud, config.auth)
        logger.info("cloud_session_created", backend=adapter.name)
        return cls(RequestPipeline(adapter, tokens), config)

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    @property
    def config(self) -> MrCloudConfig:
        return self._config

    async def close(self) -> None:
        await self._pipeline.adapter.close()

    async def __aenter__(self) -> "CloudSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # -- Reads -------------------------------------------------------------

    async def list_folder(self, path: str, limit: int = 65535) -> FolderListing:
        """
        List a folder. Transient failures are retried, since listing is idempotent.

        Raises:
            RemoteRejectedError: If the folder does not exist or is not a folder
        """
        path = paths.normalize(path)
        descriptor = self._api("GET", "/api/v2/folder", params={"home": path, "offset": "0", "limit": str(limit)})
        body = await retry_async(lambda: self._call(descriptor), "list_folder", self._read_retry)
        if not isinstance(body, dict):
            raise DecodeError(f"Folder listing for {path} is not an object")

        count = decode_structured(body.get("count") or {}, FolderCount)
        entries = [decode_structured(entry, CloudItem) for entry in body.get("list") or []]
        return FolderListing(
            path=path,
            folders_count=count.folders,
            files_count=count.files,
            entries=entries,
        )

    async def get_item(self, path: str) -> Optional[CloudItem]:
        """Return the item at ``path``, or None if the service reports it missing."""
        path = paths.normalize(path)
        descriptor = self._api("GET", "/api/v2/file", params={"home": path})
        try:
            body = await retry_async(lambda: self._call(descriptor), "get_item", self._read_retry)
        except RemoteRejectedError as e:
            if e.status_code == NOT_FOUND:
                return None
            raise
        return decode_structured(body, CloudItem)

    async def download(self, path: str) -> AsyncIterator[bytes]:
        """Stream the content of a file."""
        path = paths.normalize(path)
        descriptor = RequestDescriptor(
            method="GET",
            endpoint=f"{self._config.cloud.download_url}{paths.quote(path)}",
            shape=ResponseShape.RAW,
        )
        envelope = await self._pipeline.execute_envelope(descriptor)
        async with envelope:
            async for chunk in envelope.aiter_bytes():
                yield chunk

    # -- Writes ------------------------------------------------------------

    async def create_folder(self, path: str) -> str:
        """Create a folder and return the path the service assigned."""
        path = paths.normalize(path)
        body = await self._call(
            self._api("POST", "/api/v2/folder/add", form={"home": path, "conflict": "rename"})
        )
        logger.info("folder_created", path=body or path)
        return body if isinstance(body, str) and body else path

    async def remove(self, path: str) -> None:
        path = paths.normalize(path)
        await self._call(self._api("POST", "/api/v2/file/remove", form={"home": path}))
        logger.info("item_removed", path=path)

    async def rename(self, path: str, new_name: str) -> str:
        """Rename an item in place and return its new path."""
        path = paths.normalize(path)
        if not new_name or "/" in new_name or "\\" in new_name:
            raise ValueError(f"Invalid name: {new_name!r}")
        body = await self._call(
            self._api("POST", "/api/v2/file/rename", form={"home": path, "name": new_name, "conflict": "rename"})
        )
        new_path = body if isinstance(body, str) and body else paths.combine(paths.parent(path), new_name)
        logger.info("item_renamed", path=path, new_path=new_path)
        return new_path

    async def move(self, path: str, folder: str) -> str:
        """Move an item into ``folder`` and return its new path."""
        path = paths.normalize(path)
        folder = paths.normalize(folder)
        body = await self._call(
            self._api("POST", "/api/v2/file/move", form={"home": path, "folder": folder, "conflict": "rename"})
        )
        new_path = body if isinstance(body, str) and body else paths.combine(folder, paths.name(path))
        logger.info("item_moved", path=path, new_path=new_path)
        return new_path

    async def publish(self, path: str) -> str:
        """Publish an item and return its public URL."""
        path = paths.normalize(path)
        weblink = await self._call(self._api("POST", "/api/v2/file/publish", form={"home": path}))
        if not isinstance(weblink, str) or not weblink:
            raise DecodeError(f"Publish of {path} returned no weblink")
        url = f"{self._config.cloud.public_url.rstrip('/')}/{weblink}"
        logger.info("item_published", path=path, url=url)
        return url

    async def unpublish(self, path: str) -> None:
        """Withdraw the public link of an item. No-op if it is not published."""
        item = await self.get_item(path)
        if item is None:
            raise RemoteRejectedError(NOT_FOUND, f"{paths.normalize(path)} not found")
        if not item.weblink:
            return
        await self._call(self._api("POST", "/api/v2/file/unpublish", form={"weblink": item.weblink}))
        logger.info("item_unpublished", path=item.home)

    # -- Uploads -----------------------------------------------------------

    def open_upload_stream(
        self,
        path: str,
        size: int,
        chunk_size: Optional[int] = None,
        offset: int = 0,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadStream:
        """Open a chunked upload of ``size`` bytes to ``path``."""
        upload = self._config.upload
        return UploadStream(
            pipeline=self._pipeline,
            path=paths.normalize(path),
            size=size,
            chunk_size=chunk_size or upload.chunk_size,
            cloud=self._config.cloud,
            retry=RetryPolicy(
                max_attempts=upload.max_attempts,
                base_delay=upload.base_delay,
                backoff_factor=upload.backoff_factor,
            ),
            offset=offset,
            on_progress=on_progress,
            expect_continue=self._config.transport.expect_continue,
        )

    async def upload_file(
        self,
        local_path: Path,
        remote_path: str,
        chunk_size: Optional[int] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Upload a local file and return the path the service stored it under."""
        local_path = Path(local_path)
        size = local_path.stat().st_size
        stream = self.open_upload_stream(remote_path, size, chunk_size, on_progress=on_progress)
        read_size = stream.session.chunk_size

        with open(local_path, "rb") as f:
            async with stream:
                while True:
                    data = await asyncio.to_thread(f.read, read_size)
                    if not data:
                        break
                    await stream.write(data)
        return stream.session.path

    # -- Internal ----------------------------------------------------------

    @staticmethod
    def _api(method: str, endpoint: str, params=None, form=None) -> RequestDescriptor:
        return RequestDescriptor(
            method=method,
            endpoint=endpoint,
            params=params or {},
            form=form,
            shape=ResponseShape.JSON,
            result_type=ApiResponse,
        )

    async def _call(self, descriptor: RequestDescriptor) -> Any:
        response: ApiResponse = await self._pipeline.execute(descriptor)
        return response.body
