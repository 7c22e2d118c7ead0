"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
MrCloud, a product of Garudex Labs

Resumable chunked upload stream.

An UploadStream is a write-only byte sink over a bounded buffer. Every full
buffer becomes one authenticated PUT carrying a Content-Range; the session
offset advances only when the service acknowledges a chunk, so a chunk that
fails transiently is resent with exactly the same range. Closing the stream
sends the final partial chunk and registers the uploaded content at its
destination path.

Session states:
- OPEN: Accepting writes
- COMPLETED: All bytes acknowledged and the file registered
- ABORTED: Released without completing; remote partial data is left as is
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from mrcloud import paths
from mrcloud.config.settings import DEFAULT_CHUNK_SIZE, CloudConfig
from mrcloud.core.pipeline import RequestPipeline
from mrcloud.core.request import RequestDescriptor, ResponseShape
from mrcloud.core.retry import RetryPolicy, retry_async
from mrcloud.exceptions import (
    MrCloudError,
    TransportError,
    UploadAbortedError,
    UploadIncompleteError,
    UploadSizeExceededError,
    UploadStateError,
)
from mrcloud.logging_config import get_logger, log_chunk_upload

logger = get_logger(__name__)

FILE_ADD_ENDPOINT = "/api/v2/file/add"

# Slice size used when streaming a chunk into the request body
BODY_SLICE_SIZE = 64 * 1024

ProgressCallback = Callable[[int, int], None]


class UploadState(Enum):
    """Upload session lifecycle states."""
    OPEN = "open"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class UploadSession:
    """
    Progress of one upload.

    Attributes:
        path: Destination path in the cloud
        size: Declared total size in bytes
        chunk_size: Bytes per chunk request
        bytes_written: Bytes accepted from the caller, never above ``size``
        offset: Bytes acknowledged by the service
        buffer: Bytes accepted but not yet acknowledged
        attempts: Attempts made for the chunk currently in flight
        chunks_sent: Chunks acknowledged so far
        state: Lifecycle state
        hash: Content digest last reported by the upload endpoint
    """
    path: str
    size: int
    chunk_size: int
    bytes_written: int = 0
    offset: int = 0
    buffer: bytearray = field(default_factory=bytearray)
    attempts: int = 0
    chunks_sent: int = 0
    state: UploadState = UploadState.OPEN
    hash: str = ""

    @property
    def remaining(self) -> int:
        return self.size - self.bytes_written


async def _iter_slices(chunk: bytes) -> AsyncIterator[bytes]:
    view = memoryview(chunk)
    for start in range(0, len(view), BODY_SLICE_SIZE):
        yield bytes(view[start:start + BODY_SLICE_SIZE])


class UploadStream:
    """
    Sequential-write sink that uploads its content in fixed-size chunks.

    Writes, flushes and close are serialized, so chunks go out in strict
    offset order even when several tasks write to the same stream.

    Args:
        pipeline: Request pipeline used for chunk and finalize calls
        path: Destination path in the cloud
        size: Declared total size in bytes
        chunk_size: Bytes per chunk request
        cloud: Endpoint settings (upload URL)
        retry: Retry policy for a single chunk
        offset: Bytes already acknowledged by the service, to resume an
            aborted upload
        conflict: Finalize conflict mode ("rename" or "rewrite")
        on_progress: Called with ``(offset, size)`` after each acknowledged chunk
        sleep: Awaitable sleep used for backoff
        expect_continue: Send chunk PUTs with ``Expect: 100-continue``
    """

    def __init__(
        self,
        pipeline: RequestPipeline,
        path: str,
        size: int,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        cloud: Optional[CloudConfig] = None,
        retry: Optional[RetryPolicy] = None,
        offset: int = 0,
        conflict: str = "rename",
        on_progress: Optional[ProgressCallback] = None,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        expect_continue: bool = False,
    ):
        if size < 0:
            raise ValueError("size must be non-negative")
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        if not 0 <= offset <= size:
            raise ValueError("offset must lie within the declared size")

        self._pipeline = pipeline
        self._cloud = cloud or CloudConfig()
        self._retry = retry or RetryPolicy()
        self._conflict = conflict
        self._on_progress = on_progress
        self._sleep = sleep
        self._expect_continue = expect_continue
        self._lock = asyncio.Lock()
        # Request task abort() cancels
        self._inflight: Optional[asyncio.Future] = None
        self._abort_requested = False

        self.session = UploadSession(
            path=path,
            size=size,
            chunk_size=chunk_size,
            bytes_written=offset,
            offset=offset,
        )

        logger.debug(
            "upload_opened",
            path=path,
            size=size,
            chunk_size=chunk_size,
            offset=offset,
        )

    @property
    def state(self) -> UploadState:
        return self.session.state

    @property
    def offset(self) -> int:
        """Bytes acknowledged by the service."""
        return self.session.offset

    @property
    def bytes_written(self) -> int:
        return self.session.bytes_written

    async def write(self, data: Union[bytes, bytearray, memoryview]) -> int:
        """
        Accept bytes, flushing every time the buffer fills a chunk.

        Returns:
            Number of bytes accepted (always ``len(data)``)

        Raises:
            UploadStateError: If the stream is no longer open, or is aborted
                while the write runs
            UploadSizeExceededError: If ``data`` would exceed the declared size;
                none of it is accepted
            UploadAbortedError: If a chunk could not be delivered
        """
        view = memoryview(data).cast("B")
        async with self._lock:
            self._ensure_open()
            session = self.session
            if len(view) > session.remaining:
                raise UploadSizeExceededError(
                    f"Write of {len(view)} bytes exceeds declared size {session.size} "
                    f"of {session.path} ({session.remaining} bytes remaining)"
                )

            pos = 0
            while pos < len(view):
                self._ensure_open()
                take = min(session.chunk_size - len(session.buffer), len(view) - pos)
                session.buffer += view[pos:pos + take]
                session.bytes_written += take
                pos += take
                if len(session.buffer) >= session.chunk_size:
                    await self._flush_chunk()
            return len(view)

    async def close(self) -> str:
        """
        Flush the final chunk, register the file and complete the session.

        Returns:
            Path under which the service stored the file

        Raises:
            UploadStateError: If the session was aborted
            UploadIncompleteError: If fewer bytes than declared were written
            UploadAbortedError: If the final chunk or registration failed
                transiently
        """
        async with self._lock:
            session = self.session
            if session.state is UploadState.COMPLETED:
                return session.path
            self._ensure_open()

            if session.buffer:
                await self._flush_chunk()

            if session.bytes_written != session.size:
                self._release(UploadState.ABORTED)
                raise UploadIncompleteError(
                    f"Upload of {session.path} closed after {session.bytes_written} "
                    f"of {session.size} bytes"
                )

            stored_path = await self._finalize()
            session.path = stored_path
            self._release(UploadState.COMPLETED)

            logger.info(
                "upload_completed",
                path=stored_path,
                size=session.size,
                chunks=session.chunks_sent,
            )
            return stored_path

    def abort(self) -> None:
        """
        Release local buffers and stop accepting writes.

        Issues no further requests and cancels the one in flight; a write or
        close waiting on it raises UploadStateError. Data the service already
        acknowledged is left in place. Calling abort on a finished stream has
        no effect.
        """
        if self.session.state is not UploadState.OPEN:
            return
        self._abort_requested = True
        self._release(UploadState.ABORTED)
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        logger.info("upload_aborted", path=self.session.path, offset=self.session.offset)

    async def __aenter__(self) -> "UploadStream":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            await self.close()
        else:
            self.abort()

    def _ensure_open(self) -> None:
        if self.session.state is not UploadState.OPEN:
            raise UploadStateError(
                f"Upload of {self.session.path} is {self.session.state.value}"
            )

    def _release(self, state: UploadState) -> None:
        self.session.state = state
        self.session.buffer = bytearray()

    async def _run_request(self, coro: Awaitable[Any]) -> Any:
        """Await ``coro`` as a task that abort() can cancel."""
        task = asyncio.ensure_future(coro)
        self._inflight = task
        try:
            return await task
        except asyncio.CancelledError:
            if self._abort_requested and task.cancelled():
                raise UploadStateError(f"Upload of {self.session.path} was aborted") from None
            raise
        finally:
            self._inflight = None

    async def _flush_chunk(self) -> None:
        session = self.session
        chunk = bytes(session.buffer)
        start = session.offset
        session.attempts = 0

        try:
            digest = await self._run_request(retry_async(
                lambda: self._send_chunk(chunk, start),
                f"upload_chunk {session.path}@{start}",
                self._retry,
                sleep=self._sleep,
            ))
        except UploadStateError:
            raise
        except TransportError as e:
            self._release(UploadState.ABORTED)
            logger.error(
                "upload_aborted",
                path=session.path,
                offset=session.offset,
                attempts=session.attempts,
            )
            raise UploadAbortedError(
                f"Upload of {session.path} aborted after {session.attempts} attempts "
                f"at offset {session.offset}: {e}",
                offset=session.offset,
            ) from e
        except MrCloudError as e:
            self._release(UploadState.ABORTED)
            logger.error(
                "upload_aborted",
                path=session.path,
                offset=session.offset,
                attempts=session.attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
        except BaseException:
            # Includes cancellation: the attempt in flight is abandoned
            self._release(UploadState.ABORTED)
            raise

        if session.state is not UploadState.OPEN:
            # Acknowledged after abort(); the session no longer tracks it
            logger.warning("chunk_orphaned", path=session.path, offset=start, length=len(chunk))
            raise UploadStateError(f"Upload of {session.path} was aborted")

        session.offset = start + len(chunk)
        session.chunks_sent += 1
        del session.buffer[:len(chunk)]
        if digest:
            session.hash = digest

        if self._on_progress is not None:
            self._on_progress(session.offset, session.size)

    async def _send_chunk(self, chunk: bytes, start: int) -> str:
        session = self.session
        session.attempts += 1
        end = start + len(chunk) - 1

        descriptor = RequestDescriptor(
            method="PUT",
            endpoint=f"{self._cloud.upload_url}{paths.quote(session.path)}",
            headers={
                "Content-Range": f"bytes {start}-{end}/{session.size}",
                "Content-Type": "application/octet-stream",
                "Content-Length": str(len(chunk)),
            },
            body_stream=lambda: _iter_slices(chunk),
            shape=ResponseShape.TEXT,
            expect_continue=self._expect_continue,
        )

        try:
            digest = await self._pipeline.execute(descriptor)
        except TransportError as e:
            log_chunk_upload(
                logger, session.path, start, len(chunk), session.attempts, False, error=str(e)
            )
            raise

        log_chunk_upload(logger, session.path, start, len(chunk), session.attempts, True)
        return digest.strip()

    async def _finalize(self) -> str:
        session = self.session
        form = {
            "home": session.path,
            "size": str(session.size),
            "conflict": self._conflict,
            "api": "2",
        }
        if session.hash:
            form["hash"] = session.hash

        descriptor = RequestDescriptor(
            method="POST",
            endpoint=FILE_ADD_ENDPOINT,
            form=form,
            shape=ResponseShape.JSON,
        )

        try:
            result = await self._run_request(self._pipeline.execute(descriptor))
        except UploadStateError:
            raise
        except TransportError as e:
            self._release(UploadState.ABORTED)
            raise UploadAbortedError(
                f"Registering {session.path} failed after all bytes were sent: {e}",
                offset=session.offset,
            ) from e
        except BaseException:
            self._release(UploadState.ABORTED)
            raise

        stored = result.get("body") if isinstance(result, dict) else None
        return stored if isinstance(stored, str) and stored else session.path
