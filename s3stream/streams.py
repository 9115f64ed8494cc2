"""Byte streams over S3 objects.

MultipartUploadStream is a write sink which turns an unbounded sequence of
writes into a multipart upload. ReadableObjectStream is a read source over
the body of a single GET response. Neither offers the operations of the
other, and neither is seekable.
"""
import asyncio
import base64
import enum
from dataclasses import dataclass, field
from hashlib import md5
from typing import AsyncIterator, Dict, Optional

import httpx
from loguru import logger

from s3stream.errors import ProtocolError
from s3stream.transport import SignedTransport, api_error
from s3stream.utils import get_complete_multipart_xml, humanize_bytes, url_encode

# Size of every part except the last one
PART_SIZE = 5 * 1024 * 1024


class UploadState(enum.Enum):
    OPEN = "open"
    FAILED = "failed"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class UploadSession:
    """State of one multipart upload, owned by a single MultipartUploadStream."""
    upload_id: str
    part_number: int = 1
    buffer: bytearray = field(default_factory=bytearray)
    completed_parts: Dict[int, str] = field(default_factory=dict)
    uploaded_bytes: int = 0
    state: UploadState = UploadState.OPEN

    def record_part(self, part_number: int, etag: str, size: int):
        if self.completed_parts and part_number <= next(reversed(self.completed_parts)):
            raise ValueError(f"Part {part_number} completed out of order")
        self.completed_parts[part_number] = etag
        self.uploaded_bytes += size
        self.part_number = part_number + 1
        self.buffer = bytearray()


def content_md5(data: bytes) -> str:
    """ Base64 encoded MD5 digest, as used in the Content-MD5 header.
    """
    return base64.b64encode(md5(data).digest()).decode('ascii')


class MultipartUploadStream:
    """ Write-only stream which uploads an object of unknown size as a 
        sequence of fixed-size parts.

        Parts are uploaded one at a time, as soon as each fills up. Nothing is
        stored until close() uploads the final partial part and completes the
        upload, so close() must be awaited and its failure handled. Use the
        stream as an async context manager to have close() called on exit.

        A failed part upload or completion leaves the upload open on the
        store. Call abort() to discard it.

        Leaving the async context because of an exception still closes the
        stream, which completes the upload with whatever was written so far.
        If a partial object is not wanted, catch the exception inside the
        context and call abort() there. If close() itself fails on such an
        exit, the original exception is only kept as its __context__. Only a
        cancelled task leaves the context without closing.
    """

    def __init__(self, transport: SignedTransport, key: str, upload_id: str,
                 part_size: int = PART_SIZE):
        if part_size <= 0:
            raise ValueError(f"part_size must be positive: {part_size}")
        self._transport = transport
        self._part_size = part_size
        self._session = UploadSession(upload_id)
        self.key = key

    @property
    def upload_id(self) -> str:
        return self._session.upload_id

    @property
    def closed(self) -> bool:
        return self._session.state is not UploadState.OPEN

    @property
    def position(self) -> int:
        """Number of bytes written so far."""
        return self._session.uploaded_bytes + len(self._session.buffer)

    @property
    def completed_parts(self) -> Dict[int, str]:
        return dict(self._session.completed_parts)


    async def write(self, data) -> int:
        """ Buffer the given bytes, uploading every part that fills up.
            Returns the number of bytes written, which is always len(data).
        """
        if self.closed:
            raise ValueError(f"I/O operation on closed upload stream ({self._session.state.value})")

        view = memoryview(data).cast('B')
        copied = 0
        while copied < len(view):
            buffer = self._session.buffer
            count = min(self._part_size - len(buffer), len(view) - copied)
            buffer += view[copied:copied + count]
            copied += count
            if len(buffer) == self._part_size:
                await self._guarded(self._upload_current_part())
        return copied


    async def close(self):
        """ Upload the last part and complete the upload. Only the first call
            does anything, whether it succeeds or not.

            A trailing empty part is never uploaded, except for an empty
            object: completing an upload needs at least one part, so nothing
            written means a single zero-length part 1.
        """
        session = self._session
        if session.state is not UploadState.OPEN:
            return
        session.state = UploadState.FAILED

        # An upload without parts cannot be completed, so an empty object
        # still gets a single empty part
        if session.buffer or not session.completed_parts:
            await self._upload_current_part()

        xml = get_complete_multipart_xml(session.completed_parts)
        response = await self._transport.send(
            "POST", self.key, f"uploadId={url_encode(session.upload_id)}",
            headers={"Content-Type": "text/xml; charset=utf-8"},
            content=xml)
        if not response.is_success:
            raise await api_error(response)

        session.state = UploadState.COMPLETED
        logger.info(f"Completed upload of {self.key}: {humanize_bytes(self.position)} "
                    f"in {len(session.completed_parts)} parts")


    async def abort(self):
        """ Abort the multipart upload, discarding any uploaded parts.
            Does nothing if the upload was already completed or aborted.
        """
        session = self._session
        if session.state in (UploadState.COMPLETED, UploadState.ABORTED):
            return
        session.state = UploadState.FAILED

        response = await self._transport.send(
            "DELETE", self.key, f"uploadId={url_encode(session.upload_id)}")
        if not response.is_success:
            raise await api_error(response)

        session.state = UploadState.ABORTED
        logger.warning(f"Aborted upload of {self.key} after {len(session.completed_parts)} parts")


    async def _guarded(self, coro):
        try:
            return await coro
        except BaseException:
            self._session.state = UploadState.FAILED
            raise


    async def _upload_current_part(self):
        session = self._session
        part_number = session.part_number
        body = bytes(session.buffer)

        response = await self._transport.send(
            "PUT", self.key,
            f"partNumber={part_number}&uploadId={url_encode(session.upload_id)}",
            headers={"Content-MD5": content_md5(body)},
            content=body)
        if not response.is_success:
            raise await api_error(response)

        etag = response.headers.get("etag")
        if not etag:
            raise ProtocolError("Multipart upload response contains no ETag header.",
                                response.status_code)

        session.record_part(part_number, etag, len(body))
        logger.debug(f"Uploaded part {part_number} of {self.key} ({humanize_bytes(len(body))})")


    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        # A cancelled task must not complete the upload behind the caller's back
        if exc_type is not None and issubclass(exc_type, asyncio.CancelledError):
            return False
        await self.close()
        return False


class ReadableObjectStream:
    """ Read-only stream over the body of one GET response.

        The body is pulled from the connection as it is read. The response,
        and with it the pooled connection, stays open until close().
    """

    def __init__(self, request: httpx.Request, response: httpx.Response):
        self._request = request
        self._response = response
        self._chunks = response.aiter_raw()
        self._pending = bytearray()
        self._position = 0
        self._exhausted = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def position(self) -> int:
        return self._position

    @property
    def content_length(self) -> Optional[int]:
        value = self._response.headers.get("content-length")
        return int(value) if value else None

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def headers(self) -> httpx.Headers:
        return self._response.headers


    async def _next_chunk(self) -> Optional[bytes]:
        if self._exhausted:
            return None
        try:
            return await self._chunks.__anext__()
        except StopAsyncIteration:
            self._exhausted = True
            return None


    async def read(self, size: int = -1) -> bytes:
        """ Read up to size bytes, or everything that is left if size is
            negative. Returns b'' at the end of the body.
        """
        if self._closed:
            raise ValueError("I/O operation on closed stream")

        if size is None or size < 0:
            chunk = await self._next_chunk()
            while chunk is not None:
                self._pending += chunk
                chunk = await self._next_chunk()
            size = len(self._pending)
        else:
            while len(self._pending) < size:
                chunk = await self._next_chunk()
                if chunk is None:
                    break
                self._pending += chunk

        data = bytes(self._pending[:size])
        del self._pending[:size]
        self._position += len(data)
        return data


    async def __aiter__(self) -> AsyncIterator[bytes]:
        if self._closed:
            raise ValueError("I/O operation on closed stream")
        if self._pending:
            data = bytes(self._pending)
            self._pending.clear()
            self._position += len(data)
            yield data
        chunk = await self._next_chunk()
        while chunk is not None:
            self._position += len(chunk)
            yield chunk
            chunk = await self._next_chunk()


    async def close(self):
        """ Close the body and the response, releasing the connection back
            to the pool.
        """
        if self._closed:
            return
        self._closed = True
        try:
            await self._chunks.aclose()
        finally:
            await self._response.aclose()
        logger.debug(f"Closed read stream for {self._request.url} at {self._position} bytes")


    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False
