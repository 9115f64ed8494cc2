from typing import Iterable, Optional
from xml.etree.ElementTree import ParseError

import httpx
from loguru import logger

from s3stream.errors import ProtocolError
from s3stream.mapping import ObjectMetadata, StorageClass, metadata_from_headers, storage_class_to_wire
from s3stream.signer import BotocoreSigner, RequestSigner
from s3stream.streams import PART_SIZE, MultipartUploadStream, ReadableObjectStream
from s3stream.transport import SignedTransport, api_error
from s3stream.utils import dir_path, find_child_text, parse_xml


class ObjectClient:
    """ Client for single objects in an S3-compatible store.

        Objects are written and read as streams, so their size does not need
        to be known in advance and they are never held in memory whole.
        The endpoint is the base URL that keys are resolved against, e.g. 
        "http://localhost:9000/my-bucket/" for path-style addressing.

        All requests share one connection pool, which is released by aclose()
        or by leaving the client's async context.
    """

    def __init__(self, endpoint: str, region: str, access_key: str = '', secret_key: str = '', *,
                 session_token: str = None,
                 signer: RequestSigner = None,
                 transport: httpx.AsyncBaseTransport = None,
                 timeout: float = 60.0,
                 max_pool_connections: int = 30,
                 part_size: int = PART_SIZE):

        self.endpoint = dir_path(str(endpoint))
        self.region = region
        self.part_size = part_size

        if signer is None:
            signer = BotocoreSigner(access_key, secret_key, session_token)

        self.http = httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(timeout),
            limits=httpx.Limits(
                max_keepalive_connections=max_pool_connections,
                max_connections=max_pool_connections,
            ),
        )
        self.transport = SignedTransport(self.http, signer, self.endpoint, region)


    @classmethod
    def from_settings(cls, settings, **kwargs):
        """ Create a client from Settings. Keyword arguments are passed on
            to the constructor.
        """
        if not settings.endpoint:
            raise ValueError("No endpoint configured")
        access_key, secret_key = settings.get_credentials()
        return cls(str(settings.endpoint), settings.region, access_key, secret_key,
                   session_token=settings.session_token,
                   timeout=settings.timeout,
                   max_pool_connections=settings.max_pool_connections,
                   **kwargs)


    async def aclose(self):
        """Close the connection pool."""
        await self.http.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


    async def open_for_writing(self, key: str, content_type: str,
                               content_encodings: Optional[Iterable[str]] = None,
                               storage_class: StorageClass = StorageClass.STANDARD) -> MultipartUploadStream:
        """
        Start a multipart upload and return a stream to write the object to.
        https://docs.aws.amazon.com/AmazonS3/latest/API/API_CreateMultipartUpload.html
        """
        headers = {
            "Content-Type": content_type,
            "x-amz-storage-class": storage_class_to_wire(storage_class),
        }
        encodings = list(content_encodings or [])
        if encodings:
            headers["Content-Encoding"] = ", ".join(encodings)

        response = await self.transport.send("POST", key, "uploads", headers=headers, content=b"")
        if not response.is_success:
            raise await api_error(response)

        try:
            root = parse_xml(response.content)
        except ParseError as e:
            raise ProtocolError(f"Failed to parse upload response XML: {e}", response.status_code) from e

        upload_id = find_child_text(root, "UploadId")
        if not upload_id:
            raise ProtocolError("Failed to find UploadId in response XML.", response.status_code)

        logger.debug(f"Initiated upload {upload_id} for {key}")
        return MultipartUploadStream(self.transport, key, upload_id, part_size=self.part_size)


    async def open_for_reading(self, key: str) -> ReadableObjectStream:
        """
        Open an object for reading. Only the response headers have been read 
        when this returns. The returned stream must be closed.
        https://docs.aws.amazon.com/AmazonS3/latest/API/API_GetObject.html
        """
        response = await self.transport.send("GET", key, stream=True)
        if not response.is_success:
            try:
                raise await api_error(response)
            finally:
                await response.aclose()

        logger.debug(f"Opened {key} for reading, content-length={response.headers.get('content-length')}")
        return ReadableObjectStream(response.request, response)


    async def get_metadata(self, key: str) -> Optional[ObjectMetadata]:
        """
        Fetch the metadata of an object, or None if it does not exist.
        https://docs.aws.amazon.com/AmazonS3/latest/API/API_HeadObject.html
        """
        response = await self.transport.send("HEAD", key)
        if response.is_success:
            return metadata_from_headers(response.headers)
        if response.status_code == 404:
            return None
        raise await api_error(response)


    async def delete(self, key: str) -> bool:
        """
        Delete an object. Returns True only if the store answered 204 No Content.
        https://docs.aws.amazon.com/AmazonS3/latest/API/API_DeleteObject.html
        """
        response = await self.transport.send("DELETE", key)
        if response.status_code != 204:
            logger.debug(f"Delete of {key} returned {response.status_code}")
        return response.status_code == 204
