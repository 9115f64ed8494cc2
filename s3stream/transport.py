"""Signed HTTP plumbing shared by the client and its streams."""
import httpx
from loguru import logger

from s3stream.errors import ApiError
from s3stream.signer import RequestSigner, S3_SERVICE_NAME
from s3stream.utils import object_url


class SignedTransport:
    """ Issues signed requests for object keys under one endpoint.

        The underlying httpx.AsyncClient is the connection pool. It is shared 
        by every request and every open stream, and is owned by whoever
        created it, not by this class.
    """

    def __init__(self, http: httpx.AsyncClient, signer: RequestSigner, endpoint: str, region: str):
        self.http = http
        self.signer = signer
        self.endpoint = endpoint
        self.region = region


    def build_request(self, method: str, key: str, query: str = None,
                      headers: dict = None, content: bytes = None) -> httpx.Request:
        url = object_url(self.endpoint, key)
        if query:
            url = f"{url}?{query}"
        request = self.http.build_request(method, url, headers=headers, content=content)
        return self.signer.sign(request, S3_SERVICE_NAME, self.region)


    async def send(self, method: str, key: str, query: str = None,
                   headers: dict = None, content: bytes = None,
                   stream: bool = False) -> httpx.Response:
        """ Sign and send a request. With stream=True only the headers have
            been received when this returns, and the caller must close the
            response.
        """
        request = self.build_request(method, key, query, headers, content)
        logger.trace(f"{method} {request.url}")
        response = await self.http.send(request, stream=stream)
        logger.trace(f"{method} {request.url} -> {response.status_code}")
        return response


async def api_error(response: httpx.Response) -> ApiError:
    """ Build an ApiError from a non-success response, reading the body 
        first if it was streamed.
    """
    await response.aread()
    return ApiError(response.text, response.status_code)
