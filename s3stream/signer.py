import httpx
from botocore.auth import S3SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials
from typing_extensions import override

S3_SERVICE_NAME = "s3"

# Headers the transport may rewrite or drop in transit, so they are sent unsigned
UNSIGNED_HEADERS = frozenset({"user-agent", "accept", "accept-encoding", "connection"})


class RequestSigner:
    """ Interface for a signer that adds authentication to an outgoing request.

        Signers are treated as pure functions: the given request is not
        modified, and a new request carrying the same method, URL and body 
        plus the authorization headers is returned.
    """

    def sign(self, request: httpx.Request, service: str, region: str) -> httpx.Request:
        """
        Sign the request for the given service name and region.
        https://docs.aws.amazon.com/AmazonS3/latest/API/sig-v4-authenticating-requests.html
        """
        raise NotImplementedError


class BotocoreSigner(RequestSigner):
    """ AWS Signature Version 4 signer backed by botocore.
    """

    def __init__(self, access_key: str, secret_key: str, session_token: str = None):
        self.credentials = Credentials(access_key, secret_key, session_token)


    @override
    def sign(self, request: httpx.Request, service: str, region: str) -> httpx.Request:
        body = request.content
        headers_to_sign = {k: v for k, v in request.headers.items() 
                           if k.lower() not in UNSIGNED_HEADERS}

        aws_request = AWSRequest(
            method=request.method,
            url=str(request.url),
            headers=headers_to_sign,
            data=body,
        )
        S3SigV4Auth(self.credentials, service, region).add_auth(aws_request)

        headers = httpx.Headers(request.headers)
        for name, value in aws_request.headers.items():
            headers[name] = value

        return httpx.Request(request.method, request.url, headers=headers, content=body)
