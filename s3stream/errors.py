"""Errors raised by the object client.

Failures of the request signer and of the HTTP transport are not wrapped:
they reach the caller as the exceptions botocore and httpx raise.
"""


class S3StreamError(Exception):
    """Base class for errors raised by s3stream."""


class ApiError(S3StreamError):
    """The store answered with a non-success HTTP status.

    The message is the raw response body, verbatim.
    """

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __repr__(self):
        return f"ApiError(status_code={self.status_code}, message={self.message!r})"


class ProtocolError(S3StreamError):
    """A successful response whose content breaks the protocol contract,
    such as an initiate response without an UploadId."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
