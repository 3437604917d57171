"""Errors reported by the upload client.

Every failure an upload can hit is one of the classes below. The client never
raises them to the caller; they arrive inside an ``UploadResult`` so each kind
can be told apart by ``kind`` rather than by the payload shape.
"""

from __future__ import annotations

from typing import Optional

import requests


class UploadError(Exception):
    """Base class for upload failures.

    Attributes:
        message -- explanation of the error
        kind -- short tag naming the failure kind
    """
    kind = "upload_error"

    def __init__(self, message="Upload encountered an error"):
        self.message = message
        super().__init__(self.message)


class LocalFileNotFoundError(UploadError):
    """The local file to upload does not exist or is not a regular file."""
    kind = "file_not_found"

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"FILE NOT FOUND: {path}")


class HttpFailureError(UploadError):
    """The server answered with a non-2xx status. The full response is kept."""
    kind = "http_failure"

    def __init__(self, response: requests.Response):
        self.response = response
        self.status_code = response.status_code
        super().__init__(f"Upload failed with HTTP {response.status_code} {response.reason or ''}".rstrip())


class TransportError(UploadError):
    """Network or IO failure while talking to the server."""
    kind = "transport_error"

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class TypeConversionError(UploadError):
    """A form field value could not be turned into text."""
    kind = "type_conversion"

    def __init__(self, key: Optional[str], value):
        self.key = key
        self.value = value
        where = f" for field '{key}'" if key else ""
        super().__init__(f"Cannot encode value of type {type(value).__name__}{where}")
