"""Multipart file upload client with throttled progress reporting."""

from __future__ import annotations

import copy
import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Iterable, Mapping, Optional, Tuple, Union

import requests
from requests.structures import CaseInsensitiveDict
from rsxml import Logger

from filetransfer.exceptions import HttpFailureError, LocalFileNotFoundError, TransportError, UploadError
from filetransfer.lib.field_encoder import TypedValue
from filetransfer.lib.file_utils import describe_size, validate_local_file
from filetransfer.lib.multipart_upload import MultipartBody, build_parts
from filetransfer.lib.progress import ProgressCountingStream, ProgressEvent, ProgressThrottle
from filetransfer.settings import UploadSettings

# Disable all the weird terminal noise from urllib3
logging.getLogger("urllib3").setLevel(logging.WARNING)
logging.getLogger("urllib3").propagate = False

DEFAULT_MIME_TYPE = "application/octet-stream"

HeaderInput = Union[Mapping[str, Any], Iterable[Tuple[str, str]], None]
ProgressCallback = Callable[[ProgressEvent], None]


def _header_pairs(headers: HeaderInput) -> list:
    if not headers:
        return []
    items = headers.items() if isinstance(headers, Mapping) else headers
    pairs = []
    for key, value in items:
        # A list value in a mapping means the header repeats
        values = value if isinstance(value, (list, tuple)) else [value]
        pairs.extend((str(key), str(val)) for val in values)
    return pairs


def build_headers(headers: HeaderInput) -> CaseInsensitiveDict:
    """ Merge caller headers into a request header map.

    Repeated names accumulate rather than overwrite: the values are joined with
    ``", "`` as for any multi-valued HTTP header.

    Args:
        headers (HeaderInput): a mapping (list values repeat the header) or ``(name, value)`` pairs

    Returns:
        CaseInsensitiveDict: headers ready for requests
    """
    merged = CaseInsensitiveDict()
    for key, value in _header_pairs(headers):
        if key in merged:
            merged[key] = f"{merged[key]}, {value}"
        else:
            merged[key] = value
    return merged


@dataclass(frozen=True, eq=False)
class UploadRequest:
    """Everything needed for one upload. Immutable once built.

    Compared and hashed by identity: each request stands for one upload call.
    """
    file_field_name: str
    file_path: str
    destination_url: str
    mime_type: str = DEFAULT_MIME_TYPE
    file_name: Optional[str] = None
    headers: Tuple[Tuple[str, str], ...] = ()
    fields: Mapping[str, TypedValue] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "headers", tuple(_header_pairs(self.headers)))
        owned = copy.deepcopy(dict(self.fields or {}))
        object.__setattr__(self, "fields", MappingProxyType({key: TypedValue.of(value) for key, value in owned.items()}))
        if not self.file_name:
            object.__setattr__(self, "file_name", os.path.basename(self.file_path or ""))
        if not self.mime_type:
            object.__setattr__(self, "mime_type", DEFAULT_MIME_TYPE)


@dataclass(frozen=True)
class UploadResult:
    """Terminal outcome of an upload: the response text or an UploadError."""
    body: Optional[str] = None
    error: Optional[UploadError] = None

    @classmethod
    def success(cls, body: str) -> 'UploadResult':
        return cls(body=body)

    @classmethod
    def failure(cls, error: UploadError) -> 'UploadResult':
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def as_callback_args(self) -> Tuple[Any, Optional[str]]:
        """The ``(error, body)`` pair of a node style completion callback.

        The error is the raw ``requests.Response`` for HTTP failures, the string
        ``"FILE NOT FOUND"`` for a missing file and the error text otherwise.
        """
        if self.ok:
            return None, self.body
        if isinstance(self.error, HttpFailureError):
            return self.error.response, None
        if isinstance(self.error, LocalFileNotFoundError):
            return "FILE NOT FOUND", None
        return self.error.message, None


class UploadClient:
    """Uploads files as multipart/form-data POSTs.

    Each ``upload`` call runs on its own worker from a thread pool and keeps all of
    its state (boundary, byte count, progress counter) to itself, so any number of
    uploads can run at once. Use as a context manager to shut the pool down.
    """

    def __init__(self, settings: UploadSettings = None):
        self.log = Logger('Upload Client')
        self.settings = settings or UploadSettings()
        self._executor = None

    def __enter__(self) -> 'UploadClient':
        return self

    def __exit__(self, _type, _value, _traceback):
        self.shutdown()

    def shutdown(self, wait: bool = True):
        """Stop accepting uploads. With ``wait`` blocks until running ones finish."""
        if self._executor:
            self._executor.shutdown(wait=wait)
            self._executor = None

    def upload(
        self,
        request: UploadRequest,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[Callable[[UploadResult], None]] = None,
    ) -> Future:
        """ Start an upload in the background.

        Args:
            request (UploadRequest): what to upload and where
            on_progress (ProgressCallback, optional): called on the worker thread with throttled ProgressEvents
            on_complete (Callable[[UploadResult], None], optional): called exactly once, after the last progress event

        Returns:
            Future: resolves to the UploadResult
        """
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=self.settings.max_workers, thread_name_prefix='upload')
        return self._executor.submit(self._run, request, on_progress, on_complete)

    def _run(self, request: UploadRequest, on_progress, on_complete) -> UploadResult:
        result = self.upload_sync(request, on_progress)
        if on_complete is not None:
            on_complete(result)
        return result

    def upload_sync(self, request: UploadRequest, on_progress: Optional[ProgressCallback] = None) -> UploadResult:
        """ Run an upload on the calling thread.

        Never raises for upload failures; they come back as ``UploadResult.error``.

        Args:
            request (UploadRequest): what to upload and where
            on_progress (ProgressCallback, optional): receives throttled ProgressEvents

        Returns:
            UploadResult: the response body or the failure
        """
        url = request.destination_url
        try:
            response = self._post(request, on_progress)
        except UploadError as exc:
            self.log.error(exc.message)
            return UploadResult.failure(exc)
        except requests.Timeout as exc:
            self.log.error(f"Request timed out after {self.settings.timeout} seconds: {url}")
            return UploadResult.failure(TransportError(f"Request timed out after {self.settings.timeout} seconds: {exc}", exc))
        except (requests.RequestException, OSError) as exc:
            self.log.error(f"Error occurred while uploading {request.file_path}: {exc}")
            return UploadResult.failure(TransportError(str(exc), exc))
        except Exception as exc:  # pylint: disable=broad-except
            # Anything else (e.g. a failing progress callback) still has to end the upload cleanly
            self.log.error(f"Unexpected error while uploading {request.file_path}: {exc!r}")
            return UploadResult.failure(TransportError(repr(exc), exc))

        if not 200 <= response.status_code < 300:
            error = HttpFailureError(response)
            self.log.error(error.message)
            return UploadResult.failure(error)

        self.log.info(f"Upload complete: {request.file_name} (HTTP {response.status_code})")
        return UploadResult.success(response.text)

    def _post(self, request: UploadRequest, on_progress: Optional[ProgressCallback]) -> requests.Response:
        file_path = validate_local_file(request.file_path)

        headers = build_headers(request.headers)
        parts = build_parts(
            request.file_field_name,
            file_path,
            request.file_name,
            request.mime_type,
            request.fields,
        )
        body = MultipartBody(parts, chunk_size=self.settings.chunk_size)
        # The boundary lives in the content type so the caller can't override it
        headers["Content-Type"] = body.content_type

        throttle = ProgressThrottle(self.settings.progress_interval, self.settings.unknown_length_progress)
        stream = ProgressCountingStream(body, on_progress, throttle)

        self.log.info(f"Uploading {file_path} ({describe_size(body.length)}) -> {request.destination_url.split('?')[0]}")
        return requests.post(request.destination_url, data=stream, headers=headers, timeout=self.settings.timeout)
