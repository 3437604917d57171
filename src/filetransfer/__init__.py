"""Streaming multipart file uploads with throttled progress reporting."""

from .exceptions import (
    HttpFailureError,
    LocalFileNotFoundError,
    TransportError,
    TypeConversionError,
    UploadError,
)
from .lib.field_encoder import FieldType, TypedValue, encode_field
from .lib.multipart_upload import MultipartBody, MultipartPart, build_parts
from .lib.progress import ProgressCountingStream, ProgressEvent, ProgressThrottle
from .settings import UploadSettings
from .UploadClient import UploadClient, UploadRequest, UploadResult, build_headers
from .FileTransferModule import FileTransferModule, UPLOAD_PROGRESS_EVENT

__all__ = [
    "FieldType",
    "FileTransferModule",
    "HttpFailureError",
    "LocalFileNotFoundError",
    "MultipartBody",
    "MultipartPart",
    "ProgressCountingStream",
    "ProgressEvent",
    "ProgressThrottle",
    "TransportError",
    "TypeConversionError",
    "TypedValue",
    "UPLOAD_PROGRESS_EVENT",
    "UploadClient",
    "UploadError",
    "UploadRequest",
    "UploadResult",
    "UploadSettings",
    "build_headers",
    "build_parts",
    "encode_field",
]
