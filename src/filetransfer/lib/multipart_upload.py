"""Streaming multipart/form-data bodies for large files."""

from __future__ import annotations

import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping, Optional, Tuple

from rsxml import Logger

from filetransfer.lib.field_encoder import encode_field


CRLF = "\r\n"
DEFAULT_CHUNK_SIZE = 8192
UNKNOWN_LENGTH = -1


def quote_header_value(value: str) -> str:
    """Quote a Content-Disposition parameter, escaping quotes and line breaks."""
    escaped = value.replace("\n", "%0A").replace("\r", "%0D").replace('"', "%22")
    return f'"{escaped}"'


@dataclass
class MultipartPart:
    """One named part of a multipart body.

    Either ``data`` or ``path`` carries the content. ``length`` of None marks a
    part whose size is not known up front; the body length is then -1.
    """
    headers: List[Tuple[str, str]] = field(default_factory=list)
    data: Optional[bytes] = None
    path: Optional[str] = None
    length: Optional[int] = None

    @classmethod
    def form_field(cls, name: str, value: Any) -> 'MultipartPart':
        """Plain text field with no content type."""
        payload = encode_field(value, name).encode("utf-8")
        disposition = f"form-data; name={quote_header_value(name)}"
        return cls(headers=[("Content-Disposition", disposition)], data=payload, length=len(payload))

    @classmethod
    def form_file(cls, name: str, file_name: str, path: str, content_type: str) -> 'MultipartPart':
        """File part streamed from ``path``."""
        disposition = f"form-data; name={quote_header_value(name)}; filename={quote_header_value(file_name)}"
        headers = [("Content-Disposition", disposition)]
        if content_type:
            headers.append(("Content-Type", content_type))
        return cls(headers=headers, path=path, length=os.path.getsize(path))

    def iter_content(self, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[bytes]:
        if self.data is not None:
            if self.data:
                yield self.data
            return
        if self.path is not None:
            with open(self.path, "rb") as stream:
                while True:
                    chunk = stream.read(chunk_size)
                    if not chunk:
                        break
                    yield chunk


class MultipartBody:
    """Iterates over a multipart/form-data payload without buffering file content.

    The boundary is a fresh random token for every body unless one is given.
    """

    def __init__(
        self,
        parts: List[MultipartPart],
        boundary: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.parts = list(parts)
        self.boundary = boundary or uuid.uuid4().hex
        self._chunk_size = chunk_size
        self._part_headers = [self._encode_part_header(part) for part in self.parts]
        self._closing = f"--{self.boundary}--{CRLF}".encode("utf-8")

    @property
    def content_type(self) -> str:
        return f"multipart/form-data; boundary={self.boundary}"

    @property
    def length(self) -> int:
        """Exact body size in bytes, or -1 when a part has no known length."""
        total = len(self._closing)
        for part, header in zip(self.parts, self._part_headers):
            if part.length is None:
                return UNKNOWN_LENGTH
            total += len(header) + part.length + len(CRLF)
        return total

    def __iter__(self) -> Iterator[bytes]:
        crlf = CRLF.encode("utf-8")
        for part, header in zip(self.parts, self._part_headers):
            if part.data is not None:
                # Inline fields are small, send each as a single chunk
                yield header + part.data + crlf
                continue
            yield header
            yield from part.iter_content(self._chunk_size)
            yield crlf
        yield self._closing

    def _encode_part_header(self, part: MultipartPart) -> bytes:
        lines = [f"--{self.boundary}"]
        lines.extend(f"{key}: {value}" for key, value in part.headers)
        return (CRLF.join(lines) + CRLF + CRLF).encode("utf-8")


def build_parts(
    file_field: str,
    file_path: str,
    file_name: str,
    mime_type: str,
    fields: Mapping[str, Any],
) -> List[MultipartPart]:
    """Lay out the parts of an upload body.

    Order is fixed: the file, then a plain ``filename`` field repeating the file
    name (servers in the wild read it), then ``fields`` in mapping order.

    Args:
        file_field (str): form name of the file part
        file_path (str): local path of the file to stream
        file_name (str): file name reported to the server
        mime_type (str): content type of the file part
        fields (Mapping[str, Any]): extra form values, encoded with encode_field

    Returns:
        List[MultipartPart]: parts in wire order
    """
    log = Logger("Multipart")
    parts = [
        MultipartPart.form_file(file_field, file_name, file_path, mime_type),
        MultipartPart.form_field("filename", file_name),
    ]
    for key, value in (fields or {}).items():
        part = MultipartPart.form_field(key, value)
        log.debug(f"key={key}, type={type(value).__name__}, value={part.data.decode('utf-8')}")
        parts.append(part)
    return parts
