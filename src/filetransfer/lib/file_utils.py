"""Local file helpers for uploads."""

from __future__ import annotations

import os
from urllib.parse import unquote, urlparse

from pint import UnitRegistry

from filetransfer.exceptions import LocalFileNotFoundError

_UNITS = UnitRegistry()


def validate_local_file(file_path: str) -> str:
    """ Make sure a file exists and is a regular file before anything goes on the wire.

    Args:
        file_path (str): Local path to the file.

    Raises:
        LocalFileNotFoundError: If the path is missing or is not a regular file.

    Returns:
        str: The absolute path to the file.
    """
    if not file_path or not os.path.isfile(file_path):
        raise LocalFileNotFoundError(file_path)
    return os.path.abspath(file_path)


def describe_size(num_bytes: int) -> str:
    """Human readable byte count, e.g. ``1.02 kB``. Negative means unknown."""
    if num_bytes < 0:
        return "unknown size"
    size_units = num_bytes * _UNITS.byte
    compact_size = size_units.to_compact()
    return f"{compact_size:.2f~#P}"


def resolve_uri(uri: str) -> str:
    """ Turn a host supplied URI into a local path.

    Only ``file://`` URIs and bare paths point at local files. Any other scheme
    gives back the path component, which will then fail the existence check.

    Args:
        uri (str): e.g. ``file:///data/photo.jpg`` or ``/data/photo.jpg``

    Returns:
        str: the local path
    """
    if not uri:
        return ""
    parsed = urlparse(uri)
    # Windows drive letters parse as a one letter scheme
    if not parsed.scheme or len(parsed.scheme) == 1:
        return uri
    return unquote(parsed.path)
