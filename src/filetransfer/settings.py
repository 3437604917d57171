"""Upload settings with environment variable fallbacks."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from filetransfer.lib.multipart_upload import DEFAULT_CHUNK_SIZE
from filetransfer.lib.progress import DEFAULT_PROGRESS_INTERVAL, UNKNOWN_LENGTH_PROGRESS


@dataclass(frozen=True)
class UploadSettings:
    """Knobs for the upload client.

    timeout of None leaves the transport default in place (no timeout).
    """
    timeout: Optional[float] = None
    chunk_size: int = DEFAULT_CHUNK_SIZE
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL
    unknown_length_progress: float = UNKNOWN_LENGTH_PROGRESS
    max_workers: Optional[int] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> 'UploadSettings':
        """ Build settings from UPLOAD_* environment variables.

        Args:
            environ (Mapping[str, str], optional): defaults to os.environ

        Raises:
            ValueError: if a variable is set but can't be parsed

        Returns:
            UploadSettings: settings with defaults for anything unset
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            timeout=_read(env, "UPLOAD_TIMEOUT", float, defaults.timeout),
            chunk_size=_read(env, "UPLOAD_CHUNK_SIZE", int, defaults.chunk_size),
            progress_interval=_read(env, "UPLOAD_PROGRESS_INTERVAL", int, defaults.progress_interval),
            max_workers=_read(env, "UPLOAD_MAX_WORKERS", int, defaults.max_workers),
        )


def _read(env: Mapping[str, str], name: str, cast: Callable, default):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value
