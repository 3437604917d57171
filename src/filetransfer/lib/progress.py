"""Byte counting around a streamed body, with throttled progress events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

from rsxml import Logger


DEFAULT_PROGRESS_INTERVAL = 50
# Reported for every write when the body length is unknown. Placeholder
# "almost done" value kept for compatibility with existing consumers.
UNKNOWN_LENGTH_PROGRESS = 0.9


@dataclass(frozen=True)
class ProgressEvent:
    """A single progress notification."""
    bytes_written: int
    total_bytes: int
    progress: float

    def as_payload(self) -> dict:
        return {"progress": self.progress}


class ProgressThrottle:
    """Decides which write callbacks turn into progress events.

    ``counter`` cycles through ``[0, interval)``, one step per callback. With a
    known length an event fires whenever the counter is 0 (callbacks 0, 50,
    100, ...). With an unknown length every callback fires the fixed
    ``unknown_length_progress`` value.

    One throttle belongs to one upload; it is not safe to share.
    """

    def __init__(self, interval: int = DEFAULT_PROGRESS_INTERVAL, unknown_length_progress: float = UNKNOWN_LENGTH_PROGRESS):
        if interval < 1:
            raise ValueError(f"Progress interval must be at least 1, got {interval}")
        self.interval = interval
        self.unknown_length_progress = unknown_length_progress
        self.counter = 0

    def __call__(self, bytes_written: int, total_bytes: int) -> Optional[ProgressEvent]:
        event = None
        if total_bytes <= 0:
            event = ProgressEvent(bytes_written, total_bytes, self.unknown_length_progress)
        elif self.counter == 0:
            fraction = min(max(bytes_written / total_bytes, 0.0), 1.0)
            event = ProgressEvent(bytes_written, total_bytes, fraction)
        self.counter = (self.counter + 1) % self.interval
        return event


class ProgressCountingStream:
    """Wraps an iterable body and counts the bytes the transport has consumed.

    A chunk counts as written once the consumer asks for the next one, so the
    final callback fires only after the whole body has been sent.
    """

    def __init__(
        self,
        body: Iterable[bytes],
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
        throttle: Optional[ProgressThrottle] = None,
        total_bytes: Optional[int] = None,
    ) -> None:
        self._body = body
        self._on_progress = on_progress
        self._throttle = throttle or ProgressThrottle()
        if total_bytes is None:
            total_bytes = getattr(body, "length", -1)
        self.total_bytes = total_bytes
        self.bytes_written = 0
        self.log = Logger("Upload Progress")

    def __len__(self) -> int:
        # 0 makes requests fall back to chunked transfer encoding
        return max(self.total_bytes, 0)

    def __bool__(self) -> bool:
        # requests replaces falsy bodies with an empty form
        return True

    def __iter__(self) -> Iterator[bytes]:
        self.bytes_written = 0
        for chunk in self._body:
            yield chunk
            self.bytes_written += len(chunk)
            self._on_write()

    def _on_write(self) -> None:
        event = self._throttle(self.bytes_written, self.total_bytes)
        if event is None:
            return
        if self.total_bytes > 0:
            self.log.debug(f"{self.bytes_written}/{self.total_bytes}")
        if self._on_progress is not None:
            self._on_progress(event)
