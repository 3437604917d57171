"""Unit tests for byte counting and progress throttling."""

import pytest

from filetransfer.lib.progress import ProgressCountingStream, ProgressEvent, ProgressThrottle


def test_known_length_emits_every_fiftieth_callback():
    throttle = ProgressThrottle()
    emitted = []
    for call in range(120):
        event = throttle(call + 1, 1000)
        if event is not None:
            emitted.append(call)
    assert emitted == [0, 50, 100]


def test_counter_wraps_inside_interval():
    throttle = ProgressThrottle(interval=50)
    seen = set()
    for _ in range(175):
        throttle(1, 10)
        seen.add(throttle.counter)
    assert seen == set(range(50))


def test_known_length_fraction_is_clamped():
    throttle = ProgressThrottle(interval=1)
    assert throttle(25, 100).progress == 0.25
    assert throttle(100, 100).progress == 1.0
    assert throttle(150, 100).progress == 1.0


def test_unknown_length_always_reports_point_nine():
    """surprising but kept on purpose: no length means a fixed 0.9 on every write"""
    throttle = ProgressThrottle()
    events = [throttle(written, -1) for written in range(1, 80)]
    assert all(event is not None for event in events)
    assert {event.progress for event in events} == {0.9}

    assert ProgressThrottle()(10, 0).progress == 0.9


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        ProgressThrottle(interval=0)


def test_event_payload():
    assert ProgressEvent(5, 10, 0.5).as_payload() == {"progress": 0.5}


def test_stream_passes_chunks_through_and_counts():
    chunks = [b"abc", b"de", b"fghij"]
    events = []
    stream = ProgressCountingStream(chunks, events.append, ProgressThrottle(interval=1), total_bytes=10)

    assert b"".join(stream) == b"abcdefghij"
    assert stream.bytes_written == 10
    assert [event.bytes_written for event in events] == [3, 5, 10]
    assert [event.progress for event in events] == [0.3, 0.5, 1.0]


def test_chunk_counts_once_consumer_moves_on():
    stream = ProgressCountingStream([b"abc", b"de"], None, total_bytes=5)
    iterator = iter(stream)
    next(iterator)
    assert stream.bytes_written == 0
    next(iterator)
    assert stream.bytes_written == 3


def test_stream_events_are_monotonic():
    chunks = [b"x" * size for size in (7, 1, 30, 2, 9, 4, 11)]
    events = []
    stream = ProgressCountingStream(chunks, events.append, ProgressThrottle(interval=2), total_bytes=64)
    list(stream)
    written = [event.bytes_written for event in events]
    assert written == sorted(written)
    assert [event.progress for event in events] == sorted(event.progress for event in events)


def test_stream_length_from_body():
    class Body(list):
        length = 42

    stream = ProgressCountingStream(Body([b"x"]))
    assert stream.total_bytes == 42
    assert len(stream) == 42


def test_unknown_length_stream_is_still_truthy():
    stream = ProgressCountingStream([b"x"], total_bytes=-1)
    assert len(stream) == 0
    assert bool(stream) is True
