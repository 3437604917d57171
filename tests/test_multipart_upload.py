"""Unit tests for multipart body assembly and streaming."""

import pytest

from conftest import split_multipart
from filetransfer.exceptions import TypeConversionError
from filetransfer.lib.multipart_upload import (
    MultipartBody,
    MultipartPart,
    build_parts,
    quote_header_value,
)


@pytest.fixture
def sample_file(write_file):
    return write_file("photo.jpg", 10, b"0123456789")


def test_part_order(sample_file):
    """file part, then the redundant filename field, then fields in map order"""
    parts = build_parts("photo", str(sample_file), "holiday.jpg", "image/jpeg", {"caption": "hello", "rating": 5, "album": None})
    assert [part.headers[0][1] for part in parts] == [
        'form-data; name="photo"; filename="holiday.jpg"',
        'form-data; name="filename"',
        'form-data; name="caption"',
        'form-data; name="rating"',
        'form-data; name="album"',
    ]


def test_file_part_headers(sample_file):
    parts = build_parts("photo", str(sample_file), "holiday.jpg", "image/jpeg", {})
    file_part, name_part = parts
    assert file_part.headers == [
        ("Content-Disposition", 'form-data; name="photo"; filename="holiday.jpg"'),
        ("Content-Type", "image/jpeg"),
    ]
    assert file_part.length == 10
    assert file_part.path == str(sample_file)

    # no content type on the plain filename field
    assert name_part.headers == [("Content-Disposition", 'form-data; name="filename"')]
    assert name_part.data == b"holiday.jpg"


def test_body_wire_format(sample_file):
    parts = build_parts("photo", str(sample_file), "holiday.jpg", "image/jpeg", {"caption": "hello", "count": 3})
    body = MultipartBody(parts, boundary="XyZ")
    raw = b"".join(body)

    assert body.content_type == "multipart/form-data; boundary=XyZ"
    assert len(raw) == body.length
    assert raw.startswith(b"--XyZ\r\nContent-Disposition: form-data; name=\"photo\"; filename=\"holiday.jpg\"\r\n")
    assert raw.endswith(b"--XyZ--\r\n")

    decoded = split_multipart(raw, "XyZ")
    assert [content for _headers, content in decoded] == [b"0123456789", b"holiday.jpg", b"hello", b"3.0"]
    assert decoded[0][0]["Content-Type"] == "image/jpeg"
    assert "Content-Type" not in decoded[2][0]


def test_file_is_streamed_in_chunks(sample_file):
    parts = build_parts("photo", str(sample_file), "holiday.jpg", "image/jpeg", {})
    chunks = list(MultipartBody(parts, chunk_size=4))
    assert b"0123" in chunks
    assert b"4567" in chunks
    assert b"89" in chunks


def test_boundary_is_unique_per_body(sample_file):
    parts = build_parts("photo", str(sample_file), "holiday.jpg", "image/jpeg", {})
    first = MultipartBody(parts)
    second = MultipartBody(parts)
    assert first.boundary != second.boundary
    assert len(first.boundary) == 32


def test_empty_file(write_file):
    empty = write_file("empty.txt", 0)
    body = MultipartBody(build_parts("file", str(empty), "empty.txt", "text/plain", {}), boundary="b")
    raw = b"".join(body)
    assert len(raw) == body.length
    assert split_multipart(raw, "b")[0][1] == b""


def test_part_without_length_makes_body_length_unknown(write_file):
    path = write_file("pipe.bin", 8, b"streamed")
    part = MultipartPart(headers=[("Content-Disposition", 'form-data; name="file"')], path=str(path))
    body = MultipartBody([part], boundary="b")
    assert body.length == -1
    assert split_multipart(b"".join(body), "b")[0][1] == b"streamed"


def test_header_values_are_escaped():
    assert quote_header_value('a"b') == '"a%22b"'
    assert quote_header_value("line\r\nbreak") == '"line%0D%0Abreak"'
    part = MultipartPart.form_field('we"ird', "x")
    assert part.headers[0][1] == 'form-data; name="we%22ird"'


def test_bad_field_value_fails_build(sample_file):
    with pytest.raises(TypeConversionError):
        build_parts("photo", str(sample_file), "holiday.jpg", "image/jpeg", {"bad": object()})
