import pytest
import unpack


def test_headers_multiple_values():
    headers = unpack.Headers(
        [("Content-Encoding", "gzip"), (b"content-encoding", b"br")]
    )

    assert headers.get_all("CONTENT-ENCODING") == ["gzip", "br"]
    assert headers["content-encoding"] == "gzip"
    assert repr(headers) == (
        "<Headers [('content-encoding', 'gzip'), ('content-encoding', 'br')]>"
    )

    del headers["Content-Encoding"]
    assert "content-encoding" not in headers
    assert headers.get_all("content-encoding") == []


@pytest.mark.parametrize(
    ["headers", "content_length"],
    [
        ({}, None),
        ({"content-length": "13"}, 13),
        ([("content-length", "13"), ("content-length", "13")], 13),
        ([("content-length", "13"), ("content-length", "14")], None),
        ({"content-length": "-1"}, None),
        ({"content-length": "abc"}, None),
    ],
)
def test_request_content_length(headers, content_length):
    req = unpack.Request("POST", "/", headers=headers)
    assert req.content_length == content_length


def test_request_content_length_explicit():
    req = unpack.Request(
        "POST", "/", headers={"content-length": "13"}, content_length=None
    )
    assert req.content_length is None
    req.content_length = 5
    assert req.content_length == 5
