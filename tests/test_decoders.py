import gzip
import zlib

import pytest
import zstandard

from unpack.decoders import (
    GzipDecoder,
    RawDeflateDecoder,
    ZlibDecoder,
    ZstdDecoder,
    get_content_decoder,
    is_zlib_header,
)
from encoders import raw_deflate

PLAINTEXT = b"Hello, world! " * 1000


def decode_all(decoder, data, chunk_size=7, max_length=0):
    out = bytearray()
    for i in range(0, len(data), chunk_size):
        out += decoder.decompress(data[i : i + chunk_size], max_length)
        while decoder.has_pending:
            out += decoder.decompress(b"", max_length)
    out += decoder.flush()
    return bytes(out)


@pytest.mark.parametrize(
    ["head", "expected"],
    [
        (zlib.compress(b"x")[:2], True),
        (zlib.compress(b"x", 1)[:2], True),
        (zlib.compress(b"x", 9)[:2], True),
        (b"\x78\x9c", True),
        (b"\x78\x9d", False),  # Fails the check bits
        (b"\x88\x98", False),  # Window size too large
        (b"\x79\x9c", False),  # Not deflate
        (b"x", False),
        (b"", False),
        (raw_deflate(PLAINTEXT)[:2], False),
    ],
)
def test_is_zlib_header(head, expected):
    assert is_zlib_header(head) is expected


@pytest.mark.parametrize(
    ["encoding", "head", "decoder_type"],
    [
        ("gzip", b"", GzipDecoder),
        ("zstd", b"", ZstdDecoder),
        ("deflate", zlib.compress(PLAINTEXT), ZlibDecoder),
        ("deflate", raw_deflate(PLAINTEXT), RawDeflateDecoder),
        # Not enough bytes to tell, assume zlib
        ("deflate", b"", ZlibDecoder),
        ("deflate", b"\x01", ZlibDecoder),
    ],
)
def test_get_content_decoder(encoding, head, decoder_type):
    assert type(get_content_decoder(encoding, head)) is decoder_type


def test_get_content_decoder_unknown():
    with pytest.raises(ValueError):
        get_content_decoder("br")


@pytest.mark.parametrize(
    ["decoder_type", "compressed"],
    [
        (GzipDecoder, gzip.compress(PLAINTEXT)),
        (ZlibDecoder, zlib.compress(PLAINTEXT)),
        (RawDeflateDecoder, raw_deflate(PLAINTEXT)),
        (ZstdDecoder, zstandard.ZstdCompressor().compress(PLAINTEXT)),
    ],
)
@pytest.mark.parametrize("max_length", [0, 1, 100])
def test_decoder_streaming(decoder_type, compressed, max_length):
    decoder = decoder_type()
    assert decode_all(decoder, compressed, max_length=max_length) == PLAINTEXT
    assert decoder.eof


@pytest.mark.parametrize(
    ["decoder_type", "compressed"],
    [
        (GzipDecoder, gzip.compress(PLAINTEXT)),
        (ZlibDecoder, zlib.compress(PLAINTEXT)),
        (RawDeflateDecoder, raw_deflate(PLAINTEXT)),
        (ZstdDecoder, zstandard.ZstdCompressor().compress(PLAINTEXT)),
    ],
)
def test_decoder_respects_max_length(decoder_type, compressed):
    decoder = decoder_type()
    out = bytearray(decoder.decompress(compressed, 10))
    assert len(out) <= 10
    while decoder.has_pending:
        chunk = decoder.decompress(b"", 10)
        assert len(chunk) <= 10
        out += chunk
    out += decoder.flush()
    assert bytes(out) == PLAINTEXT


@pytest.mark.parametrize(
    ["decoder_type", "compressed"],
    [
        (GzipDecoder, gzip.compress(PLAINTEXT)),
        (ZlibDecoder, zlib.compress(PLAINTEXT)),
        (RawDeflateDecoder, raw_deflate(PLAINTEXT)),
        (ZstdDecoder, zstandard.ZstdCompressor().compress(PLAINTEXT)),
    ],
)
def test_decoder_truncated(decoder_type, compressed):
    decoder = decoder_type()
    with pytest.raises(EOFError):
        decode_all(decoder, compressed[: len(compressed) // 2])


def test_gzip_multiple_members():
    data = gzip.compress(b"Hello, ") + gzip.compress(b"world!")
    assert decode_all(GzipDecoder(), data, chunk_size=3) == b"Hello, world!"


def test_gzip_garbage_after_member():
    with pytest.raises(zlib.error):
        decode_all(GzipDecoder(), gzip.compress(b"Hello") + b"garbage")


def test_zlib_ignores_data_after_stream():
    data = zlib.compress(b"Hello") + b"garbage"
    assert decode_all(ZlibDecoder(), data) == b"Hello"


def test_zstd_multiple_frames():
    compressor = zstandard.ZstdCompressor()
    data = compressor.compress(b"Hello, ") + compressor.compress(b"world!")
    assert decode_all(ZstdDecoder(), data, chunk_size=5) == b"Hello, world!"


@pytest.mark.parametrize(
    ["decoder_type", "error"],
    [
        (GzipDecoder, zlib.error),
        (ZlibDecoder, zlib.error),
        (ZstdDecoder, zstandard.ZstdError),
    ],
)
def test_decoder_bad_header(decoder_type, error):
    with pytest.raises(error):
        decoder_type().decompress(b"hello, world")
