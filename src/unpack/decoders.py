"""Decoders for every supported Content-Encoding.

Decoders don't do any I/O. Compressed bytes are pushed in with 'decompress()',
which returns at most 'max_length' decoded bytes and keeps the remaining input
for the next call. 'flush()' is called once the input has ended and raises
'EOFError' if the compressed stream was cut short.
"""
import zlib

import zstandard

from .encodings import GZIP, DEFLATE, ZSTD

# Compressed bytes fed to zstd per step. zstd can't bound its output so
# the input is bounded instead: every block takes at least 4 bytes and
# decodes to at most 128 KiB, so one step yields at most about 1 MiB.
ZSTD_FEED_SIZE = 32


class Decoder:
    def decompress(self, data: bytes, max_length: int = 0) -> bytes:
        raise NotImplementedError()

    def flush(self) -> bytes:
        raise NotImplementedError()

    @property
    def has_pending(self) -> bool:
        """True if 'decompress(b"")' may produce more data"""
        raise NotImplementedError()

    @property
    def eof(self) -> bool:
        raise NotImplementedError()


def _truncated() -> EOFError:
    return EOFError(
        "Compressed stream ended before the end-of-stream marker was reached"
    )


class _ZlibFamilyDecoder(Decoder):
    wbits: int

    def __init__(self) -> None:
        self._obj = zlib.decompressobj(self.wbits)
        self._tail = b""

    def decompress(self, data: bytes, max_length: int = 0) -> bytes:
        data = self._tail + data if self._tail else data
        if self._obj.eof:
            # Anything after the end of the stream is ignored.
            self._tail = b""
            return b""
        ret = self._obj.decompress(data, max_length)
        self._tail = self._obj.unconsumed_tail
        return ret

    def flush(self) -> bytes:
        ret = self._obj.flush()
        if not self._obj.eof:
            raise _truncated()
        return ret

    @property
    def has_pending(self) -> bool:
        return bool(self._tail) and not self._obj.eof

    @property
    def eof(self) -> bool:
        return self._obj.eof


class ZlibDecoder(_ZlibFamilyDecoder):
    """RFC 1950 'deflate' as it was meant to be sent"""

    wbits = zlib.MAX_WBITS


class RawDeflateDecoder(_ZlibFamilyDecoder):
    """RFC 1951 deflate without the zlib wrapper, sent by some clients"""

    wbits = -zlib.MAX_WBITS


class GzipDecoder(Decoder):
    """Decodes one or more concatenated gzip members"""

    def __init__(self) -> None:
        self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)
        self._tail = b""

    def decompress(self, data: bytes, max_length: int = 0) -> bytes:
        ret = bytearray()
        data = self._tail + data if self._tail else data
        self._tail = b""
        while data:
            if max_length and len(ret) >= max_length:
                self._tail = data
                break
            if self._obj.eof:
                # Bytes after a member must be another member.
                self._obj = zlib.decompressobj(16 + zlib.MAX_WBITS)
            remaining = max_length - len(ret) if max_length else 0
            ret += self._obj.decompress(data, remaining)
            if not self._obj.eof:
                self._tail = self._obj.unconsumed_tail
                break
            data = self._obj.unused_data
        return bytes(ret)

    def flush(self) -> bytes:
        ret = self._obj.flush()
        if not self._obj.eof:
            raise _truncated()
        return ret

    @property
    def has_pending(self) -> bool:
        return bool(self._tail)

    @property
    def eof(self) -> bool:
        return self._obj.eof and not self._tail


class ZstdDecoder(Decoder):
    """RFC 8878, decodes one or more concatenated frames"""

    def __init__(self) -> None:
        self._decompressor = zstandard.ZstdDecompressor()
        self._obj = self._decompressor.decompressobj()
        self._input = bytearray()
        self._buffer = bytearray()

    def decompress(self, data: bytes, max_length: int = 0) -> bytes:
        self._input += data
        fed = 0
        while fed < len(self._input) and (
            not max_length or len(self._buffer) < max_length
        ):
            if self._obj.eof:
                self._obj = self._decompressor.decompressobj()
            chunk = bytes(self._input[fed : fed + ZSTD_FEED_SIZE])
            fed += len(chunk)
            self._buffer += self._obj.decompress(chunk)
            if self._obj.eof:
                # Whatever follows the frame belongs to the next one.
                fed -= len(self._obj.unused_data)
        del self._input[:fed]
        return self._take(max_length)

    def flush(self) -> bytes:
        ret = self._take(0)
        if not self._obj.eof:
            raise _truncated()
        return ret

    def _take(self, max_length: int) -> bytes:
        if not max_length or len(self._buffer) <= max_length:
            ret = bytes(self._buffer)
            self._buffer = bytearray()
        else:
            ret = bytes(self._buffer[:max_length])
            del self._buffer[:max_length]
        return ret

    @property
    def has_pending(self) -> bool:
        return bool(self._input) or bool(self._buffer)

    @property
    def eof(self) -> bool:
        return self._obj.eof and not self.has_pending


def is_zlib_header(head: bytes) -> bool:
    """Checks the two byte header of RFC 1950 (CMF and FLG)"""
    if len(head) < 2:
        return False
    cmf, flg = head[0], head[1]
    return cmf & 0x0F == 8 and cmf >> 4 <= 7 and ((cmf << 8) | flg) % 31 == 0


def get_content_decoder(encoding: str, head: bytes = b"") -> Decoder:
    """Returns a decoder for one supported encoding. 'head' is the start of
    the compressed stream and is only used to tell zlib-wrapped deflate apart
    from raw deflate. Too short a 'head' means zlib-wrapped.
    """
    if encoding == GZIP:
        return GzipDecoder()
    if encoding == DEFLATE:
        if len(head) >= 2 and not is_zlib_header(head):
            return RawDeflateDecoder()
        return ZlibDecoder()
    if encoding == ZSTD:
        return ZstdDecoder()
    raise ValueError(f"no decoder for Content-Encoding '{encoding}'")

