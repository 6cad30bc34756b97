import logging
import typing

from unpack.decoders import Decoder, get_content_decoder
from unpack.encodings import IDENTITY
from unpack.exceptions import CloseError, DecodedSizeLimitExceeded, DecompressionError
from unpack.utils import CHUNK_SIZE, max_decoded_size_or_none

logger = logging.getLogger(__name__)


class Readable(typing.Protocol):
    """The part of a binary file object that request bodies need"""

    def read(self, size: int = -1) -> bytes:
        ...

    def close(self) -> None:
        ...


class DecodingReader:
    """One stage of the pipeline. Reads compressed bytes from 'source'
    and returns them decoded. Every error other than end-of-stream is
    raised as a 'DecompressionError' naming this stage's encoding.
    """

    def __init__(self, source: Readable, encoding: str, read_size: int = CHUNK_SIZE):
        self.source = source
        self.encoding = encoding
        self.read_size = read_size

        self._decoder: typing.Optional[Decoder] = None
        self._unread = b""
        self._finished = False

    def open(self) -> None:
        """Reads the start of the compressed stream so that a bad header is
        detected now instead of on the first read. For 'deflate' these bytes
        also decide between zlib-wrapped and raw deflate.
        """
        try:
            head = b""
            while len(head) < 2:
                chunk = self.source.read(self.read_size)
                if not chunk:
                    break
                head += chunk
            if not head:
                raise EOFError("Request body is empty")
            self._decoder = get_content_decoder(self.encoding, head)
            self._unread = self._decoder.decompress(head, self.read_size)
        except DecompressionError:
            raise
        except Exception as e:
            raise DecompressionError(self.encoding, e) from e

    def read(self, size: int = -1) -> bytes:
        if size == 0:
            return b""
        if size is None or size < 0:
            size = self.read_size
        try:
            return self._read(size)
        except DecompressionError:
            raise
        except Exception as e:
            raise DecompressionError(self.encoding, e) from e

    def _read(self, size: int) -> bytes:
        while True:
            if self._unread:
                data = self._unread[:size]
                self._unread = self._unread[size:]
                return data
            if self._finished or self._decoder is None:
                return b""
            if self._decoder.has_pending:
                self._unread = self._decoder.decompress(b"", size)
                continue

            chunk = self.source.read(self.read_size)
            if chunk:
                self._unread = self._decoder.decompress(chunk, size)
            else:
                self._unread = self._decoder.flush()
                self._finished = True

    def close(self) -> None:
        # The source is closed by whoever opened it.
        self._finished = True
        self._decoder = None
        self._unread = b""


class LimitedReader:
    """Caps the number of bytes read from 'reader' at 'limit'.
    Once 'limit' bytes have been read the reader may only end,
    any further byte raises 'DecodedSizeLimitExceeded'.
    """

    def __init__(self, reader: Readable, limit: typing.Optional[int]):
        self.reader = reader
        self.limit = max_decoded_size_or_none(limit)
        self.received = 0
        self._exceeded = False

    def read(self, size: int = -1) -> bytes:
        if size == 0:
            return b""
        if self.limit is None:
            return self.reader.read(size)
        if self._exceeded:
            raise DecodedSizeLimitExceeded(self.limit)

        remaining = self.limit - self.received
        if remaining <= 0:
            if self.reader.read(1):
                self._exceeded = True
                raise DecodedSizeLimitExceeded(self.limit)
            return b""

        if size is None or size < 0 or size > remaining:
            size = remaining
        data = self.reader.read(size)
        self.received += len(data)
        return data


class ClosingStack:
    """Every resource opened for one request body, closed
    together in the reverse order they were opened.
    """

    def __init__(self, resources: typing.Iterable[Readable] = ()):
        self.resources: typing.List[Readable] = list(resources)
        self.closed = False

    def push(self, resource: Readable) -> None:
        self.resources.append(resource)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True

        errors: typing.List[BaseException] = []
        for resource in reversed(self.resources):
            try:
                resource.close()
            except BaseException as e:
                errors.append(e)

        # KeyboardInterrupt and friends aren't close failures.
        failures = [e for e in errors if isinstance(e, Exception)]
        for error in errors:
            if not isinstance(error, Exception):
                if failures:
                    logger.warning(
                        "Failed to close request body: %s", CloseError(failures)
                    )
                raise error
        if failures:
            raise CloseError(failures)


class DecodedBody:
    """The decoded request body handed to the application. Closing it
    closes every stage and the original body.
    """

    def __init__(self, reader: Readable, closers: ClosingStack):
        self._reader = reader
        self._closers = closers

    def read(self, size: int = -1) -> bytes:
        """Reads up to 'size' bytes, or the rest of the body if 'size' is negative"""
        if size is None or size < 0:
            return b"".join(self)
        return self._reader.read(size)

    def readable(self) -> bool:
        return True

    @property
    def closed(self) -> bool:
        return self._closers.closed

    def close(self) -> None:
        self._closers.close()

    def __iter__(self) -> typing.Iterator[bytes]:
        while True:
            data = self._reader.read(CHUNK_SIZE)
            if not data:
                break
            yield data

    def __enter__(self) -> "DecodedBody":
        return self

    def __exit__(self, *_: typing.Any) -> None:
        self.close()


def close_quietly(resource: typing.Any) -> None:
    """Closes 'resource' while another error is already on its way out"""
    try:
        resource.close()
    except CloseError as e:
        logger.warning("Failed to close request body: %s", e)


def open_decoded_body(
    body: Readable,
    encodings: typing.Sequence[str],
    *,
    max_decoded_size: typing.Optional[int] = None,
    read_size: int = CHUNK_SIZE,
) -> DecodedBody:
    """Undoes 'encodings' on 'body', the last applied encoding first.
    'body' is owned by the returned DecodedBody. If any stage can't be
    opened everything opened so far, 'body' included, is closed and
    the stage's 'DecompressionError' is raised.
    """
    closers = ClosingStack([body])
    reader = body
    try:
        for encoding in reversed(encodings):
            if encoding == IDENTITY:
                continue
            stage = DecodingReader(reader, encoding, read_size=read_size)
            stage.open()
            closers.push(stage)
            reader = stage
            logger.debug("Opened '%s' stage", encoding)
    except BaseException:
        close_quietly(closers)
        raise

    return DecodedBody(LimitedReader(reader, max_decoded_size), closers)
