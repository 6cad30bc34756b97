import logging
import typing

import trio

from unpack.decoders import Decoder, get_content_decoder
from unpack.encodings import IDENTITY
from unpack.exceptions import CloseError, DecodedSizeLimitExceeded, DecompressionError
from unpack.utils import CHUNK_SIZE, max_decoded_size_or_none

logger = logging.getLogger(__name__)


class AsyncReceiveStream(typing.Protocol):
    """The shape of 'trio.abc.ReceiveStream' that request bodies need"""

    async def receive_some(self, max_bytes: typing.Optional[int] = None) -> bytes:
        ...

    async def aclose(self) -> None:
        ...


def _check_max_bytes(max_bytes: typing.Optional[int]) -> None:
    # Same contract as 'trio.abc.ReceiveStream.receive_some()'.
    if max_bytes is not None and max_bytes < 1:
        raise ValueError("max_bytes must be >= 1")


class DecodingStream:
    """One stage of the pipeline. Reads compressed bytes from 'source'
    and returns them decoded. Every error other than end-of-stream is
    raised as a 'DecompressionError' naming this stage's encoding.
    """

    def __init__(
        self, source: AsyncReceiveStream, encoding: str, read_size: int = CHUNK_SIZE
    ):
        self.source = source
        self.encoding = encoding
        self.read_size = read_size

        self._decoder: typing.Optional[Decoder] = None
        self._unread = b""
        self._finished = False

    async def open(self) -> None:
        """Reads the start of the compressed stream so that a bad header is
        detected now instead of on the first read. For 'deflate' these bytes
        also decide between zlib-wrapped and raw deflate.
        """
        try:
            head = b""
            while len(head) < 2:
                chunk = await self.source.receive_some(self.read_size)
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

    async def receive_some(self, max_bytes: typing.Optional[int] = None) -> bytes:
        _check_max_bytes(max_bytes)
        try:
            return await self._receive_some(max_bytes or self.read_size)
        except DecompressionError:
            raise
        except Exception as e:
            raise DecompressionError(self.encoding, e) from e

    async def _receive_some(self, max_bytes: int) -> bytes:
        while True:
            if self._unread:
                data = self._unread[:max_bytes]
                self._unread = self._unread[max_bytes:]
                return data
            if self._finished or self._decoder is None:
                return b""
            if self._decoder.has_pending:
                self._unread = self._decoder.decompress(b"", max_bytes)
                continue

            chunk = await self.source.receive_some(self.read_size)
            if chunk:
                self._unread = self._decoder.decompress(chunk, max_bytes)
            else:
                self._unread = self._decoder.flush()
                self._finished = True

    async def aclose(self) -> None:
        # The source is closed by whoever opened it.
        self._finished = True
        self._decoder = None
        self._unread = b""


class LimitedStream:
    """Caps the number of bytes received from 'stream' at 'limit'.
    Once 'limit' bytes have been received the stream may only end,
    any further byte raises 'DecodedSizeLimitExceeded'.
    """

    def __init__(self, stream: AsyncReceiveStream, limit: typing.Optional[int]):
        self.stream = stream
        self.limit = max_decoded_size_or_none(limit)
        self.received = 0
        self._exceeded = False

    async def receive_some(self, max_bytes: typing.Optional[int] = None) -> bytes:
        _check_max_bytes(max_bytes)
        if self.limit is None:
            return await self.stream.receive_some(max_bytes)
        if self._exceeded:
            raise DecodedSizeLimitExceeded(self.limit)

        remaining = self.limit - self.received
        if remaining <= 0:
            if await self.stream.receive_some(1):
                self._exceeded = True
                raise DecodedSizeLimitExceeded(self.limit)
            return b""

        if max_bytes is None or max_bytes > remaining:
            max_bytes = remaining
        data = await self.stream.receive_some(max_bytes)
        self.received += len(data)
        return data


class ClosingStack:
    """Every resource opened for one request body, closed
    together in the reverse order they were opened.
    """

    def __init__(self, resources: typing.Iterable[AsyncReceiveStream] = ()):
        self.resources: typing.List[AsyncReceiveStream] = list(resources)
        self.closed = False

    def push(self, resource: AsyncReceiveStream) -> None:
        self.resources.append(resource)

    async def aclose(self) -> None:
        if self.closed:
            return
        self.closed = True

        errors: typing.List[BaseException] = []
        for resource in reversed(self.resources):
            try:
                await resource.aclose()
            except BaseException as e:
                errors.append(e)

        # Cancellation and friends aren't close failures.
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

    def __init__(self, stream: AsyncReceiveStream, closers: ClosingStack):
        self._stream = stream
        self._closers = closers

    async def receive_some(self, max_bytes: typing.Optional[int] = None) -> bytes:
        return await self._stream.receive_some(max_bytes)

    async def read(self) -> bytes:
        """Receives the rest of the body"""
        chunks = []
        async for chunk in self:
            chunks.append(chunk)
        return b"".join(chunks)

    async def aclose(self) -> None:
        await self._closers.aclose()

    def __aiter__(self) -> "DecodedBody":
        return self

    async def __anext__(self) -> bytes:
        data = await self.receive_some()
        if not data:
            raise StopAsyncIteration
        return data

    async def __aenter__(self) -> "DecodedBody":
        return self

    async def __aexit__(self, *_: typing.Any) -> None:
        await self.aclose()


async def aclose_quietly(resource: typing.Any) -> None:
    """Closes 'resource' while another error, possibly a cancellation,
    is already on its way out.
    """
    try:
        with trio.CancelScope(shield=True):
            await resource.aclose()
    except CloseError as e:
        logger.warning("Failed to close request body: %s", e)


async def open_decoded_body(
    body: AsyncReceiveStream,
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
    stream = body
    try:
        for encoding in reversed(encodings):
            if encoding == IDENTITY:
                continue
            stage = DecodingStream(stream, encoding, read_size=read_size)
            await stage.open()
            closers.push(stage)
            stream = stage
            logger.debug("Opened '%s' stage", encoding)
    except BaseException:
        await aclose_quietly(closers)
        raise

    return DecodedBody(LimitedStream(stream, max_decoded_size), closers)
