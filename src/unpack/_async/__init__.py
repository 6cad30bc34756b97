from .streams import (
    AsyncReceiveStream,
    ClosingStack,
    DecodedBody,
    DecodingStream,
    LimitedStream,
    open_decoded_body,
)
from .middleware import Unpack

__all__ = [
    "AsyncReceiveStream",
    "ClosingStack",
    "DecodedBody",
    "DecodingStream",
    "LimitedStream",
    "Unpack",
    "open_decoded_body",
]
