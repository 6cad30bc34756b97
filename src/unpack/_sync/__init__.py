from .streams import (
    ClosingStack,
    DecodedBody,
    DecodingReader,
    LimitedReader,
    Readable,
    open_decoded_body,
)
from .middleware import Unpack

__all__ = [
    "ClosingStack",
    "DecodedBody",
    "DecodingReader",
    "LimitedReader",
    "Readable",
    "Unpack",
    "open_decoded_body",
]
