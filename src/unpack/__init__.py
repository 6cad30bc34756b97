from .exceptions import (
    UnpackError,
    UnsupportedEncoding,
    DecompressionError,
    DecodedSizeLimitExceeded,
    CloseError,
)
from .encodings import (
    Chain,
    Classification,
    parse_content_encodings,
    classify_encodings,
    accept_encoding,
)
from .models import Headers, Request, Response
from . import _async as a
from . import _sync as s

__all__ = [
    "Chain",
    "Classification",
    "CloseError",
    "DecodedSizeLimitExceeded",
    "DecompressionError",
    "Headers",
    "Request",
    "Response",
    "UnpackError",
    "UnsupportedEncoding",
    "a",
    "accept_encoding",
    "classify_encodings",
    "parse_content_encodings",
    "s",
]

__version__ = "dev"
