import typing

from .encodings import accept_encoding
from .exceptions import (
    DecodedSizeLimitExceeded,
    DecompressionError,
    UnsupportedEncoding,
    decompression_error_message,
)
from .models import Request, Response, text_response

CHUNK_SIZE = 65536

UNSUPPORTED_MEDIA_TYPE = 415
PAYLOAD_TOO_LARGE = 413


def max_decoded_size_or_none(value: typing.Optional[int]) -> typing.Optional[int]:
    """Non-positive limits mean there's no limit at all"""
    if value is None or value <= 0:
        return None
    return value


def rewrite_request(request: Request, body: typing.Any) -> None:
    """Hands the decoded body to the Request. The length of the decoded body
    isn't known until it's been read so all length information is dropped.
    """
    request.body = body
    del request.headers["content-encoding"]
    del request.headers["content-length"]
    request.content_length = None


def unsupported_encoding_response(
    request: Request, error: UnsupportedEncoding
) -> Response:
    return text_response(
        UNSUPPORTED_MEDIA_TYPE,
        error.message,
        request=request,
        headers=[("Accept-Encoding", accept_encoding())],
    )


def decompression_failed_response(
    request: Request, error: DecompressionError
) -> Response:
    # The cause stays out of the response.
    return text_response(
        UNSUPPORTED_MEDIA_TYPE,
        decompression_error_message(error.encoding),
        request=request,
        headers=[("Accept-Encoding", accept_encoding())],
    )


def payload_too_large_response(
    request: Request, error: DecodedSizeLimitExceeded
) -> Response:
    return text_response(PAYLOAD_TOO_LARGE, error.message, request=request)
