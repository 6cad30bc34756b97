import logging
import typing

from unpack.encodings import Chain, classify_encodings, parse_content_encodings
from unpack.exceptions import (
    DecodedSizeLimitExceeded,
    DecompressionError,
    UnsupportedEncoding,
)
from unpack.models import Request, Response
from unpack.utils import (
    CHUNK_SIZE,
    decompression_failed_response,
    payload_too_large_response,
    rewrite_request,
    unsupported_encoding_response,
)
from .streams import close_quietly, open_decoded_body

logger = logging.getLogger(__name__)

HandlerType = typing.Callable[[Request], Response]


class Unpack:
    """Middleware which decodes request bodies sent with 'Content-Encoding'
    gzip, deflate or zstd before they reach 'handler'. If multiple encodings
    are present all of them must be supported for decoding to occur.

    - 'max_decoded_size' caps the decoded body, reading past it makes the
      middleware respond with 413. 'None' or non-positive means no cap.
    - 'strict' rejects requests carrying an unsupported encoding with 415
      instead of handing them to 'handler' untouched.

    A body that can't be decoded is rejected with 415 before 'handler' is
    called. Errors found while 'handler' reads the body are raised from
    'read()' as 'DecompressionError' and aren't handled here.
    """

    def __init__(
        self,
        handler: HandlerType,
        *,
        max_decoded_size: typing.Optional[int] = None,
        strict: bool = False,
        read_size: int = CHUNK_SIZE,
    ):
        self.handler = handler
        self.max_decoded_size = max_decoded_size
        self.strict = strict
        self.read_size = read_size

    def __call__(self, request: Request) -> Response:
        encodings = parse_content_encodings(request.headers.get_all("content-encoding"))
        classification = classify_encodings(encodings)

        if classification.chain is Chain.UNSUPPORTED:
            if self.strict:
                error = UnsupportedEncoding(classification.token, request=request)
                logger.info("Rejecting request: %s", error)
                return unsupported_encoding_response(request, error)
            logger.debug(
                "Passing through request with unsupported Content-Encoding '%s'",
                classification.token,
            )
            return self.handler(request)

        if classification.chain is not Chain.DECODABLE:
            return self.handler(request)

        try:
            body = open_decoded_body(
                request.body,
                encodings,
                max_decoded_size=self.max_decoded_size,
                read_size=self.read_size,
            )
        except DecompressionError as e:
            logger.info("Unable to decode request body: %s", e)
            return decompression_failed_response(request, e)

        rewrite_request(request, body)
        try:
            try:
                response = self.handler(request)
            except DecodedSizeLimitExceeded as e:
                logger.info("Request body too large: %s", e)
                response = payload_too_large_response(request, e)
        except BaseException:
            close_quietly(body)
            raise
        body.close()
        return response
