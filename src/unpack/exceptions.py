import typing

if typing.TYPE_CHECKING:
    from .models import Request


class UnpackError(Exception):
    """Base error type for 'unpack' which may carry the Request
    whose body was being decoded and the encapsulated error if this
    error wraps a different exception.
    """

    def __init__(
        self,
        message: str,
        request: typing.Optional["Request"] = None,
        error: typing.Optional[BaseException] = None,
    ):
        super().__init__(message)

        self.message = message
        self.request = request
        self.error = error


def decompression_error_message(encoding: str) -> str:
    return f"Content-Encoding: {encoding} set but unable to decompress body"


def unsupported_encoding_message(encoding: str) -> str:
    return f"Content-Encoding: {encoding} is not supported"


class UnsupportedEncoding(UnpackError):
    """Error raised when a chain contains a token outside of the
    supported set and unsupported tokens are handled strictly.
    """

    def __init__(self, encoding: str, **kwargs: typing.Any):
        super().__init__(unsupported_encoding_message(encoding), **kwargs)
        self.encoding = encoding


class DecompressionError(UnpackError):
    """Error raised when a body declared with a supported Content-Encoding
    can't be decoded. 'encoding' names the stage that failed.
    """

    def __init__(
        self, encoding: str, error: typing.Optional[BaseException] = None, **kwargs
    ):
        message = decompression_error_message(encoding)
        if error is not None:
            message = f"{message}: {error}"
        super().__init__(message, error=error, **kwargs)
        self.encoding = encoding


class DecodedSizeLimitExceeded(UnpackError):
    """Error raised when the decoded body grows past 'max_decoded_size'.
    Every byte returned by a read before this error is valid.
    """

    def __init__(self, limit: int, **kwargs: typing.Any):
        super().__init__(
            f"Decoded request body exceeds the limit of {limit} bytes", **kwargs
        )
        self.limit = limit


class CloseError(UnpackError):
    """Error raised when one or more resources of a decoded body fail to
    close. Every failure is kept in 'errors' in the order it occurred.
    """

    def __init__(self, errors: typing.Sequence[BaseException]):
        self.errors = list(errors)
        if len(self.errors) == 1:
            message = f"Error while closing request body: {self.errors[0]}"
        else:
            message = (
                f"{len(self.errors)} errors while closing request body: "
                + "; ".join(str(e) for e in self.errors)
            )
        super().__init__(message, error=self.errors[0] if self.errors else None)
