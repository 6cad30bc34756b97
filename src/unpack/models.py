import typing

HeadersType = typing.Union[
    typing.Mapping[str, typing.Optional[str]],
    typing.Mapping[bytes, typing.Optional[bytes]],
    typing.Iterable[typing.Tuple[str, typing.Optional[str]]],
    typing.Iterable[typing.Tuple[bytes, typing.Optional[bytes]]],
    "Headers",
]
HeaderNameType = typing.Union[str, bytes]
HeaderValueType = typing.Optional[typing.Union[str, bytes]]


def _to_str(value: typing.Any) -> typing.Any:
    # Field values are latin-1 on the wire.
    return value.decode("latin-1") if isinstance(value, bytes) else value


class Headers:
    """Header names are case-insensitive. Repeated headers keep
    every value in the order they were added.
    """

    def __init__(self, values: HeadersType = ()):
        self._values: typing.Dict[str, typing.List[typing.Optional[str]]] = {}
        if values:
            self.extend(values)

    def get_all(self, name: HeaderNameType) -> typing.List[typing.Optional[str]]:
        return list(self._values.get(self._name(name), ()))

    def add(self, name: HeaderNameType, value: HeaderValueType) -> None:
        self._values.setdefault(self._name(name), []).append(_to_str(value))

    def extend(self, values: HeadersType) -> None:
        items = values.items() if hasattr(values, "items") else values
        for name, value in items:
            self.add(name, value)

    def items(self) -> typing.Iterator[typing.Tuple[str, typing.Optional[str]]]:
        for name, values in self._values.items():
            for value in values:
                yield name, value

    def _name(self, name: HeaderNameType) -> str:
        return _to_str(name).lower()

    def __contains__(self, name: HeaderNameType) -> bool:
        return bool(self._values.get(self._name(name)))

    def __getitem__(self, name: HeaderNameType) -> typing.Optional[str]:
        values = self._values.get(self._name(name))
        if not values:
            raise KeyError(name)
        return values[0]

    def __delitem__(self, name: HeaderNameType) -> None:
        self._values.pop(self._name(name), None)

    def __repr__(self) -> str:
        # Switch to list-of-tuples when a name is repeated,
        # otherwise the dictionary is easier to read.
        if any(len(values) > 1 for values in self._values.values()):
            internal_repr = repr(list(self.items()))
        else:
            internal_repr = repr(dict(self.items()))
        return f"<Headers {internal_repr}>"

    __str__ = __repr__


def _content_length_from_headers(headers: Headers) -> typing.Optional[int]:
    if "content-length" in headers:
        values = headers.get_all("content-length")
        if len(set(values)) == 1 and values[0] is not None and values[0].isdigit():
            return int(values[0])
    return None


_UNSET = object()


class Request:
    """A request as seen by the server after the head has been parsed.
    'body' is whatever stream the transport hands over: a file-like object
    with 'read()' and 'close()' for sync servers or a receive stream with
    'receive_some()' and 'aclose()' for async servers.

    'content_length' is the structural length of the body, it defaults to the
    value of the 'Content-Length' header and is 'None' when unknown.
    """

    def __init__(
        self,
        method: str,
        target: str,
        *,
        headers: typing.Optional[HeadersType] = None,
        body: typing.Any = None,
        content_length: typing.Any = _UNSET,
    ):
        self.method = method
        self.target = target
        self.body = body

        self._headers = Headers(headers or ())
        self._content_length: typing.Optional[int] = (
            _content_length_from_headers(self._headers)
            if content_length is _UNSET
            else content_length
        )

    @property
    def headers(self) -> Headers:
        return self._headers

    @headers.setter
    def headers(self, value: HeadersType) -> None:
        if not isinstance(value, Headers):
            value = Headers(value)
        self._headers = value

    @property
    def content_length(self) -> typing.Optional[int]:
        return self._content_length

    @content_length.setter
    def content_length(self, value: typing.Optional[int]) -> None:
        self._content_length = value

    def __repr__(self) -> str:
        return f"<Request [{self.method}]>"


class Response:
    def __init__(
        self,
        status_code: int,
        headers: typing.Optional[HeadersType] = None,
        body: bytes = b"",
        request: typing.Optional[Request] = None,
    ):
        self.status_code = status_code
        self.headers = headers or ()
        self.body = body
        self.request = request

    @property
    def headers(self) -> Headers:
        return self._headers

    @headers.setter
    def headers(self, value: HeadersType) -> None:
        if not isinstance(value, Headers):
            value = Headers(value)
        self._headers = value

    @property
    def content_length(self) -> typing.Optional[int]:
        return _content_length_from_headers(self.headers)

    def __repr__(self) -> str:
        return "<Response [%d]>" % self.status_code


def text_response(
    status_code: int,
    message: str,
    request: typing.Optional[Request] = None,
    headers: typing.Optional[HeadersType] = None,
) -> Response:
    """Builds a 'text/plain' error response carrying 'message'."""
    body = message.encode("utf-8")
    response = Response(
        status_code,
        headers=[
            ("Content-Type", "text/plain; charset=utf-8"),
            ("X-Content-Type-Options", "nosniff"),
            ("Content-Length", str(len(body))),
        ],
        body=body,
        request=request,
    )
    if headers:
        response.headers.extend(headers)
    return response
