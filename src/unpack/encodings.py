"""Parsing and classification of 'Content-Encoding' chains"""
import enum
import typing

GZIP = "gzip"
DEFLATE = "deflate"
ZSTD = "zstd"
IDENTITY = "identity"

DECODABLE_ENCODINGS = frozenset((GZIP, DEFLATE, ZSTD))
SUPPORTED_ENCODINGS = DECODABLE_ENCODINGS | {IDENTITY}


class Chain(enum.Enum):
    ABSENT = "absent"
    UNSUPPORTED = "unsupported"
    NOOP = "noop"
    DECODABLE = "decodable"


class Classification(typing.NamedTuple):
    chain: Chain
    # The first unsupported token for 'Chain.UNSUPPORTED', otherwise 'None'.
    token: typing.Optional[str] = None


def parse_content_encodings(
    header_values: typing.Iterable[typing.Optional[str]],
) -> typing.List[str]:
    """Flattens every occurrence of the 'Content-Encoding' header into
    one list of lowercase tokens in the order the encodings were applied.
    """
    encodings = []
    for value in header_values:
        if not value:
            continue
        for part in value.split(","):
            encoding = part.strip().lower()
            if encoding:
                encodings.append(encoding)
    return encodings


def classify_encodings(encodings: typing.Sequence[str]) -> Classification:
    """From RFC 7231:
        If one or more encodings have been applied to a representation, the
        sender that applied the encodings MUST generate a Content-Encoding
        header field that lists the content codings in the order in which
        they were applied.

    A chain is only decoded if every coding in it is understood.
    """
    if not encodings:
        return Classification(Chain.ABSENT)
    for encoding in encodings:
        if encoding not in SUPPORTED_ENCODINGS:
            return Classification(Chain.UNSUPPORTED, encoding)
    if all(encoding == IDENTITY for encoding in encodings):
        return Classification(Chain.NOOP)
    return Classification(Chain.DECODABLE)


def accept_encoding() -> str:
    """Returns the value of 'Accept-Encoding' that lists every
    coding request bodies may be sent with.
    """
    return ", ".join((GZIP, DEFLATE, ZSTD))
