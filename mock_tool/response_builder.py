import gzip
import re
import zlib
from typing import NamedTuple

_GZIP = re.compile(r"\bgzip\b")
_DEFLATE = re.compile(r"\bdeflate\b")
_WINDOWS_CODEPAGE = re.compile(r"^win(?:dows)?-?(\d{3,4})$")

# iconv-lite names Python's codec registry does not know
CHARSET_ALIASES = {
    "binary": "latin-1",
    "ucs2": "utf-16-le",
    "ucs-2": "utf-16-le",
    "utf16le": "utf-16-le",
    "utf16be": "utf-16-be",
    "utf32le": "utf-32-le",
    "utf32be": "utf-32-be",
}


class ResponseEncodingError(Exception):
    """The rule body could not be transcoded or compressed"""


class MockResponse(NamedTuple):
    status: int
    headers: dict
    body: bytes


def python_charset(name):
    """Map a configured charset name onto a Python codec name"""
    key = name.strip().lower()
    if key in CHARSET_ALIASES:
        return CHARSET_ALIASES[key]
    m = _WINDOWS_CODEPAGE.match(key)
    if m:
        return f"cp{m.group(1)}"
    return name


def set_content_encoding(headers, encoding):
    headers["Content-Encoding"] = encoding
    # Length is only known after compression
    for name in [k for k in headers if k.lower() == "content-length"]:
        del headers[name]


def build_response(rule, accept_encoding="") -> MockResponse:
    """Turn a matched rule into status, headers and body bytes.

    A rule with an explicit charset is transcoded and never compressed.
    Otherwise gzip wins over deflate when the client accepts both.
    """
    headers = dict(rule.headers)

    if rule.response == "":
        return MockResponse(rule.status, headers, b"")

    accept_encoding = accept_encoding or ""
    try:
        if rule.encoding:
            # Unrepresentable characters become "?"
            body = rule.response.encode(python_charset(rule.encoding), errors="replace")
        elif _GZIP.search(accept_encoding):
            set_content_encoding(headers, "gzip")
            body = gzip.compress(rule.response.encode('utf-8'), mtime=0)
        elif _DEFLATE.search(accept_encoding):
            set_content_encoding(headers, "deflate")
            body = zlib.compress(rule.response.encode('utf-8'))
        else:
            body = rule.response.encode('utf-8')
    except (LookupError, UnicodeError, zlib.error) as e:
        raise ResponseEncodingError(
            f"Failed to encode response body (encoding={rule.encoding!r}, "
            f"accept-encoding={accept_encoding!r}): {e}"
        ) from e

    return MockResponse(rule.status, headers, body)
