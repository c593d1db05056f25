import re

_PERCENT_TRIPLET = re.compile(r"%[a-fA-F0-9]{2}")


def normalize_text(text):
    """Canonicalize URL or body text so requests compare and log the same
    whichever client produced them.

    Percent-encoded bytes are lower-cased (some clients send %3A, others
    %3a) and encoded round brackets are decoded, since some clients escape
    them and others do not.
    """
    text = _PERCENT_TRIPLET.sub(lambda m: m.group(0).lower(), text)
    return text.replace("%28", "(").replace("%29", ")")


def normalize_url(url):
    return normalize_text(url)


def normalize_content(content):
    return normalize_text(content)


def decode_body(body):
    """Body bytes as text; str passes through untouched"""
    if isinstance(body, (bytes, bytearray)):
        return bytes(body).decode('utf-8', errors='replace')
    return body or ""
