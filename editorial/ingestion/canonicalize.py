# editorial/ingestion/canonicalize.py
from typing import NamedTuple
from urllib.parse import urlsplit, urlunsplit, parse_qsl

ALLOWED_SCHEMES = {"http", "https"}


class CanonicalUrl(NamedTuple):
    value: str
    had_query: bool


INVALID = CanonicalUrl("", False)


def canonicalize_url(raw: str) -> CanonicalUrl:
    """
    Scheme + host + path, with query string and fragment removed.

    `had_query` records whether the original carried query parameters; an
    empty `value` means the input is not a usable URL.
    """
    raw = (raw or "").strip()
    if not raw:
        return INVALID
    try:
        parts = urlsplit(raw)
        # touching .port validates the netloc
        parts.port
    except ValueError:
        return INVALID
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.hostname:
        return INVALID
    if any(ch.isspace() for ch in parts.netloc):
        return INVALID

    had_query = len(parse_qsl(parts.query, keep_blank_values=True)) > 0
    netloc = parts.netloc if "@" in parts.netloc else parts.netloc.lower()
    path = parts.path or "/"
    value = urlunsplit((parts.scheme.lower(), netloc, path, "", ""))
    return CanonicalUrl(value, had_query)

