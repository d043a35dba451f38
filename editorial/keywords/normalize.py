# editorial/keywords/normalize.py
"""
Canonical keyword tokens.

Every component compares keywords through `normalize`, so two raw strings
are "the same keyword" exactly when they normalize to the same token:

    normalize(["Foo Bar", "foo-bar", " FOO_BAR "]) == ["foo-bar"]
"""
from __future__ import annotations

import re
import string
import unicodedata
from typing import Any, Iterable, List

# [:punct:] in Unicode mode: ASCII punctuation and symbols, every category P
# character (、。・（）「」 ...) and the ideographic space U+3000
_PUNCT_CHARS = frozenset(string.punctuation + "\u3000")
_SPACE_RE = re.compile(r"\s+")
_HYPHENS_RE = re.compile(r"-{2,}")

# Only A-Z is folded; full-width and non-Latin letters pass through untouched
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def _is_punct(ch: str) -> bool:
    return ch in _PUNCT_CHARS or unicodedata.category(ch).startswith("P")


def normalize_token(raw: str) -> str:
    """Return the canonical form of one keyword, or "" when nothing survives."""
    value = raw.strip()
    if not value:
        return ""
    value = value.translate(_ASCII_LOWER)
    value = "".join("-" if _is_punct(ch) else ch for ch in value)
    value = _SPACE_RE.sub("-", value)
    value = _HYPHENS_RE.sub("-", value)
    return value.strip("-")


def normalize(raw: Iterable[Any]) -> List[str]:
    """Canonical, deduplicated tokens in first-seen order. Non-strings are skipped."""
    if raw is None or isinstance(raw, str):
        raw = [raw] if raw else []
    seen = set()
    out: List[str] = []
    for item in raw:
        if not isinstance(item, str):
            continue
        token = normalize_token(item)
        if token and token not in seen:
            seen.add(token)
            out.append(token)
    return out
