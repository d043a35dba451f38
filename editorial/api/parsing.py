# editorial/api/parsing.py
"""Turn loose request values into typed ones before they reach the core."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List, Optional

from editorial.app.models import SourceState

_BY_NAME = {s.label: s for s in SourceState}


@dataclass(frozen=True)
class StateParse:
    state: Optional[SourceState] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state is not None


def parse_state(value: Any, default: Optional[SourceState] = None) -> StateParse:
    """
    Accepts "working"/"done"/"aborted" (any case), numeric strings and ints.
    Missing or blank input falls back to `default` when one is given.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        if default is not None:
            return StateParse(state=default)
        return StateParse(error="Missing state.")
    if isinstance(value, bool):
        return StateParse(error="Invalid state.")
    if isinstance(value, str):
        text = value.strip()
        by_name = _BY_NAME.get(text.lower())
        if by_name is not None:
            return StateParse(state=by_name)
        try:
            value = int(text)
        except ValueError:
            return StateParse(error="Invalid state.")
    if not isinstance(value, int):
        return StateParse(error="Invalid state.")
    try:
        return StateParse(state=SourceState(value))
    except ValueError:
        return StateParse(error="Invalid state.")


def parse_keywords(value: Any) -> List[str]:
    """A list, a JSON array string, or a comma-separated string."""
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str)]
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None
            if isinstance(decoded, list):
                return [v for v in decoded if isinstance(v, str)]
        return [part.strip() for part in text.split(",") if part.strip()]
    return []


def parse_keyword_params(values: List[str]) -> List[str]:
    """Repeated query parameters, each of which may itself be a loose list."""
    out: List[str] = []
    for v in values:
        out.extend(parse_keywords(v))
    return out
