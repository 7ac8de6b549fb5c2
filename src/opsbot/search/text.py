"""Text normalization helpers shared by every scorer."""

import json
import re
from typing import Any, List, Mapping, Optional

_TOKEN_SPLIT = re.compile(r"[\s._-]+")
_WHITESPACE = re.compile(r"\s+")


def normalize(value: Optional[str]) -> str:
    """Lowercase and trim. ``None`` and empty input give ``""``."""
    return (value or "").lower().strip()


def tokenize(value: Optional[str]) -> List[str]:
    """Split normalized text on whitespace, ``.``, ``_`` and ``-``."""
    return [token for token in _TOKEN_SPLIT.split(normalize(value)) if token]


def collapse_whitespace(value: Optional[str]) -> str:
    """Trim and collapse internal whitespace runs to a single space."""
    return _WHITESPACE.sub(" ", (value or "").strip())


def field_to_text(value: Any) -> str:
    """Render an upstream field value as display text.

    Lists are rendered element by element and joined with ``", "``. Mappings
    (linked records, collaborators, contacts) prefer ``name``, then
    ``email``, then ``id``, then a JSON dump.
    """
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        parts = [field_to_text(item) for item in value]
        return ", ".join(part for part in parts if part)
    if isinstance(value, Mapping):
        name = value.get("name")
        if isinstance(name, str):
            return name
        email = value.get("email")
        if isinstance(email, str):
            return email
        ident = value.get("id")
        if isinstance(ident, (str, int, float)) and not isinstance(ident, bool):
            return str(ident)
        try:
            return json.dumps(value, ensure_ascii=False, default=str)
        except (TypeError, ValueError):
            return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
