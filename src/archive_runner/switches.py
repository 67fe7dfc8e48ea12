"""7-Zip switch serialization.

Turns an options mapping into the ordered list of command-line tokens that
is appended to the positional arguments of an invocation.

Supported value shapes:
    True        -> ``-<key>``
    False/None  -> omitted (``ssc=False`` becomes ``-ssc-``)
    str         -> ``-<key><value>``, e.g. ``{"o": "out"}`` -> ``-oout``
    int         -> ``-<key><value>``, e.g. ``{"mx": 9}`` -> ``-mx9``
    raw         -> list of tokens appended verbatim at the end
    wildcards   -> list of file filters placed before every switch

Values are never quoted; the runner spawns with an argument vector, so no
shell ever sees them.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .errors import InvalidOptionError

__all__ = ["serialize_switches", "NEGATABLE_SWITCHES"]

# Switches whose False value is spelled out as "-<key>-"
NEGATABLE_SWITCHES = frozenset({"ssc"})

_RAW_KEY = "raw"
_WILDCARDS_KEY = "wildcards"


def _token_list(key: str, value: Any) -> list[str]:
    """Validate a list-valued special switch."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise InvalidOptionError(key, value, "expected a list of strings")
    for item in value:
        if not isinstance(item, str) or not item:
            raise InvalidOptionError(key, value, "items must be non-empty strings")
    return list(value)


def _switch_token(key: str, value: Any) -> str | None:
    """Serialize one ordinary switch, or return None to omit it."""
    if value is None:
        return None
    if value is True:
        return f"-{key}"
    if value is False:
        return f"-{key}-" if key in NEGATABLE_SWITCHES else None
    if isinstance(value, str):
        if not value:
            raise InvalidOptionError(key, value, "empty string value")
        return f"-{key}{value}"
    if isinstance(value, int):
        return f"-{key}{value}"
    raise InvalidOptionError(key, value, f"unsupported type {type(value).__name__}")


def serialize_switches(options: Mapping[str, Any] | None) -> list[str]:
    """Serialize an options mapping into 7-Zip command-line tokens.

    Args:
        options: Switch names mapped to values, or None

    Returns:
        Flat, ordered token list; empty for None or an empty mapping

    Raises:
        InvalidOptionError: If a key or value has an unsupported shape
    """
    if options is None:
        return []
    if not isinstance(options, Mapping):
        raise InvalidOptionError(None, options, "options must be a mapping")

    wildcards: list[str] = []
    raw: list[str] = []
    tokens: list[str] = []

    for key, value in options.items():
        if not isinstance(key, str) or not key:
            raise InvalidOptionError(key, value, "switch names must be non-empty strings")
        if key == _WILDCARDS_KEY:
            wildcards.extend(_token_list(key, value))
        elif key == _RAW_KEY:
            raw.extend(_token_list(key, value))
        else:
            token = _switch_token(key, value)
            if token is not None:
                tokens.append(token)

    return wildcards + tokens + raw
