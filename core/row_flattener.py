"""
Row Flattener — Turns one nested result row into a flat column -> value mapping.

Two flattening depths exist and are kept apart:

  flatten_record()     Full-path mode. For each (field_path, column) pair the
                       dotted path is walked key by key. A missing key at any
                       depth gives None for that column. A structured leaf
                       (object or array) is re-encoded as a JSON string.

  flatten_one_level()  Legacy mode for rows without a field mask. Top-level
                       scalars keep their name; top-level objects are expanded
                       exactly one level into "{parent}{Child}" columns; anything
                       deeper is JSON-encoded. Structural fields such as the
                       row's own resourceName are always dropped.

Scalars are passed through as they arrive from the JSON response; the REST API
encodes int64 values as strings and they stay strings.
"""

import json
from typing import Any, Dict, Iterable, Sequence, Tuple

STRUCTURAL_FIELDS = frozenset({"resourceName"})

_MISSING = object()


def resolve_path(record: Dict[str, Any], path: str) -> Any:
    """Walk a dotted path through nested dicts; None when any segment is absent."""
    value: Any = record
    for key in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(key, _MISSING)
        if value is _MISSING:
            return None
    return value


def encode_value(value: Any) -> Any:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return value


def flatten_record(record: Dict[str, Any], pairs: Sequence[Tuple[str, str]]) -> Dict[str, Any]:
    """Flatten a row following the (field_path, column) pairs of a schema."""
    return {column: encode_value(resolve_path(record, path)) for path, column in pairs}


def flatten_one_level(
    record: Dict[str, Any], exclude: Iterable[str] = STRUCTURAL_FIELDS
) -> Dict[str, Any]:
    """Flatten a row one level deep, dropping structural fields."""
    exclude = set(exclude)
    output: Dict[str, Any] = {}
    for key, value in record.items():
        if key in exclude:
            continue
        if isinstance(value, dict):
            for child_key, child_value in value.items():
                if child_key in exclude:
                    continue
                output[key + child_key[:1].upper() + child_key[1:]] = encode_value(child_value)
        else:
            output[key] = encode_value(value)
    return output
