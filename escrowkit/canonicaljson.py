"""RFC 8785 JSON Canonicalization Scheme (JCS) wrapper for event records.

Delegates to the ``jcs`` library. Byte strings are rendered as 0x-prefixed
hex and enums by name before canonicalization, so monitors in any language
can reproduce the exact bytes.
"""

from enum import Enum
from typing import Any

import jcs as _jcs

from .errors import CanonicalizationError


def _jsonable(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def canonicalize(obj: dict) -> bytes:
    """Canonicalize a dict to UTF-8 bytes per RFC 8785.

    Raises:
        CanonicalizationError: If the input is not a dict or a value cannot
            be represented in JSON.
    """
    if not isinstance(obj, dict):
        raise CanonicalizationError("Input must be a JSON object (dict)")
    try:
        return _jcs.canonicalize(_jsonable(obj))
    except Exception as e:
        raise CanonicalizationError(f"Canonicalization failed: {e}") from e
