"""
Canonical JSON hashing for tamper-evident audit records.

The canonical form is:
- Sorted keys at every nesting level
- Compact separators (no extra whitespace)
- UTF-8 encoding, ASCII-escaped
- SHA-256 digest, lowercase hex
"""

import hashlib
import json
from typing import Any, Dict


def canonical_json_string(obj: Dict[str, Any]) -> str:
    """
    Convert dictionary to canonical JSON string.

    Example:
        >>> canonical_json_string({"b": 2, "a": 1})
        '{"a":1,"b":2}'
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"))


def canonical_json_hash(obj: Dict[str, Any]) -> str:
    """
    Compute SHA-256 hash of the canonical JSON representation.

    Test vector:
        {"a": 1, "b": 2} -> '43258cff783fe7036d8a43033f830adfc60ec037382473548ac742b888292777'
    """
    return hashlib.sha256(canonical_json_string(obj).encode("utf-8")).hexdigest()
