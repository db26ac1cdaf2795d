# src/batchplan/core/canonical.py
"""
Canonical JSON serialization for plan files and plan hashing.

Two-phase approach:
1. Normalize: Convert enums, tuples and paths to JSON-safe primitives (our code)
2. Serialize: Produce deterministic JSON per RFC 8785/JCS (rfc8785 package)

The same execution tree always serializes to the same bytes, so plan files
can be compared across compilations and hashed for job identity.

NaN and Infinity are rejected, not silently converted.
"""

from __future__ import annotations

import hashlib
import math
from enum import Enum
from pathlib import PurePath
from typing import Any

import rfc8785


def _normalize_for_canonical(data: Any) -> Any:
    """Recursively normalize a data structure to JSON-safe primitives.

    Raises:
        ValueError: If data contains NaN or Infinity
        TypeError: If data contains a type with no JSON representation
    """
    if isinstance(data, dict):
        return {str(k): _normalize_for_canonical(v) for k, v in data.items()}
    if isinstance(data, list | tuple):
        return [_normalize_for_canonical(v) for v in data]
    if isinstance(data, Enum):
        return _normalize_for_canonical(data.value)
    if isinstance(data, PurePath):
        return str(data)
    if isinstance(data, float):
        if math.isnan(data) or math.isinf(data):
            raise ValueError(f"Cannot canonicalize non-finite float: {data}")
        return data
    if data is None or isinstance(data, str | int | bool):
        return data
    raise TypeError(f"Cannot canonicalize value of type {type(data).__name__}")


def canonical_json(obj: Any) -> str:
    """Produce canonical JSON (no whitespace, sorted keys).

    Raises:
        ValueError: If data contains NaN, Infinity, or other non-finite values
        TypeError: If data contains types that cannot be serialized
    """
    normalized = _normalize_for_canonical(obj)
    result: bytes = rfc8785.dumps(normalized)
    return result.decode("utf-8")


def stable_hash(obj: Any) -> str:
    """SHA-256 hex digest of the canonical JSON of ``obj``.

    Used as the plan hash of a compiled job: equal execution trees give
    equal hashes across compilations and processes.
    """
    canonical = canonical_json(obj)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
