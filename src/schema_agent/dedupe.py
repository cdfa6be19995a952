"""
Removal of the duplicate foreign-key statement the builder emits when two owners
map the same collection table.

Only statements carrying the collision signature are candidates; this is not a
general duplicate filter.
"""
from __future__ import annotations
from typing import Iterable, List

DEFAULT_ROLE = "observationHasOffering"


def java_string_hash(s: str) -> int:
    """32-bit signed string hash, ``h = 31 * h + ch`` over UTF-16 code units."""
    h = 0
    data = s.encode("utf-16-be")
    for i in range(0, len(data), 2):
        h = (31 * h + ((data[i] << 8) | data[i + 1])) & 0xFFFFFFFF
    return h - 0x100000000 if h & 0x80000000 else h


def constraint_name(role: str, prefix: str = "FK") -> str:
    # unsigned hex like Integer.toHexString, upper-cased
    return f"{prefix}{java_string_hash(role) & 0xFFFFFFFF:X}"


def collision_signature(role: str = DEFAULT_ROLE) -> str:
    return constraint_name(role)


def dedupe(lines: Iterable[str], key_hint: str = DEFAULT_ROLE) -> List[str]:
    signature = collision_signature(key_hint)
    seen = False
    out: List[str] = []
    for line in lines:
        if signature in line:
            if seen:
                continue
            seen = True
        out.append(line)
    return out
