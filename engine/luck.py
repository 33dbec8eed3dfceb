"""
Coincache — engine/luck.py
Deterministic Hash Oracle: reproducible pseudo-random draws keyed by values.
===========================================================================
Version:     0.1
Stack:       Python 3.12 | stdlib hashlib
Status:      Stable. Pure function, no state.

A key is a sequence of primitive values. The parts are joined with ","
(the same text an array of the values prints as) and digested with SHA-256.
The leading 53 bits of the digest become the mantissa of a float in [0, 1).

Never use the builtin hash() here: it is salted per process for str keys.
"""

from __future__ import annotations

import hashlib
from typing import Callable, Sequence, Union

KeyPart = Union[str, int, float, bool]
LuckFn = Callable[[Sequence[KeyPart]], float]

_MANTISSA_BITS: int = 53


def _format_part(part: KeyPart) -> str:
    if isinstance(part, bool):
        return "true" if part else "false"
    if isinstance(part, float) and part.is_integer():
        return str(int(part))
    return str(part)


def luck_key(key: Sequence[KeyPart]) -> str:
    """Return the canonical text a key is hashed as."""
    return ",".join(_format_part(part) for part in key)


def luck(key: Sequence[KeyPart]) -> float:
    """
    Map a key to a float in [0, 1).

    Identical keys give identical results across calls, processes and
    sessions. Nothing here reads the clock or any global RNG.
    """
    digest = hashlib.sha256(luck_key(key).encode("utf-8")).digest()
    bits = int.from_bytes(digest[:8], "big") >> (64 - _MANTISSA_BITS)
    return bits / (1 << _MANTISSA_BITS)
